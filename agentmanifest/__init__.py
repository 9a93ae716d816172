"""AgentManifest Validator - capability manifest validation engine.

Checks a self-declared API capability manifest against its spec version,
probes what it declares, and issues a verification token when it passes.

Key Components:
- ManifestValidator: Orchestrates every check into a ValidationResult
- ManifestProber: Bounded-timeout network probes
- HmacCredentialIssuer: Signs verification tokens
"""

__version__ = "0.3.0"

from agentmanifest.models import (
    Severity,
    ValidationCheck,
    ValidationResult,
)
from agentmanifest.versions import SpecVersion
from agentmanifest.validator import (
    ManifestValidator,
    validate_manifest,
    validate_manifest_object,
)

__all__ = [
    "__version__",
    "Severity",
    "SpecVersion",
    "ValidationCheck",
    "ValidationResult",
    "ManifestValidator",
    "validate_manifest",
    "validate_manifest_object",
]
