"""Exception hierarchy for the AgentManifest validator.

Manifest problems never surface as exceptions from the public validation
entry points; they become ValidationCheck entries. The classes here cover
the internal seams where a failure has to travel a short distance before
being converted (ProbeError) and genuine engine faults (SchemaLoadError).
"""


class AgentManifestError(Exception):
    """Base class for all validator errors"""


class ProbeError(AgentManifestError):
    """A network probe could not obtain a response.

    Raised by the request primitive for timeouts, connection failures and
    unusable URLs. Probe functions catch it and turn it into a check.
    """

    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(f"{url}: {reason}")


class SchemaLoadError(AgentManifestError):
    """A packaged JSON Schema document is missing or corrupt"""


class CredentialError(AgentManifestError):
    """A verification token is malformed, tampered with, or expired"""


__all__ = [
    "AgentManifestError",
    "ProbeError",
    "SchemaLoadError",
    "CredentialError",
]
