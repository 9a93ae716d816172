"""
Validation data model.

ValidationCheck is one atomic judgment; ValidationResult is the aggregate a
single validation call produces. Both are immutable once built and are the
contract surface for the listing store, the HTTP responses and the CLI, so
field names and check names must stay stable.

The payment block comes in two shapes. classify_payment() decides the shape
once per validation and every payment check receives the classified value.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

from agentmanifest.versions import SpecVersion


class Severity(str, Enum):
    """How much a failed check matters"""
    ERROR = "error"      # Blocks the overall result
    WARNING = "warning"  # Advisory, never blocks
    INFO = "info"        # Confirmation, always passed


@dataclass(frozen=True)
class ValidationCheck:
    """Single validation judgment"""
    name: str
    passed: bool
    message: str
    severity: Severity

    @property
    def blocking(self) -> bool:
        """True if this check fails the overall result"""
        return not self.passed and self.severity == Severity.ERROR

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "passed": self.passed,
            "message": self.message,
            "severity": self.severity.value,
        }


@dataclass(frozen=True)
class ValidationResult:
    """Aggregate outcome of validating one manifest"""
    url: str
    validated_at: str
    passed: bool
    spec_version: Optional[str]
    checks: Tuple[ValidationCheck, ...]
    verification_token: Optional[str] = None
    schema_valid: bool = False
    endpoints_reachable: bool = False
    auth_verified: bool = False
    payment_flow_verified: bool = False
    operationally_complete: bool = False
    badges: Tuple[str, ...] = ()

    def __post_init__(self):
        # Callers may pass lists; the stored result never changes
        object.__setattr__(self, "checks", tuple(self.checks))
        object.__setattr__(self, "badges", tuple(self.badges))

    def find(self, name: str) -> Optional[ValidationCheck]:
        """First check with the given name, if any"""
        for check in self.checks:
            if check.name == name:
                return check
        return None

    @property
    def errors(self) -> List[ValidationCheck]:
        return [c for c in self.checks if c.blocking]

    @property
    def warnings(self) -> List[ValidationCheck]:
        return [c for c in self.checks if not c.passed and c.severity == Severity.WARNING]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON responses and storage"""
        return {
            "url": self.url,
            "validated_at": self.validated_at,
            "passed": self.passed,
            "spec_version": self.spec_version,
            "checks": [c.to_dict() for c in self.checks],
            "verification_token": self.verification_token,
            "schema_valid": self.schema_valid,
            "endpoints_reachable": self.endpoints_reachable,
            "auth_verified": self.auth_verified,
            "payment_flow_verified": self.payment_flow_verified,
            "operationally_complete": self.operationally_complete,
            "badges": list(self.badges),
        }


def all_errors_passed(checks: List[ValidationCheck]) -> bool:
    """Overall pass rule: every error-severity check passed"""
    return not any(check.blocking for check in checks)


# ============================================
# Payment block shapes
# ============================================

def _as_dict(value) -> Optional[Dict[str, Any]]:
    return value if isinstance(value, dict) else None


def _as_str(value) -> Optional[str]:
    return value if isinstance(value, str) and value else None


@dataclass(frozen=True)
class LegacyPayment:
    """Payment block as declared by 0.2 manifests (checkout + key provisioning)"""
    checkout_url: Optional[str]
    key_provisioning_url: Optional[str]
    prepay_required: bool
    raw: Dict[str, Any]

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LegacyPayment":
        return cls(
            checkout_url=_as_str(data.get("checkout_url")),
            key_provisioning_url=_as_str(data.get("key_provisioning_url")),
            prepay_required=data.get("prepay_required") is True,
            raw=data,
        )


@dataclass(frozen=True)
class CurrentPayment:
    """Payment block as declared by 0.3 manifests (model, rates, onboarding...)"""
    model: Optional[str]
    currency: Optional[str]
    rates: List[Any]
    onboarding: Optional[Dict[str, Any]]
    settlement: Optional[Dict[str, Any]]
    budget_controls: Optional[Dict[str, Any]]
    usage_endpoint: Optional[Dict[str, Any]]
    raw: Dict[str, Any]

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CurrentPayment":
        rates = data.get("rates")
        return cls(
            model=_as_str(data.get("model")),
            currency=data.get("currency"),
            rates=rates if isinstance(rates, list) else [],
            onboarding=_as_dict(data.get("onboarding")),
            settlement=_as_dict(data.get("settlement")),
            budget_controls=_as_dict(data.get("budget_controls")),
            usage_endpoint=_as_dict(data.get("usage_endpoint")),
            raw=data,
        )

    @property
    def is_free(self) -> bool:
        return self.model == "free"

    @property
    def is_paid(self) -> bool:
        """A model is declared and it is not free"""
        return self.model is not None and not self.is_free

    @property
    def budget_aware(self) -> bool:
        """budget_controls declares spend-cap or per-request-limit support"""
        controls = self.budget_controls or {}
        return (
            controls.get("supports_spend_cap") is True
            or controls.get("supports_per_request_limit") is True
        )


PaymentShape = Union[LegacyPayment, CurrentPayment, None]


def classify_payment(payment, version: Optional[SpecVersion]) -> PaymentShape:
    """Decide the payment block shape.

    Current shape requires the current spec version and a `model` key;
    any other object is read as the legacy shape.
    """
    if not isinstance(payment, dict):
        return None
    if version is SpecVersion.V0_3 and "model" in payment:
        return CurrentPayment.from_dict(payment)
    return LegacyPayment.from_dict(payment)
