"""
Validation Orchestrator

Runs every manifest check in a fixed order and folds the outcomes into one
ValidationResult. Two entry points share the pipeline:

- validate_url(): fetch /.well-known/agent-manifest.json from a base URL,
  then probe the declared endpoints, auth flow and payment flow live.
- validate_document(): validate an already-parsed manifest (e.g. a local
  file). Nothing is fetched and no network probe is made.

Pipeline (full fan-out; a failing check never stops later checks):
    0. manifest_reachability (the only early exit: no document, no result)
    1. schema_validity
    2. spec_version
    3. description / agent_notes quality
    4. endpoint reachability
    5. pricing consistency
    6. category validity
    7. authentication consistency
    8. payment consistency
    9. operational completeness
   10. auth and payment verification

The check list is the report: `passed` is true iff no error-severity check
failed, and a verification token is issued only when it is.

Usage:
    from agentmanifest.validator import ManifestValidator

    validator = ManifestValidator()
    result = await validator.validate_url("api.example.com")
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from agentmanifest.completeness import check_operational_completeness
from agentmanifest.config import ValidatorConfig, get_config
from agentmanifest.credentials import CredentialIssuer, HmacCredentialIssuer
from agentmanifest.models import (
    CurrentPayment,
    PaymentShape,
    Severity,
    ValidationCheck,
    ValidationResult,
    all_errors_passed,
    classify_payment,
)
from agentmanifest.probes import ManifestProber
from agentmanifest.quality import (
    check_authentication_consistency,
    check_category_validity,
    check_payment_consistency,
    check_pricing_consistency,
    check_spec_version,
    check_text_quality,
    compile_patterns,
)
from agentmanifest.schema import check_schema_validity
from agentmanifest.urls import normalize_base_url
from agentmanifest.versions import SpecVersion, is_current

logger = logging.getLogger(__name__)

DEFAULT_LOCAL_SOURCE = "local-file"


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def compute_badges(auth_verified: bool, payment_flow_verified: bool, payment: PaymentShape) -> List[str]:
    badges = []
    if auth_verified:
        badges.append("auth-verified")
    if payment_flow_verified:
        badges.append("payment-ready")
    if isinstance(payment, CurrentPayment) and payment.budget_aware:
        badges.append("budget-aware")
    return badges


def endpoints_reachable(checks: List[ValidationCheck]) -> bool:
    """True if no endpoint checks ran, else every endpoint check passed"""
    endpoint_checks = [c for c in checks if c.name.startswith("endpoint_")]
    return all(c.passed for c in endpoint_checks)


class ManifestValidator:
    """Validates AgentManifest documents"""

    def __init__(
        self,
        config: Optional[ValidatorConfig] = None,
        prober: Optional[ManifestProber] = None,
        issuer: Optional[CredentialIssuer] = None,
    ):
        """
        Initialize validator.

        Args:
            config: Validator configuration (defaults to get_config())
            prober: Network prober (defaults to one built from config)
            issuer: Credential issuer (defaults to HMAC issuer from config)
        """
        self.config = config or get_config()
        self.prober = prober or ManifestProber.from_config(self.config)
        self.issuer = issuer or HmacCredentialIssuer.from_config(self.config)
        self.boilerplate_patterns = compile_patterns(self.config.boilerplate_patterns)

    async def validate_url(self, url: str) -> ValidationResult:
        """Fetch a manifest from its well-known location and validate it"""
        validated_at = utc_timestamp()
        base_url = normalize_base_url(url)
        logger.info(f"Validating manifest at {base_url}")

        reachability, manifest = await self.prober.fetch_manifest(base_url)
        if manifest is None:
            logger.info(f"Manifest at {base_url} unavailable: {reachability.message}")
            return self._unavailable(base_url, validated_at, reachability)

        return await self._run_pipeline(manifest, base_url, base_url, validated_at, reachability)

    async def validate_document(
        self,
        manifest: Dict[str, Any],
        source: str = DEFAULT_LOCAL_SOURCE,
    ) -> ValidationResult:
        """Validate an already-parsed manifest without touching the network"""
        validated_at = utc_timestamp()
        logger.info(f"Validating local manifest from {source}")

        if not isinstance(manifest, dict):
            return self._unavailable(source, validated_at, ValidationCheck(
                name="manifest_reachability",
                passed=False,
                message=f"Manifest must be a JSON object, got {type(manifest).__name__}",
                severity=Severity.ERROR,
            ))

        local = ValidationCheck(
            name="manifest_reachability",
            passed=True,
            message=f"Validating local manifest from {source} (network fetch skipped)",
            severity=Severity.INFO,
        )
        return await self._run_pipeline(manifest, source, None, validated_at, local)

    def _unavailable(self, source: str, validated_at: str, check: ValidationCheck) -> ValidationResult:
        return ValidationResult(
            url=source,
            validated_at=validated_at,
            passed=False,
            spec_version=None,
            checks=[check],
        )

    async def _run_pipeline(
        self,
        manifest: Dict[str, Any],
        source: str,
        base_url: Optional[str],
        validated_at: str,
        first_check: ValidationCheck,
    ) -> ValidationResult:
        version = SpecVersion.parse(manifest.get("spec_version"))
        payment = classify_payment(manifest.get("payment"), version)
        checks = [first_check]

        schema_check = check_schema_validity(manifest, version)
        checks.append(schema_check)
        checks.append(check_spec_version(manifest))
        checks.extend(check_text_quality(manifest, version, self.boilerplate_patterns))

        if base_url is None:
            checks.append(ValidationCheck(
                name="endpoint_reachability",
                passed=True,
                message="Endpoint reachability skipped for local manifest validation",
                severity=Severity.INFO,
            ))
        else:
            checks.extend(await self.prober.check_endpoints(base_url, manifest))

        checks.extend(check_pricing_consistency(manifest))
        checks.extend(check_category_validity(manifest))
        checks.append(check_authentication_consistency(manifest))
        checks.extend(check_payment_consistency(payment))

        completeness = check_operational_completeness(
            manifest.get("agent_notes"),
            has_paid_payment=isinstance(payment, CurrentPayment) and payment.is_paid,
            is_current_version=is_current(version),
        )
        checks.append(completeness.check)

        verification = await self.prober.verify_auth_and_payment(manifest, payment, base_url)
        checks.extend(verification.checks)

        passed = all_errors_passed(checks)
        declared_version = manifest.get("spec_version")
        spec_version = declared_version if isinstance(declared_version, str) else None

        token = None
        if passed:
            token = self.issuer.issue(source, validated_at, spec_version or "unknown")

        result = ValidationResult(
            url=source,
            validated_at=validated_at,
            passed=passed,
            spec_version=spec_version,
            checks=checks,
            verification_token=token,
            schema_valid=schema_check.passed,
            endpoints_reachable=endpoints_reachable(checks),
            auth_verified=verification.auth_verified,
            payment_flow_verified=verification.payment_flow_verified,
            operationally_complete=completeness.operationally_complete,
            badges=compute_badges(verification.auth_verified, verification.payment_flow_verified, payment),
        )

        logger.info(
            f"Validation of {source} {'passed' if passed else 'failed'}: "
            f"{len(result.errors)} error(s), {len(result.warnings)} warning(s)"
        )
        return result


async def validate_manifest(url: str, config: Optional[ValidatorConfig] = None) -> ValidationResult:
    """Convenience wrapper: validate a manifest by URL"""
    return await ManifestValidator(config=config).validate_url(url)


async def validate_manifest_object(
    manifest: Dict[str, Any],
    source: str = DEFAULT_LOCAL_SOURCE,
    config: Optional[ValidatorConfig] = None,
) -> ValidationResult:
    """Convenience wrapper: validate an already-parsed manifest"""
    return await ManifestValidator(config=config).validate_document(manifest, source)
