"""
Field-Quality Checks

VALIDATION LAYER: Semantic / Consistency

Independent checks over individual manifest fields and the relationships
between them. Each function guards its own inputs (a missing or mistyped
field becomes a failed check, never an exception) and returns either a
single ValidationCheck or a list of them.

Checks:
1. Spec version: declared version is supported
2. Text quality: description / agent_notes length, then boilerplate
3. Categories: primary_category and categories vocabularies
4. Pricing: model vs. tier details, support URL
5. Authentication: required flag vs. type and instructions
6. Payment: legacy or current payment block rules
"""

import re
from typing import Any, Dict, Iterable, List, Optional, Pattern

from agentmanifest.models import (
    CurrentPayment,
    LegacyPayment,
    PaymentShape,
    Severity,
    ValidationCheck,
)
from agentmanifest.urls import is_valid_url
from agentmanifest.versions import SpecVersion, agent_notes_min_length

DESCRIPTION_MIN_LENGTH = 100

VALID_CATEGORIES = [
    "food-science",
    "materials",
    "construction",
    "music-gear",
    "chemistry",
    "biology",
    "geography",
    "finance",
    "legal",
    "medical",
    "engineering",
    "agriculture",
    "computing",
    "language",
    "history",
    "commerce",
    "identity",
    "weather",
    "logistics",
    "other",
]

VALID_PRIMARY_CATEGORIES = [
    "reference",
    "live",
    "computational",
    "transactional",
    "enrichment",
    "personal",
    "discovery",
]

PAID_PRICING_MODELS = ["per-query", "subscription", "tiered"]

PAYMENT_MODELS = ["free", "per_request", "prepaid_credits", "subscription", "postpaid_usage"]

SETTLEMENT_TYPES = ["prepaid", "per_request", "postpaid_cycle"]

CURRENCY_PATTERN = re.compile(r"^(?:[A-Z]{3}|x-[a-z0-9-]+)$")

PRICE_PATTERN = re.compile(r"^\d+(\.\d+)?$")

ONBOARDING_RETURN_FIELDS = ["credential_type", "credential_field", "instructions"]


def _text_length(value) -> int:
    return len(value) if isinstance(value, str) else 0


# ============================================
# Boilerplate detection
# ============================================

def compile_patterns(patterns: Iterable[str]) -> List[Pattern]:
    """Compile boilerplate regexes (case-insensitive)"""
    return [re.compile(p, re.IGNORECASE) for p in patterns]


def is_boilerplate(text: str, patterns: List[Pattern]) -> bool:
    return any(pattern.search(text) for pattern in patterns)


# ============================================
# Spec version
# ============================================

def check_spec_version(manifest: Dict[str, Any]) -> ValidationCheck:
    declared = manifest.get("spec_version")
    if SpecVersion.parse(declared) is None:
        return ValidationCheck(
            name="spec_version",
            passed=False,
            message=(
                f"Unknown spec version: {declared}. "
                f"Supported versions: {', '.join(SpecVersion.supported())}"
            ),
            severity=Severity.ERROR,
        )

    return ValidationCheck(
        name="spec_version",
        passed=True,
        message=f"Valid spec version declared ({declared})",
        severity=Severity.INFO,
    )


# ============================================
# Text quality
# ============================================

def _check_text(
    value,
    field_name: str,
    label: str,
    min_length: int,
    patterns: List[Pattern],
) -> ValidationCheck:
    length = _text_length(value)
    if length < min_length:
        return ValidationCheck(
            name=f"{field_name}_length",
            passed=False,
            message=f"{label} too short ({length} chars, minimum {min_length})",
            severity=Severity.ERROR,
        )

    if is_boilerplate(value, patterns):
        return ValidationCheck(
            name=f"{field_name}_quality",
            passed=False,
            message=f"{label} appears to be auto-generated boilerplate",
            severity=Severity.WARNING,
        )

    return ValidationCheck(
        name=f"{field_name}_length",
        passed=True,
        message=f"{label} meets minimum length requirement ({length} chars, minimum {min_length})",
        severity=Severity.INFO,
    )


def check_description_quality(manifest: Dict[str, Any], patterns: List[Pattern]) -> ValidationCheck:
    return _check_text(
        manifest.get("description"),
        "description",
        "Description",
        DESCRIPTION_MIN_LENGTH,
        patterns,
    )


def check_agent_notes_quality(
    manifest: Dict[str, Any],
    version: Optional[SpecVersion],
    patterns: List[Pattern],
) -> ValidationCheck:
    return _check_text(
        manifest.get("agent_notes"),
        "agent_notes",
        "Agent notes",
        agent_notes_min_length(version),
        patterns,
    )


def check_text_quality(
    manifest: Dict[str, Any],
    version: Optional[SpecVersion],
    patterns: List[Pattern],
) -> List[ValidationCheck]:
    """Description and agent_notes checks, in that order"""
    return [
        check_description_quality(manifest, patterns),
        check_agent_notes_quality(manifest, version, patterns),
    ]


# ============================================
# Categories
# ============================================

def check_category_validity(manifest: Dict[str, Any]) -> List[ValidationCheck]:
    checks = []

    primary = manifest.get("primary_category")
    if not isinstance(primary, str) or primary not in VALID_PRIMARY_CATEGORIES:
        checks.append(ValidationCheck(
            name="primary_category",
            passed=False,
            message=(
                f"Invalid primary_category: {primary}. "
                f"Expected one of: {', '.join(VALID_PRIMARY_CATEGORIES)}"
            ),
            severity=Severity.ERROR,
        ))
    else:
        checks.append(ValidationCheck(
            name="primary_category",
            passed=True,
            message="Primary category is valid",
            severity=Severity.INFO,
        ))

    categories = manifest.get("categories")
    if not isinstance(categories, list) or not categories:
        checks.append(ValidationCheck(
            name="categories",
            passed=False,
            message="No categories declared",
            severity=Severity.ERROR,
        ))
        return checks

    invalid = [str(c) for c in categories if c not in VALID_CATEGORIES]
    if invalid:
        checks.append(ValidationCheck(
            name="categories",
            passed=False,
            message=f"Invalid categories: {', '.join(invalid)}",
            severity=Severity.ERROR,
        ))
    else:
        checks.append(ValidationCheck(
            name="categories",
            passed=True,
            message="All categories are valid",
            severity=Severity.INFO,
        ))

    return checks


# ============================================
# Pricing
# ============================================

def check_pricing_consistency(manifest: Dict[str, Any]) -> List[ValidationCheck]:
    pricing = manifest.get("pricing")
    if not isinstance(pricing, dict):
        return [ValidationCheck(
            name="pricing_consistency",
            passed=False,
            message="Pricing object missing",
            severity=Severity.ERROR,
        )]

    checks = []
    model = pricing.get("model")

    if model in PAID_PRICING_MODELS and not pricing.get("paid_tier"):
        checks.append(ValidationCheck(
            name="pricing_paid_tier",
            passed=False,
            message=f'Pricing model "{model}" requires paid_tier to be defined',
            severity=Severity.ERROR,
        ))

    if model == "free" and not pricing.get("free_tier"):
        checks.append(ValidationCheck(
            name="pricing_free_tier",
            passed=False,
            message='Pricing model "free" requires free_tier to be defined',
            severity=Severity.ERROR,
        ))

    support_url = pricing.get("support_url")
    if support_url:
        if is_valid_url(support_url):
            checks.append(ValidationCheck(
                name="pricing_support_url",
                passed=True,
                message="Support URL is valid",
                severity=Severity.INFO,
            ))
        else:
            checks.append(ValidationCheck(
                name="pricing_support_url",
                passed=False,
                message=f"Support URL is not a valid URL: {support_url}",
                severity=Severity.ERROR,
            ))

    if all(c.passed for c in checks):
        checks.append(ValidationCheck(
            name="pricing_consistency",
            passed=True,
            message="Pricing configuration is consistent",
            severity=Severity.INFO,
        ))

    return checks


# ============================================
# Authentication
# ============================================

def check_authentication_consistency(manifest: Dict[str, Any]) -> ValidationCheck:
    auth = manifest.get("authentication")
    if not isinstance(auth, dict):
        return ValidationCheck(
            name="authentication_consistency",
            passed=False,
            message="Authentication object missing",
            severity=Severity.ERROR,
        )

    if auth.get("required") is True:
        auth_type = auth.get("type")
        if not auth_type or auth_type == "none":
            return ValidationCheck(
                name="authentication_consistency",
                passed=False,
                message='Authentication required but type is null or "none"',
                severity=Severity.ERROR,
            )

        if not auth.get("instructions"):
            return ValidationCheck(
                name="authentication_consistency",
                passed=False,
                message="Authentication required but instructions are missing",
                severity=Severity.ERROR,
            )

    return ValidationCheck(
        name="authentication_consistency",
        passed=True,
        message="Authentication configuration is consistent",
        severity=Severity.INFO,
    )


# ============================================
# Payment
# ============================================

def check_payment_consistency(payment: PaymentShape) -> List[ValidationCheck]:
    """Payment block rules; no checks when the manifest has no payment block"""
    if payment is None:
        return []
    if isinstance(payment, CurrentPayment):
        return _check_current_payment(payment)
    return _check_legacy_payment(payment)


def _check_legacy_payment(payment: LegacyPayment) -> List[ValidationCheck]:
    checks = []

    if not payment.checkout_url:
        checks.append(ValidationCheck(
            name="payment_checkout_url",
            passed=False,
            message="Payment block declared but checkout_url is missing",
            severity=Severity.ERROR,
        ))
    elif not is_valid_url(payment.checkout_url):
        checks.append(ValidationCheck(
            name="payment_checkout_url",
            passed=False,
            message=f"checkout_url is not a valid URL: {payment.checkout_url}",
            severity=Severity.ERROR,
        ))
    else:
        checks.append(ValidationCheck(
            name="payment_checkout_url",
            passed=True,
            message="checkout_url is a valid URL",
            severity=Severity.INFO,
        ))

    if payment.key_provisioning_url:
        if is_valid_url(payment.key_provisioning_url):
            checks.append(ValidationCheck(
                name="payment_key_provisioning_url",
                passed=True,
                message="key_provisioning_url is a valid URL",
                severity=Severity.INFO,
            ))
        else:
            checks.append(ValidationCheck(
                name="payment_key_provisioning_url",
                passed=False,
                message=f"key_provisioning_url is not a valid URL: {payment.key_provisioning_url}",
                severity=Severity.ERROR,
            ))

    return checks


def _check_current_payment(payment: CurrentPayment) -> List[ValidationCheck]:
    checks = []

    if payment.model not in PAYMENT_MODELS:
        checks.append(ValidationCheck(
            name="payment_model",
            passed=False,
            message=f"Invalid payment.model: {payment.model}. Expected one of: {', '.join(PAYMENT_MODELS)}",
            severity=Severity.ERROR,
        ))

    if payment.currency is not None:
        if not isinstance(payment.currency, str) or not CURRENCY_PATTERN.match(payment.currency):
            checks.append(ValidationCheck(
                name="payment_currency",
                passed=False,
                message=(
                    f"payment.currency {payment.currency!r} is neither a 3-letter ISO 4217 code "
                    f"nor an x- prefixed custom identifier"
                ),
                severity=Severity.WARNING,
            ))
    elif payment.is_paid:
        checks.append(ValidationCheck(
            name="payment_currency",
            passed=False,
            message=f'payment.currency not declared for payment model "{payment.model}"',
            severity=Severity.WARNING,
        ))

    if not payment.is_free:
        checks.extend(_check_rates(payment))
        checks.extend(_check_onboarding(payment.onboarding))
        checks.extend(_check_settlement(payment.settlement, required=True))
    elif payment.settlement is not None:
        checks.extend(_check_settlement(payment.settlement, required=False))

    if payment.usage_endpoint is not None and not is_valid_url(payment.usage_endpoint.get("url")):
        checks.append(ValidationCheck(
            name="payment_usage_endpoint",
            passed=False,
            message=f"payment.usage_endpoint.url is not a valid URL: {payment.usage_endpoint.get('url')}",
            severity=Severity.ERROR,
        ))

    if all(c.passed for c in checks):
        checks.append(ValidationCheck(
            name="payment_consistency",
            passed=True,
            message="Payment configuration is consistent",
            severity=Severity.INFO,
        ))

    return checks


def _check_rates(payment: CurrentPayment) -> List[ValidationCheck]:
    if not payment.rates:
        return [ValidationCheck(
            name="payment_rates",
            passed=False,
            message=f'Payment model "{payment.model}" requires at least one entry in payment.rates',
            severity=Severity.ERROR,
        )]

    offending = []
    for index, rate in enumerate(payment.rates):
        rate = rate if isinstance(rate, dict) else {}
        price = rate.get("price")
        if not isinstance(price, str) or not PRICE_PATTERN.match(price):
            offending.append(str(rate.get("unit") or f"rates[{index}]"))

    if offending:
        return [ValidationCheck(
            name="payment_rates",
            passed=False,
            message=(
                "payment.rates[].price must be a decimal string (e.g. \"0.002\"); "
                f"invalid price for: {', '.join(offending)}"
            ),
            severity=Severity.ERROR,
        )]

    return []


def _check_onboarding(onboarding: Optional[Dict[str, Any]]) -> List[ValidationCheck]:
    if onboarding is None:
        return [ValidationCheck(
            name="payment_onboarding",
            passed=False,
            message="Non-free payment model requires a payment.onboarding block",
            severity=Severity.ERROR,
        )]

    problems = []
    if not is_valid_url(onboarding.get("url")):
        problems.append("url (must be a valid URL)")

    accepts = onboarding.get("accepts")
    if not isinstance(accepts, list) or not accepts:
        problems.append("accepts (must be a non-empty list)")

    returns = onboarding.get("returns")
    if not isinstance(returns, dict):
        problems.append("returns")
    else:
        for field_name in ONBOARDING_RETURN_FIELDS:
            if not returns.get(field_name):
                problems.append(f"returns.{field_name}")

    if problems:
        return [ValidationCheck(
            name="payment_onboarding",
            passed=False,
            message=f"payment.onboarding is missing or invalid: {', '.join(problems)}",
            severity=Severity.ERROR,
        )]

    return []


def _check_settlement(settlement: Optional[Dict[str, Any]], required: bool) -> List[ValidationCheck]:
    if settlement is None:
        if not required:
            return []
        return [ValidationCheck(
            name="payment_settlement",
            passed=False,
            message="Non-free payment model requires a payment.settlement block",
            severity=Severity.ERROR,
        )]

    settlement_type = settlement.get("type")
    if settlement_type not in SETTLEMENT_TYPES:
        return [ValidationCheck(
            name="payment_settlement",
            passed=False,
            message=(
                f"Invalid payment.settlement.type: {settlement_type}. "
                f"Expected one of: {', '.join(SETTLEMENT_TYPES)}"
            ),
            severity=Severity.ERROR,
        )]

    if settlement_type == "postpaid_cycle" and settlement.get("cycle") is None:
        return [ValidationCheck(
            name="payment_settlement",
            passed=False,
            message="payment.settlement.type postpaid_cycle requires a non-null cycle",
            severity=Severity.ERROR,
        )]

    return []
