from __future__ import annotations

from agentmanifest.metadata import (
    extract_maintained_by,
    extract_payment_metadata,
    listing_fields,
    normalize_contact,
)
from agentmanifest.models import ValidationResult


def test_normalize_contact() -> None:
    assert normalize_contact("help@example.com") == "help@example.com"
    assert normalize_contact({"email": "ops@example.com", "github": "acme"}) == "ops@example.com"
    assert normalize_contact({"support_url": "https://example.com/help"}) == "https://example.com/help"
    assert normalize_contact({"github": "acme"}) == '{"github": "acme"}'
    assert normalize_contact({}) == ""
    assert normalize_contact(None) == ""


def test_maintained_by_defaults_to_individual(v02_manifest, v03_free_manifest) -> None:
    assert extract_maintained_by(v02_manifest) == "team"
    assert extract_maintained_by(v03_free_manifest) == "individual"


def test_payment_metadata(v03_paid_manifest, v02_prepaid_manifest, v02_manifest) -> None:
    assert extract_payment_metadata(v03_paid_manifest) == {
        "payment_model": "per_request",
        "payment_currency": "USD",
        "settlement_type": "prepaid",
        "supports_spend_cap": True,
    }
    assert extract_payment_metadata(v02_prepaid_manifest)["payment_model"] is None
    assert set(extract_payment_metadata(v02_manifest).values()) == {None}


def test_listing_fields(v03_paid_manifest) -> None:
    result = ValidationResult(
        url="https://freight.example.com",
        validated_at="2026-10-18T12:00:00Z",
        passed=True,
        spec_version="agentmanifest-0.3",
        checks=[],
        verification_token="tok",
        schema_valid=True,
        payment_flow_verified=True,
        badges=["payment-ready"],
    )
    fields = listing_fields(v03_paid_manifest, result)
    assert fields["name"] == "Freight Rate Quotes"
    assert fields["pricing_model"] == "per-query"
    assert fields["auth_required"] is True
    assert fields["contact"] == "ops@freight.example.com"
    assert fields["maintained_by"] == "company"
    assert fields["verification_token"] == "tok"
    assert fields["badges"] == ["payment-ready"]
    assert fields["payment_model"] == "per_request"
