"""Listing metadata derived from a validated manifest.

The listing store files each verified API under a handful of flattened
fields. They are derived here so the store and the validator agree on
how 0.2 and 0.3 manifests map onto them.
"""

import json
from typing import Any, Dict, Optional

from agentmanifest.models import ValidationResult


def normalize_contact(contact) -> str:
    """Contact as a string (0.3 allows an object)"""
    if isinstance(contact, str):
        return contact
    if isinstance(contact, dict) and contact:
        return contact.get("email") or contact.get("support_url") or json.dumps(contact, sort_keys=True)
    return ""


def extract_maintained_by(manifest: Dict[str, Any]) -> str:
    """reliability.maintained_by, defaulting to "individual" (0.3 makes reliability optional)"""
    reliability = manifest.get("reliability")
    if isinstance(reliability, dict) and reliability.get("maintained_by"):
        return reliability["maintained_by"]
    return "individual"


def extract_payment_metadata(manifest: Dict[str, Any]) -> Dict[str, Optional[Any]]:
    """Payment fields used for discovery filtering.

    payment_model is None when there is no payment block, otherwise the
    declared model string (None for legacy blocks, which declare none).
    """
    payment = manifest.get("payment")
    if not isinstance(payment, dict):
        return {
            "payment_model": None,
            "payment_currency": None,
            "settlement_type": None,
            "supports_spend_cap": None,
        }

    settlement = payment.get("settlement")
    budget = payment.get("budget_controls")
    return {
        "payment_model": payment.get("model"),
        "payment_currency": payment.get("currency"),
        "settlement_type": settlement.get("type") if isinstance(settlement, dict) else None,
        "supports_spend_cap": budget.get("supports_spend_cap") if isinstance(budget, dict) else None,
    }


def listing_fields(manifest: Dict[str, Any], result: ValidationResult) -> Dict[str, Any]:
    """Flattened fields the listing store persists for a validated manifest"""
    pricing = manifest.get("pricing") if isinstance(manifest.get("pricing"), dict) else {}
    auth = manifest.get("authentication") if isinstance(manifest.get("authentication"), dict) else {}

    fields = {
        "name": manifest.get("name"),
        "url": result.url,
        "description": manifest.get("description"),
        "categories": manifest.get("categories") or [],
        "primary_category": manifest.get("primary_category"),
        "pricing_model": pricing.get("model"),
        "auth_required": auth.get("required") is True,
        "contact": normalize_contact(manifest.get("contact")),
        "maintained_by": extract_maintained_by(manifest),
        "spec_version": result.spec_version,
        "verification_token": result.verification_token,
        "schema_valid": result.schema_valid,
        "endpoints_reachable": result.endpoints_reachable,
        "auth_verified": result.auth_verified,
        "payment_flow_verified": result.payment_flow_verified,
        "operationally_complete": result.operationally_complete,
        "badges": list(result.badges),
    }
    fields.update(extract_payment_metadata(manifest))
    return fields
