"""
Agent operational completeness check.

Decides whether agent_notes tells an agent how to create an account, obtain
credentials and understand pricing. For 0.3 manifests with a non-free
payment block the notes should also mention payment onboarding; missing
that is a warning, not a failure.
"""

import re
from dataclasses import dataclass
from typing import List, Optional, Tuple

from agentmanifest.models import Severity, ValidationCheck
from agentmanifest.versions import (
    CURRENT_AGENT_NOTES_MIN_LENGTH,
    LEGACY_AGENT_NOTES_MIN_LENGTH,
)

# Each group is satisfied by any one of its synonyms
REQUIRED_TERM_GROUPS: List[Tuple[str, List[str]]] = [
    ("account", ["account"]),
    ("authentication", ["authentication", "api key", "api_key", "credentials"]),
    ("pricing", ["pricing", "cost", "free"]),
]

PAYMENT_TERMS = ["payment", "onboarding", "budget"]

_WHITESPACE = re.compile(r"\s+")


@dataclass(frozen=True)
class CompletenessResult:
    """operationally_complete flag plus the check that explains it"""
    operationally_complete: bool
    check: ValidationCheck


def normalize(text: str) -> str:
    return _WHITESPACE.sub(" ", text.lower())


def missing_term_group(normalized: str) -> Optional[Tuple[str, List[str]]]:
    """First required group with no synonym present, or None"""
    for group in REQUIRED_TERM_GROUPS:
        _, synonyms = group
        if not any(term in normalized for term in synonyms):
            return group
    return None


def check_operational_completeness(
    agent_notes: Optional[str],
    has_paid_payment: bool = False,
    is_current_version: bool = False,
) -> CompletenessResult:
    """
    Check that agent_notes contains procedural guidance for agents.

    Args:
        agent_notes: The agent_notes field value (may be None)
        has_paid_payment: Manifest declares a non-free current-shape payment block
        is_current_version: Manifest declares the current spec version

    Returns:
        CompletenessResult
    """
    notes = agent_notes if isinstance(agent_notes, str) else ""
    normalized = normalize(notes)
    min_length = CURRENT_AGENT_NOTES_MIN_LENGTH if is_current_version else LEGACY_AGENT_NOTES_MIN_LENGTH

    if len(notes) < min_length:
        return CompletenessResult(
            operationally_complete=False,
            check=ValidationCheck(
                name="operationally_complete",
                passed=False,
                message=(
                    "Manifest lacks agent-operational completeness. agent_notes must be at least "
                    f"{min_length} characters (currently {len(notes)})."
                ),
                severity=Severity.ERROR,
            ),
        )

    missing = missing_term_group(normalized)
    if missing is not None:
        group, synonyms = missing
        return CompletenessResult(
            operationally_complete=False,
            check=ValidationCheck(
                name="operationally_complete",
                passed=False,
                message=(
                    f"Manifest lacks agent-operational completeness. agent_notes is missing the {group} "
                    f"guidance and must reference: {' or '.join(synonyms)}."
                ),
                severity=Severity.ERROR,
            ),
        )

    if has_paid_payment and not any(term in normalized for term in PAYMENT_TERMS):
        return CompletenessResult(
            operationally_complete=True,
            check=ValidationCheck(
                name="operationally_complete",
                passed=True,
                message=(
                    "Manifest contains agent-operational completeness, but agent_notes should reference "
                    'payment onboarding (mention "payment", "onboarding", or "budget").'
                ),
                severity=Severity.WARNING,
            ),
        )

    return CompletenessResult(
        operationally_complete=True,
        check=ValidationCheck(
            name="operationally_complete",
            passed=True,
            message="Manifest contains agent-operational completeness",
            severity=Severity.INFO,
        ),
    )
