"""
Schema Conformance Checker

VALIDATION LAYER: Schema / Structure

Validates a manifest against the JSON Schema of its declared spec version:
- required fields, types, enums
- string formats (URIs, dates) and patterns (decimal prices)
- version-specific conditional rules (e.g. postpaid_cycle needs a cycle)

It does NOT cover cross-field consistency or reachability; those live in
agentmanifest.quality and agentmanifest.probes. Every other check guards
its own inputs, so none of them depend on this one having passed.

Usage:
    from agentmanifest.schema import check_schema_validity

    check = check_schema_validity(manifest, SpecVersion.parse(manifest.get("spec_version")))
"""

import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional

from jsonschema import Draft7Validator, FormatChecker
from jsonschema.exceptions import SchemaError

from agentmanifest.errors import SchemaLoadError
from agentmanifest.models import Severity, ValidationCheck
from agentmanifest.urls import is_valid_url
from agentmanifest.versions import SpecVersion

logger = logging.getLogger(__name__)

SCHEMA_ROOT = Path(__file__).parent / "schemas"

_format_checker = FormatChecker()


@_format_checker.checks("uri")
def _check_uri(instance) -> bool:
    # Non-strings are left to the "type" keyword
    if not isinstance(instance, str):
        return True
    return is_valid_url(instance)


def load_schema(version: SpecVersion) -> Dict[str, Any]:
    """Load the JSON Schema document for a spec version"""
    schema_path = SCHEMA_ROOT / version.profile.schema_file
    try:
        with open(schema_path, encoding="utf-8") as f:
            return json.load(f)
    except FileNotFoundError as e:
        raise SchemaLoadError(f"Schema file not found: {schema_path}") from e
    except json.JSONDecodeError as e:
        raise SchemaLoadError(f"Invalid schema JSON in {schema_path}: {e}") from e


@lru_cache(maxsize=None)
def get_validator(version: SpecVersion) -> Draft7Validator:
    """Compiled validator for a spec version (cached per process)"""
    schema = load_schema(version)
    try:
        Draft7Validator.check_schema(schema)
    except SchemaError as e:
        raise SchemaLoadError(f"Schema for {version.value} is not valid Draft 7: {e.message}") from e
    return Draft7Validator(schema, format_checker=_format_checker)


def schema_errors(manifest: Any, version: SpecVersion) -> List[str]:
    """
    Collect every schema violation as "<path>: <message>"

    Args:
        manifest: Parsed manifest document
        version: Spec version whose schema applies

    Returns:
        List of error descriptions, empty if the manifest conforms
    """
    validator = get_validator(version)
    messages = []
    for error in sorted(validator.iter_errors(manifest), key=lambda e: e.json_path):
        message = f"{error.json_path}: {error.message}"
        if message not in messages:
            messages.append(message)
    return messages


def check_schema_validity(manifest: Any, version: Optional[SpecVersion]) -> ValidationCheck:
    """Produce the schema_validity check for a manifest"""
    if version is None:
        declared = manifest.get("spec_version") if isinstance(manifest, dict) else None
        return ValidationCheck(
            name="schema_validity",
            passed=False,
            message=(
                f"Schema validation failed: $.spec_version: no schema for {declared!r} "
                f"(supported: {', '.join(SpecVersion.supported())})"
            ),
            severity=Severity.ERROR,
        )

    errors = schema_errors(manifest, version)
    if errors:
        logger.debug(f"Schema validation found {len(errors)} violation(s) against {version.value}")
        return ValidationCheck(
            name="schema_validity",
            passed=False,
            message=f"Schema validation failed: {'; '.join(errors)}",
            severity=Severity.ERROR,
        )

    return ValidationCheck(
        name="schema_validity",
        passed=True,
        message=f"Manifest passes JSON Schema validation ({version.value})",
        severity=Severity.INFO,
    )
