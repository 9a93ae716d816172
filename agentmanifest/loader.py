"""Manifest file loading for local validation.

Manifests are published as JSON, but authors often keep the source in
YAML; both parse into the same document.
"""

import json
from pathlib import Path
from typing import Any, Dict, Union

import yaml


def load_manifest(path_or_bytes: Union[str, Path, bytes]) -> Dict[str, Any]:
    """Load a manifest document from a file path or raw bytes.

    Args:
        path_or_bytes: File path (str/Path) or raw JSON/YAML bytes

    Returns:
        Parsed manifest dictionary

    Raises:
        FileNotFoundError: If path does not exist
        ValueError: If the content is not a JSON/YAML object
    """
    if isinstance(path_or_bytes, bytes):
        text = path_or_bytes.decode("utf-8")
        suffix = ""
    else:
        path = Path(path_or_bytes)
        if not path.exists():
            raise FileNotFoundError(f"Manifest file not found: {path}")
        text = path.read_text(encoding="utf-8")
        suffix = path.suffix.lower()

    try:
        if suffix in (".yaml", ".yml"):
            data = yaml.safe_load(text)
        else:
            try:
                data = json.loads(text)
            except json.JSONDecodeError:
                if suffix == ".json":
                    raise
                data = yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ValueError(f"Failed to parse manifest: {e}") from e

    if not isinstance(data, dict):
        raise ValueError("Manifest must be a JSON/YAML object")

    return data
