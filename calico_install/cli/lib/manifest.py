"""
Reading and writing Installation manifests.

Manifests are YAML or JSON documents holding a single Installation resource.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Union

import yaml
from pydantic import ValidationError

from calico_install.api.models import Installation
from calico_install.cli.lib.errors import ManifestError

INSTALLATION_KIND = "Installation"


def parse_manifest(data: Dict[str, Any]) -> Installation:
    """
    Build an Installation from a decoded manifest.

    Raises:
        ManifestError: If the document is not an Installation or has wrongly typed fields
    """
    if not isinstance(data, dict):
        raise ManifestError("Manifest must be a mapping")

    kind = data.get("kind", INSTALLATION_KIND)
    if kind != INSTALLATION_KIND:
        raise ManifestError(f"Manifest kind must be {INSTALLATION_KIND}, got {kind!r}")

    try:
        return Installation.model_validate(data)
    except ValidationError as e:
        raise ManifestError(f"Invalid Installation manifest: {e}")


def loads_manifest(text: str) -> Installation:
    """Parse a YAML or JSON manifest string."""
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ManifestError(f"Manifest is not valid YAML or JSON: {e}")
    return parse_manifest(data)


def load_manifest(path: Union[str, Path]) -> Installation:
    """
    Load an Installation from a YAML or JSON file.

    Args:
        path: Manifest file path

    Returns:
        The parsed Installation

    Raises:
        ManifestError: If the file cannot be read or parsed
    """
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ManifestError(f"Cannot read manifest {path}: {e}")
    return loads_manifest(text)


def to_manifest(instance: Installation) -> Dict[str, Any]:
    return instance.model_dump(mode="json", by_alias=True, exclude_none=True)


def dump_manifest(instance: Installation, output_format: str = "yaml") -> str:
    """Serialize an Installation as a YAML or JSON manifest."""
    data = to_manifest(instance)
    if output_format == "json":
        return json.dumps(data, indent=2) + "\n"
    if output_format == "yaml":
        return yaml.safe_dump(data, sort_keys=False)
    raise ValueError(f"Unsupported output format: {output_format}")
