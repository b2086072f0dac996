"""
Minimal package.yml reader.

Only the fields the changelog needs are extracted. Scalars are loaded
as literal strings so a version such as ``1.10`` is never turned into
the float ``1.1``.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Any, Union

import yaml


class ManifestError(ValueError):
    """Raised when a manifest cannot be parsed."""


@dataclass(frozen=True)
class Package:
    """Snapshot of a build recipe."""
    name: str
    version: str
    release: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'version': self.version,
            'release': self.release,
        }


def parse_manifest(data: Union[bytes, str]) -> Package:
    """
    Parse a package.yml document.

    Args:
        data: Raw manifest contents

    Returns:
        Package with name, version and release

    Raises:
        ManifestError: on YAML errors or missing/invalid fields
    """
    try:
        doc = yaml.load(data, Loader=yaml.BaseLoader)
    except yaml.YAMLError as e:
        raise ManifestError(f"invalid YAML: {e}") from e

    if not isinstance(doc, dict):
        raise ManifestError("manifest is not a mapping")

    version = doc.get('version')
    if not isinstance(version, str) or not version.strip():
        raise ManifestError("missing or invalid 'version'")

    release = doc.get('release')
    if not isinstance(release, str) or not (release.strip().isascii() and release.strip().isdigit()):
        raise ManifestError("missing or invalid 'release'")

    name = doc.get('name', '')
    if not isinstance(name, str):
        raise ManifestError("invalid 'name'")

    return Package(name=name.strip(), version=version.strip(), release=int(release))


def load_manifest(path: Union[str, Path]) -> Package:
    """Read and parse a manifest file from disk."""
    with open(path, 'rb') as f:
        return parse_manifest(f.read())
