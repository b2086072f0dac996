"""
Source domain objects for buildsource.

GitSource describes one git source of a package build: where it comes
from, which revision to build, and where its mirror lives on disk.
BindConfiguration describes how that mirror is exposed to the sandbox.
"""

import os
import posixpath
import re
from dataclasses import dataclass
from typing import Dict, Any
from urllib.parse import urlsplit

from ..exit_codes import InvalidSourceError

# Base directory for all cached git sources
DEFAULT_MIRROR_ROOT = "/var/lib/solbuild/sources/git"

_COMMIT_ID_RE = re.compile(r'[0-9a-fA-F]{40}')


def is_commit_id(ref: str) -> bool:
    """True if ref is a full 40-character hexadecimal commit id."""
    return bool(_COMMIT_ID_RE.fullmatch(ref))


@dataclass(frozen=True)
class BindConfiguration:
    """A host directory to bind mount into the build sandbox."""
    host_path: str
    guest_path: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            'host_path': self.host_path,
            'guest_path': self.guest_path,
        }


@dataclass(frozen=True)
class GitSource:
    """
    A git source as referenced by a build recipe.

    A git source must have a valid ref to check out to. The clone path
    depends only on the URI, so the same source always maps to the same
    mirror.

    Attributes:
        uri: Remote repository URI
        ref: 40-hex commit id, or a branch/tag/revision expression
        base_name: Last URI path segment, always ending in ".git"
        clone_path: Local mirror location
    """

    uri: str
    ref: str
    base_name: str
    clone_path: str

    @classmethod
    def from_uri(cls, uri: str, ref: str, mirror_root: str = DEFAULT_MIRROR_ROOT) -> 'GitSource':
        """
        Create a GitSource for the given URI and ref.

        Raises:
            InvalidSourceError: if the URI cannot name a mirror
        """
        if not uri or not uri.strip():
            raise InvalidSourceError("empty source URI")

        try:
            parts = urlsplit(uri)
        except ValueError as e:
            raise InvalidSourceError(f"invalid source URI '{uri}': {e}") from e

        # scp-like syntax (git@host:path) has no scheme
        first_segment = parts.path.split('/', 1)[0]
        if not parts.scheme and ':' in first_segment:
            raise InvalidSourceError(
                f"invalid source URI '{uri}': first path segment cannot contain a colon"
            )

        url_path = parts.path.rstrip('/')
        base_name = posixpath.basename(url_path)
        if not base_name or base_name in ('.', '..'):
            raise InvalidSourceError(f"invalid source URI '{uri}': no repository name in path")
        if not base_name.endswith('.git'):
            base_name += '.git'

        parent = posixpath.dirname(url_path).lstrip('/')
        root = os.path.normpath(mirror_root)
        host = parts.netloc.rpartition('@')[2]
        clone_path = os.path.normpath(os.path.join(root, host, parent, base_name))
        if os.path.commonpath([root, clone_path]) != root or clone_path == root:
            raise InvalidSourceError(f"invalid source URI '{uri}': path escapes mirror root")

        return cls(
            uri=uri,
            ref=ref,
            base_name=base_name,
            clone_path=clone_path,
        )

    @property
    def literal_ref(self) -> bool:
        """True if ref is used as a commit id without resolution."""
        return is_commit_id(self.ref)

    def get_identifier(self) -> str:
        """Human readable representation for errors and logs."""
        return f"{self.uri}#{self.ref}"

    def get_bind_configuration(self, sandbox_source_dir: str) -> BindConfiguration:
        """
        Bind the mirror into the sandbox.

        The mirror is mounted as-is; tooling inside the sandbox clones
        from it into its own work tree.
        """
        return BindConfiguration(
            host_path=self.clone_path,
            guest_path=os.path.join(sandbox_source_dir, self.base_name),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'uri': self.uri,
            'ref': self.ref,
            'base_name': self.base_name,
            'clone_path': self.clone_path,
        }

    def __str__(self) -> str:
        return self.get_identifier()
