"""
buildsource - Git source mirrors and changelogs for sandboxed package builds.

Two services for a package build tool:

- Deterministic acquisition of a git source pinned to an exact revision,
  cached in a mirror whose location depends only on the source URI and
  bind mounted into the build sandbox.
- Reconstruction of a package's changelog from the tags of its build
  recipe repository, written as history.xml, plus a reproducible build
  timestamp that ignores release-only bumps.

Quick Start:
    from buildsource import GitSourceResolver, build_package_history, write_history_xml

    resolver = GitSourceResolver.from_uri(
        "https://github.com/getsolus/solbuild.git", "v1.5.0")
    commit = resolver.fetch()
    bind = resolver.get_bind_configuration("/home/build/YPKG/sources")

    history = build_package_history("packages/n/nano/package.yml")
    write_history_xml(history, "history.xml")
    timestamp = history.last_version_timestamp()
"""

__version__ = "0.3.0"

# Domain objects
from .domain import (
    GitSource,
    BindConfiguration,
    PackageUpdate,
    PackageHistory,
    MAX_CHANGELOG_ENTRIES,
    get_last_version_timestamp,
)
from .manifest import Package, ManifestError, parse_manifest

# Services
from .services import (
    GitSourceResolver,
    HistoryMiner,
    build_package_history,
    render_history_xml,
    write_history_xml,
)

# Errors
from .exit_codes import (
    CommandError,
    ConfigError,
    InvalidSourceError,
    VcsError,
    HistoryOpenError,
    NoUsableHistoryError,
    SerializationError,
)
from .infra.git_client import GitClient, GitCommandError

# Configuration
from .config import load_config, save_config

__all__ = [
    "__version__",
    "GitSource",
    "BindConfiguration",
    "PackageUpdate",
    "PackageHistory",
    "MAX_CHANGELOG_ENTRIES",
    "get_last_version_timestamp",
    "Package",
    "ManifestError",
    "parse_manifest",
    "GitSourceResolver",
    "HistoryMiner",
    "build_package_history",
    "render_history_xml",
    "write_history_xml",
    "CommandError",
    "ConfigError",
    "InvalidSourceError",
    "VcsError",
    "HistoryOpenError",
    "NoUsableHistoryError",
    "SerializationError",
    "GitClient",
    "GitCommandError",
    "load_config",
    "save_config",
]
