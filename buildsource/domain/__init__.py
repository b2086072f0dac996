"""
Domain layer for buildsource.

Contains domain objects with no I/O or side effects:
- GitSource: A git source and the mirror it maps to
- BindConfiguration: How a mirror is exposed to the build sandbox
- PackageUpdate: One tagged revision of a build recipe
- PackageHistory: The ordered, capped changelog of a package
"""

from .source import GitSource, BindConfiguration, DEFAULT_MIRROR_ROOT, is_commit_id
from .history import (
    PackageUpdate,
    PackageHistory,
    MAX_CHANGELOG_ENTRIES,
    CVE_PATTERN,
    is_security_message,
    get_last_version_timestamp,
)

__all__ = [
    'GitSource',
    'BindConfiguration',
    'DEFAULT_MIRROR_ROOT',
    'is_commit_id',
    'PackageUpdate',
    'PackageHistory',
    'MAX_CHANGELOG_ENTRIES',
    'CVE_PATTERN',
    'is_security_message',
    'get_last_version_timestamp',
]
