"""
Package history domain objects for buildsource.

A PackageHistory is an automatic changelog generated from the changes to
a package's build recipe over the tags of its repository. It is handed
to the build inside the sandbox as history.xml, so that changelogs never
need to be maintained by hand.

Commit messages are also classified: any message naming a CVE marks its
update as a security update.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, List, Dict, Any

from ..exit_codes import NoUsableHistoryError
from ..infra.git_client import GitCommit
from ..manifest import Package

# Absolute maximum number of changelog entries we provide
MAX_CHANGELOG_ENTRIES = 10

# Date format emitted in history.xml, i.e. 2016-09-24
UPDATE_DATE_FORMAT = "%Y-%m-%d"

# Identifies security updates which mention a specific CVE ID
CVE_PATTERN = re.compile(r'CVE-[0-9]+-[0-9]+')


def is_security_message(body: str) -> bool:
    """True if the commit message mentions at least one CVE ID."""
    return CVE_PATTERN.search(body) is not None


@dataclass
class PackageUpdate:
    """
    A point in the recipe's history, taken from one tag.

    Attributes:
        tag: Tag name the update was read from
        author: Author name of the tagged commit
        author_email: Author email of the tagged commit
        body: Full commit message
        time: Authored time, with the author's UTC offset
        commit: Commit id; only meaningful alongside its repository
        package: Manifest as it existed at the tag
        is_security: Whether the message mentions a CVE
    """
    tag: str
    author: str
    author_email: str
    body: str
    time: datetime
    commit: str
    package: Optional[Package] = None
    is_security: bool = False

    @classmethod
    def from_commit(cls, tag: str, commit: GitCommit) -> 'PackageUpdate':
        return cls(
            tag=tag,
            author=commit.author,
            author_email=commit.email,
            body=commit.message,
            time=commit.time,
            commit=commit.hash,
            is_security=is_security_message(commit.message),
        )

    @property
    def release(self) -> int:
        return self.package.release if self.package else 0

    @property
    def version(self) -> str:
        return self.package.version if self.package else ""

    @property
    def timestamp(self) -> int:
        """Unix timestamp of the authored time."""
        return int(self.time.timestamp())

    @property
    def date(self) -> str:
        """Authored date in UTC, as written to history.xml."""
        return self.time.astimezone(timezone.utc).strftime(UPDATE_DATE_FORMAT)

    def to_dict(self) -> Dict[str, Any]:
        result = {
            'tag': self.tag,
            'release': self.release,
            'version': self.version,
            'date': self.date,
            'timestamp': self.timestamp,
            'author': self.author,
            'email': self.author_email,
            'commit': self.commit,
            'security': self.is_security,
        }
        if self.package and self.package.name:
            result['package'] = self.package.name
        return result


@dataclass
class PackageHistory:
    """
    Ordered changelog of a package, newest release first.

    Never empty, never longer than the cap it was built with.
    """
    updates: List[PackageUpdate] = field(default_factory=list)
    manifest_path: str = ""

    def __post_init__(self):
        if not self.updates:
            raise NoUsableHistoryError()

    @classmethod
    def from_updates(
        cls,
        updates: List[PackageUpdate],
        manifest_path: str,
        max_entries: int = MAX_CHANGELOG_ENTRIES,
    ) -> 'PackageHistory':
        """
        Order updates by release, newest first, and keep at most max_entries.

        The sort is stable, so equal releases keep their incoming order.
        """
        ordered = sorted(updates, key=lambda u: u.release, reverse=True)
        return cls(updates=ordered[:max_entries], manifest_path=manifest_path)

    def __len__(self) -> int:
        return len(self.updates)

    def __iter__(self):
        return iter(self.updates)

    def last_version_timestamp(self) -> int:
        return get_last_version_timestamp(self)


def get_last_version_timestamp(history: PackageHistory) -> int:
    """
    Return a timestamp appropriate for reproducible builds.

    This is the timestamp of the last explicit version change, not of
    simple release bumps, so that rebuilds which do not change the
    version keep the same timestamp and produce better delta packages.
    """
    updates = history.updates
    last_version = updates[0].version
    last_time = updates[0].timestamp

    if len(updates) < 2:
        return last_time

    for update in updates[1:]:
        if update.version != last_version:
            break
        last_time = update.timestamp

    return last_time
