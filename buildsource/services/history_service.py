"""
History mining service for buildsource.

Builds a PackageHistory by walking every tag of a recipe repository and
reading the manifest as it existed at that tag.
"""

import logging
import os
from typing import Callable, Dict, List, Optional

from ..domain.history import PackageUpdate, PackageHistory, MAX_CHANGELOG_ENTRIES
from ..exit_codes import HistoryOpenError, NoUsableHistoryError
from ..infra.git_client import GitClient, GitCommandError, GitTagRef
from ..manifest import Package, ManifestError, parse_manifest

logger = logging.getLogger(__name__)

# Object types that may legitimately sit behind a tag
KNOWN_OBJECT_TYPES = ('commit', 'tag', 'tree', 'blob')


class HistoryMiner:
    """
    Reconstruct a package changelog from the tags of its recipe repository.

    Example:
        miner = HistoryMiner()
        history = miner.mine("/home/user/packages/nano/package.yml")
        for update in history:
            print(update.tag, update.release, update.version)
    """

    def __init__(
        self,
        git_client: Optional[GitClient] = None,
        manifest_parser: Callable[[bytes], Package] = parse_manifest,
        max_entries: int = MAX_CHANGELOG_ENTRIES,
    ):
        """
        Initialize HistoryMiner.

        Args:
            git_client: GitClient instance (creates new if None)
            manifest_parser: Turns manifest bytes into a Package
            max_entries: Cap on the number of changelog entries
        """
        self.git = git_client or GitClient()
        self.manifest_parser = manifest_parser
        self.max_entries = max_entries

    def mine(self, manifest_path: str) -> PackageHistory:
        """
        Analyze the tag history of the repository holding manifest_path.

        The repository is the directory containing the manifest, which
        must be the top level of a git work tree.

        Raises:
            HistoryOpenError: if the repository cannot be opened or walked
            NoUsableHistoryError: if no tag has a parsable manifest
        """
        repo_dir = os.path.dirname(os.path.abspath(manifest_path))
        self._open(repo_dir)

        try:
            tags = self.git.tag_refs(repo_dir)
        except GitCommandError as e:
            raise HistoryOpenError(f"cannot list tags of {repo_dir}: {e}") from e

        if not tags:
            raise NoUsableHistoryError(f"No usable git history found: {repo_dir} has no tags")

        updates = self._collect_updates(repo_dir, tags)

        # Reverse refname order
        tag_names = sorted(updates, reverse=True)

        retained = self._scan_updates(repo_dir, updates, tag_names, os.path.basename(manifest_path))
        if not retained:
            raise NoUsableHistoryError()

        history = PackageHistory.from_updates(retained, manifest_path, self.max_entries)
        logger.debug(f"{len(history)} changelog entries from {len(tags)} tags in {repo_dir}")
        return history

    def _open(self, repo_dir: str) -> None:
        if not os.path.isdir(repo_dir):
            raise HistoryOpenError(f"repository does not exist: {repo_dir}")
        try:
            toplevel = self.git.toplevel(repo_dir)
        except GitCommandError as e:
            raise HistoryOpenError(f"cannot open repository {repo_dir}: {e}") from e

        if os.path.realpath(toplevel) != os.path.realpath(repo_dir):
            raise HistoryOpenError(
                f"cannot open repository {repo_dir}: not the top level of a work tree ({toplevel})"
            )

    def _collect_updates(self, repo_dir: str, tags: List[GitTagRef]) -> Dict[str, PackageUpdate]:
        """Seed one PackageUpdate per tag that leads to a commit."""
        updates = {}
        for tag in tags:
            if not tag.name or not tag.object_name:
                continue

            commit_hash = self._tag_commit(tag)
            if commit_hash is None:
                continue

            try:
                commit = self.git.commit(repo_dir, commit_hash)
            except GitCommandError as e:
                raise HistoryOpenError(f"cannot read commit {commit_hash} of tag {tag.name}: {e}") from e
            except ValueError as e:
                # Bogus author lines exist in imported history
                logger.debug(f"{tag.name}: unusable commit {commit_hash}: {e}")
                continue

            updates[tag.name] = PackageUpdate.from_commit(tag.name, commit)
        return updates

    def _tag_commit(self, tag: GitTagRef) -> Optional[str]:
        """
        Commit a tag points at.

        Annotated tags are peeled one level; lightweight tags point at
        the commit directly. Tags of trees or blobs have no commit.
        """
        if tag.object_type not in KNOWN_OBJECT_TYPES:
            raise HistoryOpenError(f"Internal git error, found {tag.object_type or 'unknown'} for {tag.name}")

        if tag.object_type == 'commit':
            return tag.object_name
        if tag.annotated and tag.target_type == 'commit':
            return tag.target_name
        return None

    def _scan_updates(
        self,
        repo_dir: str,
        updates: Dict[str, PackageUpdate],
        tag_names: List[str],
        manifest_name: str,
    ) -> List[PackageUpdate]:
        """Attach the manifest at each tag, dropping tags without a usable one."""
        retained = []
        for tag_name in tag_names:
            update = updates.get(tag_name)
            if update is None:
                continue

            data = self.git.show_blob(repo_dir, update.commit, manifest_name)
            if data is None:
                logger.debug(f"{tag_name}: no {manifest_name}")
                continue

            # Malformed recipes do happen in old history
            try:
                update.package = self.manifest_parser(data)
            except ManifestError as e:
                logger.debug(f"{tag_name}: unusable {manifest_name}: {e}")
                continue

            retained.append(update)
        return retained


def build_package_history(
    manifest_path: str,
    git_client: Optional[GitClient] = None,
    max_entries: int = MAX_CHANGELOG_ENTRIES,
) -> PackageHistory:
    """Mine the history of manifest_path with default settings."""
    return HistoryMiner(git_client=git_client, max_entries=max_entries).mine(manifest_path)
