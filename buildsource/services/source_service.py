"""
Git source service for buildsource.

Prepares the on-disk mirror of one git source so that it sits exactly at
the requested revision, ready to be bind mounted into the build sandbox.
"""

import logging
import os
from typing import Dict, Any, Optional

from ..config import load_config
from ..domain.source import GitSource, BindConfiguration
from ..exit_codes import VcsError
from ..infra.git_client import GitClient, GitCommandError

logger = logging.getLogger(__name__)

# Pack files must stay readable once a root build has written them
PACK_FILE_MODE = 0o644


class GitSourceResolver:
    """
    Clone-or-update a single git source mirror.

    fetch() is idempotent: running it twice against the same mirror
    leaves the same tree at the same commit. Nothing here locks the
    mirror, so callers must not fetch one source from two processes at
    once.

    Example:
        resolver = GitSourceResolver.from_uri(
            "https://github.com/getsolus/solbuild.git", "v1.5.0")
        commit = resolver.fetch()
        bind = resolver.get_bind_configuration("/home/build/YPKG/sources")
    """

    def __init__(
        self,
        source: GitSource,
        git_client: Optional[GitClient] = None,
    ):
        """
        Initialize GitSourceResolver.

        Args:
            source: The git source to prepare
            git_client: GitClient instance (creates new if None)
        """
        self.source = source
        self.git = git_client or GitClient()
        self.resolved: Optional[str] = None

    @classmethod
    def from_uri(
        cls,
        uri: str,
        ref: str,
        config: Optional[Dict[str, Any]] = None,
        git_client: Optional[GitClient] = None,
    ) -> 'GitSourceResolver':
        """Build a resolver whose mirror lives under the configured root."""
        config = config or load_config()
        mirror_root = config['sources']['mirror_root']
        if git_client is None:
            git_config = config.get('git', {})
            git_client = GitClient(
                executable=git_config.get('executable', 'git'),
                timeout=git_config.get('timeout'),
            )
        source = GitSource.from_uri(uri, ref, mirror_root=mirror_root)
        logger.info(f"ref: {source.ref}")
        return cls(source, git_client=git_client)

    @property
    def clone_path(self) -> str:
        return self.source.clone_path

    def fetch(self) -> str:
        """
        Download the source, or update an existing mirror, and check out ref.

        Returns:
            The commit id the mirror now sits at

        Raises:
            GitCommandError: if any git step fails
            VcsError: if the pack directory cannot be listed
        """
        path = self.clone_path

        if not os.path.exists(path):
            logger.info(f"making clone of repo at '{path}'")
            self.git.clone(self.source.uri, path, no_checkout=True, recurse_submodules=True)
        else:
            logger.debug(f"source repo clone found on disk at '{path}'")
            self.open_mirror()

        self.git.fetch(path, remote="origin", force=True, tags=True)

        commit = self.resolve_ref()
        logger.debug(f"resolved reference: {commit}")

        self.git.checkout_detached(path, commit, force=True)
        self.git.reset_hard(path, commit)
        self.git.clean(path, directories=True, ignored=True)

        self.normalize_pack_permissions()
        self.update_submodules()

        self.resolved = commit
        return commit

    def open_mirror(self) -> None:
        """
        Check that the existing clone path is itself a repository.

        git walks up from the clone path looking for a work tree, so a
        half-written mirror inside some other checkout would otherwise
        resolve to that checkout and get reset.

        Raises:
            GitCommandError: if the path is not inside any work tree
            VcsError: if the path is inside a work tree but not its top
        """
        path = self.clone_path
        toplevel = self.git.toplevel(path)
        if os.path.realpath(toplevel) != os.path.realpath(path):
            raise VcsError(
                f"'{path}' is not a git repository (found enclosing work tree '{toplevel}')"
            )

    def resolve_ref(self) -> str:
        """
        Map the source's ref onto a concrete commit id.

        A full commit id is taken literally. Anything else is looked up as
        a freshly fetched remote branch first, then as a revision
        expression (tag, local branch, short hash, ...).
        """
        ref = self.source.ref
        if self.source.literal_ref:
            return ref.lower()

        logger.debug(f"reference '{ref}' does not look like a hash; attempting to resolve")
        for candidate in (f"refs/remotes/origin/{ref}", ref):
            commit = self.git.rev_parse(self.clone_path, candidate)
            if commit:
                return commit

        raise GitCommandError(
            ['rev-parse', '--verify', ref],
            128,
            f"reference '{ref}' not found in {self.source.uri}",
        )

    def normalize_pack_permissions(self) -> None:
        """
        Make every pack file group/other readable.

        Builds run as root, which leaves pack files unreadable to the
        unprivileged tooling that later clones from the mirror. One file
        failing does not stop the rest.
        """
        pack_dir = os.path.join(self.clone_path, ".git", "objects", "pack")
        try:
            entries = sorted(os.listdir(pack_dir))
        except OSError as e:
            raise VcsError(f"cannot read pack directory '{pack_dir}': {e}") from e

        for name in entries:
            try:
                os.chmod(os.path.join(pack_dir, name), PACK_FILE_MODE)
            except OSError as e:
                logger.error(f"error updating pack file permissions '{name}': {e}")
                continue

    def update_submodules(self) -> None:
        """Initialize and update submodules if the checked out tree has any."""
        if not os.path.exists(os.path.join(self.clone_path, ".gitmodules")):
            return
        logger.info(f"updating submodules of {self.get_identifier()}")
        self.git.submodule_update(self.clone_path, recursive=True)

    def is_fetched(self) -> bool:
        """
        Check if the ref is already available locally.

        Always False for now, so fetch() always runs; fetch() is
        idempotent, so this only costs time.
        """
        return False

    def get_head(self) -> Optional[str]:
        """Commit id currently checked out in the mirror, if any."""
        if not os.path.exists(self.clone_path):
            return None
        return self.git.head(self.clone_path)

    def get_bind_configuration(self, sandbox_source_dir: str) -> BindConfiguration:
        """
        Config that bind mounts the mirror from the host into the sandbox,
        where the build tooling clones from it into a new tree.
        """
        return self.source.get_bind_configuration(sandbox_source_dir)

    def get_identifier(self) -> str:
        """Human readable string for this source in errors and logs."""
        return self.source.get_identifier()

    def to_dict(self) -> Dict[str, Any]:
        result = self.source.to_dict()
        result['identifier'] = self.get_identifier()
        if self.resolved:
            result['commit'] = self.resolved
        return result
