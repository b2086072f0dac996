"""
Git client infrastructure for buildsource.

Provides a clean abstraction over git command execution.
All git operations go through this client, making them:
- Easy to mock for testing
- Consistent in error handling
- Isolated from business logic
"""

import os
import re
import subprocess
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import List, Optional
import logging

from ..exit_codes import VcsError

logger = logging.getLogger(__name__)

# author Jane Doe <jane@example.com> 1614816000 +0100
_SIGNATURE_RE = re.compile(
    r'^(?P<name>.*?) ?<(?P<email>[^>]*)> (?P<seconds>-?\d+) (?P<offset>[+-]\d{4})$'
)


class GitCommandError(VcsError):
    """A git invocation exited non-zero (or timed out)."""

    def __init__(self, args: List[str], returncode: int, stderr: str = ""):
        command = ' '.join(args)
        detail = stderr.strip() or f"exit status {returncode}"
        super().__init__(f"git command failed: {command}: {detail}")
        self.args_list = args
        self.returncode = returncode
        self.stderr = stderr


@dataclass
class GitTagRef:
    """One entry under refs/tags."""
    name: str
    object_type: str
    object_name: str
    target_type: str = ""   # Peeled type, only set for annotated tags
    target_name: str = ""

    @property
    def annotated(self) -> bool:
        return self.object_type == 'tag'


@dataclass
class GitCommit:
    """A git commit with metadata."""
    hash: str
    author: str
    email: str
    time: datetime
    message: str


def parse_signature(value: str):
    """
    Split a raw commit signature into (name, email, time).

    The returned time carries the signer's UTC offset.
    """
    match = _SIGNATURE_RE.match(value.strip())
    if not match:
        raise ValueError(f"malformed signature: {value!r}")

    offset = match.group('offset')
    minutes = int(offset[1:3]) * 60 + int(offset[3:5])
    if offset[0] == '-':
        minutes = -minutes
    try:
        tz = timezone(timedelta(minutes=minutes))
        when = datetime.fromtimestamp(int(match.group('seconds')), tz=tz)
    except (OverflowError, OSError) as e:
        raise ValueError(f"signature time out of range: {value!r}") from e

    return match.group('name').strip(), match.group('email'), when


def parse_commit_object(commit_hash: str, raw: bytes) -> GitCommit:
    """Build a GitCommit from the output of `git cat-file commit`."""
    text = raw.decode('utf-8', errors='replace')
    header, _, message = text.partition('\n\n')

    author_line = None
    for line in header.split('\n'):
        if line.startswith('author '):
            author_line = line[len('author '):]
            break
    if author_line is None:
        raise ValueError(f"commit {commit_hash} has no author")

    name, email, when = parse_signature(author_line)
    return GitCommit(
        hash=commit_hash,
        author=name,
        email=email,
        time=when,
        message=message,
    )


class GitClient:
    """
    Abstraction over git commands.

    Every failing command raises GitCommandError carrying git's own
    stderr, so callers can surface it unchanged.

    Example:
        client = GitClient()
        client.fetch("/var/lib/solbuild/sources/git/github.com/foo/bar.git")
        commit = client.rev_parse(path, "v1.2.3")
    """

    def __init__(self, executable: str = "git", timeout: Optional[float] = None):
        """
        Initialize GitClient.

        Args:
            executable: git binary to run (default: "git")
            timeout: Command timeout in seconds, None waits forever
        """
        self.executable = executable
        self.timeout = timeout

    def _exec(
        self,
        args: List[str],
        cwd: Optional[str] = None,
        check: bool = True,
    ) -> subprocess.CompletedProcess:
        """
        Run a git command and return the raw completed process.

        Args:
            args: Arguments after the git executable
            cwd: Working directory
            check: Raise GitCommandError on non-zero exit

        Returns:
            CompletedProcess with bytes stdout/stderr
        """
        cmd = [self.executable] + args
        logger.debug(f"git {' '.join(args)} (in {cwd or os.getcwd()})")

        env = os.environ.copy()
        # Never block on a credential prompt
        env['GIT_TERMINAL_PROMPT'] = '0'

        try:
            result = subprocess.run(
                cmd,
                cwd=cwd,
                capture_output=True,
                timeout=self.timeout,
                env=env,
            )
        except subprocess.TimeoutExpired as e:
            raise GitCommandError(args, -1, f"timed out after {e.timeout}s") from e
        except OSError as e:
            raise GitCommandError(args, -1, str(e)) from e

        if check and result.returncode != 0:
            raise GitCommandError(
                args,
                result.returncode,
                result.stderr.decode('utf-8', errors='replace'),
            )
        return result

    def _run(self, args: List[str], cwd: Optional[str] = None, check: bool = True) -> str:
        """Run a git command and return its stripped text output."""
        result = self._exec(args, cwd=cwd, check=check)
        return result.stdout.decode('utf-8', errors='replace').strip()

    def toplevel(self, path: str) -> str:
        """
        Return the top-level directory of the work tree containing path.

        Raises:
            GitCommandError: if path is not inside a work tree
        """
        return self._run(['rev-parse', '--show-toplevel'], cwd=path)

    def clone(
        self,
        uri: str,
        path: str,
        no_checkout: bool = True,
        recurse_submodules: bool = True,
    ) -> None:
        """Clone uri into path, creating the parent directories."""
        Path(path).parent.mkdir(parents=True, exist_ok=True)

        args = ['clone']
        if recurse_submodules:
            args.append('--recurse-submodules')
        if no_checkout:
            args.append('--no-checkout')
        args += ['--', uri, path]
        self._exec(args)

    def fetch(self, path: str, remote: str = "origin", force: bool = True, tags: bool = True) -> None:
        """Fetch all refs from remote. Being up to date is not an error."""
        args = ['fetch']
        if force:
            args.append('--force')
        if tags:
            args.append('--tags')
        args.append(remote)
        self._exec(args, cwd=path)

    def rev_parse(self, path: str, revision: str) -> Optional[str]:
        """
        Resolve a revision expression to a commit id.

        Returns:
            Full commit id, or None if the revision does not name a commit
        """
        if not revision or revision.startswith('-'):
            return None
        result = self._exec(
            ['rev-parse', '--verify', '--quiet', f'{revision}^{{commit}}'],
            cwd=path,
            check=False,
        )
        if result.returncode != 0:
            return None
        return result.stdout.decode('utf-8', errors='replace').strip() or None

    def head(self, path: str) -> Optional[str]:
        """Get the commit id HEAD points at, None if there is none."""
        return self.rev_parse(path, 'HEAD')

    def checkout_detached(self, path: str, commit: str, force: bool = True) -> None:
        """Check out commit on a detached HEAD."""
        args = ['checkout', '--quiet']
        if force:
            args.append('--force')
        args += ['--detach', commit]
        self._exec(args, cwd=path)

    def reset_hard(self, path: str, commit: str) -> None:
        """Hard reset index and work tree to commit."""
        self._exec(['reset', '--quiet', '--hard', commit], cwd=path)

    def clean(self, path: str, directories: bool = True, ignored: bool = True) -> None:
        """Remove untracked files (and directories) from the work tree."""
        # Double force also removes nested repositories
        flags = '-ff'
        if directories:
            flags += 'd'
        if ignored:
            flags += 'x'
        self._exec(['clean', '--quiet', flags], cwd=path)

    def submodule_update(self, path: str, recursive: bool = True) -> None:
        """Sync submodule URLs, then initialize and update them."""
        sync = ['submodule', 'sync']
        update = ['submodule', 'update', '--init', '--force']
        if recursive:
            sync.append('--recursive')
            update.append('--recursive')
        self._exec(sync, cwd=path)
        self._exec(update, cwd=path)

    def tag_refs(self, path: str) -> List[GitTagRef]:
        """
        List every tag with its object type and peeled target.

        Returns:
            GitTagRef per entry under refs/tags, in ref-name order
        """
        fmt = '%(refname:strip=2)%00%(objecttype)%00%(objectname)%00%(*objecttype)%00%(*objectname)'
        output = self._run(['for-each-ref', f'--format={fmt}', 'refs/tags'], cwd=path)

        refs = []
        for line in output.split('\n'):
            if not line:
                continue
            parts = line.split('\x00')
            if len(parts) < 3:
                continue
            name, object_type, object_name = parts[0], parts[1], parts[2]
            target_type = parts[3] if len(parts) > 3 else ''
            target_name = parts[4] if len(parts) > 4 else ''
            refs.append(GitTagRef(
                name=name,
                object_type=object_type,
                object_name=object_name,
                target_type=target_type,
                target_name=target_name,
            ))
        return refs

    def commit(self, path: str, commit_hash: str) -> GitCommit:
        """Read a commit object verbatim."""
        result = self._exec(['cat-file', 'commit', commit_hash], cwd=path)
        return parse_commit_object(commit_hash, result.stdout)

    def show_blob(self, path: str, commit: str, file_path: str) -> Optional[bytes]:
        """
        Read a file's bytes from the tree of commit.

        Returns:
            File contents, or None if the file is not in that tree
        """
        result = self._exec(
            ['cat-file', 'blob', f'{commit}:{file_path}'],
            cwd=path,
            check=False,
        )
        if result.returncode != 0:
            return None
        return result.stdout
