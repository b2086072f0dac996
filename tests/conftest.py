"""
Shared fixtures: throwaway git repositories built with the real git binary.
"""

import os
import shutil
import subprocess
from pathlib import Path
from typing import Dict, Optional

import pytest

DEFAULT_AUTHOR = ("Jane Doe", "jane@example.com")


def manifest_text(version: str, release: int, name: str = "nano") -> str:
    return f"name: {name}\nversion: {version}\nrelease: {release}\n"


class GitRepo:
    """A scratch repository with helpers for committing and tagging."""

    def __init__(self, path: Path):
        self.path = Path(path)
        self.path.mkdir(parents=True, exist_ok=True)
        self.git("init", "-q")
        self.git("symbolic-ref", "HEAD", "refs/heads/main")

    def git(self, *args: str, env: Optional[Dict[str, str]] = None) -> str:
        full_env = os.environ.copy()
        if env:
            full_env.update(env)
        result = subprocess.run(
            ["git", *args],
            cwd=self.path,
            capture_output=True,
            text=True,
            check=True,
            env=full_env,
        )
        return result.stdout.strip()

    def commit(
        self,
        files: Dict[str, Optional[str]],
        message: str,
        timestamp: int = 1614816000,
        author=DEFAULT_AUTHOR,
    ) -> str:
        """Write (or delete, for None) files and commit them. Returns the commit id."""
        for name, content in files.items():
            target = self.path / name
            if content is None:
                if target.exists():
                    self.git("rm", "-q", name)
                continue
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content)
            self.git("add", name)

        date = f"@{timestamp} +0000"
        self.git(
            "commit", "-q", "--allow-empty", "-m", message,
            env={
                "GIT_AUTHOR_NAME": author[0],
                "GIT_AUTHOR_EMAIL": author[1],
                "GIT_AUTHOR_DATE": date,
                "GIT_COMMITTER_DATE": date,
            },
        )
        return self.git("rev-parse", "HEAD")

    def tag(self, name: str, annotated: bool = False, target: str = "HEAD") -> None:
        if annotated:
            self.git("tag", "-a", name, "-m", f"Release {name}", target)
        else:
            self.git("tag", name, target)

    def release(
        self,
        tag: str,
        version: str,
        release: int,
        timestamp: int,
        message: Optional[str] = None,
        annotated: bool = False,
    ) -> str:
        """Commit a package.yml bump and tag it."""
        commit = self.commit(
            {"package.yml": manifest_text(version, release)},
            message or f"Update to {version} (release {release})",
            timestamp=timestamp,
        )
        self.tag(tag, annotated=annotated)
        return commit


@pytest.fixture
def git_env(tmp_path, monkeypatch):
    """Isolate git from the user's configuration."""
    if shutil.which("git") is None:
        pytest.skip("git executable not found")
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    monkeypatch.setenv("GIT_AUTHOR_NAME", DEFAULT_AUTHOR[0])
    monkeypatch.setenv("GIT_AUTHOR_EMAIL", DEFAULT_AUTHOR[1])
    monkeypatch.setenv("GIT_COMMITTER_NAME", "Build Bot")
    monkeypatch.setenv("GIT_COMMITTER_EMAIL", "bot@example.com")
    for name in ("BUILDSOURCE_CONFIG", "GIT_DIR", "GIT_WORK_TREE"):
        monkeypatch.delenv(name, raising=False)
    return home


@pytest.fixture
def make_repo(tmp_path, git_env):
    """Factory for extra scratch repositories under tmp_path."""
    def factory(relative_path: str) -> GitRepo:
        return GitRepo(tmp_path / relative_path)
    return factory


@pytest.fixture
def recipe_repo(tmp_path, git_env):
    """An empty recipe repository."""
    return GitRepo(tmp_path / "recipes" / "nano")


@pytest.fixture
def origin_repo(tmp_path, git_env):
    """A small upstream repository with one tagged commit on main."""
    repo = GitRepo(tmp_path / "upstream" / "project")
    repo.commit({"README": "first\n", ".gitignore": "*.o\n"}, "Initial commit", timestamp=1600000000)
    repo.tag("v1.0", annotated=True)
    return repo
