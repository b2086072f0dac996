"""
Infrastructure layer for buildsource.

Contains abstractions for external systems:
- GitClient: Git command execution

These provide clean interfaces that can be mocked for testing.
"""

from .git_client import GitClient, GitCommit, GitTagRef, GitCommandError

__all__ = [
    'GitClient',
    'GitCommit',
    'GitTagRef',
    'GitCommandError',
]
