"""Tests for mining package history from recipe repository tags."""

import logging
from unittest.mock import MagicMock

import pytest
from lxml import etree

from buildsource.exit_codes import HistoryOpenError, NoUsableHistoryError
from buildsource.infra.git_client import GitClient, GitTagRef
from buildsource.services.changelog_service import render_history_xml
from buildsource.services.history_service import HistoryMiner, build_package_history


def manifest_path(repo):
    return str(repo.path / "package.yml")


class TestHistoryMiner:
    """Tests for HistoryMiner against real recipe repositories."""

    def test_version_changed_immediately(self, recipe_repo):
        """The newest entry carries a new version."""
        recipe_repo.release("v1", "1.0", 1, 100)
        recipe_repo.release("v2", "1.0", 2, 200)
        recipe_repo.release("v3", "1.1", 3, 300)

        history = build_package_history(manifest_path(recipe_repo))
        assert [u.tag for u in history] == ["v3", "v2", "v1"]
        assert [u.release for u in history] == [3, 2, 1]
        assert [u.version for u in history] == ["1.1", "1.0", "1.0"]
        assert history.last_version_timestamp() == 300

    def test_whole_history_same_version(self, recipe_repo):
        """Release-only bumps walk back to the oldest entry."""
        recipe_repo.release("v1", "1.0", 1, 100)
        recipe_repo.release("v2", "1.0", 2, 200)
        recipe_repo.release("v3", "1.0", 3, 300)

        history = build_package_history(manifest_path(recipe_repo))
        assert history.last_version_timestamp() == 100

    def test_capped_at_ten(self, recipe_repo):
        """Fifteen tags give the ten newest releases."""
        for release in range(1, 16):
            recipe_repo.release(f"r{release}", f"1.{release}", release, 1000 + release)

        history = build_package_history(manifest_path(recipe_repo))
        assert len(history) == 10
        assert [u.release for u in history] == list(range(15, 5, -1))

        root = etree.fromstring(render_history_xml(history))
        releases = [update.get("release") for update in root.findall("Update")]
        assert releases == [str(r) for r in range(15, 5, -1)]

    def test_custom_cap(self, recipe_repo):
        for release in range(1, 5):
            recipe_repo.release(f"r{release}", "1.0", release, 1000 + release)
        history = build_package_history(manifest_path(recipe_repo), max_entries=2)
        assert [u.release for u in history] == [4, 3]

    def test_tag_without_manifest_skipped(self, recipe_repo):
        """Tags whose tree lacks the manifest are dropped."""
        recipe_repo.commit({"README": "hello\n"}, "Initial import", timestamp=50)
        recipe_repo.tag("v0")
        recipe_repo.release("v1", "1.0", 1, 100)

        history = build_package_history(manifest_path(recipe_repo))
        assert [u.tag for u in history] == ["v1"]

    def test_malformed_manifest_skipped(self, recipe_repo, caplog):
        recipe_repo.release("v1", "1.0", 1, 100)
        recipe_repo.commit({"package.yml": "version: [unterminated\n"}, "Broken", timestamp=150)
        recipe_repo.tag("v1b")
        recipe_repo.commit({"package.yml": "version: 1.0\nrelease: two\n"}, "Bad release", timestamp=160)
        recipe_repo.tag("v1c")

        caplog.set_level(logging.DEBUG, logger="buildsource")
        history = build_package_history(manifest_path(recipe_repo))
        assert [u.tag for u in history] == ["v1"]
        assert "v1b" in caplog.text

    def test_annotated_tags(self, recipe_repo):
        """Annotated tags are peeled to their commit."""
        commit = recipe_repo.release("v1", "2.0", 1, 100, annotated=True)
        history = build_package_history(manifest_path(recipe_repo))
        update = history.updates[0]
        assert update.commit == commit
        assert update.tag == "v1"
        assert update.author == "Jane Doe"
        assert update.author_email == "jane@example.com"
        assert update.timestamp == 100

    def test_tree_tag_skipped(self, recipe_repo):
        recipe_repo.release("v1", "1.0", 1, 100)
        tree = recipe_repo.git("rev-parse", "HEAD^{tree}")
        recipe_repo.tag("zz-tree", target=tree)

        history = build_package_history(manifest_path(recipe_repo))
        assert [u.tag for u in history] == ["v1"]

    def test_security_updates(self, recipe_repo):
        recipe_repo.release("v1", "1.0", 1, 100)
        recipe_repo.release("v2", "1.0", 2, 200, message="Patch CVE-2021-3156\n\nUpstream fix")

        history = build_package_history(manifest_path(recipe_repo))
        flags = {u.tag: u.is_security for u in history}
        assert flags == {"v2": True, "v1": False}
        assert history.updates[0].body.startswith("Patch CVE-2021-3156")

    def test_equal_releases_in_reverse_tag_order(self, recipe_repo):
        recipe_repo.release("alpha", "1.0", 1, 100)
        recipe_repo.tag("beta")

        history = build_package_history(manifest_path(recipe_repo))
        assert [u.tag for u in history] == ["beta", "alpha"]

    def test_version_kept_as_string(self, recipe_repo):
        recipe_repo.release("v1", "1.10", 1, 100)
        history = build_package_history(manifest_path(recipe_repo))
        assert history.updates[0].version == "1.10"

    def test_manifest_path_recorded(self, recipe_repo):
        recipe_repo.release("v1", "1.0", 1, 100)
        path = manifest_path(recipe_repo)
        assert build_package_history(path).manifest_path == path


class TestHistoryErrors:
    """Tests for unusable or unopenable repositories."""

    def test_no_tags(self, recipe_repo):
        recipe_repo.commit({"package.yml": "version: 1.0\nrelease: 1\n"}, "Initial")
        with pytest.raises(NoUsableHistoryError, match="no tags"):
            build_package_history(manifest_path(recipe_repo))

    def test_no_usable_tags(self, recipe_repo):
        recipe_repo.commit({"README": "hi\n"}, "Initial")
        recipe_repo.tag("v0")
        with pytest.raises(NoUsableHistoryError):
            build_package_history(manifest_path(recipe_repo))

    def test_not_a_repository(self, tmp_path, git_env):
        plain = tmp_path / "plain"
        plain.mkdir()
        with pytest.raises(HistoryOpenError):
            build_package_history(str(plain / "package.yml"))

    def test_missing_directory(self, tmp_path, git_env):
        with pytest.raises(HistoryOpenError):
            build_package_history(str(tmp_path / "missing" / "package.yml"))

    def test_manifest_in_subdirectory(self, recipe_repo):
        """The manifest directory must be the top of the work tree."""
        recipe_repo.commit({"sub/package.yml": "version: 1.0\nrelease: 1\n"}, "Nested")
        recipe_repo.tag("v1")
        with pytest.raises(HistoryOpenError, match="top level"):
            build_package_history(str(recipe_repo.path / "sub" / "package.yml"))

    def test_unknown_object_type(self, tmp_path):
        git = MagicMock(spec=GitClient)
        git.toplevel.return_value = str(tmp_path)
        git.tag_refs.return_value = [GitTagRef(name="odd", object_type="gizmo", object_name="abc")]

        with pytest.raises(HistoryOpenError, match="Internal git error"):
            HistoryMiner(git_client=git).mine(str(tmp_path / "package.yml"))
        git.commit.assert_not_called()

    def test_unparsable_commit_skipped(self, tmp_path):
        """A tag whose commit has a broken author line is dropped, not fatal."""
        from datetime import datetime, timezone
        from buildsource.infra.git_client import GitCommit

        good = GitCommit(
            hash="a" * 40,
            author="A",
            email="a@example.com",
            time=datetime(2021, 1, 1, tzinfo=timezone.utc),
            message="Update",
        )

        def read_commit(path, commit_hash):
            if commit_hash == "b" * 40:
                raise ValueError("malformed signature")
            return good

        git = MagicMock(spec=GitClient)
        git.toplevel.return_value = str(tmp_path)
        git.tag_refs.return_value = [
            GitTagRef(name="v1", object_type="commit", object_name="a" * 40),
            GitTagRef(name="v2", object_type="commit", object_name="b" * 40),
        ]
        git.commit.side_effect = read_commit
        git.show_blob.return_value = b"version: 1.0\nrelease: 1\n"

        history = HistoryMiner(git_client=git).mine(str(tmp_path / "package.yml"))
        assert [u.tag for u in history] == ["v1"]

    def test_custom_manifest_parser(self, tmp_path):
        """The miner hands raw blobs to its parser."""
        from datetime import datetime, timezone
        from buildsource.infra.git_client import GitCommit
        from buildsource.manifest import Package

        git = MagicMock(spec=GitClient)
        git.toplevel.return_value = str(tmp_path)
        git.tag_refs.return_value = [GitTagRef(name="v1", object_type="commit", object_name="c" * 40)]
        git.commit.return_value = GitCommit(
            hash="c" * 40,
            author="A",
            email="a@example.com",
            time=datetime(2021, 1, 1, tzinfo=timezone.utc),
            message="msg",
        )
        git.show_blob.return_value = b"anything"
        parser = MagicMock(return_value=Package(name="x", version="9", release=4))

        history = HistoryMiner(git_client=git, manifest_parser=parser).mine(str(tmp_path / "recipe.yml"))
        parser.assert_called_once_with(b"anything")
        git.show_blob.assert_called_once_with(str(tmp_path), "c" * 40, "recipe.yml")
        assert history.updates[0].release == 4
