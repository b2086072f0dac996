"""Tests for the package.yml reader."""

import pytest

from buildsource.manifest import Package, ManifestError, parse_manifest, load_manifest


class TestParseManifest:
    """Tests for parse_manifest."""

    def test_basic(self):
        pkg = parse_manifest(b"name: nano\nversion: 5.5\nrelease: 132\nsource:\n  - https://x : abc\n")
        assert pkg == Package(name="nano", version="5.5", release=132)

    def test_version_kept_literal(self):
        """1.10 must not be read as the float 1.1."""
        pkg = parse_manifest("name: foo\nversion: 1.10\nrelease: 3\n")
        assert pkg.version == "1.10"

    def test_quoted_values(self):
        pkg = parse_manifest("name: foo\nversion: '2.0'\nrelease: \"7\"\n")
        assert pkg.version == "2.0"
        assert pkg.release == 7

    def test_name_optional(self):
        pkg = parse_manifest("version: 1\nrelease: 1\n")
        assert pkg.name == ""

    @pytest.mark.parametrize("data", [
        b"",
        b"- just\n- a list\n",
        b"name: foo\nrelease: 1\n",
        b"name: foo\nversion: 1.0\n",
        b"name: foo\nversion: 1.0\nrelease: abc\n",
        b"name: foo\nversion: 1.0\nrelease: -1\n",
        b"name: foo\nversion: [1, 2]\nrelease: 1\n",
        b"name: foo\nversion: 1.0\nrelease: 1\n  bad: indent\n",
        b"\xff\xfe\x00garbage",
    ])
    def test_invalid(self, data):
        with pytest.raises(ManifestError):
            parse_manifest(data)

    def test_manifest_error_is_value_error(self):
        assert issubclass(ManifestError, ValueError)

    def test_load_manifest(self, tmp_path):
        path = tmp_path / "package.yml"
        path.write_text("name: nano\nversion: 5.5\nrelease: 2\n")
        assert load_manifest(path).release == 2
