# tests/test_groups.py
"""Tests for the instance group index."""

import json
import logging
import pytest
import tempfile
from pathlib import Path

from instreg.groups import GROUP_FILE, load_group_map, load_group_map_for_update, save_group_map


@pytest.fixture
def root_dir():
    """Create temporary instance root."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


def write_groups(root_dir: Path, content):
    """Write instgroups.json, JSON-encoding anything that isn't a string."""
    if not isinstance(content, (str, bytes)):
        content = json.dumps(content)
    path = root_dir / GROUP_FILE
    if isinstance(content, bytes):
        path.write_bytes(content)
    else:
        path.write_text(content)


class TestLoadGroupMap:
    """Test reading valid group files."""

    def test_single_group(self, root_dir):
        """Test the documented example file."""
        write_groups(root_dir, {"formatVersion": 1, "groups": {"G": {"instances": ["alpha"]}}})
        assert load_group_map(root_dir) == {"alpha": "G"}

    def test_keys_are_union_of_listed_ids(self, root_dir):
        """Test every listed ID maps to its enclosing group."""
        write_groups(root_dir, {
            "formatVersion": 1,
            "groups": {
                "Dev": {"instances": ["a", "b"]},
                "Prod": {"instances": ["c"]},
                "Empty": {"instances": []},
            },
        })
        assert load_group_map(root_dir) == {"a": "Dev", "b": "Dev", "c": "Prod"}

    def test_duplicate_id_resolves_to_one_group(self, root_dir):
        """Test an ID listed twice ends up in exactly one of its groups."""
        write_groups(root_dir, {
            "formatVersion": 1,
            "groups": {
                "One": {"instances": ["dup"]},
                "Two": {"instances": ["dup"]},
            },
        })
        group_map = load_group_map(root_dir)
        assert list(group_map) == ["dup"]
        assert group_map["dup"] in ("One", "Two")

    def test_numeric_string_version(self, root_dir):
        """Test a numeric string formatVersion is accepted."""
        write_groups(root_dir, {"formatVersion": "1", "groups": {"G": {"instances": ["x"]}}})
        assert load_group_map(root_dir) == {"x": "G"}

    def test_extra_fields_ignored(self, root_dir):
        """Test unknown fields do not affect loading."""
        write_groups(root_dir, {
            "formatVersion": 1,
            "comment": "hello",
            "groups": {"G": {"instances": ["x"], "hidden": True}},
        })
        assert load_group_map(root_dir) == {"x": "G"}


class TestLoadGroupMapDegrades:
    """Test that bad group files degrade to an empty mapping."""

    def test_missing_file(self, root_dir, caplog):
        """Test a missing file is silent."""
        with caplog.at_level(logging.DEBUG, logger="instreg.groups"):
            assert load_group_map(root_dir) == {}
        assert caplog.records == []

    def test_missing_root(self, root_dir):
        """Test a nonexistent root directory."""
        assert load_group_map(root_dir / "nope") == {}

    @pytest.mark.parametrize("content", [
        "",
        "not json at all",
        "{\"formatVersion\": 1,",
        b"\xff\xfe\x00garbage",
    ])
    def test_unparseable_content_warns(self, root_dir, caplog, content):
        """Test empty, non-JSON and badly encoded files."""
        write_groups(root_dir, content)
        with caplog.at_level(logging.WARNING, logger="instreg.groups"):
            assert load_group_map(root_dir) == {}
        assert any("Failed to parse" in r.message for r in caplog.records)

    def test_array_root_warns(self, root_dir, caplog):
        """Test a JSON array at the root."""
        write_groups(root_dir, [{"formatVersion": 1}])
        with caplog.at_level(logging.WARNING, logger="instreg.groups"):
            assert load_group_map(root_dir) == {}
        assert any("Root entry should be an object" in r.message for r in caplog.records)

    def test_scalar_root(self, root_dir):
        """Test a JSON scalar at the root."""
        write_groups(root_dir, "42")
        assert load_group_map(root_dir) == {}

    @pytest.mark.parametrize("version", [0, 2, "two", None, True, 1.5])
    def test_wrong_version_is_silent(self, root_dir, caplog, version):
        """Test unsupported format versions give no groups and no warning."""
        write_groups(root_dir, {"formatVersion": version, "groups": {"G": {"instances": ["x"]}}})
        with caplog.at_level(logging.DEBUG, logger="instreg.groups"):
            assert load_group_map(root_dir) == {}
        assert caplog.records == []

    def test_absent_version_is_silent(self, root_dir, caplog):
        """Test a file without formatVersion."""
        write_groups(root_dir, {"groups": {"G": {"instances": ["x"]}}})
        with caplog.at_level(logging.DEBUG, logger="instreg.groups"):
            assert load_group_map(root_dir) == {}
        assert caplog.records == []

    def test_groups_as_array_warns(self, root_dir, caplog):
        """Test 'groups' given as an array."""
        write_groups(root_dir, {"formatVersion": 1, "groups": [{"instances": ["x"]}]})
        with caplog.at_level(logging.WARNING, logger="instreg.groups"):
            assert load_group_map(root_dir) == {}
        assert any("'groups' should be an object" in r.message for r in caplog.records)

    def test_groups_missing(self, root_dir):
        """Test a file without 'groups'."""
        write_groups(root_dir, {"formatVersion": 1})
        assert load_group_map(root_dir) == {}


class TestMalformedGroupEntries:
    """Test that bad group entries are skipped individually."""

    def test_non_object_group_skipped(self, root_dir, caplog):
        """Test a group that is not an object."""
        write_groups(root_dir, {
            "formatVersion": 1,
            "groups": {"Bad": ["x"], "Good": {"instances": ["y"]}},
        })
        with caplog.at_level(logging.WARNING, logger="instreg.groups"):
            assert load_group_map(root_dir) == {"y": "Good"}
        assert any("Group 'Bad'" in r.message for r in caplog.records)

    def test_group_without_instances_array_skipped(self, root_dir, caplog):
        """Test a group whose 'instances' is missing or not an array."""
        write_groups(root_dir, {
            "formatVersion": 1,
            "groups": {
                "NoList": {},
                "StrList": {"instances": "x"},
                "Good": {"instances": ["y"]},
            },
        })
        with caplog.at_level(logging.WARNING, logger="instreg.groups"):
            assert load_group_map(root_dir) == {"y": "Good"}
        messages = [r.message for r in caplog.records]
        assert any("'NoList'" in m for m in messages)
        assert any("'StrList'" in m for m in messages)

    def test_non_string_ids_map_to_empty_id(self, root_dir):
        """Test non-string entries do not crash loading."""
        write_groups(root_dir, {
            "formatVersion": 1,
            "groups": {"G": {"instances": ["x", 5, None]}},
        })
        assert load_group_map(root_dir) == {"x": "G", "": "G"}


class TestSaveGroupMap:
    """Test writing the group index."""

    def test_save_then_load(self, root_dir):
        """Test a saved map reads back unchanged."""
        save_group_map(root_dir, {"a": "Dev", "b": "Dev", "c": "Prod"})
        assert load_group_map(root_dir) == {"a": "Dev", "b": "Dev", "c": "Prod"}

    def test_saved_document_shape(self, root_dir):
        """Test the written document layout."""
        save_group_map(root_dir, {"b": "Dev", "a": "Dev", "u": None})
        data = json.loads((root_dir / GROUP_FILE).read_text())
        assert data == {"formatVersion": 1, "groups": {"Dev": {"instances": ["a", "b"]}}}


class TestByteOrderMark:
    """Test group files written with a UTF-8 byte order mark."""

    def test_bom_accepted(self, root_dir):
        content = json.dumps({"formatVersion": 1, "groups": {"G": {"instances": ["x"]}}})
        write_groups(root_dir, b"\xef\xbb\xbf" + content.encode("utf-8"))
        assert load_group_map(root_dir) == {"x": "G"}


class TestLoadGroupMapForUpdate:
    """Test reading the group index before rewriting it."""

    def test_missing_file_is_empty(self, root_dir):
        assert load_group_map_for_update(root_dir) == {}

    def test_clean_file(self, root_dir):
        write_groups(root_dir, {"formatVersion": 1, "groups": {"G": {"instances": ["x"]}}})
        assert load_group_map_for_update(root_dir) == {"x": "G"}

    @pytest.mark.parametrize("content", [
        "{broken",
        [1, 2],
        {"formatVersion": 2, "groups": {"Keep": {"instances": ["a"]}}},
        {"formatVersion": 1, "groups": []},
        {"formatVersion": 1, "groups": {"Bad": ["a"], "Good": {"instances": ["b"]}}},
        {"formatVersion": 1, "groups": {"G": {"instances": ["a", 7]}}},
    ])
    def test_rejected_file_is_none(self, root_dir, content):
        """Test any file that would lose data on rewrite is refused."""
        write_groups(root_dir, content)
        assert load_group_map_for_update(root_dir) is None
