"""Tests for creating pages for missing references."""

import pytest
import yaml

from vault_check.file_utils import FileError
from vault_check.pages import create_missing_page, resolve_target_path
from vault_check.schema import parse_schema

SCHEMA = parse_schema(
    yaml.safe_load(
        """
types:
  person:
    default_path: people/
    fields:
      name: { type: string, required: true }
      email: { type: string }
  sneaky:
    default_path: ../outside/
"""
    )
)


class TestResolveTargetPath:
    def test_path_target_is_kept(self):
        assert resolve_target_path("clients/bob", "person", SCHEMA) == "clients/bob"

    def test_bare_target_goes_to_default_path(self):
        assert resolve_target_path("bob", "person", SCHEMA) == "people/bob"
        assert resolve_target_path("bob.md", "person", SCHEMA) == "people/bob"

    def test_no_default_path(self):
        assert resolve_target_path("bob", "page", SCHEMA) == "bob"

    def test_parent_segments_in_default_path_are_ignored(self):
        assert resolve_target_path("bob", "sneaky", SCHEMA) == "bob"


class TestCreateMissingPage:
    def test_creates_stub_with_required_fields(self, tmp_path):
        path = create_missing_page(tmp_path, SCHEMA, "Bob Jones", "person")

        assert path == (tmp_path / "people/bob-jones.md").resolve()
        assert path.read_text() == "---\ntype: person\nname: null\n---\n\n# Bob Jones\n"

    def test_existing_page(self, tmp_path):
        (tmp_path / "people").mkdir()
        (tmp_path / "people/bob.md").write_text("# Bob\n")
        with pytest.raises(FileError, match="already exists"):
            create_missing_page(tmp_path, SCHEMA, "people/bob", "person")

    def test_outside_vault(self, tmp_path):
        vault = tmp_path / "vault"
        vault.mkdir()
        with pytest.raises(ValueError, match="outside vault"):
            create_missing_page(vault, SCHEMA, "../escape", "person")
        assert not (tmp_path / "escape.md").exists()
