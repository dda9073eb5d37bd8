"""Tests for `vault-check schema rename type|field`."""

import json

import pytest
from typer.testing import CliRunner

from helpers import snapshot, write_files
from vault_check.cli.main import app as cli_app

runner = CliRunner()

SCHEMA = """
types:
  event:
    default_path: events/
    fields:
      title: { type: string }
      host: { type: ref, target: person }
  person:
    default_path: people/
    fields:
      name: { type: string }
"""


def invoke(root, *args):
    return runner.invoke(cli_app, ["--vault", str(root), "--log-level", "ERROR", *args])


@pytest.fixture
def vault(make_vault):
    return make_vault(
        {
            "schema.yaml": SCHEMA,
            "people/alice.md": "---\ntype: person\nname: Alice\n---\n",
            "events/offsite.md": "---\ntype: event\ntitle: Offsite\nhost: people/alice\n---\n",
            "notes/recap.md": "Notes from [[events/offsite]].\n",
        }
    )


class TestRenameType:
    def test_preview_json(self, vault):
        before = snapshot(vault)

        result = invoke(vault, "schema", "rename", "type", "event", "meeting", "--format", "json")
        assert result.exit_code == 0, result.output

        data = json.loads(result.stdout)
        assert data["preview"] is True
        assert data["old_name"] == "event"
        assert data["new_name"] == "meeting"
        assert data["default_path_rename_available"] is True
        assert data["default_path_old"] == "events/"
        assert data["default_path_new"] == "meetings/"
        assert data["conflicts"] == []
        assert snapshot(vault) == before

    def test_preview_text_offers_directory_rename(self, vault):
        result = invoke(vault, "schema", "rename", "type", "event", "meeting")
        assert result.exit_code == 0
        assert "Directory rename available" in result.output
        assert "--rename-default-path" in result.output

    def test_confirm(self, vault):
        result = invoke(vault, "schema", "rename", "type", "event", "meeting", "--confirm")
        assert result.exit_code == 0, result.output

        assert "type: meeting" in (vault / "events/offsite.md").read_text()
        assert (vault / "notes/recap.md").read_text() == "Notes from [[events/offsite]].\n"

    def test_confirm_with_directory_rename(self, vault):
        result = invoke(
            vault,
            "schema",
            "rename",
            "type",
            "event",
            "meeting",
            "--confirm",
            "--rename-default-path",
            "--format",
            "json",
        )
        assert result.exit_code == 0, result.output

        data = json.loads(result.stdout)
        assert data["preview"] is False
        assert data["default_path_renamed"] is True
        assert data["files_moved"] == [
            {
                "source": "events/offsite.md",
                "destination": "meetings/offsite.md",
                "source_id": "events/offsite",
                "dest_id": "meetings/offsite",
            }
        ]
        assert (vault / "notes/recap.md").read_text() == "Notes from [[meetings/offsite]].\n"
        assert invoke(vault, "check").exit_code == 0

    def test_unknown_type(self, vault):
        result = invoke(vault, "schema", "rename", "type", "call", "meeting")
        assert result.exit_code == 1
        assert "not found" in result.output


class TestRenameField:
    def test_preview_json(self, vault):
        before = snapshot(vault)

        result = invoke(vault, "schema", "rename", "field", "event", "host", "organizer", "--format", "json")
        assert result.exit_code == 0, result.output

        data = json.loads(result.stdout)
        assert data["preview"] is True
        assert data["type"] == "event"
        assert data["total_changes"] == 2
        assert snapshot(vault) == before

    def test_confirm(self, vault):
        result = invoke(vault, "schema", "rename", "field", "event", "host", "organizer", "--confirm")
        assert result.exit_code == 0, result.output

        assert "organizer: people/alice" in (vault / "events/offsite.md").read_text()
        assert "organizer:" in (vault / "schema.yaml").read_text()

    def test_conflict_exits_without_writing(self, vault):
        write_files(
            vault,
            {"events/retro.md": "---\ntype: event\nhost: people/alice\norganizer: people/alice\n---\n"},
        )
        before = snapshot(vault)

        result = invoke(
            vault, "schema", "rename", "field", "event", "host", "organizer", "--confirm", "--format", "json"
        )
        assert result.exit_code == 1

        data = json.loads(result.stdout)
        assert data["applied"] is False
        assert [c["file_path"] for c in data["conflicts"]] == ["events/retro.md"]
        assert snapshot(vault) == before

    def test_conflict_text_output(self, vault):
        write_files(vault, {"events/retro.md": "---\ntype: event\nhost: a\norganizer: b\n---\n"})

        result = invoke(vault, "schema", "rename", "field", "event", "host", "organizer")
        assert result.exit_code == 1
        assert "no files were changed" in result.output
        assert "events/retro.md" in result.output

    def test_reserved_name(self, vault):
        result = invoke(vault, "schema", "rename", "field", "event", "host", "tags")
        assert result.exit_code == 1
        assert "reserved" in result.output
