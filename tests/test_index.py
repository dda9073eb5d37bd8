"""Tests for aliases and the staleness manifest."""

import json

from vault_check.index import (
    MANIFEST_FILE,
    check_staleness,
    collect_aliases,
    load_manifest,
    write_manifest,
)
from vault_check.markdown import parse_document


def _doc(path, content):
    return parse_document(content, path)


class TestAliases:
    def test_collect(self):
        docs = [
            _doc("people/alice.md", "---\nalias: Ally\naliases: [A., ' ']\n---\n"),
            _doc("notes/team.md", "## Bob\n::person(name=Bob, alias=Bobby)\n"),
        ]
        table = collect_aliases(docs)
        assert table.aliases == {"A.": "people/alice", "Ally": "people/alice", "Bobby": "notes/team#bob"}
        assert table.duplicates == []

    def test_duplicates_map_to_first_claimant(self):
        docs = [
            _doc("people/zoe.md", "---\nalias: Z\n---\n"),
            _doc("people/zack.md", "---\nalias: Z\n---\n"),
        ]
        table = collect_aliases(docs)
        assert table.aliases["Z"] == "people/zack"
        assert table.duplicates[0].object_ids == ["people/zack", "people/zoe"]


class TestManifest:
    def test_round_trip(self, make_vault, load_vault):
        root = make_vault({"people/alice.md": "# Alice\n"})
        _, corpus = load_vault(root)
        index_dir = root / ".vault-check"

        manifest = write_manifest(index_dir, corpus)

        assert (index_dir / MANIFEST_FILE).exists()
        loaded = load_manifest(index_dir)
        assert loaded.files == manifest.files
        assert list(loaded.files) == ["people/alice.md"]

    def test_staleness(self, make_vault, load_vault):
        root = make_vault({"a.md": "A\n", "b.md": "B\n", "c.md": "C\n"})
        index_dir = root / ".vault-check"
        _, corpus = load_vault(root)
        write_manifest(index_dir, corpus)

        (root / "a.md").write_text("A changed\n")
        (root / "b.md").unlink()
        (root / "d.md").write_text("D\n")
        _, corpus = load_vault(root)

        info = check_staleness(index_dir, corpus)
        assert info.is_stale
        assert info.modified == ["a.md"]
        assert info.removed == ["b.md"]
        assert info.added == ["d.md"]
        assert info.stale_files == ["a.md", "b.md", "d.md"]

    def test_fresh_index(self, make_vault, load_vault):
        root = make_vault({"a.md": "A\n"})
        _, corpus = load_vault(root)
        write_manifest(root / ".vault-check", corpus)
        assert not check_staleness(root / ".vault-check", corpus).is_stale

    def test_no_manifest(self, make_vault, load_vault):
        root = make_vault({"a.md": "A\n"})
        _, corpus = load_vault(root)
        info = check_staleness(root / ".vault-check", corpus)
        assert info.has_manifest is False
        assert not info.is_stale

    def test_unreadable_manifest_is_ignored(self, tmp_path):
        (tmp_path / MANIFEST_FILE).write_text(json.dumps({"version": "x", "files": []}))
        assert load_manifest(tmp_path) is None
