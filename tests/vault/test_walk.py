"""Tests for vault walking and corpus loading."""

from vault_check.config import VaultSettings
from vault_check.vault import load_corpus, walk_markdown_files


def test_walk_order_and_filters(make_vault):
    root = make_vault(
        {
            "b/two.md": "two\n",
            "a/one.md": "one\n",
            "a/readme.txt": "not markdown\n",
            ".obsidian/workspace.md": "hidden\n",
            ".vault-check/notes.md": "index\n",
            "node_modules/pkg/README.md": "vendored\n",
            "top.md": "top\n",
        }
    )
    paths = [result.relative_path for result in walk_markdown_files(root)]
    assert paths == ["a/one.md", "b/two.md", "top.md"]


def test_gitignore_and_settings_ignore(make_vault):
    root = make_vault(
        {
            ".gitignore": "archive/\n",
            "archive/old.md": "old\n",
            "templates/person.md": "---\ntype: person\n---\n",
            "notes/keep.md": "keep\n",
        }
    )
    paths = [r.relative_path for r in walk_markdown_files(root, VaultSettings(ignore=["templates/"]))]
    assert paths == ["notes/keep.md"]


def test_parse_failures_are_collected(make_vault):
    root = make_vault(
        {
            "good.md": "---\ntype: page\n---\n",
            "bad.md": "---\ntype: [page\n---\n",
        }
    )
    corpus = load_corpus(root)

    assert [doc.file_path for doc in corpus.documents] == ["good.md"]
    assert [failure.relative_path for failure in corpus.failures] == ["bad.md"]
    assert "Invalid YAML" in corpus.failures[0].message
    assert corpus.all_paths() == ["bad.md", "good.md"]
    assert set(corpus.checksums) == {"bad.md", "good.md"}


def test_corpus_lookups(make_vault):
    root = make_vault(
        {
            "people/alice.md": "---\ntype: person\n---\n## Intro\n::section(title=Intro)\n",
        }
    )
    corpus = load_corpus(root)

    assert corpus.get("people/alice.md").file_object.id == "people/alice"
    assert corpus.get("people/missing.md") is None
    assert corpus.object_types() == {"people/alice": "person", "people/alice#intro": "section"}
    assert corpus.object_ids() == ["people/alice", "people/alice#intro"]


def test_undecodable_file_is_a_failure(make_vault):
    root = make_vault({"ok.md": "fine\n"})
    (root / "latin1.md").write_bytes("caf\xe9\n".encode("latin-1"))

    corpus = load_corpus(root)
    assert [f.relative_path for f in corpus.failures] == ["latin1.md"]
    assert corpus.failures[0].message.startswith("Could not read file")


def test_non_mapping_frontmatter_is_a_failure(make_vault):
    root = make_vault({"list.md": "---\n- just\n- a list\n---\nbody\n", "ok.md": "fine\n"})

    corpus = load_corpus(root)

    assert [doc.file_path for doc in corpus.documents] == ["ok.md"]
    assert [f.relative_path for f in corpus.failures] == ["list.md"]
    assert "must be a YAML dictionary" in corpus.failures[0].message


def test_crlf_document_keeps_line_endings(make_vault):
    root = make_vault({})
    (root / "win.md").write_bytes(b"---\r\ntype: page\r\ntitle: Win\r\n---\r\n# Win\r\n")

    [doc] = load_corpus(root).documents

    assert doc.raw_content == "---\r\ntype: page\r\ntitle: Win\r\n---\r\n# Win\r\n"
    assert doc.file_object.fields["title"].value == "Win"
    assert doc.file_object.field_line("title") == 3
