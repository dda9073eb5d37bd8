"""Tests for the markdown document parser."""

import pytest

from helpers import write_files
from vault_check.file_utils import ParseError
from vault_check.markdown import parse_document
from vault_check.markdown.parser import frontmatter_field_lines
from vault_check.schema.types import ValueKind

MEETING_NOTES = """---
type: project
owner: [[people/alice]]
started: 2025-01-06
tags:
  - launch
  - 2025-10-24
---
# Apollo

Kickoff with [[people/bob|Bob]].

## Weekly Sync
::meeting(time=2025-02-01T10:00, attendees=[[[people/alice]]])

- @due(2025-02-07) send notes
- reach alice@example.com

### Action items
::task(id=ship-it, status=open)
@priority(high)

## Backlog
@someday

```
::task(status=ignored)
[[never/parsed]] @ignored
```
"""


@pytest.fixture
def doc():
    return parse_document(MEETING_NOTES, "projects/apollo.md")


class TestFileObject:
    def test_id_and_type(self, doc):
        obj = doc.file_object
        assert obj.id == "projects/apollo"
        assert obj.object_type == "project"
        assert "type" not in obj.fields

    def test_frontmatter_values(self, doc):
        fields = doc.file_object.fields
        assert fields["owner"].kind == ValueKind.REF
        assert fields["owner"].as_ref() == "people/alice"
        # PyYAML loads dates as datetime.date; they come back as ISO strings
        assert fields["started"].kind == ValueKind.DATE
        assert fields["started"].as_string() == "2025-01-06"
        assert [item.display() for item in fields["tags"].items()] == ["launch", "2025-10-24"]

    def test_field_lines(self, doc):
        obj = doc.file_object
        assert obj.field_lines["owner"] == (3, 3)
        assert obj.field_lines["tags"] == (5, 7)
        assert obj.field_line("missing") == 1
        assert doc.frontmatter_end == 8

    def test_raw_text_is_kept(self, doc):
        assert doc.file_object.fields["owner"].raw == "[[people/alice]]"


class TestEmbeddedObjects:
    def test_ids_follow_headings(self, doc):
        embedded = doc.embedded_objects()
        assert [(o.id, o.object_type) for o in embedded] == [
            ("projects/apollo#weekly-sync", "meeting"),
            ("projects/apollo#ship-it", "task"),
        ]

    def test_heading_metadata(self, doc):
        meeting = doc.embedded_objects()[0]
        assert meeting.heading == "Weekly Sync"
        assert meeting.heading_level == 2
        assert meeting.line_start == 13
        assert meeting.decl_line == 14
        assert meeting.field_line("time") == 14
        assert meeting.parent_id == "projects/apollo"

    def test_nested_parent(self, doc):
        task = doc.embedded_objects()[1]
        assert task.parent_id == "projects/apollo#weekly-sync"
        assert "id" not in task.fields

    def test_declaration_without_heading(self):
        doc = parse_document("Intro\n::meeting(time=09:00)\n", "notes/day.md")
        assert doc.embedded_objects()[0].id == "notes/day#meeting-2"


class TestTraitsAndRefs:
    def test_traits_are_scoped_to_sections(self, doc):
        traits = [(t.trait_type, t.raw_value, t.parent_object_id) for t in doc.traits]
        assert traits == [
            ("due", "2025-02-07", "projects/apollo#weekly-sync"),
            ("priority", "high", "projects/apollo#ship-it"),
            ("someday", None, "projects/apollo"),
        ]

    def test_trait_content(self, doc):
        due = doc.traits[0]
        assert due.content == "send notes"
        assert due.value.kind == ValueKind.DATE

    def test_body_refs(self, doc):
        assert [(r.target_raw, r.display_text, r.line) for r in doc.refs] == [("people/bob", "Bob", 11)]

    def test_fenced_code_is_skipped(self, doc):
        assert all(r.target_raw != "never/parsed" for r in doc.refs)
        assert all(t.trait_type != "ignored" for t in doc.traits)
        assert len(doc.embedded_objects()) == 2


class TestDefaults:
    def test_plain_page(self):
        doc = parse_document("# Just text\n", "notes/plain.md")
        assert doc.file_object.object_type == "page"
        assert doc.file_object.fields == {}
        assert doc.frontmatter_end == 0

    def test_daily_note(self):
        doc = parse_document("Standup notes\n", "daily/2025-03-14.md")
        assert doc.file_object.object_type == "date"

    def test_custom_daily_directory(self):
        doc = parse_document("Standup notes\n", "journal/2025-03-14.md", daily_directory="journal/")
        assert doc.file_object.object_type == "date"

    def test_windows_separators(self):
        doc = parse_document("x\n", "people\\alice.md")
        assert doc.file_path == "people/alice.md"
        assert doc.file_object.id == "people/alice"


class TestParseErrors:
    def test_unclosed_frontmatter(self):
        with pytest.raises(ParseError):
            parse_document("---\ntype: person\n", "people/broken.md")

    def test_invalid_yaml(self):
        with pytest.raises(ParseError):
            parse_document("---\ntype: [person\n---\n", "people/broken.md")


def test_frontmatter_field_lines():
    lines = ["---", "name: Alice", "roles:", "  - lead", "  - admin", "---"]
    assert frontmatter_field_lines(lines, 6) == {"name": (2, 2), "roles": (3, 5)}


def test_parse_from_disk(tmp_path):
    write_files(tmp_path, {"people/alice.md": "---\ntype: person\nname: Alice\n---\n"})
    content = (tmp_path / "people/alice.md").read_text()
    doc = parse_document(content, "people/alice.md")
    assert doc.file_object.fields["name"].as_string() == "Alice"


def test_value_columns():
    content = (
        "---\n"
        "status: 'open'  # set by hand\n"
        "tags:\n"
        "  - a\n"
        "---\n"
        "## Launch\n"
        "::task(priority='high', note=x)\n"
        "- @due( 2025-03-01 ) ship it\n"
    )
    doc = parse_document(content, "notes/plan.md")
    lines = content.split("\n")

    file_object = doc.file_object
    start, end = file_object.value_spans["status"]
    assert lines[1][start:end] == "'open'  # set by hand"
    assert "tags" not in file_object.value_spans

    [task] = doc.embedded_objects()
    start, end = task.value_spans["priority"]
    assert lines[6][start:end] == "'high'"

    [due] = doc.traits
    start, end = due.value_span
    assert lines[7][start:end] == "2025-03-01"
