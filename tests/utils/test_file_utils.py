"""Tests for file utilities."""

import os
from pathlib import Path

import frontmatter
import pytest

from vault_check.file_utils import (
    FileError,
    FileWriteError,
    ParseError,
    compute_checksum,
    dump_frontmatter,
    find_frontmatter,
    has_frontmatter,
    parse_frontmatter,
    read_file,
    write_file_atomic,
)


def test_compute_checksum():
    """Test checksum computation."""
    checksum = compute_checksum("test content")
    assert isinstance(checksum, str)
    assert len(checksum) == 64  # SHA-256 produces 64 char hex string
    assert compute_checksum(b"test content") == checksum


def test_write_file_atomic(tmp_path: Path):
    """Test atomic file writing."""
    test_file = tmp_path / "notes" / "test.md"
    content = "test content\r\nwith a windows line"

    write_file_atomic(test_file, content)
    assert test_file.exists()
    assert test_file.read_bytes() == content.encode("utf-8")

    # Temp file should be cleaned up
    assert [p.name for p in test_file.parent.iterdir()] == ["test.md"]


def test_write_file_atomic_error(tmp_path: Path):
    """Test atomic write error handling."""
    blocker = tmp_path / "blocker"
    blocker.write_text("a file, not a directory")

    with pytest.raises(FileWriteError):
        write_file_atomic(blocker / "test.md", "test content")


def test_write_file_atomic_keeps_mode(tmp_path: Path):
    """Rewriting an existing file keeps its permission bits."""
    test_file = tmp_path / "shared.md"
    test_file.write_text("before")
    test_file.chmod(0o640)

    write_file_atomic(test_file, "after")

    assert test_file.read_text() == "after"
    assert test_file.stat().st_mode & 0o777 == 0o640


def test_write_file_atomic_new_file_uses_umask(tmp_path: Path):
    """New files get the umask-derived mode, not mkstemp's 0600."""
    umask = os.umask(0o022)
    try:
        write_file_atomic(tmp_path / "new.md", "content")
    finally:
        os.umask(umask)
    assert (tmp_path / "new.md").stat().st_mode & 0o777 == 0o644


def test_read_file_keeps_crlf(tmp_path: Path):
    test_file = tmp_path / "windows.md"
    test_file.write_bytes(b"---\r\ntitle: Test\r\n---\r\nbody\r\n")

    content = read_file(test_file)

    assert content == "---\r\ntitle: Test\r\n---\r\nbody\r\n"
    write_file_atomic(test_file, content)
    assert test_file.read_bytes() == b"---\r\ntitle: Test\r\n---\r\nbody\r\n"


def test_read_file_missing(tmp_path: Path):
    with pytest.raises(FileError):
        read_file(tmp_path / "missing.md")


def test_has_frontmatter():
    """Test frontmatter detection."""
    # Valid frontmatter
    assert has_frontmatter("""---
title: Test
---
content""")

    # Just content
    assert not has_frontmatter("Just content")

    # Empty content
    assert not has_frontmatter("")

    # Just delimiter
    assert not has_frontmatter("---")

    # Delimiter not at start
    assert not has_frontmatter("""
Some text
---
title: Test
---""")

    # Invalid format
    assert not has_frontmatter("--title: test--")


def test_find_frontmatter_lines():
    block = find_frontmatter("---\ntype: person\nname: Alice\n---\n# Alice\n")
    assert block is not None
    assert block.start_line == 1
    assert block.end_line == 4
    assert block.raw == "type: person\nname: Alice"


def test_parse_frontmatter_crlf():
    assert parse_frontmatter("---\r\ntitle: Test\r\n---\r\nbody\r\n") == {"title": "Test"}


def test_parse_frontmatter_scalar_is_rejected():
    with pytest.raises(ParseError, match="must be a YAML dictionary"):
        parse_frontmatter("---\njust a sentence\n---\nbody\n")


def test_parse_frontmatter():
    """Test parsing frontmatter."""
    # Valid frontmatter
    content = """---
title: Test
tags:
  - a
  - b
---
content"""

    result = parse_frontmatter(content)
    assert result == {"title": "Test", "tags": ["a", "b"]}

    # Empty frontmatter
    content = """---
---
content"""
    assert parse_frontmatter(content) == {}

    # No frontmatter
    assert parse_frontmatter("Just content") == {}

    # Invalid YAML syntax
    with pytest.raises(ParseError) as exc:
        parse_frontmatter("""---
[: invalid yaml syntax :]
---
content""")
    assert "Invalid YAML in frontmatter" in str(exc.value)

    # Non-dict YAML content
    with pytest.raises(ParseError) as exc:
        parse_frontmatter("""---
- just
- a
- list
---
content""")
    assert "Frontmatter must be a YAML dictionary" in str(exc.value)

    # Incomplete frontmatter
    with pytest.raises(ParseError) as exc:
        parse_frontmatter("""---
title: Test""")
    assert "not closed" in str(exc.value)


def test_parse_frontmatter_suggests_missing_space():
    with pytest.raises(ParseError) as exc:
        parse_frontmatter("---\ntype: person\nname:Alice\nrole: [lead\n---\n")
    message = str(exc.value)
    assert "Invalid YAML in frontmatter" in message


def test_dump_frontmatter():
    post = frontmatter.Post("# Bob\n", type="person", name=None)
    assert dump_frontmatter(post) == "---\ntype: person\nname: null\n---\n\n# Bob\n"

    # No metadata: content only
    assert dump_frontmatter(frontmatter.Post("just text")) == "just text"
