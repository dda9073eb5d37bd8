"""vault-check file utilities."""

from .gitignore import should_ignore_file, get_gitignore_patterns, build_gitignore_spec
from .file_utils import (
    FileError,
    FileWriteError,
    FrontmatterBlock,
    ParseError,
    compute_checksum,
    dump_frontmatter,
    find_frontmatter,
    has_frontmatter,
    parse_frontmatter,
    read_file,
    write_file_atomic,
)

__all__ = [
    "FileError",
    "FileWriteError",
    "FrontmatterBlock",
    "ParseError",
    "compute_checksum",
    "dump_frontmatter",
    "find_frontmatter",
    "has_frontmatter",
    "parse_frontmatter",
    "read_file",
    "write_file_atomic",
    "should_ignore_file",
    "get_gitignore_patterns",
    "build_gitignore_spec",
]
