"""Utilities for file operations."""

import hashlib
import os
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Union

import frontmatter
import yaml
from loguru import logger

from vault_check.utils import FilePath

FRONTMATTER_DELIMITER = "---"


class FileError(Exception):
    """Base exception for file operations."""

    pass


class FileWriteError(FileError):
    """Raised when file operations fail."""

    pass


class ParseError(FileError):
    """Raised when parsing file content fails."""

    pass


@dataclass
class FrontmatterBlock:
    """Location of a frontmatter block inside a document.

    Line numbers are 1-indexed. start_line is the opening '---' (always 1),
    end_line is the closing '---'.
    """

    raw: str
    start_line: int
    end_line: int


def compute_checksum(content: Union[str, bytes]) -> str:
    """
    Compute SHA-256 checksum of content.

    Args:
        content: Content to hash (either text string or bytes)

    Returns:
        SHA-256 hex digest
    """
    if isinstance(content, str):
        content = content.encode()
    return hashlib.sha256(content).hexdigest()


def read_file(path: FilePath) -> str:
    """
    Read a text file without newline translation.

    CRLF line endings survive the read, so a later write of the same text
    round-trips byte for byte.

    Raises:
        FileError: If the file cannot be read
    """
    try:
        with open(path, encoding="utf-8", newline="") as f:
            return f.read()
    except OSError as e:
        raise FileError(f"Failed to read file {path}: {e}") from e


def write_file_atomic(path: FilePath, content: str) -> None:
    """
    Write file with atomic operation using temporary file.

    The content is written to a temp file in the target directory and then
    renamed over the target, so readers never see a partially written file.
    An existing target keeps its permission bits.

    Args:
        path: Target file path (Path or string)
        content: Content to write

    Raises:
        FileWriteError: If write operation fails
    """
    path_obj = Path(path)
    temp_path: Optional[str] = None

    try:
        path_obj.parent.mkdir(parents=True, exist_ok=True)
        fd, temp_path = tempfile.mkstemp(dir=str(path_obj.parent), suffix=".tmp")
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
            f.write(content)
        if path_obj.exists():
            shutil.copymode(path_obj, temp_path)
        else:
            # mkstemp creates 0600; new files get the usual umask-derived mode
            umask = os.umask(0)
            os.umask(umask)
            os.chmod(temp_path, 0o666 & ~umask)
        os.replace(temp_path, path_obj)
        logger.debug("Wrote file atomically", path=str(path_obj), content_length=len(content))
    except OSError as e:
        if temp_path is not None:
            Path(temp_path).unlink(missing_ok=True)
        logger.error("Failed to write file", path=str(path_obj), error=str(e))
        raise FileWriteError(f"Failed to write file {path}: {e}") from e


def has_frontmatter(content: str) -> bool:
    """
    Check if content starts with a delimited frontmatter block.

    Args:
        content: Content to check

    Returns:
        True if the first line is '---' and a closing '---' line follows
    """
    return find_frontmatter(content) is not None


def find_frontmatter(content: str) -> Optional[FrontmatterBlock]:
    """Locate the leading frontmatter block without parsing it."""
    if not content:
        return None

    lines = content.split("\n")
    if lines[0].rstrip() != FRONTMATTER_DELIMITER:
        return None

    for idx in range(1, len(lines)):
        if lines[idx].rstrip() == FRONTMATTER_DELIMITER:
            return FrontmatterBlock(
                raw="\n".join(lines[1:idx]),
                start_line=1,
                end_line=idx + 1,
            )
    return None


def parse_frontmatter(content: str) -> Dict[str, Any]:
    """
    Parse YAML frontmatter from content.

    Args:
        content: Content with YAML frontmatter

    Returns:
        Dictionary of frontmatter values ({} when there is no frontmatter)

    Raises:
        ParseError: If frontmatter is invalid or not a mapping
    """
    block = find_frontmatter(content)
    if block is None:
        if content.startswith(FRONTMATTER_DELIMITER):
            raise ParseError("Frontmatter is not closed with '---'")
        return {}

    try:
        metadata = yaml.safe_load(block.raw)
    except yaml.YAMLError as e:
        error_msg = str(e)
        # Common mistake: 'key:value' without a space
        if "could not find expected ':'" in error_msg:
            for line in block.raw.split("\n"):
                if ":" in line and ": " not in line and not line.rstrip().endswith(":"):
                    fixed_line = line.replace(":", ": ", 1)
                    raise ParseError(
                        f"Invalid YAML in frontmatter: {error_msg}\n\n"
                        f"Suggestions:\n  Missing space after colon - problem line: "
                        f"'{line.strip()}'\n  Try: '{fixed_line.strip()}'"
                    ) from e
        raise ParseError(f"Invalid YAML in frontmatter: {error_msg}") from e
    except ValueError as e:
        raise ParseError(f"Invalid frontmatter: {e}") from e

    if metadata is None:
        return {}
    if not isinstance(metadata, dict):
        raise ParseError("Frontmatter must be a YAML dictionary")
    return dict(metadata)


def dump_frontmatter(post: frontmatter.Post) -> str:
    """
    Serialize frontmatter.Post to markdown with block-style YAML.

    Args:
        post: frontmatter.Post object to serialize

    Returns:
        String containing markdown with YAML frontmatter
    """
    if not post.metadata:
        return post.content

    yaml_str = yaml.dump(
        post.metadata,
        sort_keys=False,
        allow_unicode=True,
        default_flow_style=False,
        Dumper=yaml.SafeDumper,
    )

    if post.content:
        return f"---\n{yaml_str}---\n\n{post.content}"
    return f"---\n{yaml_str}---\n"
