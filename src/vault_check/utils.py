"""Shared helpers: logging setup, slugs and object ID conversions."""

import re
import sys
from pathlib import Path, PurePosixPath
from typing import Optional, Union

from loguru import logger
from unidecode import unidecode

FilePath = Union[Path, str]


def setup_logging(log_level: str = "INFO", log_file: Optional[FilePath] = None) -> None:
    """Configure loguru sinks for the CLI.

    Removes the default handler so repeated calls don't duplicate output.

    Args:
        log_level: Minimum level for stderr output
        log_file: Optional file path for a rotating log sink
    """
    logger.remove()
    logger.add(sys.stderr, level=log_level, colorize=True, backtrace=False)

    if log_file:
        logger.add(
            str(log_file),
            level="DEBUG",
            rotation="10 MB",
            retention="5 days",
            enqueue=False,
        )


def slugify(text: str) -> str:
    """Convert heading or title text to a lowercase, dash-separated slug.

    Examples:
        "Team Sync"         -> "team-sync"
        "Café Meeting #2"   -> "cafe-meeting-2"
    """
    text = unidecode(text).lower()
    text = re.sub(r"[^a-z0-9\s_-]", "", text)
    text = re.sub(r"[\s_]+", "-", text)
    text = re.sub(r"-{2,}", "-", text)
    return text.strip("-")


def slugify_path(path: str) -> str:
    """Slugify each segment of a slash-separated path."""
    return "/".join(slugify(part) or part for part in path.split("/"))


def file_path_to_object_id(relative_path: str) -> str:
    """Derive an object ID from a vault-relative file path.

    The ID is the POSIX path without the .md extension.
    """
    posix = PurePosixPath(relative_path.replace("\\", "/"))
    if posix.suffix == ".md":
        posix = posix.with_suffix("")
    return str(posix)


def object_id_to_file_path(object_id: str) -> str:
    """Inverse of file_path_to_object_id for file-level objects."""
    base = object_id.split("#", 1)[0]
    return f"{base}.md"


def short_name(object_id: str) -> str:
    """Last path segment of an object ID (embedded fragment kept)."""
    return object_id.rsplit("/", 1)[-1]


def normalize_dir(path: Optional[str]) -> str:
    """Normalize a directory prefix to the 'dir/' form ('' stays empty)."""
    if not path:
        return ""
    path = path.strip().replace("\\", "/").strip("/")
    return f"{path}/" if path else ""
