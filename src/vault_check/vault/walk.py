"""Vault walking and corpus loading.

A pass over the vault always reads and parses every markdown file before
anything is validated or planned, since reference resolution and conflict
detection need the whole corpus.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, Optional

import pathspec
from loguru import logger

from vault_check.config import VaultSettings
from vault_check.file_utils import (
    FileError,
    ParseError,
    build_gitignore_spec,
    compute_checksum,
    read_file,
    should_ignore_file,
)
from vault_check.markdown import ParsedDocument, parse_document


@dataclass
class WalkResult:
    """One markdown file: its content and either a document or a parse error."""

    path: Path
    relative_path: str
    content: str
    document: Optional[ParsedDocument] = None
    error: Optional[str] = None


@dataclass
class ParseFailure:
    relative_path: str
    message: str


@dataclass
class Corpus:
    """Snapshot of every parsed document in a vault."""

    root: Path
    documents: list[ParsedDocument] = field(default_factory=list)
    failures: list[ParseFailure] = field(default_factory=list)
    checksums: dict[str, str] = field(default_factory=dict)  # relative path -> sha256

    def __post_init__(self) -> None:
        self._by_path = {doc.file_path: doc for doc in self.documents}

    def get(self, relative_path: str) -> Optional[ParsedDocument]:
        return self._by_path.get(relative_path)

    def object_types(self) -> dict[str, str]:
        """Map of every object ID in the corpus to its type."""
        types: dict[str, str] = {}
        for doc in self.documents:
            for obj in doc.objects:
                types.setdefault(obj.id, obj.object_type)
        return types

    def object_ids(self) -> list[str]:
        return sorted(self.object_types())

    def all_paths(self) -> list[str]:
        return sorted([*self._by_path, *(f.relative_path for f in self.failures)])


def _iter_markdown(directory: Path, root: Path, spec: pathspec.PathSpec) -> Iterator[Path]:
    try:
        entries = sorted(os.scandir(directory), key=lambda e: e.name)
    except PermissionError:
        logger.warning(f"Permission denied scanning directory: {directory}")
        return

    for entry in entries:
        entry_path = Path(entry.path)
        relative = entry_path.relative_to(root).as_posix()
        if entry.is_dir(follow_symlinks=False):
            if should_ignore_file(relative + "/", spec):
                logger.trace(f"Ignoring directory: {relative}")
                continue
            yield from _iter_markdown(entry_path, root, spec)
        elif entry.is_file(follow_symlinks=False) and entry.name.endswith(".md"):
            if should_ignore_file(relative, spec):
                continue
            yield entry_path


def walk_markdown_files(root: Path, settings: Optional[VaultSettings] = None) -> Iterator[WalkResult]:
    """Yield every markdown file under root in sorted path order.

    Files that fail to parse are yielded with `error` set; the walk
    continues.
    """
    settings = settings or VaultSettings()
    root = Path(root)
    spec = build_gitignore_spec(root, settings.ignore)

    for path in _iter_markdown(root, root, spec):
        relative = path.relative_to(root).as_posix()
        try:
            content = read_file(path)
        except (FileError, UnicodeDecodeError) as e:
            logger.warning(f"Could not read {relative}: {e}")
            yield WalkResult(path=path, relative_path=relative, content="", error=f"Could not read file: {e}")
            continue

        try:
            document = parse_document(content, relative, settings.daily_directory)
        except ParseError as e:
            logger.debug(f"Parse error in {relative}: {e}")
            yield WalkResult(path=path, relative_path=relative, content=content, error=str(e))
            continue

        yield WalkResult(path=path, relative_path=relative, content=content, document=document)


def load_corpus(root: Path, settings: Optional[VaultSettings] = None) -> Corpus:
    """Walk the vault and collect every document into a Corpus."""
    documents = []
    failures = []
    checksums = {}
    for result in walk_markdown_files(root, settings):
        checksums[result.relative_path] = compute_checksum(result.content)
        if result.document is not None:
            documents.append(result.document)
        else:
            failures.append(ParseFailure(result.relative_path, result.error or "unknown error"))

    logger.info(f"Loaded {len(documents)} documents from {root} ({len(failures)} parse errors)")
    return Corpus(root=Path(root), documents=documents, failures=failures, checksums=checksums)
