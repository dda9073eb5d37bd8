"""Rename plans and the staged writer that applies them.

A plan is computed from a snapshot of the corpus and never mutated. Each
file it touches is recorded as a FileEdit holding the content the plan was
computed from and the content to write. Applying a plan first checks every
file still holds the planned-from content, then writes.
"""

import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional

from loguru import logger

from vault_check.file_utils import FileError, FileWriteError, read_file, write_file_atomic
from vault_check.refactor.errors import RefactorError


class ChangeType(str, Enum):
    SCHEMA_TYPE = "schema_type"
    SCHEMA_REF_TARGET = "schema_ref_target"
    SCHEMA_DEFAULT_PATH = "schema_default_path"
    SCHEMA_FIELD = "schema_field"
    SCHEMA_NAME_FIELD = "schema_name_field"
    FRONTMATTER = "frontmatter"
    EMBEDDED = "embedded"
    TEMPLATE = "template"
    SAVED_QUERY = "saved_query"
    REFERENCE = "reference"
    MOVE = "move"


@dataclass(frozen=True)
class Change:
    file_path: str
    change_type: ChangeType
    description: str
    line: int = 0

    def to_dict(self) -> dict:
        data = {
            "file_path": self.file_path,
            "change_type": self.change_type.value,
            "description": self.description,
        }
        if self.line:
            data["line"] = self.line
        return data


@dataclass(frozen=True)
class Conflict:
    file_path: str
    conflict_type: str
    message: str
    line: int = 0

    def to_dict(self) -> dict:
        data = {"file_path": self.file_path, "conflict_type": self.conflict_type, "message": self.message}
        if self.line:
            data["line"] = self.line
        return data


@dataclass(frozen=True)
class FileMove:
    source_rel_path: str
    dest_rel_path: str
    source_id: str
    dest_id: str

    def to_dict(self) -> dict:
        return {
            "source": self.source_rel_path,
            "destination": self.dest_rel_path,
            "source_id": self.source_id,
            "dest_id": self.dest_id,
        }


@dataclass(frozen=True)
class FileEdit:
    original: str
    updated: str


@dataclass
class DefaultPathRenamePlan:
    """Optional sub-plan: move the type's directory and rewrite references."""

    old_path: str
    new_path: str
    moves: list[FileMove] = field(default_factory=list)
    changes: list[Change] = field(default_factory=list)
    problems: list[str] = field(default_factory=list)
    # schema content with default_path updated, and document contents with
    # type and reference rewrites, keyed by pre-move path
    schema_edit: Optional[FileEdit] = None
    edits: dict[str, FileEdit] = field(default_factory=dict)

    @property
    def available(self) -> bool:
        return not self.problems


@dataclass
class TypeRenamePlan:
    old_name: str
    new_name: str
    schema_file: str
    changes: list[Change] = field(default_factory=list)
    conflicts: list[Conflict] = field(default_factory=list)
    schema_edit: Optional[FileEdit] = None
    settings_file: Optional[str] = None
    settings_edit: Optional[FileEdit] = None
    edits: dict[str, FileEdit] = field(default_factory=dict)
    default_path_rename: Optional[DefaultPathRenamePlan] = None

    @property
    def has_conflicts(self) -> bool:
        return bool(self.conflicts)

    def to_dict(self) -> dict:
        dpr = self.default_path_rename
        return {
            "old_name": self.old_name,
            "new_name": self.new_name,
            "total_changes": len(self.changes),
            "changes": [c.to_dict() for c in self.changes],
            "conflicts": [c.to_dict() for c in self.conflicts],
            "default_path_rename_available": bool(dpr and dpr.available),
            "default_path_old": dpr.old_path if dpr else None,
            "default_path_new": dpr.new_path if dpr else None,
            "default_path_moves": [m.to_dict() for m in dpr.moves] if dpr else [],
            "default_path_changes": [c.to_dict() for c in dpr.changes] if dpr else [],
            "default_path_problems": list(dpr.problems) if dpr else [],
        }


@dataclass
class FieldRenamePlan:
    type_name: str
    old_field: str
    new_field: str
    schema_file: str
    changes: list[Change] = field(default_factory=list)
    conflicts: list[Conflict] = field(default_factory=list)
    schema_edit: Optional[FileEdit] = None
    template_edits: dict[str, FileEdit] = field(default_factory=dict)
    settings_file: Optional[str] = None
    settings_edit: Optional[FileEdit] = None
    edits: dict[str, FileEdit] = field(default_factory=dict)

    @property
    def has_conflicts(self) -> bool:
        return bool(self.conflicts)

    def to_dict(self) -> dict:
        return {
            "type": self.type_name,
            "old_field": self.old_field,
            "new_field": self.new_field,
            "total_changes": len(self.changes),
            "changes": [c.to_dict() for c in self.changes],
            "conflicts": [c.to_dict() for c in self.conflicts],
        }


@dataclass
class RenameResult:
    changes_applied: int = 0
    files_written: list[str] = field(default_factory=list)
    files_moved: list[FileMove] = field(default_factory=list)
    default_path_renamed: bool = False

    def to_dict(self) -> dict:
        return {
            "changes_applied": self.changes_applied,
            "files_written": list(self.files_written),
            "files_moved": [m.to_dict() for m in self.files_moved],
            "default_path_renamed": self.default_path_renamed,
        }


# --- Staged writer ---


def verify_unchanged(vault_root: Path, edits: list[tuple[str, FileEdit]]) -> None:
    """Refuse to apply when a planned file changed on disk since planning.

    Also checks each file that will be rewritten is writable, so a
    permission problem is reported before the first write.

    Raises:
        RefactorError: If any file's current content differs from the plan's
        FileWriteError: If a file that needs rewriting is not writable
    """
    changed = []
    for relative, edit in edits:
        path = vault_root / relative
        if not path.exists() and edit.original == "":
            continue
        current = read_file(path)
        if current != edit.original:
            changed.append(relative)
        elif edit.updated != edit.original and not os.access(path, os.W_OK):
            raise FileWriteError(f"File is not writable: {relative}")
    if changed:
        raise RefactorError(
            f"Files changed since the plan was computed: {', '.join(sorted(changed))}. Re-run the command."
        )


def write_edits(vault_root: Path, edits: list[tuple[str, FileEdit]]) -> list[str]:
    """Write edits in the given order; unchanged contents are skipped."""
    written = []
    for relative, edit in edits:
        if edit.updated == edit.original:
            continue
        write_file_atomic(vault_root / relative, edit.updated)
        logger.info(f"Updated {relative}")
        written.append(relative)
    return written


def validate_moves(vault_root: Path, moves: list[FileMove]) -> list[str]:
    """Problems that make a set of moves unsafe. Empty means safe."""
    problems = []
    sources = {m.source_rel_path for m in moves}
    destinations: set[str] = set()
    for move in moves:
        if not (vault_root / move.source_rel_path).is_file():
            problems.append(f"source missing: {move.source_rel_path}")
        if move.dest_rel_path in destinations:
            problems.append(f"duplicate destination: {move.dest_rel_path}")
        destinations.add(move.dest_rel_path)
        if (vault_root / move.dest_rel_path).exists() and move.dest_rel_path not in sources:
            problems.append(f"destination exists: {move.dest_rel_path}")
    return problems


def perform_moves(vault_root: Path, moves: list[FileMove]) -> list[FileMove]:
    """Move files in source order, then prune emptied directories."""
    done = []
    emptied: set[Path] = set()
    for move in sorted(moves, key=lambda m: m.source_rel_path):
        source = vault_root / move.source_rel_path
        dest = vault_root / move.dest_rel_path
        try:
            dest.parent.mkdir(parents=True, exist_ok=True)
            os.replace(source, dest)
        except OSError as e:
            raise FileError(f"Failed to move {move.source_rel_path} -> {move.dest_rel_path}: {e}") from e
        logger.info(f"Moved {move.source_rel_path} -> {move.dest_rel_path}")
        emptied.add(source.parent)
        done.append(move)

    root = vault_root.resolve()
    for directory in sorted(emptied, key=lambda p: len(p.parts), reverse=True):
        current = directory
        while current.resolve() != root and current.is_dir() and not any(current.iterdir()):
            current.rmdir()
            logger.debug(f"Removed empty directory {current}")
            current = current.parent
    return done
