"""Type rename: schema key, ref targets, type: lines, ::type() declarations.

When the type's default_path was named after the type (`events/` for
`event`), the plan also offers a directory rename: every file under the old
path moves to the same place under the new path, and every reference in the
corpus that named a moved object is rewritten to its new ID.

Planning is read-only. Applying writes the schema, then vault settings, then
documents in path order, then performs moves in source order.
"""

import copy
import re
from pathlib import Path
from typing import Optional

from loguru import logger

from vault_check.config import DEFAULT_SCHEMA_FILE, DEFAULT_VAULT_CONFIG_FILE
from vault_check.file_utils import FileError, read_file
from vault_check.markdown.models import ParsedDocument
from vault_check.markdown.typedecl import parse_declaration, parse_value
from vault_check.markdown.wikilink import rewrite_targets
from vault_check.refactor.errors import MoveValidationError, RefactorError, RenameConflictError
from vault_check.refactor.plan import (
    Change,
    ChangeType,
    DefaultPathRenamePlan,
    FileEdit,
    FileMove,
    RenameResult,
    TypeRenamePlan,
    perform_moves,
    validate_moves,
    verify_unchanged,
    write_edits,
)
from vault_check.refactor.schema_doc import (
    dump_yaml_document,
    field_map,
    load_yaml_document,
    query_text,
    rename_key,
    with_query_text,
)
from vault_check.schema.types import Schema, ValueKind, is_builtin_type
from vault_check.utils import file_path_to_object_id, normalize_dir
from vault_check.vault import Corpus

TYPE_NAME_RE = re.compile(r"^[\w-]+$")


def pluralize(word: str) -> str:
    """Naive English plural, enough for directory names like people/ or events/."""
    if len(word) > 1 and word.endswith("y") and word[-2] not in "aeiou":
        return word[:-1] + "ies"
    if word.endswith(("s", "x", "z", "ch", "sh")):
        return word + "es"
    return word + "s"


def suggest_default_path(default_path: Optional[str], old_name: str, new_name: str) -> Optional[str]:
    """New default_path when the old one ends in the old type name or its plural.

    Returns None when the path doesn't look derived from the type name.

    >>> suggest_default_path("events/", "event", "meeting")
    'meetings/'
    """
    normalized = normalize_dir(default_path)
    if not normalized:
        return None
    segments = normalized.rstrip("/").split("/")
    last = segments[-1]
    if last == old_name:
        segments[-1] = new_name
    elif last == pluralize(old_name):
        segments[-1] = pluralize(new_name)
    else:
        return None
    return "/".join(segments) + "/"


def _validate_names(schema: Schema, old_name: str, new_name: str) -> None:
    if not old_name or not new_name:
        raise RefactorError("Type names must not be empty")
    if old_name == new_name:
        raise RefactorError("Old and new type names are the same")
    if is_builtin_type(old_name):
        raise RefactorError(f"Cannot rename built-in type '{old_name}'")
    if is_builtin_type(new_name):
        raise RefactorError(f"Cannot rename to built-in type '{new_name}'")
    if not TYPE_NAME_RE.match(new_name):
        raise RefactorError(f"Invalid type name '{new_name}': use letters, digits, '_' or '-'")
    if old_name not in schema.types:
        raise RefactorError(f"Type '{old_name}' not found in schema")
    if new_name in schema.types:
        raise RefactorError(f"Type '{new_name}' already exists in schema")


# --- Schema and settings ---


def _rename_in_schema(
    data: dict, schema_file: str, old_name: str, new_name: str
) -> tuple[dict, list[Change]]:
    types = data.get("types")
    if not isinstance(types, dict) or old_name not in types:
        raise RefactorError(f"Type '{old_name}' not found in {schema_file}")

    updated = copy.deepcopy(data)
    updated["types"] = rename_key(updated["types"], old_name, new_name)
    changes = [Change(schema_file, ChangeType.SCHEMA_TYPE, f"rename type '{old_name}' -> '{new_name}'")]

    for type_name, entry in updated["types"].items():
        for field_name, field_def in field_map(entry).items():
            if isinstance(field_def, dict) and field_def.get("target") == old_name:
                field_def["target"] = new_name
                changes.append(
                    Change(
                        schema_file,
                        ChangeType.SCHEMA_REF_TARGET,
                        f"{type_name}.{field_name} target '{old_name}' -> '{new_name}'",
                    )
                )
    return updated, changes


def _rename_in_queries(
    root: Path, settings_file: str, old_name: str, new_name: str
) -> tuple[Optional[FileEdit], list[Change]]:
    raw, data = load_yaml_document(root / settings_file)
    if data is None or not isinstance(data.get("queries"), dict):
        return None, []

    pattern = re.compile(rf"(?<![\w-])object:{re.escape(old_name)}(?![\w-])")
    changes = []
    queries = {}
    for name, entry in data["queries"].items():
        text = query_text(entry)
        if text is not None and pattern.search(text):
            updated_text = pattern.sub(f"object:{new_name}", text)
            entry = with_query_text(entry, updated_text)
            changes.append(
                Change(settings_file, ChangeType.SAVED_QUERY, f"query '{name}': {text} -> {updated_text}")
            )
        queries[name] = entry

    if not changes:
        return None, []
    return FileEdit(raw, dump_yaml_document({**data, "queries": queries})), changes


# --- Documents ---


def _rename_in_document(
    doc: ParsedDocument, old_name: str, new_name: str
) -> tuple[list[str], list[Change]]:
    """Lines of the document with type: lines and ::old declarations renamed."""
    lines = doc.lines
    changes = []
    type_line = re.compile(rf"^(type\s*:\s*)(['\"]?){re.escape(old_name)}\2(\s*(?:#.*)?)$")

    file_object = doc.file_object
    if file_object is not None and file_object.object_type == old_name and doc.frontmatter_end:
        for idx in range(1, doc.frontmatter_end - 1):
            m = type_line.match(lines[idx])
            if m:
                lines[idx] = f"{m.group(1)}{m.group(2)}{new_name}{m.group(2)}{m.group(3)}"
                changes.append(
                    Change(doc.file_path, ChangeType.FRONTMATTER, f"type: {old_name} -> type: {new_name}", idx + 1)
                )
                break

    for obj in doc.embedded_objects():
        if obj.object_type != old_name or not obj.decl_line:
            continue
        idx = obj.decl_line - 1
        decl = parse_declaration(lines[idx], obj.decl_line)
        if decl is None:
            continue
        lines[idx] = lines[idx][: decl.type_start] + new_name + lines[idx][decl.type_end :]
        changes.append(
            Change(doc.file_path, ChangeType.EMBEDDED, f"::{old_name}(...) -> ::{new_name}(...)", obj.decl_line)
        )
    return lines, changes


def _replace_token(text: str, old: str, new: str) -> str:
    """Replace `old` where it stands alone as a path token."""
    pattern = re.compile(rf"(?<![\w/.#-]){re.escape(old)}(?![\w/.#-])")
    return pattern.sub(lambda _: new, text)


class _IdRemapper:
    """Maps references to moved objects onto their new IDs.

    Keeps a `.md` suffix and `#fragment` as written.
    """

    def __init__(self, moves: list[FileMove]):
        self.id_map = {m.source_id: m.dest_id for m in moves}

    def __call__(self, target: str) -> Optional[str]:
        base, hash_sign, fragment = target.strip().partition("#")
        has_md = base.endswith(".md")
        key = base[:-3] if has_md else base
        new_id = self.id_map.get(key)
        if new_id is None:
            return None
        return f"{new_id}{'.md' if has_md else ''}{hash_sign}{fragment}"


def _bare_targets(value) -> list[str]:
    """Unlinked string items of a ref-field value, as written."""
    return [item.value.strip() for item in value.items() if item.kind == ValueKind.STRING and item.value]


def _rewrite_references(
    doc: ParsedDocument, lines: list[str], schema: Schema, remap: _IdRemapper
) -> tuple[list[str], list[Change]]:
    lines = list(lines)
    touched: set[int] = set()

    for idx, line in enumerate(lines):
        updated = rewrite_targets(line, remap)
        if updated != line:
            lines[idx] = updated
            touched.add(idx)

    # Bare ref-field values in frontmatter: `owner: people/alice`
    file_object = doc.file_object
    type_def = schema.get_type(file_object.object_type) if file_object else None
    if file_object is not None and type_def is not None:
        for field_name, field_def in type_def.fields.items():
            value = file_object.fields.get(field_name)
            span = file_object.field_lines.get(field_name)
            if not field_def.is_ref or value is None or span is None:
                continue
            for target in _bare_targets(value):
                new_target = remap(target)
                if new_target is None:
                    continue
                for idx in range(span[0] - 1, span[1]):
                    line = lines[idx]
                    if idx == span[0] - 1:
                        key, colon, rest = line.partition(":")
                        updated = key + colon + _replace_token(rest, target, new_target)
                    else:
                        updated = _replace_token(line, target, new_target)
                    if updated != line:
                        lines[idx] = updated
                        touched.add(idx)

    # Bare ref values in declarations: ::project(kickoff=events/kickoff)
    for obj in doc.embedded_objects():
        obj_type = schema.get_type(obj.object_type)
        if obj_type is None or not obj.decl_line:
            continue
        ref_fields = {name for name, fd in obj_type.fields.items() if fd.is_ref}
        idx = obj.decl_line - 1
        decl = parse_declaration(lines[idx], obj.decl_line)
        if decl is None:
            continue
        line = lines[idx]
        for arg in sorted(decl.args, key=lambda a: a.value_start, reverse=True):
            if arg.key not in ref_fields:
                continue
            segment = line[arg.value_start : arg.value_end]
            for target in _bare_targets(parse_value(arg.raw_value)):
                new_target = remap(target)
                if new_target is not None:
                    segment = _replace_token(segment, target, new_target)
            line = line[: arg.value_start] + segment + line[arg.value_end :]
        if line != lines[idx]:
            lines[idx] = line
            touched.add(idx)

    changes = [
        Change(doc.file_path, ChangeType.REFERENCE, "rewrite references to moved files", idx + 1)
        for idx in sorted(touched)
    ]
    return lines, changes


def _plan_default_path_rename(
    corpus: Corpus,
    schema: Schema,
    schema_data: dict,
    schema_raw: str,
    schema_file: str,
    old_name: str,
    new_name: str,
    base_lines: dict[str, list[str]],
) -> Optional[DefaultPathRenamePlan]:
    type_def = schema.types[old_name]
    old_path = normalize_dir(type_def.default_path)
    new_path = suggest_default_path(old_path, old_name, new_name)
    if not old_path or not new_path or new_path == old_path:
        return None

    moves = []
    for relative in corpus.all_paths():
        if relative.startswith(old_path):
            dest = new_path + relative[len(old_path) :]
            moves.append(FileMove(relative, dest, file_path_to_object_id(relative), file_path_to_object_id(dest)))

    written = new_path if str(type_def.default_path).strip().endswith("/") else new_path.rstrip("/")
    schema_data["types"][new_name]["default_path"] = written
    plan = DefaultPathRenamePlan(
        old_path=old_path,
        new_path=new_path,
        moves=moves,
        problems=validate_moves(corpus.root, moves),
        schema_edit=FileEdit(schema_raw, dump_yaml_document(schema_data)),
    )
    plan.changes.append(
        Change(schema_file, ChangeType.SCHEMA_DEFAULT_PATH, f"default_path '{old_path}' -> '{new_path}'")
    )
    plan.changes.extend(
        Change(m.source_rel_path, ChangeType.MOVE, f"move {m.source_rel_path} -> {m.dest_rel_path}")
        for m in moves
    )

    remap = _IdRemapper(moves)
    for doc in sorted(corpus.documents, key=lambda d: d.file_path):
        lines = base_lines.get(doc.file_path, doc.lines)
        lines, changes = _rewrite_references(doc, lines, schema, remap)
        content = "\n".join(lines)
        if content != doc.raw_content:
            plan.edits[doc.file_path] = FileEdit(doc.raw_content, content)
        plan.changes.extend(changes)

    # Unparseable files still get their wikilinks rewritten; no parse needed
    for failure in sorted(corpus.failures, key=lambda f: f.relative_path):
        try:
            raw = read_file(corpus.root / failure.relative_path)
        except (FileError, UnicodeDecodeError) as e:
            plan.problems.append(f"cannot rewrite references in {failure.relative_path}: {e}")
            continue
        lines = raw.split("\n")
        touched = []
        for idx, line in enumerate(lines):
            updated = rewrite_targets(line, remap)
            if updated != line:
                lines[idx] = updated
                touched.append(idx)
        if touched:
            plan.edits[failure.relative_path] = FileEdit(raw, "\n".join(lines))
            plan.changes.extend(
                Change(failure.relative_path, ChangeType.REFERENCE, "rewrite references to moved files", idx + 1)
                for idx in touched
            )

    if plan.problems:
        logger.warning(f"Directory rename {old_path} -> {new_path} unavailable: {'; '.join(plan.problems)}")
    return plan


# --- Public API ---


def plan_type_rename(
    corpus: Corpus,
    schema: Schema,
    old_name: str,
    new_name: str,
    *,
    schema_file: str = DEFAULT_SCHEMA_FILE,
    settings_file: str = DEFAULT_VAULT_CONFIG_FILE,
) -> TypeRenamePlan:
    """Compute every change a type rename makes. Touches no files.

    Raises:
        RefactorError: If the names are invalid or the type can't be renamed
    """
    old_name = old_name.strip()
    new_name = new_name.strip()
    _validate_names(schema, old_name, new_name)

    schema_raw, schema_data = load_yaml_document(corpus.root / schema_file)
    if schema_data is None:
        raise RefactorError(f"Schema file {schema_file} is missing or empty")
    updated_schema, schema_changes = _rename_in_schema(schema_data, schema_file, old_name, new_name)

    plan = TypeRenamePlan(
        old_name=old_name,
        new_name=new_name,
        schema_file=schema_file,
        changes=list(schema_changes),
        schema_edit=FileEdit(schema_raw, dump_yaml_document(updated_schema)),
    )

    settings_edit, query_changes = _rename_in_queries(corpus.root, settings_file, old_name, new_name)
    if settings_edit is not None:
        plan.settings_file = settings_file
        plan.settings_edit = settings_edit
        plan.changes.extend(query_changes)

    base_lines: dict[str, list[str]] = {}
    for doc in sorted(corpus.documents, key=lambda d: d.file_path):
        lines, changes = _rename_in_document(doc, old_name, new_name)
        if changes:
            base_lines[doc.file_path] = lines
            plan.edits[doc.file_path] = FileEdit(doc.raw_content, "\n".join(lines))
            plan.changes.extend(changes)

    plan.default_path_rename = _plan_default_path_rename(
        corpus,
        schema,
        copy.deepcopy(updated_schema),
        schema_raw,
        schema_file,
        old_name,
        new_name,
        base_lines,
    )
    logger.debug(f"Planned type rename {old_name} -> {new_name}: {len(plan.changes)} changes")
    return plan


def apply_type_rename(
    vault_root: Path, plan: TypeRenamePlan, *, rename_default_path: bool = False
) -> RenameResult:
    """Apply a type rename plan.

    Every new file content is staged and checked against disk before the
    first write. Files already written are not rolled back if a later write
    fails.

    Raises:
        RenameConflictError: If the plan has conflicts
        MoveValidationError: If the directory rename was requested but can't be done
        RefactorError: If planned files changed on disk since planning
    """
    vault_root = Path(vault_root)
    if plan.conflicts:
        raise RenameConflictError(plan.conflicts)

    dpr = plan.default_path_rename
    schema_edit = plan.schema_edit
    doc_edits = plan.edits
    moves: list[FileMove] = []
    change_count = len(plan.changes)

    if rename_default_path:
        if dpr is None:
            raise RefactorError(f"Type '{plan.old_name}' has no default_path derived from its name")
        problems = dpr.problems or validate_moves(vault_root, dpr.moves)
        if problems:
            raise MoveValidationError(problems)
        schema_edit = dpr.schema_edit
        doc_edits = dpr.edits
        moves = dpr.moves
        change_count += len(dpr.changes)

    staged: list[tuple[str, FileEdit]] = []
    if schema_edit is not None:
        staged.append((plan.schema_file, schema_edit))
    if plan.settings_file and plan.settings_edit is not None:
        staged.append((plan.settings_file, plan.settings_edit))
    staged.extend(sorted(doc_edits.items()))

    verify_unchanged(vault_root, staged)
    written = write_edits(vault_root, staged)
    moved = perform_moves(vault_root, moves) if moves else []

    logger.info(
        f"Renamed type {plan.old_name} -> {plan.new_name}: "
        f"{len(written)} files written, {len(moved)} files moved"
    )
    return RenameResult(
        changes_applied=change_count,
        files_written=written,
        files_moved=moved,
        default_path_renamed=rename_default_path,
    )
