"""Field rename within one type.

Renames the schema field key, the type's name_field binding, template
tokens ({{field.old}}), saved queries filtering that type on .old, every
frontmatter key on objects of the type, and every embedded declaration key.

Any scope that already holds both the old and the new key is a conflict.
Conflicts block the whole rename; they are reported and never merged.
"""

import copy
import re
from pathlib import Path
from typing import Optional

from loguru import logger

from vault_check.config import DEFAULT_SCHEMA_FILE, DEFAULT_VAULT_CONFIG_FILE
from vault_check.file_utils import read_file
from vault_check.markdown.models import ParsedDocument
from vault_check.markdown.typedecl import parse_declaration
from vault_check.refactor.errors import RefactorError, RenameConflictError
from vault_check.refactor.plan import (
    Change,
    ChangeType,
    Conflict,
    FieldRenamePlan,
    FileEdit,
    RenameResult,
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
from vault_check.schema.types import Schema
from vault_check.schema.validator import IMPLICIT_FIELDS
from vault_check.vault import Corpus

FIELD_NAME_RE = re.compile(r"^[A-Za-z0-9_][\w-]*$")


def _validate_request(schema_data: Optional[dict], type_name: str, old_field: str, new_field: str) -> dict:
    """Check the request against the raw schema and return the type's entry."""
    if not type_name or not old_field or not new_field:
        raise RefactorError("Type and field names must not be empty")
    if old_field == new_field:
        raise RefactorError("Old and new field names are the same")
    if new_field in IMPLICIT_FIELDS:
        raise RefactorError(f"'{new_field}' is a reserved field name")
    if not FIELD_NAME_RE.match(new_field):
        raise RefactorError(f"Invalid field name '{new_field}': use letters, digits, '_' or '-'")

    types = (schema_data or {}).get("types")
    if not isinstance(types, dict) or not isinstance(types.get(type_name), dict):
        raise RefactorError(f"Type '{type_name}' not found in schema")
    entry = types[type_name]
    if old_field not in field_map(entry):
        raise RefactorError(f"Field '{old_field}' not found on type '{type_name}'")
    return entry


def _template_path(root: Path, template_file: str) -> Optional[str]:
    relative = template_file.strip().replace("\\", "/").lstrip("/")
    path = (root / relative).resolve()
    if root.resolve() not in path.parents:
        logger.warning(f"Skipping template outside the vault: {template_file}")
        return None
    if not path.is_file():
        logger.warning(f"Template file not found: {template_file}")
        return None
    return relative


def _rename_in_document(
    doc: ParsedDocument, lines: list[str], type_name: str, old_field: str, new_field: str
) -> tuple[list[str], list[Change], list[Conflict]]:
    lines = list(lines)
    changes: list[Change] = []
    conflicts: list[Conflict] = []
    key_line = re.compile(rf"^{re.escape(old_field)}(\s*:)")

    file_object = doc.file_object
    if file_object is not None and file_object.object_type == type_name and old_field in file_object.fields:
        if new_field in file_object.fields:
            conflicts.append(
                Conflict(
                    doc.file_path,
                    "frontmatter_field_exists",
                    f"frontmatter has both '{old_field}' and '{new_field}'",
                    file_object.field_line(new_field),
                )
            )
        else:
            line_no = file_object.field_line(old_field)
            idx = line_no - 1
            updated = key_line.sub(lambda m: new_field + m.group(1), lines[idx], count=1)
            if updated != lines[idx]:
                lines[idx] = updated
                changes.append(
                    Change(doc.file_path, ChangeType.FRONTMATTER, f"{old_field}: -> {new_field}:", line_no)
                )

    for obj in doc.embedded_objects():
        if obj.object_type != type_name or not obj.decl_line:
            continue
        idx = obj.decl_line - 1
        decl = parse_declaration(lines[idx], obj.decl_line)
        if decl is None or decl.arg(old_field) is None:
            continue
        if decl.arg(new_field) is not None:
            conflicts.append(
                Conflict(
                    doc.file_path,
                    "embedded_field_exists",
                    f"::{type_name}() declaration has both '{old_field}' and '{new_field}'",
                    obj.decl_line,
                )
            )
            continue
        line = lines[idx]
        for arg in sorted(decl.args, key=lambda a: a.key_start, reverse=True):
            if arg.key == old_field:
                line = line[: arg.key_start] + new_field + line[arg.key_end :]
        lines[idx] = line
        changes.append(
            Change(doc.file_path, ChangeType.EMBEDDED, f"{old_field}= -> {new_field}=", obj.decl_line)
        )
    return lines, changes, conflicts


def plan_field_rename(
    corpus: Corpus,
    schema: Schema,
    type_name: str,
    old_field: str,
    new_field: str,
    *,
    schema_file: str = DEFAULT_SCHEMA_FILE,
    settings_file: str = DEFAULT_VAULT_CONFIG_FILE,
) -> FieldRenamePlan:
    """Compute every change and conflict for a field rename. Touches no files.

    Raises:
        RefactorError: If the type or field doesn't exist or the new name is invalid
    """
    type_name, old_field, new_field = type_name.strip(), old_field.strip(), new_field.strip()
    root = corpus.root
    schema_raw, schema_data = load_yaml_document(root / schema_file)
    entry = _validate_request(schema_data, type_name, old_field, new_field)

    plan = FieldRenamePlan(type_name=type_name, old_field=old_field, new_field=new_field, schema_file=schema_file)

    # Schema
    if new_field in field_map(entry):
        plan.conflicts.append(
            Conflict(schema_file, "schema_field_exists", f"type '{type_name}' already has field '{new_field}'")
        )
    updated = copy.deepcopy(schema_data)
    updated_entry = updated["types"][type_name]
    updated_entry["fields"] = rename_key(updated_entry["fields"], old_field, new_field)
    plan.changes.append(
        Change(schema_file, ChangeType.SCHEMA_FIELD, f"{type_name}.{old_field} -> {type_name}.{new_field}")
    )
    if updated_entry.get("name_field") == old_field:
        updated_entry["name_field"] = new_field
        plan.changes.append(
            Change(schema_file, ChangeType.SCHEMA_NAME_FIELD, f"name_field '{old_field}' -> '{new_field}'")
        )
    plan.schema_edit = FileEdit(schema_raw, dump_yaml_document(updated))

    # Templates; contents are staged per path so a template that is also a
    # corpus document gets both edits in one write
    originals: dict[str, str] = {}
    staged: dict[str, str] = {}
    template_paths: list[str] = []
    token = re.compile(rf"\{{\{{\s*field\.{re.escape(old_field)}\s*\}}\}}")
    for template_file in schema.template_files_for(type_name):
        relative = _template_path(root, template_file)
        if relative is None or relative in template_paths:
            continue
        content = read_file(root / relative)
        lines = content.split("\n")
        for idx, line in enumerate(lines):
            if token.search(line):
                lines[idx] = token.sub(f"{{{{field.{new_field}}}}}", line)
                plan.changes.append(
                    Change(relative, ChangeType.TEMPLATE, f"{{{{field.{old_field}}}}} -> {{{{field.{new_field}}}}}", idx + 1)
                )
        if lines != content.split("\n"):
            template_paths.append(relative)
            originals[relative] = content
            staged[relative] = "\n".join(lines)

    # Saved queries
    settings_raw, settings_data = load_yaml_document(root / settings_file)
    if settings_data is not None and isinstance(settings_data.get("queries"), dict):
        object_filter = re.compile(rf"(?<![\w-])object:{re.escape(type_name)}(?![\w-])")
        field_ref = re.compile(rf"\.{re.escape(old_field)}(?![\w-])")
        queries = {}
        for name, query in settings_data["queries"].items():
            text = query_text(query)
            if text is not None and object_filter.search(text) and field_ref.search(text):
                updated_text = field_ref.sub(f".{new_field}", text)
                query = with_query_text(query, updated_text)
                plan.changes.append(
                    Change(settings_file, ChangeType.SAVED_QUERY, f"query '{name}': {text} -> {updated_text}")
                )
            queries[name] = query
        if queries != settings_data["queries"]:
            plan.settings_file = settings_file
            plan.settings_edit = FileEdit(settings_raw, dump_yaml_document({**settings_data, "queries": queries}))

    # Documents
    for doc in sorted(corpus.documents, key=lambda d: d.file_path):
        current = staged.get(doc.file_path, doc.raw_content)
        lines, changes, conflicts = _rename_in_document(
            doc, current.split("\n"), type_name, old_field, new_field
        )
        plan.changes.extend(changes)
        plan.conflicts.extend(conflicts)
        if changes:
            originals.setdefault(doc.file_path, doc.raw_content)
            staged[doc.file_path] = "\n".join(lines)

    for relative, content in staged.items():
        edit = FileEdit(originals[relative], content)
        if relative in template_paths:
            plan.template_edits[relative] = edit
        else:
            plan.edits[relative] = edit

    logger.debug(
        f"Planned field rename {type_name}.{old_field} -> {new_field}: "
        f"{len(plan.changes)} changes, {len(plan.conflicts)} conflicts"
    )
    return plan


def apply_field_rename(vault_root: Path, plan: FieldRenamePlan) -> RenameResult:
    """Apply a field rename: schema, templates, vault settings, then documents.

    Raises:
        RenameConflictError: If the plan has conflicts (nothing is written)
        RefactorError: If planned files changed on disk since planning
    """
    vault_root = Path(vault_root)
    if plan.conflicts:
        raise RenameConflictError(plan.conflicts)

    staged: list[tuple[str, FileEdit]] = []
    if plan.schema_edit is not None:
        staged.append((plan.schema_file, plan.schema_edit))
    staged.extend(sorted(plan.template_edits.items()))
    if plan.settings_file and plan.settings_edit is not None:
        staged.append((plan.settings_file, plan.settings_edit))
    staged.extend(sorted(plan.edits.items()))

    verify_unchanged(vault_root, staged)
    written = write_edits(vault_root, staged)
    logger.info(
        f"Renamed field {plan.type_name}.{plan.old_field} -> {plan.new_field}: {len(written)} files written"
    )
    return RenameResult(changes_applied=len(plan.changes), files_written=written)
