"""Markdown document parser.

Turns one file's text into a ParsedDocument:

  - the file-level object from the frontmatter (python-frontmatter/pyyaml)
  - embedded objects from ::type(...) declarations, nested under headings
  - inline @trait annotations
  - body [[wikilinks]]

Fenced code blocks are skipped. Object IDs are vault-relative paths without
the .md extension; embedded objects are `file-id#slug`, where the slug is the
declaration's id= argument or the slugified heading text.
"""

import re
from datetime import date, datetime
from pathlib import PurePosixPath
from typing import Any, Optional

from loguru import logger

from vault_check.file_utils import find_frontmatter, parse_frontmatter
from vault_check.markdown.models import ParsedDocument, ParsedObject, ParsedRef, ParsedTrait
from vault_check.markdown.traits import find_traits
from vault_check.markdown.typedecl import is_declaration_line, parse_declaration, parse_trait_value
from vault_check.markdown.wikilink import find_all_in_line, parse_exact
from vault_check.schema.types import FieldValue
from vault_check.schema.validator import is_valid_date
from vault_check.utils import file_path_to_object_id, normalize_dir, slugify

HEADING_RE = re.compile(r"^(#{1,6})\s+(.+?)\s*#*\s*$")
FRONTMATTER_KEY_RE = re.compile(r"^([A-Za-z0-9_][\w.-]*)\s*:(?:\s|$)")
FENCE_RE = re.compile(r"^\s*(```|~~~)")


# --- Frontmatter values ---


def _nested_wikilink(value: Any) -> Optional[str]:
    """Unquoted [[target]] in YAML loads as [['target']]."""
    if (
        isinstance(value, list)
        and len(value) == 1
        and isinstance(value[0], list)
        and len(value[0]) == 1
        and isinstance(value[0][0], str)
    ):
        return value[0][0].strip() or None
    return None


def yaml_to_field_value(value: Any, raw: Optional[str] = None) -> FieldValue:
    """Convert a loaded YAML value to a FieldValue."""
    if value is None:
        return FieldValue.null(raw)
    if isinstance(value, bool):
        return FieldValue.boolean(value, raw)
    if isinstance(value, (int, float)):
        return FieldValue.number(value, raw)
    if isinstance(value, datetime):
        return FieldValue.datetime(value.isoformat(), raw)
    if isinstance(value, date):
        return FieldValue.date(value.isoformat(), raw)
    if isinstance(value, str):
        link = parse_exact(value)
        if link is not None:
            return FieldValue.ref(link[0], raw)
        return FieldValue.string(value, raw)
    if isinstance(value, list):
        target = _nested_wikilink(value)
        if target is not None:
            return FieldValue.ref(target, raw)
        return FieldValue.array([yaml_to_field_value(item) for item in value], raw)
    return FieldValue.string(str(value), raw)


def frontmatter_field_lines(lines: list[str], end_line: int) -> dict[str, tuple[int, int]]:
    """Map each top-level frontmatter key to its (first, last) line numbers.

    A key's span runs until the next top-level key or the closing '---'.
    """
    spans: dict[str, tuple[int, int]] = {}
    current: Optional[str] = None
    current_start = 0
    # lines[0] is the opening '---'; the closing one is at index end_line - 1
    for idx in range(1, end_line - 1):
        m = FRONTMATTER_KEY_RE.match(lines[idx])
        if not m:
            continue
        if current is not None:
            spans[current] = (current_start, idx)
        current = m.group(1)
        current_start = idx + 1
    if current is not None:
        spans[current] = (current_start, end_line - 1)
    return spans


def frontmatter_value_spans(
    lines: list[str], field_lines: dict[str, tuple[int, int]]
) -> dict[str, tuple[int, int]]:
    """Columns of each inline value: the text after `key:` on the key's line.

    Keys whose value starts on a later line (block lists, folded text) have
    no inline span.
    """
    spans = {}
    for key, (first, _) in field_lines.items():
        line = lines[first - 1]
        colon = line.index(":")
        rest = line[colon + 1 :]
        start = colon + 1 + (len(rest) - len(rest.lstrip()))
        end = len(line.rstrip())
        if start < end:
            spans[key] = (start, end)
    return spans


def _raw_field_text(lines: list[str], span: tuple[int, int]) -> str:
    first, last = span
    head = lines[first - 1].split(":", 1)[1] if ":" in lines[first - 1] else ""
    rest = lines[first:last]
    return "\n".join([head.strip(), *rest]).strip()


def _default_type(relative_path: str, daily_directory: str) -> str:
    posix = PurePosixPath(relative_path)
    daily = normalize_dir(daily_directory)
    if daily and relative_path.startswith(daily) and is_valid_date(posix.stem):
        return "date"
    return "page"


# --- Main Parser ---


def parse_document(content: str, relative_path: str, daily_directory: str = "daily") -> ParsedDocument:
    """Parse a markdown file's content.

    Args:
        content: Full file text
        relative_path: Vault-relative path (POSIX separators)
        daily_directory: Directory whose YYYY-MM-DD files are daily notes

    Raises:
        ParseError: If the frontmatter is malformed
    """
    relative_path = relative_path.replace("\\", "/")
    file_id = file_path_to_object_id(relative_path)
    lines = content.split("\n")

    metadata = parse_frontmatter(content)
    block = find_frontmatter(content)
    frontmatter_end = block.end_line if block else 0

    spans = frontmatter_field_lines(lines, frontmatter_end) if block else {}
    object_type = metadata.get("type")
    object_type = str(object_type).strip() if object_type else _default_type(relative_path, daily_directory)

    fields = {
        str(key): yaml_to_field_value(value, _raw_field_text(lines, spans[key]) if key in spans else None)
        for key, value in metadata.items()
        if key != "type"
    }

    file_object = ParsedObject(
        id=file_id,
        object_type=object_type,
        fields=fields,
        line_start=1,
        field_lines={k: v for k, v in spans.items() if k in fields},
        value_spans={k: v for k, v in frontmatter_value_spans(lines, spans).items() if k in fields},
    )
    doc = ParsedDocument(
        file_path=relative_path,
        raw_content=content,
        objects=[file_object],
        frontmatter_end=frontmatter_end,
    )

    _parse_body(doc, lines, file_id, frontmatter_end)
    logger.debug(
        f"Parsed {relative_path}: {len(doc.objects)} objects, "
        f"{len(doc.traits)} traits, {len(doc.refs)} refs"
    )
    return doc


def _parse_body(doc: ParsedDocument, lines: list[str], file_id: str, body_start: int) -> None:
    # Embedded objects that own following content, as (heading level, object id)
    stack: list[tuple[int, str]] = []
    fence: Optional[str] = None
    last_heading: Optional[tuple[int, str, int]] = None  # (level, text, line)
    previous_line_was_heading = False

    for idx in range(body_start, len(lines)):
        line_no = idx + 1
        line = lines[idx]

        fence_match = FENCE_RE.match(line)
        if fence_match:
            marker = fence_match.group(1)
            if fence is None:
                fence = marker
            elif marker == fence:
                fence = None
            previous_line_was_heading = False
            continue
        if fence is not None:
            continue

        if not line.strip():
            continue

        parent_id = stack[-1][1] if stack else file_id

        heading_match = HEADING_RE.match(line)
        if heading_match:
            level = len(heading_match.group(1))
            while stack and stack[-1][0] >= level:
                stack.pop()
            parent_id = stack[-1][1] if stack else file_id
            last_heading = (level, heading_match.group(2), line_no)
            _scan_inline(doc, line, line_no, parent_id)
            previous_line_was_heading = True
            continue

        if is_declaration_line(line):
            decl = parse_declaration(line, line_no)
            if decl is not None:
                heading = last_heading if previous_line_was_heading else None
                slug = decl.id or (slugify(heading[1]) if heading else "") or f"{decl.type_name}-{line_no}"
                obj = ParsedObject(
                    id=f"{file_id}#{slug}",
                    object_type=decl.type_name,
                    fields={k: v for k, v in decl.fields.items() if k != "id"},
                    line_start=heading[2] if heading else line_no,
                    field_lines={arg.key: (line_no, line_no) for arg in decl.args if arg.key != "id"},
                    value_spans={
                        arg.key: (arg.value_start, arg.value_end) for arg in decl.args if arg.key != "id"
                    },
                    heading=heading[1] if heading else None,
                    heading_level=heading[0] if heading else None,
                    parent_id=parent_id,
                    is_embedded=True,
                    decl_line=line_no,
                )
                doc.objects.append(obj)
                if heading:
                    stack.append((heading[0], obj.id))
                previous_line_was_heading = False
                continue

        previous_line_was_heading = False
        _scan_inline(doc, line, line_no, parent_id)


def _scan_inline(doc: ParsedDocument, line: str, line_no: int, parent_id: str) -> None:
    for annotation in find_traits(line):
        value = parse_trait_value(annotation.raw_value) if annotation.raw_value is not None else None
        doc.traits.append(
            ParsedTrait(
                trait_type=annotation.name,
                value=value,
                raw_value=annotation.raw_value,
                parent_object_id=parent_id,
                line=line_no,
                content=annotation.content,
                value_span=(
                    (annotation.value_start, annotation.value_end)
                    if annotation.value_start is not None
                    else None
                ),
            )
        )

    for match in find_all_in_line(line):
        doc.refs.append(
            ParsedRef(
                source_id=parent_id,
                target_raw=match.target,
                display_text=match.display,
                line=line_no,
                start=match.start,
                end=match.end,
            )
        )
