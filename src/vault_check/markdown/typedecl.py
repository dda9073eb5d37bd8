"""Embedded type declarations: ::type(key=value, ...) and the bare ::type form.

Arguments keep their source offsets so the refactor engine can rename a key
or rewrite a value without re-serializing the whole declaration.
"""

import re
from dataclasses import dataclass, field
from typing import Optional

from vault_check.markdown.wikilink import parse_exact
from vault_check.schema.types import FieldValue
from vault_check.schema.validator import is_valid_date, is_valid_datetime

DECL_WITH_ARGS_RE = re.compile(r"^\s*::([\w-]+)\s*\((.*)\)\s*$")
DECL_NO_ARGS_RE = re.compile(r"^\s*::([\w-]+)\s*$")


@dataclass(frozen=True)
class DeclArg:
    """One key=value argument. Offsets are columns in the source line."""

    key: str
    raw_value: str
    key_start: int
    key_end: int
    value_start: int
    value_end: int


@dataclass
class TypeDeclaration:
    type_name: str
    line: int
    args: list[DeclArg] = field(default_factory=list)
    type_start: int = 0
    type_end: int = 0

    @property
    def fields(self) -> dict[str, FieldValue]:
        """Parsed values keyed by argument name (later duplicates win)."""
        return {arg.key: parse_value(arg.raw_value) for arg in self.args}

    @property
    def id(self) -> Optional[str]:
        value = self.fields.get("id")
        return value.as_string() if value is not None else None

    def arg(self, key: str) -> Optional[DeclArg]:
        for a in self.args:
            if a.key == key:
                return a
        return None

    def keys(self) -> list[str]:
        return [a.key for a in self.args]


def is_declaration_line(line: str) -> bool:
    return line.strip().startswith("::")


def parse_declaration(line: str, line_number: int = 0) -> Optional[TypeDeclaration]:
    """Parse a declaration line. Returns None if the line is not a valid one."""
    m = DECL_WITH_ARGS_RE.match(line)
    if m:
        return TypeDeclaration(
            type_name=m.group(1),
            line=line_number,
            args=_split_args(m.group(2), m.start(2)),
            type_start=m.start(1),
            type_end=m.end(1),
        )

    m = DECL_NO_ARGS_RE.match(line)
    if m:
        return TypeDeclaration(
            type_name=m.group(1), line=line_number, type_start=m.start(1), type_end=m.end(1)
        )
    return None


def _split_args(args: str, offset: int) -> list[DeclArg]:
    """Split comma-separated key=value pairs, respecting quotes and brackets."""
    result: list[DeclArg] = []
    in_quotes = False
    depth = 0
    segment_start = 0

    def _flush(start: int, end: int) -> None:
        segment = args[start:end]
        eq = _top_level_equals(segment)
        if eq < 0:
            return
        raw_key = segment[:eq]
        key = raw_key.strip()
        if not key:
            return
        key_start = start + raw_key.index(key)
        raw_value = segment[eq + 1 :]
        value = raw_value.strip()
        value_start = start + eq + 1 + (raw_value.index(value) if value else 0)
        result.append(
            DeclArg(
                key=key,
                raw_value=value,
                key_start=offset + key_start,
                key_end=offset + key_start + len(key),
                value_start=offset + value_start,
                value_end=offset + value_start + len(value),
            )
        )

    for i, c in enumerate(args):
        if c == '"' and depth == 0:
            in_quotes = not in_quotes
        elif c == "[" and not in_quotes:
            depth += 1
        elif c == "]" and not in_quotes:
            depth -= 1
        elif c == "," and not in_quotes and depth == 0:
            _flush(segment_start, i)
            segment_start = i + 1
    _flush(segment_start, len(args))
    return result


def _top_level_equals(segment: str) -> int:
    in_quotes = False
    depth = 0
    for i, c in enumerate(segment):
        if c == '"' and depth == 0:
            in_quotes = not in_quotes
        elif c == "[" and not in_quotes:
            depth += 1
        elif c == "]" and not in_quotes:
            depth -= 1
        elif c == "=" and not in_quotes and depth == 0:
            return i
    return -1


def _split_array_items(inner: str) -> list[str]:
    items = []
    current = []
    depth = 0
    in_quotes = False
    for c in inner:
        if c == '"':
            in_quotes = not in_quotes
        elif c == "[" and not in_quotes:
            depth += 1
        elif c == "]" and not in_quotes:
            depth -= 1
        elif c == "," and not in_quotes and depth == 0:
            items.append("".join(current).strip())
            current = []
            continue
        current.append(c)
    items.append("".join(current).strip())
    return [item for item in items if item]


def parse_value(text: str) -> FieldValue:
    """Parse a declaration argument value.

    Double quotes are stripped; single quotes are kept as part of the string.
    """
    s = text.strip()
    if not s:
        return FieldValue.null(raw=text)

    link = parse_exact(s)
    if link is not None:
        return FieldValue.ref(link[0], raw=s)

    if s.startswith("[") and s.endswith("]"):
        items = [parse_value(item) for item in _split_array_items(s[1:-1])]
        return FieldValue.array([item for item in items if not item.is_null()], raw=s)

    if len(s) >= 2 and s.startswith('"') and s.endswith('"'):
        return FieldValue.string(s[1:-1], raw=s)

    if s in ("true", "false"):
        return FieldValue.boolean(s == "true", raw=s)

    try:
        return FieldValue.number(float(s), raw=s)
    except ValueError:
        pass

    if is_valid_datetime(s) and "T" in s:
        return FieldValue.datetime(s, raw=s)
    if is_valid_date(s):
        return FieldValue.date(s, raw=s)
    return FieldValue.string(s, raw=s)


def parse_trait_value(text: str) -> Optional[FieldValue]:
    """Parse the text inside @trait(...). Quotes are kept verbatim."""
    s = text.strip()
    if not s:
        return None
    link = parse_exact(s)
    if link is not None:
        return FieldValue.ref(link[0], raw=s)
    if is_valid_date(s):
        return FieldValue.date(s, raw=s)
    if "T" in s and is_valid_datetime(s):
        return FieldValue.datetime(s, raw=s)
    return FieldValue.string(s, raw=s)
