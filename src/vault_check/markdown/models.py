"""Parsed document structures produced by the markdown parser."""

from dataclasses import dataclass, field
from typing import Optional

from vault_check.schema.types import FieldValue


@dataclass
class ParsedRef:
    """A body wikilink. start/end are column offsets within the line."""

    source_id: str
    target_raw: str
    display_text: Optional[str]
    line: int
    start: int
    end: int


@dataclass
class ParsedTrait:
    trait_type: str
    value: Optional[FieldValue]
    raw_value: Optional[str]
    parent_object_id: str
    line: int
    content: str = ""
    value_span: Optional[tuple[int, int]] = None  # columns of raw_value in the line

    def has_value(self) -> bool:
        return self.value is not None


@dataclass
class ParsedObject:
    """A file-level object or an embedded ::type() declaration."""

    id: str
    object_type: str
    fields: dict[str, FieldValue] = field(default_factory=dict)
    line_start: int = 1
    # field name -> (first line, last line) of its source text
    field_lines: dict[str, tuple[int, int]] = field(default_factory=dict)
    # field name -> (start, end) columns of its value on its first line
    value_spans: dict[str, tuple[int, int]] = field(default_factory=dict)
    heading: Optional[str] = None
    heading_level: Optional[int] = None
    parent_id: Optional[str] = None
    is_embedded: bool = False
    decl_line: Optional[int] = None  # line of the ::type() declaration

    def field_line(self, name: str) -> int:
        span = self.field_lines.get(name)
        return span[0] if span else self.line_start


@dataclass
class ParsedDocument:
    file_path: str  # vault-relative, POSIX separators
    raw_content: str
    objects: list[ParsedObject] = field(default_factory=list)
    traits: list[ParsedTrait] = field(default_factory=list)
    refs: list[ParsedRef] = field(default_factory=list)
    frontmatter_end: int = 0  # line of the closing '---', 0 without frontmatter

    @property
    def file_object(self) -> Optional[ParsedObject]:
        return self.objects[0] if self.objects else None

    @property
    def lines(self) -> list[str]:
        return self.raw_content.split("\n")

    def embedded_objects(self) -> list[ParsedObject]:
        return [obj for obj in self.objects if obj.is_embedded]
