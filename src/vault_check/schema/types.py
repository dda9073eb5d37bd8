"""Schema data model for vault-check.

The schema (schema.yaml) declares object types, their fields, and reusable
traits. Everything here is plain data with a few accessors -- the loader
builds these from YAML, the validator and refactor engines read them.

  types:
    person:
      default_path: people/
      name_field: name
      fields:
        name: { type: string, required: true }
        employer: { type: ref, target: company }
      traits:
        due: { required: true }
  traits:
    priority: { type: enum, values: [low, medium, high] }
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


# --- Field types ---

FIELD_STRING = "string"
FIELD_NUMBER = "number"
FIELD_URL = "url"
FIELD_DATE = "date"
FIELD_DATETIME = "datetime"
FIELD_BOOL = "bool"
FIELD_ENUM = "enum"
FIELD_REF = "ref"

BASE_FIELD_TYPES = frozenset(
    {
        FIELD_STRING,
        FIELD_NUMBER,
        FIELD_URL,
        FIELD_DATE,
        FIELD_DATETIME,
        FIELD_BOOL,
        FIELD_ENUM,
        FIELD_REF,
    }
)

# Aliases accepted in schema files
FIELD_TYPE_ALIASES = {"boolean": FIELD_BOOL, "text": FIELD_STRING, "int": FIELD_NUMBER}

BUILTIN_TYPES = ("page", "section", "date")


def is_builtin_type(name: str) -> bool:
    return name in BUILTIN_TYPES


def parse_field_type(spec: str) -> tuple[str, bool]:
    """Split a field type spec into (base type, is_array).

    Examples:
        "string"  -> ("string", False)
        "ref[]"   -> ("ref", True)
        "boolean" -> ("bool", False)
    """
    spec = (spec or "").strip()
    is_array = spec.endswith("[]")
    if is_array:
        spec = spec[:-2]
    base = FIELD_TYPE_ALIASES.get(spec, spec)
    return base, is_array


# --- Field values ---


class ValueKind(str, Enum):
    """Tag for FieldValue."""

    NULL = "null"
    STRING = "string"
    NUMBER = "number"
    BOOL = "bool"
    DATE = "date"
    DATETIME = "datetime"
    REF = "ref"
    ARRAY = "array"


_STRINGLIKE = (ValueKind.STRING, ValueKind.DATE, ValueKind.DATETIME, ValueKind.REF)


@dataclass(frozen=True)
class FieldValue:
    """A parsed field value that remembers the literal it was parsed from.

    `raw` is the source text as written (e.g. '"alice@example.com"' or
    '[[people/alice]]'); rewrites use it so that untouched values round-trip
    byte for byte.
    """

    kind: ValueKind
    value: Any = None  # str | float | bool | tuple[FieldValue, ...] | None
    raw: Optional[str] = None

    @classmethod
    def string(cls, s: str, raw: Optional[str] = None) -> "FieldValue":
        return cls(ValueKind.STRING, s, raw)

    @classmethod
    def number(cls, n: float, raw: Optional[str] = None) -> "FieldValue":
        return cls(ValueKind.NUMBER, float(n), raw)

    @classmethod
    def boolean(cls, b: bool, raw: Optional[str] = None) -> "FieldValue":
        return cls(ValueKind.BOOL, bool(b), raw)

    @classmethod
    def date(cls, s: str, raw: Optional[str] = None) -> "FieldValue":
        return cls(ValueKind.DATE, s, raw)

    @classmethod
    def datetime(cls, s: str, raw: Optional[str] = None) -> "FieldValue":
        return cls(ValueKind.DATETIME, s, raw)

    @classmethod
    def ref(cls, target: str, raw: Optional[str] = None) -> "FieldValue":
        return cls(ValueKind.REF, target, raw)

    @classmethod
    def array(cls, items: list["FieldValue"], raw: Optional[str] = None) -> "FieldValue":
        return cls(ValueKind.ARRAY, tuple(items), raw)

    @classmethod
    def null(cls, raw: Optional[str] = None) -> "FieldValue":
        return cls(ValueKind.NULL, None, raw)

    def is_null(self) -> bool:
        return self.kind == ValueKind.NULL

    def is_ref(self) -> bool:
        return self.kind == ValueKind.REF

    def as_string(self) -> Optional[str]:
        """String form for string-like kinds (string, date, datetime, ref)."""
        if self.kind in _STRINGLIKE:
            return self.value
        return None

    def as_number(self) -> Optional[float]:
        return self.value if self.kind == ValueKind.NUMBER else None

    def as_bool(self) -> Optional[bool]:
        return self.value if self.kind == ValueKind.BOOL else None

    def as_array(self) -> Optional[tuple["FieldValue", ...]]:
        return self.value if self.kind == ValueKind.ARRAY else None

    def as_ref(self) -> Optional[str]:
        return self.value if self.kind == ValueKind.REF else None

    def items(self) -> tuple["FieldValue", ...]:
        """Array items, or a 1-tuple of self for scalars."""
        if self.kind == ValueKind.ARRAY:
            return self.value
        return (self,)

    def display(self) -> str:
        """Human-readable form used in issue messages."""
        if self.kind == ValueKind.NULL:
            return ""
        if self.kind == ValueKind.BOOL:
            return "true" if self.value else "false"
        if self.kind == ValueKind.NUMBER:
            n = self.value
            return str(int(n)) if float(n).is_integer() else str(n)
        if self.kind == ValueKind.ARRAY:
            return "[" + ", ".join(item.display() for item in self.value) + "]"
        return str(self.value)

    def to_python(self) -> Any:
        if self.kind == ValueKind.ARRAY:
            return [item.to_python() for item in self.value]
        return self.value


# --- Schema definitions ---


@dataclass
class FieldDefinition:
    """A field declared on a type."""

    type: str  # base type: string, number, url, date, datetime, bool, enum, ref
    is_array: bool = False
    required: bool = False
    default: Any = None
    values: list[str] = field(default_factory=list)  # enum members
    target: Optional[str] = None  # ref target type
    min: Optional[float] = None
    max: Optional[float] = None
    description: Optional[str] = None

    @property
    def type_spec(self) -> str:
        return f"{self.type}[]" if self.is_array else self.type

    @property
    def is_ref(self) -> bool:
        return self.type == FIELD_REF

    @property
    def is_enum(self) -> bool:
        return self.type == FIELD_ENUM

    def has_default(self) -> bool:
        return self.default is not None


@dataclass
class TraitDefinition:
    """A reusable inline annotation (@name or @name(value))."""

    type: Optional[str] = None  # None/bool = marker trait
    values: list[str] = field(default_factory=list)
    default: Any = None
    description: Optional[str] = None

    @property
    def is_marker(self) -> bool:
        return self.type in (None, "", FIELD_BOOL)


@dataclass
class TypeTraitConfig:
    """Per-type trait binding."""

    required: bool = False
    default: Any = None


@dataclass
class TemplateDefinition:
    """Entry in the schema's top-level templates map."""

    file: str
    description: Optional[str] = None


@dataclass
class TypeDefinition:
    """An object type (person, project, meeting, ...)."""

    name: str
    fields: dict[str, FieldDefinition] = field(default_factory=dict)
    traits: dict[str, TypeTraitConfig] = field(default_factory=dict)
    name_field: Optional[str] = None
    default_path: Optional[str] = None
    template: Optional[str] = None  # template file path
    templates: list[str] = field(default_factory=list)  # template ids
    default_template: Optional[str] = None
    description: Optional[str] = None

    @property
    def required_traits(self) -> set[str]:
        return {name for name, cfg in self.traits.items() if cfg.required}


@dataclass
class Schema:
    """The complete schema loaded from schema.yaml."""

    version: int = 2
    types: dict[str, TypeDefinition] = field(default_factory=dict)
    traits: dict[str, TraitDefinition] = field(default_factory=dict)
    templates: dict[str, TemplateDefinition] = field(default_factory=dict)

    def __post_init__(self) -> None:
        ensure_builtin_types(self)

    def get_type(self, name: str) -> Optional[TypeDefinition]:
        return self.types.get(name)

    def has_type(self, name: str) -> bool:
        return name in self.types or is_builtin_type(name)

    def template_files_for(self, type_name: str) -> list[str]:
        """All template files bound to a type, deduplicated, in declaration order."""
        type_def = self.types.get(type_name)
        if type_def is None:
            return []

        files: list[str] = []
        if type_def.template:
            files.append(type_def.template.strip())
        for template_id in type_def.templates:
            template_def = self.templates.get(template_id.strip())
            if template_def and template_def.file:
                files.append(template_def.file.strip())
        return list(dict.fromkeys(files))


def ensure_builtin_types(schema: Schema) -> None:
    """Add built-in page/section/date types if the schema doesn't define them."""
    if "page" not in schema.types:
        schema.types["page"] = TypeDefinition(name="page")
    if "section" not in schema.types:
        schema.types["section"] = TypeDefinition(
            name="section",
            fields={
                "title": FieldDefinition(type=FIELD_STRING),
                "level": FieldDefinition(type=FIELD_NUMBER, min=1, max=6),
            },
        )
    # date is locked: daily notes carry metadata through traits
    schema.types["date"] = TypeDefinition(name="date")
