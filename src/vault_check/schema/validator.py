"""Field and trait value validation against schema definitions.

This is the value-level half of validation: given a set of field values and
the type's field definitions, report what is missing or malformed. The
vault-level checks (references, unknown keys, traits across a document) live
in vault_check.check.validator and build on these results.

  Declared Type     -> Accepted Values
  -----------------------------------------------
  string            -> any string-like value
  number            -> numbers (min/max enforced)
  url               -> absolute URL with a scheme
  date              -> YYYY-MM-DD
  datetime          -> YYYY-MM-DDTHH:MM[:SS][offset]
  bool              -> true/false
  enum              -> one of the declared values
  ref               -> a reference (string or [[wikilink]])
  <type>[]          -> array whose items all match <type>
"""

import re
from dataclasses import dataclass
from datetime import datetime
from typing import Optional
from urllib.parse import urlparse

from vault_check.schema.types import (
    FIELD_BOOL,
    FIELD_DATE,
    FIELD_DATETIME,
    FIELD_ENUM,
    FIELD_NUMBER,
    FIELD_REF,
    FIELD_STRING,
    FIELD_URL,
    FieldDefinition,
    FieldValue,
    TraitDefinition,
    ValueKind,
)

# Keys every object may carry regardless of its type
IMPLICIT_FIELDS = frozenset({"type", "tags", "id", "alias", "aliases"})

# FieldError kinds
MISSING_REQUIRED = "missing_required"
INVALID_ENUM = "invalid_enum"
INVALID_DATE = "invalid_date"
INVALID_VALUE = "invalid_value"


@dataclass(frozen=True)
class FieldError:
    """A single field validation failure."""

    field: str
    kind: str  # missing_required | invalid_enum | invalid_date | invalid_value
    message: str
    value: Optional[str] = None

    def __str__(self) -> str:
        return f"Field '{self.field}': {self.message}"


# --- Scalar format checks ---

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_DATETIME_FORMATS = ("%Y-%m-%dT%H:%M", "%Y-%m-%dT%H:%M:%S")


def is_valid_date(value: str) -> bool:
    """True for a real calendar date in YYYY-MM-DD form."""
    if not _DATE_RE.match(value):
        return False
    try:
        datetime.strptime(value, "%Y-%m-%d")
    except ValueError:
        return False
    return True


def is_valid_datetime(value: str) -> bool:
    """True for YYYY-MM-DDTHH:MM, YYYY-MM-DDTHH:MM:SS or an RFC 3339 timestamp."""
    for fmt in _DATETIME_FORMATS:
        try:
            datetime.strptime(value, fmt)
            return True
        except ValueError:
            continue
    if "T" not in value:
        return False
    try:
        datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return False
    return True


def url_error(value: str) -> Optional[str]:
    """Return a message describing why value is not a usable URL, or None."""
    value = value.strip()
    if not value:
        return "expected URL"
    if any(c in value for c in " \t\r\n"):
        return "invalid URL format"

    parsed = urlparse(value)
    if not parsed.scheme:
        return "URL must include a scheme (e.g., https://)"
    if parsed.scheme.lower() in ("http", "https"):
        if not parsed.netloc:
            return "URL must include a host"
    elif not (parsed.netloc or parsed.path):
        return "URL is missing a target"
    return None


def parse_number(value: FieldValue) -> Optional[float]:
    """Numeric value of a number, or of a string that parses as one."""
    if value.kind == ValueKind.NUMBER:
        return value.value
    s = value.as_string()
    if s is None:
        return None
    try:
        return float(s.strip())
    except ValueError:
        return None


def is_quoted(value: str) -> bool:
    return len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"')


def unquote(value: str) -> str:
    """Strip any number of matching outer quote pairs."""
    while is_quoted(value):
        value = value[1:-1]
    return value


# --- Single value validation ---


def _scalar_error(base_type: str, item: FieldValue, definition) -> Optional[tuple[str, str]]:
    """Validate one scalar item. Returns (kind, message) on failure."""
    if base_type == FIELD_STRING:
        if item.as_string() is None:
            return INVALID_VALUE, "expected string"

    elif base_type == FIELD_NUMBER:
        n = parse_number(item)
        if n is None:
            return INVALID_VALUE, f"expected number, got '{item.display()}'"
        minimum = getattr(definition, "min", None)
        maximum = getattr(definition, "max", None)
        if minimum is not None and n < minimum:
            return INVALID_VALUE, f"value {item.display()} is below minimum {minimum}"
        if maximum is not None and n > maximum:
            return INVALID_VALUE, f"value {item.display()} is above maximum {maximum}"

    elif base_type == FIELD_URL:
        s = item.as_string()
        message = url_error(s) if s is not None else "expected URL"
        if message:
            return INVALID_VALUE, message

    elif base_type == FIELD_DATE:
        s = item.as_string()
        if s is None or not is_valid_date(s):
            return INVALID_DATE, f"invalid date '{item.display()}', expected YYYY-MM-DD"

    elif base_type == FIELD_DATETIME:
        s = item.as_string()
        if s is None or not is_valid_datetime(s):
            return INVALID_DATE, (
                f"invalid datetime '{item.display()}', expected YYYY-MM-DDTHH:MM or "
                f"YYYY-MM-DDTHH:MM:SS"
            )

    elif base_type == FIELD_BOOL:
        if item.as_bool() is None and item.as_string() not in ("true", "false"):
            return INVALID_VALUE, f"expected boolean, got '{item.display()}'"

    elif base_type == FIELD_ENUM:
        if item.kind in (ValueKind.ARRAY, ValueKind.NULL):
            return INVALID_ENUM, "expected enum value"
        text = item.display()
        if text not in definition.values:
            allowed = ", ".join(definition.values)
            return INVALID_ENUM, f"invalid enum value '{text}' (allowed: {allowed})"

    elif base_type == FIELD_REF:
        if not item.as_string():
            return INVALID_VALUE, "expected reference"

    return None


def validate_field_value(name: str, value: FieldValue, definition: FieldDefinition) -> Optional[FieldError]:
    """Validate one present field value against its definition."""
    if value.is_null():
        # Presence is the required-check's concern
        return None

    if definition.is_array:
        items = value.as_array()
        if items is None:
            # A single value is accepted where an array is declared
            items = (value,)
        for item in items:
            failure = _scalar_error(definition.type, item, definition)
            if failure:
                kind, message = failure
                return FieldError(name, kind, message, item.display())
        return None

    if value.kind == ValueKind.ARRAY:
        return FieldError(name, INVALID_VALUE, f"expected single {definition.type}, got array", value.display())

    failure = _scalar_error(definition.type, value, definition)
    if failure:
        kind, message = failure
        return FieldError(name, kind, message, value.display())
    return None


# --- Validation Logic ---


def validate_fields(
    fields: dict[str, FieldValue],
    field_defs: dict[str, FieldDefinition],
) -> list[FieldError]:
    """Validate an object's fields against its type's field definitions.

    Reports required fields that are missing (and have no default) first,
    then per-field type errors, both in field-name order so results are
    stable. Unknown fields are not reported here.
    """
    errors: list[FieldError] = []

    for name in sorted(field_defs):
        definition = field_defs[name]
        if not definition.required or definition.has_default():
            continue
        value = fields.get(name)
        if value is None or value.is_null() or value.as_string() == "":
            errors.append(FieldError(name, MISSING_REQUIRED, "required field is missing"))

    for name in sorted(fields):
        if name in IMPLICIT_FIELDS:
            continue
        definition = field_defs.get(name)
        if definition is None:
            continue
        error = validate_field_value(name, fields[name], definition)
        if error:
            errors.append(error)

    return errors


def validate_trait_value(definition: TraitDefinition, value: FieldValue) -> Optional[tuple[str, str]]:
    """Validate a present trait value. Returns (kind, message) on failure."""
    if definition.is_marker:
        if value.as_bool() is not None or value.as_string() in ("true", "false"):
            return None
        return INVALID_VALUE, f"invalid boolean value '{value.display()}' (expected true or false)"

    if definition.type == FIELD_ENUM and not definition.values:
        return INVALID_ENUM, "enum trait has no allowed values defined"

    return _scalar_error(definition.type, value, definition)
