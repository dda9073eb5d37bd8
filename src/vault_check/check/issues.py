"""Validation findings: issues, missing references, undefined traits.

Issues are immutable once created. The Findings accumulator is owned by
whoever runs a validation pass; nothing here is module-level state, so two
passes never share counts.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from vault_check.check.confidence import Confidence, rank


class IssueLevel(str, Enum):
    ERROR = "error"
    WARNING = "warning"

    @property
    def label(self) -> str:
        return "ERROR" if self is IssueLevel.ERROR else "WARN"


class IssueType(str, Enum):
    """Stable issue identifiers used in JSON output."""

    UNKNOWN_TYPE = "unknown_type"
    MISSING_REFERENCE = "missing_reference"
    UNDEFINED_TRAIT = "undefined_trait"
    UNKNOWN_FRONTMATTER = "unknown_frontmatter_key"
    DUPLICATE_ID = "duplicate_object_id"
    MISSING_REQUIRED_FIELD = "missing_required_field"
    MISSING_REQUIRED_TRAIT = "missing_required_trait"
    INVALID_FIELD_VALUE = "invalid_field_value"
    INVALID_ENUM_VALUE = "invalid_enum_value"
    AMBIGUOUS_REFERENCE = "ambiguous_reference"
    INVALID_TRAIT_VALUE = "invalid_trait_value"
    PARSE_ERROR = "parse_error"
    WRONG_TARGET_TYPE = "wrong_target_type"
    INVALID_DATE_FORMAT = "invalid_date_format"
    SHORT_REF_COULD_BE_FULL_PATH = "short_ref_could_be_full_path"
    STALE_INDEX = "stale_index"
    # schema scope
    UNUSED_TYPE = "unused_type"
    UNUSED_TRAIT = "unused_trait"
    MISSING_TARGET_TYPE = "missing_target_type"
    UNDEFINED_REQUIRED_TRAIT = "undefined_required_trait"
    SELF_REFERENTIAL_REQUIRED = "self_referential_required"
    DUPLICATE_ALIAS = "duplicate_alias"


@dataclass(frozen=True)
class Issue:
    """A problem found in one file."""

    level: IssueLevel
    type: IssueType
    file_path: str
    line: int
    message: str
    value: str = ""
    fix_command: Optional[str] = None
    fix_hint: Optional[str] = None
    # Machine-usable replacement: the full path for a short wikilink, or the
    # unquoted member for a quoted enum value
    suggestion: Optional[str] = None
    # Columns of the source text holding `value` on `line`; a fix rewrites
    # only inside them
    span: Optional[tuple[int, int]] = None

    def to_dict(self) -> dict:
        data = {
            "level": self.level.value,
            "type": self.type.value,
            "file_path": self.file_path,
            "line": self.line,
            "message": self.message,
            "value": self.value,
        }
        for key in ("fix_command", "fix_hint", "suggestion"):
            if getattr(self, key):
                data[key] = getattr(self, key)
        return data


@dataclass(frozen=True)
class SchemaIssue:
    """A problem with the schema itself, not tied to a file."""

    level: IssueLevel
    type: IssueType
    message: str
    value: str = ""
    fix_command: Optional[str] = None
    fix_hint: Optional[str] = None

    def to_dict(self) -> dict:
        data = {
            "level": self.level.value,
            "type": self.type.value,
            "message": self.message,
            "value": self.value,
        }
        if self.fix_command:
            data["fix_command"] = self.fix_command
        if self.fix_hint:
            data["fix_hint"] = self.fix_hint
        return data


@dataclass
class MissingRef:
    target_path: str
    source_file: str
    source_object_id: str
    line: int
    inferred_type: Optional[str]
    confidence: Confidence
    field_source: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "target_path": self.target_path,
            "source_file": self.source_file,
            "source_object_id": self.source_object_id,
            "line": self.line,
            "inferred_type": self.inferred_type,
            "confidence": self.confidence.value,
            "field_source": self.field_source,
        }


MAX_TRAIT_LOCATIONS = 5


@dataclass
class UndefinedTrait:
    trait_name: str
    source_file: str  # first occurrence
    line: int
    has_value: bool = False
    usage_count: int = 1
    locations: list[str] = field(default_factory=list)  # "file:line", at most 5

    def to_dict(self) -> dict:
        return {
            "trait_name": self.trait_name,
            "usage_count": self.usage_count,
            "has_value": self.has_value,
            "locations": list(self.locations),
        }


# --- Accumulator ---


@dataclass
class Findings:
    """Cross-document state gathered during one validation pass."""

    missing_refs: dict[str, MissingRef] = field(default_factory=dict)  # keyed by target
    undefined_traits: dict[str, UndefinedTrait] = field(default_factory=dict)
    used_types: set[str] = field(default_factory=set)
    used_traits: set[str] = field(default_factory=set)
    short_refs: dict[str, str] = field(default_factory=dict)  # short ref -> full ID

    def track_missing_ref(self, ref: MissingRef) -> None:
        """Record a missing reference, keeping the highest confidence per target."""
        existing = self.missing_refs.get(ref.target_path)
        if existing is None or rank(ref.confidence) > rank(existing.confidence):
            self.missing_refs[ref.target_path] = ref

    def track_undefined_trait(self, name: str, file_path: str, line: int, has_value: bool) -> None:
        location = f"{file_path}:{line}"
        existing = self.undefined_traits.get(name)
        if existing is None:
            self.undefined_traits[name] = UndefinedTrait(
                trait_name=name,
                source_file=file_path,
                line=line,
                has_value=has_value,
                locations=[location],
            )
            return
        existing.usage_count += 1
        existing.has_value = existing.has_value or has_value
        if len(existing.locations) < MAX_TRAIT_LOCATIONS:
            existing.locations.append(location)


@dataclass
class ValidationReport:
    """Result of validating a whole vault."""

    issues: list[Issue] = field(default_factory=list)
    schema_issues: list[SchemaIssue] = field(default_factory=list)
    missing_refs: list[MissingRef] = field(default_factory=list)
    undefined_traits: list[UndefinedTrait] = field(default_factory=list)
    short_refs: dict[str, str] = field(default_factory=dict)
    file_count: int = 0

    @property
    def error_count(self) -> int:
        return sum(1 for i in [*self.issues, *self.schema_issues] if i.level == IssueLevel.ERROR)

    @property
    def warning_count(self) -> int:
        return sum(1 for i in [*self.issues, *self.schema_issues] if i.level == IssueLevel.WARNING)

    def passed(self, strict: bool = False) -> bool:
        """Errors always fail a run; warnings fail it only in strict mode."""
        if self.error_count:
            return False
        return not (strict and self.warning_count)

    def to_dict(self) -> dict:
        return {
            "file_count": self.file_count,
            "error_count": self.error_count,
            "warning_count": self.warning_count,
            "issues": [i.to_dict() for i in self.issues],
            "schema_issues": [i.to_dict() for i in self.schema_issues],
            "missing_refs": [m.to_dict() for m in self.missing_refs],
            "undefined_traits": [t.to_dict() for t in self.undefined_traits],
        }
