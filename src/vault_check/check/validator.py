"""Schema-aware document validation.

The validator is built once per pass with the full set of object IDs, then
asked to validate each document and finally the schema itself. It never
writes; everything it finds goes into the returned issues and the caller's
Findings accumulator.
"""

from typing import Iterable, Optional

from loguru import logger

from vault_check.check.confidence import Confidence, classify_reference
from vault_check.check.issues import (
    Findings,
    Issue,
    IssueLevel,
    IssueType,
    MissingRef,
    SchemaIssue,
    ValidationReport,
)
from vault_check.check.resolver import Resolver
from vault_check.index import DuplicateAlias
from vault_check.markdown.models import ParsedDocument, ParsedObject, ParsedTrait
from vault_check.markdown.wikilink import find_all_in_line, normalize_target
from vault_check.schema.types import FieldValue, Schema, ValueKind, is_builtin_type
from vault_check.schema.validator import (
    IMPLICIT_FIELDS,
    INVALID_DATE,
    INVALID_ENUM,
    MISSING_REQUIRED,
    is_quoted,
    is_valid_date,
    unquote,
    validate_fields,
    validate_trait_value,
)

_FIELD_ERROR_TYPES = {
    MISSING_REQUIRED: IssueType.MISSING_REQUIRED_FIELD,
    INVALID_ENUM: IssueType.INVALID_ENUM_VALUE,
    INVALID_DATE: IssueType.INVALID_DATE_FORMAT,
}


def _enum_suggestion(value: Optional[str], allowed: list[str]) -> Optional[str]:
    """The unquoted member when value is a quoted form of a valid enum value."""
    if value and is_quoted(value):
        candidate = unquote(value)
        if candidate in allowed:
            return candidate
    return None


def build_name_field_map(schema: Schema, documents: Iterable[ParsedDocument]) -> dict[str, list[str]]:
    """Map display names (values of each type's name_field) to object IDs."""
    names: dict[str, list[str]] = {}
    for doc in documents:
        for obj in doc.objects:
            type_def = schema.get_type(obj.object_type)
            if type_def is None or not type_def.name_field:
                continue
            value = obj.fields.get(type_def.name_field)
            name = value.as_string() if value is not None else None
            if name:
                names.setdefault(name, []).append(obj.id)
    return names


class Validator:
    def __init__(
        self,
        schema: Schema,
        objects: dict[str, str],
        *,
        aliases: Optional[dict[str, str]] = None,
        duplicate_aliases: Optional[list[DuplicateAlias]] = None,
        daily_directory: str = "daily",
        name_field_map: Optional[dict[str, list[str]]] = None,
    ):
        """
        Args:
            schema: The loaded schema
            objects: Every known object ID mapped to its type
            aliases: alias -> object ID
            duplicate_aliases: aliases claimed by more than one object
            daily_directory: Directory holding YYYY-MM-DD daily notes
            name_field_map: name_field value -> object IDs
        """
        self.schema = schema
        self.object_types = dict(objects)
        self.duplicate_aliases = list(duplicate_aliases or [])
        self.resolver = Resolver(
            list(self.object_types),
            aliases=aliases,
            duplicate_aliases={d.alias: d.object_ids for d in self.duplicate_aliases},
            name_field_map=name_field_map,
            daily_directory=daily_directory,
        )

    @classmethod
    def for_documents(
        cls,
        schema: Schema,
        documents: list[ParsedDocument],
        *,
        aliases: Optional[dict[str, str]] = None,
        duplicate_aliases: Optional[list[DuplicateAlias]] = None,
        daily_directory: str = "daily",
    ) -> "Validator":
        objects: dict[str, str] = {}
        for doc in documents:
            for obj in doc.objects:
                objects.setdefault(obj.id, obj.object_type)
        return cls(
            schema,
            objects,
            aliases=aliases,
            duplicate_aliases=duplicate_aliases,
            daily_directory=daily_directory,
            name_field_map=build_name_field_map(schema, documents),
        )

    # --- Documents ---

    def validate_document(self, doc: ParsedDocument, findings: Optional[Findings] = None) -> list[Issue]:
        """Validate every object, trait and reference in one document."""
        findings = findings if findings is not None else Findings()
        issues: list[Issue] = []

        seen: set[str] = set()
        for obj in doc.objects:
            if obj.id in seen:
                issues.append(
                    Issue(
                        level=IssueLevel.ERROR,
                        type=IssueType.DUPLICATE_ID,
                        file_path=doc.file_path,
                        line=obj.line_start,
                        message=f"Duplicate object ID '{obj.id}'",
                        value=obj.id,
                        fix_hint="Rename one of the duplicate objects",
                    )
                )
            seen.add(obj.id)

        for obj in doc.objects:
            issues.extend(self._validate_object(doc, obj, findings))

        for trait in doc.traits:
            issues.extend(self._validate_trait(doc, trait, findings))

        for ref in doc.refs:
            issues.extend(
                self._validate_ref(
                    doc,
                    ref.target_raw,
                    ref.line,
                    ref.source_id,
                    findings,
                    wikilink_form=True,
                )
            )

        return issues

    def _validate_object(self, doc: ParsedDocument, obj: ParsedObject, findings: Findings) -> list[Issue]:
        issues: list[Issue] = []
        findings.used_types.add(obj.object_type)

        type_def = self.schema.get_type(obj.object_type)
        if type_def is None:
            if is_builtin_type(obj.object_type):
                return issues
            return [
                Issue(
                    level=IssueLevel.ERROR,
                    type=IssueType.UNKNOWN_TYPE,
                    file_path=doc.file_path,
                    line=obj.line_start,
                    message=f"Unknown type '{obj.object_type}'",
                    value=obj.object_type,
                    fix_hint=f"Add type '{obj.object_type}' to schema",
                )
            ]

        # --- Field values ---
        for error in validate_fields(obj.fields, type_def.fields):
            definition = type_def.fields.get(error.field)
            issue_type = _FIELD_ERROR_TYPES.get(error.kind, IssueType.INVALID_FIELD_VALUE)
            line = obj.line_start if error.kind == MISSING_REQUIRED else obj.field_line(error.field)
            suggestion = None
            if issue_type == IssueType.INVALID_ENUM_VALUE and definition is not None:
                suggestion = _enum_suggestion(error.value, definition.values)
            issues.append(
                Issue(
                    level=IssueLevel.ERROR,
                    type=issue_type,
                    file_path=doc.file_path,
                    line=line,
                    message=str(error),
                    value=error.value if error.value is not None else error.field,
                    fix_hint=(
                        f"Add '{error.field}' to the object's fields"
                        if error.kind == MISSING_REQUIRED
                        else None
                    ),
                    suggestion=suggestion,
                    span=obj.value_spans.get(error.field) if suggestion else None,
                )
            )

        # --- References held in fields ---
        for name in sorted(obj.fields):
            value = obj.fields[name]
            definition = type_def.fields.get(name)
            line = obj.field_line(name)
            if definition is not None and definition.is_ref:
                for target in _ref_targets(value, include_strings=True):
                    issues.extend(
                        self._validate_ref(
                            doc,
                            target,
                            line,
                            obj.id,
                            findings,
                            target_type=definition.target,
                            field_name=name,
                            wikilink_form=_field_uses_wikilink(doc, obj, name, target),
                        )
                    )
            else:
                for target in _ref_targets(value, include_strings=False):
                    issues.extend(
                        self._validate_ref(
                            doc,
                            target,
                            line,
                            obj.id,
                            findings,
                            wikilink_form=_field_uses_wikilink(doc, obj, name, target),
                        )
                    )

        # --- Unknown keys ---
        for name in sorted(obj.fields):
            if name in IMPLICIT_FIELDS or name in type_def.fields:
                continue
            where = "field" if obj.is_embedded else "frontmatter key"
            issues.append(
                Issue(
                    level=IssueLevel.WARNING,
                    type=IssueType.UNKNOWN_FRONTMATTER,
                    file_path=doc.file_path,
                    line=obj.field_line(name),
                    message=f"Unknown {where} '{name}' for type '{obj.object_type}'",
                    value=name,
                    fix_hint=f"Add field '{name}' to type '{obj.object_type}', or remove it",
                )
            )

        # --- Required traits ---
        used = {t.trait_type for t in doc.traits if t.parent_object_id == obj.id}
        for trait_name in sorted(type_def.required_traits - used):
            binding = type_def.traits[trait_name]
            trait_def = self.schema.traits.get(trait_name)
            if binding.default is not None or (trait_def is not None and trait_def.default is not None):
                continue
            issues.append(
                Issue(
                    level=IssueLevel.ERROR,
                    type=IssueType.MISSING_REQUIRED_TRAIT,
                    file_path=doc.file_path,
                    line=obj.line_start,
                    message=f"Type '{obj.object_type}' requires trait '@{trait_name}'",
                    value=trait_name,
                    fix_hint=f"Add @{trait_name} to the object's content",
                )
            )

        return issues

    def _validate_trait(self, doc: ParsedDocument, trait: ParsedTrait, findings: Findings) -> list[Issue]:
        findings.used_traits.add(trait.trait_type)
        name = trait.trait_type

        trait_def = self.schema.traits.get(name)
        if trait_def is None:
            findings.track_undefined_trait(name, doc.file_path, trait.line, trait.has_value())
            return [
                Issue(
                    level=IssueLevel.WARNING,
                    type=IssueType.UNDEFINED_TRAIT,
                    file_path=doc.file_path,
                    line=trait.line,
                    message=f"Undefined trait '@{name}'",
                    value=name,
                    fix_hint=f"Add trait '{name}' to schema",
                )
            ]

        if trait_def.is_marker:
            if trait.has_value():
                return [
                    Issue(
                        level=IssueLevel.WARNING,
                        type=IssueType.INVALID_TRAIT_VALUE,
                        file_path=doc.file_path,
                        line=trait.line,
                        message=f"Trait '@{name}' is a marker trait and should not have a value",
                        value=name,
                        fix_hint=f"Use @{name} instead of @{name}(...)",
                    )
                ]
            return []

        if not trait.has_value():
            if trait_def.default is not None:
                return []
            return [
                Issue(
                    level=IssueLevel.WARNING,
                    type=IssueType.INVALID_TRAIT_VALUE,
                    file_path=doc.file_path,
                    line=trait.line,
                    message=f"Trait '@{name}' expects a value",
                    value=name,
                    fix_hint=f"Add a value: @{name}(<value>)",
                )
            ]

        failure = validate_trait_value(trait_def, trait.value)
        if failure is None:
            return []

        kind, message = failure
        raw = trait.raw_value or trait.value.display()
        issue_type = _FIELD_ERROR_TYPES.get(kind, IssueType.INVALID_TRAIT_VALUE)
        return [
            Issue(
                level=IssueLevel.ERROR,
                type=issue_type,
                file_path=doc.file_path,
                line=trait.line,
                message=f"Trait '@{name}': {message}",
                value=raw,
                suggestion=(
                    _enum_suggestion(raw, trait_def.values)
                    if issue_type == IssueType.INVALID_ENUM_VALUE
                    else None
                ),
                span=trait.value_span,
            )
        ]

    def _validate_ref(
        self,
        doc: ParsedDocument,
        target_raw: str,
        line: int,
        source_id: str,
        findings: Findings,
        *,
        target_type: Optional[str] = None,
        field_name: Optional[str] = None,
        wikilink_form: bool = False,
    ) -> list[Issue]:
        target = normalize_target(target_raw)
        if not target:
            return []
        result = self.resolver.resolve(target)

        if result.ambiguous:
            return [
                Issue(
                    level=IssueLevel.ERROR,
                    type=IssueType.AMBIGUOUS_REFERENCE,
                    file_path=doc.file_path,
                    line=line,
                    message=f"Reference [[{target}]] is ambiguous (matches: {', '.join(result.matches)})",
                    value=target,
                    fix_hint="Use a more specific path to disambiguate",
                )
            ]

        if not result.resolved:
            inferred_type, confidence = classify_reference(self.schema, target, target_type)
            findings.track_missing_ref(
                MissingRef(
                    target_path=target,
                    source_file=doc.file_path,
                    source_object_id=source_id,
                    line=line,
                    inferred_type=inferred_type,
                    confidence=confidence,
                    field_source=field_name if confidence == Confidence.CERTAIN else None,
                )
            )
            fix_command = None
            if confidence == Confidence.CERTAIN:
                fix_command = "vault-check check --create-missing --confirm"
                hint = f"Create the missing {inferred_type}"
            elif confidence == Confidence.INFERRED:
                hint = f"Create the missing {inferred_type} (inferred from path)"
            else:
                hint = "Create the missing page"
            return [
                Issue(
                    level=IssueLevel.ERROR,
                    type=IssueType.MISSING_REFERENCE,
                    file_path=doc.file_path,
                    line=line,
                    message=f"Reference [[{target}]] not found",
                    value=target,
                    fix_command=fix_command,
                    fix_hint=hint,
                )
            ]

        issues: list[Issue] = []
        target_id = result.target_id
        if "/" not in target and "/" in target_id and not is_valid_date(target):
            findings.short_refs[target] = target_id
            issues.append(
                Issue(
                    level=IssueLevel.WARNING,
                    type=IssueType.SHORT_REF_COULD_BE_FULL_PATH,
                    file_path=doc.file_path,
                    line=line,
                    message=f"Short reference [[{target}]] could be written as [[{target_id}]] for clarity",
                    value=target,
                    fix_hint=f"Consider using full path: [[{target_id}]]",
                    suggestion=target_id if wikilink_form else None,
                )
            )

        if target_type:
            actual = self.object_types.get(target_id)
            if actual is not None and actual != target_type:
                issues.append(
                    Issue(
                        level=IssueLevel.ERROR,
                        type=IssueType.WRONG_TARGET_TYPE,
                        file_path=doc.file_path,
                        line=line,
                        message=(
                            f"Field '{field_name}' expects type '{target_type}', "
                            f"but [[{target}]] is type '{actual}'"
                        ),
                        value=target,
                        fix_hint=f"Reference a '{target_type}' object instead, or change the field's target type",
                    )
                )
        return issues

    # --- Schema ---

    def validate_schema(self, findings: Optional[Findings] = None) -> list[SchemaIssue]:
        """Check schema integrity.

        Unused types and traits are only reported when `findings` from a
        completed pass over the whole vault is given.
        """
        issues: list[SchemaIssue] = []
        types = self.schema.types

        for type_name in sorted(types):
            type_def = types[type_name]
            for field_name in sorted(type_def.fields):
                definition = type_def.fields[field_name]
                if not definition.is_ref or not definition.target:
                    continue
                if not self.schema.has_type(definition.target):
                    issues.append(
                        SchemaIssue(
                            level=IssueLevel.ERROR,
                            type=IssueType.MISSING_TARGET_TYPE,
                            message=(
                                f"Field '{type_name}.{field_name}' references "
                                f"non-existent type '{definition.target}'"
                            ),
                            value=definition.target,
                            fix_hint=f"Add type '{definition.target}' to schema or change the target",
                        )
                    )
                if definition.required and not definition.has_default() and definition.target == type_name:
                    issues.append(
                        SchemaIssue(
                            level=IssueLevel.WARNING,
                            type=IssueType.SELF_REFERENTIAL_REQUIRED,
                            message=(
                                f"Type '{type_name}' has required field '{field_name}' that references "
                                f"itself - impossible to create first instance"
                            ),
                            value=f"{type_name}.{field_name}",
                            fix_hint="Make the field optional (required: false) or add a default value",
                        )
                    )

            for trait_name in sorted(type_def.required_traits):
                if trait_name not in self.schema.traits:
                    issues.append(
                        SchemaIssue(
                            level=IssueLevel.ERROR,
                            type=IssueType.UNDEFINED_REQUIRED_TRAIT,
                            message=(
                                f"Type '{type_name}' requires trait '@{trait_name}', "
                                f"which is not defined in the schema"
                            ),
                            value=trait_name,
                            fix_hint=f"Add trait '{trait_name}' to schema",
                        )
                    )

        for duplicate in self.duplicate_aliases:
            issues.append(
                SchemaIssue(
                    level=IssueLevel.WARNING,
                    type=IssueType.DUPLICATE_ALIAS,
                    message=(
                        f"Alias '{duplicate.alias}' is used by multiple objects: "
                        f"{', '.join(duplicate.object_ids)}"
                    ),
                    value=duplicate.alias,
                    fix_hint="Give each object a distinct alias",
                )
            )

        if findings is not None:
            for type_name in sorted(types):
                if is_builtin_type(type_name) or type_name in findings.used_types:
                    continue
                issues.append(
                    SchemaIssue(
                        level=IssueLevel.WARNING,
                        type=IssueType.UNUSED_TYPE,
                        message=f"Type '{type_name}' is defined in schema but never used",
                        value=type_name,
                        fix_hint=f"Create a file with 'type: {type_name}' or remove the type from schema",
                    )
                )
            for trait_name in sorted(self.schema.traits):
                if trait_name in findings.used_traits:
                    continue
                issues.append(
                    SchemaIssue(
                        level=IssueLevel.WARNING,
                        type=IssueType.UNUSED_TRAIT,
                        message=f"Trait '@{trait_name}' is defined in schema but never used",
                        value=trait_name,
                        fix_hint=f"Use @{trait_name} in a file or remove the trait from schema",
                    )
                )

        return issues

    # --- Whole vault ---

    def validate_vault(self, documents: list[ParsedDocument]) -> ValidationReport:
        """Validate every document, then the schema, in one pass."""
        findings = Findings()
        report = ValidationReport(file_count=len(documents))

        for doc in sorted(documents, key=lambda d: d.file_path):
            report.issues.extend(self.validate_document(doc, findings))

        report.schema_issues = self.validate_schema(findings)
        report.missing_refs = [findings.missing_refs[k] for k in sorted(findings.missing_refs)]
        report.undefined_traits = [findings.undefined_traits[k] for k in sorted(findings.undefined_traits)]
        report.short_refs = dict(sorted(findings.short_refs.items()))

        logger.debug(
            f"Validated {len(documents)} documents: "
            f"{report.error_count} errors, {report.warning_count} warnings"
        )
        return report


# --- Helpers ---


def _ref_targets(value: FieldValue, include_strings: bool) -> list[str]:
    """Reference targets held in a field value.

    Ref-typed fields treat plain strings as references too; other fields only
    contribute explicit [[wikilinks]].
    """
    targets = []
    for item in value.items():
        if item.kind == ValueKind.REF:
            targets.append(item.value)
        elif include_strings and item.kind == ValueKind.STRING and item.value.strip():
            targets.append(item.value.strip())
    return targets


def _field_uses_wikilink(doc: ParsedDocument, obj: ParsedObject, field_name: str, target: str) -> bool:
    span = obj.field_lines.get(field_name)
    if span is None:
        return False
    lines = doc.lines
    for line in lines[span[0] - 1 : span[1]]:
        for match in find_all_in_line(line, allow_triple=True):
            if normalize_target(match.target) == normalize_target(target):
                return True
    return False
