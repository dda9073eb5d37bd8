"""Schema loader for vault-check.

Parses schema.yaml into the typed dataclasses in schema.types. Field
declarations accept both the long form and a shorthand:

  fields:
    name: { type: string, required: true }
    email: string                  # shorthand: type only
    status:
      type: enum
      values: [active, paused]
      default: active

Type traits accept a list (all optional) or a map with per-trait config.
"""

from pathlib import Path
from typing import Any, Optional

import yaml
from loguru import logger

from vault_check.schema.types import (
    BASE_FIELD_TYPES,
    FIELD_ENUM,
    FIELD_REF,
    FieldDefinition,
    Schema,
    TemplateDefinition,
    TraitDefinition,
    TypeDefinition,
    TypeTraitConfig,
    parse_field_type,
)


class SchemaError(ValueError):
    """Raised when the schema file cannot be read or is structurally invalid."""

    pass


# --- Definition parsers ---


def _parse_field(type_name: str, field_name: str, data: Any) -> FieldDefinition:
    """Parse a single field declaration."""
    if isinstance(data, str):
        data = {"type": data}
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise SchemaError(f"Field '{type_name}.{field_name}' must be a mapping or a type name")

    base_type, is_array = parse_field_type(str(data.get("type", "string")))
    if base_type not in BASE_FIELD_TYPES:
        raise SchemaError(
            f"Field '{type_name}.{field_name}' has unknown type '{data.get('type')}'"
        )

    values = data.get("values") or []
    if not isinstance(values, list):
        values = [values]

    # --- Declaration invariants ---
    # Trigger: enum without values, or ref without target
    # Why: neither can ever validate a value, so the schema itself is broken
    # Outcome: refuse to load instead of emitting confusing per-file errors
    if base_type == FIELD_ENUM and not values:
        raise SchemaError(f"Enum field '{type_name}.{field_name}' must declare 'values'")

    target = data.get("target")
    if base_type == FIELD_REF and not (isinstance(target, str) and target.strip()):
        raise SchemaError(f"Ref field '{type_name}.{field_name}' must declare a 'target' type")

    return FieldDefinition(
        type=base_type,
        is_array=is_array,
        required=bool(data.get("required", False)),
        default=data.get("default"),
        values=[str(v) for v in values],
        target=target.strip() if isinstance(target, str) else None,
        min=data.get("min"),
        max=data.get("max"),
        description=data.get("description"),
    )


def _parse_type_traits(data: Any) -> dict[str, TypeTraitConfig]:
    if not data:
        return {}
    if isinstance(data, list):
        return {str(name): TypeTraitConfig() for name in data}
    if isinstance(data, dict):
        traits = {}
        for name, cfg in data.items():
            cfg = cfg if isinstance(cfg, dict) else {}
            traits[str(name)] = TypeTraitConfig(
                required=bool(cfg.get("required", False)),
                default=cfg.get("default"),
            )
        return traits
    return {}


def _parse_type(name: str, data: Any) -> TypeDefinition:
    data = data or {}
    if not isinstance(data, dict):
        raise SchemaError(f"Type '{name}' must be a mapping")

    fields_data = data.get("fields") or {}
    if not isinstance(fields_data, dict):
        raise SchemaError(f"Type '{name}' fields must be a mapping")

    templates = data.get("templates") or []
    if isinstance(templates, str):
        templates = [templates]

    return TypeDefinition(
        name=name,
        fields={
            str(field_name): _parse_field(name, str(field_name), field_data)
            for field_name, field_data in fields_data.items()
        },
        traits=_parse_type_traits(data.get("traits")),
        name_field=data.get("name_field"),
        default_path=data.get("default_path"),
        template=data.get("template"),
        templates=[str(t) for t in templates],
        default_template=data.get("default_template"),
        description=data.get("description"),
    )


def _parse_trait(name: str, data: Any) -> TraitDefinition:
    if isinstance(data, str):
        data = {"type": data}
    data = data or {}
    if not isinstance(data, dict):
        raise SchemaError(f"Trait '{name}' must be a mapping")

    trait_type = data.get("type")
    if trait_type:
        trait_type, _ = parse_field_type(str(trait_type))
        if trait_type not in BASE_FIELD_TYPES:
            raise SchemaError(f"Trait '{name}' has unknown type '{data.get('type')}'")

    values = data.get("values") or []
    if trait_type == FIELD_ENUM and not values:
        raise SchemaError(f"Enum trait '{name}' must declare 'values'")

    return TraitDefinition(
        type=trait_type or None,
        values=[str(v) for v in values],
        default=data.get("default"),
        description=data.get("description"),
    )


# --- Main Parser ---


def parse_schema(data: Optional[dict]) -> Schema:
    """Build a Schema from the parsed YAML document.

    Args:
        data: The YAML mapping loaded from schema.yaml (None for an empty file).

    Returns:
        A Schema with built-in types ensured.

    Raises:
        SchemaError: If a section has the wrong shape or a definition is invalid.
    """
    data = data or {}
    if not isinstance(data, dict):
        raise SchemaError("Schema must be a YAML mapping")

    types_data = data.get("types") or {}
    traits_data = data.get("traits") or {}
    templates_data = data.get("templates") or {}
    for section, value in (("types", types_data), ("traits", traits_data), ("templates", templates_data)):
        if not isinstance(value, dict):
            raise SchemaError(f"Schema section '{section}' must be a mapping")

    templates = {}
    for template_id, template_data in templates_data.items():
        if isinstance(template_data, str):
            template_data = {"file": template_data}
        template_data = template_data or {}
        templates[str(template_id)] = TemplateDefinition(
            file=str(template_data.get("file", "")),
            description=template_data.get("description"),
        )

    return Schema(
        version=int(data.get("version", 2)),
        types={str(name): _parse_type(str(name), td) for name, td in types_data.items()},
        traits={str(name): _parse_trait(str(name), td) for name, td in traits_data.items()},
        templates=templates,
    )


def load_schema(path: Path) -> Schema:
    """Load the schema file, returning a built-ins-only schema if it is missing.

    Raises:
        SchemaError: If the file cannot be read or parsed.
    """
    if not path.exists():
        logger.debug(f"No schema file at {path}, using built-in types only")
        return Schema()

    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise SchemaError(f"Failed to read schema file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise SchemaError(f"Failed to parse schema file {path}: {e}") from e

    schema = parse_schema(data)
    logger.debug(f"Loaded schema: {len(schema.types)} types, {len(schema.traits)} traits")
    return schema
