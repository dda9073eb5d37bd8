"""Schema system for vault-check.

The schema lives in the vault's schema.yaml and declares object types,
their fields and reusable traits. This package holds the data model, the
YAML loader, and value-level validation of fields and traits.
"""

from vault_check.schema.types import (
    BUILTIN_TYPES,
    FieldDefinition,
    FieldValue,
    Schema,
    TemplateDefinition,
    TraitDefinition,
    TypeDefinition,
    TypeTraitConfig,
    ValueKind,
    is_builtin_type,
    parse_field_type,
)
from vault_check.schema.loader import SchemaError, load_schema, parse_schema
from vault_check.schema.validator import (
    FieldError,
    validate_field_value,
    validate_fields,
    validate_trait_value,
)

__all__ = [
    # Types
    "BUILTIN_TYPES",
    "FieldDefinition",
    "FieldValue",
    "Schema",
    "TemplateDefinition",
    "TraitDefinition",
    "TypeDefinition",
    "TypeTraitConfig",
    "ValueKind",
    "is_builtin_type",
    "parse_field_type",
    # Loader
    "SchemaError",
    "load_schema",
    "parse_schema",
    # Validator
    "FieldError",
    "validate_field_value",
    "validate_fields",
    "validate_trait_value",
]
