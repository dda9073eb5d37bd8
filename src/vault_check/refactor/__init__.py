"""Schema refactoring: type and field renames as plan-then-apply operations."""

from vault_check.refactor.errors import MoveValidationError, RefactorError, RenameConflictError
from vault_check.refactor.field_rename import apply_field_rename, plan_field_rename
from vault_check.refactor.plan import (
    Change,
    ChangeType,
    Conflict,
    DefaultPathRenamePlan,
    FieldRenamePlan,
    FileMove,
    RenameResult,
    TypeRenamePlan,
)
from vault_check.refactor.type_rename import (
    apply_type_rename,
    plan_type_rename,
    pluralize,
    suggest_default_path,
)

__all__ = [
    "MoveValidationError",
    "RefactorError",
    "RenameConflictError",
    "apply_field_rename",
    "plan_field_rename",
    "Change",
    "ChangeType",
    "Conflict",
    "DefaultPathRenamePlan",
    "FieldRenamePlan",
    "FileMove",
    "RenameResult",
    "TypeRenamePlan",
    "apply_type_rename",
    "plan_type_rename",
    "pluralize",
    "suggest_default_path",
]
