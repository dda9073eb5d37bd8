"""Vault validation: issues, confidence, resolution, auto-fix."""

from vault_check.check.confidence import Confidence, classify_reference, infer_type_from_path
from vault_check.check.fixer import FixableIssue, FixKind, FixResult, apply_fixes, collect_fixable
from vault_check.check.issues import (
    Findings,
    Issue,
    IssueLevel,
    IssueType,
    MissingRef,
    SchemaIssue,
    UndefinedTrait,
    ValidationReport,
)
from vault_check.check.runner import check_vault
from vault_check.check.validator import Validator

__all__ = [
    "Confidence",
    "classify_reference",
    "infer_type_from_path",
    "FixableIssue",
    "FixKind",
    "FixResult",
    "apply_fixes",
    "collect_fixable",
    "Findings",
    "Issue",
    "IssueLevel",
    "IssueType",
    "MissingRef",
    "SchemaIssue",
    "UndefinedTrait",
    "ValidationReport",
    "check_vault",
    "Validator",
]
