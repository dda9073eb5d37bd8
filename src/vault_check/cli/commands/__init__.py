"""CLI commands for vault-check."""

from . import check, reindex, schema

__all__ = [
    "check",
    "reindex",
    "schema",
]
