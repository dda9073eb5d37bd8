"""Markdown parsing for vault documents."""

from vault_check.markdown.models import ParsedDocument, ParsedObject, ParsedRef, ParsedTrait
from vault_check.markdown.parser import parse_document

__all__ = [
    "ParsedDocument",
    "ParsedObject",
    "ParsedRef",
    "ParsedTrait",
    "parse_document",
]
