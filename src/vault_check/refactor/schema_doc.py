"""Schema file as a value: load, mutate keys, dump the whole document.

Re-serializing normalizes formatting and drops YAML comments; only keys and
values survive a rename.
"""

from pathlib import Path
from typing import Any, Optional

import yaml

from vault_check.file_utils import read_file
from vault_check.refactor.errors import RefactorError


def load_yaml_document(path: Path) -> tuple[str, Optional[dict]]:
    """Read a YAML file. Returns (raw text, mapping or None when absent/empty).

    Raises:
        RefactorError: If the file is not valid YAML or not a mapping
    """
    if not path.exists():
        return "", None
    raw = read_file(path)
    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise RefactorError(f"Failed to parse {path.name}: {e}") from e
    if data is None:
        return raw, None
    if not isinstance(data, dict):
        raise RefactorError(f"{path.name} must be a YAML mapping")
    return raw, data


def dump_yaml_document(data: dict) -> str:
    return yaml.safe_dump(data, sort_keys=False, default_flow_style=False, allow_unicode=True)


def rename_key(mapping: dict, old: str, new: str) -> dict:
    """Copy of mapping with `old` renamed to `new` in the same position."""
    return {(new if key == old else key): value for key, value in mapping.items()}


def field_map(type_entry: Any) -> dict:
    """The `fields` mapping of a raw type entry ({} when absent)."""
    if isinstance(type_entry, dict) and isinstance(type_entry.get("fields"), dict):
        return type_entry["fields"]
    return {}


def query_text(entry: Any) -> Optional[str]:
    """Query string of a saved query (shorthand string or {query: ...})."""
    if isinstance(entry, str):
        return entry
    if isinstance(entry, dict) and isinstance(entry.get("query"), str):
        return entry["query"]
    return None


def with_query_text(entry: Any, text: str) -> Any:
    if isinstance(entry, dict):
        return {**entry, "query": text}
    return text
