"""Confidence classification for references whose target doesn't exist.

  Certain   the reference sits in a ref field with an explicit target type
  Inferred  the path starts with some type's default_path
  Unknown   neither

Only Certain references may be acted on without asking (e.g. creating the
missing page).
"""

from enum import Enum
from typing import Optional

from vault_check.schema.types import Schema
from vault_check.utils import normalize_dir


class Confidence(str, Enum):
    CERTAIN = "certain"
    INFERRED = "inferred"
    UNKNOWN = "unknown"


_RANK = {Confidence.UNKNOWN: 0, Confidence.INFERRED: 1, Confidence.CERTAIN: 2}


def rank(confidence: Confidence) -> int:
    """Ordering used when the same target is seen more than once in a pass."""
    return _RANK[confidence]


def infer_type_from_path(schema: Schema, target: str) -> Optional[str]:
    """Type whose default_path is a strict prefix of target.

    The longest default_path wins; ties go to the alphabetically first type.
    """
    target = target.strip().lstrip("/")
    best: Optional[tuple[int, str]] = None
    for name in sorted(schema.types):
        prefix = normalize_dir(schema.types[name].default_path)
        if not prefix or not target.startswith(prefix) or len(target) <= len(prefix):
            continue
        if best is None or len(prefix) > best[0]:
            best = (len(prefix), name)
    return best[1] if best else None


def classify_reference(
    schema: Schema, target: str, target_type: Optional[str] = None
) -> tuple[Optional[str], Confidence]:
    """Classify a dangling reference.

    Args:
        schema: The vault schema
        target: The reference as written (e.g. "events/offsite")
        target_type: The ref field's declared target type, if any

    Returns:
        (inferred type or None, confidence)
    """
    if target_type:
        return target_type, Confidence.CERTAIN
    inferred = infer_type_from_path(schema, target)
    if inferred:
        return inferred, Confidence.INFERRED
    return None, Confidence.UNKNOWN
