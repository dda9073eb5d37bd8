"""Inline trait annotations: @name and @name(value)."""

import re
from dataclasses import dataclass
from typing import Optional

# @ must start the line or follow whitespace or a list marker, so email
# addresses like alice@example.com are not traits.
TRAIT_RE = re.compile(r"(?:^|[\s\-\*])@(\w+)(?:\s*\(([^)]*)\))?")


@dataclass(frozen=True)
class TraitAnnotation:
    name: str
    raw_value: Optional[str]  # text inside the parens, None without parens
    content: str  # rest of the line after the annotation
    start: int
    end: int
    # columns of raw_value in the line, None without parens
    value_start: Optional[int] = None
    value_end: Optional[int] = None


def find_traits(line: str) -> list[TraitAnnotation]:
    """Find every trait annotation in a line."""
    annotations = []
    for m in TRAIT_RE.finditer(line):
        inner = m.group(2)
        raw_value = value_start = value_end = None
        if inner is not None:
            raw_value = inner.strip()
            value_start = m.start(2) + (len(inner) - len(inner.lstrip()))
            value_end = value_start + len(raw_value)
        annotations.append(
            TraitAnnotation(
                name=m.group(1),
                raw_value=raw_value,
                content=line[m.end() :].strip(),
                start=m.start(1) - 1,
                end=m.end(),
                value_start=value_start,
                value_end=value_end,
            )
        )
    return annotations
