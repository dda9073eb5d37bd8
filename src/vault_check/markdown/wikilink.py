"""Wikilink scanning: [[target]] and [[target|display text]].

Targets and display text are trimmed. Matches preceded by '[' are skipped by
default so array syntax like [[[a]], [[b]]] isn't read as a link.
Code fences are the caller's concern.
"""

import re
from dataclasses import dataclass
from typing import Callable, Optional

# The target cannot contain [ or ] so nested brackets never match.
WIKILINK_RE = re.compile(r"\[\[([^\]\[|]+)(?:\|([^\]]+))?\]\]")


@dataclass(frozen=True)
class WikilinkMatch:
    """A wikilink found in a line. start/end are column offsets."""

    target: str
    display: Optional[str]
    start: int
    end: int
    literal: str


def parse_exact(text: str) -> Optional[tuple[str, Optional[str]]]:
    """Parse a string that is exactly one wikilink literal.

    Returns:
        (target, display) or None if the text is not a single wikilink
    """
    text = text.strip()
    if not (text.startswith("[[") and text.endswith("]]")) or text.startswith("[[["):
        return None
    inner = text[2:-2]
    if "[" in inner or "]" in inner:
        return None
    target, sep, display = inner.partition("|")
    target = target.strip()
    if not target:
        return None
    return target, (display.strip() if sep else None)


def find_all_in_line(line: str, allow_triple: bool = False) -> list[WikilinkMatch]:
    """Find every wikilink in a single line."""
    matches = []
    for m in WIKILINK_RE.finditer(line):
        if not allow_triple and m.start() > 0 and line[m.start() - 1] == "[":
            continue
        target = m.group(1).strip()
        if not target:
            continue
        display = m.group(2).strip() if m.group(2) is not None else None
        matches.append(WikilinkMatch(target, display, m.start(), m.end(), m.group(0)))
    return matches


def normalize_target(target: str) -> str:
    """Drop surrounding whitespace and a trailing .md extension."""
    target = target.strip()
    base, hash_sign, fragment = target.partition("#")
    if base.endswith(".md"):
        base = base[:-3]
    return f"{base}{hash_sign}{fragment}"


def rewrite_targets(line: str, replace: Callable[[str], Optional[str]]) -> str:
    """Rewrite wikilink targets in a line, preserving display text.

    `replace` receives each trimmed target and returns the new target, or
    None to leave that link untouched. Array-style triple brackets are
    included so [[[a]], [[b]]] items are rewritten too.
    """

    def _sub(m: re.Match) -> str:
        new_target = replace(m.group(1).strip())
        if new_target is None:
            return m.group(0)
        if m.group(2) is not None:
            return f"[[{new_target}|{m.group(2)}]]"
        return f"[[{new_target}]]"

    return WIKILINK_RE.sub(_sub, line)
