"""Bounded auto-fix engine.

Only two issue shapes are ever fixed:

  short_ref      [[alice]] -> [[people/alice]] when the short ref resolves
                 to exactly one object
  quoted_enum    'high' -> high when the unquoted text is a valid member

Everything else (path-prefix typos included) needs a human: both spellings
could be intended. Fixes are grouped per file and applied bottom-up; all new
file contents are staged before the first write, and nothing is written
unless confirm=True.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional

from loguru import logger

from vault_check.check.issues import Issue, IssueType
from vault_check.file_utils import read_file, write_file_atomic
from vault_check.markdown.wikilink import normalize_target, rewrite_targets


class FixKind(str, Enum):
    SHORT_REF = "short_ref"
    QUOTED_ENUM = "quoted_enum"


@dataclass(frozen=True)
class FixableIssue:
    file_path: str
    line: int
    kind: FixKind
    old_value: str
    new_value: str
    description: str
    # Columns of the value's source text; quoted enum fixes need one
    span: Optional[tuple[int, int]] = None


@dataclass
class FixResult:
    file_count: int = 0
    issue_count: int = 0
    applied: bool = False
    files: list[str] = field(default_factory=list)
    skipped: list[FixableIssue] = field(default_factory=list)


_FIX_KINDS = {
    IssueType.SHORT_REF_COULD_BE_FULL_PATH: FixKind.SHORT_REF,
    IssueType.INVALID_ENUM_VALUE: FixKind.QUOTED_ENUM,
}


def collect_fixable(issues: list[Issue]) -> list[FixableIssue]:
    """Select the issues that can be fixed without guessing."""
    fixes: dict[tuple, FixableIssue] = {}
    for issue in issues:
        kind = _FIX_KINDS.get(issue.type)
        if kind is None or not issue.suggestion or not issue.file_path:
            continue
        if issue.suggestion == issue.value:
            continue
        if kind == FixKind.QUOTED_ENUM and issue.span is None:
            continue
        if kind == FixKind.SHORT_REF:
            description = f"[[{issue.value}]] -> [[{issue.suggestion}]]"
        else:
            description = f"{issue.value} -> {issue.suggestion}"
        key = (issue.file_path, issue.line, kind, issue.value, issue.span)
        fixes.setdefault(
            key,
            FixableIssue(
                file_path=issue.file_path,
                line=issue.line,
                kind=kind,
                old_value=issue.value,
                new_value=issue.suggestion,
                description=description,
                span=issue.span if kind == FixKind.QUOTED_ENUM else None,
            ),
        )
    return sorted(fixes.values(), key=lambda f: (f.file_path, f.line, f.old_value))


def _fix_line(line: str, fix: FixableIssue) -> str:
    if fix.kind == FixKind.SHORT_REF:
        old = normalize_target(fix.old_value)
        return rewrite_targets(line, lambda target: fix.new_value if normalize_target(target) == old else None)
    if fix.span is None:
        return line
    start, end = fix.span
    found = line.find(fix.old_value, start, end)
    if found < 0:
        return line
    return line[:found] + fix.new_value + line[found + len(fix.old_value) :]


def _apply_order(fix: FixableIssue) -> tuple:
    # Bottom-up so earlier line numbers stay valid; within a line, spanned
    # fixes run right to left before whole-line wikilink rewrites
    return (-fix.line, fix.span is None, -(fix.span[0] if fix.span else 0), fix.old_value)


def apply_fixes(vault_root: Path, fixes: list[FixableIssue], confirm: bool = False) -> FixResult:
    """Apply fixes, or preview them when confirm is False.

    Raises:
        FileError: If an affected file cannot be read or written
    """
    vault_root = Path(vault_root)
    by_file: dict[str, list[FixableIssue]] = {}
    for fix in fixes:
        by_file.setdefault(fix.file_path, []).append(fix)

    result = FixResult()
    staged: dict[str, str] = {}

    for relative in sorted(by_file):
        path = vault_root / relative
        content = read_file(path)

        lines = content.split("\n")
        applied_here = 0
        for fix in sorted(by_file[relative], key=_apply_order):
            index = fix.line - 1
            if index < 0 or index >= len(lines):
                logger.warning(f"Skipping fix outside file: {relative}:{fix.line}")
                result.skipped.append(fix)
                continue
            new_line = _fix_line(lines[index], fix)
            if new_line == lines[index]:
                logger.warning(f"Skipping fix with no match: {relative}:{fix.line} ({fix.description})")
                result.skipped.append(fix)
                continue
            lines[index] = new_line
            applied_here += 1

        if applied_here:
            staged[relative] = "\n".join(lines)
            result.issue_count += applied_here

    result.files = sorted(staged)
    result.file_count = len(staged)

    if not confirm:
        return result

    for relative in result.files:
        write_file_atomic(vault_root / relative, staged[relative])
        logger.info(f"Fixed {relative}")
    result.applied = True
    return result
