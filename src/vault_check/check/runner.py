"""Whole-vault check: parse failures, staleness, documents, schema."""

from pathlib import Path
from typing import Optional

from loguru import logger

from vault_check.check.issues import Issue, IssueLevel, IssueType, ValidationReport
from vault_check.check.validator import Validator
from vault_check.config import VaultSettings
from vault_check.index import check_staleness, collect_aliases
from vault_check.schema.types import Schema
from vault_check.vault import Corpus


def check_vault(
    corpus: Corpus,
    schema: Schema,
    settings: Optional[VaultSettings] = None,
    index_dir: Optional[Path] = None,
) -> ValidationReport:
    """Validate a loaded corpus.

    Parse failures become parse_error issues scoped to their file; the rest of
    the corpus is still validated. When `index_dir` is given and its manifest
    is out of date, a stale_index warning leads the issue list.
    """
    settings = settings or VaultSettings()
    aliases = collect_aliases(corpus.documents)

    validator = Validator.for_documents(
        schema,
        corpus.documents,
        aliases=aliases.aliases,
        duplicate_aliases=aliases.duplicates,
        daily_directory=settings.daily_directory,
    )
    report = validator.validate_vault(corpus.documents)
    report.file_count = len(corpus.documents) + len(corpus.failures)

    leading: list[Issue] = []
    if index_dir is not None:
        staleness = check_staleness(index_dir, corpus)
        if staleness.is_stale:
            count = len(staleness.stale_files)
            logger.debug(f"Index is stale: {staleness.stale_files}")
            leading.append(
                Issue(
                    level=IssueLevel.WARNING,
                    type=IssueType.STALE_INDEX,
                    file_path="",
                    line=0,
                    message=f"Index may be stale ({count} file(s) modified since last reindex)",
                    value=", ".join(staleness.stale_files[:5]),
                    fix_command="vault-check reindex",
                    fix_hint="Run 'vault-check reindex' to update the index",
                )
            )

    for failure in sorted(corpus.failures, key=lambda f: f.relative_path):
        leading.append(
            Issue(
                level=IssueLevel.ERROR,
                type=IssueType.PARSE_ERROR,
                file_path=failure.relative_path,
                line=1,
                message=failure.message,
                fix_hint="Fix the YAML frontmatter or markdown syntax",
            )
        )

    report.issues = leading + report.issues
    return report


def summarize(report: ValidationReport, top: int = 10) -> list[dict]:
    """Group issues by type for agent-friendly JSON output."""
    groups: dict[str, dict] = {}
    for issue in report.issues:
        group = groups.setdefault(
            issue.type.value,
            {"issue_type": issue.type.value, "count": 0, "values": {}, "fix_hint": issue.fix_hint},
        )
        group["count"] += 1
        if issue.value:
            group["values"][issue.value] = group["values"].get(issue.value, 0) + 1

    summary = []
    for issue_type in sorted(groups):
        group = groups[issue_type]
        values = sorted(group.pop("values").items(), key=lambda kv: (-kv[1], kv[0]))
        group["unique_values"] = len(values)
        group["top_values"] = [value for value, _ in values[:top]]
        if not group["fix_hint"]:
            del group["fix_hint"]
        summary.append(group)
    return summary
