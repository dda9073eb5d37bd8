"""Vault check command.

`vault-check check` validates every document against the schema and exits
non-zero on errors (or on warnings with --strict). Two remediation modes
share the same preview-by-default contract:

  --fix             rewrite short wikilinks and quoted enum values
  --create-missing  create stub pages for Certain missing references
"""

from dataclasses import asdict
from pathlib import Path

import typer
from loguru import logger
from rich.table import Table

from vault_check.check import (
    Confidence,
    IssueLevel,
    ValidationReport,
    apply_fixes,
    check_vault,
    collect_fixable,
)
from vault_check.check.runner import summarize
from vault_check.cli.app import app
from vault_check.cli.commands.command_utils import (
    VaultContext,
    console,
    get_config,
    load_vault,
    print_json,
    validate_format,
)
from vault_check.file_utils import FileError
from vault_check.pages import create_missing_page


# --- Text output ---


def _print_report(report: ValidationReport, by_file: bool) -> None:
    if report.schema_issues:
        console.print("[bold]Schema[/bold]")
        for issue in report.schema_issues:
            color = "red" if issue.level == IssueLevel.ERROR else "yellow"
            console.print(f"  [{color}]{issue.level.label}[/{color}] {issue.message}")
            if issue.fix_hint:
                console.print(f"      [dim]{issue.fix_hint}[/dim]")

    if by_file:
        current = None
        for issue in sorted(report.issues, key=lambda i: (i.file_path, i.line)):
            if issue.file_path != current:
                current = issue.file_path
                console.print(f"[bold cyan]{current or '(vault)'}[/bold cyan]")
            color = "red" if issue.level == IssueLevel.ERROR else "yellow"
            console.print(f"  [{color}]{issue.level.label}[/{color}] line {issue.line}: {issue.message}")
    elif report.issues:
        table = Table(title="Issues")
        table.add_column("Level", justify="center")
        table.add_column("Location", style="cyan")
        table.add_column("Type")
        table.add_column("Message")
        for issue in report.issues:
            level = "[red]error[/red]" if issue.level == IssueLevel.ERROR else "[yellow]warning[/yellow]"
            location = f"{issue.file_path}:{issue.line}" if issue.file_path else "-"
            table.add_row(level, location, issue.type.value, issue.message)
        console.print(table)

    if report.missing_refs:
        console.print(f"\n[bold]Missing references ({len(report.missing_refs)})[/bold]")
        for ref in report.missing_refs:
            suggested = f" as {ref.inferred_type}" if ref.inferred_type else ""
            console.print(f"  {ref.target_path} [dim]({ref.confidence.value}{suggested})[/dim]")

    if report.undefined_traits:
        console.print(f"\n[bold]Undefined traits ({len(report.undefined_traits)})[/bold]")
        for trait in report.undefined_traits:
            console.print(f"  @{trait.trait_name} [dim]used {trait.usage_count} time(s)[/dim]")

    console.print(
        f"\nChecked {report.file_count} files: "
        f"{report.error_count} errors, {report.warning_count} warnings"
    )


# --- Remediation ---


def _run_fix(vault: VaultContext, report: ValidationReport, confirm: bool, output_format: str) -> None:
    fixes = collect_fixable(report.issues)
    result = apply_fixes(vault.config.vault_path, fixes, confirm=confirm)

    if output_format == "json":
        print_json(
            {
                "preview": not confirm,
                "fixable": [asdict(fix) for fix in fixes],
                "file_count": result.file_count,
                "issue_count": result.issue_count,
                "applied": result.applied,
                "skipped": len(result.skipped),
            }
        )
        return

    if not fixes:
        console.print("[green]No auto-fixable issues found.[/green]")
        return
    for fix in fixes:
        console.print(f"  [cyan]{fix.file_path}:{fix.line}[/cyan] {fix.description}")
    if confirm:
        console.print(f"\n[green]Fixed {result.issue_count} issues in {result.file_count} files.[/green]")
    else:
        console.print(
            f"\nWould fix {result.issue_count} issues in {result.file_count} files. "
            "Re-run with --confirm to apply."
        )


def _run_create_missing(
    vault: VaultContext, report: ValidationReport, confirm: bool, output_format: str
) -> None:
    # Only Certain refs name their type unambiguously; the rest are listed
    certain = [ref for ref in report.missing_refs if ref.confidence == Confidence.CERTAIN and ref.inferred_type]
    uncertain = [ref for ref in report.missing_refs if ref not in certain]

    created: list[str] = []
    failed: list[dict] = []
    if confirm:
        for ref in certain:
            try:
                path = create_missing_page(vault.config.vault_path, vault.schema, ref.target_path, ref.inferred_type)
            except (ValueError, FileError) as e:
                logger.warning(f"Could not create page for {ref.target_path}: {e}")
                failed.append({"target": ref.target_path, "error": str(e)})
                continue
            created.append(Path(path).relative_to(vault.config.vault_path).as_posix())

    if output_format == "json":
        print_json(
            {
                "preview": not confirm,
                "certain": [ref.to_dict() for ref in certain],
                "needs_review": [ref.to_dict() for ref in uncertain],
                "created": created,
                "failed": failed,
            }
        )
        return

    for ref in certain:
        console.print(f"  [green]{ref.target_path}[/green] (type: {ref.inferred_type})")
    for ref in uncertain:
        suggested = f", suggested type: {ref.inferred_type}" if ref.inferred_type else ""
        console.print(f"  [yellow]{ref.target_path}[/yellow] ({ref.confidence.value}{suggested}) needs review")
    if confirm:
        console.print(f"\n[green]Created {len(created)} pages.[/green]")
    elif certain:
        console.print(f"\nWould create {len(certain)} pages. Re-run with --confirm to create them.")


@app.command()
def check(
    ctx: typer.Context,
    strict: bool = typer.Option(False, "--strict", help="Treat warnings as failures"),
    fix: bool = typer.Option(False, "--fix", help="Auto-fix short wikilinks and quoted enum values"),
    create_missing: bool = typer.Option(
        False, "--create-missing", help="Create pages for missing references whose type is certain"
    ),
    confirm: bool = typer.Option(False, "--confirm", help="Apply changes instead of previewing them"),
    output_format: str = typer.Option("text", "--format", help="Output format: text or json"),
    by_file: bool = typer.Option(False, "--by-file", help="Group text output by file"),
):
    """Validate the vault against its schema.

    Exits with code 1 if any errors are found, or any warnings with --strict.
    --fix and --create-missing preview their changes unless --confirm is given.
    """
    try:
        output_format = validate_format(output_format)
        config = get_config(ctx)
        vault = load_vault(config)
        report = check_vault(vault.corpus, vault.schema, vault.settings, config.index_path)

        if fix:
            _run_fix(vault, report, confirm, output_format)
            return
        if create_missing:
            _run_create_missing(vault, report, confirm, output_format)
            return

        if output_format == "json":
            data = report.to_dict()
            data["summary"] = summarize(report)
            data["passed"] = report.passed(strict)
            print_json(data)
        else:
            _print_report(report, by_file)

        if not report.passed(strict):
            raise typer.Exit(1)
    except ValueError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)
    except Exception as e:
        if not isinstance(e, typer.Exit):
            logger.error(f"Error during check: {e}")
            typer.echo(f"Error during check: {e}", err=True)
            raise typer.Exit(1)
        raise
