"""Schema refactoring CLI commands.

Registered as `vault-check schema rename type OLD NEW` and
`vault-check schema rename field TYPE OLD NEW`. Both preview by default and
write only with --confirm.
"""

import typer
from loguru import logger
from rich.table import Table

from vault_check.cli.app import app
from vault_check.cli.commands.command_utils import (
    console,
    get_config,
    load_vault,
    print_json,
    validate_format,
)
from vault_check.refactor import (
    Change,
    Conflict,
    RenameConflictError,
    apply_field_rename,
    apply_type_rename,
    plan_field_rename,
    plan_type_rename,
)

schema_app = typer.Typer(help="Schema management commands")
app.add_typer(schema_app, name="schema")

rename_app = typer.Typer(help="Rename types and fields across the schema and the vault")
schema_app.add_typer(rename_app, name="rename")


def _changes_table(title: str, changes: list[Change]) -> Table:
    table = Table(title=title)
    table.add_column("File", style="cyan")
    table.add_column("Line", justify="right")
    table.add_column("Change")
    table.add_column("Description")
    for change in changes:
        table.add_row(change.file_path, str(change.line or ""), change.change_type.value, change.description)
    return table


def _print_conflicts(conflicts: list[Conflict]) -> None:
    console.print(f"[red]Rename blocked by {len(conflicts)} conflict(s); no files were changed:[/red]")
    for conflict in conflicts:
        location = f"{conflict.file_path}:{conflict.line}" if conflict.line else conflict.file_path
        console.print(f"  [red]{location}[/red] {conflict.message}")
    console.print("Resolve each conflict by hand (merge or remove one of the keys), then re-run.")


# --- Rename type ---


@rename_app.command("type")
def rename_type(
    ctx: typer.Context,
    old_name: str = typer.Argument(..., help="Current type name"),
    new_name: str = typer.Argument(..., help="New type name"),
    confirm: bool = typer.Option(False, "--confirm", help="Apply the rename instead of previewing it"),
    rename_default_path: bool = typer.Option(
        False,
        "--rename-default-path",
        help="Also move files under the type's default_path and rewrite references to them",
    ),
    output_format: str = typer.Option("text", "--format", help="Output format: text or json"),
):
    """Rename a type in the schema and in every document that uses it."""
    try:
        output_format = validate_format(output_format)
        config = get_config(ctx)
        vault = load_vault(config)
        plan = plan_type_rename(
            vault.corpus,
            vault.schema,
            old_name,
            new_name,
            schema_file=config.schema_file,
            settings_file=config.vault_config_file,
        )
        dpr = plan.default_path_rename

        if not confirm:
            if output_format == "json":
                print_json({"preview": True, **plan.to_dict()})
                return
            console.print(_changes_table(f"Rename type: {plan.old_name} -> {plan.new_name}", plan.changes))
            if dpr is not None:
                if rename_default_path:
                    console.print(_changes_table(f"Directory rename: {dpr.old_path} -> {dpr.new_path}", dpr.changes))
                if dpr.available:
                    console.print(
                        f"\nDirectory rename available: {dpr.old_path} -> {dpr.new_path} "
                        f"({len(dpr.moves)} files). Add --rename-default-path to include it."
                    )
                else:
                    console.print(f"\n[yellow]Directory rename unavailable: {'; '.join(dpr.problems)}[/yellow]")
            console.print(f"\n{len(plan.changes)} changes. Re-run with --confirm to apply.")
            return

        result = apply_type_rename(config.vault_path, plan, rename_default_path=rename_default_path)
        if output_format == "json":
            print_json({"preview": False, **plan.to_dict(), **result.to_dict()})
            return
        console.print(
            f"[green]Renamed type '{plan.old_name}' to '{plan.new_name}': "
            f"{result.changes_applied} changes, {len(result.files_written)} files written.[/green]"
        )
        if result.default_path_renamed:
            console.print(f"[green]Moved {len(result.files_moved)} files to {dpr.new_path}[/green]")
    except RenameConflictError as e:
        _print_conflicts(e.conflicts)
        raise typer.Exit(1)
    except ValueError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)
    except Exception as e:
        if not isinstance(e, typer.Exit):
            logger.error(f"Error during schema rename type: {e}")
            typer.echo(f"Error during schema rename type: {e}", err=True)
            raise typer.Exit(1)
        raise


# --- Rename field ---


@rename_app.command("field")
def rename_field(
    ctx: typer.Context,
    type_name: str = typer.Argument(..., help="Type that owns the field"),
    old_field: str = typer.Argument(..., help="Current field name"),
    new_field: str = typer.Argument(..., help="New field name"),
    confirm: bool = typer.Option(False, "--confirm", help="Apply the rename instead of previewing it"),
    output_format: str = typer.Option("text", "--format", help="Output format: text or json"),
):
    """Rename a field on a type, in the schema and in every document of that type.

    Documents that already use both names block the rename; nothing is
    written until every conflict is resolved by hand.
    """
    try:
        output_format = validate_format(output_format)
        config = get_config(ctx)
        vault = load_vault(config)
        plan = plan_field_rename(
            vault.corpus,
            vault.schema,
            type_name,
            old_field,
            new_field,
            schema_file=config.schema_file,
            settings_file=config.vault_config_file,
        )

        # --- Conflict gate ---
        # Trigger: old and new keys both present in one scope
        # Why: merging two values would lose one of them silently
        # Outcome: report conflicts and exit 1, with or without --confirm
        if plan.has_conflicts:
            if output_format == "json":
                print_json({"preview": not confirm, "applied": False, **plan.to_dict()})
            else:
                _print_conflicts(plan.conflicts)
            raise typer.Exit(1)

        if not confirm:
            if output_format == "json":
                print_json({"preview": True, **plan.to_dict()})
                return
            title = f"Rename field: {plan.type_name}.{plan.old_field} -> {plan.new_field}"
            console.print(_changes_table(title, plan.changes))
            console.print(f"\n{len(plan.changes)} changes. Re-run with --confirm to apply.")
            return

        result = apply_field_rename(config.vault_path, plan)
        if output_format == "json":
            print_json({"preview": False, "applied": True, **plan.to_dict(), **result.to_dict()})
            return
        console.print(
            f"[green]Renamed field '{plan.old_field}' to '{plan.new_field}' on type '{plan.type_name}': "
            f"{result.changes_applied} changes, {len(result.files_written)} files written.[/green]"
        )
    except RenameConflictError as e:
        _print_conflicts(e.conflicts)
        raise typer.Exit(1)
    except ValueError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)
    except Exception as e:
        if not isinstance(e, typer.Exit):
            logger.error(f"Error during schema rename field: {e}")
            typer.echo(f"Error during schema rename field: {e}", err=True)
            raise typer.Exit(1)
        raise
