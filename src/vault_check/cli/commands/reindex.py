"""Reindex command: refresh the staleness manifest."""

import typer
from loguru import logger

from vault_check.cli.app import app
from vault_check.cli.commands.command_utils import console, get_config, load_vault
from vault_check.index import write_manifest


@app.command()
def reindex(ctx: typer.Context):
    """Record the current state of every markdown file so check can detect staleness."""
    try:
        config = get_config(ctx)
        vault = load_vault(config)
        manifest = write_manifest(config.index_path, vault.corpus)
        console.print(f"[green]Indexed {len(manifest.files)} files[/green]")
        if vault.corpus.failures:
            console.print(f"[yellow]{len(vault.corpus.failures)} files failed to parse[/yellow]")
    except ValueError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)
    except Exception as e:
        if not isinstance(e, typer.Exit):
            logger.error(f"Error during reindex: {e}")
            typer.echo(f"Error during reindex: {e}", err=True)
            raise typer.Exit(1)
        raise
