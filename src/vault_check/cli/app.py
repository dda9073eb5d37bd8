from pathlib import Path
from typing import Optional

import typer

from vault_check.config import VaultCheckConfig
from vault_check.utils import setup_logging


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:  # pragma: no cover
        import vault_check

        typer.echo(f"vault-check version: {vault_check.__version__}")
        raise typer.Exit()


app = typer.Typer(name="vault-check")


@app.callback()
def app_callback(
    ctx: typer.Context,
    vault: Optional[Path] = typer.Option(
        None,
        "--vault",
        help="Root directory of the vault (defaults to the current directory)",
        envvar="VAULT_CHECK_VAULT_PATH",
    ),
    log_level: Optional[str] = typer.Option(
        None,
        "--log-level",
        help="Log level for stderr output (DEBUG, INFO, WARNING, ERROR)",
    ),
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """vault-check - schema validation and refactoring for markdown vaults."""

    # Command-line values override VAULT_CHECK_* environment settings
    overrides: dict = {}
    if vault is not None:
        overrides["vault_path"] = vault
    if log_level:
        overrides["log_level"] = log_level.upper()

    config = VaultCheckConfig(**overrides)
    setup_logging(config.log_level, config.log_file)
    ctx.obj = config
