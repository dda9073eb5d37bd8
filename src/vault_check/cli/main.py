"""Main CLI entry point for vault-check."""  # pragma: no cover

from vault_check.cli.app import app  # pragma: no cover

# Register commands
from vault_check.cli.commands import check, reindex, schema  # noqa: F401  # pragma: no cover

if __name__ == "__main__":  # pragma: no cover
    # start the app
    app()
