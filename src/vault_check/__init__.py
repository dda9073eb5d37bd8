"""vault-check - schema-aware consistency checks and refactors for markdown vaults."""

__version__ = "0.4.0"
