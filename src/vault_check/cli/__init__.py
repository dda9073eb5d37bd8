"""CLI tools for vault-check."""
