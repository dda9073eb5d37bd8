"""utility functions for commands"""

import json
from dataclasses import dataclass
from typing import Any

import typer
from loguru import logger
from rich.console import Console

from vault_check.config import VaultCheckConfig, VaultSettings, load_vault_settings
from vault_check.schema import Schema, load_schema
from vault_check.vault import Corpus, load_corpus

console = Console()

OUTPUT_FORMATS = ("text", "json")


@dataclass
class VaultContext:
    """Everything a command needs about the vault, loaded once per run."""

    config: VaultCheckConfig
    settings: VaultSettings
    schema: Schema
    corpus: Corpus


def get_config(ctx: typer.Context) -> VaultCheckConfig:
    if isinstance(ctx.obj, VaultCheckConfig):
        return ctx.obj
    return VaultCheckConfig()


def load_vault(config: VaultCheckConfig) -> VaultContext:
    """Load settings, schema and the parsed corpus.

    Raises:
        ValueError: If the vault directory doesn't exist or a config file is invalid
    """
    if not config.vault_path.is_dir():
        raise ValueError(f"Vault directory not found: {config.vault_path}")

    settings = load_vault_settings(config.vault_config_path)
    schema = load_schema(config.schema_path)
    corpus = load_corpus(config.vault_path, settings)
    logger.debug(f"Loaded vault {config.vault_path}: {len(corpus.documents)} documents")
    return VaultContext(config=config, settings=settings, schema=schema, corpus=corpus)


def validate_format(output_format: str) -> str:
    output_format = output_format.lower()
    if output_format not in OUTPUT_FORMATS:
        raise ValueError(f"Unknown format '{output_format}' (expected one of: {', '.join(OUTPUT_FORMATS)})")
    return output_format


def print_json(data: Any) -> None:
    print(json.dumps(data, indent=2, ensure_ascii=True, default=str))
