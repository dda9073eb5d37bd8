"""Common test fixtures: throwaway vaults on disk."""

import sys
from pathlib import Path
from typing import Callable, Optional

import pytest
from loguru import logger

from helpers import write_files
from vault_check.config import VaultSettings
from vault_check.schema import Schema, load_schema
from vault_check.vault import Corpus, load_corpus


@pytest.fixture
def vault_dir(tmp_path) -> Path:
    root = tmp_path / "vault"
    root.mkdir()
    return root


@pytest.fixture
def make_vault(vault_dir) -> Callable[[dict[str, str]], Path]:
    """Create a vault from a mapping of relative paths to file contents."""

    def _make(files: dict[str, str]) -> Path:
        write_files(vault_dir, files)
        return vault_dir

    return _make


@pytest.fixture
def load_vault() -> Callable[..., tuple[Schema, Corpus]]:
    """Load schema.yaml and parse every document under a vault root."""

    def _load(root: Path, settings: Optional[VaultSettings] = None) -> tuple[Schema, Corpus]:
        return load_schema(root / "schema.yaml"), load_corpus(root, settings)

    return _load


@pytest.fixture(autouse=True)
def restore_logging():
    """CLI runs point loguru at a captured stream; put the default sink back."""
    yield
    logger.remove()
    logger.add(sys.stderr)
