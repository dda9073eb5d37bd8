"""Configuration for vault-check.

Two layers:
  - VaultCheckConfig: process-level settings read from the environment
    (VAULT_CHECK_*), e.g. which vault to operate on and the log level.
  - VaultSettings: per-vault settings stored in the vault's vault.yaml
    (daily directory, saved queries, extra ignore patterns).
"""

from pathlib import Path
from typing import Optional

import yaml
from loguru import logger
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_SCHEMA_FILE = "schema.yaml"
DEFAULT_VAULT_CONFIG_FILE = "vault.yaml"
DEFAULT_INDEX_DIR = ".vault-check"


class VaultCheckConfig(BaseSettings):
    """Process-level configuration."""

    model_config = SettingsConfigDict(
        env_prefix="VAULT_CHECK_",
        extra="ignore",
    )

    vault_path: Path = Field(default_factory=Path.cwd, description="Root of the vault")
    schema_file: str = Field(default=DEFAULT_SCHEMA_FILE, description="Schema file name")
    vault_config_file: str = Field(
        default=DEFAULT_VAULT_CONFIG_FILE, description="Per-vault settings file name"
    )
    index_dir: str = Field(default=DEFAULT_INDEX_DIR, description="Index/manifest directory")
    log_level: str = Field(default="INFO")
    log_file: Optional[Path] = None

    def model_post_init(self, __context) -> None:
        self.vault_path = Path(self.vault_path).expanduser().resolve()

    @property
    def schema_path(self) -> Path:
        return self.vault_path / self.schema_file

    @property
    def vault_config_path(self) -> Path:
        return self.vault_path / self.vault_config_file

    @property
    def index_path(self) -> Path:
        return self.vault_path / self.index_dir


class SavedQuery(BaseModel):
    """A named query stored in vault.yaml."""

    query: str
    description: Optional[str] = None


class VaultSettings(BaseModel):
    """Per-vault settings from vault.yaml."""

    daily_directory: str = "daily"
    queries: dict[str, SavedQuery] = Field(default_factory=dict)
    ignore: list[str] = Field(default_factory=list)


def load_vault_settings(path: Path) -> VaultSettings:
    """Load vault.yaml, returning defaults when the file does not exist.

    Raises:
        ValueError: If the file exists but is not a YAML mapping
    """
    if not path.exists():
        return VaultSettings()

    data = yaml.safe_load(path.read_text(encoding="utf-8"))
    if data is None:
        return VaultSettings()
    if not isinstance(data, dict):
        raise ValueError(f"{path.name} must be a YAML mapping")

    # Saved queries may be written in shorthand form: name: "object:person"
    queries = data.get("queries") or {}
    if isinstance(queries, dict):
        data["queries"] = {
            name: {"query": q} if isinstance(q, str) else q for name, q in queries.items()
        }

    settings = VaultSettings.model_validate(data)
    logger.debug(f"Loaded vault settings from {path} ({len(settings.queries)} saved queries)")
    return settings
