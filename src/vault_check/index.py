"""Alias lookup and index staleness tracking.

Aliases come from `alias` / `aliases` fields on any object. The staleness
manifest is a small JSON file under the index directory that records each
file's checksum at the last `reindex`; a check pass compares it against the
current corpus.
"""

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from loguru import logger
from pydantic import BaseModel, Field, ValidationError

from vault_check.file_utils import write_file_atomic
from vault_check.markdown import ParsedDocument
from vault_check.vault import Corpus

MANIFEST_FILE = "manifest.json"
MANIFEST_VERSION = 1
ALIAS_FIELDS = ("alias", "aliases")


# --- Aliases ---


@dataclass
class DuplicateAlias:
    alias: str
    object_ids: list[str]


@dataclass
class AliasTable:
    aliases: dict[str, str] = field(default_factory=dict)  # alias -> object ID
    duplicates: list[DuplicateAlias] = field(default_factory=list)


def collect_aliases(documents: list[ParsedDocument]) -> AliasTable:
    """Build the alias table for a corpus.

    An alias claimed by more than one object is reported as a duplicate and
    kept mapped to the first claimant in path order.
    """
    claims: dict[str, list[str]] = {}
    for doc in sorted(documents, key=lambda d: d.file_path):
        for obj in doc.objects:
            for name in ALIAS_FIELDS:
                value = obj.fields.get(name)
                if value is None:
                    continue
                for item in value.items():
                    alias = (item.as_string() or "").strip()
                    if not alias:
                        continue
                    ids = claims.setdefault(alias, [])
                    if obj.id not in ids:
                        ids.append(obj.id)

    table = AliasTable()
    for alias in sorted(claims):
        ids = claims[alias]
        table.aliases[alias] = ids[0]
        if len(ids) > 1:
            table.duplicates.append(DuplicateAlias(alias=alias, object_ids=sorted(ids)))
    return table


# --- Staleness manifest ---


class IndexManifest(BaseModel):
    version: int = MANIFEST_VERSION
    generated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    files: dict[str, str] = Field(default_factory=dict)  # relative path -> checksum


@dataclass
class StalenessInfo:
    has_manifest: bool
    modified: list[str] = field(default_factory=list)
    added: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)

    @property
    def is_stale(self) -> bool:
        return bool(self.modified or self.added or self.removed)

    @property
    def stale_files(self) -> list[str]:
        return sorted([*self.modified, *self.added, *self.removed])


def manifest_path(index_dir: Path) -> Path:
    return Path(index_dir) / MANIFEST_FILE


def load_manifest(index_dir: Path) -> Optional[IndexManifest]:
    """Read the manifest, or None if it is missing or unreadable."""
    path = manifest_path(index_dir)
    if not path.exists():
        return None
    try:
        return IndexManifest.model_validate_json(path.read_text(encoding="utf-8"))
    except (OSError, ValidationError) as e:
        logger.warning(f"Ignoring unreadable index manifest {path}: {e}")
        return None


def write_manifest(index_dir: Path, corpus: Corpus) -> IndexManifest:
    """Record the current checksum of every corpus file."""
    manifest = IndexManifest(files=dict(sorted(corpus.checksums.items())))
    payload = json.dumps(manifest.model_dump(mode="json"), indent=2) + "\n"
    write_file_atomic(manifest_path(index_dir), payload)
    logger.info(f"Wrote index manifest with {len(manifest.files)} files")
    return manifest


def check_staleness(index_dir: Path, corpus: Corpus) -> StalenessInfo:
    """Compare the manifest against the corpus."""
    manifest = load_manifest(index_dir)
    if manifest is None:
        return StalenessInfo(has_manifest=False)

    current = corpus.checksums
    recorded = manifest.files
    return StalenessInfo(
        has_manifest=True,
        modified=sorted(p for p in current if p in recorded and recorded[p] != current[p]),
        added=sorted(p for p in current if p not in recorded),
        removed=sorted(p for p in recorded if p not in current),
    )
