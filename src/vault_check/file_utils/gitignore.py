"""Gitignore pattern handling for vault walks."""

from pathlib import Path
from typing import Iterable, List, Optional

import pathspec

# Directories that are never part of the document corpus
DEFAULT_PATTERNS = [
    ".git/",
    ".obsidian/",
    ".trash/",
    ".vault-check/",
    "node_modules/",
    "__pycache__/",
    ".venv/",
    "venv/",
    ".DS_Store",
]


def get_gitignore_patterns(vault_root: Path, extra: Optional[Iterable[str]] = None) -> List[str]:
    """Get ignore patterns from the vault's .gitignore plus defaults.

    Args:
        vault_root: Root directory containing .gitignore
        extra: Additional patterns (e.g. from vault.yaml 'ignore')

    Returns:
        List of gitignore pattern strings
    """
    patterns = list(DEFAULT_PATTERNS)

    gitignore_path = vault_root / ".gitignore"
    if gitignore_path.exists():
        with open(gitignore_path, encoding="utf-8") as f:
            patterns.extend(
                line.strip() for line in f if line.strip() and not line.strip().startswith("#")
            )

    if extra:
        patterns.extend(p for p in extra if p)

    return patterns


def build_gitignore_spec(
    vault_root: Path, extra: Optional[Iterable[str]] = None
) -> pathspec.PathSpec:
    """Build a PathSpec object from gitignore patterns.

    Args:
        vault_root: Root directory containing .gitignore
        extra: Additional patterns to include

    Returns:
        GitIgnoreSpec for matching paths
    """
    patterns = get_gitignore_patterns(vault_root, extra)
    return pathspec.GitIgnoreSpec.from_lines(patterns)


def should_ignore_file(relative_path: str, spec: pathspec.PathSpec) -> bool:
    """Check if a vault-relative path is ignored.

    Any path with a dot-prefixed segment (hidden file or directory) is
    always ignored.
    """
    parts = Path(relative_path).parts
    if any(part.startswith(".") for part in parts):
        return True
    return spec.match_file(relative_path)
