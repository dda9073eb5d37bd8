"""Vault access: walking files and loading the parsed corpus."""

from vault_check.vault.walk import Corpus, ParseFailure, WalkResult, load_corpus, walk_markdown_files

__all__ = ["Corpus", "ParseFailure", "WalkResult", "load_corpus", "walk_markdown_files"]
