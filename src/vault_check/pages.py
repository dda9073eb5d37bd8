"""Creating pages for missing references."""

from pathlib import Path, PurePosixPath

import frontmatter
from loguru import logger

from vault_check.file_utils import FileError, dump_frontmatter, write_file_atomic
from vault_check.schema.types import Schema
from vault_check.utils import normalize_dir, slugify_path


def resolve_target_path(target: str, type_name: str, schema: Schema) -> str:
    """Vault-relative path (without .md) where a page for target belongs.

    Targets without a directory are placed under the type's default_path.
    """
    target = target.strip()
    if target.endswith(".md"):
        target = target[:-3]
    if "/" in target:
        return target.lstrip("/")

    type_def = schema.get_type(type_name)
    default_path = normalize_dir(type_def.default_path) if type_def else ""
    if default_path and ".." not in PurePosixPath(default_path).parts:
        return f"{default_path}{target}"
    return target


def create_missing_page(vault_root: Path, schema: Schema, target: str, type_name: str) -> Path:
    """Create a stub page of the given type for a missing reference.

    Required fields are written as empty placeholders so the next check
    points at exactly what still needs filling in.

    Raises:
        ValueError: If the resolved path escapes the vault
        FileError: If the page already exists or cannot be written
    """
    vault_root = Path(vault_root).resolve()
    title = PurePosixPath(target.strip()).name.removesuffix(".md")
    relative = slugify_path(resolve_target_path(target, type_name, schema).split("#", 1)[0]) + ".md"

    path = (vault_root / relative).resolve()
    if vault_root not in path.parents:
        raise ValueError(f"Cannot create file outside vault: {relative}")
    if path.exists():
        raise FileError(f"Page already exists: {relative}")

    metadata: dict = {"type": type_name}
    type_def = schema.get_type(type_name)
    if type_def is not None:
        for field_name in sorted(type_def.fields):
            if type_def.fields[field_name].required:
                metadata[field_name] = None

    post = frontmatter.Post(f"# {title}\n", **metadata)
    write_file_atomic(path, dump_frontmatter(post))
    logger.info(f"Created {relative} (type: {type_name})")
    return path
