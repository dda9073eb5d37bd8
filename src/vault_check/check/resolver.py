"""Reference resolution against the set of known object IDs.

Matching sources, all collected before deciding:

  1. aliases (exact, then slugified)
  2. name_field values (exact, slugified, lowercase)
  3. dates (YYYY-MM-DD resolves to the daily note)
  4. path-like refs (contain '/' or '#'): exact ID, slugified path, suffix
  5. short names (last path segment)

One match resolves; several are ambiguous. When a file and one of its own
embedded objects both match, the file wins.
"""

from dataclasses import dataclass, field
from typing import Optional

from vault_check.markdown.wikilink import normalize_target
from vault_check.schema.validator import is_valid_date
from vault_check.utils import normalize_dir, short_name, slugify, slugify_path


@dataclass
class ResolveResult:
    target_id: Optional[str] = None
    ambiguous: bool = False
    matches: list[str] = field(default_factory=list)

    @property
    def resolved(self) -> bool:
        return self.target_id is not None


class Resolver:
    def __init__(
        self,
        object_ids: list[str],
        *,
        aliases: Optional[dict[str, str]] = None,
        duplicate_aliases: Optional[dict[str, list[str]]] = None,
        name_field_map: Optional[dict[str, list[str]]] = None,
        daily_directory: str = "daily",
    ):
        self.object_ids = set(object_ids)
        self.daily_directory = normalize_dir(daily_directory) or "daily/"

        self._short: dict[str, list[str]] = {}
        self._slugs: dict[str, str] = {}
        for object_id in sorted(self.object_ids):
            self._short.setdefault(short_name(object_id), []).append(object_id)
            self._slugs.setdefault(slugify_path(object_id), object_id)

        self._aliases: dict[str, list[str]] = {}
        for alias, object_id in (aliases or {}).items():
            if not alias:
                continue
            ids = list((duplicate_aliases or {}).get(alias) or [object_id])
            self._aliases[alias] = ids
            slug = slugify(alias)
            if slug and slug != alias:
                self._aliases.setdefault(slug, ids)

        self._names: dict[str, list[str]] = {}
        for name, ids in (name_field_map or {}).items():
            if not name:
                continue
            for key in dict.fromkeys([name, slugify(name), name.lower()]):
                if key:
                    self._names.setdefault(key, [])
                    self._names[key].extend(i for i in ids if i not in self._names[key])

    def resolve(self, ref: str) -> ResolveResult:
        ref = normalize_target(ref)
        slug = slugify(ref)
        matches: list[str] = []

        def add(ids) -> None:
            for object_id in ids:
                if object_id not in matches:
                    matches.append(object_id)

        add(self._aliases.get(ref) or self._aliases.get(slug) or [])
        add(self._names.get(ref) or self._names.get(slug) or self._names.get(ref.lower()) or [])

        if is_valid_date(ref):
            date_id = f"{self.daily_directory}{ref}"
            if not matches:
                return ResolveResult(target_id=date_id, matches=[date_id])
            add([date_id])
        elif "/" in ref or "#" in ref:
            self._add_path_matches(ref, add, matches)
        else:
            add(self._short.get(ref) or self._short.get(slug) or [])

        if len(matches) > 1:
            matches = _prefer_parents(matches)

        if not matches:
            return ResolveResult()
        if len(matches) == 1:
            return ResolveResult(target_id=matches[0], matches=matches)
        return ResolveResult(ambiguous=True, matches=sorted(matches))

    def _add_path_matches(self, ref: str, add, matches: list[str]) -> None:
        if ref in self.object_ids:
            add([ref])
        slugged = slugify_path(ref)
        if slugged in self._slugs:
            add([self._slugs[slugged]])
        if not matches:
            add(
                sorted(
                    object_id
                    for object_id in self.object_ids
                    if object_id.endswith("/" + ref) or object_id.endswith("/" + slugged)
                )
            )


def _prefer_parents(matches: list[str]) -> list[str]:
    parents = {m for m in matches if "#" not in m}
    if not parents:
        return matches
    return [m for m in matches if "#" not in m or m.split("#", 1)[0] not in parents]
