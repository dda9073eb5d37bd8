"""Tests for reference resolution."""

import pytest

from vault_check.check.resolver import Resolver

OBJECT_IDS = [
    "people/alice",
    "people/bob",
    "clients/bob",
    "projects/apollo",
    "projects/apollo#weekly-sync",
    "notes/cafe-meeting",
    "daily/2025-03-14",
]


@pytest.fixture
def resolver():
    return Resolver(
        OBJECT_IDS,
        aliases={"Ally": "people/alice"},
        name_field_map={"Alice Smith": ["people/alice"]},
    )


class TestResolve:
    def test_exact_path(self, resolver):
        result = resolver.resolve("people/alice")
        assert result.resolved
        assert result.target_id == "people/alice"

    def test_md_suffix(self, resolver):
        assert resolver.resolve("people/alice.md").target_id == "people/alice"

    def test_short_name(self, resolver):
        assert resolver.resolve("alice").target_id == "people/alice"

    def test_ambiguous_short_name(self, resolver):
        result = resolver.resolve("bob")
        assert not result.resolved
        assert result.ambiguous
        assert result.matches == ["clients/bob", "people/bob"]

    def test_alias(self, resolver):
        assert resolver.resolve("Ally").target_id == "people/alice"
        assert resolver.resolve("ally").target_id == "people/alice"

    def test_name_field(self, resolver):
        assert resolver.resolve("Alice Smith").target_id == "people/alice"
        assert resolver.resolve("alice-smith").target_id == "people/alice"

    def test_slugified_path(self, resolver):
        assert resolver.resolve("notes/Cafe Meeting").target_id == "notes/cafe-meeting"

    def test_path_suffix(self, resolver):
        assert resolver.resolve("apollo#weekly-sync").target_id == "projects/apollo#weekly-sync"

    def test_short_name_of_file_with_sections(self, resolver):
        assert resolver.resolve("apollo").target_id == "projects/apollo"

    def test_date_resolves_to_daily_note(self, resolver):
        assert resolver.resolve("2025-03-14").target_id == "daily/2025-03-14"
        # dates resolve even when the daily note doesn't exist yet
        assert resolver.resolve("2025-03-15").target_id == "daily/2025-03-15"

    def test_custom_daily_directory(self):
        resolver = Resolver(["journal/2025-03-14"], daily_directory="journal")
        assert resolver.resolve("2025-03-14").target_id == "journal/2025-03-14"

    def test_unresolved(self, resolver):
        result = resolver.resolve("people/carol")
        assert not result.resolved
        assert not result.ambiguous
        assert result.matches == []

    def test_duplicate_alias_is_ambiguous(self):
        resolver = Resolver(
            ["people/alice", "people/alicia"],
            aliases={"Al": "people/alice"},
            duplicate_aliases={"Al": ["people/alice", "people/alicia"]},
        )
        assert resolver.resolve("Al").ambiguous


def test_file_wins_over_its_own_section():
    resolver = Resolver(
        ["projects/apollo", "projects/apollo#kickoff"],
        aliases={"Kickoff": "projects/apollo#kickoff"},
        name_field_map={"Kickoff": ["projects/apollo"]},
    )
    assert resolver.resolve("Kickoff").target_id == "projects/apollo"
