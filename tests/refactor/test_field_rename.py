"""Tests for vault_check.refactor.field_rename -- renaming a field on one type."""

import pytest
import yaml

from helpers import snapshot, write_files
from vault_check.refactor import (
    ChangeType,
    RefactorError,
    RenameConflictError,
    apply_field_rename,
    plan_field_rename,
)

SCHEMA = """
types:
  person:
    name_field: name
    template: templates/person.md
    fields:
      name: { type: string, required: true }
      email: { type: string }
      phone: { type: string }
  company:
    fields:
      email: { type: string }
"""

VAULT_YAML = """
queries:
  contacts: "object:person .email!=null"
  companies: "object:company .email!=null"
"""

TEMPLATE = """
---
type: person
name: "{{title}}"
email: "{{field.email}}"
---
Contact: {{field.email}} / {{ field.email }} / {{field.emails}}
"""

ALICE = """
---
type: person
name: Alice
email: alice@example.com
---
# Alice

::person(name="Bob", email="bob@example.com", phone=555)
"""

ACME = """
---
type: company
email: info@acme.test
---
"""


@pytest.fixture
def people_vault(make_vault):
    return make_vault(
        {
            "schema.yaml": SCHEMA,
            "vault.yaml": VAULT_YAML,
            "templates/person.md": TEMPLATE,
            "people/alice.md": ALICE,
            "companies/acme.md": ACME,
        }
    )


def _plan(load_vault, root, type_name="person", old="email", new="email_address"):
    schema, corpus = load_vault(root)
    return plan_field_rename(corpus, schema, type_name, old, new)


# --- Planning ---


class TestPlanFieldRename:
    def test_change_kinds(self, people_vault, load_vault):
        plan = _plan(load_vault, people_vault)

        assert plan.conflicts == []
        kinds = {c.change_type for c in plan.changes}
        assert kinds == {
            ChangeType.SCHEMA_FIELD,
            ChangeType.TEMPLATE,
            ChangeType.SAVED_QUERY,
            ChangeType.FRONTMATTER,
            ChangeType.EMBEDDED,
        }

    def test_only_objects_of_the_type(self, people_vault, load_vault):
        plan = _plan(load_vault, people_vault)
        assert "companies/acme.md" not in plan.edits
        assert all(c.file_path != "companies/acme.md" for c in plan.changes)

    def test_name_field_binding(self, people_vault, load_vault):
        plan = _plan(load_vault, people_vault, old="name", new="full_name")

        assert any(c.change_type == ChangeType.SCHEMA_NAME_FIELD for c in plan.changes)
        schema = yaml.safe_load(plan.schema_edit.updated)
        assert schema["types"]["person"]["name_field"] == "full_name"

    def test_schema_key_order_is_kept(self, people_vault, load_vault):
        plan = _plan(load_vault, people_vault)
        schema = yaml.safe_load(plan.schema_edit.updated)
        assert list(schema["types"]["person"]["fields"]) == ["name", "email_address", "phone"]
        assert list(schema["types"]["company"]["fields"]) == ["email"]

    def test_planning_touches_nothing(self, people_vault, load_vault):
        before = snapshot(people_vault)
        _plan(load_vault, people_vault)
        assert snapshot(people_vault) == before


class TestFieldRenameConflicts:
    def test_frontmatter_with_both_keys(self, people_vault, load_vault):
        write_files(
            people_vault,
            {
                "people/carol.md": """
                ---
                type: person
                name: Carol
                email: carol@example.com
                email_address: carol@work.test
                ---
                """
            },
        )
        plan = _plan(load_vault, people_vault)

        assert len(plan.conflicts) == 1
        conflict = plan.conflicts[0]
        assert conflict.file_path == "people/carol.md"
        assert conflict.conflict_type == "frontmatter_field_exists"
        assert conflict.line == 5

    def test_conflict_blocks_every_write(self, people_vault, load_vault):
        write_files(
            people_vault,
            {"people/carol.md": "---\ntype: person\nname: Carol\nemail: a@b.c\nemail_address: d@e.f\n---\n"},
        )
        plan = _plan(load_vault, people_vault)

        before = snapshot(people_vault)
        with pytest.raises(RenameConflictError) as exc_info:
            apply_field_rename(people_vault, plan)
        assert exc_info.value.conflicts == plan.conflicts
        assert snapshot(people_vault) == before

    def test_embedded_declaration_with_both_keys(self, people_vault, load_vault):
        write_files(
            people_vault,
            {"notes/team.md": "## Dana\n::person(name=Dana, email=d@x.test, email_address=d@y.test)\n"},
        )
        plan = _plan(load_vault, people_vault)

        assert [(c.file_path, c.conflict_type, c.line) for c in plan.conflicts] == [
            ("notes/team.md", "embedded_field_exists", 2)
        ]

    def test_schema_with_both_keys(self, make_vault, load_vault):
        root = make_vault(
            {
                "schema.yaml": """
                types:
                  person:
                    fields:
                      email: string
                      email_address: string
                """
            }
        )
        plan = _plan(load_vault, root)
        assert [c.conflict_type for c in plan.conflicts] == ["schema_field_exists"]


class TestFieldRenameErrors:
    def test_unknown_type(self, people_vault, load_vault):
        with pytest.raises(RefactorError, match="Type 'contact' not found"):
            _plan(load_vault, people_vault, type_name="contact")

    def test_unknown_field(self, people_vault, load_vault):
        with pytest.raises(RefactorError, match="Field 'fax' not found"):
            _plan(load_vault, people_vault, old="fax")

    def test_same_name(self, people_vault, load_vault):
        with pytest.raises(RefactorError, match="same"):
            _plan(load_vault, people_vault, new="email")

    def test_reserved_name(self, people_vault, load_vault):
        with pytest.raises(RefactorError, match="reserved"):
            _plan(load_vault, people_vault, new="type")


# --- Applying ---


class TestApplyFieldRename:
    def test_apply(self, people_vault, load_vault):
        plan = _plan(load_vault, people_vault)
        result = apply_field_rename(people_vault, plan)

        assert result.files_written == [
            "schema.yaml",
            "templates/person.md",
            "vault.yaml",
            "people/alice.md",
        ]

        alice = (people_vault / "people/alice.md").read_text()
        assert "email_address: alice@example.com" in alice
        assert '::person(name="Bob", email_address="bob@example.com", phone=555)' in alice
        assert "\nemail:" not in alice

        settings = yaml.safe_load((people_vault / "vault.yaml").read_text())
        assert settings["queries"]["contacts"] == "object:person .email_address!=null"
        assert settings["queries"]["companies"] == "object:company .email!=null"

        acme = (people_vault / "companies/acme.md").read_text()
        assert "email: info@acme.test" in acme

    def test_template_tokens_and_keys_compose(self, people_vault, load_vault):
        plan = _plan(load_vault, people_vault)
        apply_field_rename(people_vault, plan)

        template = (people_vault / "templates/person.md").read_text()
        assert 'email_address: "{{field.email_address}}"' in template
        assert "Contact: {{field.email_address}} / {{field.email_address}} / {{field.emails}}" in template

    def test_declaration_values_are_untouched(self, make_vault, load_vault):
        root = make_vault(
            {
                "schema.yaml": SCHEMA,
                "notes/odd.md": '## Eve\n::person(name=Eve, email=[ "a@b.c" , [[people/alice]] ])\n',
            }
        )
        plan = _plan(load_vault, root)
        apply_field_rename(root, plan)

        assert (root / "notes/odd.md").read_text() == (
            '## Eve\n::person(name=Eve, email_address=[ "a@b.c" , [[people/alice]] ])\n'
        )

    def test_renamed_vault_has_no_old_key(self, people_vault, load_vault):
        plan = _plan(load_vault, people_vault)
        apply_field_rename(people_vault, plan)

        schema, corpus = load_vault(people_vault)
        assert "email" not in schema.types["person"].fields
        for doc in corpus.documents:
            for obj in doc.objects:
                if obj.object_type == "person":
                    assert "email" not in obj.fields
