"""Tests for the schema data model."""

import pytest

from vault_check.schema import (
    FieldDefinition,
    FieldValue,
    Schema,
    TemplateDefinition,
    TypeDefinition,
    ValueKind,
    is_builtin_type,
    parse_field_type,
)


@pytest.mark.parametrize(
    "spec,expected",
    [
        ("string", ("string", False)),
        ("ref[]", ("ref", True)),
        ("boolean", ("bool", False)),
        ("text", ("string", False)),
        (" int[] ", ("number", True)),
    ],
)
def test_parse_field_type(spec, expected):
    assert parse_field_type(spec) == expected


def test_builtin_types():
    assert is_builtin_type("page")
    assert is_builtin_type("date")
    assert not is_builtin_type("person")

    schema = Schema()
    assert schema.has_type("section")
    assert schema.types["section"].fields["level"].max == 6


def test_date_type_is_locked():
    schema = Schema(types={"date": TypeDefinition(name="date", fields={"mood": FieldDefinition(type="string")})})
    assert schema.types["date"].fields == {}


class TestFieldValue:
    def test_display(self):
        assert FieldValue.number(3).display() == "3"
        assert FieldValue.number(2.5).display() == "2.5"
        assert FieldValue.boolean(False).display() == "false"
        assert FieldValue.null().display() == ""
        items = [FieldValue.string("a"), FieldValue.ref("people/bob")]
        assert FieldValue.array(items).display() == "[a, people/bob]"

    def test_accessors(self):
        ref = FieldValue.ref("people/alice", raw="[[people/alice]]")
        assert ref.as_string() == "people/alice"
        assert ref.as_ref() == "people/alice"
        assert ref.as_number() is None
        assert FieldValue.date("2025-01-01").as_string() == "2025-01-01"
        assert FieldValue.number(1).as_string() is None

    def test_items_wraps_scalars(self):
        value = FieldValue.string("x")
        assert value.items() == (value,)
        array = FieldValue.array([FieldValue.string("a"), FieldValue.string("b")])
        assert len(array.items()) == 2
        assert array.kind == ValueKind.ARRAY

    def test_to_python(self):
        array = FieldValue.array([FieldValue.number(1), FieldValue.boolean(True), FieldValue.null()])
        assert array.to_python() == [1.0, True, None]


def test_template_files_for():
    schema = Schema(
        types={
            "person": TypeDefinition(
                name="person",
                template="templates/person.md",
                templates=["card", "missing", "again"],
            )
        },
        templates={
            "card": TemplateDefinition(file="templates/card.md"),
            "again": TemplateDefinition(file="templates/person.md"),
        },
    )
    assert schema.template_files_for("person") == ["templates/person.md", "templates/card.md"]
    assert schema.template_files_for("nobody") == []
