"""Tests for the question schemas: shared-field resolution, uniqueness and visibility."""

import pytest

from lawintake.models.claim import ClaimType
from lawintake.schemas.fields import (
    Field,
    FieldType,
    Option,
    compile_fields,
    flatten_fields,
    iter_visible_fields,
)
from lawintake.schemas.questions import SHARED_FIELDS, compile_all, compiled_claim_fields
from lawintake.utils.errors import SchemaError


def test_every_schema_compiles():
    compiled = compile_all()
    assert set(compiled) == {claim.value for claim in ClaimType} | {"global"}
    for fields in compiled.values():
        assert all(field.type != FieldType.SHARED for field in fields)


def test_children_variants_store_under_children():
    property_children = compiled_claim_fields(ClaimType.PROPERTY)[0]
    custody_children = compiled_claim_fields(ClaimType.CUSTODY)[0]
    assert property_children.type == FieldType.REPEATER
    assert property_children.name == "children"
    assert custody_children.name == "children"

    custody_names = {field.name for field in custody_children.fields}
    property_names = {field.name for field in property_children.fields}
    assert "childRelationship" in custody_names
    assert "childRelationship" not in property_names


def test_answer_names_unique_per_claim():
    for claim in ClaimType:
        names = [field.name for field in flatten_fields(compiled_claim_fields(claim)) if field.holds_value]
        assert len(names) == len(set(names)), claim


def test_duplicate_name_rejected():
    entries = [
        Field(label="a", type=FieldType.TEXT, name="same"),
        Field(label="b", type=FieldType.TEXT, name="same"),
    ]
    with pytest.raises(SchemaError):
        compile_fields("broken", entries, SHARED_FIELDS)


def test_duplicate_name_inside_option_rejected():
    entries = [
        Field(label="status", type=FieldType.RADIO, name="status", options=(
            Option(label="x", value="x", fields=(Field(label="inner", type=FieldType.TEXT, name="status"),)),
        )),
    ]
    with pytest.raises(SchemaError):
        compile_fields("broken", entries, SHARED_FIELDS)


def test_unknown_shared_key_rejected():
    with pytest.raises(SchemaError):
        compile_fields("broken", [Field(label="", type=FieldType.SHARED, shared_key="nope")], SHARED_FIELDS)


def test_option_fields_visible_only_when_selected():
    fields = compiled_claim_fields(ClaimType.PROPERTY)

    hidden = {field.name for field in iter_visible_fields(fields, {})}
    assert "applicantEmploymentStatus" in hidden
    assert "applicantGrossSalary" not in hidden
    assert "separationDate" not in hidden

    shown = {
        field.name
        for field in iter_visible_fields(fields, {"applicantEmploymentStatus": "employee", "livingTogether": "no"})
    }
    assert "applicantGrossSalary" in shown
    assert "applicantOccupation" not in shown
    assert "separationDate" in shown


def test_depends_on_hides_until_answered():
    fields = [
        Field(label="a", type=FieldType.TEXT, name="a"),
        Field(label="b", type=FieldType.TEXT, name="b", depends_on="a"),
    ]
    assert [field.name for field in iter_visible_fields(fields, {"a": ""})] == ["a"]
    assert [field.name for field in iter_visible_fields(fields, {"a": "x"})] == ["a", "b"]


def test_to_dict_uses_wire_keys():
    payload = Field(label="x", type=FieldType.TEXT, name="x", depends_on="y", required=True).to_dict()
    assert payload == {"label": "x", "type": "text", "name": "x", "dependsOn": "y", "required": True}
