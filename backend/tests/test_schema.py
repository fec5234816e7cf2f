# Overview: Pytest coverage for form schema parsing and validation.

"""
Schema tests.

Verifies:
- Every accepted storage shape normalizes to sections
- Legacy flat lists land in a single "Form Fields" section
- Structural validation reports errors by flattened field position
- Default templates are valid schemas
"""

import json

import pytest

from podcount.errors import ValidationError
from podcount.form_templates import DEFAULT_TEMPLATES, template_for_factory_type
from podcount.schema import (
    DEFAULT_SECTION_TITLE,
    FieldSpec,
    FormSchema,
    build_schema,
    default_label,
    parse_schema,
)


SECTIONED = {
    "sections": [
        {"title": "Farmer", "fields": [{"name": "farmer_id", "type": "text", "required": True}]},
        {"title": "Counts", "fields": [{"name": "large", "type": "number", "min": 0}]},
    ]
}


class TestParseSchema:

    def test_sections_dict(self):
        schema = parse_schema(SECTIONED)
        assert [s.title for s in schema.sections] == ["Farmer", "Counts"]
        assert schema.field_names == ["farmer_id", "large"]

    def test_json_string(self):
        schema = parse_schema(json.dumps(SECTIONED))
        assert schema.field_names == ["farmer_id", "large"]

    def test_legacy_flat_list(self):
        schema = parse_schema([{"name": "a"}, {"name": "b", "type": "number"}])
        assert len(schema.sections) == 1
        assert schema.sections[0].title == DEFAULT_SECTION_TITLE
        assert schema.get_field("b").type == "number"

    def test_fields_wrapper(self):
        schema = parse_schema({"fields": [{"name": "a"}]})
        assert schema.field_names == ["a"]

    def test_empty_inputs(self):
        assert parse_schema(None).fields == []
        assert parse_schema("").fields == []

    def test_defaults_filled_in(self):
        item = parse_schema([{"name": "farmer_name"}]).fields[0]
        assert item.label == "Farmer Name"
        assert item.type == "text"
        assert item.required is False

    def test_dropdown_options_from_comma_string(self):
        item = parse_schema([{"name": "grade", "type": "dropdown", "options": "A, B ,C"}]).fields[0]
        assert item.options == ["A", "B", "C"]

    def test_invalid_json(self):
        with pytest.raises(ValidationError):
            parse_schema("{not json")

    def test_unrecognized_shape(self):
        with pytest.raises(ValidationError):
            parse_schema({"something": []})

    def test_round_trip_keeps_sections(self):
        schema = parse_schema(SECTIONED)
        again = parse_schema(schema.to_json())
        assert again.to_dict() == schema.to_dict()


class TestValidateSchema:

    def test_requires_a_field(self):
        with pytest.raises(ValidationError) as exc:
            build_schema({"sections": [{"title": "Empty", "fields": []}]})
        assert "fields" in exc.value.field_errors

    def test_duplicate_names(self):
        with pytest.raises(ValidationError) as exc:
            build_schema([{"name": "a"}, {"name": "a"}])
        assert "fields[1].name" in exc.value.field_errors

    def test_duplicate_names_across_sections(self):
        raw = {
            "sections": [
                {"title": "One", "fields": [{"name": "a"}]},
                {"title": "Two", "fields": [{"name": "a"}]},
            ]
        }
        with pytest.raises(ValidationError) as exc:
            build_schema(raw)
        assert "fields[1].name" in exc.value.field_errors

    def test_unknown_type(self):
        with pytest.raises(ValidationError) as exc:
            build_schema([{"name": "a", "type": "colour"}])
        assert exc.value.field_errors == {"fields[0].type": "Unsupported field type 'colour'"}

    def test_dropdown_without_options(self):
        with pytest.raises(ValidationError) as exc:
            build_schema([{"name": "grade", "type": "dropdown"}])
        assert "fields[0].options" in exc.value.field_errors

    def test_non_numeric_min(self):
        with pytest.raises(ValidationError) as exc:
            build_schema([{"name": "n", "type": "number", "min": "lots"}])
        assert "fields[0].min" in exc.value.field_errors

    def test_missing_name(self):
        with pytest.raises(ValidationError) as exc:
            build_schema([{"type": "text"}])
        assert "fields[0].name" in exc.value.field_errors

    @pytest.mark.parametrize("form_type", sorted(DEFAULT_TEMPLATES))
    def test_default_templates_are_valid(self, form_type):
        schema = build_schema(DEFAULT_TEMPLATES[form_type]["fields"])
        assert [s.title for s in schema.sections] == ["Farmer Information", "Pod Count"]


def test_organic_template_adds_certification():
    organic = parse_schema(template_for_factory_type("ORGANIC")["fields"])
    conventional = parse_schema(template_for_factory_type("PROCESSING")["fields"])
    assert "organic_certification_id" in organic.field_names
    assert "organic_certification_id" not in conventional.field_names
    assert conventional.get_field("large").min == 0


def test_single_section_and_labels():
    schema = FormSchema.single_section([FieldSpec(name="pod-count", label=default_label("pod-count"))])
    assert schema.sections[0].title == DEFAULT_SECTION_TITLE
    assert schema.fields[0].label == "Pod Count"
