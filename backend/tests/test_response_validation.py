# Overview: Pytest coverage for response validation against a form schema.

import pytest

from podcount.errors import ValidationError
from podcount.schema import build_schema
from podcount.validation import (
    NUMBER_MESSAGE,
    REQUIRED_MESSAGE,
    normalize_response_value,
    validate_response_data,
)


SCHEMA = build_schema([
    {"name": "farmer_id", "type": "text", "required": True},
    {"name": "pods", "type": "number", "required": True, "min": 0},
    {"name": "grade", "type": "dropdown", "options": ["A", "B"]},
    {"name": "count_date", "type": "date"},
    {"name": "plot", "type": "location"},
])


def test_valid_submission_is_normalized():
    cleaned = validate_response_data(SCHEMA, {
        "farmer_id": "F001",
        "pods": "45",
        "grade": "A",
        "count_date": "2024-01-15",
        "plot": "6.69, -1.62",
    })
    assert cleaned["pods"] == 45
    assert cleaned["count_date"] == "2024-01-15"
    assert cleaned["plot"] == "6.69, -1.62"


def test_required_and_number_messages():
    with pytest.raises(ValidationError) as exc:
        validate_response_data(SCHEMA, {"farmer_id": "", "pods": "many"})
    assert exc.value.field_errors == {
        "farmer_id": REQUIRED_MESSAGE,
        "pods": NUMBER_MESSAGE,
    }


def test_min_is_enforced():
    with pytest.raises(ValidationError) as exc:
        validate_response_data(SCHEMA, {"farmer_id": "F1", "pods": -1})
    assert exc.value.field_errors == {"pods": "Must be at least 0"}


@pytest.mark.parametrize("field,value", [
    ("grade", "C"),
    ("count_date", "not a date"),
    ("plot", "95,10"),
    ("plot", "somewhere"),
])
def test_type_specific_rejections(field, value):
    data = {"farmer_id": "F1", "pods": 3, field: value}
    with pytest.raises(ValidationError) as exc:
        validate_response_data(SCHEMA, data)
    assert list(exc.value.field_errors) == [field]


def test_optional_blank_becomes_none():
    cleaned = validate_response_data(SCHEMA, {"farmer_id": "F1", "pods": 0, "grade": ""})
    assert cleaned["grade"] is None
    assert cleaned["pods"] == 0


def test_extra_keys_kept_unless_strict():
    data = {"farmer_id": "F1", "pods": 1, "notes": "shaded"}
    assert validate_response_data(SCHEMA, data)["notes"] == "shaded"

    with pytest.raises(ValidationError) as exc:
        validate_response_data(SCHEMA, data, strict=True)
    assert exc.value.field_errors == {"notes": "Unknown field"}


def test_non_mapping_rejected():
    with pytest.raises(ValidationError):
        validate_response_data(SCHEMA, ["F1", 3])


@pytest.mark.parametrize("raw,expected", [
    ("", None),
    ("  ", None),
    ("12", 12),
    ("1.5", 1.5),
    ("F001", "F001"),
    (7, 7),
])
def test_normalize_response_value(raw, expected):
    assert normalize_response_value(raw) == expected
