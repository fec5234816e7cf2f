from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from sqlalchemy import Boolean, Integer, String, Text
from sqlalchemy.orm import DeclarativeMeta

from .errors import ValidationError
from .schema import FormSchema
from .time_utils import looks_numeric, parse_date_value


REQUIRED_MESSAGE = "This field is required"
NUMBER_MESSAGE = "Please enter a valid number"


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    - choices: allowed values for enumerated string columns
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore
    choices: dict[str, tuple[str, ...]] | None = None


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    # Integers - reject floats, bools and decimal strings
    if isinstance(coltype, Integer):
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        if isinstance(value, str):
            stripped = value.strip()
            if stripped.lstrip("-").isdigit():
                return int(stripped)
        raise ValidationError(f"{col.key} must be an integer", field_errors={col.key: "Must be an integer"})

    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        return bool(value)

    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict with only writable fields.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    required = policy.required_on_create or set()
    if not partial:
        missing = sorted(f for f in required if payload.get(f) in (None, ""))
        if missing:
            raise ValidationError(
                f"Missing required fields: {', '.join(missing)}",
                field_errors={f: REQUIRED_MESSAGE for f in missing},
            )

    cols = _columns_by_key(model)
    choices = policy.choices or {}

    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        col = cols[k]

        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null", field_errors={k: REQUIRED_MESSAGE})
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank", field_errors={k: REQUIRED_MESSAGE})

        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        if k in choices and val not in choices[k]:
            raise ValidationError(
                f"Invalid {k}: {val}",
                field_errors={k: f"Must be one of: {', '.join(choices[k])}"},
            )

        patch[k] = val

    return patch


def _to_number(value: Any) -> int | float:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value
    text = str(value).strip()
    try:
        return int(text)
    except ValueError:
        return float(text)


def _is_location(value: Any) -> bool:
    parts = str(value).split(",")
    if len(parts) != 2:
        return False
    try:
        lat, lng = (float(p.strip()) for p in parts)
    except ValueError:
        return False
    return -90 <= lat <= 90 and -180 <= lng <= 180


def normalize_response_value(value: Any) -> Any:
    """Empty strings become None; numeric-looking strings become numbers."""
    if isinstance(value, str):
        stripped = value.strip()
        if stripped == "":
            return None
        if looks_numeric(stripped):
            return _to_number(stripped)
    return value


def validate_response_data(schema: FormSchema, data: dict, strict: bool = False) -> dict:
    """
    Check a submission against its form schema and return the stored mapping.

    Raises ValidationError with one message per failing field name.
    """
    if not isinstance(data, dict):
        raise ValidationError("Response data must be an object")

    errors: dict[str, str] = {}
    cleaned: dict[str, Any] = {}

    for item in schema.fields:
        raw = data.get(item.name)
        value = normalize_response_value(raw)

        if value is None:
            if item.required:
                errors[item.name] = REQUIRED_MESSAGE
            cleaned[item.name] = None
            continue

        if item.type == "number":
            if not looks_numeric(value):
                errors[item.name] = NUMBER_MESSAGE
                continue
            value = _to_number(value)
            if item.min is not None and value < item.min:
                errors[item.name] = f"Must be at least {item.min}"
                continue

        elif item.type == "dropdown":
            if str(value) not in (item.options or []):
                errors[item.name] = "Please select one of the listed options"
                continue
            value = str(value)

        elif item.type == "date":
            if parse_date_value(value) is None:
                errors[item.name] = "Please enter a valid date"
                continue
            value = str(raw).strip()

        elif item.type == "location":
            if not _is_location(value):
                errors[item.name] = "Please enter a location as latitude,longitude"
                continue
            value = str(raw).strip()

        cleaned[item.name] = value

    known = set(schema.field_names)
    for key, raw in data.items():
        if key in known:
            continue
        if strict:
            errors[key] = "Unknown field"
        else:
            cleaned[key] = normalize_response_value(raw)

    if errors:
        raise ValidationError("Please fix the highlighted fields", field_errors=errors)
    return cleaned
