# Overview: Form schema model; parses, validates and serializes section/field documents.

"""
Form Schema Model

A form's shape is an ordered list of sections, each an ordered list of typed
fields. Two stored shapes exist:

    {"sections": [{"title": "...", "fields": [{...}, ...]}, ...]}   (current)
    [{...}, {...}]                                                  (legacy flat list)

parse_schema() is the only place that branches on shape; everything else
works with FormSchema. A legacy list becomes a single section titled
DEFAULT_SECTION_TITLE with the fields in their original order.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Iterable

from .errors import ValidationError


FIELD_TYPES = ("text", "number", "date", "dropdown", "location", "tel")
DEFAULT_SECTION_TITLE = "Form Fields"


@dataclass
class FieldSpec:
    name: str
    label: str
    type: str = "text"
    required: bool = False
    options: list[str] | None = None
    min: int | float | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "name": self.name,
            "label": self.label,
            "type": self.type,
            "required": self.required,
        }
        if self.options is not None:
            out["options"] = list(self.options)
        if self.min is not None:
            out["min"] = self.min
        return out


@dataclass
class Section:
    title: str
    fields: list[FieldSpec] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"title": self.title, "fields": [f.to_dict() for f in self.fields]}


@dataclass
class FormSchema:
    sections: list[Section] = field(default_factory=list)

    @property
    def fields(self) -> list[FieldSpec]:
        return [f for section in self.sections for f in section.fields]

    @property
    def field_names(self) -> list[str]:
        return [f.name for f in self.fields]

    def get_field(self, name: str) -> FieldSpec | None:
        for f in self.fields:
            if f.name == name:
                return f
        return None

    def to_dict(self) -> dict[str, Any]:
        return {"sections": [s.to_dict() for s in self.sections]}

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), separators=(",", ":"), ensure_ascii=False)

    @classmethod
    def single_section(cls, fields: Iterable[FieldSpec], title: str = DEFAULT_SECTION_TITLE) -> "FormSchema":
        return cls(sections=[Section(title=title, fields=list(fields))])


def default_label(name: str) -> str:
    text = name.replace("_", " ").replace("-", " ").strip()
    return " ".join(part.capitalize() for part in text.split()) or name


def _to_min(value: Any) -> int | float | None:
    if value is None or value == "" or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value
    text = str(value).strip()
    try:
        return int(text)
    except ValueError:
        pass
    try:
        return float(text)
    except ValueError:
        # Kept as-is so validate_schema() can report it.
        return value


def _parse_field(raw: Any) -> FieldSpec:
    if not isinstance(raw, dict):
        raise ValidationError("Each field must be an object")

    name = str(raw.get("name") or "").strip()
    label = raw.get("label")
    label = str(label).strip() if label not in (None, "") else default_label(name)

    options = raw.get("options")
    if options is not None:
        if isinstance(options, str):
            options = [o.strip() for o in options.split(",") if o.strip()]
        elif isinstance(options, (list, tuple)):
            options = [str(o) for o in options]
        else:
            options = None

    return FieldSpec(
        name=name,
        label=label,
        type=str(raw.get("type") or "text").strip().lower(),
        required=bool(raw.get("required", False)),
        options=options,
        min=_to_min(raw.get("min")),
    )


def _parse_section(raw: Any, index: int) -> Section:
    if not isinstance(raw, dict):
        raise ValidationError("Each section must be an object")
    fields = raw.get("fields") or []
    if not isinstance(fields, list):
        raise ValidationError("Section fields must be a list")
    title = str(raw.get("title") or "").strip() or f"Section {index + 1}"
    return Section(title=title, fields=[_parse_field(f) for f in fields])


def parse_schema(raw: Any) -> FormSchema:
    """
    Normalize any accepted schema shape into a FormSchema.

    Accepts a FormSchema, a JSON string, a {"sections": [...]} mapping, a
    {"fields": [...]} mapping, or a legacy flat list of fields.
    Raises ValidationError when the document is not one of those shapes.
    """
    if isinstance(raw, FormSchema):
        return raw

    if isinstance(raw, (bytes, bytearray)):
        raw = raw.decode("utf-8")

    if isinstance(raw, str):
        try:
            raw = json.loads(raw) if raw.strip() else []
        except json.JSONDecodeError:
            raise ValidationError("Form fields are not valid JSON")

    if raw is None:
        return FormSchema()

    if isinstance(raw, list):
        return FormSchema.single_section(_parse_field(f) for f in raw)

    if isinstance(raw, dict):
        if "sections" in raw:
            sections = raw.get("sections") or []
            if not isinstance(sections, list):
                raise ValidationError("sections must be a list")
            return FormSchema(sections=[_parse_section(s, i) for i, s in enumerate(sections)])
        if "fields" in raw:
            return parse_schema(raw.get("fields"))

    raise ValidationError("Unrecognized form fields format")


def validate_schema(schema: FormSchema) -> FormSchema:
    """
    Structural checks for a schema about to be stored.

    Errors are keyed by flattened field position, e.g. "fields[3].type".
    """
    errors: dict[str, str] = {}
    seen: dict[str, int] = {}

    if not schema.fields:
        errors["fields"] = "A form needs at least one field"

    for index, item in enumerate(schema.fields):
        key = f"fields[{index}]"
        if not item.name:
            errors[f"{key}.name"] = "Field name is required"
        elif item.name in seen:
            errors[f"{key}.name"] = f"Duplicate field name '{item.name}'"
        else:
            seen[item.name] = index

        if item.type not in FIELD_TYPES:
            errors[f"{key}.type"] = f"Unsupported field type '{item.type}'"

        if item.type == "dropdown" and not item.options:
            errors[f"{key}.options"] = "Dropdown fields need at least one option"

        if item.min is not None and not isinstance(item.min, (int, float)):
            errors[f"{key}.min"] = "min must be a number"

    if errors:
        raise ValidationError("Invalid form fields", field_errors=errors)
    return schema


def build_schema(raw: Any) -> FormSchema:
    """Parse and validate; used on every write of Form.fields."""
    return validate_schema(parse_schema(raw))
