# Overview: Default pod-count templates provisioned once per factory.

from __future__ import annotations

from .permissions import FORM_TYPE_CONVENTIONAL, FORM_TYPE_ORGANIC


def _farmer_fields(organic: bool) -> list[dict]:
    fields = [
        {"name": "farmer_id", "type": "text", "label": "Farmer ID", "required": True},
        {"name": "farmer_name", "type": "text", "label": "Farmer Name", "required": True},
        {"name": "national_id", "type": "text", "label": "National ID Number", "required": True},
        {"name": "phone_number", "type": "tel", "label": "Phone Number", "required": True},
        {"name": "operational_area", "type": "text", "label": "Operational Area", "required": True},
        {"name": "community", "type": "text", "label": "Community", "required": True},
    ]
    if organic:
        fields.append(
            {"name": "organic_certification_id", "type": "text", "label": "Organic Certification ID", "required": True}
        )
    return fields


def _count(name: str, label: str) -> dict:
    return {"name": name, "type": "number", "label": label, "required": True, "min": 0}


POD_COUNT_FIELDS = [
    _count("small_cherelles", "Small Cherelles (S)"),
    _count("medium", "Medium (M)"),
    _count("large", "Large (L)"),
    _count("matured_unriped", "Matured Unriped (MUR)"),
    _count("matured_riped", "Matured Riped (MR)"),
    _count("diseased", "Diseased (D)"),
    {"name": "count_date", "type": "date", "label": "Count Date", "required": True},
]


def _template(form_type: str, name: str, description: str) -> dict:
    return {
        "name": name,
        "description": description,
        "type": form_type,
        "fields": {
            "sections": [
                {"title": "Farmer Information", "fields": _farmer_fields(form_type == FORM_TYPE_ORGANIC)},
                {"title": "Pod Count", "fields": [dict(f) for f in POD_COUNT_FIELDS]},
            ]
        },
    }


DEFAULT_TEMPLATES = {
    FORM_TYPE_CONVENTIONAL: _template(
        FORM_TYPE_CONVENTIONAL,
        "Conventional Cocoa Pod Count Template",
        "Default template for conventional cocoa pod counting exercise",
    ),
    FORM_TYPE_ORGANIC: _template(
        FORM_TYPE_ORGANIC,
        "Organic Cocoa Pod Count Template",
        "Default template for organic cocoa pod counting exercise",
    ),
}


def template_for_factory_type(factory_type: str | None) -> dict:
    """ORGANIC factories get the organic template; every other type the conventional one."""
    key = FORM_TYPE_ORGANIC if factory_type == FORM_TYPE_ORGANIC else FORM_TYPE_CONVENTIONAL
    return DEFAULT_TEMPLATES[key]
