# Overview: Service-layer operations for response export; encapsulates business logic and database work.

from __future__ import annotations

import csv
import io
import re
from typing import Any

from openpyxl import Workbook

from ..errors import ValidationError
from ..models import Form, FormResponse
from ..schema import parse_schema
from podcount.time_utils import to_utc_z
from . import access_service, response_service
from .session_service import Principal


EXPORT_FORMATS = {
    "csv": "text/csv",
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
}

META_COLUMNS = ["submitted_at", "submitted_by"]


def export_columns(form: Form, responses: list[FormResponse]) -> list[str]:
    """Metadata, then schema fields in schema order, then any extra data keys sorted."""
    field_names = parse_schema(form.fields).field_names
    known = set(field_names)
    extra = sorted({key for r in responses for key in (r.data or {}) if key not in known})
    return META_COLUMNS + field_names + extra


def _row(response: FormResponse, columns: list[str]) -> list[Any]:
    data = response.data or {}
    submitter = response.submitted_by
    values = {
        "submitted_at": to_utc_z(response.created_at),
        "submitted_by": (submitter.name or submitter.email) if submitter else None,
    }
    return [values[c] if c in values else data.get(c) for c in columns]


def _safe_filename(name: str) -> str:
    slug = re.sub(r"[^A-Za-z0-9]+", "_", name).strip("_").lower()
    return slug or "form"


def _to_csv(columns: list[str], rows: list[list[Any]]) -> bytes:
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(columns)
    for row in rows:
        writer.writerow(["" if v is None else v for v in row])
    return buffer.getvalue().encode("utf-8-sig")


def _to_xlsx(title: str, columns: list[str], rows: list[list[Any]]) -> bytes:
    wb = Workbook()
    ws = wb.active
    # Excel caps sheet titles at 31 chars and rejects []:*?/\
    ws.title = (re.sub(r"[\[\]:*?/\\]", " ", title).strip() or "Responses")[:31]
    ws.append(columns)
    for row in rows:
        ws.append(row)
    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


def export_responses(principal: Principal, form_id: int, fmt: str = "csv") -> tuple[bytes, str, str]:
    """
    Export a form's responses, oldest first.

    Returns (content, mimetype, filename). Requires view access to the form.
    """
    fmt = (fmt or "csv").lower()
    if fmt not in EXPORT_FORMATS:
        raise ValidationError(f"Unsupported export format: {fmt}", field_errors={"format": "Use csv or xlsx"})

    form = access_service.get_form_or_404(form_id)
    access_service.require_access(principal, form, "view")

    responses = list(reversed(response_service.list_responses(form.id)))
    columns = export_columns(form, responses)
    rows = [_row(r, columns) for r in responses]

    if fmt == "csv":
        content = _to_csv(columns, rows)
    else:
        content = _to_xlsx(form.name, columns, rows)

    return content, EXPORT_FORMATS[fmt], f"{_safe_filename(form.name)}_responses.{fmt}"
