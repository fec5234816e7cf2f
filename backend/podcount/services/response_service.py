# Overview: Service-layer operations for form responses; encapsulates business logic and database work.

"""
Response Repository

WHY: A response is one filled-in instance of a form. Rows are immutable:
there is no update path, and they are only removed with their form.

DESIGN:
- Submission is open to any authenticated user for any existing form;
  listing is organisation-wide. Export (export_service) is view-checked.
- Schema validation happens at the API boundary (validate_response_data);
  submit_bulk stores what it is given so imports keep every column.
- submit_bulk is all-or-nothing: one transaction for the whole batch.
"""

from __future__ import annotations

from typing import Any, Iterable

from ..errors import EmptyBatchError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Form, FormResponse
from ..schema import parse_schema
from ..validation import normalize_response_value, validate_response_data
from .session_service import Principal
from .transactions import atomic


def _form_or_404(form_id: Any) -> Form:
    try:
        form_id = int(form_id)
    except (TypeError, ValueError):
        raise NotFoundError("Form not found")
    form = db.session.get(Form, form_id)
    if not form:
        raise NotFoundError("Form not found")
    return form


def submit_response(principal: Principal, form_id: Any, data: dict, validate: bool = True) -> FormResponse:
    """
    Store one submission.

    With validate=True the data is checked and normalized against the form
    schema first (ValidationError carries per-field messages).
    """
    form = _form_or_404(form_id)

    if validate:
        data = validate_response_data(parse_schema(form.fields), data or {})
    elif not isinstance(data, dict):
        raise ValidationError("Response data must be an object")

    with atomic():
        response = FormResponse(
            form_id=form.id,
            data=data,
            submitted_by_id=principal.user_id,
        )
        db.session.add(response)
    return response


def add_bulk_rows(principal: Principal, form: Form, rows: Iterable[dict]) -> int:
    """Add normalized rows for one form to the session; caller commits."""
    count = 0
    for row in rows:
        data = {key: normalize_response_value(value) for key, value in (row or {}).items()}
        db.session.add(FormResponse(form_id=form.id, data=data, submitted_by_id=principal.user_id))
        count += 1
    return count


def submit_bulk(principal: Principal, responses: list[dict]) -> int:
    """
    Store a batch of {"form_id", "data"} entries in one transaction.

    Every row is written against the first entry's form. Keys outside the
    schema are stored as-is.

    Raises:
        EmptyBatchError: no entries; nothing is written
        ValidationError: an entry or its data is not an object
        NotFoundError: the first entry's form does not exist
    """
    if not responses:
        raise EmptyBatchError()

    errors = _malformed_entries(responses)
    if errors:
        raise ValidationError("Invalid responses", field_errors=errors)

    form = _form_or_404(responses[0].get("form_id"))

    with atomic():
        count = add_bulk_rows(principal, form, (entry.get("data") for entry in responses))
    return count


def _malformed_entries(responses: list) -> dict[str, str]:
    errors: dict[str, str] = {}
    for index, entry in enumerate(responses):
        if not isinstance(entry, dict):
            errors[f"responses[{index}]"] = "Must be an object"
        elif not isinstance(entry.get("data"), (dict, type(None))):
            errors[f"responses[{index}].data"] = "Must be an object"
    return errors


def list_responses(form_id: int | None = None) -> list[FormResponse]:
    """Newest first; optionally restricted to one form."""
    query = db.session.query(FormResponse)
    if form_id is not None:
        query = query.filter(FormResponse.form_id == form_id)
    return query.order_by(FormResponse.created_at.desc(), FormResponse.id.desc()).all()
