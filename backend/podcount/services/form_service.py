# Overview: Service-layer operations for forms; encapsulates business logic and database work.

"""
Form Repository

WHY: Forms are the user-defined data-collection templates. This module owns
their lifecycle and is the only writer of Form.fields, which is always
stored as the canonical {"sections": [...]} JSON.

DESIGN:
- Every read and mutation is checked through access_service (the ledger)
- (name, factory_id) uniqueness is enforced by the database; violations
  surface as ConflictError, never as a 500
- Creating a form shares it with the whole factory (grant_factory_defaults)
- Deleting a form is one transaction: access rows -> responses -> entries ->
  form, followed by an existence check before success is reported
- list_forms() lazily provisions the factory's default template
"""

from __future__ import annotations

from typing import Any

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..errors import ConflictError, InternalError, NotFoundError, ValidationError
from ..extensions import db
from ..form_templates import template_for_factory_type
from ..models import Factory, Form, FormAccess, FormEntry, FormResponse
from ..permissions import FORM_TYPES, FORM_TYPE_CONVENTIONAL
from ..schema import build_schema
from . import access_service
from .session_service import Principal
from .transactions import atomic


DUPLICATE_NAME_MESSAGE = "A form with this name already exists for this factory"
UPDATABLE_FIELDS = ("name", "description", "type", "fields", "factory_id")


def form_payload(form: Form, principal: Principal) -> dict:
    """Form JSON plus the permissions the ledger resolves for the requester."""
    payload = form.to_dict()
    payload["permissions"] = access_service.effective_grant(principal, form).to_dict()
    return payload


def _clean_name(name: Any) -> str:
    cleaned = str(name or "").strip()
    if not cleaned:
        raise ValidationError("Form name is required", field_errors={"name": "This field is required"})
    if len(cleaned) > Form.__table__.c.name.type.length:
        raise ValidationError("Form name is too long", field_errors={"name": "Too long"})
    return cleaned


def _clean_type(form_type: Any) -> str:
    value = str(form_type or FORM_TYPE_CONVENTIONAL).strip().upper()
    if value not in FORM_TYPES:
        raise ValidationError(
            f"Invalid form type: {value}",
            field_errors={"type": f"Must be one of: {', '.join(FORM_TYPES)}"},
        )
    return value


def _require_factory(factory_id: Any) -> Factory:
    if factory_id in (None, ""):
        raise ValidationError("Factory ID is required", field_errors={"factory_id": "This field is required"})
    try:
        factory_id = int(factory_id)
    except (TypeError, ValueError):
        raise ValidationError("Invalid factory ID", field_errors={"factory_id": "Must be an integer"})
    factory = db.session.get(Factory, factory_id)
    if not factory:
        raise NotFoundError("Factory not found")
    return factory


def insert_form(
    principal: Principal,
    *,
    name: Any,
    fields: Any,
    form_type: Any = FORM_TYPE_CONVENTIONAL,
    description: str | None = None,
    factory_id: Any = None,
) -> Form:
    """
    Add a form and its factory grants to the session without committing.

    Callers own the transaction (see create_form and the import pipeline).
    """
    factory = _require_factory(factory_id if factory_id not in (None, "") else principal.factory_id)
    schema = build_schema(fields)

    form = Form(
        name=_clean_name(name),
        description=(description or None),
        type=_clean_type(form_type),
        fields=schema.to_json(),
        factory_id=factory.id,
        created_by_id=principal.user_id,
    )
    db.session.add(form)
    db.session.flush()

    access_service.grant_factory_defaults(form, principal.user_id)
    return form


def create_form(
    principal: Principal,
    *,
    name: Any,
    fields: Any,
    form_type: Any = FORM_TYPE_CONVENTIONAL,
    description: str | None = None,
    factory_id: Any = None,
) -> Form:
    """
    Create a form in the given factory (default: the principal's own).

    Raises:
        ValidationError: bad name, type or schema; no factory
        NotFoundError: factory does not exist
        ConflictError: (name, factory_id) already taken
    """
    with atomic(DUPLICATE_NAME_MESSAGE, ["name", "factory_id"]):
        form = insert_form(
            principal,
            name=name,
            fields=fields,
            form_type=form_type,
            description=description,
            factory_id=factory_id,
        )
    return form


def get_form(principal: Principal, form_id: int) -> Form:
    form = access_service.get_form_or_404(form_id)
    return access_service.require_access(principal, form, "view")


def update_form(principal: Principal, form_id: int, patch: dict) -> Form:
    """
    Partial update: keys absent from patch keep their stored value.

    Changing fields re-validates the whole schema. Existing responses are
    left untouched.
    """
    if not isinstance(patch, dict):
        raise ValidationError("Invalid JSON payload")

    form = access_service.get_form_or_404(form_id)
    access_service.require_access(principal, form, "edit")

    unknown = sorted(k for k in patch if k not in UPDATABLE_FIELDS)
    if unknown:
        raise ValidationError(f"Field not allowed: {', '.join(unknown)}")

    with atomic(DUPLICATE_NAME_MESSAGE, ["name", "factory_id"]):
        if "name" in patch:
            form.name = _clean_name(patch["name"])
        if "description" in patch:
            form.description = patch["description"] or None
        if "type" in patch:
            form.type = _clean_type(patch["type"])
        if "fields" in patch:
            form.fields = build_schema(patch["fields"]).to_json()
        if patch.get("factory_id") not in (None, ""):
            form.factory_id = _require_factory(patch["factory_id"]).id
    return form


def delete_form_rows(form_id: int) -> None:
    # Order matters: nothing may reference the form once it is gone.
    db.session.query(FormAccess).filter(FormAccess.form_id == form_id).delete()
    db.session.query(FormResponse).filter(FormResponse.form_id == form_id).delete()
    db.session.query(FormEntry).filter(FormEntry.form_id == form_id).delete()
    db.session.query(Form).filter(Form.id == form_id).delete()


def _remaining_rows(form_id: int) -> dict[str, int]:
    counts = {
        "form": db.session.query(Form).filter(Form.id == form_id).count(),
        "access": db.session.query(FormAccess).filter(FormAccess.form_id == form_id).count(),
        "responses": db.session.query(FormResponse).filter(FormResponse.form_id == form_id).count(),
        "entries": db.session.query(FormEntry).filter(FormEntry.form_id == form_id).count(),
    }
    return {k: v for k, v in counts.items() if v}


def purge_form(form_id: int) -> None:
    """
    Delete a form and everything referencing it as one transaction.

    No permission check; callers decide who may purge. Rolls back and raises
    InternalError on any failure, including rows surviving the delete.
    """
    try:
        delete_form_rows(form_id)
        db.session.flush()
        remaining = _remaining_rows(form_id)
        if remaining:
            raise InternalError("Failed to delete form")
        db.session.commit()
    except InternalError:
        db.session.rollback()
        current_app.logger.error("Form %s still has rows after delete; rolled back", form_id)
        raise
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to delete form %s", form_id)
        raise InternalError("Failed to delete form") from exc


def delete_form(principal: Principal, form_id: int) -> None:
    form = access_service.get_form_or_404(form_id)
    access_service.require_access(principal, form, "delete")

    name = form.name
    purge_form(form.id)
    current_app.logger.info("Form %s (%s) deleted by user %s", form_id, name, principal.user_id)


def ensure_default_template(principal: Principal) -> Form | None:
    """
    Provision the factory's default template if it is missing.

    Idempotent: returns None when the principal has no factory or the
    template already exists. The requesting user becomes the creator.
    """
    if principal.factory_id is None:
        return None

    factory = db.session.get(Factory, principal.factory_id)
    if not factory:
        return None

    template = template_for_factory_type(factory.type)
    exists = db.session.query(Form.id).filter(
        Form.factory_id == factory.id,
        Form.name == template["name"],
    ).first()
    if exists:
        return None

    try:
        with atomic(DUPLICATE_NAME_MESSAGE, ["name", "factory_id"]):
            form = insert_form(
                principal,
                name=template["name"],
                fields=template["fields"],
                form_type=template["type"],
                description=template["description"],
                factory_id=factory.id,
            )
    except ConflictError:
        # Provisioned by a concurrent request.
        return None

    current_app.logger.info(
        "Provisioned default template %r for factory %s (%s)",
        form.name, factory.id, factory.type,
    )
    return form


def list_forms(principal: Principal, factory_id: int | None = None) -> list[Form]:
    """
    Forms visible to the principal, newest first.

    ADMIN sees every form (optionally filtered by factory). Other users see
    forms they created or hold a view grant on, within their own factory
    unless an explicit factory filter is given.
    """
    ensure_default_template(principal)

    query = db.session.query(Form)

    if factory_id is not None:
        query = query.filter(Form.factory_id == factory_id)
    elif not principal.is_admin and principal.factory_id is not None:
        query = query.filter(Form.factory_id == principal.factory_id)

    if not principal.is_admin:
        granted = db.session.query(FormAccess.form_id).filter(
            FormAccess.user_id == principal.user_id,
            FormAccess.can_view.is_(True),
        )
        query = query.filter(
            db.or_(
                Form.created_by_id == principal.user_id,
                Form.id.in_(granted),
            )
        )

    return query.order_by(Form.created_at.desc(), Form.id.desc()).all()
