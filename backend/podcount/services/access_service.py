# Overview: Service-layer operations for form access; encapsulates business logic and database work.

"""
Form Access Control Ledger

WHY: Every form read, edit and delete goes through one decision function
instead of re-deriving admin/creator checks in each route.

RULE (in order):
1. ADMIN principals may do anything
2. The form's creator may do anything
3. Otherwise the (user, form) FormAccess row decides; no row means no access

MUTATIONS:
- grant(): ADMIN-only upsert of the single row per (user, form)
- revoke(): ADMIN-only delete; a missing row is NotFoundError
- grant_factory_defaults(): applied when a form is created, shares it with
  every member of the form's factory using factory_default_grant(role)

Denials are recorded as FORM_ACCESS_DENIED security events.
"""

from __future__ import annotations

from flask import has_request_context, request

from ..errors import ForbiddenError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Form, FormAccess, User
from ..permissions import (
    ACTIONS,
    FULL_GRANT,
    NO_GRANT,
    Grant,
    factory_default_grant,
)
from .audit_service import log_security_event
from .session_service import Principal
from .transactions import atomic


def _client_context() -> dict:
    if not has_request_context():
        return {"resource": None, "ip_address": None, "user_agent": None}
    return {
        "resource": request.path,
        "ip_address": request.remote_addr,
        "user_agent": request.headers.get("User-Agent"),
    }


def _log_denied(principal: Principal, event_type: str, action: str, reason: str) -> None:
    ctx = _client_context()
    log_security_event(
        user_id=principal.user_id,
        factory_id=principal.factory_id,
        event_type=event_type,
        success=False,
        action=action,
        reason=reason,
        **ctx,
    )


def get_form_or_404(form_id: int) -> Form:
    form = db.session.get(Form, form_id)
    if not form:
        raise NotFoundError("Form not found")
    return form


def effective_grant(principal: Principal, form: Form) -> Grant:
    """The grant the ledger resolves for this principal on this form."""
    if principal.is_admin:
        return FULL_GRANT
    if form.created_by_id is not None and form.created_by_id == principal.user_id:
        return FULL_GRANT

    row = db.session.query(FormAccess).filter_by(
        user_id=principal.user_id,
        form_id=form.id,
    ).first()
    if not row:
        return NO_GRANT
    return Grant(can_view=bool(row.can_view), can_edit=bool(row.can_edit), can_delete=bool(row.can_delete))


def can_perform(principal: Principal, form: Form, action: str) -> bool:
    if action not in ACTIONS:
        raise ValueError(f"Unknown action: {action}")
    return effective_grant(principal, form).allows(action)


def require_access(principal: Principal, form: Form, action: str) -> Form:
    """Returns the form, or logs the denial and raises ForbiddenError."""
    if can_perform(principal, form, action):
        return form

    _log_denied(
        principal,
        "FORM_ACCESS_DENIED",
        action,
        f"No {action} access to form {form.id}",
    )
    raise ForbiddenError(f"You do not have permission to {action} this form")


def require_admin(principal: Principal, action: str) -> None:
    if principal.is_admin:
        return
    _log_denied(principal, "ADMIN_REQUIRED", action, "Administrator role required")
    raise ForbiddenError("Only administrators can perform this action")


def _upsert(user_id: int, form_id: int, grant: Grant) -> FormAccess:
    row = db.session.query(FormAccess).filter_by(user_id=user_id, form_id=form_id).first()
    if row:
        row.can_view = grant.can_view
        row.can_edit = grant.can_edit
        row.can_delete = grant.can_delete
        return row

    row = FormAccess(
        user_id=user_id,
        form_id=form_id,
        can_view=grant.can_view,
        can_edit=grant.can_edit,
        can_delete=grant.can_delete,
    )
    db.session.add(row)
    return row


def grant(
    principal: Principal,
    form_id: int,
    user_id: int,
    can_view: bool = True,
    can_edit: bool = False,
    can_delete: bool = False,
) -> FormAccess:
    """
    Create or replace the access row for (user_id, form_id).

    Raises:
        ForbiddenError: principal is not ADMIN
        NotFoundError: form or user does not exist
    """
    require_admin(principal, "GRANT_ACCESS")

    if user_id is None:
        raise ValidationError("User ID is required", field_errors={"user_id": "This field is required"})

    form = get_form_or_404(form_id)
    if not db.session.get(User, user_id):
        raise NotFoundError("User not found")

    with atomic("Form access already exists", ["user_id", "form_id"]):
        row = _upsert(user_id, form.id, Grant(bool(can_view), bool(can_edit), bool(can_delete)))
        log_security_event(
            user_id=principal.user_id,
            factory_id=form.factory_id,
            event_type="ACCESS_GRANTED",
            success=True,
            action="GRANT_ACCESS",
            reason=f"user={user_id} form={form.id} view={row.can_view} edit={row.can_edit} delete={row.can_delete}",
            commit=False,
        )
    return row


def revoke(principal: Principal, form_id: int, user_id: int) -> None:
    """
    Delete the access row for (user_id, form_id).

    Raises:
        ForbiddenError: principal is not ADMIN
        NotFoundError: no such row
    """
    require_admin(principal, "REVOKE_ACCESS")

    row = db.session.query(FormAccess).filter_by(user_id=user_id, form_id=form_id).first()
    if not row:
        raise NotFoundError("Form access not found")

    with atomic():
        db.session.delete(row)
        log_security_event(
            user_id=principal.user_id,
            event_type="ACCESS_REVOKED",
            success=True,
            action="REVOKE_ACCESS",
            reason=f"user={user_id} form={form_id}",
            commit=False,
        )


def list_access(principal: Principal, form_id: int) -> list[FormAccess]:
    """Rows for one form; ADMIN or anyone who can view the form."""
    form = get_form_or_404(form_id)
    require_access(principal, form, "view")
    return (
        db.session.query(FormAccess)
        .filter_by(form_id=form.id)
        .order_by(FormAccess.id.asc())
        .all()
    )


def grant_factory_defaults(form: Form, creator_id: int | None) -> int:
    """
    Share a new form with its factory. Does not commit.

    The creator gets full access; every other factory member gets
    factory_default_grant(role). Returns the number of rows written.
    """
    count = 0
    if creator_id is not None:
        _upsert(creator_id, form.id, FULL_GRANT)
        count += 1

    members = db.session.query(User).filter(User.factory_id == form.factory_id).all()
    for member in members:
        if member.id == creator_id:
            continue
        _upsert(member.id, form.id, factory_default_grant(member.role))
        count += 1
    return count

