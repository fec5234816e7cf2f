# Overview: Service-layer operations for password reset requests; encapsulates business logic and database work.

"""
Self-service password reset requests.

LIFECYCLE:
    request_password_reset()  -> PENDING
    complete_reset_request()  PENDING -> COMPLETED (temporary password issued)
    cancel_reset_request()    PENDING -> CANCELLED

SECURITY: request_password_reset() behaves identically whether or not the
email belongs to an account, so it cannot be used to enumerate users.
"""

from __future__ import annotations

from dataclasses import dataclass

from flask import current_app
from sqlalchemy import case

from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import PasswordResetRequest, User
from ..permissions import ROLE_ADMIN
from podcount.time_utils import utcnow
from . import auth_service, user_service
from .access_service import require_admin
from .session_service import Principal
from .transactions import atomic


STATUS_PENDING = "PENDING"
STATUS_COMPLETED = "COMPLETED"
STATUS_CANCELLED = "CANCELLED"

RECEIVED_MESSAGE = "Password reset request received"


@dataclass
class CompletedReset:
    request: PasswordResetRequest
    temporary_password: str


def request_password_reset(email: str | None) -> str:
    """Returns the message shown to the requester, whatever the outcome."""
    if not auth_service.normalize_email(email):
        raise ValidationError("Email is required", field_errors={"email": "This field is required"})

    user = auth_service.get_user_by_email(email)
    if not user:
        return RECEIVED_MESSAGE

    already_open = db.session.query(PasswordResetRequest.id).filter_by(
        user_id=user.id,
        status=STATUS_PENDING,
    ).first()

    if not already_open:
        with atomic():
            db.session.add(PasswordResetRequest(user_id=user.id, status=STATUS_PENDING, created_at=utcnow()))

    admins = db.session.query(User.email).filter(User.role == ROLE_ADMIN).all()
    current_app.logger.info(
        "Password reset requested for %s; admins to notify: %s",
        user.email, ", ".join(email for (email,) in admins) or "none",
    )
    return RECEIVED_MESSAGE


def list_reset_requests(principal: Principal) -> list[PasswordResetRequest]:
    """PENDING first, then newest first."""
    require_admin(principal, "LIST_RESET_REQUESTS")
    pending_first = case((PasswordResetRequest.status == STATUS_PENDING, 0), else_=1)
    return (
        db.session.query(PasswordResetRequest)
        .order_by(pending_first, PasswordResetRequest.created_at.desc(), PasswordResetRequest.id.desc())
        .all()
    )


def _get_pending(request_id: int) -> PasswordResetRequest:
    reset_request = db.session.get(PasswordResetRequest, request_id)
    if not reset_request:
        raise NotFoundError("Password reset request not found")
    if reset_request.status != STATUS_PENDING:
        raise ValidationError("This request has already been processed")
    return reset_request


def complete_reset_request(principal: Principal, request_id: int) -> CompletedReset:
    require_admin(principal, "COMPLETE_RESET_REQUEST")
    reset_request = _get_pending(request_id)

    with atomic():
        temporary_password = user_service.set_temporary_password(reset_request.user, principal)
        reset_request.status = STATUS_COMPLETED
        reset_request.completed_at = utcnow()
        reset_request.resolved_by_user_id = principal.user_id

    current_app.logger.info(
        "Password reset request %s completed by user %s", reset_request.id, principal.user_id,
    )
    return CompletedReset(request=reset_request, temporary_password=temporary_password)


def cancel_reset_request(principal: Principal, request_id: int) -> PasswordResetRequest:
    require_admin(principal, "CANCEL_RESET_REQUEST")
    reset_request = _get_pending(request_id)

    with atomic():
        reset_request.status = STATUS_CANCELLED
        reset_request.completed_at = utcnow()
        reset_request.resolved_by_user_id = principal.user_id
    return reset_request
