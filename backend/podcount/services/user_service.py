# Overview: Service-layer operations for users; encapsulates business logic and database work.

"""
User administration.

WHY: Accounts are created by administrators (or the seed command); there is
no self-registration. Listing is open to any signed-in user so forms can be
shared with colleagues.

SECURITY NOTES:
- Only ADMIN principals create, update, delete or reset users
- An admin can neither disable nor delete their own account
- Disabling a user or resetting their password revokes every session
"""

from __future__ import annotations

from flask import current_app

from ..errors import ConflictError, NotFoundError, ValidationError
from ..extensions import db
from ..models import (
    Factory,
    Form,
    FormAccess,
    FormEntry,
    FormResponse,
    PasswordResetRequest,
    SessionToken,
    User,
)
from ..permissions import ROLES, ROLE_USER, STATUS_ACTIVE, STATUS_DISABLED, USER_STATUSES
from ..validation import ModelValidationPolicy, validate_payload
from . import auth_service, session_service
from .access_service import require_admin
from .audit_service import log_security_event
from .session_service import Principal
from .transactions import atomic


USER_POLICY = ModelValidationPolicy(
    writable_fields={"name", "email", "role", "status", "factory_id"},
    required_on_create={"email"},
    choices={"role": ROLES, "status": USER_STATUSES},
)

DUPLICATE_EMAIL_MESSAGE = "A user with this email already exists"


def list_users() -> list[User]:
    return db.session.query(User).order_by(User.name.asc(), User.id.asc()).all()


def get_user(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if not user:
        raise NotFoundError("User not found")
    return user


def _clean_user_patch(payload: dict, partial: bool) -> dict:
    payload = dict(payload or {})
    if isinstance(payload.get("role"), str):
        payload["role"] = payload["role"].strip().upper()
    if isinstance(payload.get("status"), str):
        payload["status"] = payload["status"].strip().upper()

    patch = validate_payload(model=User, payload=payload, policy=USER_POLICY, partial=partial)

    if "email" in patch:
        email = auth_service.normalize_email(patch["email"])
        if "@" not in email:
            raise ValidationError("Invalid email address", field_errors={"email": "Enter a valid email address"})
        patch["email"] = email

    if patch.get("factory_id") is not None and not db.session.get(Factory, patch["factory_id"]):
        raise NotFoundError("Factory not found")

    return patch


def _ensure_email_free(email: str, exclude_user_id: int | None = None) -> None:
    existing = auth_service.get_user_by_email(email)
    if existing and existing.id != exclude_user_id:
        raise ConflictError(DUPLICATE_EMAIL_MESSAGE, fields=["email"])


def create_user(principal: Principal, payload: dict) -> User:
    """
    Create an ACTIVE user.

    payload: name, email, password, role (default USER), factory_id.
    """
    require_admin(principal, "CREATE_USER")

    payload = dict(payload or {})
    password = payload.pop("password", None)
    patch = _clean_user_patch(payload, partial=False)
    password_hash = auth_service.hash_password(password)

    _ensure_email_free(patch["email"])

    with atomic(DUPLICATE_EMAIL_MESSAGE, ["email"]):
        user = User(
            name=patch.get("name"),
            email=patch["email"],
            password_hash=password_hash,
            role=patch.get("role") or ROLE_USER,
            status=patch.get("status") or STATUS_ACTIVE,
            factory_id=patch.get("factory_id"),
        )
        db.session.add(user)
    return user


def update_user(principal: Principal, user_id: int, payload: dict) -> User:
    """Partial update of name, email, role, status and factory_id."""
    require_admin(principal, "UPDATE_USER")
    user = get_user(user_id)
    patch = _clean_user_patch(payload, partial=True)

    if user.id == principal.user_id and patch.get("status") == STATUS_DISABLED:
        raise ValidationError("You cannot disable your own account", field_errors={"status": "Cannot disable yourself"})

    if "email" in patch:
        _ensure_email_free(patch["email"], exclude_user_id=user.id)

    disabling = patch.get("status") == STATUS_DISABLED and user.status != STATUS_DISABLED

    with atomic(DUPLICATE_EMAIL_MESSAGE, ["email"]):
        for key, value in patch.items():
            setattr(user, key, value)
        if disabling:
            session_service.revoke_all_user_sessions(user.id, reason="Account disabled", commit=False)

    if disabling:
        current_app.logger.info("User %s disabled by user %s", user.id, principal.user_id)
    return user


def delete_user(principal: Principal, user_id: int) -> None:
    """
    Remove a user with their grants, sessions and reset requests.

    Forms, responses and entries they authored stay, with the author
    reference cleared.
    """
    require_admin(principal, "DELETE_USER")
    user = get_user(user_id)

    if user.id == principal.user_id:
        raise ValidationError("You cannot delete your own account")

    with atomic():
        db.session.query(FormAccess).filter(FormAccess.user_id == user.id).delete()
        db.session.query(SessionToken).filter(SessionToken.user_id == user.id).delete()
        db.session.query(PasswordResetRequest).filter(
            PasswordResetRequest.resolved_by_user_id == user.id
        ).update({PasswordResetRequest.resolved_by_user_id: None})
        db.session.query(PasswordResetRequest).filter(PasswordResetRequest.user_id == user.id).delete()

        db.session.query(Form).filter(Form.created_by_id == user.id).update({Form.created_by_id: None})
        db.session.query(FormResponse).filter(FormResponse.submitted_by_id == user.id).update(
            {FormResponse.submitted_by_id: None}
        )
        db.session.query(FormEntry).filter(FormEntry.submitted_by_id == user.id).update(
            {FormEntry.submitted_by_id: None}
        )
        db.session.delete(user)

    current_app.logger.info("User %s deleted by user %s", user_id, principal.user_id)


def set_temporary_password(user: User, actor: Principal) -> str:
    """Assign a fresh temporary password and revoke sessions. Does not commit."""
    temporary_password = auth_service.generate_temporary_password()
    user.password_hash = auth_service.hash_password(temporary_password)
    session_service.revoke_all_user_sessions(user.id, reason="Password reset", commit=False)
    log_security_event(
        user_id=actor.user_id,
        factory_id=user.factory_id,
        event_type="PASSWORD_RESET",
        success=True,
        action="RESET_PASSWORD",
        reason=f"Temporary password issued for user {user.id}",
        commit=False,
    )
    return temporary_password


def reset_user_password(principal: Principal, user_id: int) -> str:
    """Returns the plaintext temporary password; it is not stored anywhere."""
    require_admin(principal, "RESET_PASSWORD")
    user = get_user(user_id)

    with atomic():
        temporary_password = set_temporary_password(user, principal)

    current_app.logger.info("Password reset for user %s by user %s", user.id, principal.user_id)
    return temporary_password
