# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Authentication Service

WHY: Every submission and admin action must be attributable. Uses bcrypt
for password hashing and a minimum length rule for new passwords.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor 12)
- Minimum 8 characters required
- Emails are matched case-insensitively (stored lowercased)
- Disabled accounts are rejected with a distinct error so the client can
  tell the user to contact an administrator
- Session tokens managed separately (see session_service.py)
"""

from __future__ import annotations

import secrets
import string

import bcrypt

from ..errors import ForbiddenError, UnauthorizedError, ValidationError
from ..extensions import db
from ..models import User
from podcount.time_utils import utcnow


MIN_PASSWORD_LENGTH = 8
TEMPORARY_PASSWORD_LENGTH = 10

# No lookalike characters (0/O, 1/l/I) in passwords read out over the phone.
_TEMP_ALPHABET = "".join(c for c in string.ascii_letters + string.digits if c not in "0O1lI")


def normalize_email(email: str | None) -> str:
    return (email or "").strip().lower()


def validate_password_strength(password: str | None) -> None:
    """Raises ValidationError when the password is too short."""
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters long",
            field_errors={"password": f"Must be at least {MIN_PASSWORD_LENGTH} characters"},
        )


def hash_password(password: str) -> str:
    """
    Hash password using bcrypt with cost factor 12.

    Password is validated for length before hashing.
    """
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=12)
    hashed = bcrypt.hashpw(password.encode("utf-8"), salt)
    return hashed.decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    A malformed stored hash counts as a mismatch.
    """
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


def generate_temporary_password(length: int = TEMPORARY_PASSWORD_LENGTH) -> str:
    return "".join(secrets.choice(_TEMP_ALPHABET) for _ in range(length))


def get_user_by_email(email: str | None) -> User | None:
    normalized = normalize_email(email)
    if not normalized:
        return None
    return db.session.query(User).filter(db.func.lower(User.email) == normalized).first()


def authenticate(email: str, password: str) -> User:
    """
    Authenticate user with email and password.

    Returns the User and stamps last_login_at.

    Raises:
        UnauthorizedError: unknown email or wrong password
        ForbiddenError: the account exists but is DISABLED
    """
    user = get_user_by_email(email)

    if not user or not verify_password(password or "", user.password_hash):
        raise UnauthorizedError("Invalid credentials")

    # Checked after the password so a wrong guess cannot reveal a disabled account.
    if not user.is_active:
        raise ForbiddenError("Your account has been disabled. Please contact an administrator.")

    user.last_login_at = utcnow()
    db.session.commit()
    return user
