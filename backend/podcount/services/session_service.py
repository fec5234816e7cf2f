# Overview: Service-layer operations for login sessions; resolves bearer tokens into principals.

"""
Login Sessions

A successful login issues an opaque bearer token. Only its SHA-256 digest is
persisted in session_tokens, so a leaked database cannot be replayed.

PRINCIPAL: A validated session yields a Principal (user_id, role,
factory_id). Services take the principal as an explicit argument instead of
reading request globals, so they can be called from routes, the CLI and
tests alike.

LIFETIME:
- Absolute cap: SESSION_ABSOLUTE_TIMEOUT_HOURS after login (default 8h)
- Idle cap: SESSION_IDLE_TIMEOUT_HOURS since last use (default 2h)
- Ended early by logout, an admin password reset or disabling the account
"""

from __future__ import annotations

import hashlib
import secrets
from dataclasses import dataclass
from datetime import timedelta

from flask import current_app

from ..extensions import db
from ..models import SessionToken, User
from ..permissions import ROLE_ADMIN
from podcount.time_utils import utcnow


DEFAULT_ABSOLUTE_TIMEOUT_HOURS = 8
DEFAULT_IDLE_TIMEOUT_HOURS = 2
TOKEN_BYTES = 32


@dataclass(frozen=True)
class Principal:
    """Authenticated identity handed to every service call."""
    user_id: int
    role: str
    factory_id: int | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    @classmethod
    def from_user(cls, user: User) -> "Principal":
        return cls(user_id=user.id, role=user.role, factory_id=user.factory_id)


@dataclass
class SessionContext:
    """What require_auth stores on flask.g: the user, the session row and the principal."""
    user: User
    session: SessionToken
    principal: Principal


def _absolute_timeout() -> timedelta:
    return timedelta(hours=current_app.config.get("SESSION_ABSOLUTE_TIMEOUT_HOURS", DEFAULT_ABSOLUTE_TIMEOUT_HOURS))


def _idle_timeout() -> timedelta:
    return timedelta(hours=current_app.config.get("SESSION_IDLE_TIMEOUT_HOURS", DEFAULT_IDLE_TIMEOUT_HOURS))


def generate_token() -> str:
    """64 hex characters; handed to the client once and never stored."""
    return secrets.token_hex(TOKEN_BYTES)


def hash_token(token: str) -> str:
    # Tokens carry 256 bits of entropy, so an unsalted fast digest is enough.
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def _find_live(token: str) -> SessionToken | None:
    return db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False,
    ).first()


def create_session(
    user_id: int,
    user_agent: str | None = None,
    ip_address: str | None = None,
) -> tuple[SessionToken, str]:
    """
    Open a session for user_id and commit it.

    Returns (row, token). The caller sends the token to the client; the row
    only keeps its digest.
    """
    user = db.session.get(User, user_id)
    if not user:
        raise ValueError("User not found")

    token = generate_token()
    issued_at = utcnow()

    session = SessionToken(
        user_id=user.id,
        token_hash=hash_token(token),
        created_at=issued_at,
        last_used_at=issued_at,
        expires_at=issued_at + _absolute_timeout(),
        user_agent=user_agent,
        ip_address=ip_address,
        is_revoked=False,
    )
    db.session.add(session)
    db.session.commit()

    return session, token


def _mark_revoked(session: SessionToken, reason: str, when=None) -> None:
    session.is_revoked = True
    session.revoked_at = when or utcnow()
    session.revoked_reason = reason


def validate_session(token: str) -> SessionContext | None:
    """
    Resolve a bearer token, or None when it cannot be used.

    Unknown, revoked and expired tokens return None. A token that sat idle
    too long, or whose user has since been disabled, is revoked on the spot
    before None is returned. A good token has last_used_at bumped.
    """
    now = utcnow()

    session = _find_live(token)
    if not session or session.expires_at < now:
        return None

    if now - session.last_used_at > _idle_timeout():
        _mark_revoked(session, "Idle timeout", now)
        db.session.commit()
        return None

    user = session.user
    if not user or not user.is_active:
        _mark_revoked(session, "User account disabled", now)
        db.session.commit()
        return None

    session.last_used_at = now
    db.session.commit()

    return SessionContext(user=user, session=session, principal=Principal.from_user(user))


def revoke_session(token: str, reason: str = "User logout") -> bool:
    """False when the token is unknown or already revoked."""
    session = _find_live(token)
    if not session:
        return False

    _mark_revoked(session, reason)
    db.session.commit()
    return True


def revoke_all_user_sessions(user_id: int, reason: str = "Revoke all sessions", commit: bool = True) -> int:
    """
    End every live session of one user; returns how many were ended.

    commit=False lets user administration fold this into its own transaction.
    """
    now = utcnow()
    live = db.session.query(SessionToken).filter_by(user_id=user_id, is_revoked=False).all()

    for session in live:
        _mark_revoked(session, reason, now)

    if commit:
        db.session.commit()
    return len(live)


def cleanup_expired_sessions(older_than_days: int = 30) -> int:
    """Purge expired or revoked rows created before the cutoff; returns the row count."""
    now = utcnow()
    cutoff = now - timedelta(days=older_than_days)

    removed = db.session.query(SessionToken).filter(
        db.or_(
            SessionToken.expires_at < now,
            SessionToken.is_revoked.is_(True),
        ),
        SessionToken.created_at < cutoff,
    ).delete(synchronize_session=False)

    db.session.commit()
    return removed
