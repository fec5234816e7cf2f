# Overview: Service-layer operations for the security audit trail; encapsulates database work.

"""
Security Event Logging

WHY: Denied form access, failed logins and admin actions must be reviewable
after the fact. Events are append-only rows in security_events.

event_type examples:
- LOGIN_SUCCESS / LOGIN_FAILED / LOGOUT
- FORM_ACCESS_DENIED
- ADMIN_REQUIRED
- ACCESS_GRANTED / ACCESS_REVOKED
- PASSWORD_RESET
"""

from __future__ import annotations

from ..extensions import db
from ..models import SecurityEvent
from podcount.time_utils import utcnow


def log_security_event(
    user_id: int | None,
    event_type: str,
    success: bool,
    resource: str | None = None,
    action: str | None = None,
    reason: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
    factory_id: int | None = None,
    commit: bool = True,
) -> SecurityEvent:
    """
    Append a security event.

    commit=False lets callers that are already inside a unit of work record
    the event alongside their own changes.
    """
    event = SecurityEvent(
        user_id=user_id,
        factory_id=factory_id,
        event_type=event_type,
        resource=resource,
        action=action,
        success=success,
        reason=reason,
        ip_address=ip_address,
        user_agent=user_agent,
        occurred_at=utcnow(),
    )

    db.session.add(event)
    if commit:
        db.session.commit()

    return event


def list_security_events(user_id: int | None = None, limit: int = 100) -> list[SecurityEvent]:
    query = db.session.query(SecurityEvent)
    if user_id is not None:
        query = query.filter(SecurityEvent.user_id == user_id)
    return query.order_by(SecurityEvent.occurred_at.desc(), SecurityEvent.id.desc()).limit(limit).all()
