# Overview: Flask API routes for health, dashboard and audit endpoints.

"""
System endpoints.

- GET /health                  database and session table checks
- GET /api/dashboard/stats     headline counts for the signed-in user
- GET /api/security-events     recent audit events (ADMIN)
"""

import time

from flask import Blueprint, current_app, jsonify, request, g

from ..decorators import require_auth, require_admin
from ..extensions import db
from ..models import Factory, Form, SessionToken, User
from ..services import audit_service, dashboard_service
from podcount.time_utils import utcnow, to_utc_z


system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    start_time = time.time()
    try:
        details = {
            "factories": db.session.query(Factory).count(),
            "users": db.session.query(User).count(),
            "forms": db.session.query(Form).count(),
        }
        return {
            "status": "healthy",
            "latency_ms": round((time.time() - start_time) * 1000, 2),
            "details": details,
        }
    except Exception:
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round((time.time() - start_time) * 1000, 2),
            "error": "Database error",
        }


def check_session_health() -> dict:
    start_time = time.time()
    try:
        now = utcnow()
        active = db.session.query(SessionToken).filter(
            SessionToken.is_revoked.is_(False),
            SessionToken.expires_at >= now,
        ).count()
        expired = db.session.query(SessionToken).filter(
            SessionToken.is_revoked.is_(False),
            SessionToken.expires_at < now,
        ).count()
        return {
            "status": "healthy",
            "latency_ms": round((time.time() - start_time) * 1000, 2),
            "details": {"active_sessions": active, "expired_pending_cleanup": expired},
        }
    except Exception:
        current_app.logger.exception("Session health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round((time.time() - start_time) * 1000, 2),
            "error": "Session service error",
        }


@system_bp.get("/health")
def health():
    checks = {
        "database": check_database_health(),
        "sessions": check_session_health(),
    }
    healthy = all(c["status"] == "healthy" for c in checks.values())
    return jsonify({
        "status": "healthy" if healthy else "unhealthy",
        "timestamp": to_utc_z(utcnow()),
        "checks": checks,
    }), 200 if healthy else 503


@system_bp.get("/api/dashboard/stats")
@require_auth
def dashboard_stats():
    return jsonify(dashboard_service.dashboard_stats(g.principal)), 200


@system_bp.get("/api/security-events")
@require_auth
@require_admin
def security_events():
    user_id = request.args.get("user_id", type=int)
    limit = min(request.args.get("limit", 100, type=int), 500)
    events = audit_service.list_security_events(user_id=user_id, limit=limit)
    return jsonify([e.to_dict() for e in events]), 200
