# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

"""
Authentication API routes

- POST /api/auth/login    email + password -> session token
- POST /api/auth/logout   revoke the presented token
- GET  /api/auth/me       current user and principal
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_auth
from ..errors import ServiceError
from ..services import auth_service, session_service
from ..services.audit_service import log_security_event


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/login")
def login_route():
    """
    Authenticate user and create session token.

    Token must be included as "Authorization: Bearer <token>" afterwards.
    Failed and successful logins are recorded as security events.
    """
    data = request.get_json(silent=True) or {}
    email = data.get("email")
    password = data.get("password")

    if not email or not password:
        return jsonify({"error": "email and password required"}), 400

    user_agent = request.headers.get("User-Agent")
    ip_address = request.remote_addr

    try:
        user = auth_service.authenticate(email, password)
    except ServiceError as exc:
        known = auth_service.get_user_by_email(email)
        log_security_event(
            user_id=known.id if known else None,
            factory_id=known.factory_id if known else None,
            event_type="LOGIN_FAILED",
            success=False,
            resource=request.path,
            action="LOGIN",
            reason=exc.message,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        raise

    try:
        session, token = session_service.create_session(
            user_id=user.id,
            user_agent=user_agent,
            ip_address=ip_address,
        )
        log_security_event(
            user_id=user.id,
            factory_id=user.factory_id,
            event_type="LOGIN_SUCCESS",
            success=True,
            resource=request.path,
            action="LOGIN",
            ip_address=ip_address,
            user_agent=user_agent,
        )
    except Exception:
        current_app.logger.exception("Failed to login user")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({
        "user": user.to_dict(),
        "token": token,
        "session": session.to_dict(),
        "message": "Login successful",
    }), 200


@auth_bp.post("/logout")
@require_auth
def logout_route():
    session_service.revoke_session(g.session_token, reason="User logout")
    log_security_event(
        user_id=g.principal.user_id,
        factory_id=g.principal.factory_id,
        event_type="LOGOUT",
        success=True,
        resource=request.path,
        action="LOGOUT",
        ip_address=request.remote_addr,
        user_agent=request.headers.get("User-Agent"),
    )
    return jsonify({"message": "Logged out"}), 200


@auth_bp.get("/me")
@require_auth
def me_route():
    principal = g.principal
    return jsonify({
        "user": g.current_user.to_dict(),
        "principal": {
            "user_id": principal.user_id,
            "role": principal.role,
            "factory_id": principal.factory_id,
        },
        "session": g.session_context.session.to_dict(),
    }), 200
