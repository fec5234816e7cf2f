# Overview: Flask API routes for password reset requests; parses input and returns JSON responses.

from flask import Blueprint, jsonify, request, g

from ..decorators import require_auth, require_admin
from ..services import password_reset_service


password_reset_bp = Blueprint("password_reset", __name__, url_prefix="/api/password-reset-requests")


@password_reset_bp.post("")
def request_reset():
    """Unauthenticated; the reply is the same whether or not the email exists."""
    data = request.get_json(silent=True) or {}
    message = password_reset_service.request_password_reset(data.get("email"))
    return jsonify({"message": message}), 200


@password_reset_bp.get("")
@require_auth
@require_admin
def list_requests():
    requests_ = password_reset_service.list_reset_requests(g.principal)
    return jsonify([r.to_dict() for r in requests_]), 200


@password_reset_bp.post("/<int:request_id>/complete")
@require_auth
@require_admin
def complete_request(request_id: int):
    result = password_reset_service.complete_reset_request(g.principal, request_id)
    return jsonify({
        "message": "Password reset request completed",
        "request": result.request.to_dict(),
        "temporary_password": result.temporary_password,
    }), 200


@password_reset_bp.post("/<int:request_id>/cancel")
@require_auth
@require_admin
def cancel_request(request_id: int):
    reset_request = password_reset_service.cancel_reset_request(g.principal, request_id)
    return jsonify({"message": "Password reset request cancelled", "request": reset_request.to_dict()}), 200
