# Overview: Flask API routes for user administration; parses input and returns JSON responses.

from flask import Blueprint, jsonify, request, g

from ..decorators import require_auth, require_admin
from ..services import user_service


users_bp = Blueprint("users", __name__, url_prefix="/api/users")


@users_bp.get("")
@require_auth
def list_users():
    users = user_service.list_users()
    return jsonify([user.to_dict() for user in users]), 200


@users_bp.post("")
@require_auth
@require_admin
def create_user():
    data = request.get_json(silent=True) or {}
    user = user_service.create_user(g.principal, data)
    return jsonify(user.to_dict()), 201


@users_bp.get("/<int:user_id>")
@require_auth
def get_user(user_id: int):
    user = user_service.get_user(user_id)
    return jsonify(user.to_dict()), 200


@users_bp.patch("/<int:user_id>")
@require_auth
@require_admin
def update_user(user_id: int):
    data = request.get_json(silent=True) or {}
    user = user_service.update_user(g.principal, user_id, data)
    return jsonify(user.to_dict()), 200


@users_bp.delete("/<int:user_id>")
@require_auth
@require_admin
def delete_user(user_id: int):
    user_service.delete_user(g.principal, user_id)
    return jsonify({"message": "User deleted successfully"}), 200


@users_bp.post("/<int:user_id>/reset-password")
@require_auth
@require_admin
def reset_password(user_id: int):
    temporary_password = user_service.reset_user_password(g.principal, user_id)
    return jsonify({
        "message": "Password reset successfully",
        "temporary_password": temporary_password,
    }), 200
