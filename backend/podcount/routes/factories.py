# Overview: Flask API routes for factories operations; parses input and returns JSON responses.

from flask import Blueprint, jsonify, request, g

from ..decorators import require_auth, require_admin
from ..services import factory_service


factories_bp = Blueprint("factories", __name__, url_prefix="/api/factories")


@factories_bp.get("")
@require_auth
def list_factories():
    factories = factory_service.list_factories()
    return jsonify([factory.to_dict() for factory in factories]), 200


@factories_bp.post("")
@require_auth
@require_admin
def create_factory():
    data = request.get_json(silent=True) or {}
    factory = factory_service.create_factory(g.principal, data)
    return jsonify(factory.to_dict()), 201


@factories_bp.get("/<int:factory_id>")
@require_auth
def get_factory(factory_id: int):
    factory = factory_service.get_factory(factory_id)
    return jsonify(factory.to_dict()), 200


@factories_bp.put("/<int:factory_id>")
@require_auth
@require_admin
def update_factory(factory_id: int):
    data = request.get_json(silent=True) or {}
    factory = factory_service.update_factory(g.principal, factory_id, data)
    return jsonify(factory.to_dict()), 200


@factories_bp.delete("/<int:factory_id>")
@require_auth
@require_admin
def delete_factory(factory_id: int):
    factory_service.delete_factory(g.principal, factory_id)
    return jsonify({"message": "Factory deleted successfully"}), 200
