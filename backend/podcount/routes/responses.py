# Overview: Flask API routes for form responses; parses input and returns JSON responses.

from flask import Blueprint, jsonify, request, g

from ..decorators import require_auth
from ..services import response_service


responses_bp = Blueprint("responses", __name__, url_prefix="/api/responses")


@responses_bp.post("")
@require_auth
def submit():
    """
    Single submission: {"form_id": ..., "data": {...}}, validated against the schema.
    Bulk: {"responses": [{"form_id": ..., "data": {...}}, ...]}, stored as given.
    """
    body = request.get_json(silent=True) or {}

    if "responses" in body:
        responses = body.get("responses")
        if not isinstance(responses, list):
            return jsonify({"error": "responses must be a list"}), 400
        count = response_service.submit_bulk(g.principal, responses)
        return jsonify({
            "success": True,
            "count": count,
            "message": f"Created {count} responses",
        }), 201

    if not body.get("form_id"):
        return jsonify({"error": "Form ID is required"}), 400

    response = response_service.submit_response(
        g.principal,
        body.get("form_id"),
        body.get("data") or {},
    )
    return jsonify(response.to_dict()), 201


@responses_bp.get("")
@require_auth
def list_responses():
    form_id = request.args.get("form_id", type=int)
    responses = response_service.list_responses(form_id)
    return jsonify([r.to_dict() for r in responses]), 200
