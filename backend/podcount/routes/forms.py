# Overview: Flask API routes for forms operations; parses input and returns JSON responses.

"""
Form Routes

Form CRUD, per-user access grants, tabular import and response export.
Every form payload carries "permissions" resolved for the requester.
"""

import io

from flask import Blueprint, jsonify, request, g, send_file, current_app

from ..decorators import require_auth
from ..errors import ValidationError
from ..services import access_service, export_service, form_service, import_service


forms_bp = Blueprint("forms", __name__, url_prefix="/api/forms")


def _optional_int(value, field: str):
    if value in (None, ""):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be an integer", field_errors={field: "Must be an integer"})


@forms_bp.get("")
@require_auth
def list_forms():
    factory_id = _optional_int(request.args.get("factory_id"), "factory_id")
    forms = form_service.list_forms(g.principal, factory_id=factory_id)
    return jsonify([form_service.form_payload(form, g.principal) for form in forms]), 200


@forms_bp.post("")
@require_auth
def create_form():
    data = request.get_json(silent=True) or {}
    form = form_service.create_form(
        g.principal,
        name=data.get("name"),
        fields=data.get("fields"),
        form_type=data.get("type"),
        description=data.get("description"),
        factory_id=data.get("factory_id"),
    )
    return jsonify(form_service.form_payload(form, g.principal)), 201


@forms_bp.get("/<int:form_id>")
@require_auth
def get_form(form_id: int):
    form = form_service.get_form(g.principal, form_id)
    return jsonify(form_service.form_payload(form, g.principal)), 200


@forms_bp.route("/<int:form_id>", methods=["PUT", "PATCH"])
@require_auth
def update_form(form_id: int):
    data = request.get_json(silent=True) or {}
    form = form_service.update_form(g.principal, form_id, data)
    return jsonify(form_service.form_payload(form, g.principal)), 200


@forms_bp.delete("/<int:form_id>")
@require_auth
def delete_form(form_id: int):
    form_service.delete_form(g.principal, form_id)
    return jsonify({"message": "Form deleted successfully"}), 200


@forms_bp.get("/<int:form_id>/access")
@require_auth
def list_access(form_id: int):
    rows = access_service.list_access(g.principal, form_id)
    return jsonify([row.to_dict() for row in rows]), 200


@forms_bp.post("/<int:form_id>/access")
@require_auth
def grant_access(form_id: int):
    data = request.get_json(silent=True) or {}
    row = access_service.grant(
        g.principal,
        form_id,
        _optional_int(data.get("user_id"), "user_id"),
        can_view=data.get("can_view", True),
        can_edit=data.get("can_edit", False),
        can_delete=data.get("can_delete", False),
    )
    return jsonify(row.to_dict()), 200


@forms_bp.delete("/<int:form_id>/access")
@require_auth
def revoke_access(form_id: int):
    user_id = _optional_int(request.args.get("user_id"), "user_id")
    if user_id is None:
        return jsonify({"error": "user_id is required"}), 400
    access_service.revoke(g.principal, form_id, user_id)
    return jsonify({"message": "Access removed"}), 200


@forms_bp.post("/import")
@require_auth
def import_form():
    if "file" not in request.files:
        return jsonify({"error": "file is required"}), 400

    file = request.files["file"]
    filename = file.filename or ""

    try:
        content = file.stream.read()
    except OSError:
        current_app.logger.exception("Failed to read upload %s", filename)
        return jsonify({"error": "Failed to read uploaded file"}), 400

    result = import_service.import_tabular(
        g.principal,
        content,
        filename,
        name=request.form.get("name"),
        description=request.form.get("description"),
        factory_id=request.form.get("factory_id"),
    )

    return jsonify({
        "form": form_service.form_payload(result.form, g.principal),
        "responses_created": result.responses_created,
    }), 201


@forms_bp.get("/<int:form_id>/export")
@require_auth
def export_responses(form_id: int):
    content, mimetype, filename = export_service.export_responses(
        g.principal,
        form_id,
        request.args.get("format", "csv"),
    )
    return send_file(
        io.BytesIO(content),
        mimetype=mimetype,
        as_attachment=True,
        download_name=filename,
    )
