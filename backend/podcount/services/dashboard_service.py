# Overview: Service-layer operations for dashboard counts; encapsulates database work.

from __future__ import annotations

from ..extensions import db
from ..models import Factory, Form, FormEntry, FormResponse, User
from .session_service import Principal


def dashboard_stats(principal: Principal) -> dict[str, int]:
    """
    Headline counts for the dashboard.

    Non-admins with a factory see form, response and entry counts for that
    factory only; user and factory counts are admin-only and read 0.
    """
    scoped = not principal.is_admin and principal.factory_id is not None

    forms = db.session.query(Form)
    responses = db.session.query(FormResponse).join(Form, FormResponse.form_id == Form.id)
    entries = db.session.query(FormEntry).join(Form, FormEntry.form_id == Form.id)

    if scoped:
        forms = forms.filter(Form.factory_id == principal.factory_id)
        responses = responses.filter(Form.factory_id == principal.factory_id)
        entries = entries.filter(Form.factory_id == principal.factory_id)

    stats = {
        "forms": forms.count(),
        "responses": responses.count(),
        "entries": entries.count(),
        "users": 0,
        "factories": 0,
    }

    if principal.is_admin:
        stats["users"] = db.session.query(User).count()
        stats["factories"] = db.session.query(Factory).count()

    return stats
