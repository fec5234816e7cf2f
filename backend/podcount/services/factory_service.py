# Overview: Service-layer operations for factories; encapsulates business logic and database work.

"""
Factory (tenant) management.

Factories group users and forms. Only administrators create, change or
delete them; anyone signed in can list them (the form builder needs the
list to pick a target factory).
"""

from __future__ import annotations

from flask import current_app

from ..errors import ConflictError, NotFoundError
from ..extensions import db
from ..models import Factory, Form, User
from ..permissions import FACTORY_TYPES
from ..validation import ModelValidationPolicy, validate_payload
from . import form_service
from .access_service import require_admin
from .session_service import Principal
from .transactions import atomic


FACTORY_POLICY = ModelValidationPolicy(
    writable_fields={"name", "location", "type"},
    required_on_create={"name", "location"},
    choices={"type": FACTORY_TYPES},
)

DUPLICATE_NAME_MESSAGE = "A factory with this name already exists"


def list_factories() -> list[Factory]:
    return db.session.query(Factory).order_by(Factory.name.asc()).all()


def get_factory(factory_id: int) -> Factory:
    factory = db.session.get(Factory, factory_id)
    if not factory:
        raise NotFoundError("Factory not found")
    return factory


def create_factory(principal: Principal, payload: dict) -> Factory:
    require_admin(principal, "CREATE_FACTORY")
    patch = validate_payload(model=Factory, payload=payload, policy=FACTORY_POLICY, partial=False)
    patch.setdefault("type", "OTHER")

    with atomic(DUPLICATE_NAME_MESSAGE, ["name"]):
        factory = Factory(**patch)
        db.session.add(factory)
    return factory


def update_factory(principal: Principal, factory_id: int, payload: dict) -> Factory:
    require_admin(principal, "UPDATE_FACTORY")
    factory = get_factory(factory_id)
    patch = validate_payload(model=Factory, payload=payload, policy=FACTORY_POLICY, partial=True)

    with atomic(DUPLICATE_NAME_MESSAGE, ["name"]):
        for key, value in patch.items():
            setattr(factory, key, value)
    return factory


def delete_factory(principal: Principal, factory_id: int) -> None:
    """
    Delete a factory that has no users, together with its forms.

    Raises ConflictError while any user still belongs to the factory.
    """
    require_admin(principal, "DELETE_FACTORY")
    factory = get_factory(factory_id)

    if db.session.query(User.id).filter(User.factory_id == factory.id).first():
        raise ConflictError("Cannot delete factory with associated users")

    form_ids = [fid for (fid,) in db.session.query(Form.id).filter(Form.factory_id == factory.id).all()]

    with atomic():
        for form_id in form_ids:
            form_service.delete_form_rows(form_id)
        db.session.delete(factory)

    current_app.logger.info(
        "Factory %s deleted by user %s (%s forms removed)",
        factory_id, principal.user_id, len(form_ids),
    )
