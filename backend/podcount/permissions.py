# Overview: Role, status and type vocabularies plus the default form-grant policy.

"""
Roles and form permissions.

Form access is decided by the Access Control Ledger
(services/access_service.py). This module only holds the vocabularies it
works with and the policy applied when a form is shared factory-wide.
"""

from __future__ import annotations

from dataclasses import dataclass


ROLE_ADMIN = "ADMIN"
ROLE_SUPERVISOR = "SUPERVISOR"
ROLE_FIELD_OFFICER = "FIELD_OFFICER"
ROLE_GUEST = "GUEST"
ROLE_USER = "USER"

ROLES = (ROLE_ADMIN, ROLE_SUPERVISOR, ROLE_FIELD_OFFICER, ROLE_GUEST, ROLE_USER)

STATUS_ACTIVE = "ACTIVE"
STATUS_DISABLED = "DISABLED"

USER_STATUSES = (STATUS_ACTIVE, STATUS_DISABLED)

FACTORY_TYPES = ("PROCESSING", "STORAGE", "OFFICE", "OTHER", "CONVENTIONAL", "ORGANIC")

FORM_TYPE_CONVENTIONAL = "CONVENTIONAL"
FORM_TYPE_ORGANIC = "ORGANIC"
FORM_TYPE_IMPORTED = "IMPORTED"

FORM_TYPES = (FORM_TYPE_CONVENTIONAL, FORM_TYPE_ORGANIC, FORM_TYPE_IMPORTED)

ACTION_VIEW = "view"
ACTION_EDIT = "edit"
ACTION_DELETE = "delete"

ACTIONS = (ACTION_VIEW, ACTION_EDIT, ACTION_DELETE)

# Roles that receive edit rights when a form is shared with their factory.
FACTORY_EDIT_ROLES = frozenset({ROLE_ADMIN, ROLE_SUPERVISOR, ROLE_FIELD_OFFICER})
FACTORY_DELETE_ROLES = frozenset({ROLE_ADMIN})


@dataclass(frozen=True)
class Grant:
    can_view: bool = False
    can_edit: bool = False
    can_delete: bool = False

    def allows(self, action: str) -> bool:
        if action == ACTION_VIEW:
            return self.can_view
        if action == ACTION_EDIT:
            return self.can_edit
        if action == ACTION_DELETE:
            return self.can_delete
        raise ValueError(f"Unknown action: {action}")

    def to_dict(self) -> dict:
        return {
            "can_view": self.can_view,
            "can_edit": self.can_edit,
            "can_delete": self.can_delete,
        }


FULL_GRANT = Grant(can_view=True, can_edit=True, can_delete=True)
NO_GRANT = Grant()


def factory_default_grant(role: str) -> Grant:
    """Grant given to a factory member when a form is shared with their factory."""
    return Grant(
        can_view=True,
        can_edit=role in FACTORY_EDIT_ROLES,
        can_delete=role in FACTORY_DELETE_ROLES,
    )
