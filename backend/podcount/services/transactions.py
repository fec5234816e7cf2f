# Overview: Unit-of-work helpers; commit or roll back and translate driver errors.

from __future__ import annotations

import re
from contextlib import contextmanager

from flask import current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..errors import ConflictError, InternalError, ServiceError
from ..extensions import db


# "UNIQUE constraint failed: forms.name, forms.factory_id" (SQLite)
_SQLITE_UNIQUE_RE = re.compile(r"UNIQUE constraint failed: ([\w., ]+)")
# 'Key (name, factory_id)=(...) already exists.' (PostgreSQL)
_PG_KEY_RE = re.compile(r"Key \(([^)]+)\)=")


def conflict_fields(exc: IntegrityError) -> list[str]:
    """Column names named by a unique-constraint violation, when identifiable."""
    message = str(getattr(exc, "orig", exc))

    match = _SQLITE_UNIQUE_RE.search(message)
    if match:
        return [part.strip().split(".")[-1] for part in match.group(1).split(",")]

    match = _PG_KEY_RE.search(message)
    if match:
        return [part.strip() for part in match.group(1).split(",")]

    return []


@contextmanager
def atomic(conflict_message: str = "Conflict", conflict_default_fields: list[str] | None = None):
    """
    Run the block as one transaction.

    Commits on success. On failure rolls back and raises:
    - ServiceError raised inside the block: re-raised unchanged
    - IntegrityError: ConflictError with the violated columns
    - any other SQLAlchemyError: InternalError (driver detail is logged, not returned)
    """
    try:
        yield db.session
        db.session.commit()
    except ServiceError:
        db.session.rollback()
        raise
    except IntegrityError as exc:
        db.session.rollback()
        fields = conflict_fields(exc) or list(conflict_default_fields or [])
        raise ConflictError(conflict_message, fields=fields) from exc
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Database transaction failed")
        raise InternalError("Database error") from exc
