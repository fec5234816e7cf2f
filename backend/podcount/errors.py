# Overview: Service-level exception taxonomy mapped onto HTTP status codes.

"""
Service errors.

Services raise these; the application-level error handler registered in
create_app() renders them as JSON bodies with the matching status code.
Routes never need to re-derive status codes for service failures.
"""

from __future__ import annotations

from typing import Any


class ServiceError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code = 500

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message())
        self.message = message or self.default_message()

    @classmethod
    def default_message(cls) -> str:
        return "Internal server error"

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.message}


class UnauthorizedError(ServiceError):
    """401: no identity, or the identity can no longer authenticate."""

    status_code = 401

    @classmethod
    def default_message(cls) -> str:
        return "Authentication required"


class ForbiddenError(ServiceError):
    """403: identity present, grant or role missing."""

    status_code = 403

    @classmethod
    def default_message(cls) -> str:
        return "Forbidden"


class NotFoundError(ServiceError):
    status_code = 404

    @classmethod
    def default_message(cls) -> str:
        return "Not found"


class ConflictError(ServiceError):
    """409: unique constraint or business rule conflict."""

    status_code = 409

    def __init__(self, message: str | None = None, fields: list[str] | None = None):
        super().__init__(message)
        self.fields = list(fields or [])

    @classmethod
    def default_message(cls) -> str:
        return "Conflict"

    def to_dict(self) -> dict[str, Any]:
        body = super().to_dict()
        if self.fields:
            body["fields"] = self.fields
        return body


class ValidationError(ServiceError):
    """
    400: input problem.

    field_errors maps a field name (or a path like "fields[2].type") to a
    message so clients can highlight exactly which inputs failed.
    """

    status_code = 400

    def __init__(self, message: str | None = None, field_errors: dict[str, str] | None = None):
        super().__init__(message)
        self.field_errors = dict(field_errors or {})

    @classmethod
    def default_message(cls) -> str:
        return "Validation failed"

    def to_dict(self) -> dict[str, Any]:
        body = super().to_dict()
        if self.field_errors:
            body["field_errors"] = self.field_errors
        return body


class EmptyBatchError(ValidationError):
    @classmethod
    def default_message(cls) -> str:
        return "No responses provided"


class EmptyFileError(ValidationError):
    @classmethod
    def default_message(cls) -> str:
        return "No data found in file"


class InternalError(ServiceError):
    """500: unexpected failure. Message must not leak driver detail."""
