# Overview: Service error taxonomy shared by services and routes.

"""
Every service failure that a caller is expected to see is raised as a
ServiceError subclass. Each class carries a stable ``kind`` string and the
HTTP status the routes answer with. Anything else escaping a service is an
unexpected failure: routes log it and answer a generic 500.
"""

from __future__ import annotations


class ServiceError(Exception):
    """Base class for expected service failures."""
    kind = "error"
    status_code = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        body = {"error": self.message, "kind": self.kind}
        if self.details:
            body["details"] = self.details
        return body


class NotFoundError(ServiceError):
    """Entity or hierarchy link missing."""
    kind = "not_found"
    status_code = 404


class AccessDeniedError(ServiceError):
    """Caller's scope does not cover the target."""
    kind = "access_denied"
    status_code = 403


class ValidationError(ServiceError, ValueError):
    """400-level input problem."""
    kind = "validation_error"
    status_code = 400


class ConflictError(ServiceError, ValueError):
    """Business rule conflict with the current state of a record."""
    kind = "conflict"
    status_code = 400


class InsufficientStockError(ConflictError):
    kind = "insufficient_stock"


class AlreadyConfirmedError(ConflictError):
    kind = "already_confirmed"


UNEXPECTED_ERROR_BODY = {"error": "Internal server error", "kind": "unexpected"}
