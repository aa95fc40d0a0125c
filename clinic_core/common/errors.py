# backend/clinic_core/common/errors.py
from __future__ import annotations

from typing import Any


class DomainError(Exception):
    """
    Base class for every failure the access engine surfaces to its callers.

    Services raise these synchronously; the API layer maps them onto the
    standard error envelope (see clinic_core.common.api.exceptions).
    """
    code = "domain_error"
    http_status = 400
    default_message = "Request failed."

    def __init__(self, message: str | None = None, *, details: Any = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)


class Forbidden(DomainError):
    """Actor lacks the permission, or violates a role-eligibility rule."""
    code = "forbidden"
    http_status = 403
    default_message = "You do not have permission to perform this action."


class Unauthorized(DomainError):
    """Credential mismatch or inactive account."""
    code = "unauthorized"
    http_status = 401
    default_message = "Invalid credentials."


class NotFound(DomainError):
    code = "not_found"
    http_status = 404
    default_message = "Not found."


class Conflict(DomainError):
    """Uniqueness, duplicate active grant, or stale-version write."""
    code = "conflict"
    http_status = 409
    default_message = "Conflict."


class InvariantViolation(DomainError):
    """Last-administrator protection."""
    code = "invariant_violation"
    http_status = 409
    default_message = "Operation would violate a system invariant."


class ValidationError(DomainError):
    code = "validation_error"
    http_status = 400
    default_message = "Invalid input."
