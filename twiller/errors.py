"""
Domain errors raised by the service layer.

Each error carries the machine-readable code and HTTP status that the
exception handler in twiller.main renders as an ``Error`` body.
"""

from __future__ import annotations

from typing import Any


class ServiceError(Exception):
    code = "internal_error"
    status_code = 500

    def __init__(
        self,
        message: str,
        *,
        details: dict[str, Any] | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details
        if status_code is not None:
            self.status_code = status_code


class UnauthenticatedError(ServiceError):
    code = "unauthenticated"
    status_code = 401


class ForbiddenError(ServiceError):
    code = "forbidden"
    status_code = 403


class NotFoundError(ServiceError):
    code = "not_found"
    status_code = 404


class InvalidRequestError(ServiceError):
    code = "validation_error"
    status_code = 400


class ConflictError(ServiceError):
    code = "conflict"
    status_code = 409


class UpstreamError(ServiceError):
    code = "upstream_failure"
    status_code = 502


class AdmissionDeniedError(ServiceError):
    code = "admission_denied"
    status_code = 403


# ── Collaborator failures ─────────────────────────────────────────────────


class DeliveryError(UpstreamError):
    """Email or SMS transport could not hand off the message."""


class IdentityError(UpstreamError):
    """The identity authority rejected or failed a call."""


class PaymentError(UpstreamError):
    """The payment gateway failed to create an order."""


class MissingPhoneError(InvalidRequestError):
    """SMS delivery was selected but the user has no phone number on file."""
