# Overview: Domain error taxonomy shared by services and routes.

"""
Every service operation raises one of these synchronously, before or instead
of committing. Routes map them to HTTP status codes via ``http_status``.
"""

from __future__ import annotations


class DomainError(Exception):
    """Base class for business-rule failures."""

    http_status = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        body = {"error": self.message}
        if self.details:
            body["details"] = self.details
        return body


class NotFoundError(DomainError):
    """Referenced order/item/ingredient/account/financial year is absent."""

    http_status = 404


class ValidationFailedError(DomainError):
    """Input violates a local invariant (unbalanced voucher, bad quantity, ...)."""

    http_status = 400


class StateConflictError(DomainError):
    """Operation is not valid for the entity's current status."""

    http_status = 409


class InsufficientStockError(StateConflictError):
    """A deduction asks for more than an ingredient has on hand."""
