"""
vriksha.errors — Error Types
=============================

Every error raised by the store or the field services derives from
:class:`VrikshaError`:

- ValidationError:      malformed input to a mutation (nothing was changed)
- NotFoundError:        an operation referenced an unknown entity id
- ExternalServiceError: an AI / geolocation collaborator failed

``ExternalServiceError`` is always recoverable.  Callers substitute a
fallback value and carry on; it never surfaces as a store failure.
"""

from __future__ import annotations

from typing import Any


class VrikshaError(Exception):
    """Base exception for all Vriksha errors.

    Attributes
    ----------
    message : Human-readable message.
    code : Stable error code for programmatic handling (HTTP layer, logs).
    details : Extra context (offending field, entity id, ...).
    """

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or "VRIKSHA_ERROR"
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.code, "message": self.message, "details": self.details}


class ValidationError(VrikshaError):
    """A mutation received malformed input."""

    def __init__(self, message: str, field_name: str | None = None) -> None:
        super().__init__(
            message,
            code="VALIDATION_ERROR",
            details={"field": field_name} if field_name else None,
        )
        self.field_name = field_name


class NotFoundError(VrikshaError):
    """An operation referenced an entity id the store does not hold."""

    def __init__(self, kind: str, entity_id: str) -> None:
        super().__init__(
            f"{kind} not found: {entity_id}",
            code="NOT_FOUND",
            details={"kind": kind, "id": entity_id},
        )
        self.kind = kind
        self.entity_id = entity_id


class ExternalServiceError(VrikshaError):
    """An external collaborator (AI analysis, forecast, caption, GPS) failed."""

    def __init__(self, service: str, message: str) -> None:
        super().__init__(
            f"{service} unavailable: {message}",
            code="EXTERNAL_SERVICE_ERROR",
            details={"service": service},
        )
        self.service = service
