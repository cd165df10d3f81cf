"""Error taxonomy shared by the entry store, the remote client and the synchronizer."""

from __future__ import annotations

from http import HTTPStatus
from typing import Any, Dict

__all__ = [
    "ConfigurationError",
    "EntryServiceError",
    "NotFoundError",
    "PermissionDeniedError",
    "TransportError",
    "ValidationError",
]


class EntryServiceError(Exception):
    """Domain exception propagated to API handlers and sync callers."""

    default_status = HTTPStatus.INTERNAL_SERVER_ERROR
    default_error_code = "entry_service_error"

    def __init__(
        self,
        message: str,
        *,
        status_code: HTTPStatus | None = None,
        error_code: str | None = None,
        details: Dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code or self.default_status
        self.error_code = error_code or self.default_error_code
        self.message = message
        self.details = details or {}


class ValidationError(EntryServiceError):
    """A required field is missing or blank."""

    default_status = HTTPStatus.BAD_REQUEST
    default_error_code = "validation_error"


class TransportError(EntryServiceError):
    """The remote store was unreachable or answered with a server error."""

    default_status = HTTPStatus.BAD_GATEWAY
    default_error_code = "transport_error"


class NotFoundError(EntryServiceError):
    default_status = HTTPStatus.NOT_FOUND
    default_error_code = "not_found"


class PermissionDeniedError(EntryServiceError):
    """Deletion attempted without elevated privilege, or a wrong admin password."""

    default_status = HTTPStatus.FORBIDDEN
    default_error_code = "permission_denied"


class ConfigurationError(EntryServiceError):
    """The admin secret is not configured on the server."""

    default_status = HTTPStatus.INTERNAL_SERVER_ERROR
    default_error_code = "configuration_error"
