"""Admin gate guarding destructive entry operations.

The check is a plain string comparison against ``ADMIN_PASSWORD``: no hashing,
no rate limiting. That weakness is known and intentionally left as is.
"""

from __future__ import annotations

from ...infra.logging import get_logger
from .errors import ConfigurationError, ValidationError

__all__ = ["AdminGate"]

logger = get_logger(__name__)


class AdminGate:
    """Compares a submitted password with the server-held admin secret."""

    def __init__(self, secret: str | None) -> None:
        self._secret = secret or None

    @property
    def is_configured(self) -> bool:
        return self._secret is not None

    def verify(self, password: str | None) -> bool:
        if not password:
            raise ValidationError("Password is required")
        if self._secret is None:
            logger.error("admin_password_not_configured")
            raise ConfigurationError("Admin authentication not configured")
        valid = password == self._secret
        logger.info("admin_verification_attempt", extra={"valid": valid})
        return valid
