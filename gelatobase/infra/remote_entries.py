"""Async HTTP client for the remote entries API."""

from __future__ import annotations

from datetime import date
from typing import Any, Dict, List, Optional, Protocol

import httpx

from ..domain.entries.errors import (
    ConfigurationError,
    NotFoundError,
    TransportError,
    ValidationError,
)
from ..domain.entries.models import Entry, normalize_entry_payload
from .logging import get_logger

__all__ = ["HttpRemoteEntryClient", "RemoteEntryClient", "build_remote_entry_client"]

logger = get_logger(__name__)

ENTRIES_PATH = "/api/entries"
VERIFY_ADMIN_PATH = "/api/verify-admin"


class RemoteEntryClient(Protocol):  # pragma: no cover - interface only
    """List/create/delete operations over the persistence API."""

    async def list_entries(self) -> List[Entry]: ...

    async def create_entry(
        self,
        *,
        shop: str,
        flavor: str,
        date: date,
        notes: str,
        person: str,
    ) -> Entry: ...

    async def delete_entry(self, entry_id: str) -> None: ...

    async def verify_admin(self, password: str) -> bool: ...


class HttpRemoteEntryClient(RemoteEntryClient):
    """``httpx.AsyncClient`` backed implementation of :class:`RemoteEntryClient`.

    Every network failure, timeout, non-success status or undecodable body is
    surfaced as a :class:`TransportError` unless the status maps onto a more
    specific error (400 validation, 404 not found, admin misconfiguration).
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "HttpRemoteEntryClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def list_entries(self) -> List[Entry]:
        response = await self._send("GET", ENTRIES_PATH)
        self._raise_for_status(response, operation="list")
        body = self._decode(response, operation="list")
        if not isinstance(body, list):
            raise TransportError(
                "Entries listing must be a JSON array",
                details={"operation": "list"},
            )
        try:
            return [Entry.from_payload(normalize_entry_payload(item)) for item in body]
        except (TypeError, ValueError, AttributeError) as exc:
            raise TransportError(
                f"Malformed entry in listing: {exc}", details={"operation": "list"}
            ) from exc

    async def create_entry(
        self,
        *,
        shop: str,
        flavor: str,
        date: date,
        notes: str,
        person: str,
    ) -> Entry:
        payload = {
            "shop": shop,
            "flavor": flavor,
            "date": date.isoformat(),
            "notes": notes,
            "person": person,
        }
        response = await self._send("POST", ENTRIES_PATH, json=payload)
        if response.status_code == httpx.codes.BAD_REQUEST:
            raise ValidationError(
                self._error_message(response, "Missing required fields")
            )
        self._raise_for_status(response, operation="create")
        body = self._decode(response, operation="create")
        try:
            return Entry.from_payload(normalize_entry_payload(body))
        except (TypeError, ValueError, AttributeError) as exc:
            raise TransportError(
                f"Malformed entry in create response: {exc}",
                details={"operation": "create"},
            ) from exc

    async def delete_entry(self, entry_id: str) -> None:
        response = await self._send("DELETE", f"{ENTRIES_PATH}/{entry_id}")
        if response.status_code == httpx.codes.NOT_FOUND:
            raise NotFoundError("Entry not found", details={"id": entry_id})
        self._raise_for_status(response, operation="delete")

    async def verify_admin(self, password: str) -> bool:
        response = await self._send(
            "POST", VERIFY_ADMIN_PATH, json={"password": password}
        )
        if response.status_code == httpx.codes.OK:
            body = self._decode(response, operation="verify_admin")
            return bool(isinstance(body, dict) and body.get("valid"))
        if response.status_code == httpx.codes.UNAUTHORIZED:
            return False
        if response.status_code == httpx.codes.BAD_REQUEST:
            raise ValidationError(self._error_message(response, "Password is required"))
        if self._error_code(response) == ConfigurationError.default_error_code:
            raise ConfigurationError("Admin authentication not configured")
        self._raise_for_status(response, operation="verify_admin")
        return False

    # ------------------------------------------------------------------
    # HTTP helpers
    # ------------------------------------------------------------------
    async def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            return await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            logger.warning(
                "remote_entries_request_failed",
                extra={"method": method, "url": url, "error": str(exc)},
            )
            raise TransportError(
                f"{method} {url} failed: {exc}",
                details={"method": method, "url": url},
            ) from exc

    def _raise_for_status(self, response: httpx.Response, *, operation: str) -> None:
        if response.is_success:
            return
        logger.warning(
            "remote_entries_bad_status",
            extra={"operation": operation, "status_code": response.status_code},
        )
        raise TransportError(
            f"HTTP error! status: {response.status_code}",
            details={"operation": operation, "status_code": response.status_code},
        )

    def _decode(self, response: httpx.Response, *, operation: str) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            raise TransportError(
                "Remote response was not valid JSON",
                details={"operation": operation},
            ) from exc

    def _error_body(self, response: httpx.Response) -> Dict[str, Any]:
        try:
            body = response.json()
        except ValueError:
            return {}
        if not isinstance(body, dict):
            return {}
        detail = body.get("detail")
        if isinstance(detail, dict):
            return detail
        return body

    def _error_code(self, response: httpx.Response) -> Optional[str]:
        code = self._error_body(response).get("error_code")
        return str(code) if code else None

    def _error_message(self, response: httpx.Response, default: str) -> str:
        body = self._error_body(response)
        message = body.get("message") or body.get("error")
        return str(message) if message else default


def build_remote_entry_client(settings: Any = None) -> HttpRemoteEntryClient:
    """Return a client pointed at the configured API base URL."""

    if settings is None:
        from ..config import load_settings

        settings = load_settings()
    return HttpRemoteEntryClient(
        settings.api.base_url, timeout=settings.api.timeout_seconds
    )
