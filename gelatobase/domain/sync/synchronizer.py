"""Client-side owner of the canonical entry collection.

:class:`EntrySynchronizer` reconciles the session's entries with the remote
store. Remote calls are awaited one at a time; when the remote fails the
synchronizer degrades to the local cache (on load) or to a local-only commit
(on submit and delete) and raises a dismissible warning instead of dropping
user input.

Operations are not queued or locked. Each one commits against whatever
collection is current when it commits, so overlapping operations resolve as
last commit wins.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Sequence, Tuple

from ...infra.local_cache import EntryCache, InMemoryEntryCache
from ...infra.logging import get_logger
from ...infra.metrics import MetricsClient, get_metrics_client
from ...infra.remote_entries import RemoteEntryClient
from ..entries.errors import (
    EntryServiceError,
    PermissionDeniedError,
    ValidationError,
)
from ..entries.models import Entry, EntryDraft, utcnow
from .demo_data import build_demo_entries

__all__ = [
    "EntrySynchronizer",
    "OperationState",
    "SyncResult",
]

logger = get_logger(__name__)

LOAD_FALLBACK_MESSAGE = "Could not connect to database. Using local data."
SUBMIT_VALIDATION_MESSAGE = "Please fill in at least one flavour and your name"
SUBMIT_FALLBACK_MESSAGE = "Failed to save to database. Saving locally."
DELETE_PERMISSION_MESSAGE = "Admin access is required to delete entries"
DELETE_FALLBACK_MESSAGE = "Failed to delete from database. Deleting locally."
ADMIN_PASSWORD_REQUIRED_MESSAGE = "Password is required"
ADMIN_INVALID_MESSAGE = "Invalid password"
ADMIN_FAILURE_MESSAGE = "Admin verification failed."


class OperationState(str, Enum):
    """Lifecycle of a single synchronizer operation."""

    IDLE = "idle"
    IN_FLIGHT = "in_flight"
    COMMITTED = "committed"
    DEGRADED_FALLBACK = "degraded_fallback"
    REJECTED = "rejected"


@dataclass(frozen=True)
class SyncResult:
    """Terminal outcome of a load, submit, delete or admin verification."""

    operation: str
    state: OperationState
    entries: Tuple[Entry, ...] = ()
    source: Optional[str] = None
    message: Optional[str] = None
    error: Optional[EntryServiceError] = None

    @property
    def committed(self) -> bool:
        return self.state is OperationState.COMMITTED


def _clock_entry_id(index: int) -> str:
    return f"local-{time.time_ns()}-{index}"


class EntrySynchronizer:
    """Owns the session's entries and their reconciliation with the remote store."""

    def __init__(
        self,
        remote: RemoteEntryClient,
        cache: EntryCache | None = None,
        *,
        metrics: MetricsClient | None = None,
        clock: Callable[[], datetime] = utcnow,
        demo_entries: Callable[[], Sequence[Entry]] | None = None,
        id_factory: Callable[[int], str] = _clock_entry_id,
        initial_entries: Sequence[Entry] = (),
    ) -> None:
        self._remote = remote
        self._cache = cache if cache is not None else InMemoryEntryCache()
        self._metrics = metrics or get_metrics_client()
        self._clock = clock
        self._demo_entries = demo_entries or (lambda: build_demo_entries(clock()))
        self._id_factory = id_factory
        self._entries: Tuple[Entry, ...] = tuple(initial_entries)
        self._elevated = False
        self._warning: Optional[str] = None
        self._in_flight = 0
        self._last_state = OperationState.IDLE

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------
    @property
    def entries(self) -> Tuple[Entry, ...]:
        return self._entries

    def snapshot(self) -> Tuple[Entry, ...]:
        """Immutable view of the canonical collection, newest first."""

        return self._entries

    @property
    def warning(self) -> Optional[str]:
        return self._warning

    def dismiss_warning(self) -> None:
        self._warning = None

    @property
    def is_elevated(self) -> bool:
        return self._elevated

    @property
    def is_busy(self) -> bool:
        return self._in_flight > 0

    @property
    def last_state(self) -> OperationState:
        return self._last_state

    def stats(
        self,
        aggregator: Any,
        *,
        shop: Optional[str] = None,
        person: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> dict[str, Any]:
        return aggregator.build_stats(
            self.snapshot(), shop=shop, person=person, now=now
        )

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------
    async def load(self) -> SyncResult:
        return await self._run("load", self._load)

    async def submit_entries(self, draft: EntryDraft) -> SyncResult:
        return await self._run("submit", lambda: self._submit(draft))

    async def delete_entry(self, entry_id: str) -> SyncResult:
        return await self._run("delete", lambda: self._delete(str(entry_id)))

    async def verify_admin(self, password: str) -> SyncResult:
        return await self._run("verify_admin", lambda: self._verify_admin(password))

    def revoke_admin(self) -> None:
        self._elevated = False

    # ------------------------------------------------------------------
    # Operation bodies
    # ------------------------------------------------------------------
    async def _load(self) -> SyncResult:
        try:
            fetched = await self._remote.list_entries()
        except EntryServiceError as exc:
            cached = self._cache.read()
            if cached is not None:
                entries, source = tuple(cached), "cache"
            else:
                entries, source = tuple(self._demo_entries()), "demo"
            self._entries = entries
            logger.warning(
                "entry_sync_load_failed",
                extra={
                    "error_code": exc.error_code,
                    "fallback_source": source,
                    "entry_count": len(entries),
                },
            )
            return SyncResult(
                operation="load",
                state=OperationState.DEGRADED_FALLBACK,
                entries=entries,
                source=source,
                message=LOAD_FALLBACK_MESSAGE,
                error=exc,
            )

        entries = tuple(
            sorted(fetched, key=lambda entry: entry.timestamp, reverse=True)
        )
        self._commit(entries)
        logger.info("entry_sync_loaded", extra={"entry_count": len(entries)})
        return SyncResult(
            operation="load",
            state=OperationState.COMMITTED,
            entries=entries,
            source="remote",
        )

    async def _submit(self, draft: EntryDraft) -> SyncResult:
        missing = draft.missing_fields()
        if missing:
            logger.info("entry_sync_submit_rejected", extra={"missing": missing})
            return SyncResult(
                operation="submit",
                state=OperationState.REJECTED,
                message=SUBMIT_VALIDATION_MESSAGE,
                error=ValidationError(
                    SUBMIT_VALIDATION_MESSAGE, details={"missing": missing}
                ),
            )

        flavors = draft.candidate_flavors()
        notes = draft.notes or ""
        confirmed: list[Entry] = []
        try:
            for flavor in flavors:
                saved = await self._remote.create_entry(
                    shop=draft.shop,
                    flavor=flavor,
                    date=draft.date,
                    notes=notes,
                    person=draft.person,
                )
                confirmed.append(saved)
        except EntryServiceError as exc:
            # Every requested flavour is kept locally, including any the
            # remote already confirmed.
            local_entries = self._build_local_entries(draft, flavors, notes)
            self._commit(local_entries + self._entries)
            logger.warning(
                "entry_sync_submit_degraded",
                extra={
                    "error_code": exc.error_code,
                    "requested": len(flavors),
                    "confirmed_before_failure": len(confirmed),
                },
            )
            return SyncResult(
                operation="submit",
                state=OperationState.DEGRADED_FALLBACK,
                entries=local_entries,
                source="local",
                message=SUBMIT_FALLBACK_MESSAGE,
                error=exc,
            )

        saved_entries = tuple(confirmed)
        self._commit(saved_entries + self._entries)
        logger.info("entry_sync_submitted", extra={"entry_count": len(saved_entries)})
        return SyncResult(
            operation="submit",
            state=OperationState.COMMITTED,
            entries=saved_entries,
            source="remote",
        )

    async def _delete(self, entry_id: str) -> SyncResult:
        if not self._elevated:
            logger.info("entry_sync_delete_rejected", extra={"entry_id": entry_id})
            return SyncResult(
                operation="delete",
                state=OperationState.REJECTED,
                message=DELETE_PERMISSION_MESSAGE,
                error=PermissionDeniedError(
                    DELETE_PERMISSION_MESSAGE, details={"id": entry_id}
                ),
            )

        state = OperationState.COMMITTED
        message: Optional[str] = None
        error: Optional[EntryServiceError] = None
        try:
            await self._remote.delete_entry(entry_id)
        except EntryServiceError as exc:
            # A 404 is a failed remote delete too; the entry still goes locally.
            state = OperationState.DEGRADED_FALLBACK
            message = DELETE_FALLBACK_MESSAGE
            error = exc
            logger.warning(
                "entry_sync_delete_degraded",
                extra={"entry_id": entry_id, "error_code": exc.error_code},
            )

        removed = tuple(entry for entry in self._entries if entry.id == entry_id)
        self._commit(tuple(entry for entry in self._entries if entry.id != entry_id))
        return SyncResult(
            operation="delete",
            state=state,
            entries=removed,
            source="remote" if error is None else "local",
            message=message,
            error=error,
        )

    async def _verify_admin(self, password: str) -> SyncResult:
        if not (password or "").strip():
            return SyncResult(
                operation="verify_admin",
                state=OperationState.REJECTED,
                message=ADMIN_PASSWORD_REQUIRED_MESSAGE,
                error=ValidationError(ADMIN_PASSWORD_REQUIRED_MESSAGE),
            )
        try:
            valid = await self._remote.verify_admin(password)
        except ValidationError as exc:
            return SyncResult(
                operation="verify_admin",
                state=OperationState.REJECTED,
                message=ADMIN_PASSWORD_REQUIRED_MESSAGE,
                error=exc,
            )
        except EntryServiceError as exc:
            logger.warning(
                "entry_sync_admin_verification_failed",
                extra={"error_code": exc.error_code},
            )
            return SyncResult(
                operation="verify_admin",
                state=OperationState.REJECTED,
                message=ADMIN_FAILURE_MESSAGE,
                error=exc,
            )
        if not valid:
            return SyncResult(
                operation="verify_admin",
                state=OperationState.REJECTED,
                message=ADMIN_INVALID_MESSAGE,
                error=PermissionDeniedError(ADMIN_INVALID_MESSAGE),
            )
        self._elevated = True
        logger.info("entry_sync_admin_granted")
        return SyncResult(operation="verify_admin", state=OperationState.COMMITTED)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    async def _run(
        self, operation: str, action: Callable[[], Awaitable[SyncResult]]
    ) -> SyncResult:
        self._in_flight += 1
        self._last_state = OperationState.IN_FLIGHT
        self._warning = None
        try:
            result = await action()
        except BaseException:
            self._last_state = OperationState.IDLE
            raise
        finally:
            self._in_flight -= 1
        self._last_state = result.state
        if result.message is not None:
            self._warning = result.message
        self._metrics.increment(f"entry_sync_{operation}_{result.state.value}_total")
        return result

    def _commit(self, entries: Tuple[Entry, ...]) -> None:
        self._entries = entries
        self._cache.write(entries)
        self._metrics.gauge("entry_sync_collection_size", len(entries))

    def _build_local_entries(
        self, draft: EntryDraft, flavors: Sequence[str], notes: str
    ) -> Tuple[Entry, ...]:
        now = self._clock()
        return tuple(
            Entry(
                id=self._id_factory(index),
                shop=draft.shop,
                flavor=flavor,
                date=draft.date,
                person=draft.person,
                notes=notes,
                timestamp=now,
            )
            for index, flavor in enumerate(flavors)
        )
