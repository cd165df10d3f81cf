"""Tests for the client-side entry synchronizer."""

from __future__ import annotations

import asyncio
from datetime import date, datetime, timezone

import pytest

from gelatobase.domain.dashboard import AnalyticsAggregator
from gelatobase.domain.entries import (
    ConfigurationError,
    EntryDraft,
    NotFoundError,
    PermissionDeniedError,
    TransportError,
    ValidationError,
)
from gelatobase.domain.sync import EntrySynchronizer, OperationState
from gelatobase.domain.sync import synchronizer as sync_module
from gelatobase.infra.local_cache import InMemoryEntryCache, encode_entries
from gelatobase.infra.metrics import InMemoryMetricsClient
from tests.helpers.fakes import FakeRemoteEntryClient, make_entry
from tests.helpers.logging import RecordingLogger, assert_extra_contains, find_log

pytestmark = [pytest.mark.sync]

NOW = datetime(2024, 3, 5, 9, 30, tzinfo=timezone.utc)


def _draft(*flavors: str, person: str = "Ana", notes: str | None = None) -> EntryDraft:
    return EntryDraft(
        shop="Joelato",
        person=person,
        date=date(2024, 3, 1),
        flavors=list(flavors),
        notes=notes,
    )


def _build(
    remote: FakeRemoteEntryClient,
    cache: InMemoryEntryCache | None = None,
    **kwargs,
) -> EntrySynchronizer:
    return EntrySynchronizer(
        remote,
        cache if cache is not None else InMemoryEntryCache(),
        metrics=InMemoryMetricsClient(),
        clock=lambda: NOW,
        **kwargs,
    )


def _elevated(remote: FakeRemoteEntryClient, **kwargs) -> EntrySynchronizer:
    synchronizer = _build(remote, **kwargs)
    result = asyncio.run(synchronizer.verify_admin(remote.admin_password))
    assert result.state is OperationState.COMMITTED
    return synchronizer


# ----------------------------------------------------------------------
# load
# ----------------------------------------------------------------------
def test_load_replaces_collection_and_seeds_cache():
    older = make_entry("1", minutes=0)
    newer = make_entry("2", flavor="Mint", minutes=10)
    remote = FakeRemoteEntryClient(entries=[older, newer])
    cache = InMemoryEntryCache()
    synchronizer = _build(remote, cache)

    result = asyncio.run(synchronizer.load())

    assert result.state is OperationState.COMMITTED
    assert result.source == "remote"
    assert [entry.id for entry in synchronizer.entries] == ["2", "1"]
    assert [entry.id for entry in cache.read()] == ["2", "1"]
    assert synchronizer.warning is None
    assert synchronizer.last_state is OperationState.COMMITTED


def test_load_falls_back_to_cache_when_remote_fails():
    cached = [make_entry("7", flavor="Lemon"), make_entry("8", flavor="Mango")]
    cache = InMemoryEntryCache(encode_entries(cached))
    remote = FakeRemoteEntryClient(list_error=TransportError("HTTP error! status: 500"))
    synchronizer = _build(remote, cache)

    result = asyncio.run(synchronizer.load())

    assert result.state is OperationState.DEGRADED_FALLBACK
    assert result.source == "cache"
    assert list(synchronizer.entries) == cached
    assert synchronizer.warning == sync_module.LOAD_FALLBACK_MESSAGE
    assert isinstance(result.error, TransportError)


def test_load_falls_back_to_demo_data_without_cache(monkeypatch):
    log = RecordingLogger()
    monkeypatch.setattr(sync_module, "logger", log)
    remote = FakeRemoteEntryClient(list_error=TransportError("connection refused"))
    cache = InMemoryEntryCache()
    synchronizer = _build(remote, cache)

    result = asyncio.run(synchronizer.load())

    assert result.state is OperationState.DEGRADED_FALLBACK
    assert result.source == "demo"
    assert [entry.flavor for entry in synchronizer.entries] == ["Chocolate", "Vanilla"]
    assert synchronizer.warning is not None
    # Demo data is never written to the cache.
    assert cache.writes == 0
    record = find_log(log.records, level="warning", message="entry_sync_load_failed")
    assert_extra_contains(
        record, error_code="transport_error", fallback_source="demo", entry_count=2
    )


def test_load_treats_corrupt_cache_as_absent():
    remote = FakeRemoteEntryClient(list_error=TransportError("timeout"))
    synchronizer = _build(remote, InMemoryEntryCache("{not json"))

    result = asyncio.run(synchronizer.load())

    assert result.source == "demo"


def test_load_clears_previous_warning_on_success():
    remote = FakeRemoteEntryClient(list_error=TransportError("down"))
    synchronizer = _build(remote)
    asyncio.run(synchronizer.load())
    assert synchronizer.warning is not None

    remote.list_error = None
    asyncio.run(synchronizer.load())

    assert synchronizer.warning is None


def test_dismiss_warning_clears_banner():
    synchronizer = _build(FakeRemoteEntryClient(list_error=TransportError("down")))
    asyncio.run(synchronizer.load())

    synchronizer.dismiss_warning()

    assert synchronizer.warning is None


# ----------------------------------------------------------------------
# submit
# ----------------------------------------------------------------------
def test_submit_creates_one_entry_per_non_blank_flavour():
    existing = make_entry("1", flavor="Vanilla")
    remote = FakeRemoteEntryClient(entries=[existing])
    cache = InMemoryEntryCache()
    synchronizer = _build(remote, cache, initial_entries=[existing])

    result = asyncio.run(
        synchronizer.submit_entries(_draft(" Mint ", "", "   ", "Choc", notes="yum"))
    )

    assert result.state is OperationState.COMMITTED
    assert [entry.flavor for entry in result.entries] == ["Mint", "Choc"]
    assert len({entry.id for entry in result.entries}) == 2
    for entry in result.entries:
        assert entry.shop == "Joelato"
        assert entry.person == "Ana"
        assert entry.date == date(2024, 3, 1)
        assert entry.notes == "yum"
    assert [entry.id for entry in synchronizer.entries] == [
        *(entry.id for entry in result.entries),
        "1",
    ]
    assert [entry.flavor for entry in cache.read()] == ["Mint", "Choc", "Vanilla"]


def test_submit_persists_flavours_sequentially_in_order():
    remote = FakeRemoteEntryClient()
    synchronizer = _build(remote)

    asyncio.run(synchronizer.submit_entries(_draft("A", "B", "C")))

    assert [kwargs["flavor"] for _, kwargs in remote.calls] == ["A", "B", "C"]
    assert all(kwargs["notes"] == "" for _, kwargs in remote.calls)


@pytest.mark.parametrize(
    "draft",
    [
        _draft("", "   "),
        _draft("Mint", person="  "),
        EntryDraft(shop="", person="Ana", date=date(2024, 3, 1), flavors=["Mint"]),
        EntryDraft(shop="Joelato", person="Ana", date=None, flavors=["Mint"]),
    ],
)
def test_submit_rejects_invalid_draft_without_remote_call(draft):
    remote = FakeRemoteEntryClient()
    cache = InMemoryEntryCache()
    synchronizer = _build(remote, cache)

    result = asyncio.run(synchronizer.submit_entries(draft))

    assert result.state is OperationState.REJECTED
    assert isinstance(result.error, ValidationError)
    assert synchronizer.warning == sync_module.SUBMIT_VALIDATION_MESSAGE
    assert remote.calls == []
    assert synchronizer.entries == ()
    assert cache.writes == 0


def test_submit_partial_failure_commits_every_requested_flavour_locally(monkeypatch):
    log = RecordingLogger()
    monkeypatch.setattr(sync_module, "logger", log)
    remote = FakeRemoteEntryClient(fail_create_after=1)
    cache = InMemoryEntryCache()
    existing = make_entry("1", flavor="Vanilla")
    synchronizer = _build(remote, cache, initial_entries=[existing])

    result = asyncio.run(synchronizer.submit_entries(_draft("A", "B", "C")))

    assert result.state is OperationState.DEGRADED_FALLBACK
    assert synchronizer.warning == sync_module.SUBMIT_FALLBACK_MESSAGE
    # A was confirmed, B failed, C was never attempted.
    assert [kwargs["flavor"] for _, kwargs in remote.calls] == ["A", "B"]
    assert [entry.flavor for entry in result.entries] == ["A", "B", "C"]
    assert all(entry.is_local for entry in result.entries)
    assert len({entry.id for entry in result.entries}) == 3
    assert all(entry.timestamp == NOW for entry in result.entries)
    assert [entry.flavor for entry in synchronizer.entries] == ["A", "B", "C", "Vanilla"]
    assert [entry.flavor for entry in cache.read()] == ["A", "B", "C", "Vanilla"]
    record = find_log(log.records, level="warning", message="entry_sync_submit_degraded")
    assert_extra_contains(record, requested=3, confirmed_before_failure=1)


def test_submit_fallback_uses_injected_local_ids():
    remote = FakeRemoteEntryClient(fail_create_after=0)
    synchronizer = _build(remote, id_factory=lambda index: f"local-test-{index}")

    result = asyncio.run(synchronizer.submit_entries(_draft("A", "B")))

    assert [entry.id for entry in result.entries] == ["local-test-0", "local-test-1"]


def test_cache_written_by_fallback_reloads_in_fresh_session():
    cache = InMemoryEntryCache()
    first = _build(FakeRemoteEntryClient(fail_create_after=0), cache)
    asyncio.run(first.submit_entries(_draft("Mint", "Choc")))

    offline = FakeRemoteEntryClient(list_error=TransportError("offline"))
    second = _build(offline, cache)
    result = asyncio.run(second.load())

    assert result.source == "cache"
    assert set(second.entries) == set(first.entries)


# ----------------------------------------------------------------------
# delete + admin
# ----------------------------------------------------------------------
def test_delete_without_admin_is_rejected_without_remote_call():
    entry = make_entry("5")
    remote = FakeRemoteEntryClient(entries=[entry])
    cache = InMemoryEntryCache()
    synchronizer = _build(remote, cache, initial_entries=[entry])

    result = asyncio.run(synchronizer.delete_entry("5"))

    assert result.state is OperationState.REJECTED
    assert isinstance(result.error, PermissionDeniedError)
    assert synchronizer.entries == (entry,)
    assert remote.calls == []
    assert cache.writes == 0


def test_delete_with_admin_removes_entry_and_refreshes_cache():
    keep = make_entry("4", flavor="Lemon")
    drop = make_entry("5")
    remote = FakeRemoteEntryClient(entries=[keep, drop])
    cache = InMemoryEntryCache()
    synchronizer = _elevated(remote, cache=cache, initial_entries=[keep, drop])

    result = asyncio.run(synchronizer.delete_entry("5"))

    assert result.state is OperationState.COMMITTED
    assert result.entries == (drop,)
    assert synchronizer.entries == (keep,)
    assert [entry.id for entry in cache.read()] == ["4"]
    assert ("delete", {"entry_id": "5"}) in remote.calls


def test_delete_transport_failure_still_removes_locally():
    drop = make_entry("5")
    remote = FakeRemoteEntryClient(entries=[drop], delete_error=TransportError("502"))
    synchronizer = _elevated(remote, initial_entries=[drop])

    result = asyncio.run(synchronizer.delete_entry("5"))

    assert result.state is OperationState.DEGRADED_FALLBACK
    assert synchronizer.entries == ()
    assert synchronizer.warning == sync_module.DELETE_FALLBACK_MESSAGE


def test_delete_of_entry_missing_remotely_degrades_with_warning(monkeypatch):
    log = RecordingLogger()
    monkeypatch.setattr(sync_module, "logger", log)
    drop = make_entry("local-1-0")
    cache = InMemoryEntryCache()
    remote = FakeRemoteEntryClient(delete_error=NotFoundError("Entry not found"))
    synchronizer = _elevated(remote, cache=cache, initial_entries=[drop])

    result = asyncio.run(synchronizer.delete_entry("local-1-0"))

    assert result.state is OperationState.DEGRADED_FALLBACK
    assert isinstance(result.error, NotFoundError)
    assert synchronizer.entries == ()
    assert cache.read() == []
    assert synchronizer.warning == sync_module.DELETE_FALLBACK_MESSAGE
    record = find_log(log.records, level="warning", message="entry_sync_delete_degraded")
    assert_extra_contains(record, entry_id="local-1-0", error_code="not_found")


def test_verify_admin_with_wrong_password_is_rejected():
    remote = FakeRemoteEntryClient(admin_password="right")
    synchronizer = _build(remote)

    result = asyncio.run(synchronizer.verify_admin("wrong"))

    assert result.state is OperationState.REJECTED
    assert isinstance(result.error, PermissionDeniedError)
    assert synchronizer.is_elevated is False


def test_verify_admin_blank_password_skips_remote():
    remote = FakeRemoteEntryClient()
    synchronizer = _build(remote)

    result = asyncio.run(synchronizer.verify_admin("  "))

    assert result.state is OperationState.REJECTED
    assert remote.calls == []


def test_verify_admin_configuration_error_is_reported_generically():
    remote = FakeRemoteEntryClient(
        admin_error=ConfigurationError("Admin authentication not configured")
    )
    synchronizer = _build(remote)

    result = asyncio.run(synchronizer.verify_admin("anything"))

    assert result.state is OperationState.REJECTED
    assert synchronizer.warning == sync_module.ADMIN_FAILURE_MESSAGE
    assert "configured" not in synchronizer.warning
    assert synchronizer.is_elevated is False


def test_revoke_admin_blocks_further_deletes():
    entry = make_entry("5")
    remote = FakeRemoteEntryClient(entries=[entry])
    synchronizer = _elevated(remote, initial_entries=[entry])

    synchronizer.revoke_admin()
    result = asyncio.run(synchronizer.delete_entry("5"))

    assert result.state is OperationState.REJECTED


# ----------------------------------------------------------------------
# state + metrics
# ----------------------------------------------------------------------
def test_operation_is_in_flight_while_awaiting_remote():
    observed = []
    synchronizer: EntrySynchronizer | None = None

    def _capture(_name: str) -> None:
        assert synchronizer is not None
        observed.append((synchronizer.is_busy, synchronizer.last_state))

    remote = FakeRemoteEntryClient(on_call=_capture)
    synchronizer = _build(remote)
    assert synchronizer.last_state is OperationState.IDLE

    asyncio.run(synchronizer.load())

    assert observed == [(True, OperationState.IN_FLIGHT)]
    assert synchronizer.is_busy is False


def test_outcomes_are_counted_in_metrics():
    metrics = InMemoryMetricsClient()
    remote = FakeRemoteEntryClient(list_error=TransportError("down"))
    synchronizer = EntrySynchronizer(remote, InMemoryEntryCache(), metrics=metrics)

    asyncio.run(synchronizer.load())
    asyncio.run(synchronizer.delete_entry("1"))

    assert metrics.counters["entry_sync_load_degraded_fallback_total"] == 1
    assert metrics.counters["entry_sync_delete_rejected_total"] == 1
    # Degraded loads do not commit, so no collection size is recorded.
    assert "entry_sync_collection_size" not in metrics.gauges


def test_commits_record_collection_size_gauge():
    metrics = InMemoryMetricsClient()
    remote = FakeRemoteEntryClient(entries=[make_entry("1"), make_entry("2")])
    synchronizer = EntrySynchronizer(remote, InMemoryEntryCache(), metrics=metrics)

    asyncio.run(synchronizer.load())

    assert metrics.snapshot() == {
        "counters": {"entry_sync_load_committed_total": 1},
        "gauges": {"entry_sync_collection_size": 2},
    }


def test_stats_aggregate_current_snapshot():
    entries = [
        make_entry("1", flavor="Mint"),
        make_entry("2", shop="Mary's Milk Bar", flavor="mint"),
    ]
    synchronizer = _build(FakeRemoteEntryClient(), initial_entries=entries)

    stats = synchronizer.stats(AnalyticsAggregator(), now=NOW)

    assert stats["totals"]["total_flavours"] == 2
    assert stats["totals"]["unique_flavours"] == 1
    assert synchronizer.entries == tuple(entries)


def test_stats_forward_person_filter():
    entries = [make_entry("1", person="Ana"), make_entry("2", person="Ben")]
    synchronizer = _build(FakeRemoteEntryClient(), initial_entries=entries)

    stats = synchronizer.stats(AnalyticsAggregator(), person="Ben", now=NOW)

    assert stats["totals"]["total_flavours"] == 1
    assert stats["meta"]["person_filter"] == "Ben"
