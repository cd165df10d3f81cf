"""Entry list/create/delete endpoints."""

from __future__ import annotations

import datetime as dt
from typing import Annotated, Any, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Path, status
from pydantic import BaseModel, model_validator

from ...api.dependencies import get_entry_gateway
from ...domain.entries import (
    Entry,
    EntryServiceError,
    EntryStoreGateway,
    normalize_entry_payload,
)
from ...domain.entries.models import format_timestamp
from ...infra.logging import get_logger
from ...infra.metrics import get_metrics_client

router = APIRouter(prefix="/api/entries", tags=["entries"])
logger = get_logger(__name__)
metrics = get_metrics_client()

EntryId = Annotated[str, Path(..., min_length=1, max_length=64)]


class EntryRecord(BaseModel):
    id: str
    shop: str
    flavor: str
    date: dt.date
    notes: str = ""
    person: str
    timestamp: str


class EntryCreateRequest(BaseModel):
    """Request body for POST /api/entries.

    Fields are optional at the schema level so a missing field yields the
    store's ``400 Missing required fields`` instead of a 422. The legacy
    ``flavour`` key is accepted as an alias for ``flavor``.
    """

    shop: Optional[str] = None
    flavor: Optional[str] = None
    date: Optional[str] = None
    notes: Optional[str] = None
    person: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def _normalize_legacy_keys(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return normalize_entry_payload(data)
        return data


class EntryDeleteResponse(BaseModel):
    deleted: bool
    id: str


def _to_record(entry: Entry) -> EntryRecord:
    return EntryRecord(
        id=entry.id,
        shop=entry.shop,
        flavor=entry.flavor,
        date=entry.date,
        notes=entry.notes,
        person=entry.person,
        timestamp=format_timestamp(entry.timestamp),
    )


def _handle_service_error(exc: EntryServiceError) -> HTTPException:
    return HTTPException(
        status_code=int(exc.status_code),
        detail={
            "error_code": exc.error_code,
            "message": exc.message,
            "details": exc.details,
        },
    )


@router.get("", response_model=List[EntryRecord], summary="List Entries")
def list_entries(
    gateway: EntryStoreGateway = Depends(get_entry_gateway),
) -> List[EntryRecord]:
    entries = gateway.list_entries()
    metrics.increment("entries_list_requests_total")
    return [_to_record(entry) for entry in entries]


@router.post(
    "",
    response_model=EntryRecord,
    status_code=status.HTTP_201_CREATED,
    summary="Create Entry",
)
def create_entry(
    payload: EntryCreateRequest,
    gateway: EntryStoreGateway = Depends(get_entry_gateway),
) -> EntryRecord:
    try:
        entry = gateway.create_entry(
            shop=payload.shop,
            flavor=payload.flavor,
            date=payload.date,
            notes=payload.notes,
            person=payload.person,
        )
    except EntryServiceError as exc:
        logger.info(
            "entry_create_rejected",
            extra={"error_code": exc.error_code, "details": exc.details},
        )
        raise _handle_service_error(exc) from exc
    metrics.increment("entries_created_total")
    logger.info(
        "entry_created",
        extra={"entry_id": entry.id, "shop": entry.shop, "person": entry.person},
    )
    return _to_record(entry)


@router.delete(
    "/{entry_id}",
    response_model=EntryDeleteResponse,
    summary="Delete Entry",
)
def delete_entry(
    entry_id: EntryId,
    gateway: EntryStoreGateway = Depends(get_entry_gateway),
) -> EntryDeleteResponse:
    try:
        deleted_id = gateway.delete_entry(entry_id)
    except EntryServiceError as exc:
        raise _handle_service_error(exc) from exc
    metrics.increment("entries_deleted_total")
    logger.info("entry_deleted", extra={"entry_id": deleted_id})
    return EntryDeleteResponse(deleted=True, id=deleted_id)
