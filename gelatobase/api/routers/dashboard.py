"""Dashboard statistics endpoints."""

from __future__ import annotations

import datetime as dt
from typing import Annotated

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from ...api.dependencies import get_analytics_aggregator, get_entry_gateway
from ...domain.dashboard import AnalyticsAggregator
from ...domain.entries import EntryStoreGateway
from ...infra.logging import get_logger
from ...infra.metrics import get_metrics_client

router = APIRouter(prefix="/api/dashboard", tags=["dashboard"])
logger = get_logger(__name__)
metrics = get_metrics_client()


class TotalsSection(BaseModel):
    total_flavours: int
    unique_flavours: int
    flavours_per_day: float
    today_count: int


class ShopsSection(BaseModel):
    breakdown: dict[str, int] = Field(default_factory=dict)
    most_popular: str | None = None
    variety: dict[str, int] = Field(default_factory=dict)


class FavouriteFlavour(BaseModel):
    flavour: str
    count: int


class PeopleSection(BaseModel):
    breakdown: dict[str, int] = Field(default_factory=dict)
    most_active: str | None = None
    favourites: dict[str, FavouriteFlavour] = Field(default_factory=dict)


class VisitsSection(BaseModel):
    count: int
    average: float | None = None
    maximum: int | None = None
    minimum: int | None = None
    median: float | None = None


class FlavourCount(BaseModel):
    flavour: str
    count: int


class FlavoursSection(BaseModel):
    top: list[FlavourCount] = Field(default_factory=list)
    most_common: tuple[str, int]


class DatesSection(BaseModel):
    first_visit: dt.date | None = None
    last_visit: dt.date | None = None
    days_between: int | None = None


class ShopCount(BaseModel):
    shop: str
    count: int


class CrossShopSection(BaseModel):
    primary: ShopCount
    secondary: ShopCount
    ratio: float | None = None
    ratio_label: str | None = None


class MonthlyBucket(BaseModel):
    label: str
    count: int


class TimelineSection(BaseModel):
    monthly: list[MonthlyBucket] = Field(default_factory=list)
    recent_months: list[MonthlyBucket] = Field(default_factory=list)


class RecencySection(BaseModel):
    window_days: int
    count: int
    percentage: float


class StatsMeta(BaseModel):
    shop_filter: str
    person_filter: str
    generated_at: dt.datetime


class DashboardStatsResponse(BaseModel):
    totals: TotalsSection
    shops: ShopsSection
    people: PeopleSection
    visits: VisitsSection
    flavours: FlavoursSection
    dates: DatesSection
    cross_shop: CrossShopSection
    timeline: TimelineSection
    recency: RecencySection
    meta: StatsMeta


@router.get(
    "/stats",
    response_model=DashboardStatsResponse,
    summary="Aggregate tasting statistics for dashboard widgets",
)
def get_dashboard_stats(
    shop: Annotated[str, Query(max_length=128)] = "all",
    person: Annotated[str, Query(max_length=128)] = "all",
    gateway: EntryStoreGateway = Depends(get_entry_gateway),
    aggregator: AnalyticsAggregator = Depends(get_analytics_aggregator),
) -> DashboardStatsResponse:
    """Return the statistics bundle for the requested shop and person filters."""

    metrics.increment("dashboard_stats_http_total")
    entries = gateway.list_entries()
    payload = aggregator.build_stats(entries, shop=shop, person=person)
    logger.debug(
        "dashboard_stats_payload",
        extra={
            "shop_filter": shop,
            "person_filter": person,
            "entry_count": len(entries),
        },
    )
    return DashboardStatsResponse.model_validate(payload)
