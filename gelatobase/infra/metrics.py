"""In-process counters and gauges for API traffic and sync outcomes."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Dict

from .logging import get_logger

logger = get_logger(__name__)


class MetricsClient:  # pragma: no cover - simple helper
    """Basic counter/gauge interface."""

    def increment(self, metric: str, value: int = 1) -> None:
        raise NotImplementedError

    def gauge(self, metric: str, value: int) -> None:
        raise NotImplementedError


@dataclass
class InMemoryMetricsClient(MetricsClient):
    """Metrics sink kept in process memory.

    ``counters`` accumulate; ``gauges`` hold the last value written, e.g. the
    size of the synchronizer's collection after each commit.
    """

    counters: Counter = field(default_factory=Counter)
    gauges: Dict[str, int] = field(default_factory=dict)

    def increment(self, metric: str, value: int = 1) -> None:
        self.counters[metric] += value
        logger.debug("metrics_increment", extra={"metric": metric, "value": value})

    def gauge(self, metric: str, value: int) -> None:
        self.gauges[metric] = value
        logger.debug("metrics_gauge", extra={"metric": metric, "value": value})

    def snapshot(self) -> Dict[str, Dict[str, int]]:
        return {"counters": dict(self.counters), "gauges": dict(self.gauges)}


_metrics_singleton: InMemoryMetricsClient | None = None


def get_metrics_client() -> InMemoryMetricsClient:
    """Return the shared metrics client."""

    global _metrics_singleton
    if _metrics_singleton is None:
        _metrics_singleton = InMemoryMetricsClient()
    return _metrics_singleton
