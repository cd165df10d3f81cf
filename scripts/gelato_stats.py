"""Load entries through the synchronizer and print the dashboard statistics."""

from __future__ import annotations

import argparse
import asyncio
import json

from gelatobase.config import load_settings
from gelatobase.domain.dashboard import AnalyticsAggregator
from gelatobase.domain.sync import EntrySynchronizer
from gelatobase.infra.local_cache import JsonFileEntryCache
from gelatobase.infra.logging import configure_logging
from gelatobase.infra.remote_entries import build_remote_entry_client


async def _collect(shop: str, person: str) -> dict[str, object]:
    settings = load_settings()
    configure_logging(settings.logging)
    cache = JsonFileEntryCache(settings.cache_directory)
    async with build_remote_entry_client(settings) as remote:
        synchronizer = EntrySynchronizer(remote, cache)
        result = await synchronizer.load()
    stats = synchronizer.stats(
        AnalyticsAggregator.from_settings(settings), shop=shop, person=person
    )
    return {
        "load": {
            "state": result.state.value,
            "source": result.source,
            "warning": synchronizer.warning,
        },
        "stats": stats,
    }


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--shop",
        default="all",
        help="Restrict statistics to one shop (default: all shops).",
    )
    parser.add_argument(
        "--person",
        default="all",
        help="Restrict statistics to one taster (default: everyone).",
    )
    args = parser.parse_args()
    report = asyncio.run(_collect(args.shop, args.person))
    print(json.dumps(report, indent=2, default=str))


if __name__ == "__main__":
    main()
