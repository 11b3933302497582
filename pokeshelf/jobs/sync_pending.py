"""
Replay queued collection changes.

Run this job after connectivity returns (or from a scheduler) to push
changes that were made offline. With --profile it also pulls fresh
profiles and that profile's collection once the queue has drained.
"""

import argparse
import asyncio
import logging

from pokeshelf.config import settings
from pokeshelf.db.database import async_session_factory, engine
from pokeshelf.db.remote_store import RemoteStore
from pokeshelf.models.sync import ReplayReport
from pokeshelf.storage.local_cache import LocalCacheStore
from pokeshelf.sync.connectivity import Connectivity
from pokeshelf.sync.engine import SyncEngine

logger = logging.getLogger(__name__)


async def run_sync(profile_id: str | None = None) -> ReplayReport:
    """Replay the pending queue, or run a full sync for one profile."""
    cache = LocalCacheStore.from_path(
        settings.cache_path,
        search_ttl=settings.search_cache_ttl_seconds,
        item_ttl=settings.item_cache_ttl_seconds,
    )
    store = RemoteStore(async_session_factory)
    connectivity = Connectivity(probe=store.ping)

    try:
        if not await connectivity.refresh():
            logger.warning("Remote store unreachable; nothing replayed")
        sync_engine = SyncEngine(cache, store, connectivity)

        logger.info("%d operations pending", len(cache.get_pending_operations()))
        if profile_id:
            report = await sync_engine.full_sync(profile_id)
        else:
            report = await sync_engine.sync_pending_operations()

        logger.info("Sync finished (%s): %s", sync_engine.status.value, report.summary())
        return report
    finally:
        await engine.dispose()


def main() -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(description="Replay queued collection changes")
    parser.add_argument("--profile", help="Also pull fresh data for this profile id")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    report = asyncio.run(run_sync(args.profile))
    if not report.fully_synced:
        raise SystemExit(1)


if __name__ == "__main__":
    main()
