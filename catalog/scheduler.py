"""
Trending refresh scheduler.

Uses APScheduler to poll the trending feeds and refresh any whose snapshot
has gone stale, so the "new this hour" highlights stay current without a
caller asking.
"""

from typing import TYPE_CHECKING

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from loguru import logger

from catalog.datasource.types import TimeWindow
from catalog.services.errors import ServiceError

if TYPE_CHECKING:
    from catalog.catalog_client import CatalogClient


class TrendingRefresher:
    """Periodic trending revalidation."""

    JOB_ID = "trending_refresh_job"

    def __init__(
        self,
        catalog: "CatalogClient",
        interval_seconds: float = 10.0,
        windows: tuple[TimeWindow, ...] = (TimeWindow.WEEK,),
    ):
        self.catalog = catalog
        self.interval_seconds = interval_seconds
        self.windows = windows
        self.scheduler = AsyncIOScheduler()
        self._is_running = False

    async def refresh_job(self) -> None:
        """Refresh every stale trending window."""
        for window in self.windows:
            if not self.catalog.trending_is_stale(window):
                continue
            try:
                result = await self.catalog.refresh_trending(window)
            except ServiceError as e:
                logger.warning(f"Scheduled trending refresh ({window.value}) failed: {e}")
                continue

            if result.error is not None:
                logger.warning(
                    f"Trending ({window.value}) still stale after refresh: {result.error}"
                )
            elif result.new_item_ids:
                logger.info(
                    f"Trending ({window.value}) has {len(result.new_item_ids)} new titles"
                )

    def start(self) -> None:
        """Start the scheduler on the running event loop."""
        if self._is_running:
            logger.warning("Trending refresher is already running")
            return

        self.scheduler.add_job(
            self.refresh_job,
            trigger="interval",
            seconds=self.interval_seconds,
            id=self.JOB_ID,
            name="Trending Feed Refresher",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        self.scheduler.start()
        self._is_running = True

        logger.info(
            f"Trending refresher started: checking every {self.interval_seconds}s"
        )

    def stop(self) -> None:
        if not self._is_running:
            logger.warning("Trending refresher is not running")
            return

        self.scheduler.shutdown(wait=False)
        self._is_running = False
        logger.info("Trending refresher stopped")

    def is_running(self) -> bool:
        return self._is_running
