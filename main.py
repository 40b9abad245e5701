"""
Movie catalog demo entry point.
Loads a popular page, a search, details and trending, then keeps the
trending feed fresh until interrupted.
"""

import asyncio
import sys

from loguru import logger

from catalog.catalog_client import create_catalog_client
from catalog.scheduler import TrendingRefresher
from catalog.services.errors import ServiceError, describe_error
from catalog.settings import global_settings


async def main() -> None:
    """Main function"""
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if global_settings.debug else global_settings.log_level)

    logger.info("Starting movie catalog...")

    async with create_catalog_client() as catalog:
        refresher = TrendingRefresher(
            catalog, interval_seconds=global_settings.trending_refresh_interval
        )

        try:
            page = await catalog.fetch_page(1)
            logger.info(f"Popular page 1/{page.total_pages}: {len(page.items)} movies")
            for movie in page.items[:5]:
                logger.info(f"  {movie.title} ({movie.year}) {'*' * movie.rating}")

            results = await catalog.search("inception")
            logger.info(f"Search 'inception': {len(results.items)} results")

            if page.items:
                details = await catalog.fetch_by_id(page.items[0].id)
                logger.info(
                    f"Details: {details.title}, {details.runtime} min, "
                    f"directed by {details.director}"
                )
                for movie in page.items[1:3]:
                    catalog.prefetch_by_id(movie.id)

            trending = await catalog.fetch_trending("week")
            logger.info(f"Trending this week: {len(trending.items)} movies")

            logger.info(f"Metrics: {catalog.metrics()}")

            refresher.start()
            logger.info("Catalog is running. Press Ctrl+C to stop.")
            while True:
                await asyncio.sleep(60)

        except ServiceError as e:
            logger.error(f"Catalog request failed: {e} ({describe_error(e)})")
        except (KeyboardInterrupt, asyncio.CancelledError):
            logger.info("Received interrupt signal, shutting down...")
        finally:
            if refresher.is_running():
                refresher.stop()

    logger.info("Movie catalog stopped")


if __name__ == "__main__":
    asyncio.run(main())
