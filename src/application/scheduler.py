import asyncio
import logging
import time
from typing import Optional, Sequence

from src.application.crawler_service import CrawlerService

logger = logging.getLogger(__name__)


class CrawlScheduler:
    """
    Runs the crawler on a fixed cadence. A run always finishes before the next
    one is scheduled, so runs never overlap.
    """

    def __init__(
        self,
        crawler_service: CrawlerService,
        interval_seconds: float,
        query: str,
        languages: Sequence[str],
        page_size: int,
        max_pages: int,
    ):
        self.crawler_service = crawler_service
        self.interval_seconds = interval_seconds
        self.query = query
        self.languages = list(languages)
        self.page_size = page_size
        self.max_pages = max_pages

    async def run_once(self) -> None:
        try:
            await self.crawler_service.run(self.query, self.languages, self.page_size, self.max_pages)
        except Exception as e:
            logger.exception(f"Scheduled crawl failed: {e}")

    async def run_forever(self, max_runs: Optional[int] = None) -> None:
        """Fires immediately, then every `interval_seconds` measured from the start of each run."""
        runs = 0
        while max_runs is None or runs < max_runs:
            started = time.monotonic()
            await self.run_once()
            runs += 1

            if max_runs is not None and runs >= max_runs:
                break

            wait = max(self.interval_seconds - (time.monotonic() - started), 0)
            logger.info(f"Next crawl in {wait:.0f}s.")
            await asyncio.sleep(wait)
