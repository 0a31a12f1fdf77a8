import asyncio
import logging
from typing import Optional, Sequence
import aiohttp

from src.application.repository_upserter import RepositoryUpserter
from src.domain.models import CrawlSummary
from src.infrastructure.github_client import GitHubRestClient

logger = logging.getLogger(__name__)

INTER_ITEM_DELAY = 0.12  # Seconds between repository upserts to avoid hammering the API


def build_search_query(query: str, languages: Optional[Sequence[str]] = None) -> str:
    """Appends one '+language:<X>' clause per non-blank language filter."""
    clauses = [query]
    for language in languages or ():
        trimmed = language.strip()
        if trimmed:
            clauses.append(f"language:{trimmed}")
    return "+".join(clauses)


class CrawlerService:
    """
    Service responsible for discovering popular repositories page by page and
    refreshing each one through the RepositoryUpserter.

    Items are processed strictly one after another, in the order GitHub
    returns them (stars descending, pages ascending).
    """

    def __init__(
            self,
            github_client: GitHubRestClient,
            upserter: RepositoryUpserter,
    ):
        self.github_client = github_client
        self.upserter = upserter

    async def run(
        self,
        query: str,
        languages: Optional[Sequence[str]] = None,
        page_size: int = 50,
        max_pages: int = 3,
    ) -> CrawlSummary:
        """
        Crawls pages 1..max_pages of the search results for `query`.

        Stops early when a page is missing, unparseable or empty. A failure on
        one repository is logged and never aborts the page or the run.
        """
        search_query = build_search_query(query, languages)
        summary = CrawlSummary()

        logger.info(f"Starting crawl for '{search_query}' ({max_pages} pages of {page_size}).")

        async with aiohttp.ClientSession() as session:
            for page in range(1, max_pages + 1):
                result = await self.github_client.search_repositories(session, search_query, page, page_size)
                if result is None or not result.items:
                    logger.info(f"No results on page {page}. Stopping.")
                    break

                summary.pages += 1
                await self._crawl_page(session, page, result.items, summary)

        logger.info(
            f"Crawl completed for '{search_query}'. Pages: {summary.pages}, "
            f"processed: {summary.processed}, failed: {summary.failed}."
        )
        return summary

    async def _crawl_page(self, session, page, items, summary: CrawlSummary) -> None:
        for item in items:
            # Pause between successive upserts only, never after the last one.
            if summary.processed or summary.failed:
                await asyncio.sleep(INTER_ITEM_DELAY)

            try:
                await self.upserter.upsert(session, item.full_name)
                summary.processed += 1
            except Exception as e:
                summary.failed += 1
                logger.error(f"[page {page}] Failed to upsert {item.full_name}: {e}")
