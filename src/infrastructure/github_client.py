import aiohttp
import asyncio
import logging
from typing import Any, Dict, Optional
from urllib.parse import quote, urlencode

from pydantic import ValidationError
from yarl import URL

from src.domain.models import ReadmePayload, ReadmeResponse, SearchResultPage

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.github.com"
DEFAULT_TIMEOUT_SECONDS = 30
RAW_MEDIA_TYPE = "application/vnd.github.raw"
# Characters left as-is in the search `q` value; GitHub reads '+' as a clause separator.
SEARCH_SAFE_CHARS = "+:"


class GitHubRestClient:
    """
    Client for the three GitHub REST endpoints the crawler uses:
    repository search, repository metadata and repository README.

    Transport failures are logged and reported as None so callers can treat
    them as "no response".
    """

    def __init__(
        self,
        token: str,
        api_url: str = DEFAULT_API_URL,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    ):
        self.headers = {
            "Authorization": f"Bearer {token}",
            "Accept": "application/vnd.github+json",
            "User-Agent": "repo-snapshot-crawler",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        self.api_url = api_url.rstrip("/")
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds)

    def search_url(self, query: str, page: int, per_page: int) -> URL:
        params = {
            "q": query,
            "sort": "stars",
            "order": "desc",
            "per_page": per_page,
            "page": page,
        }
        query_string = urlencode(params, safe=SEARCH_SAFE_CHARS, quote_via=quote)
        return URL(f"{self.api_url}/search/repositories?{query_string}", encoded=True)

    async def search_repositories(
        self,
        session: aiohttp.ClientSession,
        query: str,
        page: int,
        per_page: int,
    ) -> Optional[SearchResultPage]:
        """
        Fetches one page of search results sorted by stars, descending.

        Returns:
            The parsed page, or None if the request failed or the body could not be parsed.
        """
        url = self.search_url(query, page, per_page)
        try:
            async with session.get(url, headers=self.headers, timeout=self.timeout) as response:
                if response.status != 200:
                    logger.warning(f"Search page {page} for '{query}' returned {response.status}.")
                    return None
                data = await response.json()
            return SearchResultPage.model_validate(data)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning(f"Search page {page} for '{query}' failed: {e}")
            return None
        except (ValueError, ValidationError) as e:
            logger.warning(f"Search page {page} for '{query}' could not be parsed: {e}")
            return None

    async def get_repository(
        self,
        session: aiohttp.ClientSession,
        owner: str,
        name: str,
    ) -> Optional[Dict[str, Any]]:
        """Fetches the raw metadata document for owner/name, or None on any failure."""
        url = f"{self.api_url}/repos/{quote(owner, safe='')}/{quote(name, safe='')}"
        try:
            async with session.get(url, headers=self.headers, timeout=self.timeout) as response:
                if response.status != 200:
                    logger.warning(f"Metadata for {owner}/{name} returned {response.status}.")
                    return None
                data = await response.json()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning(f"Metadata request for {owner}/{name} failed: {e}")
            return None
        except ValueError as e:
            logger.warning(f"Metadata for {owner}/{name} could not be parsed: {e}")
            return None

        return data if isinstance(data, dict) else None

    async def get_readme(
        self,
        session: aiohttp.ClientSession,
        owner: str,
        name: str,
        etag: Optional[str] = None,
    ) -> Optional[ReadmeResponse]:
        """
        Issues a conditional README request.

        Args:
            etag (Optional[str]): Validator from a previous 2xx response, sent as If-None-Match.

        Returns:
            ReadmeResponse with the status and ETag header; the payload is only
            parsed for 2xx responses. None if the transport failed.
        """
        url = f"{self.api_url}/repos/{quote(owner, safe='')}/{quote(name, safe='')}/readme"
        headers = dict(self.headers)
        if etag:
            headers["If-None-Match"] = etag

        try:
            async with session.get(url, headers=headers, timeout=self.timeout) as response:
                status = response.status
                new_etag = response.headers.get("ETag")
                payload = None
                if 200 <= status < 300:
                    try:
                        payload = ReadmePayload.model_validate(await response.json())
                    except (ValueError, ValidationError) as e:
                        logger.warning(f"README for {owner}/{name} could not be parsed: {e}")
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning(f"README request for {owner}/{name} failed: {e}")
            return None

        return ReadmeResponse(status=status, etag=new_etag, payload=payload)

    async def get_raw(self, session: aiohttp.ClientSession, url: str) -> Optional[str]:
        """Downloads `url` asking for the raw media type; returns the body text or None."""
        headers = dict(self.headers)
        headers["Accept"] = RAW_MEDIA_TYPE
        try:
            async with session.get(url, headers=headers, timeout=self.timeout) as response:
                if not 200 <= response.status < 300:
                    logger.warning(f"Raw download {url} returned {response.status}.")
                    return None
                return await response.text()
        except (aiohttp.ClientError, asyncio.TimeoutError, UnicodeDecodeError) as e:
            logger.warning(f"Raw download {url} failed: {e}")
            return None
