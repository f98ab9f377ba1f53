"""
Placeholder Media Source - Lazily paginated stream of GIF URLs from a
Giphy-compatible search endpoint.

Pages are requested only as URLs are consumed. The stream ends when the
search reports no further results (offset + limit >= total_count); the
caller treats running out as MediaExhausted.
"""

import logging
from typing import Any, AsyncIterator, Optional

from collection_harvest.client import HttpClient
from collection_harvest.models import ImagePayload
from collection_harvest.retry import RetryPolicy
from corpus_normalizer.config import MediaSourceConfig


logger = logging.getLogger(__name__)


def original_url(item: dict[str, Any]) -> Optional[str]:
    """URL of the original rendition of a search result."""
    images = item.get("images") or {}
    original = images.get("original") or {}
    return original.get("url")


class PlaceholderMediaSource:
    """
    Search-backed source of replacement media.

    Usage:
        source = PlaceholderMediaSource(config, http)
        async for url in source.urls("ape"):
            payload = await source.download(url)
    """

    def __init__(
        self,
        config: MediaSourceConfig,
        http: Optional[HttpClient] = None,
        retry_policy: Optional[RetryPolicy] = None,
    ) -> None:
        self._config = config
        self._http = http or HttpClient(timeout=config.request_timeout_seconds)
        self._retry_policy = retry_policy or RetryPolicy()
        self.pages_fetched = 0
        self.downloads = 0

    def accepts(self, url: Optional[str]) -> bool:
        if not url:
            return False
        return url.split("?", 1)[0].endswith(self._config.accepted_extension)

    async def search_page(self, term: str, offset: int) -> dict[str, Any]:
        """One search page (single attempt)."""
        params = {
            "api_key": self._config.api_key,
            "q": term,
            "limit": self._config.page_size,
            "offset": offset,
            "sort": "relevant",
            "lang": "en",
        }
        url = f"{self._config.api_url}/{self._config.media_type}/search"
        return await self._http.get_json(url, params)

    async def urls(self, term: str) -> AsyncIterator[str]:
        """Yield accepted media URLs for ``term``, fetching pages on demand."""
        limit = self._config.page_size
        offset = 0

        while True:
            result = await self._retry_policy.run(
                lambda: self.search_page(term, offset),
                description=f"media search {term!r} offset {offset}",
            )
            self.pages_fetched += 1
            items = result.get("data") or []

            for item in items:
                url = original_url(item)
                if self.accepts(url):
                    yield url

            total_count = (result.get("pagination") or {}).get("total_count", 0)
            if not items or total_count <= offset + limit:
                logger.info(f"[media] Search {term!r} exhausted at offset {offset}")
                return
            offset += limit

    async def download(self, url: str) -> ImagePayload:
        logger.info(f"[media] Downloading {url}")
        payload = await self._retry_policy.run(
            lambda: self._http.download(url),
            description=f"media {url}",
        )
        self.downloads += 1
        return payload

    async def close(self) -> None:
        await self._http.close()
