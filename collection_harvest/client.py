"""
HTTP Clients - Transport for the marketplace API and for raw media.

Every fetch here is a single attempt. Retrying is the caller's job
(RetryPolicy / PaginatedFetch); this module only classifies failures:
- 429            -> RateLimitError (after honouring Retry-After)
- 5xx / network  -> TransientHttpError
- other 4xx      -> NonRetryableHttpError
"""

import asyncio
import logging
import mimetypes
import time
from typing import Any, Awaitable, Callable, Optional
from urllib.parse import urlsplit, urlunsplit

import aiohttp

from collection_harvest.config import HarvestConfig
from collection_harvest.exceptions import (
    NonRetryableHttpError,
    RateLimitError,
    TransientHttpError,
)
from collection_harvest.models import (
    Asset,
    ImagePayload,
    OwnershipRecord,
    ProvenanceEvent,
)
from collection_harvest.pagination import Page


logger = logging.getLogger(__name__)

# mimetypes only knows image/webp from Python 3.11 and prefers .jpe on some hosts.
IMAGE_EXTENSIONS = {
    "image/png": "png",
    "image/jpeg": "jpg",
    "image/gif": "gif",
    "image/webp": "webp",
    "image/svg+xml": "svg",
    "image/avif": "avif",
}


def rewrite_image_url(url: str, image_host: str) -> str:
    """
    Point an image URL at the canonical full-resolution host.

    Drops the query string, moves the URL onto ``image_host``, removes a
    ``/gae/`` path prefix and appends the ``=d`` (download original) suffix.
    """
    parts = urlsplit(url)
    path = parts.path.replace("/gae/", "/", 1)
    return urlunsplit((parts.scheme or "https", image_host, f"{path}=d", "", ""))


def extension_for(content_type: Optional[str]) -> str:
    """File extension (without dot) for a response content type."""
    if not content_type:
        return "bin"
    mime = content_type.split(";", 1)[0].strip().lower()
    if mime in IMAGE_EXTENSIONS:
        return IMAGE_EXTENSIONS[mime]
    ext = mimetypes.guess_extension(mime)
    if not ext:
        return "bin"
    return ext.lstrip(".")


def parse_retry_after(value: Optional[str]) -> Optional[int]:
    """Seconds from a Retry-After header, None when absent or unparsable."""
    if not value:
        return None
    try:
        return int(float(value))
    except ValueError:
        return None


class HttpClient:
    """
    Shared aiohttp transport with response classification.

    The session is created lazily unless one is injected; an injected
    session is never closed by this object.
    """

    USER_AGENT = "CollectionHarvest/1.0"

    def __init__(
        self,
        timeout: float = 30.0,
        session: Optional[aiohttp.ClientSession] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._timeout = timeout
        self._session = session
        self._owns_session = session is None
        self._sleep = sleep
        self.requests_made = 0
        self.rate_limit_hits = 0

    # ─────────────────────────────────────────────────────────────
    # HTTP Helpers
    # ─────────────────────────────────────────────────────────────

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create HTTP session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self._timeout),
                headers={"User-Agent": self.USER_AGENT},
            )
            self._owns_session = True
        return self._session

    async def _handle_rate_limit(self, response: Any, url: str) -> None:
        """Wait out a server-directed Retry-After, then raise a retryable error."""
        self.rate_limit_hits += 1
        retry_after = parse_retry_after(response.headers.get("Retry-After"))
        if retry_after and retry_after > 0:
            logger.info(f"[client] Rate limited, retrying in {retry_after}s")
            await self._sleep(retry_after)
        raise RateLimitError(
            message="Rate limit exceeded",
            retry_after_seconds=retry_after,
            request_url=url,
        )

    async def _raise_for_status(self, response: Any, url: str) -> None:
        if response.status == 429:
            await self._handle_rate_limit(response, url)

        if response.status >= 500:
            body = await response.text()
            raise TransientHttpError(
                message=f"HTTP {response.status}",
                status_code=response.status,
                request_url=url,
                response_body=body[:500],
            )

        if response.status >= 400:
            body = await response.text()
            raise NonRetryableHttpError(
                message=f"HTTP {response.status}",
                status_code=response.status,
                request_url=url,
                response_body=body[:500],
            )

    async def get_json(
        self,
        url: str,
        params: Optional[dict[str, Any]] = None,
        headers: Optional[dict[str, str]] = None,
    ) -> dict[str, Any]:
        """GET a JSON document."""
        session = await self._get_session()
        self.requests_made += 1
        start_time = time.time()

        try:
            async with session.request(
                "GET",
                url,
                params=params,
                headers=headers,
            ) as response:
                await self._raise_for_status(response, url)
                data = await response.json()
                logger.debug(
                    f"[client] GET {url} -> {response.status} "
                    f"in {(time.time() - start_time) * 1000:.0f}ms"
                )
                return data or {}
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise TransientHttpError(
                message=f"Connection error: {e}",
                request_url=url,
                original_error=e,
            )

    async def download(self, url: str) -> ImagePayload:
        """GET raw bytes; the extension comes from the Content-Type."""
        session = await self._get_session()
        self.requests_made += 1

        try:
            async with session.request("GET", url) as response:
                await self._raise_for_status(response, url)
                content = await response.read()
                return ImagePayload(
                    content=content,
                    extension=extension_for(response.headers.get("Content-Type")),
                    source_url=url,
                )
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise TransientHttpError(
                message=f"Connection error: {e}",
                request_url=url,
                original_error=e,
            )

    # ─────────────────────────────────────────────────────────────
    # Lifecycle
    # ─────────────────────────────────────────────────────────────

    async def close(self) -> None:
        """Close resources."""
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self) -> "HttpClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()


class MarketplaceClient(HttpClient):
    """
    Async client for the marketplace REST API.

    Usage:
        async with MarketplaceClient(config) as client:
            page = await client.fetch_assets_page("my-collection", None)
    """

    def __init__(
        self,
        config: HarvestConfig,
        session: Optional[aiohttp.ClientSession] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        super().__init__(config.request_timeout_seconds, session, sleep)
        self._config = config

    def _api_headers(self) -> dict[str, str]:
        return {
            "Accept": "application/json",
            "X-API-KEY": self._config.api_key,
        }

    async def fetch_assets_page(
        self,
        collection_slug: str,
        cursor: Optional[str] = None,
    ) -> Page[Asset]:
        """One page of the collection's asset listing."""
        params = {"collection": collection_slug}
        if cursor:
            params["cursor"] = cursor

        data = await self.get_json(
            f"{self._config.api_url}/assets", params, self._api_headers()
        )
        assets = [
            Asset.from_api(raw, collection_slug)
            for raw in data.get("assets") or []
        ]
        return Page(items=assets, next_cursor=data.get("next"))

    async def fetch_events_page(
        self,
        asset: Asset,
        cursor: Optional[str] = None,
    ) -> Page[ProvenanceEvent]:
        """One page of an asset's event history."""
        params = {
            "asset_contract_address": asset.contract_address,
            "token_id": asset.token_id,
        }
        if cursor:
            params["cursor"] = cursor

        data = await self.get_json(
            f"{self._config.api_url}/events", params, self._api_headers()
        )
        events = []
        for raw in data.get("asset_events") or []:
            try:
                events.append(ProvenanceEvent.from_api(raw))
            except ValueError:
                logger.warning(
                    f"[client] Skipping event with unknown type "
                    f"{raw.get('event_type')!r} for token {asset.token_id}"
                )
        return Page(items=events, next_cursor=data.get("next"))

    async def fetch_owners_page(
        self,
        asset: Asset,
        cursor: Optional[str] = None,
    ) -> Page[OwnershipRecord]:
        """One page of an asset's ownership history."""
        params = {"cursor": cursor} if cursor else None
        url = (
            f"{self._config.api_url}/asset/"
            f"{asset.contract_address}/{asset.token_id}/owners"
        )
        data = await self.get_json(url, params, self._api_headers())
        owners = [OwnershipRecord.from_api(raw) for raw in data.get("owners") or []]
        return Page(items=owners, next_cursor=data.get("next"))

    def image_url_for(self, asset: Asset) -> str:
        url = asset.preferred_image_url
        if self._config.rewrite_image_urls:
            return rewrite_image_url(url, self._config.image_host)
        return url

    async def fetch_image(self, asset: Asset) -> ImagePayload:
        """Download the asset's image bytes."""
        return await self.download(self.image_url_for(asset))
