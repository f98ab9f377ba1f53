"""
Asset Enricher - Joins image, event history and ownership history per asset.

The three sub-resolutions run as independent tasks. The record is built
only once all three have settled; if any failed, nothing is written and the
first failure is raised.
"""

import asyncio
import logging
from typing import Optional

from collection_harvest.client import MarketplaceClient
from collection_harvest.models import (
    Asset,
    HarvestedRecord,
    ImagePayload,
    OwnershipRecord,
    ProvenanceEvent,
)
from collection_harvest.pagination import PaginatedFetch
from collection_harvest.retry import RetryPolicy
from collection_harvest.storage import HarvestStorage


logger = logging.getLogger(__name__)


class AssetEnricher:
    """
    Resolve an asset's full history and commit it to harvest storage.
    """

    def __init__(
        self,
        client: MarketplaceClient,
        storage: HarvestStorage,
        retry_policy: Optional[RetryPolicy] = None,
    ) -> None:
        self._client = client
        self._storage = storage
        self._retry_policy = retry_policy or RetryPolicy()

    async def fetch_image(self, asset: Asset) -> ImagePayload:
        logger.info(f"[enrich] Downloading image for {asset.name}")
        return await self._retry_policy.run(
            lambda: self._client.fetch_image(asset),
            description=f"image for token {asset.token_id}",
        )

    async def fetch_events(self, asset: Asset) -> list[ProvenanceEvent]:
        pages = PaginatedFetch(
            lambda cursor: self._client.fetch_events_page(asset, cursor),
            retry_policy=self._retry_policy,
            description=f"events for token {asset.token_id}",
        )
        return await pages.collect()

    async def fetch_owners(self, asset: Asset) -> list[OwnershipRecord]:
        pages = PaginatedFetch(
            lambda cursor: self._client.fetch_owners_page(asset, cursor),
            retry_policy=self._retry_policy,
            description=f"owners for token {asset.token_id}",
        )
        return await pages.collect()

    async def enrich(self, asset: Asset) -> HarvestedRecord:
        """
        Fetch everything for ``asset`` concurrently, then commit once.

        Raises:
            The first error raised by any sub-resolution
        """
        results = await asyncio.gather(
            self.fetch_image(asset),
            self.fetch_events(asset),
            self.fetch_owners(asset),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, BaseException):
                raise result

        image, events, owners = results

        record = HarvestedRecord(
            token_id=asset.token_id,
            name=asset.name,
            description=asset.description,
            image=f"./{asset.token_id}.{image.extension}",
            attributes=asset.traits,
            owners=tuple(owners),
            events=tuple(events),
        )

        logger.info(f"[enrich] Writing image and metadata for {asset.name}")
        self._storage.commit(asset.collection_slug, record, image)
        return record
