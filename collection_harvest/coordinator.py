"""
Harvest Coordinator - Drives the collection listing and fans assets out to
the enricher.

============================================================
BACKPRESSURE
============================================================
Enrichments are gated by a semaphore whose permit count defaults to 1.
The marketplace rate-limits aggressively, so assets are enriched one at a
time unless the configuration raises the bound.

============================================================
FAILURE HANDLING
============================================================
- Every dispatched enrichment is allowed to settle before the run ends
- Failed assets are collected, never retried at the asset level
- After draining, PartialAssetFailure is raised if anything failed

============================================================
"""

import asyncio
import logging
from datetime import datetime
from typing import Optional

from collection_harvest.client import MarketplaceClient
from collection_harvest.enricher import AssetEnricher
from collection_harvest.exceptions import AssetFailure, PartialAssetFailure
from collection_harvest.models import Asset, AssetOutcome, AssetState, HarvestReport
from collection_harvest.pagination import PaginatedFetch
from collection_harvest.retry import RetryPolicy
from collection_harvest.storage import HarvestStorage


logger = logging.getLogger(__name__)


class HarvestCoordinator:
    """
    Harvest every asset of a collection into harvest storage.

    Usage:
        coordinator = HarvestCoordinator(client, enricher, storage)
        report = await coordinator.harvest("my-collection")
    """

    def __init__(
        self,
        client: MarketplaceClient,
        enricher: AssetEnricher,
        storage: HarvestStorage,
        retry_policy: Optional[RetryPolicy] = None,
        concurrency: int = 1,
        resume: bool = False,
    ) -> None:
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self._client = client
        self._enricher = enricher
        self._storage = storage
        self._retry_policy = retry_policy or RetryPolicy()
        self._concurrency = concurrency
        self._resume = resume
        self.report: Optional[HarvestReport] = None

    async def _enrich_one(
        self,
        outcome: AssetOutcome,
        semaphore: asyncio.Semaphore,
    ) -> None:
        asset = outcome.asset
        async with semaphore:
            outcome.state = AssetState.ENRICHING
            outcome.started_at = datetime.utcnow()
            try:
                await self._enricher.enrich(asset)
            except Exception as e:
                outcome.state = AssetState.FAILED
                outcome.error = e
                logger.error(f"[harvest] Failed {asset.name} (token {asset.token_id}): {e}")
            else:
                outcome.state = AssetState.HARVESTED
                logger.info(f"[harvest] Harvested {asset.name} (token {asset.token_id})")
            finally:
                outcome.finished_at = datetime.utcnow()

    def _should_skip(self, asset: Asset) -> bool:
        return self._resume and self._storage.has_record(
            asset.collection_slug, asset.token_id
        )

    async def harvest(self, collection_slug: str) -> HarvestReport:
        """
        Harvest ``collection_slug`` end to end.

        Returns:
            HarvestReport when every asset committed

        Raises:
            PartialAssetFailure: One or more assets failed
            RetryExhausted / NonRetryableHttpError: The listing itself failed
                (raised only after in-flight enrichments settle)
        """
        report = HarvestReport(collection_slug=collection_slug)
        self.report = report
        semaphore = asyncio.Semaphore(self._concurrency)
        tasks: list[asyncio.Task] = []

        listing = PaginatedFetch(
            lambda cursor: self._client.fetch_assets_page(collection_slug, cursor),
            retry_policy=self._retry_policy,
            description=f"assets of {collection_slug}",
        )

        try:
            async for page in listing:
                report.pages_consumed += 1
                logger.info(
                    f"[harvest] Listing page {report.pages_consumed} consumed: "
                    f"{len(page.items)} assets"
                )
                for asset in page.items:
                    if self._should_skip(asset):
                        logger.info(f"[harvest] Skipping {asset.name}, already harvested")
                        report.skipped.append(asset.token_id)
                        continue
                    logger.info(f"[harvest] Processing {asset.name}")
                    outcome = AssetOutcome(asset=asset)
                    report.outcomes.append(outcome)
                    tasks.append(asyncio.create_task(self._enrich_one(outcome, semaphore)))
        finally:
            if tasks:
                await asyncio.gather(*tasks, return_exceptions=True)

        failures = [
            AssetFailure(
                token_id=o.asset.token_id,
                name=o.asset.name,
                error=o.error,
            )
            for o in report.failed
        ]

        logger.info(f"[harvest] Assets complete: {report.to_dict()}")

        if failures:
            raise PartialAssetFailure(
                message=f"{len(failures)} of {len(report.outcomes)} assets failed",
                failures=failures,
                context=report.to_dict(),
            ) from failures[0].error

        return report
