"""
Collection Harvest Package - Full historical record of an NFT collection.

Pulls every asset of a collection from the marketplace API together with
its complete event history, ownership history and image, and commits one
JSON record plus one media file per token id.

Features:
- Cursor pagination with strict page ordering
- Exponential-backoff retry per HTTP call
- Retry-After aware rate-limit handling
- Per-asset fan-out/fan-in with a single atomic commit
- Serialized enrichment by default (backpressure)

Quick Start:
    from collection_harvest import (
        AssetEnricher,
        HarvestConfig,
        HarvestCoordinator,
        HarvestStorage,
        MarketplaceClient,
    )

    async def harvest(slug: str):
        config = HarvestConfig.from_env()
        policy = config.retry.build_policy()
        storage = HarvestStorage(config.output_root)

        async with MarketplaceClient(config) as client:
            enricher = AssetEnricher(client, storage, policy)
            coordinator = HarvestCoordinator(client, enricher, storage, policy)
            report = await coordinator.harvest(slug)
            print(report.to_dict())
"""

from collection_harvest.client import MarketplaceClient, rewrite_image_url
from collection_harvest.config import HarvestConfig, RetryConfig
from collection_harvest.coordinator import HarvestCoordinator
from collection_harvest.enricher import AssetEnricher
from collection_harvest.exceptions import (
    AssetFailure,
    ConfigurationError,
    HarvestError,
    HttpError,
    NonRetryableHttpError,
    PartialAssetFailure,
    RateLimitError,
    RetryExhausted,
    TransientHttpError,
)
from collection_harvest.models import (
    Asset,
    AssetOutcome,
    AssetState,
    EventType,
    HarvestedRecord,
    HarvestReport,
    ImagePayload,
    OwnershipRecord,
    ProvenanceEvent,
    Trait,
)
from collection_harvest.pagination import Page, PaginatedFetch
from collection_harvest.retry import RetryPolicy, retry_with_backoff
from collection_harvest.storage import HarvestStorage


__version__ = "1.0.0"

__all__ = [
    # Models
    "Asset",
    "AssetOutcome",
    "AssetState",
    "EventType",
    "HarvestedRecord",
    "HarvestReport",
    "ImagePayload",
    "OwnershipRecord",
    "ProvenanceEvent",
    "Trait",

    # Exceptions
    "HarvestError",
    "HttpError",
    "TransientHttpError",
    "RateLimitError",
    "NonRetryableHttpError",
    "RetryExhausted",
    "AssetFailure",
    "PartialAssetFailure",
    "ConfigurationError",

    # Building blocks
    "RetryPolicy",
    "retry_with_backoff",
    "Page",
    "PaginatedFetch",
    "MarketplaceClient",
    "rewrite_image_url",
    "HarvestStorage",

    # Pipeline
    "AssetEnricher",
    "HarvestCoordinator",

    # Config
    "HarvestConfig",
    "RetryConfig",
]
