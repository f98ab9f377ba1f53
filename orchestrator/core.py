"""
Orchestrator - Core.

============================================================
RESPONSIBILITY
============================================================
Wires configuration into the two pipelines and owns their resources.

- Sets up logging
- Builds clients, storage and retry policy for a harvest run
- Builds the normalizer (and media source) for a normalization run
- Closes every HTTP session it opened

============================================================
"""

import json
import logging
import sys
from pathlib import Path
from typing import Optional

from collection_harvest.client import HttpClient, MarketplaceClient
from collection_harvest.config import HarvestConfig
from collection_harvest.coordinator import HarvestCoordinator
from collection_harvest.enricher import AssetEnricher
from collection_harvest.exceptions import ConfigurationError
from collection_harvest.models import HarvestReport
from collection_harvest.retry import RetryPolicy
from collection_harvest.storage import HarvestStorage
from corpus_normalizer.config import MediaSourceConfig, NormalizeOptions
from corpus_normalizer.media_source import PlaceholderMediaSource
from corpus_normalizer.normalizer import CorpusNormalizer, NormalizeReport


logger = logging.getLogger(__name__)


# ============================================================
# LOGGING SETUP
# ============================================================

def setup_logging(
    level: str = "INFO",
    log_format: str = "text",
) -> logging.Logger:
    """
    Set up process-wide logging.

    Args:
        level: Log level
        log_format: Output format (json or text)

    Returns:
        Configured logger
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    if log_format == "json":
        formatter = logging.Formatter(
            json.dumps({
                "timestamp": "%(asctime)s",
                "level": "%(levelname)s",
                "logger": "%(name)s",
                "message": "%(message)s",
            })
        )
    else:
        formatter = logging.Formatter(
            "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
        )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers = [handler]

    return logging.getLogger("orchestrator")


# ============================================================
# HARVEST
# ============================================================

async def run_harvest(config: HarvestConfig, collection_slug: str) -> HarvestReport:
    """
    Harvest ``collection_slug`` into ``config.output_root``.

    Raises:
        ConfigurationError: Invalid configuration
        PartialAssetFailure: Some assets failed (after all settled)
    """
    errors = config.validate()
    if errors:
        raise ConfigurationError("; ".join(errors))

    policy = config.retry.build_policy()
    storage = HarvestStorage(config.output_root)

    async with MarketplaceClient(config) as client:
        enricher = AssetEnricher(client, storage, policy)
        coordinator = HarvestCoordinator(
            client,
            enricher,
            storage,
            retry_policy=policy,
            concurrency=config.concurrency,
            resume=config.resume,
        )
        try:
            return await coordinator.harvest(collection_slug)
        finally:
            logger.info(
                f"[harvest] {collection_slug}: {client.requests_made} requests, "
                f"{client.rate_limit_hits} rate limited"
            )


# ============================================================
# NORMALIZE
# ============================================================

async def run_normalize(
    options: NormalizeOptions,
    input_dir: Path,
    output_dir: Path,
    media_config: Optional[MediaSourceConfig] = None,
    retry_policy: Optional[RetryPolicy] = None,
) -> NormalizeReport:
    """
    Normalize ``input_dir`` into ``output_dir``.

    A placeholder media source is only created when substitution is on.
    """
    source: Optional[PlaceholderMediaSource] = None

    if options.substitute_media:
        media_config = media_config or MediaSourceConfig.from_env()
        errors = media_config.validate()
        if errors:
            raise ConfigurationError("; ".join(errors))
        source = PlaceholderMediaSource(
            media_config,
            HttpClient(timeout=media_config.request_timeout_seconds),
            retry_policy or RetryPolicy(),
        )

    try:
        normalizer = CorpusNormalizer(options, source)
        return await normalizer.normalize(input_dir, output_dir)
    finally:
        if source is not None:
            await source.close()
