"""
Collection Harvest - Configuration.

============================================================
PURPOSE
============================================================
All configuration for the harvest pipeline.

CRITICAL CONSTRAINTS:
- Bounded retries only
- Enrichment serialized by default (upstream rate limits aggressively)

============================================================
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List

from dotenv import load_dotenv

from collection_harvest.retry import RetryPolicy


DEFAULT_API_URL = "https://api.opensea.io/api/v1"
DEFAULT_IMAGE_HOST = "lh3.googleusercontent.com"


# ============================================================
# RETRY CONFIGURATION
# ============================================================

@dataclass
class RetryConfig:
    """
    Retry configuration for every HTTP call.
    """

    max_attempts: int = 5
    """Attempts per call, first one included."""

    initial_delay_seconds: float = 0.25
    """Delay before the second attempt."""

    backoff_multiplier: float = 2.0
    """Exponential backoff multiplier."""

    max_delay_seconds: float = 30.0
    """Maximum delay between attempts."""

    jitter: float = 0.0
    """Random extra delay as a fraction of the computed delay."""

    def build_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_attempts=self.max_attempts,
            initial_delay_seconds=self.initial_delay_seconds,
            backoff_multiplier=self.backoff_multiplier,
            max_delay_seconds=self.max_delay_seconds,
            jitter=self.jitter,
        )


# ============================================================
# HARVEST CONFIGURATION
# ============================================================

@dataclass
class HarvestConfig:
    """
    Harvest pipeline configuration.
    """

    api_key: str = ""
    """Marketplace API key sent as X-API-KEY."""

    api_url: str = DEFAULT_API_URL
    """Marketplace API base URL."""

    output_root: Path = field(default_factory=lambda: Path(".metadata"))
    """Harvest storage root. Records land in <output_root>/<slug>/."""

    request_timeout_seconds: float = 30.0
    """Total timeout for a single HTTP request."""

    concurrency: int = 1
    """In-flight enrichments. Keep at 1 unless the API key allows more."""

    image_host: str = DEFAULT_IMAGE_HOST
    """Canonical high-resolution image host."""

    rewrite_image_urls: bool = True
    """Rewrite image URLs onto image_host with the full-size suffix."""

    resume: bool = False
    """Skip tokens whose JSON record already exists."""

    retry: RetryConfig = field(default_factory=RetryConfig)

    @classmethod
    def from_env(cls, **overrides) -> "HarvestConfig":
        """Build from environment variables (and a .env file if present)."""
        load_dotenv()
        config = cls(
            api_key=os.getenv("MARKETPLACE_API_KEY", ""),
            api_url=os.getenv("MARKETPLACE_API_URL", DEFAULT_API_URL),
            output_root=Path(os.getenv("HARVEST_OUTPUT_ROOT", ".metadata")),
        )
        for key, value in overrides.items():
            if value is not None:
                setattr(config, key, value)
        return config

    def validate(self) -> List[str]:
        """Return a list of configuration errors (empty if valid)."""
        errors = []
        if not self.api_key:
            errors.append("MARKETPLACE_API_KEY (or --api-key) is required")
        if self.concurrency < 1:
            errors.append("concurrency must be at least 1")
        if self.retry.max_attempts < 1:
            errors.append("retry.max_attempts must be at least 1")
        if self.request_timeout_seconds <= 0:
            errors.append("request_timeout_seconds must be positive")
        return errors
