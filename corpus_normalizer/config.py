"""
Corpus Normalizer - Configuration.

============================================================
PURPOSE
============================================================
Options for the renumbering pass and the placeholder media source.

============================================================
"""

import os
from dataclasses import dataclass
from enum import Enum
from typing import List

from dotenv import load_dotenv


DEFAULT_GIPHY_API_URL = "https://api.giphy.com/v1"


class OutputLayout(Enum):
    """How normalized files are arranged under the output directory."""

    SPLIT = "split"
    """Media under assets/, JSON under metadata/."""

    FLAT = "flat"
    """Media and JSON side by side (legacy layout)."""


# ============================================================
# NORMALIZE OPTIONS
# ============================================================

@dataclass
class NormalizeOptions:
    """
    Options for a normalization run.
    """

    substitute_media: bool = False
    """Replace each image with a placeholder GIF instead of copying it."""

    media_search_term: str = "ape"
    """Search term selecting the placeholder stream."""

    classify_names: bool = False
    """Add a Type trait: Classic for numbered names, Named otherwise."""

    classic_name_pattern: str = r"#\d+\s*$"
    """Regex (searched) that marks a name as Classic."""

    inject_mint_date: bool = False
    """Add an Original Mint Date trait and a provenance sentence."""

    storefront_name: str = "OpenSea Storefront"
    """Where the provenance sentence says the token was first created."""

    layout: OutputLayout = OutputLayout.SPLIT
    """Output directory arrangement."""

    def validate(self) -> List[str]:
        """Return a list of option errors (empty if valid)."""
        errors = []
        if self.substitute_media and not self.media_search_term:
            errors.append("media_search_term is required with substitute_media")
        if self.classify_names and not self.classic_name_pattern:
            errors.append("classic_name_pattern is required with classify_names")
        return errors


# ============================================================
# MEDIA SOURCE CONFIGURATION
# ============================================================

@dataclass
class MediaSourceConfig:
    """
    Placeholder media search API configuration.
    """

    api_key: str = ""
    """Giphy API key."""

    api_url: str = DEFAULT_GIPHY_API_URL
    """Giphy API base URL."""

    page_size: int = 10
    """Items requested per search page."""

    media_type: str = "stickers"
    """Giphy catalogue searched (stickers or gifs)."""

    accepted_extension: str = ".gif"
    """Only URLs whose path ends with this are used."""

    request_timeout_seconds: float = 30.0

    @classmethod
    def from_env(cls, **overrides) -> "MediaSourceConfig":
        """Build from environment variables (and a .env file if present)."""
        load_dotenv()
        config = cls(
            api_key=os.getenv("GIPHY_API_KEY", ""),
            api_url=os.getenv("GIPHY_API_URL", DEFAULT_GIPHY_API_URL),
        )
        for key, value in overrides.items():
            if value is not None:
                setattr(config, key, value)
        return config

    def validate(self) -> List[str]:
        errors = []
        if not self.api_key:
            errors.append("GIPHY_API_KEY (or --giphy-api-key) is required for media substitution")
        if self.page_size < 1:
            errors.append("page_size must be at least 1")
        return errors
