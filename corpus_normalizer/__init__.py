"""
Corpus Normalizer Package - Turns a harvested corpus into a re-mintable set.

Records are renumbered 1..N in provenance order (oldest event or ownership
first), images are copied or replaced with placeholder GIFs, and derived
traits (Type, Original Mint Date) are added.

Quick Start:
    from corpus_normalizer import (
        CorpusNormalizer,
        MediaSourceConfig,
        NormalizeOptions,
        PlaceholderMediaSource,
    )

    async def normalize():
        options = NormalizeOptions(
            substitute_media=True,
            media_search_term="ape",
            inject_mint_date=True,
        )
        source = PlaceholderMediaSource(MediaSourceConfig.from_env())
        try:
            normalizer = CorpusNormalizer(options, source)
            await normalizer.normalize(".metadata/my-slug", "out")
        finally:
            await source.close()
"""

from corpus_normalizer.attributes import (
    derive_attributes,
    describe_provenance,
    format_mint_date,
)
from corpus_normalizer.config import MediaSourceConfig, NormalizeOptions, OutputLayout
from corpus_normalizer.exceptions import (
    CorpusReadError,
    MediaExhausted,
    NormalizationError,
)
from corpus_normalizer.media_source import PlaceholderMediaSource
from corpus_normalizer.normalizer import CorpusNormalizer, NormalizeReport
from corpus_normalizer.provenance import (
    SourceRecord,
    canonical_order,
    parse_timestamp,
    provenance_timestamp,
)


__all__ = [
    # Normalizer
    "CorpusNormalizer",
    "NormalizeReport",

    # Options
    "NormalizeOptions",
    "MediaSourceConfig",
    "OutputLayout",

    # Media
    "PlaceholderMediaSource",

    # Attributes
    "derive_attributes",
    "describe_provenance",
    "format_mint_date",

    # Provenance
    "SourceRecord",
    "canonical_order",
    "parse_timestamp",
    "provenance_timestamp",

    # Exceptions
    "NormalizationError",
    "CorpusReadError",
    "MediaExhausted",
]
