"""
Corpus Normalizer - Renumbers a harvested corpus into 1..N.

============================================================
RESPONSIBILITY
============================================================
- Read every harvested JSON record from the input directory
- Order records by provenance (oldest first) and assign ids 1..N
- Copy each record's image, or substitute placeholder media
- Apply derived attributes and the provenance sentence
- Write <id>.json (and media) to the output directory

============================================================
RESUMABILITY
============================================================
Placeholder media is only fetched for tokens whose output media file is
missing, so an interrupted run can simply be repeated. Metadata is
rewritten on every run and is deterministic for a given input.

============================================================
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import AsyncIterator, Optional, Union

from collection_harvest.storage import atomic_write_bytes, atomic_write_json, ensure_dir
from corpus_normalizer.attributes import derive_attributes, describe_provenance
from corpus_normalizer.config import NormalizeOptions, OutputLayout
from corpus_normalizer.exceptions import (
    CorpusReadError,
    MediaExhausted,
    NormalizationError,
)
from corpus_normalizer.media_source import PlaceholderMediaSource
from corpus_normalizer.provenance import (
    SourceRecord,
    canonical_order,
    provenance_timestamp,
    to_iso,
)


logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

SUBSTITUTE_EXTENSION = "gif"


@dataclass
class NormalizeReport:
    """Summary of a normalization run."""
    records: int = 0
    media_downloaded: int = 0
    media_reused: int = 0
    media_copied: int = 0
    written: list[Path] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "records": self.records,
            "media_downloaded": self.media_downloaded,
            "media_reused": self.media_reused,
            "media_copied": self.media_copied,
        }


class CorpusNormalizer:
    """
    Sort-and-renumber pass over a harvested corpus.

    Usage:
        normalizer = CorpusNormalizer(NormalizeOptions(inject_mint_date=True))
        report = await normalizer.normalize("harvest/my-slug", "out")
    """

    def __init__(
        self,
        options: Optional[NormalizeOptions] = None,
        media_source: Optional[PlaceholderMediaSource] = None,
    ) -> None:
        self._options = options or NormalizeOptions()
        self._media_source = media_source
        self._media_stream: Optional[AsyncIterator[str]] = None

    # ─────────────────────────────────────────────────────────────
    # Layout
    # ─────────────────────────────────────────────────────────────

    def media_dir(self, output_dir: PathLike) -> Path:
        if self._options.layout == OutputLayout.SPLIT:
            return Path(output_dir) / "assets"
        return Path(output_dir)

    def metadata_dir(self, output_dir: PathLike) -> Path:
        if self._options.layout == OutputLayout.SPLIT:
            return Path(output_dir) / "metadata"
        return Path(output_dir)

    # ─────────────────────────────────────────────────────────────
    # Input
    # ─────────────────────────────────────────────────────────────

    def load_corpus(self, input_dir: PathLike) -> list[SourceRecord]:
        """Parse every ``*.json`` record directly under ``input_dir``."""
        directory = Path(input_dir)
        if not directory.is_dir():
            raise CorpusReadError(f"Input directory not found: {directory}", path=str(directory))

        records = []
        for path in directory.iterdir():
            if not path.is_file() or path.suffix != ".json":
                continue
            try:
                data = json.loads(path.read_text(encoding="utf-8"))
            except (OSError, ValueError) as e:
                raise CorpusReadError(
                    f"Unreadable record {path.name}",
                    path=str(path),
                    original_error=e,
                ) from e
            if not isinstance(data, dict):
                raise CorpusReadError(f"Record {path.name} is not a JSON object", path=str(path))
            records.append(SourceRecord(path=path, data=data, provenance=provenance_timestamp(data)))
        return records

    # ─────────────────────────────────────────────────────────────
    # Media
    # ─────────────────────────────────────────────────────────────

    async def _next_media_url(self, token_id: int) -> str:
        if self._media_stream is None:
            self._media_stream = self._media_source.urls(self._options.media_search_term)
        try:
            return await self._media_stream.__anext__()
        except StopAsyncIteration:
            raise MediaExhausted(
                f"Ran out of placeholder media at token {token_id}",
                token_id=token_id,
                context={"search_term": self._options.media_search_term},
            )

    async def _substitute_media(
        self,
        token_id: int,
        media_dir: Path,
        report: NormalizeReport,
    ) -> str:
        file_name = f"{token_id}.{SUBSTITUTE_EXTENSION}"
        target = media_dir / file_name

        if target.exists():
            report.media_reused += 1
            return file_name

        url = await self._next_media_url(token_id)
        payload = await self._media_source.download(url)
        atomic_write_bytes(target, payload.content)
        report.media_downloaded += 1
        return file_name

    def _copy_media(
        self,
        token_id: int,
        source: SourceRecord,
        media_dir: Path,
        report: NormalizeReport,
    ) -> str:
        image = source.data.get("image")
        if not image:
            raise CorpusReadError(f"Record {source.path.name} has no image", path=str(source.path))

        source_path = (source.path.parent / image).resolve()
        if not source_path.is_file():
            raise CorpusReadError(
                f"Image {image} for {source.path.name} not found",
                path=str(source_path),
            )

        file_name = f"{token_id}{source_path.suffix}"
        atomic_write_bytes(media_dir / file_name, source_path.read_bytes())
        report.media_copied += 1
        return file_name

    # ─────────────────────────────────────────────────────────────
    # Records
    # ─────────────────────────────────────────────────────────────

    def build_record(self, token_id: int, source: SourceRecord, image: str) -> dict:
        """Normalized JSON for one token (pure given its inputs)."""
        record = dict(source.data)
        record["description"] = describe_provenance(
            record.get("description"), source.provenance, self._options
        )
        record["image"] = image
        record["attributes"] = derive_attributes(record, source.provenance, self._options)
        record["id"] = str(token_id)
        record["original_creation_date"] = to_iso(source.provenance)
        return record

    async def normalize(
        self,
        input_dir: PathLike,
        output_dir: PathLike,
    ) -> NormalizeReport:
        """
        Renumber the corpus in ``input_dir`` into ``output_dir``.

        Raises:
            NormalizationError: Invalid options or missing media source
            CorpusReadError: A record or its image cannot be read
            MediaExhausted: Placeholder stream ran out (fatal)
        """
        errors = self._options.validate()
        if errors:
            raise NormalizationError("; ".join(errors))
        if self._options.substitute_media and self._media_source is None:
            raise NormalizationError("substitute_media requires a placeholder media source")

        ordered = canonical_order(self.load_corpus(input_dir))
        media_dir = ensure_dir(self.media_dir(output_dir))
        metadata_dir = ensure_dir(self.metadata_dir(output_dir))
        report = NormalizeReport()
        total = len(ordered)

        try:
            for token_id, source in enumerate(ordered, start=1):
                logger.info(f"[normalize] Processing {token_id} of {total} ({source.path.name})")

                if self._options.substitute_media:
                    image = await self._substitute_media(token_id, media_dir, report)
                else:
                    image = self._copy_media(token_id, source, media_dir, report)

                record = self.build_record(token_id, source, image)
                target = atomic_write_json(metadata_dir / f"{token_id}.json", record)
                report.written.append(target)
                report.records += 1
        finally:
            if self._media_stream is not None:
                await self._media_stream.aclose()
                self._media_stream = None

        logger.info(f"[normalize] Done: {report.to_dict()}")
        return report
