"""
Provenance - Earliest known timestamp of a harvested record and the
canonical ordering built on it.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Optional


logger = logging.getLogger(__name__)


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """
    Parse a marketplace ``created_date``.

    Naive values are UTC. Unparsable values yield None.
    """
    if not value:
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        logger.warning(f"[provenance] Ignoring unparsable timestamp {value!r}")
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def earliest(entries: Iterable[dict[str, Any]]) -> Optional[datetime]:
    timestamps = [parse_timestamp(e.get("created_date")) for e in entries or []]
    timestamps = [t for t in timestamps if t is not None]
    return min(timestamps) if timestamps else None


def provenance_timestamp(record: dict[str, Any]) -> Optional[datetime]:
    """
    Earliest ``created_date`` across the record's events, or across its
    owners when there are no dated events.
    """
    return earliest(record.get("events") or []) or earliest(record.get("owners") or [])


def to_iso(ts: Optional[datetime]) -> Optional[str]:
    """UTC ISO-8601 with millisecond precision and a Z suffix."""
    if ts is None:
        return None
    return ts.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"


def file_order_key(path: Path) -> tuple:
    """Numeric token ids sort numerically, anything else after them by name."""
    stem = path.stem
    if stem.isdigit():
        return (0, int(stem), stem)
    return (1, 0, stem)


@dataclass
class SourceRecord:
    """A harvested record loaded from disk, with its ordering inputs."""
    path: Path
    data: dict[str, Any]
    provenance: Optional[datetime]

    @property
    def prior_id(self) -> Optional[int]:
        """Sequential id from an earlier normalization, if any."""
        value = self.data.get("id")
        if value is None:
            return None
        try:
            return int(value)
        except (TypeError, ValueError):
            return None


def canonical_order(records: list[SourceRecord]) -> list[SourceRecord]:
    """
    Order records for renumbering.

    - Every record already numbered: by that number
    - Otherwise: oldest provenance first, undated records last
    - Ties: file name (numeric token ids numerically)
    """
    by_file = sorted(records, key=lambda r: file_order_key(r.path))

    if by_file and all(r.prior_id is not None for r in by_file):
        return sorted(by_file, key=lambda r: r.prior_id)

    dated = [r for r in by_file if r.provenance is not None]
    undated = [r for r in by_file if r.provenance is None]
    return sorted(dated, key=lambda r: r.provenance) + undated
