"""
Harvest Storage - All-or-nothing file writes under the harvest root.

Each file is written to a temporary sibling and moved into place with
os.replace, so readers only ever see complete files. The JSON record is
written after its media file and is the commit marker for a token.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Union

from collection_harvest.models import HarvestedRecord, ImagePayload


logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def ensure_dir(path: PathLike) -> Path:
    """mkdir -p; safe to call repeatedly and concurrently."""
    directory = Path(path)
    directory.mkdir(parents=True, exist_ok=True)
    return directory


def atomic_write_bytes(path: PathLike, content: bytes) -> Path:
    """Write ``content`` to ``path`` so the file is either absent or complete."""
    target = Path(path)
    ensure_dir(target.parent)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{target.name}.", dir=target.parent)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(content)
        os.replace(tmp_name, target)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise
    return target


def dump_json(data: Any) -> str:
    """Canonical JSON text used for every record on disk."""
    return json.dumps(data, indent=2, ensure_ascii=False) + "\n"


def atomic_write_json(path: PathLike, data: Any) -> Path:
    return atomic_write_bytes(path, dump_json(data).encode("utf-8"))


class HarvestStorage:
    """
    On-disk harvest corpus: ``<root>/<collection_slug>/<token_id>.{json,<ext>}``.
    """

    def __init__(self, root: PathLike) -> None:
        self.root = Path(root)

    def collection_dir(self, collection_slug: str) -> Path:
        return self.root / collection_slug

    def record_path(self, collection_slug: str, token_id: str) -> Path:
        return self.collection_dir(collection_slug) / f"{token_id}.json"

    def media_path(self, collection_slug: str, token_id: str, extension: str) -> Path:
        return self.collection_dir(collection_slug) / f"{token_id}.{extension}"

    def has_record(self, collection_slug: str, token_id: str) -> bool:
        return self.record_path(collection_slug, token_id).is_file()

    def commit(
        self,
        collection_slug: str,
        record: HarvestedRecord,
        image: ImagePayload,
    ) -> Path:
        """
        Persist a fully joined record. Media first, JSON last.

        Returns:
            Path of the committed JSON record
        """
        ensure_dir(self.collection_dir(collection_slug))

        media_path = self.media_path(collection_slug, record.token_id, image.extension)
        atomic_write_bytes(media_path, image.content)
        logger.debug(f"[storage] Wrote {media_path} ({len(image.content)} bytes)")

        record_path = self.record_path(collection_slug, record.token_id)
        atomic_write_json(record_path, record.to_dict())
        logger.debug(f"[storage] Committed {record_path}")
        return record_path
