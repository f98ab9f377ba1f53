"""
Corpus Normalizer Exceptions.
"""

from typing import Any, Optional

from collection_harvest.exceptions import HarvestError


class NormalizationError(HarvestError):
    """Base exception for normalization failures."""

    def __init__(
        self,
        message: str,
        path: Optional[str] = None,
        original_error: Optional[BaseException] = None,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, original_error, context)
        self.path = path

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        data = super().to_dict()
        data["path"] = self.path
        return data


class CorpusReadError(NormalizationError):
    """A harvested record or its media could not be read."""


class MediaExhausted(NormalizationError):
    """
    The placeholder media stream ran dry before every token had media.

    Fatal for the run. Files already written are left in place so a rerun
    resumes where this one stopped.
    """

    def __init__(
        self,
        message: str,
        token_id: Optional[int] = None,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, None, None, context)
        self.token_id = token_id

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        data = super().to_dict()
        data["token_id"] = self.token_id
        return data
