"""
Collection Harvest Exceptions - Custom exception hierarchy.

Errors are split by how the retry layer treats them:
- TransientHttpError (and RateLimitError) are retried
- NonRetryableHttpError surfaces immediately
- RetryExhausted / PartialAssetFailure are terminal for their scope
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional


class HarvestError(Exception):
    """Base exception for all harvest errors."""

    def __init__(
        self,
        message: str,
        original_error: Optional[BaseException] = None,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.original_error = original_error
        self.context = context or {}
        self.timestamp = datetime.utcnow()

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "original_error": str(self.original_error) if self.original_error else None,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
        }

    def __str__(self) -> str:
        parts = [f"{self.__class__.__name__}: {self.message}"]
        if self.original_error:
            parts.append(f"(caused by: {self.original_error})")
        return " ".join(parts)


class HttpError(HarvestError):
    """Error talking to the marketplace or an image host."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        request_url: Optional[str] = None,
        response_body: Optional[str] = None,
        original_error: Optional[BaseException] = None,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, original_error, context)
        self.status_code = status_code
        self.request_url = request_url
        self.response_body = response_body

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        data = super().to_dict()
        data.update({
            "status_code": self.status_code,
            "request_url": self.request_url,
            "response_body": self.response_body,
        })
        return data


class TransientHttpError(HttpError):
    """Network failure, timeout or 5xx response. Safe to retry."""


class RateLimitError(TransientHttpError):
    """HTTP 429 from the upstream API."""

    def __init__(
        self,
        message: str,
        retry_after_seconds: Optional[int] = None,
        request_url: Optional[str] = None,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            message,
            status_code=429,
            request_url=request_url,
            context=context,
        )
        self.retry_after_seconds = retry_after_seconds

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        data = super().to_dict()
        data["retry_after_seconds"] = self.retry_after_seconds
        return data


class NonRetryableHttpError(HttpError):
    """4xx response other than 429. Never retried."""


class RetryExhausted(HarvestError):
    """An operation failed on every allowed attempt."""

    def __init__(
        self,
        message: str,
        attempts: int,
        last_error: Optional[BaseException] = None,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, last_error, context)
        self.attempts = attempts
        self.last_error = last_error

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        data = super().to_dict()
        data["attempts"] = self.attempts
        return data


@dataclass(frozen=True)
class AssetFailure:
    """One asset whose enrichment did not commit."""
    token_id: str
    name: str
    error: BaseException

    def __str__(self) -> str:
        return f"token {self.token_id} ({self.name}): {self.error}"


class PartialAssetFailure(HarvestError):
    """One or more assets failed while the rest of the harvest completed."""

    def __init__(
        self,
        message: str,
        failures: list[AssetFailure],
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        first = failures[0].error if failures else None
        super().__init__(message, first, context)
        self.failures = failures

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        data = super().to_dict()
        data["failures"] = [str(f) for f in self.failures]
        return data


class ConfigurationError(HarvestError):
    """Invalid or missing configuration."""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, None, context)
        self.config_key = config_key

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        data = super().to_dict()
        data["config_key"] = self.config_key
        return data
