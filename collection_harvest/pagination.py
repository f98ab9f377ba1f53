"""
Paginated Fetch - Lazy traversal of cursor-based listing endpoints.

A PaginatedFetch holds its own cursor. Page N+1 is only requested once
page N has returned its cursor, and iteration ends after the first page
without one. A finished traversal is not restartable; build a new
PaginatedFetch to start over from the first page.
"""

import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Generic, Optional, TypeVar

from collection_harvest.retry import RetryPolicy


logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Page(Generic[T]):
    """One page of a cursor-paginated listing."""
    items: list[T] = field(default_factory=list)
    next_cursor: Optional[str] = None

    @property
    def is_last(self) -> bool:
        return not self.next_cursor


class PaginatedFetch(Generic[T]):
    """
    Async iterator over the pages of a cursor-based endpoint.

    Usage:
        async for page in PaginatedFetch(client.fetch_events_page):
            ...
    """

    def __init__(
        self,
        fetch_page: Callable[[Optional[str]], Awaitable[Page[T]]],
        retry_policy: Optional[RetryPolicy] = None,
        description: str = "page",
    ) -> None:
        self._fetch_page = fetch_page
        self._retry_policy = retry_policy
        self._description = description
        self._cursor: Optional[str] = None
        self._done = False
        self.pages_fetched = 0

    @property
    def cursor(self) -> Optional[str]:
        """Cursor that the next request will send."""
        return self._cursor

    @property
    def done(self) -> bool:
        return self._done

    def __aiter__(self) -> "PaginatedFetch[T]":
        return self

    async def __anext__(self) -> Page[T]:
        if self._done:
            raise StopAsyncIteration

        cursor = self._cursor
        if self._retry_policy is not None:
            page = await self._retry_policy.run(
                lambda: self._fetch_page(cursor),
                description=f"{self._description} #{self.pages_fetched + 1}",
            )
        else:
            page = await self._fetch_page(cursor)

        self.pages_fetched += 1
        if page.is_last:
            self._done = True
        else:
            self._cursor = page.next_cursor

        logger.debug(
            f"[pagination] {self._description} page {self.pages_fetched}: "
            f"{len(page.items)} items, next={page.next_cursor!r}"
        )
        return page

    async def collect(self) -> list[T]:
        """Drain every remaining page and return the items in order."""
        items: list[T] = []
        async for page in self:
            items.extend(page.items)
        return items
