"""Posting-list cursor: one tag's paginated range query with transparent page refill."""

from __future__ import annotations

import logging

from tagindex.async_store import AsyncStoreAdapter
from tagindex.keys import posting_key, record_id_from_sort_key, tag_partition, tag_sort_prefix
from tagindex.types import Key

logger = logging.getLogger(__name__)


class PostingListCursor:
    """Walks the ascending record ids carrying one (tag name, tag value) pair.

    A cursor holds one page in memory, a pointer into it and the store's
    continuation key for the next page. Once a refill returns no key or no rows
    the cursor is exhausted for good and ``peek`` returns None.
    """

    def __init__(
        self,
        store: AsyncStoreAdapter,
        tag_name: str,
        tag_value: str,
        *,
        page_size: int,
    ) -> None:
        self.tag_name = tag_name
        self.tag_value = tag_value
        self._store = store
        self._page_size = page_size
        self._page: list[str] = []
        self._pointer = 0
        self._next_key: Key | None = None
        self._exhausted = False
        self.pages_fetched = 0

    @property
    def exhausted(self) -> bool:
        return self._exhausted

    async def open(self, start_after: str | None = None) -> list[str]:
        """Fetch the first page, starting strictly after ``start_after`` when given."""
        start_key = None
        if start_after is not None:
            start_key = posting_key(self.tag_name, self.tag_value, start_after)
        await self._fetch(start_key)
        return list(self._page)

    async def peek(self) -> str | None:
        """Return the id at the pointer, refilling from the store when the page is consumed."""
        if self._exhausted:
            return None
        if self._pointer >= len(self._page):
            if self._next_key is None:
                self._exhausted = True
                return None
            await self._fetch(self._next_key)
            if self._exhausted:
                return None
        return self._page[self._pointer]

    def advance(self) -> None:
        self._pointer += 1

    async def _fetch(self, exclusive_start_key: Key | None) -> None:
        page = await self._store.query(
            tag_partition(self.tag_name),
            sort_key_prefix=tag_sort_prefix(self.tag_value),
            exclusive_start_key=exclusive_start_key,
            limit=self._page_size,
        )
        self.pages_fetched += 1
        self._page = [record_id_from_sort_key(str(item["sk"])) for item in page.items]
        self._pointer = 0
        self._next_key = page.last_evaluated_key
        if not self._page:
            self._exhausted = True
        logger.debug(
            "Fetched page %d for tag %s=%s: %d ids, more=%s",
            self.pages_fetched,
            self.tag_name,
            self.tag_value,
            len(self._page),
            self._next_key is not None,
        )
