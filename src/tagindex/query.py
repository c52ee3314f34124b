"""Query engine façade: tag intersection, record expansion and the list-all fallback."""

from __future__ import annotations

import logging
from typing import Mapping

from tagindex.async_store import AsyncStoreAdapter
from tagindex.batch import BatchExecutor
from tagindex.config import TagIndexConfig
from tagindex.errors import ValidationError
from tagindex.expand import RecordExpander
from tagindex.intersect import Intersector, validate_limit
from tagindex.keys import (
    RECORD_TYPE,
    item_to_record,
    record_id_from_key,
    record_list_start_key,
)
from tagindex.storage import TagStoreProtocol
from tagindex.types import ListResult, TaskItem

logger = logging.getLogger(__name__)


class ListService:
    """Lists records, optionally restricted to those carrying every given tag.

    The pagination key is the id of the last record of the previous page;
    a None key in the result means there is nothing more to read.
    """

    def __init__(self, store: TagStoreProtocol, config: TagIndexConfig | None = None) -> None:
        self._config = config or TagIndexConfig()
        self._store = AsyncStoreAdapter(store)
        self._intersector = Intersector(self._store, self._config)
        self._expander = RecordExpander(
            BatchExecutor(self._store, self._config), self._store.table_name
        )

    async def list(
        self,
        tags: Mapping[str, str] | None = None,
        pagination_key: str | None = None,
        limit: int | None = None,
    ) -> ListResult:
        limit = validate_limit(self._config.default_list_limit if limit is None else limit)
        if tags:
            return await self._list_by_tags(tags, pagination_key, limit)
        return await self._list_all(pagination_key, limit)

    async def get(self, record_id: str) -> TaskItem | None:
        if not record_id:
            raise ValidationError("Record id is required")
        records = await self._expander.expand([record_id])
        return records[0] if records else None

    async def _list_by_tags(
        self, tags: Mapping[str, str], pagination_key: str | None, limit: int
    ) -> ListResult:
        matched = await self._intersector.intersect(tags, pagination_key, limit)
        if not matched.ids:
            return ListResult(items=[])

        records = await self._expander.expand(matched.ids)
        by_id = {record.id: record for record in records}
        ordered = [by_id[record_id] for record_id in matched.ids if record_id in by_id]
        if len(ordered) < len(matched.ids):
            logger.debug(
                "%d matched id(s) did not expand to a record", len(matched.ids) - len(ordered)
            )
        return ListResult(items=ordered, next_pagination_key=matched.next_continuation)

    async def _list_all(self, pagination_key: str | None, limit: int) -> ListResult:
        start_key = record_list_start_key(pagination_key) if pagination_key else None
        page = await self._store.query(
            RECORD_TYPE,
            index_name=self._config.list_index_name,
            exclusive_start_key=start_key,
            limit=limit,
        )
        items = [item_to_record(attrs) for attrs in page.items]
        next_key = None
        if page.last_evaluated_key:
            next_key = record_id_from_key(page.last_evaluated_key)
        return ListResult(items=items, next_pagination_key=next_key)
