"""Expand matched record ids into full records."""

from __future__ import annotations

import logging
from typing import Iterable

from tagindex.batch import BatchExecutor
from tagindex.keys import item_to_record, record_key
from tagindex.types import TaskItem

logger = logging.getLogger(__name__)


class RecordExpander:
    """Bulk-reads the record item for each id.

    Returned order follows the store, not ``ids``. Ids whose record is gone,
    or whose key stayed unprocessed after retries, are simply absent.
    """

    def __init__(self, executor: BatchExecutor, table_name: str) -> None:
        self._executor = executor
        self._table_name = table_name

    async def expand(self, ids: Iterable[str]) -> list[TaskItem]:
        keys = [record_key(record_id) for record_id in ids]
        if not keys:
            return []
        table = self._table_name
        response = await self._executor.batch_get_all({table: keys})
        if response.has_unprocessed:
            logger.info(
                "Returning partial expansion: %d of %d key(s) unprocessed",
                sum(len(k) for k in response.unprocessed_keys.values()),
                len(keys),
            )
        return [item_to_record(attrs) for attrs in response.responses.get(table, [])]
