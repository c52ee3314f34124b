"""Async adapter for store backends using thread pool execution.

Backends are synchronous (sqlite3, boto3). The engine awaits them through this
adapter so that independent calls, such as the first page of every posting
list, run concurrently in worker threads.
"""

from __future__ import annotations

import asyncio
from typing import Any

from tagindex.storage import TagStoreProtocol
from tagindex.types import BatchGetResult, BatchWriteResult, Key, QueryPage, WriteRequest


class AsyncStoreAdapter:
    """Awaitable view over a sync ``TagStoreProtocol`` implementation."""

    def __init__(self, store: TagStoreProtocol) -> None:
        self._store = store

    @property
    def store(self) -> TagStoreProtocol:
        return self._store

    @property
    def table_name(self) -> str:
        return self._store.table_name

    async def query(
        self,
        partition_key: str,
        *,
        sort_key_prefix: str | None = None,
        index_name: str | None = None,
        exclusive_start_key: Key | None = None,
        limit: int,
    ) -> QueryPage:
        return await asyncio.to_thread(
            self._store.query,
            partition_key,
            sort_key_prefix=sort_key_prefix,
            index_name=index_name,
            exclusive_start_key=exclusive_start_key,
            limit=limit,
        )

    async def batch_get(self, request: dict[str, list[Key]]) -> BatchGetResult:
        return await asyncio.to_thread(self._store.batch_get, request)

    async def batch_write(self, request: dict[str, list[WriteRequest]]) -> BatchWriteResult:
        return await asyncio.to_thread(self._store.batch_write, request)

    async def describe(self) -> dict[str, Any]:
        return await asyncio.to_thread(self._store.describe)
