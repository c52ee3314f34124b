"""Chunk-and-retry execution of bulk reads and writes against a ceiling-limited store."""

from __future__ import annotations

import asyncio
import enum
import logging
import random
from typing import Any, Awaitable, Callable, TypeVar

from tagindex.async_store import AsyncStoreAdapter
from tagindex.config import TagIndexConfig
from tagindex.storage import count_request_entries
from tagindex.types import BatchGetResult, BatchWriteResult, Key, WriteRequest

logger = logging.getLogger(__name__)

T = TypeVar("T")


class BatchKind(enum.Enum):
    GET = "get"
    PUT = "put"


def split_into_chunks(request: dict[str, list[T]], max_size: int) -> list[dict[str, list[T]]]:
    """Split a per-collection request into ordered chunks of at most ``max_size`` entries.

    A chunk may hold entries from several collections; request order is kept.
    """
    if max_size <= 0:
        raise ValueError(f"max_size must be positive, got {max_size}")
    chunks: list[dict[str, list[T]]] = []
    chunk: dict[str, list[T]] = {}
    size = 0
    for collection, entries in request.items():
        for entry in entries:
            if size >= max_size:
                chunks.append(chunk)
                chunk = {}
                size = 0
            chunk.setdefault(collection, []).append(entry)
            size += 1
    if chunk:
        chunks.append(chunk)
    return chunks


def merge_entries(target: dict[str, list[T]], source: dict[str, list[T]]) -> None:
    for collection, entries in source.items():
        if entries:
            target.setdefault(collection, []).extend(entries)


def _non_empty(entries: dict[str, list[T]]) -> dict[str, list[T]]:
    return {collection: list(items) for collection, items in entries.items() if items}


class BatchExecutor:
    """Runs bulk get/put requests chunk by chunk, retrying only the unprocessed residue.

    Chunks are processed strictly one after another. Each chunk gets one
    initial call plus at most ``max_batch_retries`` retries of whatever the
    store left unprocessed. Residue that survives the retries is handed back
    to the caller, never dropped.
    """

    def __init__(self, store: AsyncStoreAdapter, config: TagIndexConfig | None = None) -> None:
        self._store = store
        self._config = config or TagIndexConfig()

    async def execute_batch(
        self, request: dict[str, list[Any]], kind: BatchKind
    ) -> BatchGetResult | BatchWriteResult:
        if kind is BatchKind.GET:
            return await self.batch_get_all(request)
        return await self.batch_write_all(request)

    async def batch_get_all(self, request: dict[str, list[Key]]) -> BatchGetResult:
        """Fetch every key; keys still unprocessed after retries land in ``unprocessed_keys``."""
        response = BatchGetResult()
        chunks = split_into_chunks(request, self._config.max_read_batch_size)
        logger.debug(
            "Batch get of %d key(s) in %d chunk(s)", count_request_entries(request), len(chunks)
        )

        async def _call(pending: dict[str, list[Key]]) -> dict[str, list[Key]]:
            result = await self._store.batch_get(pending)
            merge_entries(response.responses, result.responses)
            return result.unprocessed_keys

        for chunk in chunks:
            residue = await self._drain(_call, chunk, "get")
            if residue:
                logger.warning(
                    "Batch get left %d key(s) unprocessed after %d retries",
                    count_request_entries(residue),
                    self._config.max_batch_retries,
                )
                merge_entries(response.unprocessed_keys, residue)
        return response

    async def batch_write_all(self, request: dict[str, list[WriteRequest]]) -> BatchWriteResult:
        """Apply every write request.

        On the first chunk whose residue survives the retries, processing stops
        and that residue plus every chunk not yet attempted is returned as
        unprocessed.
        """
        response = BatchWriteResult()
        chunks = split_into_chunks(request, self._config.max_write_batch_size)
        logger.debug(
            "Batch write of %d request(s) in %d chunk(s)",
            count_request_entries(request),
            len(chunks),
        )

        async def _call(pending: dict[str, list[WriteRequest]]) -> dict[str, list[WriteRequest]]:
            result = await self._store.batch_write(pending)
            return result.unprocessed_items

        for index, chunk in enumerate(chunks):
            residue = await self._drain(_call, chunk, "write")
            if residue:
                merge_entries(response.unprocessed_items, residue)
                for remaining in chunks[index + 1 :]:
                    merge_entries(response.unprocessed_items, remaining)
                logger.warning(
                    "Batch write left %d request(s) unprocessed after %d retries",
                    count_request_entries(response.unprocessed_items),
                    self._config.max_batch_retries,
                )
                break
        return response

    async def _drain(
        self,
        call: Callable[[dict[str, list[T]]], Awaitable[dict[str, list[T]]]],
        chunk: dict[str, list[T]],
        label: str,
    ) -> dict[str, list[T]]:
        """Issue ``call`` for ``chunk`` and retry its residue; return what is left."""
        pending = chunk
        attempt = 0
        while True:
            pending = _non_empty(await call(pending))
            if not pending or attempt >= self._config.max_batch_retries:
                return pending
            attempt += 1
            logger.warning(
                "Batch %s returned %d unprocessed entr(ies); retry %d of %d",
                label,
                count_request_entries(pending),
                attempt,
                self._config.max_batch_retries,
            )
            await self._backoff(attempt)

    async def _backoff(self, attempt: int) -> None:
        base_ms = self._config.batch_backoff_base_ms
        if base_ms <= 0:
            return
        jitter = random.randint(0, base_ms)
        # The cap covers the jitter too.
        backoff_ms = min(base_ms * (2 ** (attempt - 1)) + jitter, self._config.batch_backoff_max_ms)
        await asyncio.sleep(backoff_ms / 1000.0)
