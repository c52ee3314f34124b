"""Shared test fixtures and store fakes for tagindex tests."""

from __future__ import annotations

from typing import Any

import pytest

from tagindex.config import TagIndexConfig
from tagindex.keys import posting_key, record_item
from tagindex.storage import SqliteTagStore
from tagindex.types import BatchGetResult, BatchWriteResult, Key, QueryPage, TaskItem

TABLE = "tagindex-test"


# --- Store fakes ---


class RecordingStore:
    """Delegates to a real store and records every call."""

    def __init__(self, inner: SqliteTagStore) -> None:
        self.inner = inner
        self.table_name = inner.table_name
        self.queries: list[dict[str, Any]] = []
        self.get_requests: list[dict[str, list[Key]]] = []
        self.write_requests: list[dict[str, list[Any]]] = []

    def query(self, partition_key: str, **kwargs: Any) -> QueryPage:
        self.queries.append({"partition_key": partition_key, **kwargs})
        return self.inner.query(partition_key, **kwargs)

    def batch_get(self, request: dict[str, list[Key]]) -> BatchGetResult:
        self.get_requests.append(request)
        return self.inner.batch_get(request)

    def batch_write(self, request: dict[str, list[Any]]) -> BatchWriteResult:
        self.write_requests.append(request)
        return self.inner.batch_write(request)

    def describe(self) -> dict[str, Any]:
        return self.inner.describe()

    def close(self) -> None:
        self.inner.close()


class ThrottlingStore(RecordingStore):
    """Leaves the last ``residue`` entries unprocessed for the first ``throttled_calls`` calls."""

    def __init__(self, inner: SqliteTagStore, *, residue: int, throttled_calls: int) -> None:
        super().__init__(inner)
        self.residue = residue
        self.throttled_calls = throttled_calls
        self.calls = 0

    def _split(
        self, request: dict[str, list[Any]]
    ) -> tuple[dict[str, list[Any]], dict[str, list[Any]]]:
        self.calls += 1
        if self.calls > self.throttled_calls:
            return request, {}
        processed: dict[str, list[Any]] = {}
        unprocessed: dict[str, list[Any]] = {}
        remaining = self.residue
        for table, entries in reversed(list(request.items())):
            take = min(remaining, len(entries))
            remaining -= take
            cut = len(entries) - take
            if entries[:cut]:
                processed[table] = entries[:cut]
            if entries[cut:]:
                unprocessed[table] = entries[cut:]
        return processed, unprocessed

    def batch_get(self, request: dict[str, list[Key]]) -> BatchGetResult:
        self.get_requests.append(request)
        processed, unprocessed = self._split(request)
        result = self.inner.batch_get(processed) if processed else BatchGetResult()
        result.unprocessed_keys = unprocessed
        return result

    def batch_write(self, request: dict[str, list[Any]]) -> BatchWriteResult:
        self.write_requests.append(request)
        processed, unprocessed = self._split(request)
        if processed:
            self.inner.batch_write(processed)
        return BatchWriteResult(unprocessed_items=unprocessed)


# --- Seeding helpers ---


def seed_postings(store: SqliteTagStore, postings: dict[tuple[str, str], list[str]]) -> None:
    """Write posting entries directly, bypassing the create path."""
    writes = [
        {"PutRequest": {"Item": posting_key(name, value, record_id)}}
        for (name, value), ids in postings.items()
        for record_id in ids
    ]
    for start in range(0, len(writes), 25):
        store.batch_write({TABLE: writes[start : start + 25]})


def seed_records(store: SqliteTagStore, records: list[TaskItem]) -> None:
    writes = [{"PutRequest": {"Item": record_item(r)}} for r in records]
    for start in range(0, len(writes), 25):
        store.batch_write({TABLE: writes[start : start + 25]})


# --- Fixtures ---


@pytest.fixture
def config():
    """Engine config bound to the test table, with retry backoff disabled."""
    return TagIndexConfig(table_name=TABLE, batch_backoff_base_ms=0)


@pytest.fixture
def store(config):
    """In-memory SQLite store."""
    s = SqliteTagStore(":memory:", config)
    yield s
    s.close()


@pytest.fixture
def recording_store(store):
    return RecordingStore(store)
