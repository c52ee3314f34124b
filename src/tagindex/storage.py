"""Store collaborators: the sorted key-value contract and the local SQLite backend."""

from __future__ import annotations

import json
import sqlite3
import threading
from dataclasses import dataclass, replace
from typing import Any, Protocol, runtime_checkable
from urllib.parse import urlparse

from tagindex.config import TagIndexConfig
from tagindex.errors import StorageBackendError
from tagindex.types import BatchGetResult, BatchWriteResult, Item, Key, QueryPage, WriteRequest

DEFAULT_STORAGE_URI = "sqlite:///tagindex.db"


@runtime_checkable
class TagStoreProtocol(Protocol):
    """Backend-agnostic store contract used by the query engine and the CLI.

    Range queries return items ascending by sort key for a fixed partition key.
    Bulk calls may leave part of the request unprocessed; callers retry.
    Bulk requests are keyed by ``table_name``.
    """

    table_name: str

    def query(
        self,
        partition_key: str,
        *,
        sort_key_prefix: str | None = None,
        index_name: str | None = None,
        exclusive_start_key: Key | None = None,
        limit: int,
    ) -> QueryPage: ...

    def batch_get(self, request: dict[str, list[Key]]) -> BatchGetResult: ...

    def batch_write(self, request: dict[str, list[WriteRequest]]) -> BatchWriteResult: ...

    def describe(self) -> dict[str, Any]: ...

    def close(self) -> None: ...


def count_request_entries(request: dict[str, list[Any]]) -> int:
    return sum(len(entries) for entries in request.values())


@dataclass(frozen=True)
class StorageTarget:
    """Resolved storage target from a storage URI."""

    backend: str
    uri: str
    db_path: str | None = None
    table_name: str | None = None


def parse_storage_target(storage_uri: str | None = None) -> StorageTarget:
    """Resolve a backend target from ``sqlite:///path`` or ``dynamodb://table`` forms."""
    uri = storage_uri or DEFAULT_STORAGE_URI
    parsed = urlparse(uri)

    if parsed.scheme == "sqlite":
        sqlite_path = parsed.path
        if parsed.netloc:
            sqlite_path = f"{parsed.netloc}{sqlite_path}"
        elif sqlite_path.startswith("//"):
            # sqlite:////abs/path -> /abs/path
            sqlite_path = sqlite_path[1:]
        elif sqlite_path.startswith("/"):
            # sqlite:///relative.db -> relative.db
            sqlite_path = sqlite_path[1:]
        if not sqlite_path:
            raise StorageBackendError("parse_storage_uri", f"Invalid sqlite URI: {uri}")
        return StorageTarget(backend="sqlite", uri=uri, db_path=sqlite_path)

    if parsed.scheme == "dynamodb":
        table_name = parsed.netloc or parsed.path.strip("/")
        if not table_name:
            raise StorageBackendError("parse_storage_uri", f"Invalid dynamodb URI: {uri}")
        return StorageTarget(backend="dynamodb", uri=uri, table_name=table_name)

    raise StorageBackendError(
        "parse_storage_uri",
        f"Unsupported storage URI scheme '{parsed.scheme}' for '{uri}'",
    )


class SqliteTagStore:
    """SQLite-backed sorted key-value table with DynamoDB-style single-table semantics."""

    def __init__(self, db_path: str, config: TagIndexConfig | None = None) -> None:
        self.db_path = db_path
        self._config = config or TagIndexConfig()
        self.table_name = self._config.table_name
        self._lock = threading.Lock()
        # Calls arrive from worker threads (see AsyncStoreAdapter); access is serialized by _lock.
        self._conn = sqlite3.connect(db_path, check_same_thread=False)
        if db_path != ":memory:":
            self._conn.execute("PRAGMA journal_mode=WAL")
        self._create_tables()

    def _create_tables(self) -> None:
        self._conn.executescript("""
            CREATE TABLE IF NOT EXISTS items (
                pk TEXT NOT NULL,
                sk TEXT NOT NULL,
                si_key1 TEXT,
                attrs_json TEXT NOT NULL,
                PRIMARY KEY (pk, sk)
            );

            CREATE INDEX IF NOT EXISTS idx_items_si_key1
                ON items(si_key1, sk);
        """)
        self._conn.commit()

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    def _check_table(self, operation: str, table_name: str) -> None:
        if table_name != self.table_name:
            raise StorageBackendError(operation, f"Unknown table '{table_name}'")

    @staticmethod
    def _row_to_item(pk: str, sk: str, si_key1: str | None, attrs_json: str) -> Item:
        item: Item = json.loads(attrs_json)
        item["pk"] = pk
        item["sk"] = sk
        if si_key1 is not None:
            item["siKey1"] = si_key1
        return item

    # --- Range queries ---

    def query(
        self,
        partition_key: str,
        *,
        sort_key_prefix: str | None = None,
        index_name: str | None = None,
        exclusive_start_key: Key | None = None,
        limit: int,
    ) -> QueryPage:
        if limit <= 0:
            raise StorageBackendError("query", f"Limit must be positive, got {limit}")

        if index_name is None:
            where = ["pk = ?"]
        elif index_name == self._config.list_index_name:
            where = ["si_key1 = ?"]
        else:
            raise StorageBackendError("query", f"Unknown index '{index_name}'")
        params: list[Any] = [partition_key]

        if sort_key_prefix:
            where.append("substr(sk, 1, ?) = ?")
            params.extend([len(sort_key_prefix), sort_key_prefix])
        if exclusive_start_key is not None:
            where.append("sk > ?")
            params.append(exclusive_start_key["sk"])
        params.append(limit)

        sql = (
            "SELECT pk, sk, si_key1, attrs_json FROM items "
            f"WHERE {' AND '.join(where)} ORDER BY sk LIMIT ?"
        )
        try:
            with self._lock:
                rows = self._conn.execute(sql, params).fetchall()
        except sqlite3.Error as e:
            raise StorageBackendError("query", str(e)) from e

        items = [self._row_to_item(*row) for row in rows]
        last_key: Key | None = None
        if len(items) == limit:
            last = items[-1]
            last_key = {"pk": last["pk"], "sk": last["sk"]}
            if index_name is not None:
                last_key["siKey1"] = last.get("siKey1")
        return QueryPage(items=items, last_evaluated_key=last_key)

    # --- Bulk operations ---

    def batch_get(self, request: dict[str, list[Key]]) -> BatchGetResult:
        count = count_request_entries(request)
        if count > self._config.max_read_batch_size:
            raise StorageBackendError(
                "batch_get",
                f"{count} keys exceeds the limit of {self._config.max_read_batch_size}",
            )

        result = BatchGetResult()
        try:
            with self._lock:
                for table_name, keys in request.items():
                    self._check_table("batch_get", table_name)
                    found: list[Item] = []
                    for key in keys:
                        row = self._conn.execute(
                            "SELECT pk, sk, si_key1, attrs_json FROM items WHERE pk = ? AND sk = ?",
                            (key["pk"], key["sk"]),
                        ).fetchone()
                        if row is not None:
                            found.append(self._row_to_item(*row))
                    result.responses[table_name] = found
        except sqlite3.Error as e:
            raise StorageBackendError("batch_get", str(e)) from e
        return result

    def batch_write(self, request: dict[str, list[WriteRequest]]) -> BatchWriteResult:
        count = count_request_entries(request)
        if count > self._config.max_write_batch_size:
            raise StorageBackendError(
                "batch_write",
                f"{count} write requests exceeds the limit of {self._config.max_write_batch_size}",
            )

        for table_name, writes in request.items():
            self._check_table("batch_write", table_name)
            for write in writes:
                if "PutRequest" not in write and "DeleteRequest" not in write:
                    raise StorageBackendError(
                        "batch_write", f"Unsupported write request: {sorted(write)}"
                    )

        with self._lock:
            try:
                for writes in request.values():
                    for write in writes:
                        self._apply_write(write)
                self._conn.commit()
            except sqlite3.Error as e:
                self._conn.rollback()
                raise StorageBackendError("batch_write", str(e)) from e
        return BatchWriteResult()

    def _apply_write(self, write: WriteRequest) -> None:
        if "PutRequest" in write:
            attrs = dict(write["PutRequest"]["Item"])
            pk = attrs.pop("pk")
            sk = attrs.pop("sk")
            si_key1 = attrs.pop("siKey1", None)
            self._conn.execute(
                "INSERT OR REPLACE INTO items (pk, sk, si_key1, attrs_json) VALUES (?, ?, ?, ?)",
                (pk, sk, si_key1, json.dumps(attrs, sort_keys=True)),
            )
        else:
            key = write["DeleteRequest"]["Key"]
            self._conn.execute("DELETE FROM items WHERE pk = ? AND sk = ?", (key["pk"], key["sk"]))

    def describe(self) -> dict[str, Any]:
        with self._lock:
            records = self._conn.execute(
                "SELECT COUNT(*) FROM items WHERE si_key1 IS NOT NULL"
            ).fetchone()[0]
            postings = self._conn.execute(
                "SELECT COUNT(*) FROM items WHERE pk LIKE 'tag#%'"
            ).fetchone()[0]
        return {
            "backend": "sqlite",
            "db_path": self.db_path,
            "table_name": self.table_name,
            "records": records,
            "posting_entries": postings,
        }


def open_store(
    storage_uri: str | None = None,
    *,
    config: TagIndexConfig | None = None,
) -> TagStoreProtocol:
    """Open a store backend from a storage URI."""
    target = parse_storage_target(storage_uri)
    cfg = config or TagIndexConfig()
    if target.backend == "sqlite":
        assert target.db_path is not None
        return SqliteTagStore(target.db_path, cfg)
    if target.backend == "dynamodb":
        from tagindex.storage_dynamodb import DynamoDBTagStore

        assert target.table_name is not None
        return DynamoDBTagStore(target.table_name, replace(cfg, table_name=target.table_name))
    raise StorageBackendError("open_store", f"Unsupported backend '{target.backend}'")


__all__ = [
    "DEFAULT_STORAGE_URI",
    "SqliteTagStore",
    "StorageTarget",
    "TagStoreProtocol",
    "count_request_entries",
    "open_store",
    "parse_storage_target",
]
