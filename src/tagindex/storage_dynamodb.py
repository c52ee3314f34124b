"""DynamoDB storage backend (single-table layout, boto3 resource API)."""

from __future__ import annotations

import logging
from typing import Any

import boto3
from boto3.dynamodb.conditions import Key as KeyCondition
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from tagindex.config import TagIndexConfig
from tagindex.errors import StorageBackendError, StoreThrottledError, StoreUnavailableError
from tagindex.storage import count_request_entries
from tagindex.types import BatchGetResult, BatchWriteResult, Key, QueryPage, WriteRequest

logger = logging.getLogger(__name__)

_THROTTLE_CODES = frozenset(
    {
        "ProvisionedThroughputExceededException",
        "ThrottlingException",
        "RequestLimitExceeded",
    }
)


def _translate_error(operation: str, err: Exception) -> StorageBackendError:
    if isinstance(err, ClientError):
        code = err.response.get("Error", {}).get("Code", "")
        message = err.response.get("Error", {}).get("Message", str(err))
        if code in _THROTTLE_CODES:
            return StoreThrottledError(operation, f"{code}: {message}")
        return StoreUnavailableError(operation, f"{code}: {message}")
    return StoreUnavailableError(operation, str(err))


class DynamoDBTagStore:
    """DynamoDB-backed store. Table and index provisioning happen elsewhere."""

    def __init__(self, table_name: str, config: TagIndexConfig | None = None) -> None:
        self.table_name = table_name
        self._config = config or TagIndexConfig()

        self._session = boto3.Session(region_name=self._config.dynamodb_region)
        self._dynamodb = self._session.resource(
            "dynamodb",
            region_name=self._config.dynamodb_region,
            endpoint_url=self._config.dynamodb_endpoint_url,
            config=BotoConfig(
                connect_timeout=self._config.dynamodb_request_timeout_s,
                read_timeout=self._config.dynamodb_request_timeout_s,
                retries={"max_attempts": 5, "mode": "standard"},
            ),
        )
        self._table = self._dynamodb.Table(table_name)

    def close(self) -> None:
        self._dynamodb.meta.client.close()

    def query(
        self,
        partition_key: str,
        *,
        sort_key_prefix: str | None = None,
        index_name: str | None = None,
        exclusive_start_key: Key | None = None,
        limit: int,
    ) -> QueryPage:
        hash_attr = "pk" if index_name is None else "siKey1"
        condition = KeyCondition(hash_attr).eq(partition_key)
        if sort_key_prefix:
            condition = condition & KeyCondition("sk").begins_with(sort_key_prefix)

        params: dict[str, Any] = {
            "KeyConditionExpression": condition,
            "Limit": limit,
        }
        if index_name is not None:
            params["IndexName"] = index_name
            params["Select"] = "ALL_ATTRIBUTES"
        if exclusive_start_key is not None:
            params["ExclusiveStartKey"] = exclusive_start_key

        try:
            resp = self._table.query(**params)
        except (ClientError, BotoCoreError) as e:
            raise _translate_error("query", e) from e

        logger.debug(
            "Query %s on %s returned %d item(s)",
            partition_key,
            index_name or self.table_name,
            resp.get("Count", 0),
        )
        return QueryPage(
            items=list(resp.get("Items", [])),
            last_evaluated_key=resp.get("LastEvaluatedKey"),
        )

    def batch_get(self, request: dict[str, list[Key]]) -> BatchGetResult:
        count = count_request_entries(request)
        if count > self._config.max_read_batch_size:
            raise StorageBackendError(
                "batch_get",
                f"{count} keys exceeds the limit of {self._config.max_read_batch_size}",
            )
        request_items = {table: {"Keys": keys} for table, keys in request.items() if keys}
        try:
            resp = self._dynamodb.batch_get_item(RequestItems=request_items)
        except (ClientError, BotoCoreError) as e:
            raise _translate_error("batch_get", e) from e

        unprocessed = {
            table: list(entry.get("Keys", []))
            for table, entry in (resp.get("UnprocessedKeys") or {}).items()
        }
        return BatchGetResult(
            responses={table: list(items) for table, items in resp.get("Responses", {}).items()},
            unprocessed_keys=unprocessed,
        )

    def batch_write(self, request: dict[str, list[WriteRequest]]) -> BatchWriteResult:
        count = count_request_entries(request)
        if count > self._config.max_write_batch_size:
            raise StorageBackendError(
                "batch_write",
                f"{count} write requests exceeds the limit of {self._config.max_write_batch_size}",
            )
        request_items = {table: writes for table, writes in request.items() if writes}
        try:
            resp = self._dynamodb.batch_write_item(RequestItems=request_items)
        except (ClientError, BotoCoreError) as e:
            raise _translate_error("batch_write", e) from e

        return BatchWriteResult(
            unprocessed_items={
                table: list(writes)
                for table, writes in (resp.get("UnprocessedItems") or {}).items()
            }
        )

    def describe(self) -> dict[str, Any]:
        try:
            table = self._dynamodb.meta.client.describe_table(TableName=self.table_name)["Table"]
        except (ClientError, BotoCoreError) as e:
            raise _translate_error("describe", e) from e
        return {
            "backend": "dynamodb",
            "table_name": self.table_name,
            "status": table.get("TableStatus"),
            "item_count": table.get("ItemCount"),
            "indexes": [
                idx.get("IndexName") for idx in table.get("GlobalSecondaryIndexes", []) or []
            ],
        }
