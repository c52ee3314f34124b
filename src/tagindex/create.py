"""Record creation: the record item plus one posting entry per tag, in one batch write."""

from __future__ import annotations

import logging
import secrets
import string
from typing import Any, Mapping

from pydantic import ValidationError as PydanticValidationError

from tagindex.async_store import AsyncStoreAdapter
from tagindex.batch import BatchExecutor
from tagindex.config import TagIndexConfig
from tagindex.errors import SaveIncompleteError, ValidationError
from tagindex.keys import posting_key, record_item
from tagindex.storage import TagStoreProtocol, count_request_entries
from tagindex.types import TaskItem, WriteRequest, describe_validation_error

logger = logging.getLogger(__name__)

_ID_ALPHABET = string.digits + string.ascii_lowercase


def new_record_id(length: int = 9) -> str:
    return "".join(secrets.choice(_ID_ALPHABET) for _ in range(length))


class CreateService:
    """Validates, assigns an id to and saves a new record."""

    def __init__(self, store: TagStoreProtocol, config: TagIndexConfig | None = None) -> None:
        self._config = config or TagIndexConfig()
        self._table_name = store.table_name
        self._executor = BatchExecutor(AsyncStoreAdapter(store), self._config)

    async def create(self, item: TaskItem | Mapping[str, Any]) -> TaskItem:
        """Save ``item`` under a fresh id and return the stored record.

        ``item`` may be a ``TaskItem`` or raw field data; either way it is
        validated before anything is written. Any id it carries is replaced.
        """
        data = item.model_dump() if isinstance(item, TaskItem) else dict(item)
        try:
            record = TaskItem.model_validate(data)
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid record: {describe_validation_error(e)}") from e

        record = record.model_copy(update={"id": new_record_id(self._config.id_length)})
        await self._save(record)
        return record

    async def _save(self, item: TaskItem) -> None:
        assert item.id is not None
        writes: list[WriteRequest] = [{"PutRequest": {"Item": record_item(item)}}]
        for tag_name, tag_value in (item.tags or {}).items():
            writes.append({"PutRequest": {"Item": posting_key(tag_name, tag_value, item.id)}})

        response = await self._executor.batch_write_all({self._table_name: writes})
        if response.has_unprocessed:
            raise SaveIncompleteError(item.id, count_request_entries(response.unprocessed_items))
        logger.debug("Saved record %s with %d tag(s)", item.id, len(writes) - 1)
