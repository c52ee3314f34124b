"""Single-table key layout for records and tag posting entries.

Records live at ``pk = sk = "task#<id>"`` and carry ``siKey1 = "task"`` so the
list index can enumerate them. Each (tag, record) pairing is a posting entry
at ``pk = "tag#<name>"``, ``sk = "<value>#task#<id>"``; a prefix range query on
``"<value>#task#"`` yields the posting list ascending by id.
"""

from __future__ import annotations

from typing import Any

from pydantic import ValidationError as PydanticValidationError

from tagindex.errors import ValidationError
from tagindex.types import Item, Key, TaskItem, describe_validation_error, tag_map_adapter

RECORD_PREFIX = "task#"
TAG_PREFIX = "tag#"
RECORD_TYPE = "task"
_TAG_ID_SEPARATOR = "#task#"


def record_key(record_id: str) -> Key:
    key = f"{RECORD_PREFIX}{record_id}"
    return {"pk": key, "sk": key}


def record_list_start_key(record_id: str) -> Key:
    """Exclusive start key on the list index that resumes after ``record_id``."""
    key = record_key(record_id)
    key["siKey1"] = RECORD_TYPE
    return key


def record_id_from_key(key: Key) -> str:
    return str(key["pk"]).split("#", 1)[1]


def tag_partition(tag_name: str) -> str:
    return f"{TAG_PREFIX}{tag_name}"


def tag_sort_prefix(tag_value: str) -> str:
    return f"{tag_value}{_TAG_ID_SEPARATOR}"


def posting_key(tag_name: str, tag_value: str, record_id: str) -> Key:
    return {"pk": tag_partition(tag_name), "sk": f"{tag_sort_prefix(tag_value)}{record_id}"}


def record_id_from_sort_key(sort_key: str) -> str:
    """Extract the record id from a posting entry sort key."""
    _, sep, record_id = sort_key.rpartition(_TAG_ID_SEPARATOR)
    if not sep:
        raise ValueError(f"Not a posting sort key: {sort_key!r}")
    return record_id


def validate_tags(tags: dict[str, Any]) -> dict[str, str]:
    """Check tag names and values; names are non-empty, '#'-free strings, values are strings."""
    try:
        return tag_map_adapter.validate_python(tags)
    except PydanticValidationError as e:
        raise ValidationError(f"Invalid tags: {describe_validation_error(e)}") from e


def record_item(item: TaskItem) -> Item:
    """Build the stored record item for ``item`` (which must carry an id)."""
    assert item.id is not None
    out: Item = record_key(item.id)
    out["siKey1"] = RECORD_TYPE
    out.update(item.model_dump(exclude={"id"}, exclude_none=True))
    if not item.tags:
        out.pop("tags", None)
    return out


def item_to_record(attrs: Item) -> TaskItem:
    return TaskItem.model_validate(
        {
            "id": record_id_from_key(attrs),
            "name": attrs.get("name"),
            "description": attrs.get("description"),
            "tags": dict(attrs["tags"]) if attrs.get("tags") else None,
        }
    )
