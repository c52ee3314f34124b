"""Value types shared by the store, the engine and the CLI."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Annotated, Any

from pydantic import BaseModel, StrictStr, StringConstraints, TypeAdapter, field_validator
from pydantic import ValidationError as PydanticValidationError

Tags = dict[str, str]
Key = dict[str, Any]
Item = dict[str, Any]
WriteRequest = dict[str, Any]

# '#' separates the parts of every store key.
TagName = Annotated[str, StringConstraints(strict=True, min_length=1, pattern=r"^[^#]+$")]
TagMap = dict[TagName, StrictStr]

tag_map_adapter: TypeAdapter[dict[str, str]] = TypeAdapter(TagMap)


def describe_validation_error(exc: PydanticValidationError) -> str:
    """Flatten pydantic's error list into one line per failing field."""
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err["loc"])
        parts.append(f"{loc}: {err['msg']}" if loc else err["msg"])
    return "; ".join(parts)


class TaskItem(BaseModel):
    """A tagged record."""

    name: StrictStr
    description: str | None = None
    tags: TagMap | None = None
    id: str | None = None

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Record name is required")
        return value


@dataclass
class QueryPage:
    """One page of a range query, ascending by sort key."""

    items: list[Item]
    last_evaluated_key: Key | None = None


@dataclass
class BatchGetResult:
    """Items returned by a bulk read, plus keys the store did not service."""

    responses: dict[str, list[Item]] = field(default_factory=dict)
    unprocessed_keys: dict[str, list[Key]] = field(default_factory=dict)

    @property
    def has_unprocessed(self) -> bool:
        return any(self.unprocessed_keys.values())


@dataclass
class BatchWriteResult:
    """Write requests the store did not service."""

    unprocessed_items: dict[str, list[WriteRequest]] = field(default_factory=dict)

    @property
    def has_unprocessed(self) -> bool:
        return any(self.unprocessed_items.values())


@dataclass
class IntersectionResult:
    """Identifiers matching every requested tag, in ascending order."""

    ids: list[str]
    next_continuation: str | None = None


@dataclass
class ListResult:
    """A page of records and the key to resume after it (None when exhausted)."""

    items: list[TaskItem]
    next_pagination_key: str | None = None
