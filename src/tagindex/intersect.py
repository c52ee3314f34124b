"""Leapfrog merge-join over N ascending posting lists.

Each comparison either finds an id present in every list or discards one
candidate from the stream that is behind, so the work done is bounded by the
advance steps actually taken. Between two matches the worst case scans the
least selective posting list.
"""

from __future__ import annotations

import asyncio
import enum
import logging
from typing import Mapping

from tagindex.async_store import AsyncStoreAdapter
from tagindex.config import TagIndexConfig
from tagindex.cursor import PostingListCursor
from tagindex.errors import ValidationError
from tagindex.keys import validate_tags
from tagindex.types import IntersectionResult

logger = logging.getLogger(__name__)


class _State(enum.Enum):
    COMPARE = "compare"
    MATCHED = "matched"
    DONE = "done"


def validate_limit(limit: object) -> int:
    if isinstance(limit, bool) or not isinstance(limit, int):
        raise ValidationError(f"Limit must be an integer, got {limit!r}")
    if limit <= 0:
        raise ValidationError(f"Limit must be positive, got {limit}")
    return limit


class Intersector:
    """Produces the ids carrying all requested tags, resumable by continuation id."""

    def __init__(self, store: AsyncStoreAdapter, config: TagIndexConfig | None = None) -> None:
        self._store = store
        self._config = config or TagIndexConfig()

    async def intersect(
        self,
        tags: Mapping[str, str],
        continuation: str | None = None,
        limit: int | None = None,
    ) -> IntersectionResult:
        """Return up to ``limit`` ids common to every tag's posting list.

        Ids are ascending and strictly greater than ``continuation``. The
        returned continuation is the last id when the page is full, and None
        when the intersection ran out first.
        """
        if not tags:
            raise ValidationError("At least one tag is required for an intersection")
        validate_tags(dict(tags))
        limit = validate_limit(self._config.default_list_limit if limit is None else limit)

        cursors = [
            PostingListCursor(self._store, name, value, page_size=limit)
            for name, value in tags.items()
        ]
        first_pages = await asyncio.gather(*(c.open(start_after=continuation) for c in cursors))
        for cursor, page in zip(cursors, first_pages):
            if not page:
                logger.debug(
                    "Tag %s=%s has no entries after %s; intersection is empty",
                    cursor.tag_name,
                    cursor.tag_value,
                    continuation,
                )
                return IntersectionResult(ids=[])

        matched = await self._merge(cursors, limit)

        next_continuation = matched[-1] if len(matched) == limit else None
        logger.debug(
            "Intersected %d tag(s): %d match(es), %d page fetch(es), next=%s",
            len(cursors),
            len(matched),
            sum(c.pages_fetched for c in cursors),
            next_continuation,
        )
        return IntersectionResult(ids=matched, next_continuation=next_continuation)

    @staticmethod
    async def _merge(cursors: list[PostingListCursor], limit: int) -> list[str]:
        """Run the COMPARE/MATCHED state machine until ``limit`` matches or exhaustion.

        COMPARE(i) checks cursor i against cursor i+1. Equal ids move the
        comparison down the chain; otherwise the smaller side advances and the
        chain restarts at 0. Reaching the last cursor means every adjacent pair
        agreed, so its id is in every list.
        """
        matched: list[str] = []
        last = len(cursors) - 1
        state = _State.COMPARE
        i = 0
        current: str | None = None

        while state is not _State.DONE:
            if state is _State.MATCHED:
                assert current is not None
                matched.append(current)
                for cursor in cursors:
                    cursor.advance()
                i = 0
                state = _State.DONE if len(matched) >= limit else _State.COMPARE
                continue

            current = await cursors[i].peek()
            if current is None:
                state = _State.DONE
                continue
            if i == last:
                state = _State.MATCHED
                continue

            following = await cursors[i + 1].peek()
            if following is None:
                state = _State.DONE
            elif current == following:
                i += 1
            elif current < following:
                cursors[i].advance()
                i = 0
            else:
                cursors[i + 1].advance()
                i = 0

        return matched
