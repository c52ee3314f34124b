"""Tests for the leapfrog tag intersection."""

from __future__ import annotations

import random
import threading
from typing import Any

import pytest

from tagindex.async_store import AsyncStoreAdapter
from tagindex.errors import ValidationError
from tagindex.intersect import Intersector
from tests.conftest import RecordingStore, seed_postings


def _intersector(store, config) -> Intersector:
    return Intersector(AsyncStoreAdapter(store), config)


async def _collect_all(intersector: Intersector, tags: dict[str, str], page: int) -> list[str]:
    out: list[str] = []
    continuation = None
    for _ in range(10_000):
        result = await intersector.intersect(tags, continuation, page)
        assert len(result.ids) <= page
        out.extend(result.ids)
        if result.next_continuation is None:
            return out
        assert result.next_continuation == result.ids[-1]
        continuation = result.next_continuation
    raise AssertionError("pagination did not terminate")


class TestScenario:
    @pytest.mark.asyncio
    async def test_project_and_priority(self, store, config):
        seed_postings(
            store,
            {
                ("project", "x"): ["001", "003", "005", "009"],
                ("priority", "high"): ["001", "005", "009", "013"],
            },
        )
        result = await _intersector(store, config).intersect(
            {"project": "x", "priority": "high"}, None, 20
        )
        assert result.ids == ["001", "005", "009"]
        assert result.next_continuation is None

    @pytest.mark.asyncio
    async def test_full_page_returns_last_id_as_continuation(self, store, config):
        seed_postings(
            store,
            {
                ("project", "x"): ["001", "003", "005", "009"],
                ("priority", "high"): ["001", "005", "009", "013"],
            },
        )
        intersector = _intersector(store, config)
        first = await intersector.intersect({"project": "x", "priority": "high"}, None, 2)
        assert first.ids == ["001", "005"]
        assert first.next_continuation == "005"

        second = await intersector.intersect(
            {"project": "x", "priority": "high"}, first.next_continuation, 2
        )
        assert second.ids == ["009"]
        assert second.next_continuation is None

    @pytest.mark.asyncio
    async def test_three_tags(self, store, config):
        seed_postings(
            store,
            {
                ("a", "1"): ["01", "02", "04", "07", "08", "10"],
                ("b", "2"): ["02", "03", "04", "08", "10", "11"],
                ("c", "3"): ["00", "04", "05", "08", "09", "11"],
            },
        )
        result = await _intersector(store, config).intersect(
            {"a": "1", "b": "2", "c": "3"}, None, 20
        )
        assert result.ids == ["04", "08"]
        assert result.next_continuation is None

    @pytest.mark.asyncio
    async def test_other_values_of_same_tag_name_are_ignored(self, store, config):
        seed_postings(
            store,
            {
                ("project", "x"): ["001", "002"],
                ("project", "xy"): ["003"],
                ("priority", "high"): ["001", "002", "003"],
            },
        )
        result = await _intersector(store, config).intersect(
            {"project": "x", "priority": "high"}, None, 20
        )
        assert result.ids == ["001", "002"]


class TestShortCircuit:
    @pytest.mark.asyncio
    async def test_empty_posting_list_returns_nothing(self, recording_store, config):
        seed_postings(recording_store.inner, {("project", "x"): [f"{i:03d}" for i in range(50)]})
        result = await _intersector(recording_store, config).intersect(
            {"project": "x", "priority": "missing"}, None, 5
        )
        assert result.ids == []
        assert result.next_continuation is None
        # Only the concurrent first-page fetches were issued.
        assert len(recording_store.queries) == 2

    @pytest.mark.asyncio
    async def test_continuation_past_end_returns_nothing(self, store, config):
        seed_postings(store, {("a", "1"): ["1", "2"], ("b", "2"): ["1", "2"]})
        result = await _intersector(store, config).intersect({"a": "1", "b": "2"}, "2", 5)
        assert result.ids == []
        assert result.next_continuation is None

    @pytest.mark.asyncio
    async def test_disjoint_lists(self, store, config):
        seed_postings(store, {("a", "1"): ["1", "3", "5"], ("b", "2"): ["2", "4", "6"]})
        result = await _intersector(store, config).intersect({"a": "1", "b": "2"}, None, 5)
        assert result.ids == []
        assert result.next_continuation is None


class BarrierStore(RecordingStore):
    """Holds the first ``parties`` queries until all of them are in flight at once."""

    def __init__(self, inner, parties: int) -> None:
        super().__init__(inner)
        self.parties = parties
        self.barrier = threading.Barrier(parties, timeout=5)
        self._lock = threading.Lock()
        self._waiting = 0

    def query(self, partition_key: str, **kwargs: Any):
        with self._lock:
            hold = self._waiting < self.parties
            self._waiting += 1
        if hold:
            self.barrier.wait()
        return super().query(partition_key, **kwargs)


class TestFirstPages:
    @pytest.mark.asyncio
    async def test_first_pages_are_fetched_concurrently(self, store, config):
        seed_postings(
            store,
            {
                ("a", "1"): ["01", "02", "03"],
                ("b", "1"): ["02", "03"],
                ("c", "1"): ["03", "04"],
            },
        )
        gated = BarrierStore(store, parties=3)

        result = await _intersector(gated, config).intersect({"a": "1", "b": "1", "c": "1"})

        assert result.ids == ["03"]
        assert not gated.barrier.broken
        assert len(gated.queries) == 3


class TestSingleTag:
    @pytest.mark.asyncio
    async def test_single_tag_is_plain_pagination(self, store, config):
        ids = [f"{i:03d}" for i in range(7)]
        seed_postings(store, {("project", "x"): ids})
        intersector = _intersector(store, config)

        first = await intersector.intersect({"project": "x"}, None, 3)
        assert first.ids == ids[:3]
        assert first.next_continuation == ids[2]

        assert await _collect_all(intersector, {"project": "x"}, 3) == ids


class TestPaging:
    @pytest.mark.asyncio
    async def test_refills_pages_across_boundaries(self, recording_store, config):
        evens = [f"{i:04d}" for i in range(0, 200, 2)]
        threes = [f"{i:04d}" for i in range(0, 200, 3)]
        seed_postings(recording_store.inner, {("even", "y"): evens, ("three", "y"): threes})

        result = await _intersector(recording_store, config).intersect(
            {"even": "y", "three": "y"}, None, 4
        )
        assert result.ids == ["0000", "0006", "0012", "0018"]
        assert result.next_continuation == "0018"
        assert len(recording_store.queries) > 2
        assert all(q["limit"] == 4 for q in recording_store.queries)

    @pytest.mark.asyncio
    async def test_continuation_resumes_strictly_after(self, recording_store, config):
        seed_postings(recording_store.inner, {("a", "1"): ["1", "2", "3"], ("b", "2"): ["2", "3"]})
        result = await _intersector(recording_store, config).intersect(
            {"a": "1", "b": "2"}, "2", 5
        )
        assert result.ids == ["3"]
        start_keys = [q["exclusive_start_key"] for q in recording_store.queries[:2]]
        assert {k["sk"] for k in start_keys} == {"1#task#2", "2#task#2"}

    @pytest.mark.parametrize("page", [1, 2, 3, 5, 8])
    @pytest.mark.asyncio
    async def test_pagination_matches_unbounded_intersection(self, store, config, page):
        rng = random.Random(page)
        universe = [f"{i:05d}" for i in range(300)]
        lists = {
            (f"t{n}", "v"): sorted(rng.sample(universe, rng.randint(120, 260))) for n in range(3)
        }
        seed_postings(store, lists)
        tags = {name: value for (name, value) in lists}
        expected = set.intersection(*(set(ids) for ids in lists.values()))
        intersector = _intersector(store, config)

        assert await _collect_all(intersector, tags, page) == sorted(expected)

    @pytest.mark.parametrize("seed", range(6))
    @pytest.mark.asyncio
    async def test_matches_set_intersection(self, store, config, seed):
        rng = random.Random(seed)
        universe = [f"{i:05d}" for i in range(400)]
        tag_count = rng.randint(2, 4)
        lists = {
            (f"tag{n}", "v"): sorted(rng.sample(universe, rng.randint(60, 300)))
            for n in range(tag_count)
        }
        seed_postings(store, lists)
        tags = {name: value for (name, value) in lists}
        expected = sorted(set.intersection(*(set(ids) for ids in lists.values())))
        intersector = _intersector(store, config)

        unbounded = await intersector.intersect(tags, None, 10_000)
        assert unbounded.ids == expected
        assert unbounded.next_continuation is None
        assert await _collect_all(intersector, tags, rng.randint(1, 7)) == expected


class TestValidation:
    @pytest.mark.asyncio
    async def test_requires_tags(self, store, config):
        with pytest.raises(ValidationError):
            await _intersector(store, config).intersect({}, None, 5)

    @pytest.mark.parametrize("limit", [0, -1, "5", 2.5, True])
    @pytest.mark.asyncio
    async def test_rejects_bad_limit(self, store, config, limit):
        with pytest.raises(ValidationError):
            await _intersector(store, config).intersect({"a": "1"}, None, limit)

    @pytest.mark.asyncio
    async def test_rejects_hash_in_tag_name(self, store, config):
        with pytest.raises(ValidationError):
            await _intersector(store, config).intersect({"a#b": "1"}, None, 5)

    @pytest.mark.asyncio
    async def test_default_limit_from_config(self, store, config):
        config.default_list_limit = 2
        seed_postings(store, {("a", "1"): ["1", "2", "3"]})
        result = await _intersector(store, config).intersect({"a": "1"})
        assert result.ids == ["1", "2"]
        assert result.next_continuation == "2"
