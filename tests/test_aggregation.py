"""AggregationQuery tests."""

import pytest

from parkalot.aggregation import AggregationQuery, AggregationResult
from parkalot.store.models import Distance, DistanceEntry


def entry(location_id, value, text=None):
    return {"locationId": location_id, "distance": {"text": text or f"{value} m", "value": value}}


class TestMerge:
    """merge() behavior"""

    async def test_drops_unknown_location(self, fake_store):
        query = AggregationQuery(fake_store)

        result = await query.merge(
            [entry("1", 1600, "1 mi"), entry("missing", 2000)]
        )

        assert [r.id for r in result.results] == ["1"]
        assert result.results[0].distance == Distance(text="1 mi", value=1600)
        assert result.results[0].available == 3
        assert result.dropped == 1
        assert result.degraded is False

    async def test_preserves_input_order(self, fake_store):
        query = AggregationQuery(fake_store)
        entries = [entry("B7", 100), entry("nope", 150), entry("1", 200), entry("2A", 300)]

        result = await query.merge(entries)

        assert [r.id for r in result.results] == ["B7", "1", "2A"]
        assert [r.distance.value for r in result.results] == [100, 200, 300]

    async def test_duplicates_kept_once_per_entry(self, fake_store):
        query = AggregationQuery(fake_store)

        result = await query.merge([entry("1", 500, "north route"), entry("2A", 600), entry("1", 700, "south route")])

        assert [(r.id, r.distance.text) for r in result.results] == [
            ("1", "north route"),
            ("2A", "600 m"),
            ("1", "south route"),
        ]
        assert fake_store.find_by_ids_calls == [["1", "2A"]]

    async def test_empty_input(self, fake_store):
        result = await AggregationQuery(fake_store).merge([])

        assert result == AggregationResult()
        assert result.results == []
        assert fake_store.find_by_ids_calls == []

    async def test_store_failure_degrades_to_empty(self, fake_store):
        fake_store.fail_find_by_ids = True

        result = await AggregationQuery(fake_store).merge([entry("1", 10)])

        assert result.results == []
        assert result.degraded is True
        assert "find_by_ids" in result.reason

    async def test_accepts_models_and_legacy_key(self, fake_store):
        query = AggregationQuery(fake_store)
        entries = [
            DistanceEntry(location_id="2A", distance=Distance(text="0.2 mi", value=320)),
            {"parkingLotId": "B7", "distance": {"text": "0.4 mi", "value": 640}},
        ]

        result = await query.merge(entries)

        assert [r.id for r in result.results] == ["2A", "B7"]

    @pytest.mark.parametrize(
        "ids",
        [["1", "2A", "B7"], ["x", "B7", "y", "1"], ["2A", "2A", "z"], ["q"]],
    )
    async def test_output_is_subsequence_of_input(self, fake_store, ids):
        entries = [entry(i, n) for n, i in enumerate(ids)]

        result = await AggregationQuery(fake_store).merge(entries)

        positions = [r.distance.value for r in result.results]
        assert positions == sorted(positions)
        assert all(ids[int(p)] == r.id for p, r in zip(positions, result.results))
