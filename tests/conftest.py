"""
Pytest configuration

Shared fakes and fixtures for the store, inference backend and records.
"""

from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional
from unittest.mock import AsyncMock, MagicMock

import pytest

from parkalot.errors import InferenceError, StoreUnavailable
from parkalot.inference.base import Detection, InferenceAdapter
from parkalot.store.models import LocationRecord


def make_record(location_id: str, available: int = 0, total: int = 20, **kwargs) -> LocationRecord:
    """Build a LocationRecord with test defaults."""
    return LocationRecord(
        id=location_id,
        location=kwargs.pop("location", f"{location_id} Main St"),
        total_spaces=total,
        available=available,
        **kwargs,
    )


def detection(class_name: str, confidence: float) -> Detection:
    return Detection(class_name=class_name, confidence=confidence, x=10, y=10, width=5, height=5)


class FakeStore:
    """In-memory stand-in for LocationStore."""

    def __init__(self, records: list[LocationRecord]):
        self.records = {r.id: r for r in records}
        self.order = [r.id for r in records]
        self.fail_find_all = False
        self.fail_find_by_ids = False
        self.fail_updates_for: set[str] = set()
        self.fail_touch = False
        self.find_by_ids_calls: list[list[str]] = []
        self.update_calls: list[tuple[str, int, datetime]] = []

    async def find_all(self) -> list[LocationRecord]:
        if self.fail_find_all:
            raise StoreUnavailable("find_all failed: connection refused")
        return [self.records[i] for i in self.order if i in self.records]

    async def update_availability(self, location_id, available, timestamp) -> Optional[LocationRecord]:
        self.update_calls.append((location_id, available, timestamp))
        if location_id in self.fail_updates_for:
            raise StoreUnavailable("update_availability failed: connection reset")
        record = self.records.get(location_id)
        if record is None:
            return None
        updated = record.model_copy(update={"available": available, "last_updated": timestamp})
        self.records[location_id] = updated
        return updated

    async def find_by_ids(self, ids) -> dict[str, LocationRecord]:
        ids = list(ids)
        self.find_by_ids_calls.append(ids)
        if self.fail_find_by_ids:
            raise StoreUnavailable("find_by_ids failed: server selection timeout")
        return {i: self.records[i] for i in ids if i in self.records}

    async def touch_all(self, timestamp) -> int:
        if self.fail_touch:
            raise StoreUnavailable("touch_all failed")
        for key, record in self.records.items():
            self.records[key] = record.model_copy(update={"last_updated": timestamp})
        return len(self.records)

    async def check_health(self) -> bool:
        return not self.fail_find_all

    async def close(self) -> None:
        pass


class FakeAdapter(InferenceAdapter):
    """Returns canned detections keyed by image file name."""

    name = "fake"

    def __init__(self, detections_by_name: dict[str, list[Detection]], failing: set[str] = frozenset()):
        self.detections_by_name = detections_by_name
        self.failing = set(failing)
        self.calls: list[Path] = []

    async def infer(self, image):
        self.calls.append(image)
        name = Path(image).name
        if name in self.failing:
            raise InferenceError(f"backend unreachable for {name}")
        return list(self.detections_by_name.get(name, []))


class StepClock:
    """Clock that advances one second per call."""

    def __init__(self, start: Optional[datetime] = None):
        self.current = start or datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        self.current += timedelta(seconds=1)
        return self.current


def make_mongo_client(collection=None, ping_side_effect=None):
    """Build a MagicMock shaped like AsyncMongoClient."""
    client = MagicMock()
    client.admin.command = AsyncMock(side_effect=ping_side_effect, return_value={"ok": 1})
    client.close = AsyncMock()
    database = MagicMock()
    database.__getitem__.return_value = collection if collection is not None else make_collection()
    client.__getitem__.return_value = database
    return client


def make_collection(docs=None, find_side_effect=None):
    """Build a MagicMock shaped like an AsyncCollection."""
    collection = MagicMock()
    cursor = MagicMock()
    cursor.to_list = AsyncMock(return_value=list(docs or []), side_effect=find_side_effect)
    collection.find.return_value = cursor
    collection.find_one_and_update = AsyncMock(return_value=None)
    collection.update_many = AsyncMock(return_value=MagicMock(modified_count=0))
    return collection


@pytest.fixture
def records():
    return [make_record("1", available=3), make_record("2A"), make_record("B7", available=5)]


@pytest.fixture
def fake_store(records):
    return FakeStore(records)


@pytest.fixture
def step_clock():
    return StepClock()
