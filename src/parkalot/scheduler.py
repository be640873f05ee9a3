"""Scheduled refresh of parking availability."""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Awaitable, Callable, Iterable, Optional

from croniter import croniter

from .errors import InferenceError, StoreUnavailable
from .inference.availability import DEFAULT_CONFIDENCE_THRESHOLD, DEFAULT_FREE_CLASSES, count_available
from .inference.base import InferenceAdapter
from .inference.locator import ImageLocator
from .metrics import (
    record_cycle_latency,
    record_detection_confidence,
    record_heartbeat,
    record_location_skip,
    record_location_update,
    record_refresh_cycle,
)
from .store.location_store import LocationStore
from .store.models import LocationRecord

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SkipReason(str, Enum):
    """Why a location kept its previous value during a cycle."""

    IMAGE_NOT_FOUND = "image_not_found"
    INFERENCE_ERROR = "inference_error"
    STORE_UNAVAILABLE = "store_unavailable"
    RECORD_NOT_FOUND = "record_not_found"
    UNEXPECTED_ERROR = "unexpected_error"


@dataclass
class CycleReport:
    """Result of one refresh cycle."""

    started_at: datetime
    finished_at: Optional[datetime] = None
    updated: dict[str, int] = field(default_factory=dict)  # location_id -> free spaces
    skipped: dict[str, SkipReason] = field(default_factory=dict)
    ran: bool = True  # False when skipped because another cycle was running
    error: Optional[str] = None

    @property
    def updated_count(self) -> int:
        return len(self.updated)

    @property
    def skipped_count(self) -> int:
        return len(self.skipped)


class UpdateLoop:
    """
    Drives image lookup, inference, counting and persistence per location.

    A refresh cycle walks all locations strictly one after another.
    Any failure for one location is logged and recorded as a skip; the
    location keeps its previous value and the cycle moves on. Only one
    refresh cycle runs at a time: a trigger that arrives while a cycle
    is in progress is skipped.
    """

    def __init__(
        self,
        store: LocationStore,
        locator: ImageLocator,
        adapter: InferenceAdapter,
        confidence_threshold: float = DEFAULT_CONFIDENCE_THRESHOLD,
        free_classes: Iterable[str] = DEFAULT_FREE_CLASSES,
        inference_timeout: float = 30.0,
        clock: Callable[[], datetime] = utcnow,
    ):
        """
        Initialize the update loop.

        Args:
            store: Location store (read all, write availability)
            locator: Resolves the image for each location
            adapter: Inference backend
            confidence_threshold: Minimum confidence for a free-space detection
            free_classes: Detection classes counted as free spaces
            inference_timeout: Seconds allowed for one inference call
            clock: Source of update timestamps
        """
        self.store = store
        self.locator = locator
        self.adapter = adapter
        self.confidence_threshold = confidence_threshold
        self.free_classes = tuple(free_classes)
        self.inference_timeout = inference_timeout
        self._clock = clock

        self._refresh_lock = asyncio.Lock()
        self._heartbeat_lock = asyncio.Lock()
        self.last_report: Optional[CycleReport] = None

    @property
    def cycle_in_progress(self) -> bool:
        return self._refresh_lock.locked()

    async def run_cycle(self) -> CycleReport:
        """
        Run one refresh cycle over all known locations.

        Returns:
            CycleReport describing which locations were updated or skipped
        """
        if self._refresh_lock.locked():
            logger.warning("Refresh cycle already in progress, skipping this trigger")
            record_refresh_cycle("skipped")
            now = self._clock()
            return CycleReport(started_at=now, finished_at=now, ran=False, error="cycle in progress")

        async with self._refresh_lock:
            report = await self._run_cycle()
            self.last_report = report
            return report

    async def _run_cycle(self) -> CycleReport:
        report = CycleReport(started_at=self._clock())
        start = time.monotonic()
        logger.info("Starting scheduled parking updates")

        try:
            locations = await self.store.find_all()
        except StoreUnavailable as e:
            logger.error(f"Refresh cycle aborted, could not load locations: {e}")
            report.error = str(e)
            report.finished_at = self._clock()
            record_refresh_cycle("failed")
            return report

        logger.info(f"Found {len(locations)} parking lot(s)")

        for record in locations:
            reason = await self._process_location_safely(record, report)
            if reason is not None:
                report.skipped[record.id] = reason
                record_location_skip(reason.value)

        report.finished_at = self._clock()
        record_cycle_latency(time.monotonic() - start)
        record_refresh_cycle("completed")
        logger.info(
            f"Completed scheduled parking updates: {report.updated_count} updated, "
            f"{report.skipped_count} skipped"
        )
        return report

    async def _process_location_safely(
        self,
        record: LocationRecord,
        report: CycleReport,
    ) -> Optional[SkipReason]:
        try:
            return await self._process_location(record, report)
        except Exception:
            logger.exception(f"Unexpected error processing lot {record.id}")
            return SkipReason.UNEXPECTED_ERROR

    async def _process_location(
        self,
        record: LocationRecord,
        report: CycleReport,
    ) -> Optional[SkipReason]:
        """Run locate -> infer -> count -> persist for one location."""
        image = await asyncio.to_thread(self.locator.locate, record.id)
        if image is None:
            logger.warning(f"No image found for lot {record.id}, skipping")
            return SkipReason.IMAGE_NOT_FOUND

        try:
            detections = await asyncio.wait_for(self.adapter.infer(image), self.inference_timeout)
        except asyncio.TimeoutError:
            logger.error(f"Inference timed out after {self.inference_timeout}s for lot {record.id} ({image})")
            return SkipReason.INFERENCE_ERROR
        except InferenceError as e:
            logger.error(f"Inference failed for lot {record.id} ({image}): {e}")
            return SkipReason.INFERENCE_ERROR

        for detection in detections:
            record_detection_confidence(detection.class_name, detection.confidence)

        free_spaces = count_available(detections, self.confidence_threshold, self.free_classes)
        logger.debug(
            f"Lot {record.id}: {len(detections)} detection(s), {free_spaces} free "
            f"(threshold {self.confidence_threshold})"
        )

        if free_spaces > record.total_spaces:
            logger.warning(
                f"Lot {record.id}: detected {free_spaces} free spaces but capacity is {record.total_spaces}"
            )

        try:
            updated = await self.store.update_availability(record.id, free_spaces, self._clock())
        except StoreUnavailable as e:
            logger.error(f"Could not persist availability for lot {record.id}: {e}")
            return SkipReason.STORE_UNAVAILABLE

        if updated is None:
            logger.warning(f"Lot {record.id} disappeared before its update was written")
            return SkipReason.RECORD_NOT_FOUND

        logger.info(f"Lot {record.id}: available {record.available} -> {free_spaces}")
        report.updated[record.id] = free_spaces
        record_location_update(record.id, free_spaces)
        return None

    async def run_heartbeat(self) -> int:
        """
        Touch the last-updated time of every record.

        Returns:
            Number of records touched (0 if skipped or the store is down)
        """
        if self._heartbeat_lock.locked():
            logger.warning("Heartbeat already in progress, skipping this trigger")
            record_heartbeat("skipped")
            return 0

        async with self._heartbeat_lock:
            try:
                touched = await self.store.touch_all(self._clock())
            except StoreUnavailable as e:
                logger.error(f"Heartbeat failed: {e}")
                record_heartbeat("failed")
                return 0

        logger.info(f"Heartbeat touched {touched} parking lot(s)")
        record_heartbeat("completed")
        return touched


async def run_periodic(
    name: str,
    cron: str,
    job: Callable[[], Awaitable[object]],
    now: Callable[[], datetime] = datetime.now,
) -> None:
    """
    Run a job on a cron schedule until cancelled.

    The next fire time is always computed from the current wall clock, so
    ticks that pass while a job is still running are dropped, not queued.

    Args:
        name: Task name used in log messages
        cron: Cron expression (e.g. "*/2 * * * *")
        job: Coroutine function to run on every tick
        now: Wall-clock source
    """
    logger.info(f"Starting {name} task (schedule: {cron})")

    while True:
        current = now()
        next_fire = croniter(cron, current).get_next(datetime)
        await asyncio.sleep(max(0.0, (next_fire - current).total_seconds()))

        try:
            await job()
        except Exception as e:
            logger.error(f"{name} task error: {e}")
