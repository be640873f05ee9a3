"""FastAPI route definitions."""

import logging
from datetime import datetime
from typing import Callable, Optional

from fastapi import APIRouter, HTTPException, Response

from ..aggregation import AggregationQuery
from ..errors import StoreUnavailable
from ..metrics import get_metrics
from ..scheduler import CycleReport, UpdateLoop
from ..store.location_store import LocationStore
from ..store.models import DistanceEntry
from .schemas import (
    AvailableParkingResponse,
    CycleReportResponse,
    HealthResponse,
    ParkingLotResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()

# Dependencies injected at startup
_store: Optional[LocationStore] = None
_update_loop: Optional[UpdateLoop] = None
_aggregation: Optional[AggregationQuery] = None
_refresh_running: Callable[[], bool] = lambda: False
_start_time: datetime = datetime.now()


def init_router(
    store: LocationStore,
    update_loop: UpdateLoop,
    aggregation: AggregationQuery,
    refresh_running: Callable[[], bool] = lambda: False,
) -> None:
    """
    Initialize router with dependencies.

    Args:
        store: Location store owned by the application
        update_loop: Refresh/heartbeat driver
        aggregation: Distance-ranked query
        refresh_running: Reports whether the periodic refresh task is alive
    """
    global _store, _update_loop, _aggregation, _refresh_running, _start_time

    _store = store
    _update_loop = update_loop
    _aggregation = aggregation
    _refresh_running = refresh_running
    _start_time = datetime.now()

    logger.info("API router initialized")


def _report_response(report: CycleReport) -> CycleReportResponse:
    return CycleReportResponse(
        ran=report.ran,
        started_at=report.started_at,
        finished_at=report.finished_at,
        updated=report.updated,
        skipped={k: v.value for k, v in report.skipped.items()},
        error=report.error,
    )


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """
    Health check endpoint.

    Returns basic health information about the service.
    """
    uptime = (datetime.now() - _start_time).total_seconds()

    store_connected = await _store.check_health() if _store else False
    last_report = _update_loop.last_report if _update_loop else None

    return HealthResponse(
        status="healthy" if store_connected else "degraded",
        store_connected=store_connected,
        refresh_running=_refresh_running(),
        cycle_in_progress=_update_loop.cycle_in_progress if _update_loop else False,
        last_cycle_at=last_report.finished_at if last_report else None,
        uptime_seconds=uptime,
    )


@router.get("/parking-lots", response_model=list[ParkingLotResponse])
async def list_parking_lots() -> list[ParkingLotResponse]:
    """Get every parking lot with its current availability."""
    if _store is None:
        raise HTTPException(status_code=503, detail="Service not initialized")

    try:
        records = await _store.find_all()
    except StoreUnavailable as e:
        raise HTTPException(status_code=503, detail=f"Store unavailable: {e}")

    return [ParkingLotResponse.from_record(r) for r in records]


@router.get("/parking-lots/{lot_id}", response_model=ParkingLotResponse)
async def get_parking_lot(lot_id: str) -> ParkingLotResponse:
    """
    Get a single parking lot.

    Args:
        lot_id: The ID of the parking lot to query
    """
    if _store is None:
        raise HTTPException(status_code=503, detail="Service not initialized")

    try:
        records = await _store.find_by_ids([lot_id])
    except StoreUnavailable as e:
        raise HTTPException(status_code=503, detail=f"Store unavailable: {e}")

    record = records.get(lot_id)
    if record is None:
        raise HTTPException(status_code=404, detail=f"Parking lot '{lot_id}' not found")

    return ParkingLotResponse.from_record(record)


@router.post("/available-parking", response_model=AvailableParkingResponse)
async def available_parking(entries: list[DistanceEntry]) -> AvailableParkingResponse:
    """
    Merge a ranked distance list with stored availability.

    The body is the ordered output of a route-distance provider. Results
    keep that order; lots without a stored record are left out. If the
    store can't be reached the response is empty and marked degraded.
    """
    if _aggregation is None:
        raise HTTPException(status_code=503, detail="Service not initialized")

    result = await _aggregation.merge(entries)

    return AvailableParkingResponse(
        results=result.results,
        degraded=result.degraded,
        dropped=result.dropped,
    )


@router.post("/refresh", response_model=CycleReportResponse)
async def trigger_refresh() -> CycleReportResponse:
    """
    Run a refresh cycle now.

    If a cycle is already running this one is skipped and ``ran`` is false.
    """
    if _update_loop is None:
        raise HTTPException(status_code=503, detail="Service not initialized")

    report = await _update_loop.run_cycle()
    return _report_response(report)


@router.get("/metrics")
async def prometheus_metrics() -> Response:
    """
    Prometheus metrics endpoint.

    Returns metrics in Prometheus text format including:
    - parkalot_refresh_cycles_total: Refresh cycles by outcome
    - parkalot_refresh_cycle_latency_seconds: Histogram of cycle latency
    - parkalot_location_updates_total: Successful availability writes
    - parkalot_location_skips_total: Skipped locations by reason
    - parkalot_location_available_spaces: Latest free spaces per location
    - parkalot_detection_confidence: Histogram of detection confidence
    - parkalot_heartbeats_total: Heartbeat runs by outcome
    - parkalot_store_reconnects_total: Store client rebuilds
    - parkalot_aggregation_queries_total: Ranked queries by outcome
    """
    return Response(
        content=get_metrics(),
        media_type="text/plain; version=0.0.4; charset=utf-8",
    )
