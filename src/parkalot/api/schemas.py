"""API request and response schemas."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from ..store.models import LocationRecord, MergedResult


class ParkingLotResponse(BaseModel):
    """Response schema for a single parking lot."""

    id: str
    name: str
    location: str
    total_spaces: int
    available: int
    last_updated: Optional[datetime] = None

    @classmethod
    def from_record(cls, record: LocationRecord) -> "ParkingLotResponse":
        return cls(
            id=record.id,
            name=record.name,
            location=record.location,
            total_spaces=record.total_spaces,
            available=record.available,
            last_updated=record.last_updated,
        )


class AvailableParkingResponse(BaseModel):
    """Distance-ranked parking lots; empty and degraded if the store is down."""

    results: list[MergedResult]
    degraded: bool
    dropped: int


class CycleReportResponse(BaseModel):
    """Summary of a refresh cycle."""

    ran: bool
    started_at: datetime
    finished_at: Optional[datetime] = None
    updated: dict[str, int]
    skipped: dict[str, str]
    error: Optional[str] = None


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    store_connected: bool
    refresh_running: bool
    cycle_in_progress: bool
    last_cycle_at: Optional[datetime] = None
    uptime_seconds: float
