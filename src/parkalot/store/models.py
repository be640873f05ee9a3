"""Data models for parking lot records and distance-ranked results."""

from datetime import datetime, timezone
from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator


class LocationRecord(BaseModel):
    """
    Stored state of one parking lot.

    Field aliases match the document layout of the ``parkingLots``
    collection; Python code uses the snake_case names.
    """

    # ParkingID must be stored as a string; lookups filter on it verbatim
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(alias="ParkingID")
    name: Optional[str] = None
    location: str = Field(default="", alias="Location")
    total_spaces: int = Field(default=0, ge=0, alias="TotalSpaces")
    available: int = Field(default=0, ge=0, alias="Available")
    last_updated: Optional[datetime] = Field(default=None, alias="lastUpdated")

    @field_validator("last_updated")
    @classmethod
    def assume_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    @model_validator(mode="after")
    def default_name(self) -> "LocationRecord":
        if not self.name:
            self.name = self.location or f"Parking Lot {self.id}"
        return self


class Distance(BaseModel):
    """Route distance from the caller's destination to a lot."""

    text: str
    value: float  # Meters


class DistanceEntry(BaseModel):
    """One entry of an externally ranked distance list."""

    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)

    location_id: str = Field(validation_alias=AliasChoices("locationId", "parkingLotId", "location_id"))
    distance: Distance


class MergedResult(BaseModel):
    """A parking lot record annotated with its distance."""

    id: str
    name: str
    location: str
    total_spaces: int
    available: int
    last_updated: Optional[datetime] = None
    distance: Distance

    @classmethod
    def from_record(cls, record: LocationRecord, distance: Distance) -> "MergedResult":
        """Attach a distance to a stored record."""
        return cls(
            id=record.id,
            name=record.name,
            location=record.location,
            total_spaces=record.total_spaces,
            available=record.available,
            last_updated=record.last_updated,
            distance=distance,
        )
