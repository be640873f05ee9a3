"""Parking lot records and their MongoDB store."""

from .location_store import LocationStore
from .models import Distance, DistanceEntry, LocationRecord, MergedResult

__all__ = ["Distance", "DistanceEntry", "LocationRecord", "LocationStore", "MergedResult"]
