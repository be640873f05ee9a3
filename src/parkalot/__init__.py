"""Parkalot: scheduled parking-lot availability refresh and distance-ranked lookups."""

__version__ = "1.0.0"
