"""Reduce a detection list to a free-space count."""

from typing import Iterable, Optional

from .base import Detection

# Default confidence a detection needs before it counts as a free space
DEFAULT_CONFIDENCE_THRESHOLD = 0.5

# Class labels parking-space models use for an unoccupied space
DEFAULT_FREE_CLASSES = ("empty", "free", "space-empty")


def count_available(
    detections: Optional[Iterable[Detection]],
    confidence_threshold: float = DEFAULT_CONFIDENCE_THRESHOLD,
    free_classes: Iterable[str] = DEFAULT_FREE_CLASSES,
) -> int:
    """
    Count detections that represent a free parking space.

    Args:
        detections: Detections from an inference backend (None is treated as empty)
        confidence_threshold: Minimum confidence for a detection to count
        free_classes: Class labels (case-insensitive) meaning "free"

    Returns:
        Number of free spaces, never negative
    """
    if not detections:
        return 0

    free = {c.lower() for c in free_classes}

    return sum(
        1
        for d in detections
        if d.class_name.lower() in free and d.confidence >= confidence_threshold
    )
