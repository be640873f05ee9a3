"""Image resolution, inference backends and availability counting."""

from .availability import DEFAULT_CONFIDENCE_THRESHOLD, count_available
from .base import Detection, ImageRef, InferenceAdapter
from .factory import InferenceAdapterFactory
from .hosted import HostedInferenceAdapter
from .locator import ImageLocator
from .stub import StubInferenceAdapter

__all__ = [
    "DEFAULT_CONFIDENCE_THRESHOLD",
    "Detection",
    "HostedInferenceAdapter",
    "ImageLocator",
    "ImageRef",
    "InferenceAdapter",
    "InferenceAdapterFactory",
    "StubInferenceAdapter",
    "count_available",
]
