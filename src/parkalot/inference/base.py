"""Detection type and the contract every inference backend implements."""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from ..errors import InferenceError

logger = logging.getLogger(__name__)

ImageRef = Union[Path, bytes]


@dataclass(frozen=True)
class Detection:
    """One object found in a lot image."""

    class_name: str
    confidence: float
    x: float  # Box centre
    y: float
    width: float
    height: float
    class_id: Optional[int] = None

    @property
    def bbox(self) -> tuple[float, float, float, float]:
        """Get bounding box as (x1, y1, x2, y2)."""
        half_w = self.width / 2
        half_h = self.height / 2
        return (self.x - half_w, self.y - half_h, self.x + half_w, self.y + half_h)

    @classmethod
    def from_prediction(cls, data: dict) -> "Detection":
        """Create a Detection from a hosted-inference prediction dict."""
        class_id = data.get("class_id")
        return cls(
            class_name=str(data["class"]),
            confidence=float(data["confidence"]),
            x=float(data["x"]),
            y=float(data["y"]),
            width=float(data["width"]),
            height=float(data["height"]),
            class_id=int(class_id) if class_id is not None else None,
        )


class InferenceAdapter(ABC):
    """
    Turns a lot image into a list of detections.

    Adapters only look at images. Persisting the outcome is the
    update loop's job, so an adapter must never write to the store.
    """

    name: str = "base"

    @abstractmethod
    async def infer(self, image: ImageRef) -> list[Detection]:
        """
        Run detection on an image.

        Args:
            image: Path to an image file, or the encoded image bytes

        Returns:
            Ordered list of detections

        Raises:
            InferenceError: If the image can't be read or the backend fails
        """


async def read_image_bytes(image: ImageRef) -> bytes:
    """Load encoded image bytes, raising InferenceError if unreadable."""
    if isinstance(image, bytes):
        if not image:
            raise InferenceError("Empty image payload")
        return image

    try:
        data = await asyncio.to_thread(Path(image).read_bytes)
    except OSError as e:
        raise InferenceError(f"Cannot read image {image}: {e}") from e

    if not data:
        raise InferenceError(f"Image file is empty: {image}")

    logger.debug(f"Read {len(data)} bytes from {image}")
    return data
