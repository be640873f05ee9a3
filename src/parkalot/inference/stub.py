"""Deterministic inference backend for development and tests."""

import hashlib
import logging
import random

from .base import Detection, ImageRef, InferenceAdapter, read_image_bytes

logger = logging.getLogger(__name__)


class StubInferenceAdapter(InferenceAdapter):
    """
    Fake parking-space detector.

    Produces one detection per space, each either "empty" or "occupied",
    laid out on a grid. The pseudo-random choices are seeded from the
    image contents, so the same image always yields the same detections.
    """

    name = "stub"

    def __init__(self, total_spaces: int = 20, columns: int = 5, cell_size: int = 100):
        self.total_spaces = total_spaces
        self.columns = max(1, columns)
        self.cell_size = cell_size

    async def infer(self, image: ImageRef) -> list[Detection]:
        data = await read_image_bytes(image)

        seed = int.from_bytes(hashlib.sha256(data).digest()[:8], "big")
        rng = random.Random(seed)

        detections = []
        for i in range(self.total_spaces):
            row, col = divmod(i, self.columns)
            is_empty = rng.random() < 0.5
            detections.append(
                Detection(
                    class_name="empty" if is_empty else "occupied",
                    confidence=round(rng.uniform(0.3, 1.0), 3),
                    x=col * self.cell_size + self.cell_size / 2,
                    y=row * self.cell_size + self.cell_size / 2,
                    width=self.cell_size * 0.8,
                    height=self.cell_size * 0.9,
                    class_id=0 if is_empty else 1,
                )
            )

        logger.debug(f"Stub inference produced {len(detections)} detection(s)")
        return detections
