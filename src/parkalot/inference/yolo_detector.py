"""YOLO-based parking space detection."""

import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Optional

import cv2
import numpy as np
from ultralytics import YOLO

from ..errors import InferenceError
from .base import Detection, ImageRef, InferenceAdapter, read_image_bytes

logger = logging.getLogger(__name__)


class YoloInferenceAdapter(InferenceAdapter):
    """
    Parking space detector backed by an ultralytics YOLO model.

    The model is expected to be trained on parking-space classes
    (for example "empty" and "occupied"). Every detected class is
    returned; deciding which ones count as free is left to the
    availability computer. Includes low-light image enhancement for
    better night detection.
    """

    name = "yolo"

    def __init__(
        self,
        model_path: str,
        model_confidence: float = 0.25,
        device: Optional[str] = None,
        enhance_low_light: bool = True,
    ):
        """
        Initialize the detector.

        Args:
            model_path: Path to YOLO model weights
            model_confidence: Minimum confidence the model itself reports
            device: Device to run on ('cpu', 'cuda', or None for auto)
            enhance_low_light: Apply CLAHE enhancement for better night detection
        """
        logger.info(f"Loading YOLO model: {model_path}")
        self.model = YOLO(model_path)
        self.model_confidence = model_confidence
        self.device = device
        self.enhance_low_light = enhance_low_light

        # CLAHE for low-light enhancement
        self.clahe = cv2.createCLAHE(clipLimit=2.0, tileGridSize=(8, 8))

        # Single worker: model runs never overlap, even past a caller timeout
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="yolo")

        logger.info(f"YOLO model loaded successfully (low-light enhancement: {enhance_low_light})")

    def _enhance_image(self, image: np.ndarray) -> np.ndarray:
        """Apply CLAHE to the luminance channel of a BGR image."""
        lab = cv2.cvtColor(image, cv2.COLOR_BGR2LAB)
        l, a, b = cv2.split(lab)
        l_enhanced = self.clahe.apply(l)
        return cv2.cvtColor(cv2.merge([l_enhanced, a, b]), cv2.COLOR_LAB2BGR)

    def _is_low_light(self, image: np.ndarray, threshold: int = 80) -> bool:
        """Check if image is low-light based on average brightness (0-255)."""
        gray = cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)
        return np.mean(gray) < threshold

    def detect_spaces(self, image: np.ndarray) -> list[Detection]:
        """
        Detect parking spaces in an image.

        Args:
            image: BGR image as numpy array (OpenCV format)

        Returns:
            List of Detection objects, centre-based boxes
        """
        processed_image = image
        if self.enhance_low_light and self._is_low_light(image):
            logger.debug("Low-light detected, applying image enhancement")
            processed_image = self._enhance_image(image)

        results = self.model(
            processed_image,
            conf=self.model_confidence,
            device=self.device,
            verbose=False,
        )[0]

        detections = []
        for box in results.boxes:
            class_id = int(box.cls[0])
            x, y, w, h = (float(v) for v in box.xywh[0])
            detections.append(
                Detection(
                    class_name=str(results.names[class_id]),
                    confidence=float(box.conf[0]),
                    x=x,
                    y=y,
                    width=w,
                    height=h,
                    class_id=class_id,
                )
            )

        logger.debug(f"Found {len(detections)} space detection(s)")
        return detections

    def _detect_from_bytes(self, image_bytes: bytes) -> list[Detection]:
        nparr = np.frombuffer(image_bytes, np.uint8)
        image = cv2.imdecode(nparr, cv2.IMREAD_COLOR)

        if image is None:
            raise InferenceError("Failed to decode image bytes")

        return self.detect_spaces(image)

    async def infer(self, image: ImageRef) -> list[Detection]:
        image_bytes = await read_image_bytes(image)

        try:
            loop = asyncio.get_running_loop()
            return await loop.run_in_executor(self._executor, self._detect_from_bytes, image_bytes)
        except InferenceError:
            raise
        except Exception as e:
            raise InferenceError(f"YOLO inference failed: {e}") from e
