"""Hosted (HTTP) inference backend."""

import base64
import logging
from typing import Optional

import httpx

from ..errors import InferenceError
from .base import Detection, ImageRef, InferenceAdapter, read_image_bytes

logger = logging.getLogger(__name__)


class HostedInferenceAdapter(InferenceAdapter):
    """
    Sends images to a hosted object-detection endpoint.

    The endpoint receives the base64-encoded image as a form body and
    answers with a Roboflow-style payload:
    ``{"predictions": [{"class", "confidence", "x", "y", "width", "height"}, ...]}``.
    """

    name = "hosted"

    def __init__(
        self,
        url: str,
        api_key: str = "",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = url
        self.api_key = api_key
        self.timeout = timeout
        self._transport = transport

    async def infer(self, image: ImageRef) -> list[Detection]:
        data = await read_image_bytes(image)
        params = {"api_key": self.api_key} if self.api_key else None

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.post(
                    self.url,
                    params=params,
                    content=base64.b64encode(data),
                    headers={"Content-Type": "application/x-www-form-urlencoded"},
                )
                resp.raise_for_status()
                payload = resp.json()
        except httpx.HTTPError as exc:
            raise InferenceError(f"Hosted inference request failed: {exc}") from exc
        except ValueError as exc:
            raise InferenceError(f"Hosted inference returned invalid JSON: {exc}") from exc

        try:
            detections = [Detection.from_prediction(p) for p in payload.get("predictions") or []]
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            raise InferenceError(f"Malformed prediction in hosted response: {exc}") from exc

        logger.debug(f"Hosted inference returned {len(detections)} prediction(s)")
        return detections
