"""Build the configured inference adapter."""

import logging

from ..config import InferenceConfig
from .base import InferenceAdapter
from .hosted import HostedInferenceAdapter
from .stub import StubInferenceAdapter

logger = logging.getLogger(__name__)


class InferenceAdapterFactory:
    """
    Creates an InferenceAdapter from configuration.

    Usage:
        adapter = InferenceAdapterFactory.create(config.inference)
    """

    @classmethod
    def create(cls, config: InferenceConfig) -> InferenceAdapter:
        """
        Create the adapter named by ``config.backend``.

        Raises:
            ValueError: If the backend name is unknown
        """
        backend = config.backend.lower()

        if backend == "stub":
            adapter = StubInferenceAdapter(total_spaces=config.stub_total_spaces)
        elif backend == "hosted":
            adapter = HostedInferenceAdapter(
                url=config.hosted_url,
                api_key=config.api_key,
                timeout=config.timeout_seconds,
            )
        elif backend == "yolo":
            # Heavy import, only pulled in when the model backend is used
            from .yolo_detector import YoloInferenceAdapter

            adapter = YoloInferenceAdapter(
                model_path=config.model_path,
                model_confidence=config.model_confidence,
                enhance_low_light=config.enhance_low_light,
            )
        else:
            raise ValueError(f"Unknown inference backend: {config.backend}. Available: stub, hosted, yolo")

        logger.info(f"Using '{adapter.name}' inference backend")
        return adapter
