"""On-device classification service."""

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Protocol

from food_recognizer.domain.errors import (
    ClassificationFailedError,
    ModelUnavailableError,
    RecognitionAdapterError,
)
from food_recognizer.domain.recognition import (
    Prediction,
    PredictionSource,
    sort_by_confidence,
)

_logger = logging.getLogger(__name__)


class LocalModel(Protocol):
    """Interface for a pre-loaded on-device food classifier."""

    async def predict(self, image_bytes: bytes) -> Mapping[str, float]:
        """Return raw label scores for an image."""


class LocalClassifier(Protocol):
    """Interface consumed by the orchestrator for the local path."""

    async def classify(self, image_bytes: bytes) -> list[Prediction]:
        """Return local predictions sorted by descending confidence."""


@dataclass
class UnavailableLocalModel(LocalModel):
    """Placeholder model used when no on-device model is installed."""

    reason: str = "no on-device model configured"

    async def predict(self, image_bytes: bytes) -> Mapping[str, float]:
        raise ModelUnavailableError(self.reason)


@dataclass
class LocalClassifierService(LocalClassifier):
    """Turn raw on-device model scores into ranked local predictions."""

    model: LocalModel
    top_k: int = 5

    async def classify(self, image_bytes: bytes) -> list[Prediction]:
        """Classify an image and keep the ``top_k`` best labels."""
        try:
            scores = await self.model.predict(image_bytes)
        except RecognitionAdapterError:
            raise
        except Exception as exc:
            raise ClassificationFailedError(str(exc)) from exc

        predictions = [
            Prediction(
                label=label,
                confidence=score,
                source=PredictionSource.LOCAL,
            )
            for label, score in scores.items()
        ]
        ranked = sort_by_confidence(predictions)[: self.top_k]
        _logger.debug(
            "Local classification: %s",
            [(prediction.label, prediction.confidence) for prediction in ranked],
        )
        return ranked
