"""Recognition domain models."""

from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum


class PredictionSource(str, Enum):
    """Which inference path produced a prediction."""

    LOCAL = "local"
    REMOTE = "remote"
    MERGED = "merged"


@dataclass(frozen=True)
class PortionEstimate:
    """Free-text portion estimate reported by the remote service."""

    description: str
    grams: float | None = None


@dataclass(frozen=True)
class Prediction:
    """Single candidate food identification."""

    label: str
    confidence: float
    source: PredictionSource
    portion_estimate: PortionEstimate | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "confidence", clamp_confidence(self.confidence))

    def with_confidence(self, confidence: float) -> "Prediction":
        """Return a copy with a new (clamped) confidence."""
        return replace(self, confidence=confidence)

    def with_source(self, source: PredictionSource) -> "Prediction":
        """Return a copy tagged with another source."""
        return replace(self, source=source)


@dataclass(frozen=True)
class RecognitionResult:
    """Outcome of one recognition request.

    Predictions are stored as a tuple so a cached result cannot be mutated by
    the caller that received it.
    """

    predictions: tuple[Prediction, ...]
    source_image_ref: str
    timestamp: datetime

    confirmation_threshold = 0.85

    @property
    def top_prediction(self) -> Prediction | None:
        """Return the highest-confidence prediction, if any."""
        return self.predictions[0] if self.predictions else None

    @property
    def needs_user_confirmation(self) -> bool:
        """Return True when the user should confirm or correct the result."""
        top = self.top_prediction
        return top is None or top.confidence < self.confirmation_threshold


@dataclass(frozen=True)
class RecognitionPolicy:
    """Tunable thresholds for the recognition pipeline."""

    local_confidence_threshold: float = 0.85
    agreement_boost: float = 0.10
    agreement_boost_cap: float = 0.95
    enrichment_miss_penalty: float = 0.9
    sanity_min_label_length: int = 2
    adapter_timeout_seconds: float = 20.0
    single_flight: bool = True


def clamp_confidence(value: float) -> float:
    """Clamp a confidence score into [0, 1]."""
    return min(1.0, max(0.0, float(value)))


def sort_by_confidence(predictions: list[Prediction]) -> list[Prediction]:
    """Sort descending by confidence; ties keep their original order."""
    return sorted(predictions, key=lambda prediction: -prediction.confidence)
