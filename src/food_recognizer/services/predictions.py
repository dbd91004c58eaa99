"""Merge, sanity filtering and nutrition enrichment of predictions."""

import logging
from dataclasses import dataclass

from food_recognizer.domain.recognition import (
    Prediction,
    PredictionSource,
    sort_by_confidence,
)
from food_recognizer.services.nutrition import NutritionLookup

_logger = logging.getLogger(__name__)


def labels_agree(first: str, second: str) -> bool:
    """Case-insensitive substring match in either direction."""
    left = first.strip().lower()
    right = second.strip().lower()
    if not left or not right:
        return False
    return left in right or right in left


def merge_predictions(
    local: list[Prediction],
    remote: list[Prediction],
    *,
    boost: float = 0.10,
    cap: float = 0.95,
) -> list[Prediction]:
    """Merge local and remote predictions into one remote-based list.

    A remote prediction corroborated by any local label gains ``boost``,
    never rising above ``cap``. Local predictions without a remote
    counterpart are dropped.
    """
    merged: list[Prediction] = []
    for prediction in remote:
        confidence = prediction.confidence
        if any(labels_agree(prediction.label, other.label) for other in local):
            confidence = min(cap, confidence + boost)
        merged.append(
            prediction.with_source(PredictionSource.MERGED).with_confidence(
                confidence
            )
        )
    return merged


@dataclass(frozen=True)
class SanityFilter:
    """Drop structurally invalid predictions.

    The only rule is a minimum trimmed label length. Other plausibility
    checks belong here as explicit, separately testable rules.
    """

    min_label_length: int = 2

    def is_plausible(self, prediction: Prediction) -> bool:
        return len(prediction.label.strip()) >= self.min_label_length

    def apply(self, predictions: list[Prediction]) -> list[Prediction]:
        kept = [p for p in predictions if self.is_plausible(p)]
        if len(kept) != len(predictions):
            _logger.debug(
                "Sanity filter dropped %s prediction(s)", len(predictions) - len(kept)
            )
        return kept


@dataclass
class EnrichmentStep:
    """Corroborate predictions against the nutrition database."""

    lookup: NutritionLookup
    miss_penalty: float = 0.9

    async def apply(self, predictions: list[Prediction]) -> list[Prediction]:
        """Penalize unmatched labels and re-sort by confidence."""
        enriched = [await self._enrich(prediction) for prediction in predictions]
        return sort_by_confidence(enriched)

    async def _enrich(self, prediction: Prediction) -> Prediction:
        if await self._has_match(prediction.label):
            return prediction
        return prediction.with_confidence(prediction.confidence * self.miss_penalty)

    async def _has_match(self, label: str) -> bool:
        try:
            matches = await self.lookup.search(label.strip(), limit=1)
        except Exception as exc:
            _logger.warning("Nutrition lookup failed for %r: %s", label, exc)
            return False
        return bool(matches)
