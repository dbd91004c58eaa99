"""Recognition orchestrator arbitrating local and remote inference."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import TypeVar

from food_recognizer.adapters.reachability import ReachabilityProbe
from food_recognizer.domain.errors import NetworkError, NoUsablePathError
from food_recognizer.domain.recognition import (
    Prediction,
    RecognitionPolicy,
    RecognitionResult,
)
from food_recognizer.services.cache import ResultCache, utc_now
from food_recognizer.services.fingerprint import image_fingerprint
from food_recognizer.services.local import LocalClassifier
from food_recognizer.services.nutrition import NutritionLookup
from food_recognizer.services.predictions import (
    EnrichmentStep,
    SanityFilter,
    merge_predictions,
)
from food_recognizer.services.vision import RemoteAnalyzer

_T = TypeVar("_T")

_logger = logging.getLogger(__name__)


class RecognitionState(str, Enum):
    """States of a single recognition request."""

    START = "start"
    LOCAL_CLASSIFYING = "local_classifying"
    HIGH_CONFIDENCE_ACCEPTED = "high_confidence_accepted"
    NEEDS_REMOTE = "needs_remote"
    REMOTE_ATTEMPTING = "remote_attempting"
    REMOTE_MERGED = "remote_merged"
    REMOTE_FAILED_FALLBACK = "remote_failed_fallback"
    ENRICHING = "enriching"
    DONE = "done"


@dataclass
class RecognitionOrchestrator:
    """Decide between on-device and remote inference and cache the outcome."""

    local_classifier: LocalClassifier
    remote_analyzer: RemoteAnalyzer
    nutrition_lookup: NutritionLookup
    reachability: ReachabilityProbe
    cache: ResultCache
    policy: RecognitionPolicy = field(default_factory=RecognitionPolicy)
    clock: Callable[[], datetime] = utc_now
    _in_flight: dict[str, "asyncio.Task[RecognitionResult]"] = field(
        default_factory=dict, init=False, repr=False
    )

    async def recognize(self, image_bytes: bytes) -> RecognitionResult:
        """Recognize food in an image.

        Raises NoUsablePathError only when both inference paths fail and the
        cache holds nothing for the image.
        """
        key = await asyncio.to_thread(image_fingerprint, image_bytes)
        self._transition(key, RecognitionState.START)
        cached = await self.cache.get(key)
        if cached is not None:
            _logger.info("Recognition cache hit: key=%s", key)
            return cached
        if not self.policy.single_flight:
            return await self._compute(key, image_bytes)
        return await self._compute_once(key, image_bytes)

    async def clear_cache(self) -> None:
        """Forget every cached recognition result."""
        await self.cache.clear()

    async def _compute_once(self, key: str, image_bytes: bytes) -> RecognitionResult:
        """Share one computation between concurrent misses for the same key."""
        pending = self._in_flight.get(key)
        if pending is not None:
            try:
                return await asyncio.shield(pending)
            except asyncio.CancelledError:
                if not pending.cancelled():
                    raise
                if self._in_flight.get(key) is pending:
                    del self._in_flight[key]
                _logger.debug("Shared recognition was cancelled, retrying: key=%s", key)
            return await self._compute_once(key, image_bytes)

        task = asyncio.ensure_future(self._compute(key, image_bytes))
        self._in_flight[key] = task
        try:
            return await task
        finally:
            if self._in_flight.get(key) is task:
                del self._in_flight[key]

    async def _compute(self, key: str, image_bytes: bytes) -> RecognitionResult:
        self._transition(key, RecognitionState.LOCAL_CLASSIFYING)
        local: list[Prediction] | None = None
        local_error: Exception | None = None
        try:
            local = await self._with_timeout(
                self.local_classifier.classify(image_bytes)
            )
        except Exception as exc:
            _logger.warning("Local classification unavailable: %s", _describe(exc))
            local_error = exc

        if local is not None and self._clears_gate(local):
            self._transition(key, RecognitionState.HIGH_CONFIDENCE_ACCEPTED)
            predictions = local
        else:
            self._transition(key, RecognitionState.NEEDS_REMOTE)
            remote, remote_error = await self._attempt_remote(key, image_bytes)
            if remote is not None:
                self._transition(key, RecognitionState.REMOTE_MERGED)
                if local is None:
                    predictions = remote
                else:
                    predictions = merge_predictions(
                        local,
                        remote,
                        boost=self.policy.agreement_boost,
                        cap=self.policy.agreement_boost_cap,
                    )
            elif local is not None:
                self._transition(key, RecognitionState.REMOTE_FAILED_FALLBACK)
                predictions = local
            else:
                raise NoUsablePathError(local_error, remote_error)

        self._transition(key, RecognitionState.ENRICHING)
        sanity = SanityFilter(min_label_length=self.policy.sanity_min_label_length)
        enrichment = EnrichmentStep(
            lookup=self.nutrition_lookup,
            miss_penalty=self.policy.enrichment_miss_penalty,
        )
        enriched = await enrichment.apply(sanity.apply(predictions))

        result = RecognitionResult(
            predictions=tuple(enriched),
            source_image_ref=key,
            timestamp=self.clock(),
        )
        await self.cache.put(key, result)
        self._transition(key, RecognitionState.DONE)
        return result

    async def _attempt_remote(
        self, key: str, image_bytes: bytes
    ) -> tuple[list[Prediction] | None, Exception | None]:
        """Run the remote path, returning predictions or the failure."""
        try:
            connected = await self._with_timeout(self.reachability.is_connected())
        except Exception as exc:
            _logger.warning("Reachability check failed: %s", _describe(exc))
            connected = False
        if not connected:
            _logger.warning("Network unreachable, skipping remote analysis")
            return None, NetworkError("network unreachable")

        self._transition(key, RecognitionState.REMOTE_ATTEMPTING)
        try:
            remote = await self._with_timeout(self.remote_analyzer.analyze(image_bytes))
        except Exception as exc:
            _logger.warning("Remote analysis failed: %s", _describe(exc))
            return None, exc
        return remote, None

    def _clears_gate(self, local: list[Prediction]) -> bool:
        if not local:
            return False
        top = max(local, key=lambda prediction: prediction.confidence)
        return top.confidence >= self.policy.local_confidence_threshold

    async def _with_timeout(self, awaitable: Awaitable[_T]) -> _T:
        return await asyncio.wait_for(
            awaitable, timeout=self.policy.adapter_timeout_seconds
        )

    def _transition(self, key: str, state: RecognitionState) -> None:
        _logger.debug("Recognition %s -> %s", key, state.value)


def _describe(exc: Exception) -> str:
    if isinstance(exc, TimeoutError):
        return "timed out"
    return f"{type(exc).__name__}: {exc}"
