"""Remote vision analysis service using LLMs."""

import base64
import logging
from dataclasses import dataclass
from typing import Protocol

from pydantic import ValidationError

from food_recognizer.domain.errors import (
    InvalidImageError,
    NetworkError,
    ParseError,
    RecognitionAdapterError,
)
from food_recognizer.domain.recognition import (
    PortionEstimate,
    Prediction,
    PredictionSource,
)
from food_recognizer.domain.vision import ConfidenceTier, VisionExtract, VisionItem

MAX_IMAGE_BYTES = 10 * 1024 * 1024

TIER_CONFIDENCE: dict[ConfidenceTier, float] = {
    "high": 0.9,
    "medium": 0.7,
    "low": 0.5,
}
UNSPECIFIED_TIER_CONFIDENCE = 0.6

VISION_SCHEMA: dict[str, object] = {
    "type": "object",
    "properties": {
        "items": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "label": {"type": "string"},
                    "confidence_tier": {
                        "anyOf": [
                            {"type": "string", "enum": ["high", "medium", "low"]},
                            {"type": "null"},
                        ]
                    },
                    "portion_description": {
                        "anyOf": [{"type": "string"}, {"type": "null"}]
                    },
                    "estimated_grams": {
                        "anyOf": [{"type": "number", "minimum": 0}, {"type": "null"}]
                    },
                },
                "required": [
                    "label",
                    "confidence_tier",
                    "portion_description",
                    "estimated_grams",
                ],
                "additionalProperties": False,
            },
        }
    },
    "required": ["items"],
    "additionalProperties": False,
}

VISION_PROMPT = (
    "Identify all food items visible in the image. "
    "Return each item with a specific, short food name, "
    "a confidence tier (high, medium or low), "
    "a short portion description such as '1 cup' or '1 medium', "
    "and an estimated weight in grams if visible. "
    "If no food is detected, return an empty items list."
)

_logger = logging.getLogger(__name__)


class VisionClient(Protocol):
    """Interface for LLM vision extraction."""

    async def extract(  # noqa: PLR0913
        self,
        *,
        model: str,
        reasoning_effort: str | None,
        store: bool,
        image_data_url: str,
        schema: dict[str, object],
        prompt: str,
    ) -> dict[str, object]:
        """Return structured vision extraction data."""


class RemoteAnalyzer(Protocol):
    """Interface consumed by the orchestrator for the remote path."""

    async def analyze(self, image_bytes: bytes) -> list[Prediction]:
        """Return remote predictions for an image."""


@dataclass
class RemoteVisionService(RemoteAnalyzer):
    """Service that prepares vision prompts and validates results."""

    client: VisionClient
    model: str
    reasoning_effort: str | None
    store: bool

    async def analyze(self, image_bytes: bytes) -> list[Prediction]:
        """Analyze food items in an image via the configured client."""
        data_url = _to_data_url(image_bytes)
        try:
            raw = await self.client.extract(
                model=self.model,
                reasoning_effort=self.reasoning_effort,
                store=self.store,
                image_data_url=data_url,
                schema=VISION_SCHEMA,
                prompt=VISION_PROMPT,
            )
        except RecognitionAdapterError:
            raise
        except Exception as exc:
            raise NetworkError(f"{self.model}: {exc}") from exc

        try:
            extract = VisionExtract.model_validate(raw)
        except ValidationError as exc:
            raise ParseError(f"{self.model}: invalid vision payload") from exc
        return [_to_prediction(item) for item in extract.items]


@dataclass
class FallbackRemoteAnalyzer(RemoteAnalyzer):
    """Try each remote analyzer in order and return the first success."""

    analyzers: list[RemoteAnalyzer]

    async def analyze(self, image_bytes: bytes) -> list[Prediction]:
        """Analyze with the first analyzer that succeeds."""
        if not self.analyzers:
            raise NetworkError("No remote analyzer configured")
        last_error: Exception | None = None
        for analyzer in self.analyzers:
            try:
                return await analyzer.analyze(image_bytes)
            except InvalidImageError:
                raise
            except Exception as exc:
                name = getattr(analyzer, "model", type(analyzer).__name__)
                _logger.warning("Remote analyzer %s failed: %s", name, exc)
                last_error = exc
        raise last_error or NetworkError("All remote analyzers failed")


def tier_confidence(tier: str | None) -> float:
    """Map a coarse confidence tier to a numeric confidence."""
    if tier is None:
        return UNSPECIFIED_TIER_CONFIDENCE
    return TIER_CONFIDENCE.get(tier.strip().lower(), UNSPECIFIED_TIER_CONFIDENCE)


def _to_prediction(item: VisionItem) -> Prediction:
    portion = None
    if item.portion_description or item.estimated_grams is not None:
        portion = PortionEstimate(
            description=item.portion_description or "",
            grams=item.estimated_grams,
        )
    return Prediction(
        label=item.label,
        confidence=tier_confidence(item.confidence_tier),
        source=PredictionSource.REMOTE,
        portion_estimate=portion,
    )


def _to_data_url(image_bytes: bytes) -> str:
    """Convert bytes to a base64 data URL for image input."""
    if not image_bytes:
        raise InvalidImageError("Image is empty")
    if len(image_bytes) > MAX_IMAGE_BYTES:
        raise InvalidImageError("Image too large. Maximum size is 10MB")
    mime_type = _detect_mime_type(image_bytes)
    encoded = base64.b64encode(image_bytes).decode("utf-8")
    return f"data:{mime_type};base64,{encoded}"


def _detect_mime_type(image_bytes: bytes) -> str:
    """Infer a basic image MIME type from file signatures."""
    if image_bytes.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if image_bytes.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if image_bytes[:4] == b"RIFF" and image_bytes[8:12] == b"WEBP":
        return "image/webp"
    if image_bytes[:6] in {b"GIF87a", b"GIF89a"}:
        return "image/gif"
    return "image/jpeg"
