"""Shared test fixtures."""

import io
import struct
import zlib
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

import pytest
from PIL import Image

from food_recognizer.adapters.fdc_client import FdcClient
from food_recognizer.config import Settings
from food_recognizer.domain.errors import NetworkError
from food_recognizer.domain.nutrition import FoodSummary
from food_recognizer.domain.recognition import (
    PortionEstimate,
    Prediction,
    PredictionSource,
    RecognitionPolicy,
)
from food_recognizer.services.cache import ResultCache
from food_recognizer.services.local import LocalClassifier, LocalModel
from food_recognizer.services.nutrition import NutritionLookup
from food_recognizer.services.recognition import RecognitionOrchestrator
from food_recognizer.services.vision import RemoteAnalyzer, VisionClient


def make_image(color: tuple[int, int, int], size: tuple[int, int] = (64, 64)) -> bytes:
    """Return JPEG bytes for a solid-color test image."""
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format="JPEG", quality=90)
    return buffer.getvalue()


def make_header_only_png(width: int, height: int) -> bytes:
    """Return a PNG that declares its size but carries no pixel data."""

    def chunk(kind: bytes, data: bytes) -> bytes:
        crc = zlib.crc32(kind + data) & 0xFFFFFFFF
        return struct.pack(">I", len(data)) + kind + data + struct.pack(">I", crc)

    header = struct.pack(">IIBBBBB", width, height, 8, 2, 0, 0, 0)
    return b"\x89PNG\r\n\x1a\n" + chunk(b"IHDR", header) + chunk(b"IEND", b"")


def local(label: str, confidence: float) -> Prediction:
    return Prediction(label=label, confidence=confidence, source=PredictionSource.LOCAL)


def remote(
    label: str, confidence: float, portion: PortionEstimate | None = None
) -> Prediction:
    return Prediction(
        label=label,
        confidence=confidence,
        source=PredictionSource.REMOTE,
        portion_estimate=portion,
    )


@dataclass
class FakeClock:
    """Manually advanced clock."""

    now: datetime = field(default_factory=lambda: datetime(2024, 5, 1, 12, tzinfo=UTC))

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@dataclass
class FakeLocalClassifier(LocalClassifier):
    """Local classifier spy returning fixed predictions or raising."""

    predictions: list[Prediction] = field(default_factory=list)
    error: Exception | None = None
    calls: int = 0

    async def classify(self, image_bytes: bytes) -> list[Prediction]:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return list(self.predictions)


@dataclass
class FakeRemoteAnalyzer(RemoteAnalyzer):
    """Remote analyzer spy returning fixed predictions or raising."""

    predictions: list[Prediction] = field(default_factory=list)
    error: Exception | None = None
    calls: int = 0

    async def analyze(self, image_bytes: bytes) -> list[Prediction]:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return list(self.predictions)


@dataclass
class FakeNutritionLookup(NutritionLookup):
    """Nutrition lookup that knows a fixed set of food names."""

    known: set[str] = field(default_factory=set)
    error: Exception | None = None
    queries: list[tuple[str, int]] = field(default_factory=list)

    async def search(self, query: str, limit: int = 5) -> list[FoodSummary]:
        self.queries.append((query, limit))
        if self.error is not None:
            raise self.error
        if query.lower() not in self.known:
            return []
        return [
            FoodSummary(
                fdc_id=1,
                description=query,
                brand_owner=None,
                brand_name=None,
                data_type="Foundation",
            )
        ][:limit]


@dataclass
class FakeReachability:
    """Reachability signal with a fixed answer."""

    connected: bool = True
    calls: int = 0

    async def is_connected(self) -> bool:
        self.calls += 1
        return self.connected


@dataclass
class FakeLocalModel(LocalModel):
    """Raw local model returning fixed scores."""

    scores: Mapping[str, float] = field(default_factory=dict)
    error: Exception | None = None

    async def predict(self, image_bytes: bytes) -> Mapping[str, float]:
        if self.error is not None:
            raise self.error
        return self.scores


@dataclass
class FakeVisionClient(VisionClient):
    """Fake vision client returning a fixed payload."""

    payload: dict[str, object] = field(
        default_factory=lambda: {
            "items": [
                {
                    "label": "white rice",
                    "confidence_tier": "high",
                    "portion_description": "1 cup",
                    "estimated_grams": 158,
                }
            ]
        }
    )
    error: Exception | None = None
    models: list[str] = field(default_factory=list)

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
        self.models.append(model)
        if self.error is not None:
            raise self.error
        return self.payload


@dataclass
class FakeFdcClient(FdcClient):
    """Fake FDC client with in-memory responses."""

    search_payload: dict[str, object] = field(
        default_factory=lambda: {
            "foods": [
                {
                    "fdcId": 123456,
                    "description": "Chicken, broilers or fryers, breast, grilled",
                    "dataType": "SR Legacy",
                }
            ]
        }
    )
    failures: int = 0
    calls: int = 0

    async def search_foods(self, query: str, page_size: int = 10) -> dict[str, object]:
        self.calls += 1
        if self.calls <= self.failures:
            raise NetworkError("FDC unavailable")
        return self.search_payload


@pytest.fixture
def settings() -> Settings:
    return Settings(
        openai_api_key="openai-key",
        fdc_api_key="fdc-key",
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def local_classifier() -> FakeLocalClassifier:
    return FakeLocalClassifier()


@pytest.fixture
def remote_analyzer() -> FakeRemoteAnalyzer:
    return FakeRemoteAnalyzer()


@pytest.fixture
def nutrition_lookup() -> FakeNutritionLookup:
    return FakeNutritionLookup()


@pytest.fixture
def reachability() -> FakeReachability:
    return FakeReachability()


@pytest.fixture
def result_cache(clock: FakeClock) -> ResultCache:
    return ResultCache(capacity=50, ttl_seconds=3600, clock=clock)


@pytest.fixture
def orchestrator(  # noqa: PLR0913
    local_classifier: FakeLocalClassifier,
    remote_analyzer: FakeRemoteAnalyzer,
    nutrition_lookup: FakeNutritionLookup,
    reachability: FakeReachability,
    result_cache: ResultCache,
    clock: FakeClock,
) -> RecognitionOrchestrator:
    return RecognitionOrchestrator(
        local_classifier=local_classifier,
        remote_analyzer=remote_analyzer,
        nutrition_lookup=nutrition_lookup,
        reachability=reachability,
        cache=result_cache,
        policy=RecognitionPolicy(adapter_timeout_seconds=1.0),
        clock=clock,
    )

