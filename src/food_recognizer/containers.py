"""Dependency container wiring for the recognizer."""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from food_recognizer.adapters.fdc_client import HttpxFdcClient
from food_recognizer.adapters.openai_vision_client import OpenAIVisionClient
from food_recognizer.adapters.reachability import HttpxReachabilityProbe
from food_recognizer.app_logging import configure_logging
from food_recognizer.config import Settings
from food_recognizer.services.cache import ResultCache
from food_recognizer.services.local import (
    LocalClassifierService,
    LocalModel,
    UnavailableLocalModel,
)
from food_recognizer.services.nutrition import NutritionService
from food_recognizer.services.recognition import RecognitionOrchestrator
from food_recognizer.services.vision import (
    FallbackRemoteAnalyzer,
    RemoteAnalyzer,
    RemoteVisionService,
)


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    result_cache: ResultCache
    nutrition_service: NutritionService
    orchestrator: RecognitionOrchestrator
    close_resources: Callable[[], Awaitable[None]]


def build_container(
    settings: Settings | None = None,
    local_model: LocalModel | None = None,
) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    configure_logging(logging.DEBUG if resolved_settings.debug else logging.INFO)

    models = [resolved_settings.openai_model]
    if resolved_settings.openai_fallback_model:
        models.append(resolved_settings.openai_fallback_model)
    # The provider chain shares one orchestrator timeout.
    openai_client = OpenAIVisionClient.create(
        resolved_settings.openai_api_key,
        timeout_seconds=resolved_settings.adapter_timeout_seconds / len(models),
    )
    analyzers: list[RemoteAnalyzer] = [
        RemoteVisionService(
            client=openai_client,
            model=model,
            reasoning_effort=resolved_settings.openai_reasoning_effort,
            store=resolved_settings.openai_store,
        )
        for model in models
    ]
    remote_analyzer = FallbackRemoteAnalyzer(analyzers)

    fdc_client = HttpxFdcClient.create(
        api_key=resolved_settings.fdc_api_key,
        base_url=resolved_settings.fdc_base_url,
    )
    nutrition_service = NutritionService(
        fdc_client=fdc_client,
        debug=resolved_settings.debug,
    )
    reachability = HttpxReachabilityProbe.create(
        resolved_settings.reachability_url,
        timeout_seconds=resolved_settings.reachability_timeout_seconds,
    )
    local_classifier = LocalClassifierService(
        model=local_model or UnavailableLocalModel(),
        top_k=resolved_settings.local_top_k,
    )
    result_cache = ResultCache(
        capacity=resolved_settings.cache_capacity,
        ttl_seconds=resolved_settings.cache_ttl_seconds,
    )
    orchestrator = RecognitionOrchestrator(
        local_classifier=local_classifier,
        remote_analyzer=remote_analyzer,
        nutrition_lookup=nutrition_service,
        reachability=reachability,
        cache=result_cache,
        policy=resolved_settings.recognition_policy(),
    )

    async def close_resources() -> None:
        await fdc_client.close()
        await reachability.close()
        await openai_client.client.close()

    return AppContainer(
        settings=resolved_settings,
        result_cache=result_cache,
        nutrition_service=nutrition_service,
        orchestrator=orchestrator,
        close_resources=close_resources,
    )
