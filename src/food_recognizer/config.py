"""Application configuration."""

import os

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from food_recognizer.domain.recognition import RecognitionPolicy

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    openai_api_key: str
    openai_model: str = "gpt-5.2"
    openai_fallback_model: str | None = None
    openai_reasoning_effort: str = "high"
    openai_store: bool = False
    fdc_api_key: str
    fdc_base_url: str = "https://api.nal.usda.gov/fdc/v1"
    reachability_url: str = "https://api.openai.com"
    reachability_timeout_seconds: float = Field(default=3.0, gt=0)

    local_confidence_threshold: float = Field(default=0.85, ge=0.0, le=1.0)
    local_top_k: int = Field(default=5, ge=1)
    cache_capacity: int = Field(default=50, ge=1)
    cache_ttl_seconds: float = Field(default=3600, gt=0)
    agreement_boost: float = Field(default=0.10, ge=0.0, le=1.0)
    agreement_boost_cap: float = Field(default=0.95, ge=0.0, le=1.0)
    enrichment_miss_penalty: float = Field(default=0.9, ge=0.0, le=1.0)
    sanity_min_label_length: int = Field(default=2, ge=0)
    adapter_timeout_seconds: float = Field(default=20.0, gt=0)
    single_flight: bool = True

    debug: bool = False
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )

    def recognition_policy(self) -> RecognitionPolicy:
        """Build the recognition policy from settings."""
        return RecognitionPolicy(
            local_confidence_threshold=self.local_confidence_threshold,
            agreement_boost=self.agreement_boost,
            agreement_boost_cap=self.agreement_boost_cap,
            enrichment_miss_penalty=self.enrichment_miss_penalty,
            sanity_min_label_length=self.sanity_min_label_length,
            adapter_timeout_seconds=self.adapter_timeout_seconds,
            single_flight=self.single_flight,
        )
