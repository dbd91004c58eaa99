"""Tests for settings."""

import pytest
from pydantic import ValidationError

from food_recognizer.config import Settings


def test_recognition_policy_defaults(settings: Settings) -> None:
    policy = settings.recognition_policy()

    assert policy.local_confidence_threshold == 0.85
    assert policy.agreement_boost == 0.10
    assert policy.agreement_boost_cap == 0.95
    assert policy.enrichment_miss_penalty == 0.9
    assert policy.sanity_min_label_length == 2
    assert settings.cache_capacity == 50
    assert settings.cache_ttl_seconds == 3600


def test_settings_read_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("OPENAI_API_KEY", "env-key")
    monkeypatch.setenv("FDC_API_KEY", "fdc-env-key")
    monkeypatch.setenv("LOCAL_CONFIDENCE_THRESHOLD", "0.7")
    monkeypatch.setenv("CACHE_CAPACITY", "10")

    settings = Settings()

    assert settings.openai_api_key == "env-key"
    assert settings.recognition_policy().local_confidence_threshold == 0.7
    assert settings.cache_capacity == 10


def test_settings_reject_out_of_range_threshold() -> None:
    with pytest.raises(ValidationError):
        Settings(
            openai_api_key="key",
            fdc_api_key="key",
            local_confidence_threshold=1.5,
        )
