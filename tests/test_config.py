from __future__ import annotations

from studyrag.config import get_settings


def test_ranking_policy_defaults():
    settings = get_settings({})
    assert settings.min_token_length == 2
    assert (settings.window_before, settings.window_after) == (500, 1500)
    assert settings.fallback_chars == 2000
    assert settings.low_confidence_threshold == 2
    assert settings.top_k == 3


def test_generation_and_identity_defaults():
    settings = get_settings({})
    assert settings.max_output_tokens == 500
    assert settings.default_user_id == "default-user"
    assert settings.azure_openai_api_version == "2024-04-01-preview"


def test_override_does_not_touch_cached_settings():
    overridden = get_settings({"top_k": 5, "store_backend": "memory"})
    assert overridden.top_k == 5
    assert overridden.store_backend == "memory"


def test_allowed_extensions_accepts_comma_separated_string():
    settings = get_settings({"allowed_extensions": ".PDF, .txt"})
    assert settings.allowed_extensions_tuple == (".pdf", ".txt")


def test_environment_prefix(monkeypatch):
    monkeypatch.setenv("STUDYRAG_MAX_OUTPUT_TOKENS", "3000")
    monkeypatch.setenv("STUDYRAG_AZURE_OPENAI_DEPLOYMENT", "gpt-4o-mini")
    settings = get_settings({"environment": "test"})
    assert settings.max_output_tokens == 3000
    assert settings.azure_openai_deployment == "gpt-4o-mini"
