"""Tests for Settings defaults and environment overrides."""

from __future__ import annotations

import pytest

from src.config import Settings, get_settings


class TestSettingsDefaults:
    def test_model_selection_defaults(self) -> None:
        cfg = Settings(_env_file=None)  # type: ignore[call-arg]
        assert cfg.default_chat_model == "gpt-4o-mini"
        assert cfg.large_context_model == "gpt-4.1-nano-2025-04-14"
        assert cfg.safe_token_limit == 30_000

    def test_completion_defaults(self) -> None:
        cfg = Settings(_env_file=None)  # type: ignore[call-arg]
        assert cfg.chat_temperature == 0.7
        assert cfg.chat_max_tokens == 1500

    def test_transcript_defaults(self) -> None:
        cfg = Settings(_env_file=None)  # type: ignore[call-arg]
        assert cfg.serpapi_base_url == "https://serpapi.com"
        assert cfg.transcript_language == "en"
        assert cfg.youtube_transcript_sources == ["serpapi", "native"]


class TestSettingsOverrides:
    def test_env_overrides_safe_limit(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SAFE_TOKEN_LIMIT", "50000")
        monkeypatch.setenv("LARGE_CONTEXT_MODEL", "big-model")
        cfg = Settings(_env_file=None)  # type: ignore[call-arg]
        assert cfg.safe_token_limit == 50_000
        assert cfg.large_context_model == "big-model"

    def test_env_list_is_json(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("YOUTUBE_TRANSCRIPT_SOURCES", '["native"]')
        cfg = Settings(_env_file=None)  # type: ignore[call-arg]
        assert cfg.youtube_transcript_sources == ["native"]

    def test_invalid_number_raises(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SAFE_TOKEN_LIMIT", "lots")
        with pytest.raises(ValueError):
            Settings(_env_file=None)  # type: ignore[call-arg]


def test_get_settings_is_cached() -> None:
    assert get_settings() is get_settings()
