from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings validated via Pydantic.

    Values are loaded from environment variables and/or a .env file.
    """

    # API Keys
    openai_api_key: str = ""
    serpapi_api_key: str = ""
    assemblyai_api_key: str = ""  # Optional: speech-to-text for X/TikTok/Instagram videos

    # Supabase
    supabase_url: str = ""
    supabase_key: str = ""

    # Chat / model selection
    default_chat_model: str = "gpt-4o-mini"
    large_context_model: str = "gpt-4.1-nano-2025-04-14"
    # Well below the default model's nominal window: absorbs estimation error
    # and leaves room for the response.
    safe_token_limit: int = 30_000
    chat_temperature: float = 0.7
    chat_max_tokens: int = 1500

    # Transcripts
    serpapi_base_url: str = "https://serpapi.com"
    transcript_language: str = "en"
    youtube_transcript_sources: list[str] = ["serpapi", "native"]
    http_timeout_seconds: float = 30.0

    # App config
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached Settings instance.

    Gracefully handles missing .env files (e.g. in CI/testing) by falling
    back to environment variables and defaults.
    """
    try:
        return Settings()
    except Exception:
        # If .env is missing or unreadable, build settings from env vars only.
        return Settings(_env_file=None)  # type: ignore[call-arg]


settings = get_settings()


class NotConfiguredError(RuntimeError):
    """A required credential is absent; nothing was sent over the network."""
