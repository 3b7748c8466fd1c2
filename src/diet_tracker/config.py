"""Application configuration."""

import os
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")
_ENV_FILES = (f".env.{_ENVIRONMENT}", ".env")


class Settings(BaseSettings):
    """Server settings loaded from environment variables."""

    supabase_url: str
    supabase_service_key: str
    fdc_api_key: str = "DEMO_KEY"
    fdc_base_url: str = "https://api.nal.usda.gov/fdc/v1"
    open_food_facts_base_url: str = "https://world.openfoodfacts.org"
    openai_api_key: str | None = None
    openai_model: str = "gpt-5.2"
    openai_reasoning_effort: str = "medium"
    openai_store: bool = False
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(env_file=_ENV_FILES, extra="ignore")


class ClientSettings(BaseSettings):
    """Settings for the offline-capable client."""

    api_base_url: str = "http://localhost:8000"
    api_token: str = ""
    local_cache_path: Path = Path("diet_tracker_cache.sqlite3")
    request_timeout_seconds: float = 15.0

    model_config = SettingsConfigDict(
        env_prefix="DIET_TRACKER_", env_file=_ENV_FILES, extra="ignore"
    )
