"""Tests for container wiring."""

import asyncio
from pathlib import Path

from diet_tracker.config import ClientSettings, Settings
from diet_tracker.containers import build_client, build_container
from tests.conftest import OWNER_ID, TODAY


def test_build_container_creates_services(settings: Settings) -> None:
    container = build_container(settings)

    assert container.food_log_service is not None
    assert container.goal_service is not None
    assert container.vision_service.client is not None
    assert container.vision_service.model == settings.openai_model
    asyncio.run(container.close_resources())


def test_build_container_without_openai_key(settings: Settings) -> None:
    container = build_container(settings.model_copy(update={"openai_api_key": None}))

    assert container.vision_service.client is None
    asyncio.run(container.close_resources())


def test_build_client_wires_sync_stack(tmp_path: Path) -> None:
    settings = ClientSettings(
        api_base_url="https://diet.test/",
        api_token="test-token",
        local_cache_path=tmp_path / "cache.sqlite3",
    )

    client = build_client(OWNER_ID, settings)

    assert client.remote.base_url == "https://diet.test"
    assert client.remote.token == "test-token"
    assert client.sync_coordinator.state(TODAY).summary is None
    asyncio.run(client.close_resources())


def test_client_settings_read_prefixed_environment(monkeypatch) -> None:
    monkeypatch.setenv("DIET_TRACKER_API_TOKEN", "env-token")
    monkeypatch.setenv("DIET_TRACKER_REQUEST_TIMEOUT_SECONDS", "3.5")

    settings = ClientSettings()

    assert settings.api_token == "env-token"
    assert settings.request_timeout_seconds == 3.5
