"""Dependency container wiring for the server and the client."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from uuid import UUID

from supabase import create_client

from diet_tracker.adapters.fdc_client import HttpxFdcClient
from diet_tracker.adapters.http_food_log_client import HttpxFoodLogClient
from diet_tracker.adapters.open_food_facts_client import HttpxOpenFoodFactsClient
from diet_tracker.adapters.openai_vision_client import OpenAIVisionClient
from diet_tracker.adapters.sqlite_local_cache import SqliteLocalCache
from diet_tracker.adapters.supabase_food_log_repository import (
    SupabaseFoodLogRepository,
)
from diet_tracker.adapters.supabase_goal_repository import (
    SupabaseGoalsRepository,
    SupabaseProfileRepository,
)
from diet_tracker.adapters.supabase_identity import (
    IdentityVerifier,
    SupabaseIdentityVerifier,
)
from diet_tracker.config import ClientSettings, Settings
from diet_tracker.services.cache import InMemoryCache
from diet_tracker.services.food_logs import FoodLogService
from diet_tracker.services.goals import GoalService
from diet_tracker.services.nutrition import NutritionService
from diet_tracker.services.sync import SyncCoordinator
from diet_tracker.services.vision import VisionService


@dataclass
class AppContainer:
    """Holds server-wide dependencies."""

    settings: Settings
    identity_verifier: IdentityVerifier
    food_log_service: FoodLogService
    goal_service: GoalService
    nutrition_service: NutritionService
    vision_service: VisionService
    close_resources: Callable[[], Awaitable[None]]


@dataclass
class ClientContainer:
    """Holds the client-side sync stack for one owner."""

    settings: ClientSettings
    sync_coordinator: SyncCoordinator
    remote: HttpxFoodLogClient
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default server container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    fdc_client = HttpxFdcClient.create(
        api_key=resolved_settings.fdc_api_key,
        base_url=resolved_settings.fdc_base_url,
    )
    barcode_client = HttpxOpenFoodFactsClient.create(
        resolved_settings.open_food_facts_base_url
    )
    vision_client = (
        OpenAIVisionClient.create(resolved_settings.openai_api_key)
        if resolved_settings.openai_api_key
        else None
    )

    async def close_resources() -> None:
        await fdc_client.close()
        await barcode_client.close()
        if vision_client is not None:
            await vision_client.close()

    return AppContainer(
        settings=resolved_settings,
        identity_verifier=SupabaseIdentityVerifier(supabase_client),
        food_log_service=FoodLogService(SupabaseFoodLogRepository(supabase_client)),
        goal_service=GoalService(
            profile_repository=SupabaseProfileRepository(supabase_client),
            goals_repository=SupabaseGoalsRepository(supabase_client),
        ),
        nutrition_service=NutritionService(
            fdc_client=fdc_client,
            barcode_client=barcode_client,
            cache=InMemoryCache(),
        ),
        vision_service=VisionService(
            client=vision_client,
            model=resolved_settings.openai_model,
            reasoning_effort=resolved_settings.openai_reasoning_effort,
            store=resolved_settings.openai_store,
        ),
        close_resources=close_resources,
    )


def build_client(
    owner_id: UUID, settings: ClientSettings | None = None
) -> ClientContainer:
    """Create the client sync stack backed by the HTTP API and SQLite."""
    resolved_settings = settings or ClientSettings()
    remote = HttpxFoodLogClient.create(
        base_url=resolved_settings.api_base_url,
        token=resolved_settings.api_token,
        timeout=resolved_settings.request_timeout_seconds,
    )
    coordinator = SyncCoordinator(
        remote=remote,
        cache=SqliteLocalCache(
            db_path=resolved_settings.local_cache_path, owner_id=owner_id
        ),
    )

    async def close_resources() -> None:
        await coordinator.drain()
        await remote.close()

    return ClientContainer(
        settings=resolved_settings,
        sync_coordinator=coordinator,
        remote=remote,
        close_resources=close_resources,
    )
