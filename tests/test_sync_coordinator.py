"""Tests for the client sync coordinator."""

import asyncio
from dataclasses import replace

import httpx
import pytest

from diet_tracker.adapters.http_food_log_client import HttpxFoodLogClient
from diet_tracker.domain.food_logs import EMPTY_TOTALS, EntryPatch, MacroTargets
from diet_tracker.errors import (
    ConflictError,
    NotFoundError,
    UpstreamUnavailableError,
)
from diet_tracker.services.aggregation import aggregate_items
from diet_tracker.services.food_logs import FoodLogService
from diet_tracker.services.local_cache import InMemoryLocalCache
from diet_tracker.services.sync import SyncCoordinator, entry_key, summary_key
from diet_tracker.services.sync_state import SyncStatus
from tests.conftest import (
    OWNER_ID,
    TEST_TOKEN,
    TODAY,
    FakeRemoteStore,
    InMemoryFoodLogRepository,
    make_draft,
    make_item,
    store_unbucketed_entry,
)

TARGETS = MacroTargets(calories=2200, protein_g=120, carbs_g=260, fat_g=70)


def _coordinator(
    service: FoodLogService, **remote_options
) -> tuple[SyncCoordinator, FakeRemoteStore, InMemoryLocalCache]:
    remote = FakeRemoteStore(service, targets=TARGETS, **remote_options)
    cache = InMemoryLocalCache()
    return SyncCoordinator(remote=remote, cache=cache), remote, cache


def test_keys() -> None:
    assert summary_key(TODAY) == "summary:2025-03-14"
    assert entry_key(OWNER_ID) == f"entry:{OWNER_ID}"


def test_concurrent_loads_share_one_fetch(food_log_service: FoodLogService) -> None:
    async def scenario():
        gate = asyncio.Event()
        coordinator, remote, _ = _coordinator(food_log_service, gate=gate)
        first = asyncio.create_task(coordinator.load_summary(TODAY))
        second = asyncio.create_task(coordinator.load_summary(TODAY))
        await asyncio.sleep(0)
        gate.set()
        return await asyncio.gather(first, second), remote.fetch_calls

    (first, second), fetch_calls = asyncio.run(scenario())

    assert fetch_calls == 1
    assert first is second
    assert first.degraded is False


def test_refresh_supersedes_in_flight_fetch(food_log_service: FoodLogService) -> None:
    async def scenario():
        gate = asyncio.Event()
        coordinator, remote, _ = _coordinator(food_log_service, gate=gate)
        stale = asyncio.create_task(coordinator.load_summary(TODAY))
        await asyncio.sleep(0)
        food_log_service.create(OWNER_ID, make_draft(make_item("late", calories=90)))
        fresh = asyncio.create_task(coordinator.refresh_summary(TODAY))
        await asyncio.sleep(0)
        gate.set()
        return await asyncio.gather(stale, fresh), remote.fetch_calls

    (stale, fresh), fetch_calls = asyncio.run(scenario())

    assert fetch_calls == 2
    assert stale.summary == fresh.summary
    assert fresh.summary.meal_count == 1


def test_success_replaces_cached_day(food_log_service: FoodLogService) -> None:
    async def scenario():
        coordinator, _, cache = _coordinator(food_log_service)
        food_log_service.create(OWNER_ID, make_draft(make_item("rice", calories=200)))
        result = await coordinator.load_summary(TODAY)
        return result, await cache.load_day(TODAY)

    result, cached = asyncio.run(scenario())

    assert result.degraded is False
    assert result.error is None
    assert cached.entries == result.summary.entries
    assert cached.targets == TARGETS


def test_fallback_matches_authoritative_summary(
    food_log_service: FoodLogService,
) -> None:
    async def scenario():
        coordinator, remote, _ = _coordinator(food_log_service)
        await coordinator.create_entry(
            make_draft(
                make_item("oatmeal", calories=300.1, protein_g=20.2, fat_g=10.3),
                make_item("banana", calories=150.7, protein_g=5.05, fiber_g=3.1),
                meal_type="breakfast",
            )
        )
        await coordinator.create_entry(
            make_draft(make_item("soup", calories=0.1, sodium_mg=870.3))
        )
        fresh = await coordinator.load_summary(TODAY)
        remote.failure = UpstreamUnavailableError("offline")
        degraded = await coordinator.refresh_summary(TODAY)
        return fresh, degraded

    fresh, degraded = asyncio.run(scenario())

    assert degraded.degraded is True
    assert degraded.error.message == "offline"
    assert degraded.summary == fresh.summary
    assert repr(degraded.summary.totals.nutrients.to_dict()) == repr(
        fresh.summary.totals.nutrients.to_dict()
    )


def test_fallback_recomputes_entry_totals(food_log_service: FoodLogService) -> None:
    async def scenario():
        coordinator, _, cache = _coordinator(
            food_log_service, failure=UpstreamUnavailableError()
        )
        entry = food_log_service.create(
            OWNER_ID,
            make_draft(make_item("a", calories=120), make_item("b", protein_g=7)),
        )
        await cache.put_entry(replace(entry, totals=EMPTY_TOTALS))
        return entry, await coordinator.load_summary(TODAY)

    entry, result = asyncio.run(scenario())

    assert result.degraded is True
    assert result.summary.totals == aggregate_items(entry.items)
    assert result.summary.targets is None


def test_failure_without_cache_returns_reason_only(
    food_log_service: FoodLogService,
) -> None:
    async def scenario():
        coordinator, _, _ = _coordinator(
            food_log_service, failure=UpstreamUnavailableError("down")
        )
        return await coordinator.load_summary(TODAY), coordinator.state(TODAY)

    result, state = asyncio.run(scenario())

    assert result.summary is None
    assert result.degraded is False
    assert isinstance(result.error, UpstreamUnavailableError)
    assert state.status is SyncStatus.FAILED
    assert state.degraded is False


def test_failed_write_leaves_cache_untouched(
    food_log_service: FoodLogService,
) -> None:
    async def scenario():
        coordinator, _, cache = _coordinator(
            food_log_service, failure=UpstreamUnavailableError()
        )
        with pytest.raises(UpstreamUnavailableError):
            await coordinator.create_entry(make_draft(make_item("x", calories=1)))
        return await cache.load_day(TODAY), await cache.checkpoint()

    cached, checkpoint = asyncio.run(scenario())

    assert cached is None
    assert checkpoint == 0


def test_writes_mirror_acknowledged_copies(food_log_service: FoodLogService) -> None:
    async def scenario():
        coordinator, _, cache = _coordinator(food_log_service)
        created = await coordinator.create_entry(
            make_draft(make_item("x", calories=10))
        )
        updated = await coordinator.update_entry(
            created.id, EntryPatch(notes="edited"), expected_counter=0
        )
        await cache.put_entry(created)
        cached_after_update = await cache.get_entry(created.id)
        tombstone = await coordinator.delete_entry(created.id)
        return (
            updated,
            cached_after_update,
            tombstone,
            await cache.get_entry(created.id),
            await cache.load_day(TODAY),
        )

    updated, after_update, tombstone, after_delete, day = asyncio.run(scenario())

    assert after_update == updated
    assert after_delete == tombstone
    assert after_delete.update_counter == 2
    assert day is None


def test_conflicting_write_propagates(food_log_service: FoodLogService) -> None:
    async def scenario():
        coordinator, _, cache = _coordinator(food_log_service)
        created = await coordinator.create_entry(make_draft(make_item("x")))
        with pytest.raises(ConflictError):
            await coordinator.update_entry(
                created.id, EntryPatch(notes="stale"), expected_counter=3
            )
        return created, await cache.get_entry(created.id)

    created, cached = asyncio.run(scenario())

    assert cached == created


def test_abandoned_write_still_completes(food_log_service: FoodLogService) -> None:
    async def scenario():
        coordinator, remote, cache = _coordinator(food_log_service)
        caller = asyncio.create_task(
            coordinator.create_entry(make_draft(make_item("x", calories=5)))
        )
        await asyncio.sleep(0)
        caller.cancel()
        with pytest.raises(asyncio.CancelledError):
            await caller
        await coordinator.drain()
        return remote.write_log, await cache.load_day(TODAY)

    write_log, cached = asyncio.run(scenario())

    assert write_log == [("create", None)]
    assert len(cached.entries) == 1


def test_writes_for_one_entry_run_in_issue_order(
    food_log_service: FoodLogService,
) -> None:
    async def scenario():
        coordinator, _, _ = _coordinator(food_log_service)
        created = await coordinator.create_entry(make_draft(make_item("x")))
        first = asyncio.create_task(
            coordinator.update_entry(created.id, EntryPatch(notes="a"), 0)
        )
        second = asyncio.create_task(
            coordinator.update_entry(created.id, EntryPatch(notes="b"), 1)
        )
        return await asyncio.gather(first, second)

    first, second = asyncio.run(scenario())

    assert (first.update_counter, first.notes) == (1, "a")
    assert (second.update_counter, second.notes) == (2, "b")


def test_subscribers_follow_state(food_log_service: FoodLogService) -> None:
    async def scenario():
        coordinator, _, _ = _coordinator(food_log_service)
        seen: list[SyncStatus] = []
        unsubscribe = coordinator.subscribe(
            lambda day, state: seen.append(state.status)
        )
        await coordinator.load_summary(TODAY)
        await coordinator.create_entry(make_draft(make_item("x", calories=42)))
        unsubscribe()
        await coordinator.load_summary(TODAY)
        return seen, coordinator.state(TODAY)

    seen, state = asyncio.run(scenario())

    assert seen == [SyncStatus.FETCHING, SyncStatus.SUCCEEDED, SyncStatus.SUCCEEDED]
    assert state.summary.meal_count == 1
    assert state.summary.totals.nutrients["calories"] == 42


def test_unbucketed_entries_survive_sync(
    food_log_service: FoodLogService,
    food_log_repository: InMemoryFoodLogRepository,
) -> None:
    brunch = store_unbucketed_entry(
        food_log_service, food_log_repository, calories=150
    )

    async def scenario():
        coordinator, remote, cache = _coordinator(food_log_service)
        fresh = await coordinator.load_summary(TODAY)
        await coordinator.create_entry(make_draft(make_item("x", calories=300)))
        after_write = coordinator.state(TODAY)
        remote.failure = UpstreamUnavailableError()
        degraded = await coordinator.refresh_summary(TODAY)
        return fresh, after_write, degraded, await cache.load_day(TODAY)

    fresh, after_write, degraded, cached = asyncio.run(scenario())

    assert fresh.summary.unassigned == [brunch]
    assert fresh.summary.totals.nutrients["calories"] == 150
    assert brunch in cached.entries
    assert after_write.summary.totals.nutrients["calories"] == 450
    assert after_write.summary.unassigned == [brunch]
    assert degraded.degraded is True
    assert degraded.summary == after_write.summary


def test_unreadable_response_degrades_to_cache(
    food_log_service: FoodLogService,
) -> None:
    entry = food_log_service.create(
        OWNER_ID, make_draft(make_item("rice", calories=200))
    )

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>captive portal</html>")

    async def scenario():
        remote = HttpxFoodLogClient(
            base_url="https://api.test",
            token=TEST_TOKEN,
            http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        )
        cache = InMemoryLocalCache()
        await cache.put_entry(entry)
        coordinator = SyncCoordinator(remote=remote, cache=cache)
        return await coordinator.load_summary(TODAY), coordinator.state(TODAY)

    result, state = asyncio.run(scenario())

    assert result.degraded is True
    assert isinstance(result.error, UpstreamUnavailableError)
    assert result.summary.entries == [entry]
    assert state.status is SyncStatus.FAILED
    assert state.degraded is True


def test_entry_locks_are_released(food_log_service: FoodLogService) -> None:
    async def scenario():
        coordinator, _, _ = _coordinator(food_log_service)
        created = await coordinator.create_entry(make_draft(make_item("x")))
        await asyncio.gather(
            coordinator.update_entry(created.id, EntryPatch(notes="a"), 0),
            coordinator.update_entry(created.id, EntryPatch(notes="b"), 1),
        )
        with pytest.raises(ConflictError):
            await coordinator.delete_entry(created.id, expected_counter=0)
        await coordinator.drain()
        return coordinator._entry_locks, coordinator._lock_users

    locks, users = asyncio.run(scenario())

    assert locks == {}
    assert users == {}


def test_get_entry_reads_remote_and_mirrors(food_log_service: FoodLogService) -> None:
    entry = food_log_service.create(OWNER_ID, make_draft(make_item("egg")))

    async def scenario():
        coordinator, _, cache = _coordinator(food_log_service)
        return await coordinator.get_entry(entry.id), await cache.get_entry(entry.id)

    fetched, cached = asyncio.run(scenario())

    assert fetched == entry
    assert cached == entry


def test_get_entry_falls_back_to_cache_when_offline(
    food_log_service: FoodLogService,
) -> None:
    entry = food_log_service.create(OWNER_ID, make_draft(make_item("egg")))

    async def scenario():
        coordinator, remote, cache = _coordinator(food_log_service)
        await coordinator.get_entry(entry.id)
        remote.failure = UpstreamUnavailableError()
        return await coordinator.get_entry(entry.id)

    assert asyncio.run(scenario()) == entry


def test_get_entry_without_cached_copy_raises(
    food_log_service: FoodLogService,
) -> None:
    entry = food_log_service.create(OWNER_ID, make_draft(make_item("egg")))

    async def scenario():
        coordinator, remote, _ = _coordinator(food_log_service)
        remote.failure = UpstreamUnavailableError()
        await coordinator.get_entry(entry.id)

    with pytest.raises(UpstreamUnavailableError):
        asyncio.run(scenario())


def test_get_entry_remote_not_found_is_final(
    food_log_service: FoodLogService,
) -> None:
    entry = food_log_service.create(OWNER_ID, make_draft(make_item("egg")))

    async def scenario():
        coordinator, _, cache = _coordinator(food_log_service)
        await cache.put_entry(entry)
        food_log_service.soft_delete(OWNER_ID, entry.id)
        await coordinator.get_entry(entry.id)

    with pytest.raises(NotFoundError):
        asyncio.run(scenario())
