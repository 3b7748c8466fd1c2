"""Client coordination between the remote food log store and the local cache.

Reads go to the remote store and fall back to the cache when it fails. Writes
go to the remote store first and reach the cache only once acknowledged.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field, replace
from datetime import date
from typing import Protocol
from uuid import UUID

from diet_tracker.domain.food_logs import (
    DailySummary,
    EntryDraft,
    EntryPatch,
    FoodLogEntry,
)
from diet_tracker.errors import DietTrackerError, UpstreamUnavailableError
from diet_tracker.services.aggregation import aggregate_items, build_daily_summary
from diet_tracker.services.local_cache import LocalCache
from diet_tracker.services.sync_state import (
    FetchFailed,
    FetchStarted,
    FetchSucceeded,
    SummaryState,
    SyncEvent,
    WriteSucceeded,
    reduce,
)

_logger = logging.getLogger(__name__)

StateListener = Callable[[date, SummaryState], None]


class RemoteFoodLogStore(Protocol):
    """Async view of the authoritative store."""

    async def fetch_summary(self, day: date) -> DailySummary:
        """Return the authoritative summary for a date."""

    async def get_entry(self, entry_id: UUID) -> FoodLogEntry:
        """Return a live entry."""

    async def create_entry(self, draft: EntryDraft) -> FoodLogEntry:
        """Create an entry and return the stored copy."""

    async def update_entry(
        self,
        entry_id: UUID,
        patch: EntryPatch,
        expected_counter: int | None = None,
    ) -> FoodLogEntry:
        """Update an entry and return the stored copy."""

    async def delete_entry(
        self, entry_id: UUID, expected_counter: int | None = None
    ) -> FoodLogEntry:
        """Soft-delete an entry and return the tombstone."""


@dataclass(frozen=True)
class SummaryResult:
    """Outcome of a summary read.

    `degraded` marks a summary rebuilt from the cache after the remote read
    failed; `error` carries the failure in that case, and alone when nothing
    was cached.
    """

    summary: DailySummary | None
    degraded: bool = False
    error: DietTrackerError | None = None


def summary_key(day: date) -> str:
    return f"summary:{day.isoformat()}"


def entry_key(entry_id: UUID) -> str:
    return f"entry:{entry_id}"


@dataclass
class SyncCoordinator:
    """Single owner of the local cache on the client."""

    remote: RemoteFoodLogStore
    cache: LocalCache
    _fetches: dict[str, asyncio.Task] = field(default_factory=dict, init=False)
    _entry_locks: dict[str, asyncio.Lock] = field(default_factory=dict, init=False)
    _lock_users: dict[str, int] = field(default_factory=dict, init=False)
    _writes: set[asyncio.Task] = field(default_factory=set, init=False)
    _states: dict[date, SummaryState] = field(default_factory=dict, init=False)
    _listeners: list[StateListener] = field(default_factory=list, init=False)

    async def load_summary(self, day: date) -> SummaryResult:
        """Return the day summary, joining a fetch already in flight."""
        key = summary_key(day)
        task = self._fetches.get(key)
        if task is None:
            task = self._start_fetch(day)
        return await self._await_fetch(key, task)

    async def refresh_summary(self, day: date) -> SummaryResult:
        """Start a fresh fetch, cancelling any fetch in flight for the day."""
        key = summary_key(day)
        previous = self._fetches.get(key)
        task = self._start_fetch(day)
        if previous is not None:
            previous.cancel()
        return await self._await_fetch(key, task)

    async def get_entry(self, entry_id: UUID) -> FoodLogEntry:
        """Return an entry, falling back to the cached copy when offline.

        Only an unreachable remote falls back; a remote NotFound is final.
        """
        try:
            entry = await self.remote.get_entry(entry_id)
        except UpstreamUnavailableError as exc:
            cached = await self.cache.get_entry(entry_id)
            if cached is None or cached.is_deleted:
                raise
            _logger.warning("Serving cached entry %s: %s", entry_id, exc.message)
            return cached
        await self.cache.put_entry(entry)
        return entry

    async def create_entry(self, draft: EntryDraft) -> FoodLogEntry:
        """Create an entry remotely, then mirror it locally."""
        return await self._submit(None, lambda: self.remote.create_entry(draft))

    async def update_entry(
        self,
        entry_id: UUID,
        patch: EntryPatch,
        expected_counter: int | None = None,
    ) -> FoodLogEntry:
        """Update an entry remotely, then mirror it locally."""
        return await self._submit(
            entry_key(entry_id),
            lambda: self.remote.update_entry(entry_id, patch, expected_counter),
        )

    async def delete_entry(
        self, entry_id: UUID, expected_counter: int | None = None
    ) -> FoodLogEntry:
        """Soft-delete an entry remotely, then mirror the tombstone locally."""
        return await self._submit(
            entry_key(entry_id),
            lambda: self.remote.delete_entry(entry_id, expected_counter),
        )

    async def drain(self) -> None:
        """Wait for every issued write to finish."""
        while self._writes:
            await asyncio.gather(*list(self._writes), return_exceptions=True)

    def state(self, day: date) -> SummaryState:
        """Return the current presentation state for a date."""
        return self._states.get(day, SummaryState())

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register a state listener and return a function that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _start_fetch(self, day: date) -> asyncio.Task:
        key = summary_key(day)
        task = asyncio.create_task(self._fetch(day))
        self._fetches[key] = task

        def forget(done: asyncio.Task) -> None:
            if self._fetches.get(key) is done:
                del self._fetches[key]

        task.add_done_callback(forget)
        return task

    async def _await_fetch(self, key: str, task: asyncio.Task) -> SummaryResult:
        while True:
            try:
                return await asyncio.shield(task)
            except asyncio.CancelledError:
                current_task = asyncio.current_task()
                if current_task is not None and current_task.cancelling():
                    raise
                replacement = self._fetches.get(key)
                if not task.cancelled() or replacement is None or replacement is task:
                    raise
                task = replacement

    async def _fetch(self, day: date) -> SummaryResult:
        self._dispatch(day, FetchStarted())
        as_of = await self.cache.checkpoint()
        try:
            summary = await self.remote.fetch_summary(day)
        except DietTrackerError as exc:
            fallback = await self._summary_from_cache(day)
            if fallback is None:
                _logger.warning("Summary unavailable for %s: %s", day, exc.message)
            else:
                _logger.warning("Serving cached summary for %s: %s", day, exc.message)
            self._dispatch(day, FetchFailed(error=exc, fallback=fallback))
            return SummaryResult(
                summary=fallback, degraded=fallback is not None, error=exc
            )
        await self.cache.replace_day(day, summary.entries, summary.targets, as_of)
        self._dispatch(day, FetchSucceeded(summary=summary))
        return SummaryResult(summary=summary)

    async def _summary_from_cache(self, day: date) -> DailySummary | None:
        cached = await self.cache.load_day(day)
        if cached is None:
            return None
        entries = [
            replace(entry, totals=aggregate_items(entry.items))
            for entry in cached.entries
        ]
        return build_daily_summary(day, entries, cached.targets)

    async def _submit(
        self,
        lock_key: str | None,
        operation: Callable[[], Awaitable[FoodLogEntry]],
    ) -> FoodLogEntry:
        task = asyncio.create_task(self._write(lock_key, operation))
        self._writes.add(task)
        task.add_done_callback(self._writes.discard)
        # Abandoning the await leaves the write running.
        return await asyncio.shield(task)

    async def _write(
        self,
        lock_key: str | None,
        operation: Callable[[], Awaitable[FoodLogEntry]],
    ) -> FoodLogEntry:
        if lock_key is None:
            return await self._mirror(await operation())
        lock = self._entry_locks.setdefault(lock_key, asyncio.Lock())
        self._lock_users[lock_key] = self._lock_users.get(lock_key, 0) + 1
        try:
            async with lock:
                return await self._mirror(await operation())
        finally:
            self._lock_users[lock_key] -= 1
            if not self._lock_users[lock_key]:
                del self._lock_users[lock_key]
                del self._entry_locks[lock_key]

    async def _mirror(self, entry: FoodLogEntry) -> FoodLogEntry:
        await self.cache.put_entry(entry)
        for day in list(self._states):
            self._dispatch(day, WriteSucceeded(entry=entry))
        _logger.info(
            "Mirrored food log: id=%s counter=%s", entry.id, entry.update_counter
        )
        return entry

    def _dispatch(self, day: date, event: SyncEvent) -> None:
        state = reduce(self.state(day), event)
        self._states[day] = state
        for listener in list(self._listeners):
            listener(day, state)
