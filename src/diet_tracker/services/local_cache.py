"""Client-held copy of the owner's food log."""

from dataclasses import dataclass, field
from datetime import date
from typing import Protocol
from uuid import UUID

from diet_tracker.domain.food_logs import FoodLogEntry, MacroTargets


@dataclass(frozen=True)
class CachedDay:
    """Entries and targets remembered for one date."""

    day: date
    entries: list[FoodLogEntry]
    targets: MacroTargets | None = None


class LocalCache(Protocol):
    """Storage interface owned by the sync coordinator.

    Every write carries a sequence number. `checkpoint` returns the latest one,
    so a fetch can tell which cached entries it has already seen.
    """

    async def checkpoint(self) -> int:
        """Return the sequence number of the most recent write."""

    async def load_day(self, day: date) -> CachedDay | None:
        """Return live cached entries for a date, or None if nothing is known."""

    async def get_entry(self, entry_id: UUID) -> FoodLogEntry | None:
        """Return a cached entry, tombstones included."""

    async def put_entry(self, entry: FoodLogEntry) -> None:
        """Store an entry unless a copy with a higher counter is cached."""

    async def replace_day(
        self,
        day: date,
        entries: list[FoodLogEntry],
        targets: MacroTargets | None,
        as_of: int,
    ) -> None:
        """Overwrite a date with an authoritative entry set.

        Cached entries absent from the set are dropped only if they were
        written at or before `as_of`.
        """


def should_replace(cached: FoodLogEntry | None, incoming: FoodLogEntry) -> bool:
    """Return True when the incoming copy is at least as new as the cached one."""
    return cached is None or incoming.update_counter >= cached.update_counter


@dataclass
class InMemoryLocalCache:
    """Process-local cache used by tests and short-lived clients."""

    _entries: dict[UUID, tuple[FoodLogEntry, int]] = field(default_factory=dict)
    _days: dict[date, MacroTargets | None] = field(default_factory=dict)
    _sequence: int = 0

    async def checkpoint(self) -> int:
        return self._sequence

    async def load_day(self, day: date) -> CachedDay | None:
        entries = [
            entry
            for entry, _ in self._entries.values()
            if entry.logged_date == day and not entry.is_deleted
        ]
        if day not in self._days and not entries:
            return None
        return CachedDay(day=day, entries=entries, targets=self._days.get(day))

    async def get_entry(self, entry_id: UUID) -> FoodLogEntry | None:
        stored = self._entries.get(entry_id)
        return stored[0] if stored else None

    async def put_entry(self, entry: FoodLogEntry) -> None:
        self._store(entry)

    async def replace_day(
        self,
        day: date,
        entries: list[FoodLogEntry],
        targets: MacroTargets | None,
        as_of: int,
    ) -> None:
        keep = {entry.id for entry in entries}
        for entry_id, (cached, sequence) in list(self._entries.items()):
            if cached.logged_date == day and entry_id not in keep and sequence <= as_of:
                del self._entries[entry_id]
        for entry in entries:
            self._store(entry)
        self._days[day] = targets

    def _store(self, entry: FoodLogEntry) -> None:
        stored = self._entries.get(entry.id)
        if should_replace(stored[0] if stored else None, entry):
            self._sequence += 1
            self._entries[entry.id] = (entry, self._sequence)
