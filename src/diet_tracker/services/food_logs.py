"""Authoritative food log store."""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, date, datetime, timedelta
from typing import Protocol
from uuid import UUID, uuid4

from diet_tracker.domain.food_logs import (
    ENTRY_METHODS,
    MEAL_TYPES,
    DailySummary,
    EntryDraft,
    EntryMethod,
    EntryPage,
    EntryPatch,
    EntryQuery,
    FoodLogEntry,
    ItemDraft,
    LogItem,
    MacroProgress,
    MacroTargets,
    MealType,
    ProgressDay,
    ProgressReport,
)
from diet_tracker.errors import ConflictError, NotFoundError, ValidationError
from diet_tracker.services.aggregation import (
    aggregate_entries,
    aggregate_items,
    build_daily_summary,
    round_half_up,
)

DEFAULT_PAGE_LIMIT = 50
MAX_PAGE_LIMIT = 200
PROGRESS_DEFAULT_DAYS = 7
SYNC_WINDOW_DAYS = 30
SYNC_BATCH_LIMIT = 100

_logger = logging.getLogger(__name__)


class FoodLogRepository(Protocol):
    """Persistence interface for food log entries."""

    def insert_entry(self, entry: FoodLogEntry) -> FoodLogEntry:
        """Persist a new entry and return the stored copy."""

    def get_entry(self, owner_id: UUID, entry_id: UUID) -> FoodLogEntry | None:
        """Return an entry, including soft-deleted ones, or None."""

    def query_entries(
        self, owner_id: UUID, query: EntryQuery, limit: int, offset: int
    ) -> EntryPage:
        """Return a page of live entries, newest date and time first."""

    def list_entries_between(
        self, owner_id: UUID, start: date, end: date
    ) -> list[FoodLogEntry]:
        """Return every live entry logged within the inclusive date range."""

    def apply_update(
        self,
        owner_id: UUID,
        entry_id: UUID,
        changes: dict[str, object],
        expected_counter: int,
    ) -> FoodLogEntry | None:
        """Apply changes and bump the counter if it still equals expected.

        Returns None when no live entry with that counter exists.
        """

    def list_changed_since(
        self,
        owner_id: UUID,
        since: datetime | None,
        logged_from: date,
        limit: int,
    ) -> list[FoodLogEntry]:
        """Return entries updated after `since`, tombstones included."""


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class FoodLogService:
    """Service that owns entry totals and the update counter."""

    repository: FoodLogRepository
    clock: Callable[[], datetime] = field(default=_utc_now)

    def create(self, owner_id: UUID, draft: EntryDraft) -> FoodLogEntry:
        """Create an entry with server-computed totals."""
        now = self.clock()
        meal_type = draft.meal_type or MealType.SNACK.value
        entry_method = draft.entry_method or EntryMethod.MANUAL.value
        _validate_meal_type(meal_type)
        _validate_entry_method(entry_method)
        logged_at = draft.logged_at or now
        logged_date = draft.logged_date or logged_at.astimezone(UTC).date()
        items = _build_items(draft.items)
        entry = FoodLogEntry(
            id=uuid4(),
            owner_id=owner_id,
            logged_date=logged_date,
            logged_at=logged_at,
            meal_type=meal_type,
            entry_method=entry_method,
            items=items,
            totals=aggregate_items(items),
            update_counter=0,
            created_at=now,
            updated_at=now,
            meal_name=draft.meal_name,
            notes=draft.notes,
        )
        stored = self.repository.insert_entry(entry)
        _logger.info(
            "Created food log: owner=%s id=%s items=%s",
            owner_id,
            stored.id,
            len(stored.items),
        )
        return stored

    def list_entries(
        self,
        owner_id: UUID,
        query: EntryQuery | None = None,
        limit: int = DEFAULT_PAGE_LIMIT,
        offset: int = 0,
    ) -> EntryPage:
        """Return a page of live entries matching a date or date range."""
        if not 1 <= limit <= MAX_PAGE_LIMIT:
            raise ValidationError(f"limit must be between 1 and {MAX_PAGE_LIMIT}")
        if offset < 0:
            raise ValidationError("offset must not be negative")
        query = query or EntryQuery()
        if query.start and query.end and query.start > query.end:
            raise ValidationError("startDate must not be after endDate")
        return self.repository.query_entries(owner_id, query, limit, offset)

    def get(self, owner_id: UUID, entry_id: UUID) -> FoodLogEntry:
        """Return a live entry owned by the caller."""
        entry = self.repository.get_entry(owner_id, entry_id)
        if entry is None or entry.is_deleted:
            raise NotFoundError("Food log not found")
        return entry

    def update(
        self,
        owner_id: UUID,
        entry_id: UUID,
        patch: EntryPatch,
        expected_counter: int | None = None,
    ) -> FoodLogEntry:
        """Apply a partial update; replacing items recomputes totals."""
        if patch.is_empty():
            raise ValidationError("No fields to update")
        if patch.meal_type is not None:
            _validate_meal_type(patch.meal_type)
        if patch.entry_method is not None:
            _validate_entry_method(patch.entry_method)
        current = self._current_for_write(owner_id, entry_id, expected_counter)

        changes: dict[str, object] = {
            name: value
            for name, value in (
                ("logged_date", patch.logged_date),
                ("logged_at", patch.logged_at),
                ("meal_type", patch.meal_type),
                ("entry_method", patch.entry_method),
                ("meal_name", patch.meal_name),
                ("notes", patch.notes),
            )
            if value is not None
        }
        if patch.items is not None:
            items = _build_items(patch.items)
            changes["items"] = items
            changes["totals"] = aggregate_items(items)
        changes["updated_at"] = self.clock()

        updated = self._apply(owner_id, current, changes)
        _logger.info(
            "Updated food log: owner=%s id=%s counter=%s",
            owner_id,
            entry_id,
            updated.update_counter,
        )
        return updated

    def soft_delete(
        self, owner_id: UUID, entry_id: UUID, expected_counter: int | None = None
    ) -> FoodLogEntry:
        """Mark an entry deleted; it stays stored as a tombstone."""
        current = self._current_for_write(owner_id, entry_id, expected_counter)
        now = self.clock()
        deleted = self._apply(
            owner_id, current, {"deleted_at": now, "updated_at": now}
        )
        _logger.info(
            "Deleted food log: owner=%s id=%s counter=%s",
            owner_id,
            entry_id,
            deleted.update_counter,
        )
        return deleted

    def summary(
        self, owner_id: UUID, day: date, targets: MacroTargets | None = None
    ) -> DailySummary:
        """Return the day's totals with entries grouped by meal."""
        entries = self.repository.list_entries_between(owner_id, day, day)
        return build_daily_summary(day, entries, targets)

    def progress(
        self,
        owner_id: UUID,
        targets: MacroTargets,
        start: date | None = None,
        end: date | None = None,
    ) -> ProgressReport:
        """Return per-day intake against targets for days with entries."""
        end = end or self.clock().date()
        start = start or end - timedelta(days=PROGRESS_DEFAULT_DAYS - 1)
        if start > end:
            raise ValidationError("start must not be after end")

        by_day: dict[date, list[FoodLogEntry]] = {}
        for entry in self.repository.list_entries_between(owner_id, start, end):
            by_day.setdefault(entry.logged_date, []).append(entry)

        days = [
            _progress_day(day, aggregate_entries(entries).nutrients, targets)
            for day, entries in sorted(by_day.items())
        ]
        tracked = len(days) or 1
        return ProgressReport(
            start=start,
            end=end,
            days=days,
            average_calories=round_half_up(
                sum(day.calories.consumed for day in days) / tracked
            ),
            average_protein_g=round_half_up(
                sum(day.protein.consumed for day in days) / tracked
            ),
            average_carbs_g=round_half_up(
                sum(day.carbs.consumed for day in days) / tracked
            ),
            average_fat_g=round_half_up(
                sum(day.fat.consumed for day in days) / tracked
            ),
        )

    def changes_since(
        self,
        owner_id: UUID,
        since: datetime | None = None,
        limit: int = SYNC_BATCH_LIMIT,
    ) -> list[FoodLogEntry]:
        """Return recent entries changed after `since`, deletions included."""
        limit = max(1, min(limit, SYNC_BATCH_LIMIT))
        logged_from = self.clock().date() - timedelta(days=SYNC_WINDOW_DAYS)
        return self.repository.list_changed_since(owner_id, since, logged_from, limit)

    def _current_for_write(
        self, owner_id: UUID, entry_id: UUID, expected_counter: int | None
    ) -> FoodLogEntry:
        current = self.get(owner_id, entry_id)
        if expected_counter is not None and expected_counter != current.update_counter:
            _logger.warning(
                "Stale write rejected: id=%s expected=%s actual=%s",
                entry_id,
                expected_counter,
                current.update_counter,
            )
            raise ConflictError()
        return current

    def _apply(
        self, owner_id: UUID, current: FoodLogEntry, changes: dict[str, object]
    ) -> FoodLogEntry:
        updated = self.repository.apply_update(
            owner_id, current.id, changes, current.update_counter
        )
        if updated is not None:
            return updated
        # Lost a race: report missing if the entry vanished, otherwise conflict.
        self.get(owner_id, current.id)
        _logger.warning(
            "Concurrent write detected: id=%s counter=%s",
            current.id,
            current.update_counter,
        )
        raise ConflictError()


def _build_items(drafts: tuple[ItemDraft, ...]) -> tuple[LogItem, ...]:
    return tuple(
        LogItem(
            id=draft.id or uuid4(),
            snapshot=draft.snapshot,
            nutrients=draft.nutrients,
            quantity=_positive(draft.quantity, "quantity"),
            serving_multiplier=_positive(draft.serving_multiplier, "servingMultiplier"),
            food_id=draft.food_id,
            sort_order=index,
        )
        for index, draft in enumerate(drafts)
    )


def _positive(value: float, name: str) -> float:
    if value <= 0:
        raise ValidationError(f"{name} must be positive")
    return value


def _validate_meal_type(meal_type: str) -> None:
    if meal_type not in MEAL_TYPES:
        raise ValidationError(f"Unknown meal type: {meal_type}")


def _validate_entry_method(entry_method: str) -> None:
    if entry_method not in ENTRY_METHODS:
        raise ValidationError(f"Unknown entry method: {entry_method}")


def _progress_day(day: date, consumed, targets: MacroTargets) -> ProgressDay:
    return ProgressDay(
        day=day,
        calories=_macro_progress(consumed["calories"], targets.calories),
        protein=_macro_progress(consumed["protein_g"], targets.protein_g),
        carbs=_macro_progress(consumed["carbs_g"], targets.carbs_g),
        fat=_macro_progress(consumed["fat_g"], targets.fat_g),
    )


def _macro_progress(consumed: float, goal: float) -> MacroProgress:
    percentage = round_half_up(consumed / goal * 100) if goal > 0 else 0
    return MacroProgress(
        consumed=round_half_up(consumed), goal=goal, percentage=percentage
    )
