"""Presentation state for a day summary, advanced by explicit events."""

from dataclasses import dataclass, replace
from enum import Enum

from diet_tracker.domain.food_logs import DailySummary, FoodLogEntry
from diet_tracker.errors import DietTrackerError
from diet_tracker.services.aggregation import build_daily_summary


class SyncStatus(str, Enum):
    """Lifecycle of a summary fetch."""

    IDLE = "idle"
    FETCHING = "fetching"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class SummaryState:
    """What a screen showing one day should render."""

    status: SyncStatus = SyncStatus.IDLE
    summary: DailySummary | None = None
    degraded: bool = False
    error: DietTrackerError | None = None


@dataclass(frozen=True)
class FetchStarted:
    pass


@dataclass(frozen=True)
class FetchSucceeded:
    summary: DailySummary


@dataclass(frozen=True)
class FetchFailed:
    error: DietTrackerError
    fallback: DailySummary | None = None


@dataclass(frozen=True)
class WriteSucceeded:
    entry: FoodLogEntry


SyncEvent = FetchStarted | FetchSucceeded | FetchFailed | WriteSucceeded


def reduce(state: SummaryState, event: SyncEvent) -> SummaryState:
    """Return the state that follows an event."""
    if isinstance(event, FetchStarted):
        return replace(state, status=SyncStatus.FETCHING)
    if isinstance(event, FetchSucceeded):
        return SummaryState(status=SyncStatus.SUCCEEDED, summary=event.summary)
    if isinstance(event, FetchFailed):
        return SummaryState(
            status=SyncStatus.FAILED,
            summary=event.fallback,
            degraded=event.fallback is not None,
            error=event.error,
        )
    if isinstance(event, WriteSucceeded):
        if state.summary is None:
            return state
        return replace(state, summary=_apply_write(state.summary, event.entry))
    raise TypeError(f"Unsupported event: {event!r}")


def _apply_write(summary: DailySummary, entry: FoodLogEntry) -> DailySummary:
    entries = [current for current in summary.entries if current.id != entry.id]
    if entry.logged_date == summary.day and not entry.is_deleted:
        entries.append(entry)
    return build_daily_summary(summary.day, entries, summary.targets)
