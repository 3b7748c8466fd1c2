"""Food log endpoints."""

from datetime import UTC, date, datetime
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from diet_tracker.api.dependencies import get_container, require_owner
from diet_tracker.api.models import (
    DailySummaryModel,
    EntryCreateRequest,
    EntryUpdateRequest,
    FoodLogEntryModel,
    PaginationModel,
)
from diet_tracker.containers import AppContainer
from diet_tracker.domain.food_logs import EntryQuery
from diet_tracker.services.food_logs import DEFAULT_PAGE_LIMIT

router = APIRouter(prefix="/food-logs", tags=["food-logs"])


@router.get("")
async def list_food_logs(  # noqa: PLR0913
    day: date | None = Query(default=None, alias="date"),
    start_date: date | None = Query(default=None, alias="startDate"),
    end_date: date | None = Query(default=None, alias="endDate"),
    limit: int = DEFAULT_PAGE_LIMIT,
    offset: int = 0,
    owner_id: UUID = Depends(require_owner),
    container: AppContainer = Depends(get_container),
) -> dict[str, object]:
    """List live entries for a date or date range, newest first."""
    query = (
        EntryQuery.for_day(day)
        if day is not None
        else EntryQuery(start=start_date, end=end_date)
    )
    page = container.food_log_service.list_entries(owner_id, query, limit, offset)
    return {
        "data": [FoodLogEntryModel.from_domain(entry) for entry in page.entries],
        "pagination": PaginationModel(
            total=page.total,
            limit=page.limit,
            offset=page.offset,
            has_more=page.has_more,
        ),
    }


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_food_log(
    body: EntryCreateRequest,
    owner_id: UUID = Depends(require_owner),
    container: AppContainer = Depends(get_container),
) -> FoodLogEntryModel:
    """Create an entry; totals are always computed by the server."""
    entry = container.food_log_service.create(owner_id, body.to_draft())
    return FoodLogEntryModel.from_domain(entry)


@router.get("/summary")
async def daily_summary(
    day: date | None = Query(default=None, alias="date"),
    owner_id: UUID = Depends(require_owner),
    container: AppContainer = Depends(get_container),
) -> DailySummaryModel:
    """Return the day's totals grouped by meal with the owner's targets."""
    target_day = day or datetime.now(tz=UTC).date()
    targets = container.goal_service.targets_for(owner_id)
    summary = container.food_log_service.summary(owner_id, target_day, targets)
    return DailySummaryModel.from_domain(summary)


@router.get("/{entry_id}")
async def get_food_log(
    entry_id: UUID,
    owner_id: UUID = Depends(require_owner),
    container: AppContainer = Depends(get_container),
) -> FoodLogEntryModel:
    """Return one live entry."""
    entry = container.food_log_service.get(owner_id, entry_id)
    return FoodLogEntryModel.from_domain(entry)


@router.patch("/{entry_id}")
async def update_food_log(
    entry_id: UUID,
    body: EntryUpdateRequest,
    owner_id: UUID = Depends(require_owner),
    container: AppContainer = Depends(get_container),
) -> FoodLogEntryModel:
    """Apply a partial update, optionally guarded by `expectedCounter`."""
    entry = container.food_log_service.update(
        owner_id, entry_id, body.to_patch(), body.expected_counter
    )
    return FoodLogEntryModel.from_domain(entry)


@router.delete("/{entry_id}")
async def delete_food_log(
    entry_id: UUID,
    expected_counter: int | None = Query(default=None, alias="expectedCounter"),
    owner_id: UUID = Depends(require_owner),
    container: AppContainer = Depends(get_container),
) -> dict[str, object]:
    """Soft-delete an entry and return its tombstone."""
    entry = container.food_log_service.soft_delete(owner_id, entry_id, expected_counter)
    return {"success": True, "data": FoodLogEntryModel.from_domain(entry)}
