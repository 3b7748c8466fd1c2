"""Profile, goal, progress and sync endpoints."""

from datetime import UTC, date, datetime
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from diet_tracker.api.dependencies import get_container, require_owner
from diet_tracker.api.models import (
    CalculateGoalsRequest,
    FoodLogEntryModel,
    GoalCalculationModel,
    GoalsModel,
    GoalsUpdateRequest,
    ProfileModel,
    ProfileUpdateRequest,
    ProgressReportModel,
)
from diet_tracker.containers import AppContainer
from diet_tracker.services.aggregation import round_half_up

router = APIRouter(tags=["goals"])


@router.get("/goals")
async def get_goals(
    owner_id: UUID = Depends(require_owner),
    container: AppContainer = Depends(get_container),
) -> GoalsModel:
    """Return the owner's goals, creating defaults on first access."""
    return GoalsModel.from_domain(container.goal_service.get_goals(owner_id))


@router.put("/goals")
async def update_goals(
    body: GoalsUpdateRequest,
    owner_id: UUID = Depends(require_owner),
    container: AppContainer = Depends(get_container),
) -> GoalsModel:
    """Manually override goals."""
    goals = container.goal_service.update_goals(owner_id, body.to_patch())
    return GoalsModel.from_domain(goals)


@router.get("/profile")
async def get_profile(
    owner_id: UUID = Depends(require_owner),
    container: AppContainer = Depends(get_container),
) -> ProfileModel:
    """Return the owner's profile, creating defaults on first access."""
    return ProfileModel.from_domain(container.goal_service.get_profile(owner_id))


@router.put("/profile")
async def update_profile(
    body: ProfileUpdateRequest,
    owner_id: UUID = Depends(require_owner),
    container: AppContainer = Depends(get_container),
) -> ProfileModel:
    """Edit biometrics; goals are left as they are."""
    profile = container.goal_service.update_profile(owner_id, body.to_patch())
    return ProfileModel.from_domain(profile)


@router.post("/profile/calculate-goals")
async def calculate_goals(
    body: CalculateGoalsRequest,
    owner_id: UUID = Depends(require_owner),
    container: AppContainer = Depends(get_container),
) -> dict[str, object]:
    """Derive and persist goals from biometrics."""
    calculation, goals = container.goal_service.calculate_goals(
        owner_id, body.to_patch(), goal_type=body.goal_type
    )
    return {
        "calculations": GoalCalculationModel.from_domain(
            calculation, bmr=round_half_up(calculation.bmr)
        ),
        "goals": GoalsModel.from_domain(goals),
    }


@router.get("/progress")
async def progress(
    start: date | None = None,
    end: date | None = None,
    owner_id: UUID = Depends(require_owner),
    container: AppContainer = Depends(get_container),
) -> ProgressReportModel:
    """Return per-day intake against goals for a date range."""
    targets = container.goal_service.targets_for(owner_id)
    report = container.food_log_service.progress(owner_id, targets, start, end)
    return ProgressReportModel.from_domain(report, targets)


@router.get("/sync")
async def sync(
    since: datetime | None = Query(default=None),
    owner_id: UUID = Depends(require_owner),
    container: AppContainer = Depends(get_container),
) -> dict[str, object]:
    """Return profile, goals and recently changed entries, tombstones included."""
    synced_at = datetime.now(tz=UTC)
    entries = container.food_log_service.changes_since(owner_id, since)
    goals = container.goal_service.get_goals(owner_id)
    profile = container.goal_service.mark_synced(owner_id, synced_at)
    return {
        "syncedAt": synced_at,
        "data": {
            "profile": ProfileModel.from_domain(profile),
            "goals": GoalsModel.from_domain(goals),
            "foodLogs": [FoodLogEntryModel.from_domain(entry) for entry in entries],
        },
    }
