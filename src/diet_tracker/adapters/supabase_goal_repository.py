"""Supabase repositories for user profiles and goals."""

from dataclasses import dataclass
from datetime import date, datetime
from uuid import UUID

from supabase import Client

from diet_tracker.domain.goals import UserGoals, UserProfile
from diet_tracker.errors import InternalError
from diet_tracker.services.goals import GoalsRepository, ProfileRepository

_PROFILE_COLUMNS = (
    "user_id, display_name, height_cm, current_weight_kg, target_weight_kg, "
    "birth_date, gender, activity_level, onboarding_completed, last_sync_at, "
    "updated_at"
)
_GOALS_COLUMNS = (
    "user_id, daily_calories, daily_protein_g, daily_carbs_g, daily_fat_g, "
    "target_weight_kg, activity_level, goal_type, weekly_goal_kg, updated_at"
)


@dataclass
class SupabaseProfileRepository(ProfileRepository):
    """Supabase implementation for user profiles."""

    client: Client

    def get_or_create_profile(self, owner_id: UUID) -> UserProfile:
        """Insert a default profile if absent, then return the stored row."""
        defaults = UserProfile(owner_id=owner_id)
        self.client.table("user_profiles").upsert(
            {
                "user_id": str(owner_id),
                "activity_level": defaults.activity_level,
                "onboarding_completed": defaults.onboarding_completed,
            },
            on_conflict="user_id",
            ignore_duplicates=True,
        ).execute()
        response = (
            self.client.table("user_profiles")
            .select(_PROFILE_COLUMNS)
            .eq("user_id", str(owner_id))
            .limit(1)
            .execute()
        )
        if not response.data:
            raise InternalError("Failed to load user profile")
        return _parse_profile(response.data[0])

    def update_profile(self, owner_id: UUID, changes: dict[str, object]) -> UserProfile:
        """Update profile fields and return the stored row."""
        response = (
            self.client.table("user_profiles")
            .update(_serialize(changes))
            .eq("user_id", str(owner_id))
            .execute()
        )
        if not response.data:
            raise InternalError("Failed to update user profile")
        return _parse_profile(response.data[0])


@dataclass
class SupabaseGoalsRepository(GoalsRepository):
    """Supabase implementation for user goals."""

    client: Client

    def get_or_create_goals(self, owner_id: UUID) -> UserGoals:
        """Insert default goals if absent, then return the stored row."""
        defaults = UserGoals(owner_id=owner_id)
        self.client.table("user_goals").upsert(
            {
                "user_id": str(owner_id),
                "daily_calories": defaults.daily_calories,
                "daily_protein_g": defaults.daily_protein_g,
                "daily_carbs_g": defaults.daily_carbs_g,
                "daily_fat_g": defaults.daily_fat_g,
                "activity_level": defaults.activity_level,
                "goal_type": defaults.goal_type,
            },
            on_conflict="user_id",
            ignore_duplicates=True,
        ).execute()
        response = (
            self.client.table("user_goals")
            .select(_GOALS_COLUMNS)
            .eq("user_id", str(owner_id))
            .limit(1)
            .execute()
        )
        if not response.data:
            raise InternalError("Failed to load user goals")
        return _parse_goals(response.data[0])

    def update_goals(self, owner_id: UUID, changes: dict[str, object]) -> UserGoals:
        """Update goal fields and return the stored row."""
        response = (
            self.client.table("user_goals")
            .update(_serialize(changes))
            .eq("user_id", str(owner_id))
            .execute()
        )
        if not response.data:
            raise InternalError("Failed to update user goals")
        return _parse_goals(response.data[0])


def _serialize(changes: dict[str, object]) -> dict[str, object]:
    return {
        name: value.isoformat() if isinstance(value, date | datetime) else value
        for name, value in changes.items()
    }


def _optional_float(value: object) -> float | None:
    return float(value) if value is not None else None


def _optional_datetime(value: object) -> datetime | None:
    return datetime.fromisoformat(str(value)) if value else None


def _parse_profile(row: dict[str, object]) -> UserProfile:
    birth_date = row.get("birth_date")
    return UserProfile(
        owner_id=UUID(str(row["user_id"])),
        display_name=row.get("display_name"),
        height_cm=_optional_float(row.get("height_cm")),
        current_weight_kg=_optional_float(row.get("current_weight_kg")),
        target_weight_kg=_optional_float(row.get("target_weight_kg")),
        birth_date=date.fromisoformat(str(birth_date)[:10]) if birth_date else None,
        gender=row.get("gender"),
        activity_level=str(row.get("activity_level") or "moderate"),
        onboarding_completed=bool(row.get("onboarding_completed", False)),
        last_sync_at=_optional_datetime(row.get("last_sync_at")),
        updated_at=_optional_datetime(row.get("updated_at")),
    )


def _parse_goals(row: dict[str, object]) -> UserGoals:
    return UserGoals(
        owner_id=UUID(str(row["user_id"])),
        daily_calories=float(row.get("daily_calories", 2000)),
        daily_protein_g=float(row.get("daily_protein_g", 50)),
        daily_carbs_g=float(row.get("daily_carbs_g", 250)),
        daily_fat_g=float(row.get("daily_fat_g", 65)),
        target_weight_kg=_optional_float(row.get("target_weight_kg")),
        activity_level=str(row.get("activity_level") or "moderate"),
        goal_type=str(row.get("goal_type") or "maintain"),
        weekly_goal_kg=_optional_float(row.get("weekly_goal_kg")),
        updated_at=_optional_datetime(row.get("updated_at")),
    )
