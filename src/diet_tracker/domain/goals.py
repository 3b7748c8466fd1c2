"""Domain models for profiles and nutrition goals."""

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from uuid import UUID


class ActivityLevel(str, Enum):
    """Self-reported activity level."""

    SEDENTARY = "sedentary"
    LIGHT = "light"
    MODERATE = "moderate"
    ACTIVE = "active"
    VERY_ACTIVE = "very_active"


class GoalType(str, Enum):
    """Direction of the weight goal."""

    LOSE = "lose"
    MAINTAIN = "maintain"
    GAIN = "gain"


class Gender(str, Enum):
    """Gender as used by the BMR equation."""

    MALE = "male"
    FEMALE = "female"
    OTHER = "other"
    PREFER_NOT_TO_SAY = "prefer_not_to_say"


@dataclass(frozen=True)
class BiometricProfile:
    """Inputs to the goal calculation."""

    weight_kg: float
    height_cm: float
    birth_date: date
    gender: str
    activity_level: str | None = None
    goal_type: str | None = None
    target_weight_kg: float | None = None


@dataclass(frozen=True)
class GoalCalculation:
    """Derived energy expenditure and daily targets."""

    age: int
    bmr: float
    tdee: int
    daily_calories: int
    daily_protein_g: int
    daily_carbs_g: int
    daily_fat_g: int
    goal_type: GoalType
    weekly_goal_kg: float


@dataclass(frozen=True)
class UserProfile:
    """Biometric profile and onboarding state for an owner."""

    owner_id: UUID
    display_name: str | None = None
    height_cm: float | None = None
    current_weight_kg: float | None = None
    target_weight_kg: float | None = None
    birth_date: date | None = None
    gender: str | None = None
    activity_level: str = ActivityLevel.MODERATE.value
    onboarding_completed: bool = False
    last_sync_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True)
class UserGoals:
    """Daily targets for an owner, derived or manually set."""

    owner_id: UUID
    daily_calories: float = 2000
    daily_protein_g: float = 50
    daily_carbs_g: float = 250
    daily_fat_g: float = 65
    target_weight_kg: float | None = None
    activity_level: str = ActivityLevel.MODERATE.value
    goal_type: str = GoalType.MAINTAIN.value
    weekly_goal_kg: float | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True)
class ProfilePatch:
    """Partial profile edit; None leaves a field untouched."""

    display_name: str | None = None
    height_cm: float | None = None
    current_weight_kg: float | None = None
    target_weight_kg: float | None = None
    birth_date: date | None = None
    gender: str | None = None
    activity_level: str | None = None


@dataclass(frozen=True)
class GoalsPatch:
    """Manual goal override; None leaves a field untouched."""

    daily_calories: float | None = None
    daily_protein_g: float | None = None
    daily_carbs_g: float | None = None
    daily_fat_g: float | None = None
    target_weight_kg: float | None = None
    activity_level: str | None = None
    goal_type: str | None = None
    weekly_goal_kg: float | None = None
