"""Goal derivation and profile/goal persistence."""

import logging
from dataclasses import dataclass
from datetime import UTC, date, datetime
from typing import Protocol
from uuid import UUID

from diet_tracker.domain.food_logs import MacroTargets
from diet_tracker.domain.goals import (
    ActivityLevel,
    BiometricProfile,
    Gender,
    GoalCalculation,
    GoalsPatch,
    GoalType,
    ProfilePatch,
    UserGoals,
    UserProfile,
)
from diet_tracker.errors import ValidationError
from diet_tracker.services.aggregation import round_half_up

ACTIVITY_MULTIPLIERS = {
    ActivityLevel.SEDENTARY.value: 1.2,
    ActivityLevel.LIGHT.value: 1.375,
    ActivityLevel.MODERATE.value: 1.55,
    ActivityLevel.ACTIVE.value: 1.725,
    ActivityLevel.VERY_ACTIVE.value: 1.9,
}
DEFAULT_ACTIVITY_MULTIPLIER = 1.55

MIN_DAILY_CALORIES = 1200
DEFICIT_KCAL = 500
SURPLUS_KCAL = 400
LOSE_RATE_KG_PER_WEEK = -0.5
GAIN_RATE_KG_PER_WEEK = 0.35

PROTEIN_G_PER_KG = 1.8
FAT_CALORIE_SHARE = 0.28
KCAL_PER_G_PROTEIN = 4
KCAL_PER_G_CARBS = 4
KCAL_PER_G_FAT = 9

_logger = logging.getLogger(__name__)


def calculate_age(birth_date: date, today: date) -> int:
    """Return full years between the birth date and today."""
    age = today.year - birth_date.year
    if (today.month, today.day) < (birth_date.month, birth_date.day):
        age -= 1
    return age


def calculate_bmr(weight_kg: float, height_cm: float, age: int, gender: str) -> float:
    """Mifflin-St Jeor basal metabolic rate."""
    base = 10 * weight_kg + 6.25 * height_cm - 5 * age
    return base + 5 if gender == Gender.MALE.value else base - 161


def activity_multiplier(activity_level: str | None) -> float:
    """Return the TDEE multiplier, defaulting to moderate."""
    if activity_level is None:
        return DEFAULT_ACTIVITY_MULTIPLIER
    return ACTIVITY_MULTIPLIERS.get(activity_level, DEFAULT_ACTIVITY_MULTIPLIER)


def derive_goal_type(
    current_weight_kg: float, target_weight_kg: float | None
) -> GoalType:
    """Infer the goal direction from current and target weight."""
    if target_weight_kg is None or target_weight_kg == current_weight_kg:
        return GoalType.MAINTAIN
    if target_weight_kg < current_weight_kg:
        return GoalType.LOSE
    return GoalType.GAIN


def calorie_target(tdee: int, goal_type: GoalType) -> tuple[int, float]:
    """Return daily calories and the implied weekly weight change."""
    if goal_type is GoalType.LOSE:
        return max(MIN_DAILY_CALORIES, tdee - DEFICIT_KCAL), LOSE_RATE_KG_PER_WEEK
    if goal_type is GoalType.GAIN:
        return tdee + SURPLUS_KCAL, GAIN_RATE_KG_PER_WEEK
    return tdee, 0.0


def macro_targets(weight_kg: float, daily_calories: int) -> tuple[int, int, int]:
    """Return protein, fat and carb grams.

    Carbs take the calories left after protein and fat and are not clamped,
    so a very low calorie target can yield a negative carb figure.
    """
    protein = round_half_up(weight_kg * PROTEIN_G_PER_KG)
    fat = round_half_up(FAT_CALORIE_SHARE * daily_calories / KCAL_PER_G_FAT)
    carbs = round_half_up(
        (daily_calories - protein * KCAL_PER_G_PROTEIN - fat * KCAL_PER_G_FAT)
        / KCAL_PER_G_CARBS
    )
    return protein, fat, carbs


def compute_goals(profile: BiometricProfile, today: date) -> GoalCalculation:
    """Derive BMR, TDEE and daily targets from a biometric profile."""
    age = calculate_age(profile.birth_date, today)
    bmr = calculate_bmr(profile.weight_kg, profile.height_cm, age, profile.gender)
    tdee = round_half_up(bmr * activity_multiplier(profile.activity_level))
    goal_type = (
        GoalType(profile.goal_type)
        if profile.goal_type
        else derive_goal_type(profile.weight_kg, profile.target_weight_kg)
    )
    daily_calories, weekly_goal_kg = calorie_target(tdee, goal_type)
    protein, fat, carbs = macro_targets(profile.weight_kg, daily_calories)
    return GoalCalculation(
        age=age,
        bmr=bmr,
        tdee=tdee,
        daily_calories=daily_calories,
        daily_protein_g=protein,
        daily_carbs_g=carbs,
        daily_fat_g=fat,
        goal_type=goal_type,
        weekly_goal_kg=weekly_goal_kg,
    )


class ProfileRepository(Protocol):
    """Persistence interface for user profiles."""

    def get_or_create_profile(self, owner_id: UUID) -> UserProfile:
        """Atomically insert a default profile if absent, then return it."""

    def update_profile(self, owner_id: UUID, changes: dict[str, object]) -> UserProfile:
        """Apply field changes to an existing profile and return it."""


class GoalsRepository(Protocol):
    """Persistence interface for user goals."""

    def get_or_create_goals(self, owner_id: UUID) -> UserGoals:
        """Atomically insert default goals if absent, then return them."""

    def update_goals(self, owner_id: UUID, changes: dict[str, object]) -> UserGoals:
        """Apply field changes to existing goals and return them."""


@dataclass
class GoalService:
    """Service for profiles, manual goal overrides and goal derivation."""

    profile_repository: ProfileRepository
    goals_repository: GoalsRepository

    def get_profile(self, owner_id: UUID) -> UserProfile:
        """Return the owner's profile, creating defaults on first access."""
        return self.profile_repository.get_or_create_profile(owner_id)

    def update_profile(self, owner_id: UUID, patch: ProfilePatch) -> UserProfile:
        """Edit biometric fields without touching goals."""
        _validate_profile_patch(patch, datetime.now(tz=UTC).date())
        self.profile_repository.get_or_create_profile(owner_id)
        changes = _patch_changes(patch)
        changes["updated_at"] = datetime.now(tz=UTC)
        return self.profile_repository.update_profile(owner_id, changes)

    def mark_synced(self, owner_id: UUID, synced_at: datetime) -> UserProfile:
        """Record the last time the owner's client pulled a sync batch."""
        self.profile_repository.get_or_create_profile(owner_id)
        return self.profile_repository.update_profile(
            owner_id, {"last_sync_at": synced_at}
        )

    def get_goals(self, owner_id: UUID) -> UserGoals:
        """Return the owner's goals, creating defaults on first access."""
        return self.goals_repository.get_or_create_goals(owner_id)

    def update_goals(self, owner_id: UUID, patch: GoalsPatch) -> UserGoals:
        """Persist a manual goal override."""
        _validate_goals_patch(patch)
        self.goals_repository.get_or_create_goals(owner_id)
        changes = _patch_changes(patch)
        changes["updated_at"] = datetime.now(tz=UTC)
        return self.goals_repository.update_goals(owner_id, changes)

    def targets_for(self, owner_id: UUID) -> MacroTargets:
        """Return the daily targets used by summaries and progress."""
        goals = self.get_goals(owner_id)
        return MacroTargets(
            calories=goals.daily_calories,
            protein_g=goals.daily_protein_g,
            carbs_g=goals.daily_carbs_g,
            fat_g=goals.daily_fat_g,
        )

    def calculate_goals(
        self,
        owner_id: UUID,
        inputs: ProfilePatch,
        goal_type: str | None = None,
        today: date | None = None,
    ) -> tuple[GoalCalculation, UserGoals]:
        """Derive goals from biometrics, then persist profile and goals.

        Overwrites any previous goals, including manual overrides.
        """
        evaluation_date = today or datetime.now(tz=UTC).date()
        biometrics = _require_biometrics(inputs, goal_type, evaluation_date)
        calculation = compute_goals(biometrics, evaluation_date)
        activity_level = biometrics.activity_level
        now = datetime.now(tz=UTC)

        self.profile_repository.get_or_create_profile(owner_id)
        profile_changes = _patch_changes(inputs)
        profile_changes.update(
            {
                "activity_level": activity_level,
                "onboarding_completed": True,
                "last_sync_at": now,
                "updated_at": now,
            }
        )
        self.profile_repository.update_profile(owner_id, profile_changes)

        self.goals_repository.get_or_create_goals(owner_id)
        goals = self.goals_repository.update_goals(
            owner_id,
            {
                "daily_calories": calculation.daily_calories,
                "daily_protein_g": calculation.daily_protein_g,
                "daily_carbs_g": calculation.daily_carbs_g,
                "daily_fat_g": calculation.daily_fat_g,
                "target_weight_kg": biometrics.target_weight_kg,
                "activity_level": activity_level,
                "goal_type": calculation.goal_type.value,
                "weekly_goal_kg": calculation.weekly_goal_kg,
                "updated_at": now,
            },
        )
        _logger.info(
            "Derived goals: owner=%s goal=%s calories=%s",
            owner_id,
            calculation.goal_type.value,
            calculation.daily_calories,
        )
        return calculation, goals


def _require_biometrics(
    inputs: ProfilePatch, goal_type: str | None, today: date
) -> BiometricProfile:
    required = {
        "heightCm": inputs.height_cm,
        "currentWeightKg": inputs.current_weight_kg,
        "birthDate": inputs.birth_date,
        "gender": inputs.gender,
        "activityLevel": inputs.activity_level,
    }
    missing = [name for name, value in required.items() if value is None]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")
    _validate_profile_patch(inputs, today)
    if goal_type is not None and goal_type not in {goal.value for goal in GoalType}:
        raise ValidationError(f"Unknown goal type: {goal_type}")
    return BiometricProfile(
        weight_kg=float(inputs.current_weight_kg),
        height_cm=float(inputs.height_cm),
        birth_date=inputs.birth_date,
        gender=inputs.gender,
        activity_level=inputs.activity_level,
        goal_type=goal_type,
        target_weight_kg=inputs.target_weight_kg,
    )


def _validate_profile_patch(patch: ProfilePatch, today: date) -> None:
    for name, value in (
        ("heightCm", patch.height_cm),
        ("currentWeightKg", patch.current_weight_kg),
        ("targetWeightKg", patch.target_weight_kg),
    ):
        if value is not None and value <= 0:
            raise ValidationError(f"{name} must be positive")
    if patch.gender is not None and patch.gender not in {g.value for g in Gender}:
        raise ValidationError(f"Unknown gender: {patch.gender}")
    if (
        patch.activity_level is not None
        and patch.activity_level not in ACTIVITY_MULTIPLIERS
    ):
        raise ValidationError(f"Unknown activity level: {patch.activity_level}")
    if patch.birth_date is not None and patch.birth_date > today:
        raise ValidationError("birthDate must not be in the future")


def _validate_goals_patch(patch: GoalsPatch) -> None:
    for name, value in (
        ("dailyCalories", patch.daily_calories),
        ("dailyProteinG", patch.daily_protein_g),
        ("dailyCarbsG", patch.daily_carbs_g),
        ("dailyFatG", patch.daily_fat_g),
    ):
        if value is not None and value < 0:
            raise ValidationError(f"{name} must not be negative")
    if patch.goal_type is not None and patch.goal_type not in {
        goal.value for goal in GoalType
    }:
        raise ValidationError(f"Unknown goal type: {patch.goal_type}")
    if (
        patch.activity_level is not None
        and patch.activity_level not in ACTIVITY_MULTIPLIERS
    ):
        raise ValidationError(f"Unknown activity level: {patch.activity_level}")


def _patch_changes(patch: ProfilePatch | GoalsPatch) -> dict[str, object]:
    return {
        name: value
        for name, value in vars(patch).items()
        if value is not None
    }

