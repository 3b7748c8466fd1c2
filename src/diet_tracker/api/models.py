"""Pydantic models for the JSON API.

Field names are snake_case in Python and camelCase on the wire. The same
models are used by the server routes and by the HTTP client.
"""

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from diet_tracker.domain.food_logs import (
    DailySummary,
    EntryDraft,
    EntryPatch,
    FoodLogEntry,
    FoodSnapshot,
    ItemDraft,
    LogItem,
    MacroProgress,
    MacroTargets,
    NutrientTotals,
    ProgressReport,
)
from diet_tracker.domain.goals import (
    GoalCalculation,
    GoalsPatch,
    ProfilePatch,
    UserGoals,
    UserProfile,
)
from diet_tracker.domain.nutrients import NUTRIENT_KEYS, NutrientVector
from diet_tracker.domain.nutrition import BarcodeProduct, FoodDetails, FoodSummary
from diet_tracker.errors import ValidationError
from diet_tracker.services.aggregation import build_daily_summary, round_for_display

_KEY_BY_WIRE_NAME = {to_camel(key): key for key in NUTRIENT_KEYS}
ITEM_COUNT_FIELD = "itemCount"
MEAL_COUNT_FIELD = "mealCount"


def nutrients_to_wire(
    nutrients: NutrientVector, include_zeros: bool = False
) -> dict[str, float]:
    """Return nutrients keyed by their camelCase wire names."""
    return {
        to_camel(key): amount
        for key, amount in nutrients.to_dict(include_zeros=include_zeros).items()
    }


def nutrients_from_wire(raw: dict[str, float]) -> NutrientVector:
    """Parse camelCase nutrient amounts; unknown names are rejected."""
    values: dict[str, float] = {}
    for name, amount in raw.items():
        key = _KEY_BY_WIRE_NAME.get(name)
        if key is None:
            raise ValidationError(f"Unknown nutrient: {name}")
        values[key] = amount
    return NutrientVector(values)


def totals_to_wire(totals: NutrientTotals) -> dict[str, float]:
    """Return exact totals with the item count."""
    wire: dict[str, float] = nutrients_to_wire(totals.nutrients)
    wire[ITEM_COUNT_FIELD] = totals.item_count
    return wire


def totals_from_wire(raw: dict[str, float]) -> NutrientTotals:
    """Parse totals produced by `totals_to_wire`."""
    amounts = dict(raw)
    item_count = int(amounts.pop(ITEM_COUNT_FIELD, 0))
    amounts.pop(MEAL_COUNT_FIELD, None)
    return NutrientTotals(nutrients=nutrients_from_wire(amounts), item_count=item_count)


class WireModel(BaseModel):
    """Base model with camelCase aliases."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FoodSnapshotModel(WireModel):
    """Food details captured when an item was logged."""

    name: str = Field(min_length=1)
    brand: str | None = None
    serving_description: str | None = None


class LogItemModel(WireModel):
    """Item within a food log entry."""

    id: UUID | None = None
    food_id: str | None = None
    quantity: float = 1.0
    serving_multiplier: float = 1.0
    nutrients: dict[str, float] = Field(default_factory=dict)
    food_snapshot: FoodSnapshotModel
    sort_order: int = 0

    @classmethod
    def from_domain(cls, item: LogItem) -> "LogItemModel":
        return cls(
            id=item.id,
            food_id=item.food_id,
            quantity=item.quantity,
            serving_multiplier=item.serving_multiplier,
            nutrients=nutrients_to_wire(item.nutrients),
            food_snapshot=FoodSnapshotModel(
                name=item.snapshot.name,
                brand=item.snapshot.brand,
                serving_description=item.snapshot.serving_description,
            ),
            sort_order=item.sort_order,
        )

    @classmethod
    def from_draft(cls, draft: ItemDraft) -> "LogItemModel":
        return cls(
            id=draft.id,
            food_id=draft.food_id,
            quantity=draft.quantity,
            serving_multiplier=draft.serving_multiplier,
            nutrients=nutrients_to_wire(draft.nutrients),
            food_snapshot=FoodSnapshotModel(
                name=draft.snapshot.name,
                brand=draft.snapshot.brand,
                serving_description=draft.snapshot.serving_description,
            ),
        )

    def snapshot(self) -> FoodSnapshot:
        return FoodSnapshot(
            name=self.food_snapshot.name,
            brand=self.food_snapshot.brand,
            serving_description=self.food_snapshot.serving_description,
        )

    def to_draft(self) -> ItemDraft:
        """Return the item as a draft; raises ValidationError on bad nutrients."""
        return ItemDraft(
            id=self.id,
            snapshot=self.snapshot(),
            nutrients=nutrients_from_wire(self.nutrients),
            quantity=self.quantity,
            serving_multiplier=self.serving_multiplier,
            food_id=self.food_id,
        )

    def to_domain(self) -> LogItem:
        if self.id is None:
            raise ValidationError("Stored item is missing its id")
        return LogItem(
            id=self.id,
            snapshot=self.snapshot(),
            nutrients=nutrients_from_wire(self.nutrients),
            quantity=self.quantity,
            serving_multiplier=self.serving_multiplier,
            food_id=self.food_id,
            sort_order=self.sort_order,
        )


class FoodLogEntryModel(WireModel):
    """Food log entry as returned by the API."""

    id: UUID
    owner_id: UUID
    logged_date: date
    logged_at: datetime
    meal_type: str
    entry_method: str
    meal_name: str | None = None
    notes: str | None = None
    items: list[LogItemModel] = Field(default_factory=list)
    totals: dict[str, float] = Field(default_factory=dict)
    update_counter: int
    created_at: datetime
    updated_at: datetime
    deleted_at: datetime | None = None

    @classmethod
    def from_domain(cls, entry: FoodLogEntry) -> "FoodLogEntryModel":
        return cls(
            id=entry.id,
            owner_id=entry.owner_id,
            logged_date=entry.logged_date,
            logged_at=entry.logged_at,
            meal_type=entry.meal_type,
            entry_method=entry.entry_method,
            meal_name=entry.meal_name,
            notes=entry.notes,
            items=[LogItemModel.from_domain(item) for item in entry.items],
            totals=totals_to_wire(entry.totals),
            update_counter=entry.update_counter,
            created_at=entry.created_at,
            updated_at=entry.updated_at,
            deleted_at=entry.deleted_at,
        )

    def to_domain(self) -> FoodLogEntry:
        return FoodLogEntry(
            id=self.id,
            owner_id=self.owner_id,
            logged_date=self.logged_date,
            logged_at=self.logged_at,
            meal_type=self.meal_type,
            entry_method=self.entry_method,
            items=tuple(item.to_domain() for item in self.items),
            totals=totals_from_wire(self.totals),
            update_counter=self.update_counter,
            created_at=self.created_at,
            updated_at=self.updated_at,
            meal_name=self.meal_name,
            notes=self.notes,
            deleted_at=self.deleted_at,
        )


class EntryCreateRequest(WireModel):
    """Body of a create request; totals sent by clients are ignored."""

    logged_date: date | None = None
    logged_at: datetime | None = None
    meal_type: str | None = None
    entry_method: str | None = None
    meal_name: str | None = None
    notes: str | None = None
    items: list[LogItemModel] = Field(default_factory=list)
    totals: dict[str, float] | None = None

    @classmethod
    def from_draft(cls, draft: EntryDraft) -> "EntryCreateRequest":
        return cls(
            logged_date=draft.logged_date,
            logged_at=draft.logged_at,
            meal_type=draft.meal_type,
            entry_method=draft.entry_method,
            meal_name=draft.meal_name,
            notes=draft.notes,
            items=[LogItemModel.from_draft(item) for item in draft.items],
        )

    def to_draft(self) -> EntryDraft:
        return EntryDraft(
            logged_date=self.logged_date,
            logged_at=self.logged_at,
            meal_type=self.meal_type,
            entry_method=self.entry_method,
            meal_name=self.meal_name,
            notes=self.notes,
            items=tuple(item.to_draft() for item in self.items),
        )


class EntryUpdateRequest(WireModel):
    """Body of a partial update; totals sent by clients are ignored."""

    logged_date: date | None = None
    logged_at: datetime | None = None
    meal_type: str | None = None
    entry_method: str | None = None
    meal_name: str | None = None
    notes: str | None = None
    items: list[LogItemModel] | None = None
    totals: dict[str, float] | None = None
    expected_counter: int | None = None

    @classmethod
    def from_patch(
        cls, patch: EntryPatch, expected_counter: int | None = None
    ) -> "EntryUpdateRequest":
        return cls(
            logged_date=patch.logged_date,
            logged_at=patch.logged_at,
            meal_type=patch.meal_type,
            entry_method=patch.entry_method,
            meal_name=patch.meal_name,
            notes=patch.notes,
            items=(
                None
                if patch.items is None
                else [LogItemModel.from_draft(item) for item in patch.items]
            ),
            expected_counter=expected_counter,
        )

    def to_patch(self) -> EntryPatch:
        return EntryPatch(
            logged_date=self.logged_date,
            logged_at=self.logged_at,
            meal_type=self.meal_type,
            entry_method=self.entry_method,
            meal_name=self.meal_name,
            notes=self.notes,
            items=(
                None
                if self.items is None
                else tuple(item.to_draft() for item in self.items)
            ),
        )


class PaginationModel(WireModel):
    total: int
    limit: int
    offset: int
    has_more: bool


class MacroTargetsModel(WireModel):
    calories: float
    protein_g: float
    carbs_g: float
    fat_g: float

    @classmethod
    def from_domain(cls, targets: MacroTargets) -> "MacroTargetsModel":
        return cls(
            calories=targets.calories,
            protein_g=targets.protein_g,
            carbs_g=targets.carbs_g,
            fat_g=targets.fat_g,
        )

    def to_domain(self) -> MacroTargets:
        return MacroTargets(
            calories=self.calories,
            protein_g=self.protein_g,
            carbs_g=self.carbs_g,
            fat_g=self.fat_g,
        )


class DailySummaryModel(WireModel):
    """Day summary; totals are rounded for display."""

    date: date
    totals: dict[str, float]
    meals: dict[str, list[FoodLogEntryModel]]
    unassigned: list[FoodLogEntryModel] = Field(default_factory=list)
    targets: MacroTargetsModel | None = None

    @classmethod
    def from_domain(cls, summary: DailySummary) -> "DailySummaryModel":
        totals = {
            to_camel(key): amount
            for key, amount in round_for_display(summary.totals).items()
        }
        totals[ITEM_COUNT_FIELD] = summary.totals.item_count
        totals[MEAL_COUNT_FIELD] = summary.meal_count
        return cls(
            date=summary.day,
            totals=totals,
            meals={
                meal: [FoodLogEntryModel.from_domain(entry) for entry in entries]
                for meal, entries in summary.meals.items()
            },
            unassigned=[
                FoodLogEntryModel.from_domain(entry) for entry in summary.unassigned
            ],
            targets=(
                MacroTargetsModel.from_domain(summary.targets)
                if summary.targets
                else None
            ),
        )

    def to_domain(self) -> DailySummary:
        """Rebuild the exact summary from the entries' stored totals."""
        entries = [
            entry.to_domain()
            for bucket in (*self.meals.values(), self.unassigned)
            for entry in bucket
        ]
        return build_daily_summary(
            self.date,
            entries,
            self.targets.to_domain() if self.targets else None,
        )


class ProfileModel(WireModel):
    display_name: str | None = None
    height_cm: float | None = None
    current_weight_kg: float | None = None
    target_weight_kg: float | None = None
    birth_date: date | None = None
    gender: str | None = None
    activity_level: str
    onboarding_completed: bool
    last_sync_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_domain(cls, profile: UserProfile) -> "ProfileModel":
        return cls(
            display_name=profile.display_name,
            height_cm=profile.height_cm,
            current_weight_kg=profile.current_weight_kg,
            target_weight_kg=profile.target_weight_kg,
            birth_date=profile.birth_date,
            gender=profile.gender,
            activity_level=profile.activity_level,
            onboarding_completed=profile.onboarding_completed,
            last_sync_at=profile.last_sync_at,
            updated_at=profile.updated_at,
        )


class ProfileUpdateRequest(WireModel):
    display_name: str | None = None
    height_cm: float | None = None
    current_weight_kg: float | None = None
    target_weight_kg: float | None = None
    birth_date: date | None = None
    gender: str | None = None
    activity_level: str | None = None

    def to_patch(self) -> ProfilePatch:
        return ProfilePatch(
            display_name=self.display_name,
            height_cm=self.height_cm,
            current_weight_kg=self.current_weight_kg,
            target_weight_kg=self.target_weight_kg,
            birth_date=self.birth_date,
            gender=self.gender,
            activity_level=self.activity_level,
        )


class CalculateGoalsRequest(ProfileUpdateRequest):
    goal_type: str | None = None


class GoalsModel(WireModel):
    daily_calories: float
    daily_protein_g: float
    daily_carbs_g: float
    daily_fat_g: float
    target_weight_kg: float | None = None
    activity_level: str
    goal_type: str
    weekly_goal_kg: float | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_domain(cls, goals: UserGoals) -> "GoalsModel":
        return cls(
            daily_calories=goals.daily_calories,
            daily_protein_g=goals.daily_protein_g,
            daily_carbs_g=goals.daily_carbs_g,
            daily_fat_g=goals.daily_fat_g,
            target_weight_kg=goals.target_weight_kg,
            activity_level=goals.activity_level,
            goal_type=goals.goal_type,
            weekly_goal_kg=goals.weekly_goal_kg,
            updated_at=goals.updated_at,
        )


class GoalsUpdateRequest(WireModel):
    daily_calories: float | None = None
    daily_protein_g: float | None = None
    daily_carbs_g: float | None = None
    daily_fat_g: float | None = None
    target_weight_kg: float | None = None
    activity_level: str | None = None
    goal_type: str | None = None
    weekly_goal_kg: float | None = None

    def to_patch(self) -> GoalsPatch:
        return GoalsPatch(
            daily_calories=self.daily_calories,
            daily_protein_g=self.daily_protein_g,
            daily_carbs_g=self.daily_carbs_g,
            daily_fat_g=self.daily_fat_g,
            target_weight_kg=self.target_weight_kg,
            activity_level=self.activity_level,
            goal_type=self.goal_type,
            weekly_goal_kg=self.weekly_goal_kg,
        )


class GoalCalculationModel(WireModel):
    age: int
    bmr: int
    tdee: int
    daily_calories: int
    daily_protein_g: int
    daily_carbs_g: int
    daily_fat_g: int
    goal_type: str
    weekly_goal_kg: float

    @classmethod
    def from_domain(
        cls, calculation: GoalCalculation, bmr: int
    ) -> "GoalCalculationModel":
        return cls(
            age=calculation.age,
            bmr=bmr,
            tdee=calculation.tdee,
            daily_calories=calculation.daily_calories,
            daily_protein_g=calculation.daily_protein_g,
            daily_carbs_g=calculation.daily_carbs_g,
            daily_fat_g=calculation.daily_fat_g,
            goal_type=calculation.goal_type.value,
            weekly_goal_kg=calculation.weekly_goal_kg,
        )


class MacroProgressModel(WireModel):
    consumed: int
    goal: float
    percentage: int

    @classmethod
    def from_domain(cls, progress: MacroProgress) -> "MacroProgressModel":
        return cls(
            consumed=progress.consumed,
            goal=progress.goal,
            percentage=progress.percentage,
        )


class ProgressDayModel(WireModel):
    date: date
    calories: MacroProgressModel
    protein: MacroProgressModel
    carbs: MacroProgressModel
    fat: MacroProgressModel


class AverageIntakeModel(WireModel):
    calories: int
    protein: int
    carbs: int
    fat: int


class ProgressReportModel(WireModel):
    start: date
    end: date
    goals: MacroTargetsModel
    progress: list[ProgressDayModel]
    average: AverageIntakeModel
    days_tracked: int

    @classmethod
    def from_domain(
        cls, report: ProgressReport, targets: MacroTargets
    ) -> "ProgressReportModel":
        return cls(
            start=report.start,
            end=report.end,
            goals=MacroTargetsModel.from_domain(targets),
            progress=[
                ProgressDayModel(
                    date=day.day,
                    calories=MacroProgressModel.from_domain(day.calories),
                    protein=MacroProgressModel.from_domain(day.protein),
                    carbs=MacroProgressModel.from_domain(day.carbs),
                    fat=MacroProgressModel.from_domain(day.fat),
                )
                for day in report.days
            ],
            average=AverageIntakeModel(
                calories=report.average_calories,
                protein=report.average_protein_g,
                carbs=report.average_carbs_g,
                fat=report.average_fat_g,
            ),
            days_tracked=report.days_tracked,
        )


class FoodSummaryModel(WireModel):
    fdc_id: int
    description: str
    brand_owner: str | None = None
    brand_name: str | None = None
    data_type: str | None = None

    @classmethod
    def from_domain(cls, food: FoodSummary) -> "FoodSummaryModel":
        return cls(
            fdc_id=food.fdc_id,
            description=food.description,
            brand_owner=food.brand_owner,
            brand_name=food.brand_name,
            data_type=food.data_type,
        )


class FoodDetailsModel(FoodSummaryModel):
    serving_size_g: float | None = None
    serving_description: str | None = None
    nutrients: dict[str, float]

    @classmethod
    def from_details(cls, details: FoodDetails) -> "FoodDetailsModel":
        return cls(
            **FoodSummaryModel.from_domain(details.summary).model_dump(),
            serving_size_g=details.serving_size_g,
            serving_description=details.serving_description,
            nutrients=nutrients_to_wire(details.nutrients, include_zeros=True),
        )


class BarcodeProductModel(WireModel):
    barcode: str
    name: str
    brand: str | None = None
    serving_size: str | None = None
    image_url: str | None = None
    source: str
    nutrients: dict[str, float]

    @classmethod
    def from_domain(cls, product: BarcodeProduct) -> "BarcodeProductModel":
        return cls(
            barcode=product.barcode,
            name=product.name,
            brand=product.brand,
            serving_size=product.serving_size,
            image_url=product.image_url,
            source=product.source,
            nutrients=nutrients_to_wire(product.nutrients, include_zeros=True),
        )


class PhotoAnalysisRequest(WireModel):
    image: str = Field(min_length=1)
    mime_type: str = "image/jpeg"


class PhotoCandidateModel(WireModel):
    name: str
    confidence: float
    quantity: float
    unit: str | None = None
    nutrients: dict[str, float]
    item: LogItemModel
