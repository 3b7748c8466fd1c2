"""Domain models for food log entries."""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from uuid import UUID

from diet_tracker.domain.nutrients import ZERO_VECTOR, NutrientVector


class MealType(str, Enum):
    """Meal bucket an entry is logged under."""

    BREAKFAST = "breakfast"
    LUNCH = "lunch"
    DINNER = "dinner"
    SNACK = "snack"


class EntryMethod(str, Enum):
    """How the entry was captured."""

    MANUAL = "manual"
    BARCODE = "barcode"
    PHOTO = "photo"
    SEARCH = "search"


MEAL_TYPES: tuple[str, ...] = tuple(meal.value for meal in MealType)
ENTRY_METHODS: tuple[str, ...] = tuple(method.value for method in EntryMethod)


@dataclass(frozen=True)
class FoodSnapshot:
    """Source food details as the user saw them when logging."""

    name: str
    brand: str | None = None
    serving_description: str | None = None


@dataclass(frozen=True)
class LogItem:
    """One food contribution within an entry."""

    id: UUID
    snapshot: FoodSnapshot
    nutrients: NutrientVector = ZERO_VECTOR
    quantity: float = 1.0
    serving_multiplier: float = 1.0
    food_id: str | None = None
    sort_order: int = 0


@dataclass(frozen=True)
class NutrientTotals:
    """Aggregated nutrients with the number of items that produced them."""

    nutrients: NutrientVector = ZERO_VECTOR
    item_count: int = 0


EMPTY_TOTALS = NutrientTotals()


@dataclass(frozen=True)
class FoodLogEntry:
    """A logged meal or snack with its items and cached totals."""

    id: UUID
    owner_id: UUID
    logged_date: date
    logged_at: datetime
    meal_type: str
    entry_method: str
    items: tuple[LogItem, ...]
    totals: NutrientTotals
    update_counter: int
    created_at: datetime
    updated_at: datetime
    meal_name: str | None = None
    notes: str | None = None
    deleted_at: datetime | None = None

    @property
    def is_deleted(self) -> bool:
        """Return True once the entry has been soft-deleted."""
        return self.deleted_at is not None


@dataclass(frozen=True)
class ItemDraft:
    """Client-supplied item before it is assigned an id."""

    snapshot: FoodSnapshot
    nutrients: NutrientVector = ZERO_VECTOR
    quantity: float = 1.0
    serving_multiplier: float = 1.0
    food_id: str | None = None
    id: UUID | None = None


@dataclass(frozen=True)
class EntryDraft:
    """Input for creating an entry; unset fields take server defaults."""

    logged_date: date | None = None
    logged_at: datetime | None = None
    meal_type: str | None = None
    entry_method: str | None = None
    meal_name: str | None = None
    notes: str | None = None
    items: tuple[ItemDraft, ...] = ()


@dataclass(frozen=True)
class EntryPatch:
    """Partial update for an entry.

    A field left as None is untouched. `items` replaces the whole item list and
    always triggers a totals recomputation.
    """

    logged_date: date | None = None
    logged_at: datetime | None = None
    meal_type: str | None = None
    entry_method: str | None = None
    meal_name: str | None = None
    notes: str | None = None
    items: tuple[ItemDraft, ...] | None = None

    def is_empty(self) -> bool:
        """Return True when the patch changes nothing."""
        return all(
            value is None
            for value in (
                self.logged_date,
                self.logged_at,
                self.meal_type,
                self.entry_method,
                self.meal_name,
                self.notes,
                self.items,
            )
        )


@dataclass(frozen=True)
class EntryQuery:
    """Date filter for listing entries; both bounds inclusive."""

    start: date | None = None
    end: date | None = None

    @classmethod
    def for_day(cls, day: date) -> "EntryQuery":
        """Return a query matching a single calendar date."""
        return cls(start=day, end=day)

    def matches(self, day: date) -> bool:
        """Return True when the date falls inside the range."""
        if self.start is not None and day < self.start:
            return False
        return not (self.end is not None and day > self.end)


@dataclass(frozen=True)
class EntryPage:
    """A page of entries with pagination metadata."""

    entries: list[FoodLogEntry]
    total: int
    limit: int
    offset: int

    @property
    def has_more(self) -> bool:
        """Return True when entries remain past this page."""
        return self.offset + len(self.entries) < self.total


@dataclass(frozen=True)
class MacroTargets:
    """Daily calorie and macro targets shown next to a summary."""

    calories: float
    protein_g: float
    carbs_g: float
    fat_g: float


@dataclass(frozen=True)
class DailySummary:
    """Day totals with entries grouped by meal type.

    `entries` holds every live entry of the day in logging order, including
    those whose meal type has no bucket.
    """

    day: date
    totals: NutrientTotals
    meal_count: int
    meals: dict[str, list[FoodLogEntry]]
    entries: list[FoodLogEntry] = field(default_factory=list)
    targets: MacroTargets | None = None

    @property
    def unassigned(self) -> list[FoodLogEntry]:
        """Return entries whose meal type has no bucket."""
        return [entry for entry in self.entries if entry.meal_type not in MEAL_TYPES]


@dataclass(frozen=True)
class MacroProgress:
    """Consumed amount against a goal."""

    consumed: int
    goal: float
    percentage: int


@dataclass(frozen=True)
class ProgressDay:
    """Per-day progress against the owner's goals."""

    day: date
    calories: MacroProgress
    protein: MacroProgress
    carbs: MacroProgress
    fat: MacroProgress


@dataclass(frozen=True)
class ProgressReport:
    """Progress for a date range with averages over tracked days."""

    start: date
    end: date
    days: list[ProgressDay] = field(default_factory=list)
    average_calories: int = 0
    average_protein_g: int = 0
    average_carbs_g: int = 0
    average_fat_g: int = 0

    @property
    def days_tracked(self) -> int:
        """Return the number of days with at least one entry."""
        return len(self.days)
