"""Nutrient aggregation shared by the server store and the client fallback.

Every function here is pure. Sums use `math.fsum`, which returns the correctly
rounded sum of its inputs, so totals do not depend on item order and repeated
calls return bit-identical results.
"""

import math
from collections.abc import Iterable, Mapping
from datetime import date
from decimal import ROUND_HALF_DOWN, ROUND_HALF_UP, Decimal

from diet_tracker.domain.food_logs import (
    MEAL_TYPES,
    DailySummary,
    FoodLogEntry,
    LogItem,
    MacroTargets,
    NutrientTotals,
)
from diet_tracker.domain.nutrients import NUTRIENT_KEYS, NutrientVector

_DISPLAY_DECIMALS = {"calories": 0, "protein_g": 1, "carbs_g": 1, "fat_g": 1}


def aggregate(vectors: Iterable[Mapping[str, float]]) -> NutrientTotals:
    """Sum nutrient vectors key by key; missing keys contribute zero."""
    materialized = list(vectors)
    sums = {
        key: math.fsum(vector.get(key, 0.0) for vector in materialized)
        for key in NUTRIENT_KEYS
    }
    return NutrientTotals(nutrients=NutrientVector(sums), item_count=len(materialized))


def aggregate_items(items: Iterable[LogItem]) -> NutrientTotals:
    """Return entry totals for an item list."""
    return aggregate(item.nutrients for item in items)


def aggregate_entries(entries: Iterable[FoodLogEntry]) -> NutrientTotals:
    """Sum the cached totals of several entries; item counts add up."""
    materialized = list(entries)
    summed = aggregate(entry.totals.nutrients for entry in materialized)
    return NutrientTotals(
        nutrients=summed.nutrients,
        item_count=sum(entry.totals.item_count for entry in materialized),
    )


def build_daily_summary(
    day: date,
    entries: Iterable[FoodLogEntry],
    targets: MacroTargets | None = None,
) -> DailySummary:
    """Group a day's live entries by meal type and total them.

    Entries with an unknown meal type still count toward the day totals but
    are left out of the buckets.
    """
    live = sorted(
        (
            entry
            for entry in entries
            if not entry.is_deleted and entry.logged_date == day
        ),
        key=lambda entry: (entry.logged_at, str(entry.id)),
    )
    meals: dict[str, list[FoodLogEntry]] = {meal: [] for meal in MEAL_TYPES}
    for entry in live:
        if entry.meal_type in meals:
            meals[entry.meal_type].append(entry)
    return DailySummary(
        day=day,
        totals=aggregate_entries(live),
        meal_count=len(live),
        meals=meals,
        entries=live,
        targets=targets,
    )


def round_for_display(totals: NutrientTotals) -> dict[str, float]:
    """Round totals for a human-facing summary.

    Calories go to whole numbers and protein, carbs and fat to one decimal.
    Everything else keeps full precision.
    """
    rounded: dict[str, float] = {}
    for key, amount in totals.nutrients.to_dict(include_zeros=True).items():
        decimals = _DISPLAY_DECIMALS.get(key)
        if decimals is None:
            rounded[key] = amount
        elif decimals == 0:
            rounded[key] = float(round_half_up(amount))
        else:
            rounded[key] = round_half_up(amount, decimals)
    return rounded


def round_half_up(value: float, decimals: int = 0):
    """Round to nearest with ties toward positive infinity.

    -2.5 rounds to -2 and 2.5 to 3. Returns int for zero decimals.
    """
    quantum = Decimal(1).scaleb(-decimals)
    rounding = ROUND_HALF_UP if value >= 0 else ROUND_HALF_DOWN
    result = Decimal(repr(value)).quantize(quantum, rounding=rounding)
    if decimals == 0:
        return int(result)
    return float(result)
