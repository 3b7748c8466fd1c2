"""Nutrition lookup domain models."""

from dataclasses import dataclass

from diet_tracker.domain.food_logs import FoodSnapshot, ItemDraft
from diet_tracker.domain.nutrients import NutrientVector


@dataclass(frozen=True)
class FoodSummary:
    """Summary information about a food from FDC."""

    fdc_id: int
    description: str
    brand_owner: str | None
    brand_name: str | None
    data_type: str | None


@dataclass(frozen=True)
class FoodDetails:
    """Full food details; nutrients are per 100 g as FDC reports them."""

    summary: FoodSummary
    nutrients: NutrientVector
    serving_size_g: float | None
    serving_description: str | None = None

    def to_item_draft(self, servings: float = 1.0) -> ItemDraft:
        """Return a log item draft for a number of servings."""
        grams_per_serving = self.serving_size_g or 100.0
        return ItemDraft(
            snapshot=FoodSnapshot(
                name=self.summary.description,
                brand=self.summary.brand_name or self.summary.brand_owner,
                serving_description=self.serving_description,
            ),
            nutrients=scale_nutrients(
                self.nutrients, servings * grams_per_serving / 100
            ),
            quantity=servings,
            food_id=f"fdc:{self.summary.fdc_id}",
        )


@dataclass(frozen=True)
class BarcodeProduct:
    """Packaged product found by barcode."""

    barcode: str
    name: str
    brand: str | None
    serving_size: str | None
    nutrients: NutrientVector
    image_url: str | None = None
    source: str = "open_food_facts"

    def to_item_draft(self, servings: float = 1.0) -> ItemDraft:
        """Return a log item draft for a number of servings."""
        return ItemDraft(
            snapshot=FoodSnapshot(
                name=self.name,
                brand=self.brand,
                serving_description=self.serving_size,
            ),
            nutrients=scale_nutrients(self.nutrients, servings),
            quantity=servings,
            food_id=f"barcode:{self.barcode}",
        )


def scale_nutrients(nutrients: NutrientVector, factor: float) -> NutrientVector:
    """Return nutrients multiplied by a non-negative portion factor."""
    if factor == 1:
        return nutrients
    return NutrientVector({key: amount * factor for key, amount in nutrients.items()})
