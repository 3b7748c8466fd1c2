"""Models for photo recognition results."""

from uuid import uuid4

from pydantic import BaseModel, Field

from diet_tracker.domain.food_logs import FoodSnapshot, ItemDraft
from diet_tracker.domain.nutrients import NutrientVector


class VisionItem(BaseModel):
    """Single detected food item with estimated nutrients."""

    name: str
    confidence: float = Field(ge=0.0, le=1.0)
    quantity: float = Field(default=1.0, gt=0)
    unit: str | None = None
    estimated_calories: float = Field(default=0.0, ge=0)
    estimated_protein_g: float = Field(default=0.0, ge=0)
    estimated_carbs_g: float = Field(default=0.0, ge=0)
    estimated_fat_g: float = Field(default=0.0, ge=0)

    def nutrients(self) -> NutrientVector:
        """Return the estimate as a nutrient vector."""
        return NutrientVector(
            {
                "calories": self.estimated_calories,
                "protein_g": self.estimated_protein_g,
                "carbs_g": self.estimated_carbs_g,
                "fat_g": self.estimated_fat_g,
            }
        )

    def to_item_draft(self) -> ItemDraft:
        """Convert the candidate into a log item draft."""
        serving = f"{self.quantity:g} {self.unit}" if self.unit else None
        return ItemDraft(
            id=uuid4(),
            snapshot=FoodSnapshot(name=self.name, serving_description=serving),
            nutrients=self.nutrients(),
            quantity=self.quantity,
        )


class VisionExtract(BaseModel):
    """Structured output for photo recognition."""

    items: list[VisionItem]

    @property
    def confidence(self) -> float:
        """Return the mean confidence across candidates."""
        if not self.items:
            return 0.0
        return sum(item.confidence for item in self.items) / len(self.items)
