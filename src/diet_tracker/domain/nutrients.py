"""Nutrient vector value type."""

import math
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from diet_tracker.errors import ValidationError

MACRO_KEYS = (
    "calories",
    "protein_g",
    "carbs_g",
    "fat_g",
    "fiber_g",
    "sugar_g",
    "sodium_mg",
)

VITAMIN_KEYS = (
    "vitamin_a_mcg",
    "vitamin_c_mg",
    "vitamin_d_mcg",
    "vitamin_e_mg",
    "vitamin_k_mcg",
    "vitamin_b1_mg",
    "vitamin_b2_mg",
    "vitamin_b3_mg",
    "vitamin_b5_mg",
    "vitamin_b6_mg",
    "vitamin_b9_mcg",
    "vitamin_b12_mcg",
    "choline_mg",
)

MINERAL_KEYS = (
    "calcium_mg",
    "iron_mg",
    "magnesium_mg",
    "phosphorus_mg",
    "potassium_mg",
    "zinc_mg",
    "copper_mg",
    "manganese_mg",
    "selenium_mcg",
)

LIPID_KEYS = (
    "saturated_fat_g",
    "monounsaturated_fat_g",
    "polyunsaturated_fat_g",
    "trans_fat_g",
    "cholesterol_mg",
)

NUTRIENT_KEYS: tuple[str, ...] = MACRO_KEYS + VITAMIN_KEYS + MINERAL_KEYS + LIPID_KEYS
_KNOWN_KEYS = frozenset(NUTRIENT_KEYS)


@dataclass(frozen=True)
class NutrientVector(Mapping[str, float]):
    """Immutable nutrient-name to amount mapping.

    Absent keys read as zero. Only non-zero amounts are stored, so two vectors
    describing the same intake compare equal regardless of how they were built.
    """

    _values: Mapping[str, float] = field(default_factory=dict)

    def __post_init__(self) -> None:
        cleaned: dict[str, float] = {}
        for key, raw in self._values.items():
            if key not in _KNOWN_KEYS:
                raise ValidationError(f"Unknown nutrient: {key}")
            amount = _validated_amount(key, raw)
            if amount:
                cleaned[key] = amount
        ordered = {key: cleaned[key] for key in NUTRIENT_KEYS if key in cleaned}
        object.__setattr__(self, "_values", MappingProxyType(ordered))

    @classmethod
    def of(cls, **amounts: float) -> "NutrientVector":
        """Build a vector from keyword amounts."""
        return cls(amounts)

    @classmethod
    def from_storage(cls, raw: Mapping[str, object] | None) -> "NutrientVector":
        """Build a vector from stored data, skipping unknown keys and nulls."""
        if not raw:
            return cls()
        return cls(
            {
                key: value
                for key, value in raw.items()
                if key in _KNOWN_KEYS and value is not None
            }
        )

    def __getitem__(self, key: str) -> float:
        if key not in _KNOWN_KEYS:
            raise KeyError(key)
        return self._values.get(key, 0.0)

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __contains__(self, key: object) -> bool:
        return key in self._values

    def __hash__(self) -> int:
        return hash(tuple(self._values.items()))

    def __eq__(self, other: object) -> bool:
        if isinstance(other, NutrientVector):
            return dict(self._values) == dict(other._values)
        return NotImplemented

    def __repr__(self) -> str:
        return f"NutrientVector({dict(self._values)!r})"

    def get(self, key: str, default: float = 0.0) -> float:  # type: ignore[override]
        """Return an amount, treating absent keys as zero."""
        return self._values.get(key, default)

    def to_dict(self, *, include_zeros: bool = False) -> dict[str, float]:
        """Return a plain dict, optionally with every known key present."""
        if include_zeros:
            return {key: self._values.get(key, 0.0) for key in NUTRIENT_KEYS}
        return dict(self._values)


ZERO_VECTOR = NutrientVector()


def _validated_amount(key: str, raw: object) -> float:
    if isinstance(raw, bool) or not isinstance(raw, int | float):
        raise ValidationError(f"Nutrient {key} must be a number")
    amount = float(raw)
    if not math.isfinite(amount):
        raise ValidationError(f"Nutrient {key} must be finite")
    if amount < 0:
        raise ValidationError(f"Nutrient {key} must not be negative")
    return amount
