"""Reference daily values for adults, keyed by nutrient key."""

from dataclasses import dataclass


@dataclass(frozen=True)
class ReferenceIntake:
    value: float
    unit: str
    name: str


REFERENCE_DAILY_VALUES: dict[str, ReferenceIntake] = {
    "calories": ReferenceIntake(2000, "kcal", "Calories"),
    "protein_g": ReferenceIntake(50, "g", "Protein"),
    "fat_g": ReferenceIntake(78, "g", "Total Fat"),
    "carbs_g": ReferenceIntake(275, "g", "Carbohydrates"),
    "fiber_g": ReferenceIntake(28, "g", "Fiber"),
    "sugar_g": ReferenceIntake(50, "g", "Sugar"),
    "vitamin_a_mcg": ReferenceIntake(900, "mcg", "Vitamin A"),
    "vitamin_c_mg": ReferenceIntake(90, "mg", "Vitamin C"),
    "vitamin_d_mcg": ReferenceIntake(20, "mcg", "Vitamin D"),
    "vitamin_e_mg": ReferenceIntake(15, "mg", "Vitamin E"),
    "vitamin_k_mcg": ReferenceIntake(120, "mcg", "Vitamin K"),
    "vitamin_b1_mg": ReferenceIntake(1.2, "mg", "Thiamin (B1)"),
    "vitamin_b2_mg": ReferenceIntake(1.3, "mg", "Riboflavin (B2)"),
    "vitamin_b3_mg": ReferenceIntake(16, "mg", "Niacin (B3)"),
    "vitamin_b5_mg": ReferenceIntake(5, "mg", "Pantothenic Acid (B5)"),
    "vitamin_b6_mg": ReferenceIntake(1.7, "mg", "Vitamin B6"),
    "vitamin_b9_mcg": ReferenceIntake(400, "mcg", "Folate (B9)"),
    "vitamin_b12_mcg": ReferenceIntake(2.4, "mcg", "Vitamin B12"),
    "choline_mg": ReferenceIntake(550, "mg", "Choline"),
    "calcium_mg": ReferenceIntake(1300, "mg", "Calcium"),
    "iron_mg": ReferenceIntake(18, "mg", "Iron"),
    "magnesium_mg": ReferenceIntake(420, "mg", "Magnesium"),
    "phosphorus_mg": ReferenceIntake(1250, "mg", "Phosphorus"),
    "potassium_mg": ReferenceIntake(4700, "mg", "Potassium"),
    "sodium_mg": ReferenceIntake(2300, "mg", "Sodium"),
    "zinc_mg": ReferenceIntake(11, "mg", "Zinc"),
    "copper_mg": ReferenceIntake(0.9, "mg", "Copper"),
    "manganese_mg": ReferenceIntake(2.3, "mg", "Manganese"),
    "selenium_mcg": ReferenceIntake(55, "mcg", "Selenium"),
    "saturated_fat_g": ReferenceIntake(20, "g", "Saturated Fat"),
    "trans_fat_g": ReferenceIntake(0, "g", "Trans Fat"),
    "cholesterol_mg": ReferenceIntake(300, "mg", "Cholesterol"),
}
