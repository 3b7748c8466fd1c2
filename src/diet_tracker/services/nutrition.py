"""Food lookups backed by USDA FDC and Open Food Facts."""

import asyncio
import logging
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

from diet_tracker.adapters.fdc_client import FdcClient
from diet_tracker.adapters.open_food_facts_client import OpenFoodFactsClient
from diet_tracker.domain.nutrients import NutrientVector
from diet_tracker.domain.nutrition import BarcodeProduct, FoodDetails, FoodSummary
from diet_tracker.errors import (
    DietTrackerError,
    NotFoundError,
    UpstreamUnavailableError,
    ValidationError,
)
from diet_tracker.services.cache import Cache

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

# FDC nutrient numbers, stable across the Foundation, SR Legacy and Branded sets.
FDC_NUTRIENT_NUMBERS = {
    "208": "calories",
    "203": "protein_g",
    "204": "fat_g",
    "205": "carbs_g",
    "291": "fiber_g",
    "269": "sugar_g",
    "320": "vitamin_a_mcg",
    "401": "vitamin_c_mg",
    "328": "vitamin_d_mcg",
    "323": "vitamin_e_mg",
    "430": "vitamin_k_mcg",
    "404": "vitamin_b1_mg",
    "405": "vitamin_b2_mg",
    "406": "vitamin_b3_mg",
    "410": "vitamin_b5_mg",
    "415": "vitamin_b6_mg",
    "435": "vitamin_b9_mcg",
    "418": "vitamin_b12_mcg",
    "421": "choline_mg",
    "301": "calcium_mg",
    "303": "iron_mg",
    "304": "magnesium_mg",
    "305": "phosphorus_mg",
    "306": "potassium_mg",
    "307": "sodium_mg",
    "309": "zinc_mg",
    "312": "copper_mg",
    "315": "manganese_mg",
    "317": "selenium_mcg",
    "606": "saturated_fat_g",
    "645": "monounsaturated_fat_g",
    "646": "polyunsaturated_fat_g",
    "605": "trans_fat_g",
    "601": "cholesterol_mg",
}

MIN_QUERY_LENGTH = 2
MAX_SEARCH_LIMIT = 50
KJ_PER_KCAL = 4.184

_BARCODE_LENGTHS = range(8, 15)

_logger = logging.getLogger(__name__)


@dataclass
class NutritionService:
    """Service for food and barcode lookups with caching."""

    fdc_client: FdcClient
    barcode_client: OpenFoodFactsClient
    cache: Cache
    search_ttl_seconds: int = 3600
    food_ttl_seconds: int = 86400
    retry_attempts: int = 1
    retry_delay_seconds: float = 0.3

    async def search(self, query: str, limit: int = 20) -> list[FoodSummary]:
        """Search FDC foods by free text."""
        query = query.strip()
        if len(query) < MIN_QUERY_LENGTH:
            raise ValidationError("Search query must be at least 2 characters")
        limit = max(1, min(limit, MAX_SEARCH_LIMIT))
        cache_key = f"fdc:search:{query.lower()}:{limit}"
        cached = self.cache.get(cache_key)
        if isinstance(cached, list):
            return cached

        payload = await self._call_with_retry(
            lambda: self.fdc_client.search_foods(query, page_size=limit),
            action="search",
        )
        foods = [_parse_summary(food) for food in payload.get("foods", [])]
        self.cache.set(cache_key, foods, ttl_seconds=self.search_ttl_seconds)
        _logger.info("FDC search: query=%s results=%s", query, len(foods))
        return foods

    async def get_food(self, fdc_id: int) -> FoodDetails:
        """Return food details with the full nutrient vector."""
        cache_key = f"fdc:food:{fdc_id}"
        cached = self.cache.get(cache_key)
        if isinstance(cached, FoodDetails):
            return cached

        payload = await self._call_with_retry(
            lambda: self.fdc_client.get_food(
                fdc_id, nutrient_numbers=[int(n) for n in FDC_NUTRIENT_NUMBERS]
            ),
            action=f"get_food:{fdc_id}",
        )
        if not payload:
            raise NotFoundError("Food not found")
        serving_size = payload.get("servingSize")
        serving_unit = payload.get("servingSizeUnit") or "g"
        details = FoodDetails(
            summary=_parse_summary(payload),
            nutrients=extract_fdc_nutrients(payload.get("foodNutrients", [])),
            serving_size_g=(
                float(serving_size)
                if serving_size and serving_unit.lower() == "g"
                else None
            ),
            serving_description=payload.get("householdServingFullText")
            or f"{serving_size or 100}{serving_unit}",
        )
        self.cache.set(cache_key, details, ttl_seconds=self.food_ttl_seconds)
        return details

    async def lookup_barcode(self, code: str) -> BarcodeProduct:
        """Return the packaged product for a UPC/EAN barcode."""
        barcode = clean_barcode(code)
        cache_key = f"off:product:{barcode}"
        cached = self.cache.get(cache_key)
        if isinstance(cached, BarcodeProduct):
            return cached

        product = await self._call_with_retry(
            lambda: self.barcode_client.get_product(barcode),
            action=f"barcode:{barcode}",
        )
        if product is None:
            raise NotFoundError("Product not found")
        result = parse_open_food_facts_product(barcode, product)
        self.cache.set(cache_key, result, ttl_seconds=self.food_ttl_seconds)
        return result

    async def _call_with_retry(
        self, func: "Callable[[], Awaitable[dict[str, object] | None]]", *, action: str
    ) -> dict[str, object] | None:
        """Call a lookup with one short retry, then give up as unavailable."""
        attempt = 0
        while True:
            try:
                return await func()
            except DietTrackerError:
                raise
            except Exception as exc:
                attempt += 1
                status_code = _status_code_from_exception(exc)
                if status_code == "404":
                    raise NotFoundError(f"Not found: {action}") from exc
                _logger.warning(
                    "Lookup %s failed (attempt %s/%s, status=%s): %s",
                    action,
                    attempt,
                    self.retry_attempts + 1,
                    status_code,
                    exc,
                )
                if attempt > self.retry_attempts:
                    raise UpstreamUnavailableError(
                        f"Food lookup failed: {action}"
                    ) from exc
                await asyncio.sleep(self.retry_delay_seconds)


def clean_barcode(code: str) -> str:
    """Strip non-digits and check the UPC/EAN length."""
    barcode = re.sub(r"[^0-9]", "", code or "")
    if len(barcode) not in _BARCODE_LENGTHS:
        raise ValidationError("Invalid barcode format")
    return barcode


def extract_fdc_nutrients(food_nutrients: list[dict[str, object]]) -> NutrientVector:
    """Map FDC nutrient rows onto nutrient keys.

    Detail payloads nest the number under `nutrient` and use `amount`; search
    payloads use flat `nutrientNumber` and `value`.
    """
    values: dict[str, float] = {}
    for row in food_nutrients:
        nutrient_info = row.get("nutrient") or {}
        number = str(nutrient_info.get("number") or row.get("nutrientNumber") or "")
        key = FDC_NUTRIENT_NUMBERS.get(number)
        amount = row.get("amount", row.get("value"))
        if key is None or amount is None:
            continue
        values[key] = max(0.0, float(amount))
    return NutrientVector(values)


def parse_open_food_facts_product(
    barcode: str, product: dict[str, object]
) -> BarcodeProduct:
    """Build a product from Open Food Facts data, per serving when available."""
    nutriments = product.get("nutriments") or {}
    suffix = "_serving" if "energy-kcal_serving" in nutriments else "_100g"

    def amount(name: str) -> float:
        value = nutriments.get(f"{name}{suffix}")
        return max(0.0, float(value)) if value is not None else 0.0

    calories = amount("energy-kcal") or amount("energy") / KJ_PER_KCAL
    nutrients = NutrientVector(
        {
            "calories": calories,
            "protein_g": amount("proteins"),
            "carbs_g": amount("carbohydrates"),
            "fat_g": amount("fat"),
            "fiber_g": amount("fiber"),
            "sugar_g": amount("sugars"),
            "sodium_mg": amount("sodium") * 1000,
        }
    )
    return BarcodeProduct(
        barcode=barcode,
        name=product.get("product_name")
        or product.get("product_name_en")
        or "Unknown Product",
        brand=product.get("brands") or None,
        serving_size=product.get("serving_size") or "100g",
        nutrients=nutrients,
        image_url=product.get("image_front_url") or product.get("image_url"),
    )


def _parse_summary(food: dict[str, object]) -> FoodSummary:
    return FoodSummary(
        fdc_id=int(food["fdcId"]),
        description=str(food.get("description", "")),
        brand_owner=food.get("brandOwner"),
        brand_name=food.get("brandName"),
        data_type=food.get("dataType"),
    )


def _status_code_from_exception(exc: Exception) -> str:
    """Extract HTTP status code from an exception, if available."""
    response = getattr(exc, "response", None)
    status_code = getattr(response, "status_code", None)
    if isinstance(status_code, int):
        return str(status_code)
    return "n/a"
