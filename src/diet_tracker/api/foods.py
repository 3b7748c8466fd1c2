"""Food lookup, photo analysis and reference value endpoints."""

from fastapi import APIRouter, Depends
from pydantic.alias_generators import to_camel

from diet_tracker.api.dependencies import get_container, require_owner
from diet_tracker.api.models import (
    BarcodeProductModel,
    FoodDetailsModel,
    FoodSummaryModel,
    LogItemModel,
    PhotoAnalysisRequest,
    PhotoCandidateModel,
    nutrients_to_wire,
)
from diet_tracker.containers import AppContainer
from diet_tracker.domain.reference_intakes import REFERENCE_DAILY_VALUES

router = APIRouter(tags=["foods"], dependencies=[Depends(require_owner)])


@router.get("/foods/search")
async def search_foods(
    q: str = "",
    limit: int = 20,
    container: AppContainer = Depends(get_container),
) -> dict[str, object]:
    """Search USDA FoodData Central."""
    foods = await container.nutrition_service.search(q, limit)
    return {
        "data": [FoodSummaryModel.from_domain(food) for food in foods],
        "query": q,
    }


@router.get("/foods/{fdc_id}")
async def food_details(
    fdc_id: int,
    container: AppContainer = Depends(get_container),
) -> FoodDetailsModel:
    """Return one FDC food with its full nutrient vector per 100 g."""
    details = await container.nutrition_service.get_food(fdc_id)
    return FoodDetailsModel.from_details(details)


@router.get("/barcode")
async def barcode_lookup(
    code: str = "",
    container: AppContainer = Depends(get_container),
) -> dict[str, object]:
    """Look up a packaged product by UPC/EAN."""
    product = await container.nutrition_service.lookup_barcode(code)
    return {"found": True, "product": BarcodeProductModel.from_domain(product)}


@router.post("/analyze-photo")
async def analyze_photo(
    body: PhotoAnalysisRequest,
    container: AppContainer = Depends(get_container),
) -> dict[str, object]:
    """Recognize foods in a photo; each candidate carries a log item draft."""
    result = await container.vision_service.analyze(body.image, body.mime_type)
    return {
        "confidence": result.confidence,
        "items": [
            PhotoCandidateModel(
                name=item.name,
                confidence=item.confidence,
                quantity=item.quantity,
                unit=item.unit,
                nutrients=nutrients_to_wire(item.nutrients()),
                item=LogItemModel.from_draft(item.to_item_draft()),
            )
            for item in result.items
        ],
    }


@router.get("/nutrition/rda")
async def reference_daily_values() -> dict[str, object]:
    """Return adult reference daily values per nutrient."""
    return {
        "rda": {
            to_camel(key): {
                "value": intake.value,
                "unit": intake.unit,
                "name": intake.name,
            }
            for key, intake in REFERENCE_DAILY_VALUES.items()
        }
    }
