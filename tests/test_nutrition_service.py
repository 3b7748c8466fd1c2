"""Tests for nutrition service."""

import asyncio

import httpx
import pytest

from diet_tracker.errors import (
    NotFoundError,
    UpstreamUnavailableError,
    ValidationError,
)
from diet_tracker.services.cache import InMemoryCache
from diet_tracker.services.nutrition import (
    NutritionService,
    clean_barcode,
    extract_fdc_nutrients,
    parse_open_food_facts_product,
)
from tests.conftest import FakeFdcClient, FakeOpenFoodFactsClient


def _service(fdc_client: FakeFdcClient | None = None) -> NutritionService:
    return NutritionService(
        fdc_client=fdc_client or FakeFdcClient(),
        barcode_client=FakeOpenFoodFactsClient(),
        cache=InMemoryCache(),
        retry_delay_seconds=0,
    )


def _status_error(status_code: int) -> httpx.HTTPStatusError:
    request = httpx.Request("GET", "https://api.nal.usda.gov/fdc/v1/food/1")
    return httpx.HTTPStatusError(
        "lookup failed",
        request=request,
        response=httpx.Response(status_code, request=request),
    )


def test_search_uses_cache() -> None:
    client = FakeFdcClient()
    service = _service(client)

    results = asyncio.run(service.search("chicken", limit=1))
    cached = asyncio.run(service.search("  Chicken ", limit=1))

    assert results[0].fdc_id == 171077
    assert results[0].data_type == "SR Legacy"
    assert cached == results
    assert client.search_calls == 1


def test_search_rejects_short_query() -> None:
    client = FakeFdcClient()

    with pytest.raises(ValidationError):
        asyncio.run(_service(client).search(" a "))

    assert client.search_calls == 0


def test_search_retries_once_then_succeeds() -> None:
    client = FakeFdcClient(failures=[httpx.ConnectError("connection reset")])

    results = asyncio.run(_service(client).search("chicken"))

    assert len(results) == 1
    assert client.search_calls == 2


def test_search_gives_up_after_retry() -> None:
    client = FakeFdcClient(failures=[_status_error(502), _status_error(502)])

    with pytest.raises(UpstreamUnavailableError):
        asyncio.run(_service(client).search("chicken"))

    assert client.search_calls == 2


def test_missing_food_is_not_retried() -> None:
    client = FakeFdcClient(failures=[_status_error(404)])

    with pytest.raises(NotFoundError):
        asyncio.run(_service(client).get_food(1))

    assert client.food_calls == 1


def test_get_food_extracts_known_nutrients() -> None:
    client = FakeFdcClient()
    service = _service(client)

    details = asyncio.run(service.get_food(171077))
    again = asyncio.run(service.get_food(171077))

    assert again is details
    assert client.food_calls == 1
    assert details.summary.description.startswith("Chicken")
    assert details.nutrients.to_dict() == {
        "calories": 120,
        "protein_g": 22.5,
        "fat_g": 2.6,
        "sodium_mg": 45,
    }
    assert details.serving_size_g is None
    assert details.serving_description == "100g"


def test_food_details_scale_to_servings() -> None:
    client = FakeFdcClient()
    client.food_payload = {
        **client.food_payload,
        "servingSize": 150,
        "servingSizeUnit": "g",
        "householdServingFullText": "1 breast",
    }
    details = asyncio.run(_service(client).get_food(171077))

    draft = details.to_item_draft(servings=2)

    assert draft.food_id == "fdc:171077"
    assert draft.quantity == 2
    assert draft.snapshot.serving_description == "1 breast"
    assert draft.nutrients["calories"] == pytest.approx(360)
    assert draft.nutrients["protein_g"] == pytest.approx(67.5)


def test_extract_fdc_nutrients_reads_search_rows() -> None:
    nutrients = extract_fdc_nutrients(
        [
            {"nutrientNumber": "208", "value": 52},
            {"nutrientNumber": "291", "value": 2.4},
            {"nutrientNumber": "203", "value": None},
            {"nutrientNumber": "205", "value": -1},
        ]
    )

    assert nutrients.to_dict() == {"calories": 52, "fiber_g": 2.4}


def test_barcode_lookup_uses_serving_values() -> None:
    service = _service()

    product = asyncio.run(service.lookup_barcode("7 37628-06450 2"))
    asyncio.run(service.lookup_barcode("737628064502"))

    assert product.name == "Thai Peanut Noodle Kit"
    assert product.brand == "Simply Asia"
    assert product.serving_size == "1/3 box (52 g)"
    assert product.nutrients["calories"] == 200
    assert product.nutrients["carbs_g"] == 37
    assert product.nutrients["sodium_mg"] == pytest.approx(450)
    assert service.barcode_client.calls == ["737628064502"]


def test_unknown_barcode_is_not_found() -> None:
    with pytest.raises(NotFoundError):
        asyncio.run(_service().lookup_barcode("0000000000000"))


def test_open_food_facts_falls_back_to_kilojoules() -> None:
    product = parse_open_food_facts_product(
        "4006381333931",
        {"nutriments": {"energy_100g": 418.4, "sodium_100g": 0.1}},
    )

    assert product.name == "Unknown Product"
    assert product.serving_size == "100g"
    assert product.source == "open_food_facts"
    assert product.nutrients["calories"] == pytest.approx(100)
    assert product.nutrients["sodium_mg"] == pytest.approx(100)


def test_barcode_product_item_draft() -> None:
    product = asyncio.run(_service().lookup_barcode("737628064502"))

    draft = product.to_item_draft(servings=0.5)

    assert draft.food_id == "barcode:737628064502"
    assert draft.snapshot.brand == "Simply Asia"
    assert draft.nutrients["calories"] == 100


@pytest.mark.parametrize(
    ("code", "expected"),
    [
        ("0 12345-67890 5", "012345678905"),
        ("96385074", "96385074"),
        ("40063813339310", "40063813339310"),
    ],
)
def test_clean_barcode_accepts_upc_and_ean(code: str, expected: str) -> None:
    assert clean_barcode(code) == expected


@pytest.mark.parametrize("code", ["", "1234567", "123456789012345", "abc"])
def test_clean_barcode_rejects_bad_lengths(code: str) -> None:
    with pytest.raises(ValidationError):
        clean_barcode(code)
