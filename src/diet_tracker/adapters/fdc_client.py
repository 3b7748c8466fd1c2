"""USDA FoodData Central API client."""

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol

import httpx

DEFAULT_DATA_TYPES = ("SR Legacy", "Foundation", "Branded")


class FdcClient(Protocol):
    """Interface for FoodData Central API interactions."""

    async def search_foods(
        self, query: str, page_size: int = 25, page_number: int = 1
    ) -> dict[str, object]:
        """Search foods by query and return raw API data."""

    async def get_food(
        self, fdc_id: int, nutrient_numbers: Sequence[int] = ()
    ) -> dict[str, object]:
        """Fetch a food by FDC id and return raw API data."""


@dataclass
class HttpxFdcClient(FdcClient):
    """HTTPX-backed FDC client."""

    api_key: str
    base_url: str
    http_client: httpx.AsyncClient
    data_types: tuple[str, ...] = DEFAULT_DATA_TYPES
    timeout: float = 15.0

    @classmethod
    def create(cls, api_key: str, base_url: str) -> "HttpxFdcClient":
        """Create an FDC client with a managed httpx session."""
        return cls(
            api_key=api_key,
            base_url=base_url.rstrip("/"),
            http_client=httpx.AsyncClient(),
        )

    async def search_foods(
        self, query: str, page_size: int = 25, page_number: int = 1
    ) -> dict[str, object]:
        """Search foods across the configured data types."""
        response = await self.http_client.post(
            f"{self.base_url}/foods/search",
            params={"api_key": self.api_key},
            json={
                "query": query,
                "dataType": list(self.data_types),
                "pageSize": page_size,
                "pageNumber": page_number,
            },
            timeout=self.timeout,
        )
        response.raise_for_status()
        return response.json()

    async def get_food(
        self, fdc_id: int, nutrient_numbers: Sequence[int] = ()
    ) -> dict[str, object]:
        """Fetch a food, optionally limited to specific nutrient numbers."""
        params: list[tuple[str, str | int]] = [("api_key", self.api_key)]
        params.extend(("nutrients", number) for number in nutrient_numbers)
        response = await self.http_client.get(
            f"{self.base_url}/food/{fdc_id}",
            params=params,
            timeout=self.timeout,
        )
        response.raise_for_status()
        return response.json()

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()
