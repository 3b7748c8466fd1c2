"""HTTPX client for the food log API."""

import logging
from dataclasses import dataclass
from datetime import date
from uuid import UUID

import httpx
import pydantic

from diet_tracker.api.models import (
    DailySummaryModel,
    EntryCreateRequest,
    EntryUpdateRequest,
    FoodLogEntryModel,
)
from diet_tracker.domain.food_logs import (
    DailySummary,
    EntryDraft,
    EntryPatch,
    FoodLogEntry,
)
from diet_tracker.errors import (
    ERRORS_BY_KIND,
    ConflictError,
    DietTrackerError,
    NotFoundError,
    UnauthenticatedError,
    UpstreamUnavailableError,
    ValidationError,
)
from diet_tracker.services.sync import RemoteFoodLogStore

_ERRORS_BY_STATUS: dict[int, type[DietTrackerError]] = {
    400: ValidationError,
    401: UnauthenticatedError,
    404: NotFoundError,
    409: ConflictError,
    422: ValidationError,
}

_logger = logging.getLogger(__name__)


@dataclass
class HttpxFoodLogClient(RemoteFoodLogStore):
    """HTTPX-backed remote store used by the sync coordinator."""

    base_url: str
    token: str
    http_client: httpx.AsyncClient
    timeout: float = 15.0

    @classmethod
    def create(
        cls, base_url: str, token: str, timeout: float = 15.0
    ) -> "HttpxFoodLogClient":
        """Create a client with a managed httpx session."""
        return cls(
            base_url=base_url.rstrip("/"),
            token=token,
            http_client=httpx.AsyncClient(),
            timeout=timeout,
        )

    async def fetch_summary(self, day: date) -> DailySummary:
        """Fetch the authoritative summary for a date."""
        payload = await self._request(
            "GET", "/food-logs/summary", params={"date": day.isoformat()}
        )
        return _decode(DailySummaryModel, payload)

    async def get_entry(self, entry_id: UUID) -> FoodLogEntry:
        """Fetch a single live entry."""
        payload = await self._request("GET", f"/food-logs/{entry_id}")
        return _decode(FoodLogEntryModel, payload)

    async def create_entry(self, draft: EntryDraft) -> FoodLogEntry:
        """Create an entry; the server computes totals."""
        body = EntryCreateRequest.from_draft(draft).model_dump(
            mode="json", by_alias=True, exclude_none=True
        )
        payload = await self._request("POST", "/food-logs", json=body)
        return _decode(FoodLogEntryModel, payload)

    async def update_entry(
        self,
        entry_id: UUID,
        patch: EntryPatch,
        expected_counter: int | None = None,
    ) -> FoodLogEntry:
        """Update an entry, optionally guarded by its update counter."""
        body = EntryUpdateRequest.from_patch(patch, expected_counter).model_dump(
            mode="json", by_alias=True, exclude_none=True
        )
        payload = await self._request("PATCH", f"/food-logs/{entry_id}", json=body)
        return _decode(FoodLogEntryModel, payload)

    async def delete_entry(
        self, entry_id: UUID, expected_counter: int | None = None
    ) -> FoodLogEntry:
        """Soft-delete an entry and return the tombstone."""
        params = (
            {"expectedCounter": expected_counter}
            if expected_counter is not None
            else None
        )
        payload = await self._request(
            "DELETE", f"/food-logs/{entry_id}", params=params
        )
        data = payload.get("data") if isinstance(payload, dict) else None
        return _decode(FoodLogEntryModel, data)

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()

    async def _request(self, method: str, path: str, **kwargs) -> object:
        try:
            response = await self.http_client.request(
                method,
                f"{self.base_url}{path}",
                headers={"Authorization": f"Bearer {self.token}"},
                timeout=self.timeout,
                **kwargs,
            )
        except httpx.HTTPError as exc:
            _logger.warning("Food log API unreachable: %s %s: %s", method, path, exc)
            raise UpstreamUnavailableError(f"Food log API unreachable: {exc}") from exc
        if not response.is_success:
            raise _error_from_response(response)
        try:
            return response.json()
        except ValueError as exc:
            _logger.warning("Food log API sent a non-JSON body: %s %s", method, path)
            raise UpstreamUnavailableError(
                "Food log API returned an unreadable response"
            ) from exc


def _decode(model: type[pydantic.BaseModel], payload: object):
    try:
        return model.model_validate(payload).to_domain()
    except (pydantic.ValidationError, ValidationError) as exc:
        _logger.warning("Food log API sent an unexpected %s: %s", model.__name__, exc)
        raise UpstreamUnavailableError(
            "Food log API returned an unexpected response"
        ) from exc


def _error_from_response(response: httpx.Response) -> DietTrackerError:
    try:
        body = response.json()
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {}
    message = body.get("error") if isinstance(body.get("error"), str) else None
    if response.status_code >= 500:
        return UpstreamUnavailableError(
            message or f"Food log API returned {response.status_code}"
        )
    kind = body.get("kind")
    error_class = ERRORS_BY_KIND.get(kind) if isinstance(kind, str) else None
    if error_class is None:
        error_class = _ERRORS_BY_STATUS.get(response.status_code, ValidationError)
    return error_class(message)
