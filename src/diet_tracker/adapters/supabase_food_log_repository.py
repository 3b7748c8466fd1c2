"""Supabase repository for food log entries."""

from dataclasses import dataclass
from datetime import date, datetime
from uuid import UUID

from supabase import Client

from diet_tracker.domain.food_logs import (
    EntryPage,
    EntryQuery,
    FoodLogEntry,
    FoodSnapshot,
    LogItem,
    NutrientTotals,
)
from diet_tracker.domain.nutrients import NutrientVector
from diet_tracker.errors import InternalError
from diet_tracker.services.food_logs import FoodLogRepository

_COLUMNS = (
    "id, user_id, logged_date, logged_at, meal_type, entry_method, meal_name, "
    "notes, items, totals, update_counter, created_at, updated_at, deleted_at"
)


@dataclass
class SupabaseFoodLogRepository(FoodLogRepository):
    """Supabase implementation for food log entries."""

    client: Client

    def insert_entry(self, entry: FoodLogEntry) -> FoodLogEntry:
        """Insert an entry row and return the stored entry."""
        response = self.client.table("food_logs").insert(_entry_row(entry)).execute()
        if not response.data:
            raise InternalError("Failed to create food log")
        return _parse_entry(response.data[0])

    def get_entry(self, owner_id: UUID, entry_id: UUID) -> FoodLogEntry | None:
        """Return an owned entry by id."""
        response = (
            self.client.table("food_logs")
            .select(_COLUMNS)
            .eq("id", str(entry_id))
            .eq("user_id", str(owner_id))
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _parse_entry(response.data[0])

    def query_entries(
        self, owner_id: UUID, query: EntryQuery, limit: int, offset: int
    ) -> EntryPage:
        """Return a page of live entries, newest first."""
        request = (
            self.client.table("food_logs")
            .select(_COLUMNS, count="exact")
            .eq("user_id", str(owner_id))
            .is_("deleted_at", "null")
        )
        if query.start is not None:
            request = request.gte("logged_date", query.start.isoformat())
        if query.end is not None:
            request = request.lte("logged_date", query.end.isoformat())
        response = (
            request.order("logged_date", desc=True)
            .order("logged_at", desc=True)
            .range(offset, offset + limit - 1)
            .execute()
        )
        entries = [_parse_entry(row) for row in response.data or []]
        total = response.count if response.count is not None else len(entries)
        return EntryPage(entries=entries, total=total, limit=limit, offset=offset)

    def list_entries_between(
        self, owner_id: UUID, start: date, end: date
    ) -> list[FoodLogEntry]:
        """Return live entries within the date range, oldest first."""
        response = (
            self.client.table("food_logs")
            .select(_COLUMNS)
            .eq("user_id", str(owner_id))
            .is_("deleted_at", "null")
            .gte("logged_date", start.isoformat())
            .lte("logged_date", end.isoformat())
            .order("logged_at", desc=False)
            .execute()
        )
        return [_parse_entry(row) for row in response.data or []]

    def apply_update(
        self,
        owner_id: UUID,
        entry_id: UUID,
        changes: dict[str, object],
        expected_counter: int,
    ) -> FoodLogEntry | None:
        """Update the row only while its counter still matches."""
        payload = _changes_row(changes)
        payload["update_counter"] = expected_counter + 1
        response = (
            self.client.table("food_logs")
            .update(payload)
            .eq("id", str(entry_id))
            .eq("user_id", str(owner_id))
            .eq("update_counter", expected_counter)
            .is_("deleted_at", "null")
            .execute()
        )
        if not response.data:
            return None
        return _parse_entry(response.data[0])

    def list_changed_since(
        self,
        owner_id: UUID,
        since: datetime | None,
        logged_from: date,
        limit: int,
    ) -> list[FoodLogEntry]:
        """Return entries changed after `since`, deleted ones included."""
        request = (
            self.client.table("food_logs")
            .select(_COLUMNS)
            .eq("user_id", str(owner_id))
            .gte("logged_date", logged_from.isoformat())
        )
        if since is not None:
            request = request.gt("updated_at", since.isoformat())
        response = request.order("updated_at", desc=False).limit(limit).execute()
        return [_parse_entry(row) for row in response.data or []]


def _entry_row(entry: FoodLogEntry) -> dict[str, object]:
    return {
        "id": str(entry.id),
        "user_id": str(entry.owner_id),
        "logged_date": entry.logged_date.isoformat(),
        "logged_at": entry.logged_at.isoformat(),
        "meal_type": entry.meal_type,
        "entry_method": entry.entry_method,
        "meal_name": entry.meal_name,
        "notes": entry.notes,
        "items": [_item_row(item) for item in entry.items],
        "totals": _totals_row(entry.totals),
        "update_counter": entry.update_counter,
        "created_at": entry.created_at.isoformat(),
        "updated_at": entry.updated_at.isoformat(),
        "deleted_at": entry.deleted_at.isoformat() if entry.deleted_at else None,
    }


def _changes_row(changes: dict[str, object]) -> dict[str, object]:
    row: dict[str, object] = {}
    for name, value in changes.items():
        if name == "items":
            row[name] = [_item_row(item) for item in value]
        elif name == "totals":
            row[name] = _totals_row(value)
        elif isinstance(value, date | datetime):
            row[name] = value.isoformat()
        else:
            row[name] = value
    return row


def _item_row(item: LogItem) -> dict[str, object]:
    return {
        "id": str(item.id),
        "food_id": item.food_id,
        "quantity": item.quantity,
        "serving_multiplier": item.serving_multiplier,
        "nutrients": item.nutrients.to_dict(),
        "snapshot": {
            "name": item.snapshot.name,
            "brand": item.snapshot.brand,
            "serving_description": item.snapshot.serving_description,
        },
        "sort_order": item.sort_order,
    }


def _totals_row(totals: NutrientTotals) -> dict[str, object]:
    row: dict[str, object] = dict(totals.nutrients.to_dict())
    row["item_count"] = totals.item_count
    return row


def _parse_entry(row: dict[str, object]) -> FoodLogEntry:
    totals = dict(row.get("totals") or {})
    item_count = int(totals.pop("item_count", 0))
    deleted_at = row.get("deleted_at")
    return FoodLogEntry(
        id=UUID(str(row["id"])),
        owner_id=UUID(str(row["user_id"])),
        logged_date=date.fromisoformat(str(row["logged_date"])),
        logged_at=datetime.fromisoformat(str(row["logged_at"])),
        meal_type=str(row["meal_type"]),
        entry_method=str(row["entry_method"]),
        items=tuple(_parse_item(item) for item in row.get("items") or []),
        totals=NutrientTotals(
            nutrients=NutrientVector.from_storage(totals), item_count=item_count
        ),
        update_counter=int(row.get("update_counter", 0)),
        created_at=datetime.fromisoformat(str(row["created_at"])),
        updated_at=datetime.fromisoformat(str(row["updated_at"])),
        meal_name=row.get("meal_name"),
        notes=row.get("notes"),
        deleted_at=datetime.fromisoformat(str(deleted_at)) if deleted_at else None,
    )


def _parse_item(raw: dict[str, object]) -> LogItem:
    snapshot = raw.get("snapshot") or {}
    return LogItem(
        id=UUID(str(raw["id"])),
        snapshot=FoodSnapshot(
            name=str(snapshot.get("name", "")),
            brand=snapshot.get("brand"),
            serving_description=snapshot.get("serving_description"),
        ),
        nutrients=NutrientVector.from_storage(raw.get("nutrients") or {}),
        quantity=float(raw.get("quantity", 1.0)),
        serving_multiplier=float(raw.get("serving_multiplier", 1.0)),
        food_id=raw.get("food_id"),
        sort_order=int(raw.get("sort_order", 0)),
    )
