"""File-backed local cache using SQLite."""

import asyncio
import sqlite3
import threading
from collections.abc import Iterator
from contextlib import closing, contextmanager
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from uuid import UUID

from diet_tracker.api.models import FoodLogEntryModel, MacroTargetsModel
from diet_tracker.domain.food_logs import FoodLogEntry, MacroTargets
from diet_tracker.services.local_cache import CachedDay, LocalCache, should_replace

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS cache_entries (
        owner_id TEXT NOT NULL,
        entry_id TEXT NOT NULL,
        logged_date TEXT NOT NULL,
        update_counter INTEGER NOT NULL,
        deleted INTEGER NOT NULL,
        sequence INTEGER NOT NULL,
        payload TEXT NOT NULL,
        PRIMARY KEY (owner_id, entry_id)
    );
    """,
    "CREATE INDEX IF NOT EXISTS idx_cache_entries_owner_date "
    "ON cache_entries(owner_id, logged_date);",
    """
    CREATE TABLE IF NOT EXISTS cache_days (
        owner_id TEXT NOT NULL,
        day TEXT NOT NULL,
        targets TEXT,
        PRIMARY KEY (owner_id, day)
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS cache_sequence (
        owner_id TEXT PRIMARY KEY,
        value INTEGER NOT NULL
    );
    """,
)


def connect(db_path: Path) -> sqlite3.Connection:
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(db_path), check_same_thread=False)
    conn.row_factory = sqlite3.Row
    return conn


@dataclass
class SqliteLocalCache(LocalCache):
    """Per-owner cache rows in a local SQLite file.

    Blocking sqlite calls run in worker threads, one at a time.
    """

    db_path: Path
    owner_id: UUID
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False)
    _initialized: bool = field(default=False, init=False)

    async def checkpoint(self) -> int:
        return await asyncio.to_thread(self._run, self._checkpoint)

    async def load_day(self, day: date) -> CachedDay | None:
        return await asyncio.to_thread(self._run, self._load_day, day)

    async def get_entry(self, entry_id: UUID) -> FoodLogEntry | None:
        return await asyncio.to_thread(self._run, self._get_entry, entry_id)

    async def put_entry(self, entry: FoodLogEntry) -> None:
        await asyncio.to_thread(self._run, self._put_entry, entry)

    async def replace_day(
        self,
        day: date,
        entries: list[FoodLogEntry],
        targets: MacroTargets | None,
        as_of: int,
    ) -> None:
        await asyncio.to_thread(
            self._run, self._replace_day, day, entries, targets, as_of
        )

    def _run(self, operation, *args):
        with self._lock, self._transaction() as conn:
            return operation(conn, *args)

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        with closing(connect(self.db_path)) as conn:
            if not self._initialized:
                for statement in _SCHEMA:
                    conn.execute(statement)
                self._initialized = True
            with conn:
                yield conn

    def _checkpoint(self, conn: sqlite3.Connection) -> int:
        row = conn.execute(
            "SELECT value FROM cache_sequence WHERE owner_id = ?",
            (str(self.owner_id),),
        ).fetchone()
        return int(row["value"]) if row else 0

    def _next_sequence(self, conn: sqlite3.Connection) -> int:
        sequence = self._checkpoint(conn) + 1
        conn.execute(
            "INSERT INTO cache_sequence (owner_id, value) VALUES (?, ?) "
            "ON CONFLICT(owner_id) DO UPDATE SET value = excluded.value",
            (str(self.owner_id), sequence),
        )
        return sequence

    def _load_day(self, conn: sqlite3.Connection, day: date) -> CachedDay | None:
        rows = conn.execute(
            "SELECT payload FROM cache_entries "
            "WHERE owner_id = ? AND logged_date = ? AND deleted = 0",
            (str(self.owner_id), day.isoformat()),
        ).fetchall()
        day_row = conn.execute(
            "SELECT targets FROM cache_days WHERE owner_id = ? AND day = ?",
            (str(self.owner_id), day.isoformat()),
        ).fetchone()
        if day_row is None and not rows:
            return None
        targets = (
            MacroTargetsModel.model_validate_json(day_row["targets"]).to_domain()
            if day_row is not None and day_row["targets"]
            else None
        )
        return CachedDay(
            day=day,
            entries=[_decode(row["payload"]) for row in rows],
            targets=targets,
        )

    def _get_entry(
        self, conn: sqlite3.Connection, entry_id: UUID
    ) -> FoodLogEntry | None:
        row = conn.execute(
            "SELECT payload FROM cache_entries WHERE owner_id = ? AND entry_id = ?",
            (str(self.owner_id), str(entry_id)),
        ).fetchone()
        return _decode(row["payload"]) if row else None

    def _put_entry(self, conn: sqlite3.Connection, entry: FoodLogEntry) -> None:
        row = conn.execute(
            "SELECT payload FROM cache_entries WHERE owner_id = ? AND entry_id = ?",
            (str(self.owner_id), str(entry.id)),
        ).fetchone()
        cached = _decode(row["payload"]) if row else None
        if not should_replace(cached, entry):
            return
        conn.execute(
            "INSERT OR REPLACE INTO cache_entries "
            "(owner_id, entry_id, logged_date, update_counter, deleted, sequence, "
            "payload) VALUES (?, ?, ?, ?, ?, ?, ?)",
            (
                str(self.owner_id),
                str(entry.id),
                entry.logged_date.isoformat(),
                entry.update_counter,
                int(entry.is_deleted),
                self._next_sequence(conn),
                FoodLogEntryModel.from_domain(entry).model_dump_json(by_alias=True),
            ),
        )

    def _replace_day(
        self,
        conn: sqlite3.Connection,
        day: date,
        entries: list[FoodLogEntry],
        targets: MacroTargets | None,
        as_of: int,
    ) -> None:
        keep = {str(entry.id) for entry in entries}
        rows = conn.execute(
            "SELECT entry_id, sequence FROM cache_entries "
            "WHERE owner_id = ? AND logged_date = ?",
            (str(self.owner_id), day.isoformat()),
        ).fetchall()
        stale = [
            (str(self.owner_id), row["entry_id"])
            for row in rows
            if row["entry_id"] not in keep and row["sequence"] <= as_of
        ]
        conn.executemany(
            "DELETE FROM cache_entries WHERE owner_id = ? AND entry_id = ?", stale
        )
        for entry in entries:
            self._put_entry(conn, entry)
        conn.execute(
            "INSERT OR REPLACE INTO cache_days (owner_id, day, targets) "
            "VALUES (?, ?, ?)",
            (
                str(self.owner_id),
                day.isoformat(),
                MacroTargetsModel.from_domain(targets).model_dump_json(by_alias=True)
                if targets
                else None,
            ),
        )


def _decode(payload: str) -> FoodLogEntry:
    return FoodLogEntryModel.model_validate_json(payload).to_domain()
