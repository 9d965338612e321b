import functools
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import AsyncIterator

import aiosqlite

from studydeck.config import settings
from studydeck.errors import StoreUnavailableError
from studydeck.models.card_set import CardSet
from studydeck.models.review import ReviewState, StoredReviewState

_db_path: Path | None = None

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

SCHEMA_SQL = """
PRAGMA journal_mode=WAL;

CREATE TABLE IF NOT EXISTS card_sets (
    id          TEXT PRIMARY KEY,
    title       TEXT NOT NULL,
    created_at  TEXT NOT NULL DEFAULT (datetime('now')),
    updated_at  TEXT NOT NULL DEFAULT (datetime('now'))
);

-- card_set_id is intentionally not a foreign key: card sets are deleted
-- without touching review states, which are pruned lazily as orphans.
CREATE TABLE IF NOT EXISTS review_states (
    learner_id       TEXT NOT NULL,
    card_set_id      TEXT NOT NULL,
    card_id          TEXT NOT NULL,
    easiness_factor  REAL NOT NULL DEFAULT 2.5,
    interval         INTEGER NOT NULL DEFAULT 0,
    repetitions      INTEGER NOT NULL DEFAULT 0,
    next_review_date TEXT NOT NULL,
    correct_count    INTEGER NOT NULL DEFAULT 0,
    incorrect_count  INTEGER NOT NULL DEFAULT 0,
    version          INTEGER NOT NULL DEFAULT 0,
    created_at       TEXT NOT NULL DEFAULT (datetime('now')),
    updated_at       TEXT NOT NULL DEFAULT (datetime('now')),
    PRIMARY KEY (learner_id, card_id)
);
CREATE INDEX IF NOT EXISTS idx_review_states_set ON review_states(learner_id, card_set_id);
CREATE INDEX IF NOT EXISTS idx_review_states_due ON review_states(learner_id, next_review_date);

CREATE TABLE IF NOT EXISTS schema_version (
    version    INTEGER PRIMARY KEY,
    applied_at TEXT NOT NULL DEFAULT (datetime('now'))
);
INSERT OR IGNORE INTO schema_version(version) VALUES (1);
"""


def _store_op(func):
    """Re-raise driver errors from a store operation as StoreUnavailableError."""

    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        try:
            return await func(*args, **kwargs)
        except aiosqlite.Error as exc:
            raise StoreUnavailableError(f"{func.__name__} failed: {exc}") from exc

    return wrapper


async def init_sqlite(data_dir: Path) -> None:
    global _db_path
    _db_path = data_dir / settings.sqlite_filename
    async with aiosqlite.connect(_db_path) as db:
        await db.executescript(SCHEMA_SQL)
        await db.commit()


async def get_db() -> AsyncIterator[aiosqlite.Connection]:
    assert _db_path is not None, "SQLite not initialized"
    async with aiosqlite.connect(_db_path) as db:
        db.row_factory = aiosqlite.Row
        yield db


def _now() -> str:
    return datetime.now(timezone.utc).strftime(TIMESTAMP_FORMAT)


def format_timestamp(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime(TIMESTAMP_FORMAT)


def parse_timestamp(value: str) -> datetime:
    return datetime.strptime(value, TIMESTAMP_FORMAT).replace(tzinfo=timezone.utc)


# --- Card sets ---


def _row_to_card_set(row: aiosqlite.Row) -> CardSet:
    return CardSet(**dict(row))


@_store_op
async def create_card_set(db: aiosqlite.Connection, title: str) -> CardSet:
    set_id = str(uuid.uuid4())
    now = _now()
    await db.execute(
        "INSERT INTO card_sets (id, title, created_at, updated_at) VALUES (?, ?, ?, ?)",
        (set_id, title, now, now),
    )
    await db.commit()
    return await get_card_set(db, set_id)  # type: ignore[return-value]


@_store_op
async def get_card_set(db: aiosqlite.Connection, set_id: str) -> CardSet | None:
    cursor = await db.execute("SELECT * FROM card_sets WHERE id = ?", (set_id,))
    row = await cursor.fetchone()
    return _row_to_card_set(row) if row else None


@_store_op
async def list_card_sets(
    db: aiosqlite.Connection, offset: int = 0, limit: int = 50
) -> tuple[list[CardSet], int]:
    cursor = await db.execute("SELECT COUNT(*) FROM card_sets")
    total = (await cursor.fetchone())[0]

    cursor = await db.execute(
        "SELECT * FROM card_sets ORDER BY created_at DESC LIMIT ? OFFSET ?",
        (limit, offset),
    )
    rows = await cursor.fetchall()
    return [_row_to_card_set(r) for r in rows], total


@_store_op
async def delete_card_set(db: aiosqlite.Connection, set_id: str) -> bool:
    cursor = await db.execute("DELETE FROM card_sets WHERE id = ?", (set_id,))
    await db.commit()
    return (cursor.rowcount or 0) > 0


@_store_op
async def resolve_card_set_names(
    db: aiosqlite.Connection, set_ids: list[str]
) -> dict[str, str]:
    """Return {id: title} for the card sets that still exist."""
    if not set_ids:
        return {}
    placeholders = ", ".join("?" for _ in set_ids)
    cursor = await db.execute(
        f"SELECT id, title FROM card_sets WHERE id IN ({placeholders})",  # noqa: S608
        list(set_ids),
    )
    rows = await cursor.fetchall()
    return {row[0]: row[1] for row in rows}


# --- Review states ---


def _row_to_review_state(row: aiosqlite.Row) -> StoredReviewState:
    d = dict(row)
    d["next_review_date"] = parse_timestamp(d["next_review_date"])
    return StoredReviewState(**d)


@_store_op
async def find_review_states(
    db: aiosqlite.Connection,
    learner_id: str,
    card_set_id: str | None = None,
) -> list[StoredReviewState]:
    if card_set_id:
        cursor = await db.execute(
            """SELECT * FROM review_states
               WHERE learner_id = ? AND card_set_id = ?
               ORDER BY rowid""",
            (learner_id, card_set_id),
        )
    else:
        cursor = await db.execute(
            "SELECT * FROM review_states WHERE learner_id = ? ORDER BY rowid",
            (learner_id,),
        )
    rows = await cursor.fetchall()
    return [_row_to_review_state(r) for r in rows]


@_store_op
async def get_review_state(
    db: aiosqlite.Connection, learner_id: str, card_id: str
) -> StoredReviewState | None:
    cursor = await db.execute(
        "SELECT * FROM review_states WHERE learner_id = ? AND card_id = ?",
        (learner_id, card_id),
    )
    row = await cursor.fetchone()
    return _row_to_review_state(row) if row else None


@_store_op
async def insert_review_state(
    db: aiosqlite.Connection,
    learner_id: str,
    card_set_id: str,
    card_id: str,
    state: ReviewState,
    is_correct: bool,
) -> bool:
    """Insert the first state for a card. False if a row already exists."""
    now = _now()
    cursor = await db.execute(
        """INSERT INTO review_states
           (learner_id, card_set_id, card_id, easiness_factor, interval,
            repetitions, next_review_date, correct_count, incorrect_count,
            version, created_at, updated_at)
           VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, 0, ?, ?)
           ON CONFLICT(learner_id, card_id) DO NOTHING""",
        (
            learner_id,
            card_set_id,
            card_id,
            state.easiness_factor,
            state.interval,
            state.repetitions,
            format_timestamp(state.next_review_date),
            1 if is_correct else 0,
            0 if is_correct else 1,
            now,
            now,
        ),
    )
    await db.commit()
    return (cursor.rowcount or 0) > 0


@_store_op
async def update_review_state(
    db: aiosqlite.Connection,
    learner_id: str,
    card_id: str,
    state: ReviewState,
    is_correct: bool,
    expected_version: int,
) -> bool:
    """Write a new state if the row is still at ``expected_version``."""
    cursor = await db.execute(
        """UPDATE review_states
           SET easiness_factor = ?, interval = ?, repetitions = ?,
               next_review_date = ?,
               correct_count = correct_count + ?,
               incorrect_count = incorrect_count + ?,
               version = version + 1, updated_at = ?
           WHERE learner_id = ? AND card_id = ? AND version = ?""",
        (
            state.easiness_factor,
            state.interval,
            state.repetitions,
            format_timestamp(state.next_review_date),
            1 if is_correct else 0,
            0 if is_correct else 1,
            _now(),
            learner_id,
            card_id,
            expected_version,
        ),
    )
    await db.commit()
    return (cursor.rowcount or 0) > 0


@_store_op
async def delete_review_states_for_sets(
    db: aiosqlite.Connection, learner_id: str, set_ids: list[str]
) -> int:
    if not set_ids:
        return 0
    placeholders = ", ".join("?" for _ in set_ids)
    cursor = await db.execute(
        f"DELETE FROM review_states WHERE learner_id = ? AND card_set_id IN ({placeholders})",  # noqa: S608
        [learner_id, *set_ids],
    )
    await db.commit()
    return cursor.rowcount or 0
