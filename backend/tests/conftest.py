"""
Shared fixtures for the scheduling backend tests.

Provides:
- A fresh SQLite database per test (tmp_path)
- A fixed UTC clock
- Helpers to seed card sets and review states
"""

from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio

from studydeck.config import settings
from studydeck.db.sqlite import create_card_set, get_db, init_sqlite, insert_review_state
from studydeck.models.review import ReviewState
from studydeck.services import task_registry


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    """Point the app at a temp data dir and make cleanup retries instant."""
    monkeypatch.setattr(settings, "data_dir", tmp_path)
    monkeypatch.setattr(settings, "cleanup_retry_delay", 0.0)


@pytest_asyncio.fixture
async def db(tmp_path):
    """An open connection to a freshly initialized database."""
    await init_sqlite(tmp_path)
    async for conn in get_db():
        yield conn
        await task_registry.drain()


@pytest.fixture
def now() -> datetime:
    return datetime(2026, 3, 10, 9, 30, tzinfo=timezone.utc)


@pytest.fixture
def seed_state(db):
    """Insert a review state whose next review is ``due_in`` from ``at``."""

    async def _seed(
        learner_id: str,
        card_set_id: str,
        card_id: str,
        at: datetime,
        due_in: timedelta,
        **fields,
    ) -> None:
        state = ReviewState(next_review_date=at + due_in, **fields)
        await insert_review_state(db, learner_id, card_set_id, card_id, state, True)

    return _seed


@pytest.fixture
def seed_set(db):
    async def _seed(title: str) -> str:
        card_set = await create_card_set(db, title)
        return card_set.id

    return _seed
