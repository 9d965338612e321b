import asyncio
from datetime import timedelta

import pytest

from studydeck.config import settings
from studydeck.db.sqlite import get_db, get_review_state
from studydeck.errors import ReviewConflictError
from studydeck.services.due_cards import get_due_summary
from studydeck.services.reviews import record_review

pytestmark = pytest.mark.asyncio


class TestRecordReview:
    async def test_first_review_creates_state(self, db, now):
        result = await record_review(db, "ana", "deck", "c1", True, 5, now=now)

        assert result.quality == 5
        assert result.interval == 1
        assert result.repetitions == 1
        assert result.easiness_factor == pytest.approx(2.6)

        stored = await get_review_state(db, "ana", "c1")
        assert stored is not None
        assert stored.card_set_id == "deck"
        assert stored.next_review_date == now + timedelta(days=1)
        assert stored.correct_count == 1
        assert stored.incorrect_count == 0
        assert stored.version == 0

    async def test_subsequent_reviews_build_on_stored_state(self, db, now):
        await record_review(db, "ana", "deck", "c1", True, 5, now=now)
        await record_review(db, "ana", "deck", "c1", True, 5, now=now)
        result = await record_review(db, "ana", "deck", "c1", True, 5, now=now)

        assert result.interval == 16
        assert result.repetitions == 3
        stored = await get_review_state(db, "ana", "c1")
        assert stored.version == 2
        assert stored.correct_count == 3

    async def test_wrong_answer_counts_and_resets(self, db, now):
        await record_review(db, "ana", "deck", "c1", True, 4, now=now)
        result = await record_review(db, "ana", "deck", "c1", False, 4, now=now)

        assert result.quality == 0
        assert result.repetitions == 0
        assert result.interval == 1
        stored = await get_review_state(db, "ana", "c1")
        assert stored.incorrect_count == 1
        assert stored.correct_count == 1

    async def test_reviewed_card_leaves_due_set(self, db, now, seed_set):
        deck = await seed_set("Deck")
        await record_review(db, "ana", deck, "c1", False, None, now=now - timedelta(days=2))
        assert (await get_due_summary(db, "ana", now=now)).total_due == 1

        await record_review(db, "ana", deck, "c1", True, 5, now=now)
        assert (await get_due_summary(db, "ana", now=now)).total_due == 0

    async def test_lost_update_is_retried(self, db, now, monkeypatch):
        await record_review(db, "ana", "deck", "c1", True, 5, now=now)

        from studydeck.services import reviews

        real_update = reviews.update_review_state
        calls = []

        async def flaky_update(*args, **kwargs):
            calls.append(args)
            if len(calls) == 1:
                # Another writer lands first
                await real_update(*args, **kwargs)
                return False
            return await real_update(*args, **kwargs)

        monkeypatch.setattr(reviews, "update_review_state", flaky_update)
        result = await record_review(db, "ana", "deck", "c1", True, 5, now=now)

        assert len(calls) == 2
        assert result.repetitions == 3
        stored = await get_review_state(db, "ana", "c1")
        assert stored.repetitions == 3
        assert stored.version == 2

    async def test_gives_up_after_repeated_conflicts(self, db, now, monkeypatch):
        await record_review(db, "ana", "deck", "c1", True, 5, now=now)

        async def always_stale(*args, **kwargs):
            return False

        monkeypatch.setattr(
            "studydeck.services.reviews.update_review_state", always_stale
        )
        with pytest.raises(ReviewConflictError) as excinfo:
            await record_review(db, "ana", "deck", "c1", True, 5, now=now)
        assert excinfo.value.attempts == settings.review_write_retries

    async def test_concurrent_first_reviews_are_not_lost(self, db, now):
        async def submit():
            async for conn in get_db():
                result = await record_review(conn, "ana", "deck", "c1", True, 5, now=now)
            return result

        await asyncio.gather(submit(), submit())

        stored = await get_review_state(db, "ana", "c1")
        assert stored.repetitions == 2
        assert stored.correct_count == 2
        assert stored.version == 1
