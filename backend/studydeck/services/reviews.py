from __future__ import annotations

import logging
from datetime import datetime, timezone

import aiosqlite

from studydeck.config import settings
from studydeck.db.sqlite import get_review_state, insert_review_state, update_review_state
from studydeck.errors import ReviewConflictError
from studydeck.models.review import ReviewResult
from studydeck.services.sm2 import compute_next_review, to_quality

logger = logging.getLogger(__name__)


async def record_review(
    db: aiosqlite.Connection,
    learner_id: str,
    card_set_id: str,
    card_id: str,
    is_correct: bool,
    confidence_rating: int | None = None,
    now: datetime | None = None,
) -> ReviewResult:
    """
    Apply one review to the learner's state for ``card_id`` and persist it.

    The read-modify-write is guarded by the row's version: if another writer
    got there first the review is recomputed from the fresh state.
    """
    if now is None:
        now = datetime.now(timezone.utc)

    attempts = max(1, settings.review_write_retries)
    for attempt in range(1, attempts + 1):
        current = await get_review_state(db, learner_id, card_id)
        new_state = compute_next_review(current, is_correct, confidence_rating, now=now)

        if current is None:
            written = await insert_review_state(
                db, learner_id, card_set_id, card_id, new_state, is_correct
            )
        else:
            written = await update_review_state(
                db, learner_id, card_id, new_state, is_correct, current.version
            )

        if written:
            return ReviewResult(
                card_id=card_id,
                card_set_id=current.card_set_id if current else card_set_id,
                quality=to_quality(is_correct, confidence_rating),
                easiness_factor=new_state.easiness_factor,
                interval=new_state.interval,
                repetitions=new_state.repetitions,
                next_review_date=new_state.next_review_date,
            )
        logger.info(
            "Concurrent write on card %s (learner %s), retry %d/%d",
            card_id,
            learner_id,
            attempt,
            attempts,
        )

    raise ReviewConflictError(learner_id, card_id, attempts)
