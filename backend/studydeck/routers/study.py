"""
Study router.

Endpoints:
  GET  /study/due-cards                 - cards due now, grouped by card set
  GET  /study/due-cards/schedule        - forecast: today / tomorrow / this week / per day
  POST /study/cards/{card_id}/review    - submit a review, run SM-2, persist the new state
"""
from __future__ import annotations

import logging

import aiosqlite
from fastapi import APIRouter, Depends, HTTPException, Query

from studydeck.db.sqlite import get_db
from studydeck.errors import ReviewConflictError, StoreUnavailableError
from studydeck.models.due import DueSchedule, DueSummary
from studydeck.models.review import ReviewRequest, ReviewResult
from studydeck.routers.deps import get_learner_id
from studydeck.services.due_cards import get_due_schedule, get_due_summary
from studydeck.services.reviews import record_review

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/due-cards", response_model=DueSummary)
async def due_cards(
    set_id: str | None = Query(default=None),
    learner_id: str = Depends(get_learner_id),
    db: aiosqlite.Connection = Depends(get_db),
) -> DueSummary:
    try:
        return await get_due_summary(db, learner_id, card_set_id=set_id)
    except StoreUnavailableError:
        logger.exception("Due-card query failed for learner %s", learner_id)
        raise HTTPException(status_code=503, detail="Could not load due cards")


@router.get("/due-cards/schedule", response_model=DueSchedule)
async def due_schedule(
    days: int | None = Query(default=None, ge=1, le=60),
    learner_id: str = Depends(get_learner_id),
    db: aiosqlite.Connection = Depends(get_db),
) -> DueSchedule:
    try:
        return await get_due_schedule(db, learner_id, horizon_days=days)
    except StoreUnavailableError:
        logger.exception("Due schedule query failed for learner %s", learner_id)
        raise HTTPException(status_code=503, detail="Could not load due cards")


@router.post("/cards/{card_id}/review", response_model=ReviewResult)
async def review_card(
    card_id: str,
    body: ReviewRequest,
    learner_id: str = Depends(get_learner_id),
    db: aiosqlite.Connection = Depends(get_db),
) -> ReviewResult:
    """Record a review. Out-of-range confidence degrades through the quality table."""
    try:
        return await record_review(
            db,
            learner_id,
            body.card_set_id,
            card_id,
            body.is_correct,
            body.confidence_rating,
        )
    except ReviewConflictError as exc:
        logger.warning("%s", exc)
        raise HTTPException(status_code=409, detail="Review conflicted with a concurrent update")
    except StoreUnavailableError:
        logger.exception("Review write failed for card %s", card_id)
        raise HTTPException(status_code=503, detail="Could not record review")
