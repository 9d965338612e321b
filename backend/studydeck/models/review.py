from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class ReviewState(BaseModel):
    easiness_factor: float = 2.5  # never below 1.3
    interval: int = 0             # days until next review
    repetitions: int = 0          # consecutive correct answers since last lapse
    next_review_date: datetime    # UTC; due when now >= this


class StoredReviewState(ReviewState):
    """A review state as persisted for one (learner, card) pair."""

    learner_id: str
    card_set_id: str
    card_id: str
    correct_count: int = 0
    incorrect_count: int = 0
    version: int = 0
    created_at: str
    updated_at: str


class ReviewEvent(BaseModel):
    is_correct: bool
    confidence_rating: int | None = Field(default=None, description="1-5, optional")


class ReviewRequest(ReviewEvent):
    card_set_id: str


class ReviewResult(BaseModel):
    card_id: str
    card_set_id: str
    quality: int
    easiness_factor: float
    interval: int
    repetitions: int
    next_review_date: datetime
