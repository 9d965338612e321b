"""
SM-2 spaced repetition scheduling.

A review is a binary correctness signal plus an optional 1-5 self-reported
confidence. The pair is mapped onto the classic 0-5 SM-2 quality grade:

  incorrect, confidence absent/<=3  -> 1
  incorrect, confidence >=4         -> 0   (confidently wrong is worst)
  correct,   confidence absent/<=2  -> 3
  correct,   confidence 3           -> 4
  correct,   confidence >=4         -> 5

All timestamps are timezone-aware UTC. The next review is the review
instant plus ``interval`` whole days.
"""
from __future__ import annotations

import math
from datetime import datetime, timedelta, timezone

from studydeck.config import settings
from studydeck.models.review import ReviewState


def to_quality(is_correct: bool, confidence_rating: int | None = None) -> int:
    """Map a correctness/confidence pair to an SM-2 quality score (0-5)."""
    if not is_correct:
        if confidence_rating is not None and confidence_rating >= 4:
            return 0
        return 1
    if confidence_rating is None or confidence_rating <= 2:
        return 3
    if confidence_rating == 3:
        return 4
    return 5


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def compute_next_review(
    prior: ReviewState | None,
    is_correct: bool,
    confidence_rating: int | None = None,
    now: datetime | None = None,
) -> ReviewState:
    """
    Compute the scheduling state that follows a single review.

    ``prior`` is None the first time a card is reviewed; defaults
    (EF 2.5, interval 0, repetitions 0) are substituted. Pure: the prior
    state is not modified.
    """
    if prior is None:
        easiness = settings.default_easiness
        interval = 0
        repetitions = 0
    else:
        easiness = prior.easiness_factor
        interval = prior.interval
        repetitions = prior.repetitions

    q = to_quality(is_correct, confidence_rating)

    if q >= 3:
        if repetitions == 0:
            interval = 1
        elif repetitions == 1:
            interval = 6
        else:
            interval = _round_half_up(interval * easiness)
        repetitions += 1
    else:
        # Lapse: back to daily review regardless of the prior interval
        repetitions = 0
        interval = 1

    easiness += 0.1 - (5 - q) * (0.08 + (5 - q) * 0.02)
    if easiness < settings.minimum_easiness:
        easiness = settings.minimum_easiness

    if now is None:
        now = datetime.now(timezone.utc)
    return ReviewState(
        easiness_factor=easiness,
        interval=interval,
        repetitions=repetitions,
        next_review_date=now + timedelta(days=interval),
    )
