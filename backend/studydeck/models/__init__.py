from studydeck.models.card_set import CardSet, CardSetCreate, CardSetList
from studydeck.models.due import (
    DayCount,
    DueBucket,
    DueSchedule,
    DueSet,
    DueSummary,
    SetDueCount,
)
from studydeck.models.review import (
    ReviewEvent,
    ReviewRequest,
    ReviewResult,
    ReviewState,
    StoredReviewState,
)

__all__ = [
    "CardSet",
    "CardSetCreate",
    "CardSetList",
    "DayCount",
    "DueBucket",
    "DueSchedule",
    "DueSet",
    "DueSummary",
    "ReviewEvent",
    "ReviewRequest",
    "ReviewResult",
    "ReviewState",
    "SetDueCount",
    "StoredReviewState",
]
