from __future__ import annotations

from pydantic import BaseModel


class DueSet(BaseModel):
    card_set_id: str
    card_set_name: str
    due_count: int
    due_card_ids: list[str]


class DueSummary(BaseModel):
    sets: list[DueSet]
    total_due: int


class SetDueCount(BaseModel):
    card_set_id: str
    card_set_name: str
    due_count: int


class DueBucket(BaseModel):
    count: int
    sets: list[SetDueCount]


class DayCount(BaseModel):
    date: str  # YYYY-MM-DD, UTC
    count: int


class DueSchedule(BaseModel):
    today: DueBucket
    tomorrow: DueBucket
    this_week: DueBucket
    days: list[DayCount]
