"""
Due-card queries over a learner's persisted review states.

get_due_summary  - cards due right now, grouped by card set
get_due_schedule - forecast of upcoming reviews (today / tomorrow / week / per day)

Both resolve card-set names against the card-set store. Review states whose
card set no longer exists are orphans: they are left out of the response and
deleted by a background task that never affects the caller.
"""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

import aiosqlite

from studydeck.config import settings
from studydeck.db.sqlite import (
    delete_review_states_for_sets,
    find_review_states,
    get_db,
    resolve_card_set_names,
)
from studydeck.errors import StoreUnavailableError
from studydeck.models.due import (
    DayCount,
    DueBucket,
    DueSchedule,
    DueSet,
    DueSummary,
    SetDueCount,
)
from studydeck.models.review import StoredReviewState
from studydeck.services import task_registry

logger = logging.getLogger(__name__)


@dataclass
class SetPartition:
    card_set_id: str
    due_card_ids: list[str] = field(default_factory=list)

    @property
    def due_count(self) -> int:
        return len(self.due_card_ids)


def summarize_due(
    states: Iterable[StoredReviewState], now: datetime
) -> dict[str, SetPartition]:
    """
    Partition states by card set, keeping the ids of cards due at ``now``.

    Every referenced card set gets an entry, including sets with nothing due.
    Insertion order follows the order of ``states``.
    """
    partitions: dict[str, SetPartition] = {}
    for state in states:
        part = partitions.setdefault(state.card_set_id, SetPartition(state.card_set_id))
        if state.next_review_date <= now:
            part.due_card_ids.append(state.card_id)
    return partitions


async def get_due_summary(
    db: aiosqlite.Connection,
    learner_id: str,
    card_set_id: str | None = None,
    now: datetime | None = None,
) -> DueSummary:
    """Return the learner's due cards grouped by card set, orphans excluded."""
    if now is None:
        now = datetime.now(timezone.utc)

    states = await find_review_states(db, learner_id, card_set_id)
    if not states:
        return DueSummary(sets=[], total_due=0)

    partitions = summarize_due(states, now)
    names = await _resolve_and_prune(db, learner_id, list(partitions))

    sets = [
        DueSet(
            card_set_id=part.card_set_id,
            card_set_name=names[part.card_set_id],
            due_count=part.due_count,
            due_card_ids=part.due_card_ids,
        )
        for part in partitions.values()
        if part.due_count > 0 and part.card_set_id in names
    ]
    return DueSummary(sets=sets, total_due=sum(s.due_count for s in sets))


async def get_due_schedule(
    db: aiosqlite.Connection,
    learner_id: str,
    now: datetime | None = None,
    horizon_days: int | None = None,
) -> DueSchedule:
    """
    Forecast upcoming reviews over UTC calendar days.

    today     - overdue cards and cards due before the end of today
    tomorrow  - cards due during tomorrow
    this_week - everything due before the end of day today + 7
    days      - one entry per day for ``horizon_days`` days starting today;
                overdue cards are counted on today
    Cards due after both the week and the horizon are ignored.
    """
    if now is None:
        now = datetime.now(timezone.utc)
    if horizon_days is None:
        horizon_days = settings.schedule_horizon_days
    horizon_days = max(1, horizon_days)

    now = now.astimezone(timezone.utc)
    start_of_today = now.replace(hour=0, minute=0, second=0, microsecond=0)
    end_of_today = start_of_today + timedelta(days=1)
    end_of_tomorrow = end_of_today + timedelta(days=1)
    end_of_week = start_of_today + timedelta(days=8)
    end_of_horizon = start_of_today + timedelta(days=horizon_days)

    states = await find_review_states(db, learner_id)

    today: dict[str, int] = {}
    tomorrow: dict[str, int] = {}
    week: dict[str, int] = {}
    per_day = [0] * horizon_days
    referenced: dict[str, None] = {}

    for state in states:
        referenced.setdefault(state.card_set_id)
        due = state.next_review_date
        if due >= max(end_of_horizon, end_of_week):
            continue
        set_id = state.card_set_id
        if due < end_of_today:
            today[set_id] = today.get(set_id, 0) + 1
        elif due < end_of_tomorrow:
            tomorrow[set_id] = tomorrow.get(set_id, 0) + 1
        if due < end_of_week:
            week[set_id] = week.get(set_id, 0) + 1
        if due < end_of_horizon:
            offset = max(0, (due - start_of_today).days)
            per_day[offset] += 1

    names = await _resolve_and_prune(db, learner_id, list(referenced))

    return DueSchedule(
        today=_bucket(today, names),
        tomorrow=_bucket(tomorrow, names),
        this_week=_bucket(week, names),
        days=[
            DayCount(
                date=(start_of_today + timedelta(days=i)).date().isoformat(),
                count=count,
            )
            for i, count in enumerate(per_day)
        ],
    )


def _bucket(counts: dict[str, int], names: dict[str, str]) -> DueBucket:
    sets = [
        SetDueCount(card_set_id=set_id, card_set_name=names[set_id], due_count=count)
        for set_id, count in counts.items()
        if set_id in names
    ]
    sets.sort(key=lambda s: s.due_count, reverse=True)
    return DueBucket(count=sum(s.due_count for s in sets), sets=sets)


async def _resolve_and_prune(
    db: aiosqlite.Connection, learner_id: str, set_ids: list[str]
) -> dict[str, str]:
    names = await resolve_card_set_names(db, set_ids)
    orphaned = [set_id for set_id in set_ids if set_id not in names]
    if orphaned:
        schedule_orphan_cleanup(learner_id, orphaned)
    return names


# --- Orphan cleanup ---


def schedule_orphan_cleanup(
    learner_id: str, card_set_ids: list[str]
) -> asyncio.Task | None:
    """Start a background deletion of the learner's states for missing card sets."""
    if not card_set_ids:
        return None
    key = f"orphan-cleanup:{learner_id}:{','.join(sorted(card_set_ids))}"
    if task_registry.is_running(key):
        return task_registry.get_task(key)
    logger.info(
        "Pruning review states for %d missing card set(s) (learner %s)",
        len(card_set_ids),
        learner_id,
    )
    return task_registry.start_task(
        key, _delete_orphaned_states(learner_id, list(card_set_ids))
    )


async def _delete_orphaned_states(learner_id: str, card_set_ids: list[str]) -> None:
    attempts = max(1, settings.cleanup_retries)
    for attempt in range(1, attempts + 1):
        try:
            async for db in get_db():
                deleted = await delete_review_states_for_sets(db, learner_id, card_set_ids)
            logger.info(
                "Deleted %d orphaned review state(s) for learner %s", deleted, learner_id
            )
            return
        except (StoreUnavailableError, aiosqlite.Error) as exc:
            logger.warning(
                "Orphan cleanup attempt %d/%d failed for learner %s: %s",
                attempt,
                attempts,
                learner_id,
                exc,
            )
            if attempt < attempts:
                await asyncio.sleep(settings.cleanup_retry_delay * attempt)
    logger.warning(
        "Giving up on orphan cleanup for learner %s (sets %s)", learner_id, card_set_ids
    )
