"""
Aggregation service — daily -> weekly -> streak -> momentum.

Definitions
-----------
Visible actions : the first MONK_MODE_MAX_TASKS (3) actions of a day by
                  creation order. The cap is applied at read time no matter
                  how many rows a day has.
Daily score     : score_math.daily_score(completed visible actions).
Weekly score    : score_math.weekly_score(daily scores of the week's days
                  up to today that have actions). Stored in weekly_scores,
                  one row per (owner, cycle, week), recomputed in place.
Winning day     : every visible action of the day is completed.
Streaks         : trailing run of winning / losing days up to today. Today
                  only counts once it is won; until then it is in progress.
Display score   : last week's stored score when this week is shielded.

Public API
----------
get_todays_actions(db, cycle_id, day)                 -> list[DailyAction]
recompute_weekly_score(db, cycle, week_number, today) -> WeeklyScore (flush only)
get_weekly_score(db, cycle, week_number, today)       -> WeeklyScore (recompute if stale)
refresh_streaks(db, cycle, today)                     -> StreakCounters (flush only)
summarize(db, owner_id, cycle_id, today)              -> CycleSummary (commits)

summarize is all-or-nothing: any error from a dependency rolls the session
back and propagates unchanged.
"""
from __future__ import annotations

import logging
from collections import OrderedDict
from dataclasses import asdict, dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import exc as sa_exc
from sqlalchemy.orm import Session

from app.core.config import settings
from app.models.cycle import Cycle
from app.models.daily_action import DailyAction
from app.models.goal import Goal
from app.models.weekly_score import WeeklyScore
from app.services import score_math
from app.services.credit_ledger import is_week_shielded, remaining_credits
from app.services.cycle_lifecycle import (
    get_current_week,
    get_owned_cycle,
    get_remaining_days,
    week_bounds,
)
from app.services.profiles import get_or_create_profile

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass
class CoachContext:
    """The only payload handed to the external text generator."""
    vision: str
    current_goal: str
    weekly_score: int
    daily_score: int
    streak: int
    is_shielded: bool
    current_week: int
    remaining_days: int

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class StreakCounters:
    winning: int
    losing: int


@dataclass
class WeekComputation:
    score: int
    tasks_completed: int
    tasks_total: int
    is_shielded: bool


@dataclass
class CycleSummary:
    cycle: Cycle
    current_week: int
    remaining_days: int
    todays_actions: list[DailyAction]
    daily_score: int
    weekly: WeeklyScore
    previous_week_score: Optional[int]
    display_score: int
    is_shielded: bool
    execution_status: score_math.ExecutionStatus
    streaks: StreakCounters
    momentum_state: score_math.MomentumState
    shield_credits_remaining: int
    coach_context: CoachContext


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _today() -> date:
    return datetime.now(tz=timezone.utc).date()


def _visible_actions_by_day(
    db: Session, cycle_id: int, first: date, last: date
) -> "OrderedDict[date, list[DailyAction]]":
    """Actions in [first, last] grouped by day, oldest day first, capped per day."""
    rows = (
        db.query(DailyAction)
        .filter(
            DailyAction.cycle_id == cycle_id,
            DailyAction.action_date >= first,
            DailyAction.action_date <= last,
        )
        .order_by(
            DailyAction.action_date.asc(),
            DailyAction.created_at.asc(),
            DailyAction.id.asc(),
        )
        .all()
    )
    by_day: OrderedDict[date, list[DailyAction]] = OrderedDict()
    for action in rows:
        bucket = by_day.setdefault(action.action_date, [])
        if len(bucket) < settings.MONK_MODE_MAX_TASKS:
            bucket.append(action)
    return by_day


def _completed(actions: list[DailyAction]) -> int:
    return sum(1 for a in actions if a.is_completed)


def get_todays_actions(db: Session, cycle_id: int, day: Optional[date] = None) -> list[DailyAction]:
    """Monk Mode read: at most MONK_MODE_MAX_TASKS actions, creation order."""
    target = day or _today()
    return _visible_actions_by_day(db, cycle_id, target, target).get(target, [])


# ---------------------------------------------------------------------------
# Weekly score
# ---------------------------------------------------------------------------

def _compute_week(
    db: Session, cycle: Cycle, week_number: int, today: Optional[date] = None
) -> WeekComputation:
    """Only days up to `today` count; a day that has not happened yet is not a 0."""
    first, last = week_bounds(cycle, week_number)
    last = min(last, today or _today())
    by_day = _visible_actions_by_day(db, cycle.id, first, last) if last >= first else OrderedDict()

    dailies = [
        score_math.daily_score(_completed(actions), settings.MONK_MODE_MAX_TASKS)
        for actions in by_day.values()
    ]
    return WeekComputation(
        score=score_math.weekly_score(dailies),
        tasks_completed=sum(_completed(actions) for actions in by_day.values()),
        tasks_total=sum(len(actions) for actions in by_day.values()),
        is_shielded=is_week_shielded(db, cycle.owner_id, cycle.id, week_number),
    )


def _existing_week(db: Session, cycle: Cycle, week_number: int) -> Optional[WeeklyScore]:
    return (
        db.query(WeeklyScore)
        .filter(
            WeeklyScore.owner_id == cycle.owner_id,
            WeeklyScore.cycle_id == cycle.id,
            WeeklyScore.week_number == week_number,
        )
        .first()
    )


def _apply(row: WeeklyScore, computed: WeekComputation) -> None:
    row.score = computed.score
    row.tasks_completed = computed.tasks_completed
    row.tasks_total = computed.tasks_total
    row.is_shielded = computed.is_shielded


def _store_week(
    db: Session,
    cycle: Cycle,
    week_number: int,
    computed: WeekComputation,
    existing: Optional[WeeklyScore],
) -> WeeklyScore:
    row = existing
    if row is None:
        row = WeeklyScore(
            owner_id=cycle.owner_id,
            cycle_id=cycle.id,
            week_number=week_number,
            week_start=week_bounds(cycle, week_number)[0],
        )
        _apply(row, computed)
        try:
            with db.begin_nested():
                db.add(row)
            return row
        except sa_exc.IntegrityError:
            # Another request created the row first; update theirs instead.
            logger.info(
                "Weekly score for cycle %s week %s created concurrently; updating it",
                cycle.id, week_number,
            )
            row = _existing_week(db, cycle, week_number)
            if row is None:
                raise
    _apply(row, computed)
    db.flush()
    return row


def _is_stale(row: WeeklyScore, computed: WeekComputation) -> bool:
    return (
        row.score != computed.score
        or row.tasks_completed != computed.tasks_completed
        or row.tasks_total != computed.tasks_total
        or row.is_shielded != computed.is_shielded
    )


def recompute_weekly_score(
    db: Session, cycle: Cycle, week_number: int, today: Optional[date] = None
) -> WeeklyScore:
    """Recompute and upsert. Flushes; the caller commits."""
    computed = _compute_week(db, cycle, week_number, today)
    return _store_week(db, cycle, week_number, computed, _existing_week(db, cycle, week_number))


def get_weekly_score(
    db: Session, cycle: Cycle, week_number: int, today: Optional[date] = None
) -> WeeklyScore:
    """
    Stored score for a week, recomputed first when missing or stale.
    A revoked shield is picked up here: the stored is_shielded no longer
    matches the ledger. So is a day that has ended since the last write.
    """
    existing = _existing_week(db, cycle, week_number)
    computed = _compute_week(db, cycle, week_number, today)
    if existing is not None and not _is_stale(existing, computed):
        return existing
    logger.debug("Weekly score for cycle %s week %s is stale; recomputing", cycle.id, week_number)
    return _store_week(db, cycle, week_number, computed, existing)



# ---------------------------------------------------------------------------
# Streaks
# ---------------------------------------------------------------------------

def _day_outcomes(db: Session, cycle: Cycle, today: date) -> list[bool]:
    last = min(today, cycle.end_date)
    if last < cycle.start_date:
        return []
    by_day = _visible_actions_by_day(db, cycle.id, cycle.start_date, last)

    outcomes: list[bool] = []
    day = cycle.start_date
    while day <= last:
        actions = by_day.get(day, [])
        won = bool(actions) and _completed(actions) == len(actions)
        if day == today and not won:
            break  # today is still in progress
        outcomes.append(won)
        day += timedelta(days=1)
    return outcomes


def refresh_streaks(db: Session, cycle: Cycle, today: Optional[date] = None) -> StreakCounters:
    """Recompute the owner's streak counters from the cycle's actions."""
    winning, losing = score_math.trailing_streaks(_day_outcomes(db, cycle, today or _today()))
    profile = get_or_create_profile(db, cycle.owner_id)
    profile.winning_streak = winning
    profile.losing_streak = losing
    db.flush()
    return StreakCounters(winning=winning, losing=losing)


# ---------------------------------------------------------------------------
# Coach context
# ---------------------------------------------------------------------------

def _current_goal_title(db: Session, cycle_id: int) -> Optional[str]:
    goal = (
        db.query(Goal)
        .filter(Goal.cycle_id == cycle_id)
        .order_by(Goal.priority.asc(), Goal.id.asc())
        .first()
    )
    return goal.title if goal else None


# ---------------------------------------------------------------------------
# Summary
# ---------------------------------------------------------------------------

def summarize(
    db: Session,
    owner_id: str,
    cycle_id: int,
    today: Optional[date] = None,
) -> CycleSummary:
    cycle = get_owned_cycle(db, owner_id, cycle_id)
    today = today or _today()

    try:
        profile = get_or_create_profile(db, owner_id)
        current_week = get_current_week(cycle, today)
        remaining_days = get_remaining_days(cycle, today)

        todays_actions = get_todays_actions(db, cycle.id, today)
        daily = score_math.daily_score(_completed(todays_actions), settings.MONK_MODE_MAX_TASKS)

        weekly = get_weekly_score(db, cycle, current_week, today)
        previous: Optional[int] = None
        if current_week > 1:
            previous = get_weekly_score(db, cycle, current_week - 1, today).score
        shown = score_math.display_score(weekly.score, weekly.is_shielded, previous)
        status = score_math.execution_status(weekly.score, weekly.is_shielded)

        streaks = refresh_streaks(db, cycle, today)
        state = score_math.momentum_state(streaks.winning, streaks.losing)
        credits_left = remaining_credits(db, owner_id, cycle.id)

        context = CoachContext(
            vision=cycle.vision or profile.vision_statement or settings.DEFAULT_VISION,
            current_goal=_current_goal_title(db, cycle.id) or settings.DEFAULT_GOAL,
            weekly_score=shown,
            daily_score=daily,
            streak=streaks.winning,
            is_shielded=weekly.is_shielded,
            current_week=current_week,
            remaining_days=remaining_days,
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    return CycleSummary(
        cycle=cycle,
        current_week=current_week,
        remaining_days=remaining_days,
        todays_actions=todays_actions,
        daily_score=daily,
        weekly=weekly,
        previous_week_score=previous,
        display_score=shown,
        is_shielded=weekly.is_shielded,
        execution_status=status,
        streaks=streaks,
        momentum_state=state,
        shield_credits_remaining=credits_left,
        coach_context=context,
    )


def build_coach_context(
    db: Session,
    owner_id: str,
    cycle_id: int,
    today: Optional[date] = None,
) -> CoachContext:
    return summarize(db, owner_id, cycle_id, today).coach_context
