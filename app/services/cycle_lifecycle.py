"""
Cycle lifecycle — initialize, close, and calendar math for a 12-week cycle.

initialize_cycle
----------------
  1. Validate input (name, 1..3 goals, priority in {1, 2, 3}).
  2. Pre-check: the owner has no active cycle. Raised as ConflictError
     *before* any insert; one active cycle per owner is a business rule.
  3. One transaction: Cycle + Goals + 84 DailyActions
     (start_date .. start_date + 83, inclusive).
  4. Recount the seeded actions inside the transaction. Anything but 84
     rolls everything back and raises IntegrityError.

close_cycle
-----------
active -> closed, irreversible. final_score = mean(WeeklyScore.score) for the
cycle, 0 when no week was scored. The transition is a guarded UPDATE so two
concurrent closes cannot both apply; the loser gets StateError.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Sequence

from sqlalchemy import exc as sa_exc, func, update
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import ConflictError, IntegrityError, NotFoundError, StateError, ValidationError
from app.models.cycle import Cycle, CycleStatus
from app.models.daily_action import DailyAction
from app.models.goal import Goal
from app.models.weekly_score import WeeklyScore
from app.services.profiles import get_or_create_profile

logger = logging.getLogger(__name__)

MAX_GOALS = 3
_VALID_PRIORITIES = {1, 2, 3}


# ---------------------------------------------------------------------------
# Input / result types
# ---------------------------------------------------------------------------

@dataclass
class GoalInput:
    title: str
    description: Optional[str] = None
    priority: int = 1
    target_metric: Optional[str] = None
    target_value: Optional[Decimal] = None


@dataclass
class CycleInitResult:
    cycle: Cycle
    goals: list[Goal]
    days_generated: int


# ---------------------------------------------------------------------------
# Calendar math
# ---------------------------------------------------------------------------

def _today() -> date:
    return datetime.now(tz=timezone.utc).date()


def cycle_end_date(start_date: date) -> date:
    """Inclusive last day: start + 83 for a 12-week cycle."""
    return start_date + timedelta(days=settings.cycle_days - 1)


def get_current_week(cycle: Cycle, today: Optional[date] = None) -> int:
    """clamp(floor(days_since_start / 7) + 1, 1, 12)"""
    elapsed = ((today or _today()) - cycle.start_date).days
    week = elapsed // 7 + 1
    return max(1, min(settings.CYCLE_WEEKS, week))


def get_remaining_days(cycle: Cycle, today: Optional[date] = None) -> int:
    return max(0, (cycle.end_date - (today or _today())).days)


def week_bounds(cycle: Cycle, week_number: int) -> tuple[date, date]:
    """First and last day (inclusive) of a week of the cycle."""
    first = cycle.start_date + timedelta(days=(week_number - 1) * 7)
    return first, first + timedelta(days=6)


def week_of(cycle: Cycle, day: date) -> int:
    return get_current_week(cycle, day)


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------

def get_active_cycle(db: Session, owner_id: str) -> Optional[Cycle]:
    """The owner's active cycle, or None. None is a normal, empty result."""
    return (
        db.query(Cycle)
        .filter(Cycle.owner_id == owner_id, Cycle.status == CycleStatus.active)
        .first()
    )


def get_owned_cycle(db: Session, owner_id: str, cycle_id: int) -> Cycle:
    cycle = db.get(Cycle, cycle_id)
    if cycle is None or cycle.owner_id != owner_id:
        raise NotFoundError("Cycle")
    return cycle


# ---------------------------------------------------------------------------
# initialize
# ---------------------------------------------------------------------------

def _validate_goals(goals: Sequence[GoalInput]) -> None:
    if not goals:
        raise ValidationError("At least one goal is required.")
    if len(goals) > MAX_GOALS:
        raise ValidationError(
            f"Maximum {MAX_GOALS} goals allowed.",
            details={"max_goals": MAX_GOALS, "received": len(goals)},
        )
    for g in goals:
        if not g.title or not g.title.strip():
            raise ValidationError("Goal title is required.")
        if g.priority not in _VALID_PRIORITIES:
            raise ValidationError(
                "Goal priority must be 1, 2 or 3.",
                details={"priority": g.priority},
            )


def _build_daily_actions(cycle: Cycle) -> list[DailyAction]:
    """The fixed schedule: one action per day of the cycle."""
    return [
        DailyAction(
            cycle_id=cycle.id,
            owner_id=cycle.owner_id,
            title=f"Day {offset + 1} execution",
            action_date=cycle.start_date + timedelta(days=offset),
            is_completed=False,
        )
        for offset in range(settings.cycle_days)
    ]


def initialize_cycle(
    db: Session,
    owner_id: str,
    name: str,
    start_date: date,
    goals: Sequence[GoalInput],
    vision: Optional[str] = None,
) -> CycleInitResult:
    if not name or not name.strip():
        raise ValidationError("Cycle name is required.")
    _validate_goals(goals)

    if get_active_cycle(db, owner_id) is not None:
        raise ConflictError(
            "An active cycle already exists. Close it before creating a new one."
        )

    expected = settings.cycle_days
    try:
        profile = get_or_create_profile(db, owner_id)
        if vision:
            profile.vision_statement = vision

        cycle = Cycle(
            owner_id=owner_id,
            name=name.strip(),
            vision=vision,
            start_date=start_date,
            end_date=cycle_end_date(start_date),
            status=CycleStatus.active,
        )
        db.add(cycle)
        db.flush()  # get cycle.id

        goal_rows = [
            Goal(
                cycle_id=cycle.id,
                owner_id=owner_id,
                title=g.title.strip(),
                description=g.description,
                priority=g.priority,
                target_metric=g.target_metric,
                target_value=g.target_value,
                current_value=Decimal("0"),
            )
            for g in goals
        ]
        db.add_all(goal_rows)
        db.add_all(_build_daily_actions(cycle))
        db.flush()

        days_generated: int = (
            db.query(func.count(DailyAction.id))
            .filter(DailyAction.cycle_id == cycle.id)
            .scalar()
            or 0
        )
        if days_generated != expected:
            raise IntegrityError(
                f"Expected {expected} daily actions, got {days_generated}.",
                details={"expected": expected, "generated": days_generated},
            )
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.error("Cycle seeding aborted for owner %s: wrong daily action count", owner_id)
        raise
    except sa_exc.IntegrityError:
        # Lost the race against a concurrent initialize for the same owner.
        db.rollback()
        raise ConflictError(
            "An active cycle already exists. Close it before creating a new one."
        )
    except Exception:
        db.rollback()
        raise

    db.refresh(cycle)
    logger.info(
        "Cycle %s initialized for owner %s (%s -> %s, %d actions)",
        cycle.id, owner_id, cycle.start_date, cycle.end_date, days_generated,
    )
    return CycleInitResult(cycle=cycle, goals=goal_rows, days_generated=days_generated)


# ---------------------------------------------------------------------------
# close
# ---------------------------------------------------------------------------

def _final_score(db: Session, cycle_id: int) -> Decimal:
    avg = (
        db.query(func.avg(WeeklyScore.score))
        .filter(WeeklyScore.cycle_id == cycle_id)
        .scalar()
    )
    if avg is None:
        return Decimal("0.00")
    return Decimal(str(avg)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def close_cycle(db: Session, cycle_id: int, caller: str) -> Cycle:
    cycle = get_owned_cycle(db, caller, cycle_id)
    if cycle.status != CycleStatus.active:
        raise StateError(
            "Cycle is already closed.",
            details={"status": CycleStatus.closed.value},
        )

    final_score = _final_score(db, cycle.id)
    result = db.execute(
        update(Cycle)
        .where(Cycle.id == cycle.id, Cycle.status == CycleStatus.active)
        .values(
            status=CycleStatus.closed,
            closed_at=datetime.now(tz=timezone.utc),
            final_score=final_score,
        )
    )
    if result.rowcount != 1:
        db.rollback()
        raise StateError(
            "Cycle is already closed.",
            details={"status": CycleStatus.closed.value},
        )
    db.commit()
    db.refresh(cycle)
    logger.info("Cycle %s closed by %s with final score %s", cycle.id, caller, final_score)
    return cycle
