"""
Daily action completion toggles.

is_completed and completed_at move together; energy_level is cleared with
them. Every toggle recomputes the WeeklyScore of the action's week in the
same commit, so the stored score never lags behind a completed toggle.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.orm import Session

from app.core.errors import NotFoundError, StateError, ValidationError
from app.models.cycle import Cycle, CycleStatus
from app.models.daily_action import DailyAction
from app.services.aggregation import recompute_weekly_score
from app.services.cycle_lifecycle import week_of

logger = logging.getLogger(__name__)

MIN_ENERGY = 1
MAX_ENERGY = 5


def _owned_action(db: Session, owner_id: str, action_id: int) -> DailyAction:
    action = db.get(DailyAction, action_id)
    if action is None or action.owner_id != owner_id:
        raise NotFoundError("Daily action")
    return action


def _open_cycle(db: Session, action: DailyAction) -> Cycle:
    cycle = db.get(Cycle, action.cycle_id)
    if cycle.status != CycleStatus.active:
        raise StateError(
            "Actions of a closed cycle can no longer change.",
            details={"cycle_id": cycle.id},
        )
    return cycle


def check_off_action(
    db: Session,
    owner_id: str,
    action_id: int,
    energy_level: Optional[int] = None,
    notes: Optional[str] = None,
) -> DailyAction:
    if energy_level is not None and not MIN_ENERGY <= energy_level <= MAX_ENERGY:
        raise ValidationError(
            f"Energy level must be between {MIN_ENERGY} and {MAX_ENERGY}.",
            details={"energy_level": energy_level},
        )
    action = _owned_action(db, owner_id, action_id)
    cycle = _open_cycle(db, action)

    try:
        action.is_completed = True
        action.completed_at = datetime.now(tz=timezone.utc)
        action.energy_level = energy_level
        if notes is not None:
            action.notes = notes
        db.flush()
        recompute_weekly_score(db, cycle, week_of(cycle, action.action_date))
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(action)
    logger.info("Action %s checked off by %s", action.id, owner_id)
    return action


def uncheck_action(db: Session, owner_id: str, action_id: int) -> DailyAction:
    action = _owned_action(db, owner_id, action_id)
    cycle = _open_cycle(db, action)

    try:
        action.is_completed = False
        action.completed_at = None
        action.energy_level = None
        db.flush()
        recompute_weekly_score(db, cycle, week_of(cycle, action.action_date))
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(action)
    logger.info("Action %s unchecked by %s", action.id, owner_id)
    return action
