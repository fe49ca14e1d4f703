"""
Goal reads and the two mutable goal fields (current_value, description).
"""
from __future__ import annotations

from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from app.core.errors import NotFoundError, ValidationError
from app.models.goal import Goal
from app.services.cycle_lifecycle import get_owned_cycle


def list_goals(db: Session, owner_id: str, cycle_id: int) -> list[Goal]:
    """Goals of a cycle, highest priority (1) first."""
    get_owned_cycle(db, owner_id, cycle_id)
    return (
        db.query(Goal)
        .filter(Goal.cycle_id == cycle_id)
        .order_by(Goal.priority.asc(), Goal.id.asc())
        .all()
    )


def get_owned_goal(db: Session, owner_id: str, goal_id: int) -> Goal:
    goal = db.get(Goal, goal_id)
    if goal is None or goal.owner_id != owner_id:
        raise NotFoundError("Goal")
    return goal


def update_goal_progress(
    db: Session,
    owner_id: str,
    goal_id: int,
    current_value: Optional[Decimal] = None,
    description: Optional[str] = None,
) -> Goal:
    if current_value is None and description is None:
        raise ValidationError("Nothing to update: provide current_value or description.")
    goal = get_owned_goal(db, owner_id, goal_id)
    if current_value is not None:
        goal.current_value = current_value
    if description is not None:
        goal.description = description
    db.commit()
    db.refresh(goal)
    return goal
