"""
Cycle router.

POST /cycles                          — initialize a cycle (84 actions seeded)
GET  /cycles/active                   — the caller's active cycle, or null
POST /cycles/{cycle_id}/close         — close and compute final score
GET  /cycles/{cycle_id}/goals         — goals, highest priority first
GET  /cycles/{cycle_id}/today         — today's Monk Mode actions (max 3)
GET  /cycles/{cycle_id}/summary       — scores, streaks, momentum, coach context
GET  /cycles/{cycle_id}/coach-context — coach context + prompt strings
GET  /cycles/{cycle_id}/weekly-scores/{week_number}
"""
from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.identity import require_owner
from app.db.base import get_db
from app.schemas.action import DailyActionResponse
from app.schemas.common import ActionResult
from app.schemas.cycle import (
    ActiveCycleResponse,
    CycleCreateRequest,
    CycleInitResponse,
    CycleResponse,
    GoalResponse,
)
from app.schemas.summary import (
    CoachContextResponse,
    CoachPayloadResponse,
    CycleSummaryResponse,
    StreakResponse,
    WeeklyScoreResponse,
)
from app.services import aggregation, coach_prompt, cycle_lifecycle, goals as goal_service
from app.services.cycle_lifecycle import GoalInput

router = APIRouter(prefix="/cycles", tags=["cycles"])

_TODAY_QUERY = Query(
    default=None,
    description="Evaluate as of this ISO date. Defaults to today (UTC).",
    examples=["2026-02-21"],
)


# ---------------------------------------------------------------------------
# Serialization helpers
# ---------------------------------------------------------------------------

def _summary_to_response(s: aggregation.CycleSummary) -> CycleSummaryResponse:
    return CycleSummaryResponse(
        cycle=CycleResponse.model_validate(s.cycle),
        current_week=s.current_week,
        remaining_days=s.remaining_days,
        todays_actions=[DailyActionResponse.model_validate(a) for a in s.todays_actions],
        daily_score=s.daily_score,
        weekly=WeeklyScoreResponse.model_validate(s.weekly),
        previous_week_score=s.previous_week_score,
        display_score=s.display_score,
        is_shielded=s.is_shielded,
        execution_status=s.execution_status.value,
        streak=StreakResponse.model_validate(s.streaks),
        momentum_state=s.momentum_state.value,
        shield_credits_remaining=s.shield_credits_remaining,
        coach_context=CoachContextResponse.model_validate(s.coach_context),
    )


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------

@router.post(
    "",
    response_model=ActionResult[CycleInitResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Initialize a 12-week cycle",
    responses={
        201: {"description": "Cycle, goals and 84 daily actions created atomically."},
        409: {"description": "The caller already has an active cycle."},
    },
)
def create_cycle(
    payload: CycleCreateRequest,
    owner_id: str = Depends(require_owner),
    db: Session = Depends(get_db),
):
    """
    Create the cycle, its goals and one daily action per day
    (`start_date` .. `start_date + 83`) in a single transaction.
    """
    result = cycle_lifecycle.initialize_cycle(
        db=db,
        owner_id=owner_id,
        name=payload.name,
        start_date=payload.start_date,
        vision=payload.vision,
        goals=[
            GoalInput(
                title=g.title,
                description=g.description,
                priority=g.priority,
                target_metric=g.target_metric,
                target_value=g.target_value,
            )
            for g in payload.goals
        ],
    )
    return ActionResult(data=CycleInitResponse(
        cycle=CycleResponse.model_validate(result.cycle),
        goals=[GoalResponse.model_validate(g) for g in result.goals],
        days_generated=result.days_generated,
    ))


@router.get(
    "/active",
    response_model=ActionResult[Optional[ActiveCycleResponse]],
    summary="The caller's active cycle",
    responses={200: {"description": "`data` is null when there is no active cycle."}},
)
def active_cycle(
    today: Optional[date] = _TODAY_QUERY,
    owner_id: str = Depends(require_owner),
    db: Session = Depends(get_db),
):
    cycle = cycle_lifecycle.get_active_cycle(db, owner_id)
    if cycle is None:
        return ActionResult(data=None)
    base = CycleResponse.model_validate(cycle).model_dump()
    return ActionResult(data=ActiveCycleResponse(
        **base,
        current_week=cycle_lifecycle.get_current_week(cycle, today),
        remaining_days=cycle_lifecycle.get_remaining_days(cycle, today),
    ))


@router.post(
    "/{cycle_id}/close",
    response_model=ActionResult[CycleResponse],
    summary="Close a cycle",
    responses={
        200: {"description": "Cycle closed; final_score set."},
        404: {"description": "Cycle not found for this owner."},
        409: {"description": "Cycle is already closed."},
    },
)
def close_cycle(
    cycle_id: int = Path(ge=1),
    owner_id: str = Depends(require_owner),
    db: Session = Depends(get_db),
):
    """Irreversible. A second call returns **409 INVALID_STATE**."""
    cycle = cycle_lifecycle.close_cycle(db=db, cycle_id=cycle_id, caller=owner_id)
    return ActionResult(data=CycleResponse.model_validate(cycle))


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

@router.get(
    "/{cycle_id}/goals",
    response_model=ActionResult[list[GoalResponse]],
    summary="Goals of a cycle",
)
def cycle_goals(
    cycle_id: int = Path(ge=1),
    owner_id: str = Depends(require_owner),
    db: Session = Depends(get_db),
):
    goals = goal_service.list_goals(db, owner_id, cycle_id)
    return ActionResult(data=[GoalResponse.model_validate(g) for g in goals])


@router.get(
    "/{cycle_id}/today",
    response_model=ActionResult[list[DailyActionResponse]],
    summary="Today's actions (Monk Mode, max 3)",
)
def todays_actions(
    cycle_id: int = Path(ge=1),
    today: Optional[date] = _TODAY_QUERY,
    owner_id: str = Depends(require_owner),
    db: Session = Depends(get_db),
):
    cycle = cycle_lifecycle.get_owned_cycle(db, owner_id, cycle_id)
    actions = aggregation.get_todays_actions(db, cycle.id, today)
    return ActionResult(data=[DailyActionResponse.model_validate(a) for a in actions])


@router.get(
    "/{cycle_id}/weekly-scores/{week_number}",
    response_model=ActionResult[WeeklyScoreResponse],
    summary="Stored weekly score (recomputed when stale)",
)
def weekly_score(
    cycle_id: int = Path(ge=1),
    week_number: int = Path(ge=1, le=settings.CYCLE_WEEKS),
    owner_id: str = Depends(require_owner),
    db: Session = Depends(get_db),
):
    cycle = cycle_lifecycle.get_owned_cycle(db, owner_id, cycle_id)
    try:
        row = aggregation.get_weekly_score(db, cycle, week_number)
        db.commit()
    except Exception:
        db.rollback()
        raise
    return ActionResult(data=WeeklyScoreResponse.model_validate(row))


@router.get(
    "/{cycle_id}/summary",
    response_model=ActionResult[CycleSummaryResponse],
    summary="Execution summary: scores, shield, streaks, momentum",
)
def cycle_summary(
    cycle_id: int = Path(ge=1),
    today: Optional[date] = _TODAY_QUERY,
    owner_id: str = Depends(require_owner),
    db: Session = Depends(get_db),
):
    """
    Daily score (out of 3), weekly score with the shield override applied,
    execution status, streaks, momentum state and the coach context.
    """
    summary = aggregation.summarize(db, owner_id, cycle_id, today)
    return ActionResult(data=_summary_to_response(summary))


@router.get(
    "/{cycle_id}/coach-context",
    response_model=ActionResult[CoachPayloadResponse],
    summary="Coach context and prompt strings for the text generator",
)
def coach_context(
    cycle_id: int = Path(ge=1),
    today: Optional[date] = _TODAY_QUERY,
    owner_id: str = Depends(require_owner),
    db: Session = Depends(get_db),
):
    context = aggregation.build_coach_context(db, owner_id, cycle_id, today)
    return ActionResult(data=CoachPayloadResponse(
        context=CoachContextResponse.model_validate(context),
        system_prompt=coach_prompt.SYSTEM_PROMPT,
        user_message=coach_prompt.build_user_message(context),
    ))
