"""
Daily action router.

POST /actions/{action_id}/check    — mark done (optional energy level 1-5)
POST /actions/{action_id}/uncheck  — undo; clears completed_at and energy
"""
from typing import Optional

from fastapi import APIRouter, Body, Depends, Path
from sqlalchemy.orm import Session

from app.core.identity import require_owner
from app.db.base import get_db
from app.schemas.action import CheckOffRequest, DailyActionResponse
from app.schemas.common import ActionResult
from app.services import daily_actions

router = APIRouter(prefix="/actions", tags=["actions"])


@router.post(
    "/{action_id}/check",
    response_model=ActionResult[DailyActionResponse],
    summary="Check off a daily action",
    responses={404: {"description": "Action not found for this owner."}},
)
def check_action(
    action_id: int = Path(ge=1),
    payload: Optional[CheckOffRequest] = Body(default=None),
    owner_id: str = Depends(require_owner),
    db: Session = Depends(get_db),
):
    """Also recomputes the week's stored score."""
    payload = payload or CheckOffRequest()
    action = daily_actions.check_off_action(
        db,
        owner_id,
        action_id,
        energy_level=payload.energy_level,
        notes=payload.notes,
    )
    return ActionResult(data=DailyActionResponse.model_validate(action))


@router.post(
    "/{action_id}/uncheck",
    response_model=ActionResult[DailyActionResponse],
    summary="Undo a checked-off action",
    responses={404: {"description": "Action not found for this owner."}},
)
def uncheck_action(
    action_id: int = Path(ge=1),
    owner_id: str = Depends(require_owner),
    db: Session = Depends(get_db),
):
    action = daily_actions.uncheck_action(db, owner_id, action_id)
    return ActionResult(data=DailyActionResponse.model_validate(action))
