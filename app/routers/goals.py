"""
Goal router.

PATCH /goals/{goal_id}          — update current_value / description
GET   /goals/{goal_id}/tactics  — active tactic heads of a goal
"""
from fastapi import APIRouter, Depends, Path
from sqlalchemy.orm import Session

from app.core.identity import require_owner
from app.db.base import get_db
from app.schemas.common import ActionResult
from app.schemas.cycle import GoalResponse, GoalUpdateRequest
from app.schemas.tactic import TacticResponse
from app.services import goals as goal_service
from app.services import version_chain

router = APIRouter(prefix="/goals", tags=["goals"])


@router.patch(
    "/{goal_id}",
    response_model=ActionResult[GoalResponse],
    summary="Update goal progress",
    responses={404: {"description": "Goal not found for this owner."}},
)
def update_goal(
    payload: GoalUpdateRequest,
    goal_id: int = Path(ge=1),
    owner_id: str = Depends(require_owner),
    db: Session = Depends(get_db),
):
    """Only `current_value` and `description` can change after creation."""
    goal = goal_service.update_goal_progress(
        db,
        owner_id,
        goal_id,
        current_value=payload.current_value,
        description=payload.description,
    )
    return ActionResult(data=GoalResponse.model_validate(goal))


@router.get(
    "/{goal_id}/tactics",
    response_model=ActionResult[list[TacticResponse]],
    summary="Active tactics of a goal (one per lineage)",
)
def goal_tactics(
    goal_id: int = Path(ge=1),
    owner_id: str = Depends(require_owner),
    db: Session = Depends(get_db),
):
    goal = goal_service.get_owned_goal(db, owner_id, goal_id)
    tactics = version_chain.list_active_tactics(db, goal.id)
    return ActionResult(data=[TacticResponse.model_validate(t) for t in tactics])
