"""
Tactic router.

POST  /tactics                     — start a lineage (version 1)
PATCH /tactics/{tactic_id}         — fork a new revision; returns the NEW id
GET   /tactics/{tactic_id}/history — revisions, newest first
"""
from fastapi import APIRouter, Depends, Path, status
from sqlalchemy.orm import Session

from app.core.identity import require_owner
from app.db.base import get_db
from app.schemas.common import ActionResult
from app.schemas.tactic import (
    TacticCreateRequest,
    TacticForkResponse,
    TacticResponse,
    TacticUpdateRequest,
)
from app.services import version_chain
from app.services.version_chain import TacticPatch

router = APIRouter(prefix="/tactics", tags=["tactics"])


@router.post(
    "",
    response_model=ActionResult[TacticResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Create a tactic",
    responses={404: {"description": "Goal not found for this owner."}},
)
def create_tactic(
    payload: TacticCreateRequest,
    owner_id: str = Depends(require_owner),
    db: Session = Depends(get_db),
):
    tactic = version_chain.create_tactic(
        db,
        goal_id=payload.goal_id,
        owner_id=owner_id,
        title=payload.title,
        description=payload.description,
        weight=payload.weight,
    )
    return ActionResult(data=TacticResponse.model_validate(tactic))


@router.patch(
    "/{tactic_id}",
    response_model=ActionResult[TacticForkResponse],
    summary="Update a tactic (creates a new version)",
    responses={
        200: {"description": "New revision created; the old id is now read-only."},
        409: {"description": "The targeted tactic is not the active version."},
    },
)
def update_tactic(
    payload: TacticUpdateRequest,
    tactic_id: int = Path(ge=1),
    owner_id: str = Depends(require_owner),
    db: Session = Depends(get_db),
):
    """
    Tactics are versioned. The response carries a **different id**; use
    `new_tactic_id` for every later operation.
    """
    result = version_chain.fork_tactic(
        db,
        head_id=tactic_id,
        owner_id=owner_id,
        patch=TacticPatch(
            title=payload.title,
            description=payload.description,
            weight=payload.weight,
        ),
    )
    return ActionResult(data=TacticForkResponse(
        tactic=TacticResponse.model_validate(result.tactic),
        new_tactic_id=result.tactic.id,
        original_id_closed=result.superseded_id,
        version=result.tactic.version,
    ))


@router.get(
    "/{tactic_id}/history",
    response_model=ActionResult[list[TacticResponse]],
    summary="Version history, newest first",
)
def tactic_history(
    tactic_id: int = Path(ge=1),
    owner_id: str = Depends(require_owner),
    db: Session = Depends(get_db),
):
    history = version_chain.get_tactic_history(db, owner_id, tactic_id)
    return ActionResult(data=[TacticResponse.model_validate(t) for t in history])
