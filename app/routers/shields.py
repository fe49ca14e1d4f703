"""
Shield router — owner capability.

GET  /shields/{cycle_id}            — remaining credits + ledger
GET  /shields/{cycle_id}/validate   — would an activation pass? (never 4xx for rule failures)
POST /shields                       — activate a shield for a week
"""
from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.identity import require_owner
from app.db.base import get_db
from app.schemas.common import ActionResult
from app.schemas.shield import (
    MomentumCreditResponse,
    ShieldActivateRequest,
    ShieldActivationResponse,
    ShieldDecisionResponse,
    ShieldStatusResponse,
)
from app.services import credit_ledger
from app.services.cycle_lifecycle import get_owned_cycle

router = APIRouter(prefix="/shields", tags=["shields"])


@router.get(
    "/{cycle_id}",
    response_model=ActionResult[ShieldStatusResponse],
    summary="Shield credits for a cycle",
)
def shield_status(
    cycle_id: int = Path(ge=1),
    owner_id: str = Depends(require_owner),
    db: Session = Depends(get_db),
):
    get_owned_cycle(db, owner_id, cycle_id)
    return ActionResult(data=ShieldStatusResponse(
        remaining=credit_ledger.remaining_credits(db, owner_id, cycle_id),
        quota=settings.SHIELD_QUOTA,
        credits=[
            MomentumCreditResponse.model_validate(c)
            for c in credit_ledger.list_credits(db, owner_id, cycle_id)
        ],
    ))


@router.get(
    "/{cycle_id}/validate",
    response_model=ActionResult[ShieldDecisionResponse],
    summary="Dry-run shield validation",
)
def validate_shield(
    cycle_id: int = Path(ge=1),
    week_number: int = Query(ge=1, le=settings.CYCLE_WEEKS),
    owner_id: str = Depends(require_owner),
    db: Session = Depends(get_db),
):
    """
    Returns the decision and the fresh remaining count. A rejection is a
    normal answer (`allowed: false`), not an error.
    """
    get_owned_cycle(db, owner_id, cycle_id)
    decision = credit_ledger.validate_activation(db, owner_id, cycle_id, week_number)
    return ActionResult(data=ShieldDecisionResponse.model_validate(decision))


@router.post(
    "",
    response_model=ActionResult[ShieldActivationResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Activate a shield",
    responses={
        201: {"description": "Credit recorded; week shielded."},
        409: {"description": "Already shielded, no credits left, or abuse pattern detected."},
    },
)
def activate_shield(
    payload: ShieldActivateRequest,
    owner_id: str = Depends(require_owner),
    db: Session = Depends(get_db),
):
    result = credit_ledger.activate_shield(
        db,
        owner_id=owner_id,
        cycle_id=payload.cycle_id,
        week_number=payload.week_number,
        reason=payload.reason,
        biometrics_verified=payload.biometrics_verified,
    )
    return ActionResult(data=ShieldActivationResponse(
        credit=MomentumCreditResponse.model_validate(result.credit),
        remaining_credits=result.remaining,
    ))
