"""
Admin router — elevated capability.

POST /admin/shields/{credit_id}/revoke — revoke a shield credit

Requires `X-Admin-Token`. The admin may not revoke their own credit.
"""
from fastapi import APIRouter, Depends, Path
from sqlalchemy.orm import Session

from app.core.identity import require_admin
from app.db.base import get_db
from app.schemas.common import ActionResult
from app.schemas.shield import MomentumCreditResponse
from app.services import credit_admin

router = APIRouter(prefix="/admin", tags=["admin"])


@router.post(
    "/shields/{credit_id}/revoke",
    response_model=ActionResult[MomentumCreditResponse],
    summary="Revoke a shield credit",
    responses={
        403: {"description": "Not an elevated principal, or revoking own credit."},
        404: {"description": "Credit not found."},
        409: {"description": "Credit already revoked."},
    },
)
def revoke_shield(
    credit_id: int = Path(ge=1),
    admin_id: str = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """The week's score reverts to its computed value on the next read."""
    credit = credit_admin.revoke_credit(db, credit_id, admin_id)
    return ActionResult(data=MomentumCreditResponse.model_validate(credit))
