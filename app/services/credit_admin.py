"""
Shield credit ledger — administrator capability (revoke only).

Kept apart from credit_ledger.py so the owner-facing API has no mutation
path for an existing credit. The revoker must be an elevated principal and
never the credit's own owner.

Revoking does not touch weekly_scores. The week's score reverts to its
computed value the next time it is read (aggregation.get_weekly_score
detects the stale shield flag and recomputes).
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import update
from sqlalchemy.orm import Session

from app.core.errors import AuthorizationError, NotFoundError, StateError
from app.models.momentum_credit import MomentumCredit
from app.services.credit_ledger import remaining_credits
from app.services.profiles import get_or_create_profile

logger = logging.getLogger(__name__)


def revoke_credit(db: Session, credit_id: int, revoker_id: str) -> MomentumCredit:
    credit = db.get(MomentumCredit, credit_id)
    if credit is None:
        raise NotFoundError("Momentum credit")
    if credit.owner_id == revoker_id:
        raise AuthorizationError()
    if credit.revoked:
        raise StateError(
            "Momentum credit is already revoked.",
            details={"credit_id": credit_id},
        )

    result = db.execute(
        update(MomentumCredit)
        .where(MomentumCredit.id == credit_id, MomentumCredit.revoked.is_(False))
        .values(
            revoked=True,
            revoked_at=datetime.now(tz=timezone.utc),
            revoked_by=revoker_id,
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        db.rollback()
        raise StateError(
            "Momentum credit is already revoked.",
            details={"credit_id": credit_id},
        )

    get_or_create_profile(db, credit.owner_id).shield_credits = remaining_credits(
        db, credit.owner_id, credit.cycle_id
    )
    db.commit()
    db.refresh(credit)
    logger.info(
        "Shield %s (owner %s, cycle %s, week %s) revoked by %s",
        credit.id, credit.owner_id, credit.cycle_id, credit.week_number, revoker_id,
    )
    return credit
