"""
Profile helpers shared by the lifecycle, ledger and aggregation services.
Never commits; callers own the transaction.
"""
from __future__ import annotations

from sqlalchemy.orm import Session

from app.core.config import settings
from app.models.profile import Profile


def get_or_create_profile(db: Session, owner_id: str) -> Profile:
    profile = db.get(Profile, owner_id)
    if profile is None:
        profile = Profile(
            owner_id=owner_id,
            winning_streak=0,
            losing_streak=0,
            shield_credits=settings.SHIELD_QUOTA,
        )
        db.add(profile)
        db.flush()
    return profile
