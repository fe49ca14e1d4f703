"""
Shield (momentum credit) schemas.

GET  /shields/{cycle_id}                 → ActionResult[ShieldStatusResponse]
GET  /shields/{cycle_id}/validate        → ActionResult[ShieldDecisionResponse]
POST /shields                            → ShieldActivateRequest → ActionResult[ShieldActivationResponse]
POST /admin/shields/{credit_id}/revoke   → ActionResult[MomentumCreditResponse]
"""
from __future__ import annotations

from datetime import datetime
from typing import Annotated, Optional

from pydantic import BaseModel, ConfigDict, Field


class ShieldActivateRequest(BaseModel):
    cycle_id: int
    week_number: int = Field(ge=1, le=12)
    reason: Annotated[str, Field(
        min_length=10,
        max_length=2_000,
        description="Why this week needs a shield (min 10 chars).",
    )]
    biometrics_verified: bool = False


class MomentumCreditResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    cycle_id: int
    week_number: int
    reason: str
    applied_at: Optional[datetime]
    biometrics_verified: bool
    ai_detected: bool
    revoked: bool
    revoked_at: Optional[datetime]
    revoked_by: Optional[str]


class ShieldDecisionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    allowed: bool
    code: str = Field(
        description='"ALLOWED" | "NO_CREDITS_REMAINING" | "ALREADY_SHIELDED" | "CHRONIC_LOW_EFFORT"'
    )
    reason: str
    remaining: int


class ShieldStatusResponse(BaseModel):
    remaining: int
    quota: int
    credits: list[MomentumCreditResponse]


class ShieldActivationResponse(BaseModel):
    credit: MomentumCreditResponse
    remaining_credits: int
