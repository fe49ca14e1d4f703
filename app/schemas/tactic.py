"""
Tactic schemas.

POST  /tactics               → TacticCreateRequest → ActionResult[TacticResponse]
PATCH /tactics/{id}          → TacticUpdateRequest → ActionResult[TacticForkResponse]
GET   /tactics/{id}/history  → ActionResult[list[TacticResponse]]  (newest first)
GET   /goals/{id}/tactics    → ActionResult[list[TacticResponse]]
"""
from __future__ import annotations

from datetime import datetime
from typing import Annotated, Optional

from pydantic import BaseModel, ConfigDict, Field


class TacticCreateRequest(BaseModel):
    goal_id: int
    title: Annotated[str, Field(min_length=1, max_length=256)]
    description: Optional[str] = None
    weight: int = Field(default=1, ge=1, le=10)


class TacticUpdateRequest(BaseModel):
    title: Optional[Annotated[str, Field(min_length=1, max_length=256)]] = None
    description: Optional[str] = None
    weight: Optional[int] = Field(default=None, ge=1, le=10)


class TacticResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    goal_id: int
    lineage_id: str
    title: str
    description: Optional[str]
    weight: int
    is_active: bool
    version: int
    previous_version_id: Optional[int]
    created_at: Optional[datetime]


class TacticForkResponse(BaseModel):
    tactic: TacticResponse
    new_tactic_id: int = Field(description="Use this id for every later operation.")
    original_id_closed: int = Field(description="Superseded id; read-only from now on.")
    version: int
