"""
Cycle / goal schemas.

POST  /cycles              → CycleCreateRequest  → ActionResult[CycleInitResponse]
GET   /cycles/active       → ActionResult[CycleResponse | None]
POST  /cycles/{id}/close   → ActionResult[CycleResponse]
GET   /cycles/{id}/goals   → ActionResult[list[GoalResponse]]
PATCH /goals/{id}          → GoalUpdateRequest   → ActionResult[GoalResponse]
"""
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Annotated, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.models.cycle import CycleStatus


class GoalCreate(BaseModel):
    title: Annotated[str, Field(min_length=1, max_length=256, examples=["Ship v1 of the app"])]
    description: Optional[str] = None
    priority: int = Field(default=1, ge=1, le=3, description="1 = highest.")
    target_metric: Optional[str] = Field(default=None, max_length=128)
    target_value: Optional[Decimal] = None

    @field_validator("title", mode="before")
    @classmethod
    def strip_title(cls, v: str) -> str:
        if isinstance(v, str):
            v = v.strip()
        return v


class CycleCreateRequest(BaseModel):
    name: Annotated[str, Field(min_length=1, max_length=256, examples=["Q1 2026"])]
    start_date: date = Field(examples=["2026-01-05"])
    vision: Optional[str] = Field(default=None, description="10-year legacy statement.")
    goals: list[GoalCreate] = Field(min_length=1, max_length=3)


class GoalResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    cycle_id: int
    title: str
    description: Optional[str]
    priority: int
    target_metric: Optional[str]
    target_value: Optional[Decimal]
    current_value: Decimal


class CycleResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    owner_id: str
    name: str
    vision: Optional[str]
    start_date: date
    end_date: date
    status: CycleStatus
    final_score: Optional[Decimal]
    created_at: Optional[datetime]
    closed_at: Optional[datetime]


class ActiveCycleResponse(CycleResponse):
    current_week: int
    remaining_days: int


class CycleInitResponse(BaseModel):
    cycle: CycleResponse
    goals: list[GoalResponse]
    days_generated: int


class GoalUpdateRequest(BaseModel):
    current_value: Optional[Decimal] = None
    description: Optional[str] = None
