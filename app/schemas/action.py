"""
Daily action schemas.

POST /actions/{id}/check    → CheckOffRequest → ActionResult[DailyActionResponse]
POST /actions/{id}/uncheck  → ActionResult[DailyActionResponse]
GET  /cycles/{id}/today     → ActionResult[list[DailyActionResponse]]
"""
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class CheckOffRequest(BaseModel):
    energy_level: Optional[int] = Field(default=None, ge=1, le=5)
    notes: Optional[str] = Field(default=None, max_length=2_000)


class DailyActionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    cycle_id: int
    tactic_id: Optional[int]
    title: str
    action_date: date
    is_completed: bool
    completed_at: Optional[datetime]
    energy_level: Optional[int]
    notes: Optional[str]
