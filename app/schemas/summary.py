"""
Aggregation read models.

GET /cycles/{id}/summary                 → ActionResult[CycleSummaryResponse]
GET /cycles/{id}/coach-context           → ActionResult[CoachPayloadResponse]
GET /cycles/{id}/weekly-scores/{week}    → ActionResult[WeeklyScoreResponse]
"""
from __future__ import annotations

from datetime import date
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from app.schemas.action import DailyActionResponse
from app.schemas.cycle import CycleResponse


class WeeklyScoreResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    week_number: int
    week_start: date
    score: int = Field(description="Raw computed score, 0-100.")
    tasks_completed: int
    tasks_total: int
    is_shielded: bool


class CoachContextResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    vision: str
    current_goal: str
    weekly_score: int
    daily_score: int
    streak: int
    is_shielded: bool
    current_week: int
    remaining_days: int


class CoachPayloadResponse(BaseModel):
    context: CoachContextResponse
    system_prompt: str
    user_message: str


class StreakResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    winning: int
    losing: int


class CycleSummaryResponse(BaseModel):
    cycle: CycleResponse
    current_week: int
    remaining_days: int
    todays_actions: list[DailyActionResponse]
    daily_score: int
    weekly: WeeklyScoreResponse
    previous_week_score: Optional[int]
    display_score: int = Field(description="Score shown after the shield override.")
    is_shielded: bool
    execution_status: str
    streak: StreakResponse
    momentum_state: str
    shield_credits_remaining: int
    coach_context: CoachContextResponse
