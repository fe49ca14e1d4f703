"""
Coach prompt templates.

Fixed strings built from a CoachContext. No scoring logic lives here; the
external text generator receives exactly SYSTEM_PROMPT and
build_user_message(context).
"""
from __future__ import annotations

from app.services.aggregation import CoachContext


SYSTEM_PROMPT = """You are the user's Legacy Partner for their 12-week execution cycle.

CONSTRAINTS:
- Maximum 100 words per response
- Never shame or guilt-trip
- Always connect today's action to the 10-year legacy
- Provide ONE actionable next step
- Tone: Direct, confident, empowering

RESPONSE FORMAT:
[Observation] -> [Identity Affirmation] -> [Single Action]

STYLE:
- Speak like a trusted mentor who sees their potential
- Reference their vision statement naturally
- Use "you" not "the user"
- End with a clear, specific action"""


def status_line(context: CoachContext) -> str:
    if context.streak > 0:
        return f"{context.streak}-day winning streak"
    if context.is_shielded:
        return "shielded week (recovery mode)"
    return "building momentum"


def build_user_message(context: CoachContext) -> str:
    return (
        "Context:\n"
        f'- Vision: "{context.vision}"\n'
        f"- Current 12-Week Goal: {context.current_goal}\n"
        f"- Week {context.current_week} of 12 ({context.remaining_days} days remaining)\n"
        f"- Weekly Score: {context.weekly_score}%\n"
        f"- Today's Score: {context.daily_score}%\n"
        f"- Status: {status_line(context)}\n"
        "\n"
        "Provide your coaching nudge (max 100 words):"
    )
