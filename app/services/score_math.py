"""
Score math — pure functions, no I/O, never raise over their domains.

Scores are integers in [0, 100]. Rounding is half-up
(0.5 -> 1, 49.75 -> 50), matching how the dashboard has always shown them.

Public API
----------
daily_score(completed, max_tasks)       -> int
weekly_score(daily_scores)              -> int
display_score(current, shielded, prev)  -> int
execution_status(score, is_shielded)    -> ExecutionStatus
momentum_state(win_streak, lose_streak) -> MomentumState
trailing_streaks(outcomes)              -> (winning, losing)
"""
from __future__ import annotations

import enum
from collections.abc import Iterable, Sequence
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional


MONK_MODE_MAX_TASKS = 3

EXECUTION_ELITE_THRESHOLD = 85
ON_TRACK_THRESHOLD = 70
WARNING_THRESHOLD = 50

FLOW_VELOCITY_STREAK = 7
RESET_SANCTUARY_STREAK = 3


class ExecutionStatus(str, enum.Enum):
    EXECUTION_ELITE = "EXECUTION_ELITE"   # 85-100
    ON_TRACK = "ON_TRACK"                 # 70-84
    WARNING = "WARNING"                   # 50-69
    CRITICAL = "CRITICAL"                 # 0-49
    SHIELDED = "SHIELDED"


class MomentumState(str, enum.Enum):
    NEUTRAL = "NEUTRAL"
    FLOW_VELOCITY = "FLOW_VELOCITY"
    RESET_SANCTUARY = "RESET_SANCTUARY"


def round_half_up(value: Decimal | float | int) -> int:
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def daily_score(completed: int, max_tasks: int = MONK_MODE_MAX_TASKS) -> int:
    """Monk Mode: a day is always scored out of `max_tasks`."""
    if max_tasks <= 0:
        return 0
    capped = max(0, min(completed, max_tasks))
    return round_half_up(Decimal(capped) / Decimal(max_tasks) * 100)


def weekly_score(daily_scores: Sequence[int]) -> int:
    if not daily_scores:
        return 0
    return round_half_up(Decimal(sum(daily_scores)) / Decimal(len(daily_scores)))


def display_score(current: int, is_shielded: bool, previous: Optional[int]) -> int:
    """A shielded week shows last week's number. History is not altered."""
    if is_shielded and previous is not None:
        return previous
    return current


def execution_status(score: int, is_shielded: bool) -> ExecutionStatus:
    # Shield wins regardless of the number.
    if is_shielded:
        return ExecutionStatus.SHIELDED
    if score >= EXECUTION_ELITE_THRESHOLD:
        return ExecutionStatus.EXECUTION_ELITE
    if score >= ON_TRACK_THRESHOLD:
        return ExecutionStatus.ON_TRACK
    if score >= WARNING_THRESHOLD:
        return ExecutionStatus.WARNING
    return ExecutionStatus.CRITICAL


def momentum_state(winning_streak: int, losing_streak: int) -> MomentumState:
    if winning_streak >= FLOW_VELOCITY_STREAK:
        return MomentumState.FLOW_VELOCITY
    if losing_streak >= RESET_SANCTUARY_STREAK:
        return MomentumState.RESET_SANCTUARY
    return MomentumState.NEUTRAL


def trailing_streaks(outcomes: Iterable[bool]) -> tuple[int, int]:
    """
    Length of the trailing run of wins and of losses in a chronological
    sequence of day outcomes. At most one of the two is non-zero.
    """
    winning = 0
    losing = 0
    for won in outcomes:
        if won:
            winning += 1
            losing = 0
        else:
            losing += 1
            winning = 0
    return winning, losing
