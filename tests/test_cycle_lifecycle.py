"""
Tests for cycle initialization, closing and calendar math.

  - initialization seeds exactly 84 daily actions, start .. start + 83
  - one active cycle per owner (ConflictError)
  - goal validation: 1..3 goals, priority in {1, 2, 3}
  - a wrong fan-out count rolls everything back (IntegrityError)
  - close is irreversible; final_score is the mean weekly score
"""
from datetime import date, timedelta
from decimal import Decimal

import pytest
from sqlalchemy import func

from app.core.errors import ConflictError, IntegrityError, StateError, ValidationError
from app.models.cycle import Cycle, CycleStatus
from app.models.daily_action import DailyAction
from app.models.goal import Goal
from app.models.weekly_score import WeeklyScore
from app.services import cycle_lifecycle
from app.services.cycle_lifecycle import (
    GoalInput,
    close_cycle,
    get_active_cycle,
    get_current_week,
    get_remaining_days,
    initialize_cycle,
    week_bounds,
)

CYCLE_START = date(2026, 1, 5)


def _action_count(db, cycle_id: int) -> int:
    return db.query(func.count(DailyAction.id)).filter(DailyAction.cycle_id == cycle_id).scalar()


class TestInitialize:
    def test_seeds_84_actions(self, db, owner_id, make_cycle):
        result = make_cycle(owner_id)
        assert result.days_generated == 84
        assert _action_count(db, result.cycle.id) == 84
        assert result.cycle.status == CycleStatus.active
        assert result.cycle.end_date == CYCLE_START + timedelta(days=83)

    def test_actions_cover_every_day_once(self, db, owner_id, make_cycle):
        result = make_cycle(owner_id)
        days = [
            row.action_date
            for row in db.query(DailyAction)
            .filter(DailyAction.cycle_id == result.cycle.id)
            .order_by(DailyAction.action_date)
        ]
        assert days[0] == CYCLE_START
        assert days[-1] == CYCLE_START + timedelta(days=83)
        assert len(set(days)) == 84

    def test_goals_created(self, owner_id, make_cycle):
        result = make_cycle(owner_id, goals=[
            GoalInput(title="Run a marathon", priority=2),
            GoalInput(title="Ship v1", priority=1),
        ])
        assert {g.title for g in result.goals} == {"Run a marathon", "Ship v1"}
        assert all(g.current_value == Decimal("0") for g in result.goals)

    def test_second_active_cycle_conflicts(self, owner_id, make_cycle):
        make_cycle(owner_id)
        with pytest.raises(ConflictError):
            make_cycle(owner_id, start=CYCLE_START + timedelta(days=7))

    def test_new_cycle_after_close(self, db, owner_id, make_cycle):
        first = make_cycle(owner_id)
        close_cycle(db, first.cycle.id, owner_id)
        second = make_cycle(owner_id, start=CYCLE_START + timedelta(days=84))
        assert second.cycle.id != first.cycle.id

    def test_too_many_goals(self, owner_id, make_cycle):
        goals = [GoalInput(title=f"Goal {i}") for i in range(4)]
        with pytest.raises(ValidationError) as exc_info:
            make_cycle(owner_id, goals=goals)
        assert "Maximum 3 goals" in exc_info.value.message

    def test_priority_out_of_range(self, owner_id, make_cycle):
        with pytest.raises(ValidationError):
            make_cycle(owner_id, goals=[GoalInput(title="Ship", priority=4)])

    def test_blank_name(self, db, owner_id):
        with pytest.raises(ValidationError):
            initialize_cycle(db, owner_id, "  ", CYCLE_START, [GoalInput(title="Ship")])

    def test_wrong_fan_out_rolls_back(self, db, owner_id, monkeypatch):
        original = cycle_lifecycle._build_daily_actions
        monkeypatch.setattr(
            cycle_lifecycle, "_build_daily_actions", lambda cycle: original(cycle)[:83]
        )
        with pytest.raises(IntegrityError):
            initialize_cycle(db, owner_id, "Broken", CYCLE_START, [GoalInput(title="Ship")])

        assert db.query(Cycle).filter(Cycle.owner_id == owner_id).count() == 0
        assert db.query(Goal).filter(Goal.owner_id == owner_id).count() == 0
        assert db.query(DailyAction).filter(DailyAction.owner_id == owner_id).count() == 0


class TestClose:
    def test_close_without_scores(self, db, owner_id, make_cycle):
        result = make_cycle(owner_id)
        closed = close_cycle(db, result.cycle.id, owner_id)
        assert closed.status == CycleStatus.closed
        assert closed.closed_at is not None
        assert closed.final_score == Decimal("0.00")
        assert get_active_cycle(db, owner_id) is None

    def test_final_score_is_mean_of_weeks(self, db, owner_id, make_cycle):
        cycle = make_cycle(owner_id).cycle
        for week, score in [(1, 100), (2, 67), (3, 33)]:
            db.add(WeeklyScore(
                owner_id=owner_id,
                cycle_id=cycle.id,
                week_number=week,
                week_start=week_bounds(cycle, week)[0],
                score=score,
            ))
        db.commit()
        closed = close_cycle(db, cycle.id, owner_id)
        assert closed.final_score == Decimal("66.67")

    def test_close_twice_is_state_error(self, db, owner_id, make_cycle):
        cycle = make_cycle(owner_id).cycle
        close_cycle(db, cycle.id, owner_id)
        with pytest.raises(StateError):
            close_cycle(db, cycle.id, owner_id)


class TestCalendar:
    def test_current_week_clamped(self, owner_id, make_cycle):
        cycle = make_cycle(owner_id).cycle
        assert get_current_week(cycle, CYCLE_START - timedelta(days=10)) == 1
        assert get_current_week(cycle, CYCLE_START) == 1
        assert get_current_week(cycle, CYCLE_START + timedelta(days=6)) == 1
        assert get_current_week(cycle, CYCLE_START + timedelta(days=7)) == 2
        assert get_current_week(cycle, CYCLE_START + timedelta(days=83)) == 12
        assert get_current_week(cycle, CYCLE_START + timedelta(days=200)) == 12

    def test_remaining_days(self, owner_id, make_cycle):
        cycle = make_cycle(owner_id).cycle
        assert get_remaining_days(cycle, CYCLE_START) == 83
        assert get_remaining_days(cycle, CYCLE_START + timedelta(days=100)) == 0

    def test_week_bounds(self, owner_id, make_cycle):
        cycle = make_cycle(owner_id).cycle
        assert week_bounds(cycle, 2) == (date(2026, 1, 12), date(2026, 1, 18))
