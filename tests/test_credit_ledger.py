"""
Tests for the momentum shield ledger.

  D) three non-revoked credits -> "no credits remaining", remaining == 0, any week
  E) chronic low effort heuristic (recent 4 vs last 12 weeks)
  F) two activations for the same week: exactly one succeeds

Also: input validation, the quota recount guard, administrator revocation
and the week reverting to its computed score once a shield is revoked.
"""
import threading
from datetime import timedelta

import pytest

from app.core.errors import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    StateError,
    ValidationError,
)
from app.models.cycle import Cycle, CycleStatus
from app.models.momentum_credit import MomentumCredit
from app.models.profile import Profile
from app.models.weekly_score import WeeklyScore
from app.services import credit_ledger
from app.services.aggregation import get_weekly_score
from app.services.credit_admin import revoke_credit
from app.services.credit_ledger import (
    DecisionCode,
    ShieldDecision,
    activate_shield,
    detect_chronic_low_effort,
    remaining_credits,
    validate_activation,
)
from app.services.cycle_lifecycle import close_cycle, week_bounds

REASON = "Family emergency this week"
ADMIN_ID = "admin-operator"


@pytest.fixture()
def cycle(owner_id, make_cycle) -> Cycle:
    return make_cycle(owner_id).cycle


def _seed_scores(db, cycle: Cycle, scores: list[int]) -> None:
    """scores[0] is week 1 (oldest)."""
    for week, score in enumerate(scores, start=1):
        db.add(WeeklyScore(
            owner_id=cycle.owner_id,
            cycle_id=cycle.id,
            week_number=week,
            week_start=week_bounds(cycle, week)[0],
            score=score,
        ))
    db.commit()


def _allow_everything(monkeypatch):
    monkeypatch.setattr(
        credit_ledger,
        "validate_activation",
        lambda db, owner_id, cycle_id, week_number: ShieldDecision(
            allowed=True, code=DecisionCode.ALLOWED, reason="", remaining=3,
        ),
    )


class TestValidate:
    def test_fresh_cycle_allows(self, db, owner_id, cycle):
        decision = validate_activation(db, owner_id, cycle.id, 1)
        assert decision.allowed is True
        assert decision.code == DecisionCode.ALLOWED
        assert decision.remaining == 3

    def test_no_credits_remaining_for_any_week(self, db, owner_id, cycle):
        for week in (1, 2, 3):
            activate_shield(db, owner_id, cycle.id, week, REASON)

        for week in (1, 4, 12):
            decision = validate_activation(db, owner_id, cycle.id, week)
            assert decision.allowed is False
            assert decision.code == DecisionCode.NO_CREDITS
            assert decision.remaining == 0

    def test_already_shielded(self, db, owner_id, cycle):
        activate_shield(db, owner_id, cycle.id, 2, REASON)
        decision = validate_activation(db, owner_id, cycle.id, 2)
        assert decision.code == DecisionCode.ALREADY_SHIELDED
        assert decision.remaining == 2


class TestChronicLowEffort:
    def test_low_recent_weeks_flagged(self, db, owner_id, cycle):
        # Baseline of 12 averages 55, newest 4 average 20.
        _seed_scores(db, cycle, [73, 72, 73, 72, 73, 72, 73, 72, 20, 20, 20, 20])
        assert detect_chronic_low_effort(db, owner_id) is True

        decision = validate_activation(db, owner_id, cycle.id, 12)
        assert decision.code == DecisionCode.CHRONIC_LOW_EFFORT

    def test_short_history_never_flagged(self, db, owner_id, cycle):
        _seed_scores(db, cycle, [73, 72, 20, 20, 20])
        assert detect_chronic_low_effort(db, owner_id) is False

    def test_high_baseline_not_flagged(self, db, owner_id, cycle):
        _seed_scores(db, cycle, [95] * 8 + [40] * 4)
        assert detect_chronic_low_effort(db, owner_id) is False

    def test_activation_rejected(self, db, owner_id, cycle):
        _seed_scores(db, cycle, [73, 72, 73, 72, 73, 72, 73, 72, 20, 20, 20, 20])
        with pytest.raises(StateError) as exc_info:
            activate_shield(db, owner_id, cycle.id, 12, REASON)
        assert exc_info.value.details["decision"] == DecisionCode.CHRONIC_LOW_EFFORT


class TestActivate:
    def test_activate_records_credit(self, db, owner_id, cycle):
        result = activate_shield(db, owner_id, cycle.id, 3, REASON, biometrics_verified=True)
        assert result.remaining == 2
        assert result.credit.week_number == 3
        assert result.credit.revoked is False
        assert result.credit.biometrics_verified is True
        assert db.get(Profile, owner_id).shield_credits == 2

    def test_fourth_activation_rejected(self, db, owner_id, cycle):
        for week in (1, 2, 3):
            activate_shield(db, owner_id, cycle.id, week, REASON)
        with pytest.raises(StateError) as exc_info:
            activate_shield(db, owner_id, cycle.id, 4, REASON)
        assert exc_info.value.details["decision"] == DecisionCode.NO_CREDITS
        assert remaining_credits(db, owner_id, cycle.id) == 0

    def test_duplicate_week_conflicts(self, db, owner_id, cycle):
        activate_shield(db, owner_id, cycle.id, 5, REASON)
        with pytest.raises(ConflictError):
            activate_shield(db, owner_id, cycle.id, 5, REASON)

    def test_reason_too_short(self, db, owner_id, cycle):
        with pytest.raises(ValidationError):
            activate_shield(db, owner_id, cycle.id, 1, "tired")

    def test_week_out_of_range(self, db, owner_id, cycle):
        with pytest.raises(ValidationError):
            activate_shield(db, owner_id, cycle.id, 13, REASON)

    def test_foreign_cycle(self, db, cycle):
        with pytest.raises(NotFoundError):
            activate_shield(db, "someone-else", cycle.id, 1, REASON)

    def test_closed_cycle(self, db, owner_id, cycle):
        close_cycle(db, cycle.id, owner_id)
        with pytest.raises(StateError):
            activate_shield(db, owner_id, cycle.id, 1, REASON)

    def test_cycle_closed_by_another_session(self, db, session_factory, owner_id, cycle):
        assert db.get(Cycle, cycle.id).status == CycleStatus.active

        other = session_factory()
        try:
            close_cycle(other, cycle.id, owner_id)
        finally:
            other.close()

        with pytest.raises(StateError):
            activate_shield(db, owner_id, cycle.id, 1, REASON)
        assert credit_ledger.count_active_credits(db, owner_id, cycle.id) == 0


def _race(session_factory, calls) -> list[str]:
    """Run each call in its own thread and session, released together."""
    barrier = threading.Barrier(len(calls), timeout=10)
    outcomes: list[str] = []

    def run(call):
        session = session_factory()
        try:
            barrier.wait()
            call(session)
            outcomes.append("ok")
        except Exception as exc:
            outcomes.append(type(exc).__name__)
        finally:
            session.close()

    threads = [threading.Thread(target=run, args=(call,)) for call in calls]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=30)
    return sorted(outcomes)


class TestConcurrentActivation:
    def test_same_week_exactly_one_wins(self, db, session_factory, owner_id, cycle):
        def activate(session):
            activate_shield(session, owner_id, cycle.id, 5, REASON)

        assert _race(session_factory, [activate, activate]) == ["ConflictError", "ok"]
        rows = (
            db.query(MomentumCredit)
            .filter(MomentumCredit.cycle_id == cycle.id, MomentumCredit.week_number == 5)
            .all()
        )
        assert len(rows) == 1

    def test_last_credit_goes_to_one_week(self, db, session_factory, owner_id, cycle):
        for week in (1, 2):
            activate_shield(db, owner_id, cycle.id, week, REASON)

        def activate_week(week):
            return lambda session: activate_shield(session, owner_id, cycle.id, week, REASON)

        outcomes = _race(session_factory, [activate_week(3), activate_week(4)])
        assert outcomes == ["StateError", "ok"]
        assert credit_ledger.count_active_credits(db, owner_id, cycle.id) == 3
        assert remaining_credits(db, owner_id, cycle.id) == 0


class TestStorageGuards:
    """Validation is bypassed; the unique index and the recount still hold."""

    def test_same_week_second_insert_conflicts(self, db, owner_id, cycle, monkeypatch):
        activate_shield(db, owner_id, cycle.id, 6, REASON)
        _allow_everything(monkeypatch)

        with pytest.raises(ConflictError):
            activate_shield(db, owner_id, cycle.id, 6, REASON)

        rows = (
            db.query(MomentumCredit)
            .filter(MomentumCredit.owner_id == owner_id, MomentumCredit.week_number == 6)
            .all()
        )
        assert len(rows) == 1

    def test_quota_recount_guard(self, db, owner_id, cycle, monkeypatch):
        for week in (1, 2, 3):
            activate_shield(db, owner_id, cycle.id, week, REASON)
        _allow_everything(monkeypatch)

        with pytest.raises(StateError):
            activate_shield(db, owner_id, cycle.id, 4, REASON)
        assert credit_ledger.count_active_credits(db, owner_id, cycle.id) == 3


class TestRevoke:
    def test_admin_revokes(self, db, owner_id, cycle):
        credit = activate_shield(db, owner_id, cycle.id, 1, REASON).credit
        revoked = revoke_credit(db, credit.id, ADMIN_ID)
        assert revoked.revoked is True
        assert revoked.revoked_by == ADMIN_ID
        assert revoked.revoked_at is not None
        assert remaining_credits(db, owner_id, cycle.id) == 3

    def test_owner_cannot_revoke_own_credit(self, db, owner_id, cycle):
        credit = activate_shield(db, owner_id, cycle.id, 1, REASON).credit
        with pytest.raises(AuthorizationError):
            revoke_credit(db, credit.id, owner_id)

    def test_revoke_twice(self, db, owner_id, cycle):
        credit = activate_shield(db, owner_id, cycle.id, 1, REASON).credit
        revoke_credit(db, credit.id, ADMIN_ID)
        with pytest.raises(StateError):
            revoke_credit(db, credit.id, ADMIN_ID)

    def test_revoke_missing(self, db):
        with pytest.raises(NotFoundError):
            revoke_credit(db, 999_999, ADMIN_ID)

    def test_revoked_week_can_be_shielded_again(self, db, owner_id, cycle):
        credit = activate_shield(db, owner_id, cycle.id, 1, REASON).credit
        revoke_credit(db, credit.id, ADMIN_ID)
        result = activate_shield(db, owner_id, cycle.id, 1, REASON)
        assert result.remaining == 2

    def test_week_reverts_on_next_read(self, db, owner_id, cycle):
        credit = activate_shield(db, owner_id, cycle.id, 1, REASON).credit
        assert get_weekly_score(db, cycle, 1).is_shielded is True
        db.commit()

        revoke_credit(db, credit.id, ADMIN_ID)
        assert get_weekly_score(db, cycle, 1).is_shielded is False
