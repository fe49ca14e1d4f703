"""
Shield credit ledger — owner capability (read, validate, insert).

Rules
-----
  Quota        : SHIELD_QUOTA (3) non-revoked credits per (owner, cycle).
  One per week : at most one non-revoked credit per (owner, cycle, week).
  Abuse gate   : detect_chronic_low_effort must be False.

validate_activation never raises for a business-rule failure; it returns a
ShieldDecision carrying the fresh remaining count. activate_shield re-runs it
and raises the matching error when the decision is a rejection.

Exactly-once activation
-----------------------
activate_shield serializes on the cycle row (SELECT ... FOR UPDATE), then
inserts, flushes and recounts in the same transaction:

  - two activations for the same week: the partial unique index on
    (owner_id, cycle_id, week_number) WHERE NOT revoked rejects the second
    insert -> ConflictError "already shielded";
  - activations that together exceed the quota: the recount after the flush
    exceeds SHIELD_QUOTA -> rollback + StateError.

Profile.shield_credits is only a cache. It is overwritten with the recount on
every activation and never consulted for a decision.

Revocation is the administrator capability and lives in credit_admin.py.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from sqlalchemy import exc as sa_exc, func
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import ConflictError, StateError, ValidationError
from app.models.cycle import Cycle, CycleStatus
from app.models.momentum_credit import MomentumCredit
from app.models.weekly_score import WeeklyScore
from app.services.cycle_lifecycle import get_owned_cycle
from app.services.profiles import get_or_create_profile

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Decision codes
# ---------------------------------------------------------------------------

class DecisionCode:
    ALLOWED            = "ALLOWED"
    NO_CREDITS         = "NO_CREDITS_REMAINING"
    ALREADY_SHIELDED   = "ALREADY_SHIELDED"
    CHRONIC_LOW_EFFORT = "CHRONIC_LOW_EFFORT"


_REASONS = {
    DecisionCode.ALLOWED:            "Shield activation allowed",
    DecisionCode.NO_CREDITS:         "No shield credits remaining this cycle",
    DecisionCode.ALREADY_SHIELDED:   "Shield already activated for this week",
    DecisionCode.CHRONIC_LOW_EFFORT: "Shield rejected: chronic low effort pattern detected",
}


@dataclass
class ShieldDecision:
    allowed: bool
    code: str
    reason: str
    remaining: int   # fresh count, in every outcome


@dataclass
class ActivationResult:
    credit: MomentumCredit
    remaining: int


def _decision(code: str, remaining: int) -> ShieldDecision:
    return ShieldDecision(
        allowed=code == DecisionCode.ALLOWED,
        code=code,
        reason=_REASONS[code],
        remaining=remaining,
    )


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

def count_active_credits(db: Session, owner_id: str, cycle_id: int) -> int:
    return (
        db.query(func.count(MomentumCredit.id))
        .filter(
            MomentumCredit.owner_id == owner_id,
            MomentumCredit.cycle_id == cycle_id,
            MomentumCredit.revoked.is_(False),
        )
        .scalar()
        or 0
    )


def remaining_credits(db: Session, owner_id: str, cycle_id: int) -> int:
    return max(0, settings.SHIELD_QUOTA - count_active_credits(db, owner_id, cycle_id))


def get_valid_shield(
    db: Session, owner_id: str, cycle_id: int, week_number: int
) -> Optional[MomentumCredit]:
    """The non-revoked credit covering a week, if any."""
    return (
        db.query(MomentumCredit)
        .filter(
            MomentumCredit.owner_id == owner_id,
            MomentumCredit.cycle_id == cycle_id,
            MomentumCredit.week_number == week_number,
            MomentumCredit.revoked.is_(False),
        )
        .first()
    )


def is_week_shielded(db: Session, owner_id: str, cycle_id: int, week_number: int) -> bool:
    return get_valid_shield(db, owner_id, cycle_id, week_number) is not None


def list_credits(db: Session, owner_id: str, cycle_id: int) -> list[MomentumCredit]:
    """Full ledger for one cycle, revoked entries included, oldest first."""
    return (
        db.query(MomentumCredit)
        .filter(MomentumCredit.owner_id == owner_id, MomentumCredit.cycle_id == cycle_id)
        .order_by(MomentumCredit.applied_at.asc(), MomentumCredit.id.asc())
        .all()
    )


# ---------------------------------------------------------------------------
# Abuse heuristic
# ---------------------------------------------------------------------------

def detect_chronic_low_effort(db: Session, owner_id: str) -> bool:
    """
    Compare the most recent weeks against a longer baseline.

    Takes up to ABUSE_HISTORY_WINDOW (12) newest weekly scores. With fewer
    than ABUSE_MIN_HISTORY (8) there is not enough history to judge and the
    answer is False. Otherwise flags iff

        mean(newest ABUSE_RECENT_WINDOW) < mean(all) * ABUSE_RATIO
        and mean(all) < ABUSE_BASELINE_CEILING

    A tunable heuristic gate, not a hard rule.
    """
    rows = (
        db.query(WeeklyScore.score)
        .filter(WeeklyScore.owner_id == owner_id)
        .order_by(WeeklyScore.week_start.desc(), WeeklyScore.id.desc())
        .limit(settings.ABUSE_HISTORY_WINDOW)
        .all()
    )
    scores = [Decimal(r.score) for r in rows]
    if len(scores) < settings.ABUSE_MIN_HISTORY:
        return False

    recent_window = scores[: settings.ABUSE_RECENT_WINDOW]
    baseline = sum(scores) / len(scores)
    recent = sum(recent_window) / len(recent_window)

    ratio = Decimal(str(settings.ABUSE_RATIO))
    ceiling = Decimal(str(settings.ABUSE_BASELINE_CEILING))
    return recent < baseline * ratio and baseline < ceiling


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

def validate_activation(
    db: Session, owner_id: str, cycle_id: int, week_number: int
) -> ShieldDecision:
    """Checks, in order: quota, duplicate week, abuse gate."""
    remaining = remaining_credits(db, owner_id, cycle_id)
    if remaining <= 0:
        return _decision(DecisionCode.NO_CREDITS, 0)
    if get_valid_shield(db, owner_id, cycle_id, week_number) is not None:
        return _decision(DecisionCode.ALREADY_SHIELDED, remaining)
    if detect_chronic_low_effort(db, owner_id):
        return _decision(DecisionCode.CHRONIC_LOW_EFFORT, remaining)
    return _decision(DecisionCode.ALLOWED, remaining)


def _rejection_error(decision: ShieldDecision, week_number: int) -> Exception:
    details = {
        "decision": decision.code,
        "remaining": decision.remaining,
        "week_number": week_number,
    }
    if decision.code == DecisionCode.ALREADY_SHIELDED:
        return ConflictError(decision.reason, details=details)
    return StateError(decision.reason, details=details)


def _check_input(week_number: int, reason: str) -> None:
    if not 1 <= week_number <= settings.CYCLE_WEEKS:
        raise ValidationError(
            f"Week number must be between 1 and {settings.CYCLE_WEEKS}.",
            details={"week_number": week_number},
        )
    if reason is None or len(reason.strip()) < settings.SHIELD_REASON_MIN_LENGTH:
        raise ValidationError(
            f"Please provide a reason (min {settings.SHIELD_REASON_MIN_LENGTH} chars).",
            details={"min_length": settings.SHIELD_REASON_MIN_LENGTH},
        )


# ---------------------------------------------------------------------------
# Activation
# ---------------------------------------------------------------------------

def activate_shield(
    db: Session,
    owner_id: str,
    cycle_id: int,
    week_number: int,
    reason: str,
    biometrics_verified: bool = False,
) -> ActivationResult:
    _check_input(week_number, reason)
    get_owned_cycle(db, owner_id, cycle_id)

    # Serialize activations for this cycle; refresh a status cached in the session.
    cycle = (
        db.query(Cycle)
        .filter(Cycle.id == cycle_id)
        .with_for_update()
        .populate_existing()
        .one()
    )
    if cycle.status != CycleStatus.active:
        db.rollback()
        raise StateError(
            "Shields can only be activated on an active cycle.",
            details={"cycle_id": cycle_id},
        )

    decision = validate_activation(db, owner_id, cycle_id, week_number)
    if not decision.allowed:
        db.rollback()
        logger.info(
            "Shield rejected for owner %s cycle %s week %s: %s",
            owner_id, cycle_id, week_number, decision.code,
        )
        raise _rejection_error(decision, week_number)

    try:
        credit = MomentumCredit(
            owner_id=owner_id,
            cycle_id=cycle_id,
            week_number=week_number,
            reason=reason.strip(),
            biometrics_verified=biometrics_verified,
            revoked=False,
        )
        db.add(credit)
        db.flush()

        used = count_active_credits(db, owner_id, cycle_id)
        if used > settings.SHIELD_QUOTA:
            raise StateError(
                _REASONS[DecisionCode.NO_CREDITS],
                details={"decision": DecisionCode.NO_CREDITS, "remaining": 0, "week_number": week_number},
            )
        remaining = settings.SHIELD_QUOTA - used

        get_or_create_profile(db, owner_id).shield_credits = remaining
        (
            db.query(WeeklyScore)
            .filter(
                WeeklyScore.owner_id == owner_id,
                WeeklyScore.cycle_id == cycle_id,
                WeeklyScore.week_number == week_number,
            )
            .update({WeeklyScore.is_shielded: True}, synchronize_session=False)
        )
        db.commit()
    except sa_exc.IntegrityError as exc:
        db.rollback()
        logger.info(
            "Shield insert lost the race for owner %s cycle %s week %s",
            owner_id, cycle_id, week_number,
        )
        raise ConflictError(
            _REASONS[DecisionCode.ALREADY_SHIELDED],
            details={"decision": DecisionCode.ALREADY_SHIELDED, "week_number": week_number},
        ) from exc
    except Exception:
        db.rollback()
        raise

    db.refresh(credit)
    logger.info(
        "Shield %s activated for owner %s cycle %s week %s (%d remaining)",
        credit.id, owner_id, cycle_id, week_number, remaining,
    )
    return ActivationResult(credit=credit, remaining=remaining)
