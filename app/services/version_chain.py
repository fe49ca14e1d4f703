"""
Version chain — copy-on-write revisions for tactics.

A tactic is never edited in place. fork_tactic supersedes the current head
and inserts a new head:

    new.version             = head.version + 1
    new.previous_version_id = head.id
    new.lineage_id          = head.lineage_id

The id returned by a fork is the one callers must use from then on; the
superseded id stays valid for historical reads only.

Concurrency
-----------
Superseding is a compare-and-swap:

    UPDATE tactics SET status = 'superseded'
    WHERE id = :head AND status = 'active'

rowcount 0 means another fork got there first -> StateError. The partial
unique index on (lineage_id) WHERE status = 'active' is the final guard; if
it ever fires, two heads were about to exist and that is an IntegrityError.
"""
from __future__ import annotations

import logging
import uuid
from collections.abc import Iterator
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import exc as sa_exc, update
from sqlalchemy.orm import Session

from app.core.errors import IntegrityError, NotFoundError, StateError, ValidationError
from app.models.goal import Goal
from app.models.tactic import Tactic, TacticStatus

logger = logging.getLogger(__name__)

MIN_WEIGHT = 1
MAX_WEIGHT = 10

_INACTIVE_MESSAGE = "Cannot update an inactive tactic. Use the latest active version."


@dataclass
class TacticPatch:
    """Fields a fork may change. None means "copy from the head"."""
    title: Optional[str] = None
    description: Optional[str] = None
    weight: Optional[int] = None


@dataclass
class ForkResult:
    tactic: Tactic          # the new head
    superseded_id: int      # the id that is now inert for mutation


def _check_weight(weight: int) -> None:
    if not MIN_WEIGHT <= weight <= MAX_WEIGHT:
        raise ValidationError(
            f"Weight must be between {MIN_WEIGHT} and {MAX_WEIGHT}.",
            details={"weight": weight},
        )


def _check_title(title: str) -> None:
    if not title or not title.strip():
        raise ValidationError("Tactic title is required.")


# ---------------------------------------------------------------------------
# create
# ---------------------------------------------------------------------------

def create_tactic(
    db: Session,
    goal_id: int,
    owner_id: str,
    title: str,
    description: Optional[str] = None,
    weight: int = 1,
) -> Tactic:
    """Start a new lineage: version 1, active."""
    _check_title(title)
    _check_weight(weight)

    goal = db.get(Goal, goal_id)
    if goal is None or goal.owner_id != owner_id:
        raise NotFoundError("Goal")

    tactic = Tactic(
        goal_id=goal.id,
        owner_id=owner_id,
        lineage_id=str(uuid.uuid4()),
        title=title.strip(),
        description=description,
        weight=weight,
        status=TacticStatus.active,
        version=1,
        previous_version_id=None,
    )
    db.add(tactic)
    db.commit()
    db.refresh(tactic)
    logger.info("Tactic lineage %s created (tactic %s)", tactic.lineage_id, tactic.id)
    return tactic


# ---------------------------------------------------------------------------
# fork
# ---------------------------------------------------------------------------

def fork_tactic(
    db: Session,
    head_id: int,
    owner_id: str,
    patch: TacticPatch,
) -> ForkResult:
    head = db.get(Tactic, head_id)
    if head is None or head.owner_id != owner_id:
        raise NotFoundError("Tactic")
    if not head.is_active:
        raise StateError(_INACTIVE_MESSAGE, details={"tactic_id": head_id})

    if patch.title is not None:
        _check_title(patch.title)
    if patch.weight is not None:
        _check_weight(patch.weight)

    try:
        swapped = db.execute(
            update(Tactic)
            .where(Tactic.id == head.id, Tactic.status == TacticStatus.active)
            .values(status=TacticStatus.superseded)
            .execution_options(synchronize_session=False)
        ).rowcount
        if swapped != 1:
            # A concurrent fork superseded this head after we read it.
            db.rollback()
            raise StateError(_INACTIVE_MESSAGE, details={"tactic_id": head_id})

        new_head = Tactic(
            goal_id=head.goal_id,
            owner_id=head.owner_id,
            lineage_id=head.lineage_id,
            title=patch.title.strip() if patch.title is not None else head.title,
            description=patch.description if patch.description is not None else head.description,
            weight=patch.weight if patch.weight is not None else head.weight,
            status=TacticStatus.active,
            version=head.version + 1,
            previous_version_id=head.id,
        )
        db.add(new_head)
        db.flush()
        db.commit()
    except sa_exc.IntegrityError as exc:
        db.rollback()
        logger.error("Two active heads for lineage %s; fork aborted", head.lineage_id)
        raise IntegrityError(
            "Tactic lineage would have more than one active version.",
            details={"lineage_id": head.lineage_id},
        ) from exc
    except StateError:
        raise
    except Exception:
        db.rollback()
        raise

    db.refresh(new_head)
    db.refresh(head)
    logger.info(
        "Tactic %s forked to %s (lineage %s, v%d)",
        head_id, new_head.id, new_head.lineage_id, new_head.version,
    )
    return ForkResult(tactic=new_head, superseded_id=head_id)


# ---------------------------------------------------------------------------
# reads
# ---------------------------------------------------------------------------

def iter_history(db: Session, tail_id: int) -> Iterator[Tactic]:
    """
    Walk previous_version_id from tail_id back to the root, newest first.
    A missing row ends the walk; it is not an error.
    """
    current_id: Optional[int] = tail_id
    while current_id is not None:
        revision = db.get(Tactic, current_id)
        if revision is None:
            return
        yield revision
        current_id = revision.previous_version_id


def get_tactic_history(db: Session, owner_id: str, tail_id: int) -> list[Tactic]:
    tail = db.get(Tactic, tail_id)
    if tail is None or tail.owner_id != owner_id:
        raise NotFoundError("Tactic")
    get_lineage_head(db, tail.lineage_id)
    return list(iter_history(db, tail_id))


def list_active_tactics(db: Session, goal_id: int) -> list[Tactic]:
    """Current head of every lineage under a goal, oldest lineage first."""
    return (
        db.query(Tactic)
        .filter(Tactic.goal_id == goal_id, Tactic.status == TacticStatus.active)
        .order_by(Tactic.created_at.asc(), Tactic.id.asc())
        .all()
    )


def get_lineage_head(db: Session, lineage_id: str) -> Optional[Tactic]:
    heads = (
        db.query(Tactic)
        .filter(Tactic.lineage_id == lineage_id, Tactic.status == TacticStatus.active)
        .all()
    )
    if len(heads) > 1:
        logger.error("Lineage %s has %d active heads", lineage_id, len(heads))
        raise IntegrityError(
            "Tactic lineage has more than one active version.",
            details={"lineage_id": lineage_id, "active_heads": [t.id for t in heads]},
        )
    return heads[0] if heads else None
