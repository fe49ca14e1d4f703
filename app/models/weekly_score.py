"""
WeeklyScore — derived execution score for one week of a cycle.

One row per (owner, cycle, week_number), recomputed in place from the
week's daily actions. score is the raw computed value; the shield only
changes what is displayed (see score_math.display_score).
"""
from datetime import datetime, date
from sqlalchemy import Integer, String, Boolean, DateTime, Date, ForeignKey, UniqueConstraint, CheckConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base


class WeeklyScore(Base):
    __tablename__ = "weekly_scores"
    __table_args__ = (
        UniqueConstraint("owner_id", "cycle_id", "week_number", name="uq_weekly_scores_owner_cycle_week"),
        CheckConstraint("score BETWEEN 0 AND 100", name="ck_weekly_scores_score"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    owner_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    cycle_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("cycles.id"), nullable=False, index=True
    )
    week_number: Mapped[int] = mapped_column(Integer, nullable=False)
    week_start: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    score: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    tasks_completed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    tasks_total: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_shielded: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
