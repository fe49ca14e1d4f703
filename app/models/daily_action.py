from datetime import datetime, date
from sqlalchemy import Integer, String, Text, Boolean, DateTime, Date, ForeignKey, CheckConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base


class DailyAction(Base):
    """
    One executable action on one day of a cycle.

    84 rows per cycle, all created by cycle initialization. is_completed and
    completed_at are set and cleared together; energy_level is cleared with
    them.
    """

    __tablename__ = "daily_actions"
    __table_args__ = (
        CheckConstraint(
            "energy_level IS NULL OR energy_level BETWEEN 1 AND 5",
            name="ck_daily_actions_energy",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    cycle_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("cycles.id"), nullable=False, index=True
    )
    owner_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    tactic_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("tactics.id"), nullable=True, index=True
    )
    title: Mapped[str] = mapped_column(String(256), nullable=False)
    action_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    is_completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    energy_level: Mapped[int | None] = mapped_column(Integer, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
