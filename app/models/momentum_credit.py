"""
MomentumCredit — one shield activation.

Append-only for the owner: there is no owner update or delete path. Only an
elevated principal may set revoked / revoked_at / revoked_by
(app/services/credit_admin.py).

The partial unique index allows one non-revoked credit per
(owner, cycle, week); a revoked credit frees the week again.
"""
from datetime import datetime
from sqlalchemy import Integer, String, Text, Boolean, DateTime, ForeignKey, Index, CheckConstraint, func, text
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base


class MomentumCredit(Base):
    __tablename__ = "momentum_credits"
    __table_args__ = (
        Index(
            "uq_momentum_credits_owner_cycle_week",
            "owner_id", "cycle_id", "week_number",
            unique=True,
            postgresql_where=text("revoked = false"),
            sqlite_where=text("revoked = 0"),
        ),
        CheckConstraint("week_number BETWEEN 1 AND 12", name="ck_momentum_credits_week"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    owner_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    cycle_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("cycles.id"), nullable=False, index=True
    )
    week_number: Mapped[int] = mapped_column(Integer, nullable=False)
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    biometrics_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    ai_detected: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    applied_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    revoked: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    revoked_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    revoked_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
