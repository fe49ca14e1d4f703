from datetime import datetime, date
from decimal import Decimal
from sqlalchemy import Integer, String, Text, Numeric, DateTime, Date, Enum, Index, func, text
from sqlalchemy.orm import Mapped, mapped_column
import enum

from app.db.base import Base


class CycleStatus(str, enum.Enum):
    active = "active"
    closed = "closed"


class Cycle(Base):
    """
    A 12-week (84-day) execution period.

    At most one active cycle per owner. The explicit pre-check in
    cycle_lifecycle.initialize_cycle is the business rule; the partial
    unique index is the storage backstop.
    """

    __tablename__ = "cycles"
    __table_args__ = (
        Index(
            "uq_cycles_owner_active",
            "owner_id",
            unique=True,
            postgresql_where=text("status = 'active'"),
            sqlite_where=text("status = 'active'"),
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    owner_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(256), nullable=False)
    vision: Mapped[str | None] = mapped_column(Text, nullable=True)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(
        Enum(CycleStatus, name="cycle_status_enum"),
        nullable=False,
        default=CycleStatus.active,
    )
    final_score: Mapped[Decimal | None] = mapped_column(Numeric(5, 2), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    closed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
