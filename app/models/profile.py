"""
Profile — per-owner settings and derived counters.

winning_streak / losing_streak are refreshed by the aggregation service.
shield_credits is a derived cache of the momentum_credits ledger: it is
overwritten with a fresh count on every activation and never read as truth.
"""
from datetime import datetime
from sqlalchemy import Integer, String, Text, DateTime, func
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base


class Profile(Base):
    __tablename__ = "profiles"

    owner_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    full_name: Mapped[str | None] = mapped_column(String(256), nullable=True)
    vision_statement: Mapped[str | None] = mapped_column(Text, nullable=True)
    timezone: Mapped[str] = mapped_column(String(64), nullable=False, default="UTC")
    winning_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    losing_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    shield_credits: Mapped[int] = mapped_column(Integer, nullable=False, default=3)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
