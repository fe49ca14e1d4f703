"""
Tactic — one revision in a copy-on-write version chain.

Rows are never edited in place. An "update" supersedes the current head and
inserts a new head (see app/services/version_chain.py):

  v1 (superseded) <- v2 (superseded) <- v3 (active)
                  previous_version_id

lineage_id is shared by every revision of one logical tactic. The partial
unique index keeps exactly one active head per lineage at the storage level.
"""
from datetime import datetime
from sqlalchemy import Integer, String, Text, DateTime, Enum, ForeignKey, Index, CheckConstraint, func, text
from sqlalchemy.ext.hybrid import hybrid_property
from sqlalchemy.orm import Mapped, mapped_column
import enum

from app.db.base import Base


class TacticStatus(str, enum.Enum):
    active = "active"
    superseded = "superseded"


class Tactic(Base):
    __tablename__ = "tactics"
    __table_args__ = (
        Index(
            "uq_tactics_lineage_active",
            "lineage_id",
            unique=True,
            postgresql_where=text("status = 'active'"),
            sqlite_where=text("status = 'active'"),
        ),
        CheckConstraint("weight BETWEEN 1 AND 10", name="ck_tactics_weight"),
        CheckConstraint("version >= 1", name="ck_tactics_version"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    goal_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("goals.id"), nullable=False, index=True
    )
    owner_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    lineage_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(256), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    weight: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    status: Mapped[str] = mapped_column(
        Enum(TacticStatus, name="tactic_status_enum"),
        nullable=False,
        default=TacticStatus.active,
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    previous_version_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("tactics.id"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    @hybrid_property
    def is_active(self) -> bool:
        return self.status == TacticStatus.active
