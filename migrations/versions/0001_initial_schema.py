"""initial schema

Revision ID: 0001
Revises:
Create Date: 2026-03-02 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # --- ENUM types ---
    cycle_status_enum = sa.Enum("active", "closed", name="cycle_status_enum")
    cycle_status_enum.create(op.get_bind(), checkfirst=True)

    tactic_status_enum = sa.Enum("active", "superseded", name="tactic_status_enum")
    tactic_status_enum.create(op.get_bind(), checkfirst=True)

    # --- profiles ---
    op.create_table(
        "profiles",
        sa.Column("owner_id", sa.String(64), nullable=False),
        sa.Column("full_name", sa.String(256), nullable=True),
        sa.Column("vision_statement", sa.Text(), nullable=True),
        sa.Column("timezone", sa.String(64), nullable=False, server_default="UTC"),
        sa.Column("winning_streak", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("losing_streak", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("shield_credits", sa.Integer(), nullable=False, server_default="3"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("owner_id"),
    )

    # --- cycles ---
    op.create_table(
        "cycles",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("owner_id", sa.String(64), nullable=False),
        sa.Column("name", sa.String(256), nullable=False),
        sa.Column("vision", sa.Text(), nullable=True),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("status", sa.Enum(
            "active", "closed", name="cycle_status_enum", create_type=False,
        ), nullable=False, server_default="active"),
        sa.Column("final_score", sa.Numeric(5, 2), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("closed_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_cycles_id", "cycles", ["id"])
    op.create_index("ix_cycles_owner_id", "cycles", ["owner_id"])
    # One active cycle per owner
    op.create_index(
        "uq_cycles_owner_active",
        "cycles",
        ["owner_id"],
        unique=True,
        postgresql_where=sa.text("status = 'active'"),
    )

    # --- goals ---
    op.create_table(
        "goals",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("cycle_id", sa.Integer(), sa.ForeignKey("cycles.id"), nullable=False),
        sa.Column("owner_id", sa.String(64), nullable=False),
        sa.Column("title", sa.String(256), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("priority", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("target_metric", sa.String(128), nullable=True),
        sa.Column("target_value", sa.Numeric(18, 4), nullable=True),
        sa.Column("current_value", sa.Numeric(18, 4), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("priority BETWEEN 1 AND 3", name="ck_goals_priority"),
    )
    op.create_index("ix_goals_id", "goals", ["id"])
    op.create_index("ix_goals_cycle_id", "goals", ["cycle_id"])
    op.create_index("ix_goals_owner_id", "goals", ["owner_id"])

    # --- tactics ---
    op.create_table(
        "tactics",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("goal_id", sa.Integer(), sa.ForeignKey("goals.id"), nullable=False),
        sa.Column("owner_id", sa.String(64), nullable=False),
        sa.Column("lineage_id", sa.String(36), nullable=False),
        sa.Column("title", sa.String(256), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("weight", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("status", sa.Enum(
            "active", "superseded", name="tactic_status_enum", create_type=False,
        ), nullable=False, server_default="active"),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("previous_version_id", sa.Integer(), sa.ForeignKey("tactics.id"), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("weight BETWEEN 1 AND 10", name="ck_tactics_weight"),
        sa.CheckConstraint("version >= 1", name="ck_tactics_version"),
    )
    op.create_index("ix_tactics_id", "tactics", ["id"])
    op.create_index("ix_tactics_goal_id", "tactics", ["goal_id"])
    op.create_index("ix_tactics_owner_id", "tactics", ["owner_id"])
    op.create_index("ix_tactics_lineage_id", "tactics", ["lineage_id"])
    # Exactly one active head per lineage
    op.create_index(
        "uq_tactics_lineage_active",
        "tactics",
        ["lineage_id"],
        unique=True,
        postgresql_where=sa.text("status = 'active'"),
    )

    # --- daily_actions ---
    op.create_table(
        "daily_actions",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("cycle_id", sa.Integer(), sa.ForeignKey("cycles.id"), nullable=False),
        sa.Column("owner_id", sa.String(64), nullable=False),
        sa.Column("tactic_id", sa.Integer(), sa.ForeignKey("tactics.id"), nullable=True),
        sa.Column("title", sa.String(256), nullable=False),
        sa.Column("action_date", sa.Date(), nullable=False),
        sa.Column("is_completed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("energy_level", sa.Integer(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(
            "energy_level IS NULL OR energy_level BETWEEN 1 AND 5",
            name="ck_daily_actions_energy",
        ),
    )
    op.create_index("ix_daily_actions_id", "daily_actions", ["id"])
    op.create_index("ix_daily_actions_cycle_id", "daily_actions", ["cycle_id"])
    op.create_index("ix_daily_actions_owner_id", "daily_actions", ["owner_id"])
    op.create_index("ix_daily_actions_tactic_id", "daily_actions", ["tactic_id"])
    op.create_index("ix_daily_actions_action_date", "daily_actions", ["action_date"])


def downgrade() -> None:
    op.drop_table("daily_actions")
    op.drop_index("uq_tactics_lineage_active", table_name="tactics")
    op.drop_table("tactics")
    op.drop_table("goals")
    op.drop_index("uq_cycles_owner_active", table_name="cycles")
    op.drop_table("cycles")
    op.drop_table("profiles")

    sa.Enum(name="tactic_status_enum").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="cycle_status_enum").drop(op.get_bind(), checkfirst=True)
