"""add momentum_credits and weekly_scores tables

Revision ID: 0002
Revises: 0001
Create Date: 2026-03-09

momentum_credits is the shield ledger: append-only for the owner, revocable
by an administrator. The partial unique index allows one non-revoked credit
per (owner, cycle, week).

weekly_scores holds one recomputed row per (owner, cycle, week).
"""
from alembic import op
import sqlalchemy as sa

revision = "0002"
down_revision = "0001"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "momentum_credits",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("owner_id", sa.String(64), nullable=False),
        sa.Column("cycle_id", sa.Integer(), sa.ForeignKey("cycles.id"), nullable=False),
        sa.Column("week_number", sa.Integer(), nullable=False),
        sa.Column("reason", sa.Text(), nullable=False),
        sa.Column("biometrics_verified", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("ai_detected", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column(
            "applied_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column("revoked", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("revoked_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("revoked_by", sa.String(64), nullable=True),
        sa.CheckConstraint("week_number BETWEEN 1 AND 12", name="ck_momentum_credits_week"),
    )
    op.create_index("ix_momentum_credits_owner_id", "momentum_credits", ["owner_id"])
    op.create_index("ix_momentum_credits_cycle_id", "momentum_credits", ["cycle_id"])
    op.create_index(
        "uq_momentum_credits_owner_cycle_week",
        "momentum_credits",
        ["owner_id", "cycle_id", "week_number"],
        unique=True,
        postgresql_where=sa.text("revoked = false"),
    )

    op.create_table(
        "weekly_scores",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("owner_id", sa.String(64), nullable=False),
        sa.Column("cycle_id", sa.Integer(), sa.ForeignKey("cycles.id"), nullable=False),
        sa.Column("week_number", sa.Integer(), nullable=False),
        sa.Column("week_start", sa.Date(), nullable=False),
        sa.Column("score", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("tasks_completed", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("tasks_total", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_shielded", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint("score BETWEEN 0 AND 100", name="ck_weekly_scores_score"),
    )
    op.create_index("ix_weekly_scores_owner_id", "weekly_scores", ["owner_id"])
    op.create_index("ix_weekly_scores_cycle_id", "weekly_scores", ["cycle_id"])
    op.create_index("ix_weekly_scores_week_start", "weekly_scores", ["week_start"])
    op.create_unique_constraint(
        "uq_weekly_scores_owner_cycle_week",
        "weekly_scores",
        ["owner_id", "cycle_id", "week_number"],
    )


def downgrade() -> None:
    op.drop_constraint("uq_weekly_scores_owner_cycle_week", "weekly_scores", type_="unique")
    op.drop_table("weekly_scores")
    op.drop_index("uq_momentum_credits_owner_cycle_week", table_name="momentum_credits")
    op.drop_table("momentum_credits")
