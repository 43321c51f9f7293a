"""class sessions scheduled per batch

Revision ID: 0002_class_sessions
Revises: 0001_initial
Create Date: 2026-10-17

"""
from alembic import op
import sqlalchemy as sa


revision = "0002_class_sessions"
down_revision = "0001_initial"
branch_labels = None
depends_on = None

class_status = sa.Enum("ACTIVE", "EXPIRED", name="class_status")


def upgrade() -> None:
    op.create_table(
        "class_sessions",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.Column("batch_id", sa.Uuid(), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("meeting_url", sa.String(1024), nullable=False),
        sa.Column("starts_at", sa.DateTime(), nullable=False),
        sa.Column("ends_at", sa.DateTime(), nullable=False),
        sa.Column("status", class_status, nullable=False),
        sa.CheckConstraint("ends_at > starts_at", name="ck_class_sessions_time_range"),
        sa.ForeignKeyConstraint(["batch_id"], ["batches.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    for column in ("id", "created_at", "batch_id", "starts_at", "status"):
        op.create_index(op.f(f"ix_class_sessions_{column}"), "class_sessions", [column])


def downgrade() -> None:
    op.drop_table("class_sessions")
    class_status.drop(op.get_bind(), checkfirst=True)
