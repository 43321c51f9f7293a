"""initial schema: users, batches, enrollments, payments, notifications, email_jobs

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-17

"""
from alembic import op
import sqlalchemy as sa


revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None

ACTIVE_TRACK = sa.text("status IN ('PENDING', 'PAYMENT_SUBMITTED', 'ACTIVE')")

user_role = sa.Enum("ADMIN", "STUDENT", name="user_role")
enrollment_status = sa.Enum(
    "PENDING", "PAYMENT_SUBMITTED", "ACTIVE", "REJECTED", "EXPIRED", "CANCELLED",
    name="enrollment_status",
)
payment_status = sa.Enum("PENDING", "APPROVED", "REJECTED", name="payment_status")
payment_method = sa.Enum("BKASH", "NAGAD", "ROCKET", "BANK", name="payment_method")
email_job_type = sa.Enum(
    "VERIFICATION", "PAYMENT_NOTIFICATION", "ENROLLMENT_NOTIFICATION", name="email_job_type"
)
email_job_status = sa.Enum(
    "QUEUED", "PROCESSING", "SENT", "SKIPPED", "FAILED", name="email_job_status"
)


def _base_columns() -> list:
    return [
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    ]


def _index(table: str, *columns: str, unique: bool = False) -> None:
    for column in columns:
        op.create_index(op.f(f"ix_{table}_{column}"), table, [column], unique=unique)


def upgrade() -> None:
    op.create_table(
        "users",
        *_base_columns(),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("hashed_password", sa.String(255), nullable=False),
        sa.Column("is_verified", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("phone", sa.String(32), nullable=True),
        sa.Column("role", user_role, nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_users_email"), "users", ["email"], unique=True)
    _index("users", "id", "created_at", "role", "is_active")

    op.create_table(
        "batches",
        *_base_columns(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("price", sa.Numeric(10, 2), nullable=False),
        sa.Column("seats", sa.Integer(), nullable=False),
        sa.Column("is_open", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_published", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("enroll_start", sa.DateTime(), nullable=False),
        sa.Column("enroll_end", sa.DateTime(), nullable=False),
        sa.CheckConstraint("seats >= 0", name="ck_batches_seats_non_negative"),
        sa.PrimaryKeyConstraint("id"),
    )
    _index("batches", "id", "created_at", "name", "is_open", "is_published")

    op.create_table(
        "enrollments",
        *_base_columns(),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("batch_id", sa.Uuid(), nullable=False),
        sa.Column("enrollment_fee", sa.Numeric(10, 2), nullable=False),
        sa.Column("status", enrollment_status, nullable=False),
        sa.Column("paid_at", sa.DateTime(), nullable=True),
        sa.Column("approved_at", sa.DateTime(), nullable=True),
        sa.Column("rejected_at", sa.DateTime(), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(), nullable=True),
        sa.Column("expired_at", sa.DateTime(), nullable=True),
        sa.Column("reject_reason", sa.String(500), nullable=True),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["batch_id"], ["batches.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
    )
    _index("enrollments", "id", "created_at", "user_id", "batch_id", "status")
    op.create_index(
        "uq_enrollments_active_track",
        "enrollments",
        ["user_id", "batch_id"],
        unique=True,
        postgresql_where=ACTIVE_TRACK,
        sqlite_where=ACTIVE_TRACK,
    )

    op.create_table(
        "payments",
        *_base_columns(),
        sa.Column("enrollment_id", sa.Uuid(), nullable=False),
        sa.Column("trx_id", sa.String(100), nullable=False),
        sa.Column("method", payment_method, nullable=False),
        sa.Column("sender_number", sa.String(32), nullable=False),
        sa.Column("amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("status", payment_status, nullable=False),
        sa.Column("paid_at", sa.DateTime(), nullable=True),
        sa.Column("verified_at", sa.DateTime(), nullable=True),
        sa.Column("verified_by_id", sa.Uuid(), nullable=True),
        sa.ForeignKeyConstraint(["enrollment_id"], ["enrollments.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["verified_by_id"], ["users.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("enrollment_id"),
    )
    op.create_index(op.f("ix_payments_trx_id"), "payments", ["trx_id"], unique=True)
    _index("payments", "id", "created_at", "method", "status")

    op.create_table(
        "notifications",
        *_base_columns(),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("batch_id", sa.Uuid(), nullable=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("body", sa.Text(), nullable=False),
        sa.Column("read_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["batch_id"], ["batches.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    _index("notifications", "id", "created_at", "user_id", "batch_id")

    op.create_table(
        "email_jobs",
        *_base_columns(),
        sa.Column("type", email_job_type, nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("subject", sa.String(255), nullable=False),
        sa.Column("html", sa.Text(), nullable=False),
        sa.Column("is_admin", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("status", email_job_status, nullable=False),
        sa.Column("attempts", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("max_attempts", sa.Integer(), nullable=False, server_default="3"),
        sa.Column("next_run_at", sa.DateTime(), nullable=False),
        sa.Column("last_error", sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    _index("email_jobs", "id", "created_at", "user_id", "status", "next_run_at")


def downgrade() -> None:
    op.drop_table("email_jobs")
    op.drop_table("notifications")
    op.drop_table("payments")
    op.drop_index("uq_enrollments_active_track", table_name="enrollments")
    op.drop_table("enrollments")
    op.drop_table("batches")
    op.drop_table("users")

    bind = op.get_bind()
    for enum_type in (
        email_job_status, email_job_type, payment_method, payment_status, enrollment_status, user_role
    ):
        enum_type.drop(bind, checkfirst=True)
