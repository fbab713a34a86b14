"""initial_admissions_schema

Creates the admissions tables:
  - users                — applicants and staff, with mirrored application state
  - applications         — one per user (unique user_id), lifecycle + video metadata
  - application_answers  — one row per answered field (application, section, field)

Tables created conditionally (IF NOT EXISTS semantics) to support idempotent
execution against databases that already received these tables via db.create_all()
in a development environment.

Revision ID: 5e1a9c3d7b20
Revises:
Create Date: 2026-10-19 09:12:44.318502
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect as sa_inspect


# revision identifiers, used by Alembic.
revision = '5e1a9c3d7b20'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    inspector = sa_inspect(bind)
    existing = set(inspector.get_table_names())

    # ── User ──────────────────────────────────────────────────────────────
    if "users" not in existing:
        op.create_table(
            "users",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("first_name", sa.String(length=100), nullable=False),
            sa.Column("last_name", sa.String(length=100), nullable=False),
            sa.Column("email", sa.String(length=200), nullable=False),
            sa.Column("password_hash", sa.String(length=256), nullable=False),
            sa.Column("phone", sa.String(length=50), nullable=True),
            sa.Column("address", sa.String(length=500), nullable=True),
            sa.Column(
                "role", sa.String(length=20), nullable=False,
                server_default="user",
                comment="user | admin | super-admin",
            ),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column("profile_complete", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column(
                "is_application_completed", sa.Boolean(), nullable=False,
                server_default=sa.false(),
            ),
            sa.Column(
                "application_status", sa.String(length=40), nullable=False,
                server_default="Not Started",
            ),
            sa.Column("last_section_completed", sa.String(length=40), nullable=True),
            sa.Column("last_login_at", sa.DateTime(), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=False),
            sa.Column("updated_at", sa.DateTime(), nullable=False),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_users_email", "users", ["email"], unique=True)

    # ── Application ───────────────────────────────────────────────────────
    if "applications" not in existing:
        op.create_table(
            "applications",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column(
                "user_id", sa.Integer(), nullable=False,
                comment="One application per user.",
            ),
            sa.Column(
                "status", sa.String(length=40), nullable=False,
                server_default="Draft",
                comment="Draft | In Review | Accepted | Rejected | Confirmation Email Sent",
            ),
            sa.Column("submitted_at", sa.DateTime(), nullable=True),
            sa.Column("reviewed_at", sa.DateTime(), nullable=True),
            sa.Column("admin_notes", sa.Text(), nullable=True),
            sa.Column("video_duration", sa.Float(), nullable=True),
            sa.Column("video_size", sa.Integer(), nullable=True),
            sa.Column("video_format", sa.String(length=30), nullable=True),
            sa.Column("video_recorded_at", sa.DateTime(), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=False),
            sa.Column("updated_at", sa.DateTime(), nullable=False),
            sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("user_id", name="uq_application_user"),
        )
        op.create_index("ix_applications_status", "applications", ["status"])
        op.create_index("ix_applications_created_at", "applications", ["created_at"])

    # ── ApplicationAnswer ─────────────────────────────────────────────────
    if "application_answers" not in existing:
        op.create_table(
            "application_answers",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("application_id", sa.Integer(), nullable=False),
            sa.Column("section", sa.String(length=40), nullable=False),
            sa.Column("field", sa.String(length=60), nullable=False),
            sa.Column("value", sa.Text(), nullable=False),
            sa.Column("updated_at", sa.DateTime(), nullable=False),
            sa.ForeignKeyConstraint(["application_id"], ["applications.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("application_id", "section", "field", name="uq_answer_field"),
        )
        op.create_index(
            "ix_application_answers_application_id", "application_answers", ["application_id"],
        )


def downgrade():
    op.drop_index("ix_application_answers_application_id", table_name="application_answers")
    op.drop_table("application_answers")
    op.drop_index("ix_applications_created_at", table_name="applications")
    op.drop_index("ix_applications_status", table_name="applications")
    op.drop_table("applications")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")
