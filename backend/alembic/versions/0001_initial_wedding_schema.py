"""initial wedding planning schema

Revision ID: 0001_initial_wedding_schema
Revises:
Create Date: 2026-10-18 09:00:00.000000
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "0001_initial_wedding_schema"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _acl_table(name: str, constraint: str) -> None:
    op.create_table(
        name,
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("task_id", sa.Integer(), sa.ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.UniqueConstraint("task_id", "user_id", name=constraint),
    )
    op.create_index(f"ix_{name}_task_id", name, ["task_id"])


def upgrade() -> None:
    op.create_table(
        "weddings",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("event_date", sa.Date(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("username", sa.String(50), nullable=True, unique=True),
        sa.Column("display_name", sa.String(100)),
        sa.Column("role", sa.String(32), nullable=False),
        sa.Column("wedding_id", sa.Integer(), sa.ForeignKey("weddings.id"), nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_users_wedding_id", "users", ["wedding_id"])
    op.create_index("ix_users_role", "users", ["role"])

    op.create_table(
        "vendor_profiles",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("wedding_id", sa.Integer(), sa.ForeignKey("weddings.id"), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True, unique=True),
        sa.Column("company_name", sa.String(200), nullable=False),
        sa.Column("contact_name", sa.String(200)),
        sa.Column("vendor_type", sa.String(50)),
        sa.Column("email", sa.String(255)),
        sa.Column("phone", sa.String(50)),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_vendor_profiles_wedding_id", "vendor_profiles", ["wedding_id"])

    # One override document per wedding
    op.create_table(
        "permission_policies",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("wedding_id", sa.Integer(), sa.ForeignKey("weddings.id"), nullable=False),
        sa.Column("permissions", sa.Text(), nullable=False, server_default="{}"),
        sa.Column("updated_by_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True)),
        sa.UniqueConstraint("wedding_id", name="uq_permission_policies_wedding_id"),
    )

    op.create_table(
        "tasks",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("wedding_id", sa.Integer(), sa.ForeignKey("weddings.id"), nullable=False),
        sa.Column("title", sa.String(500), nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column("status", sa.String(32), nullable=False, server_default="TODO"),
        sa.Column("priority", sa.String(32), nullable=False, server_default="MEDIUM"),
        sa.Column("due_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("tags", sa.Text()),
        sa.Column("visibility", sa.String(32), nullable=False, server_default="INTERNAL_TEAM"),
        sa.Column("vendor_id", sa.Integer(), sa.ForeignKey("vendor_profiles.id"), nullable=True),
        sa.Column("assigned_to_user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("created_by_user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True)),
    )
    op.create_index("ix_tasks_wedding_visibility", "tasks", ["wedding_id", "visibility"])
    op.create_index("ix_tasks_vendor_id", "tasks", ["vendor_id"])

    _acl_table("task_allowed_users", "uq_task_allowed_user")
    _acl_table("task_blocked_users", "uq_task_blocked_user")
    _acl_table("task_watchers", "uq_task_watcher")

    op.create_table(
        "task_comments",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("task_id", sa.Integer(), sa.ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False),
        sa.Column("author_user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("text", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_task_comments_task_id", "task_comments", ["task_id"])

    op.create_table(
        "task_activities",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("task_id", sa.Integer(), sa.ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("action", sa.String(50), nullable=False),
        sa.Column("details", sa.Text()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_task_activities_task_id", "task_activities", ["task_id"])

    op.create_table(
        "vendor_quotes",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("wedding_id", sa.Integer(), sa.ForeignKey("weddings.id"), nullable=False),
        sa.Column("vendor_id", sa.Integer(), sa.ForeignKey("vendor_profiles.id"), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("amount_total", sa.Numeric(12, 2), nullable=False),
        sa.Column("currency", sa.String(3), nullable=False, server_default="USD"),
        sa.Column("notes", sa.Text()),
        sa.Column("line_items", sa.Text()),
        sa.Column("status", sa.String(32), nullable=False, server_default="DRAFT"),
        sa.Column("created_by_user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_vendor_quotes_wedding_id", "vendor_quotes", ["wedding_id"])
    op.create_index("ix_vendor_quotes_vendor_id", "vendor_quotes", ["vendor_id"])

    op.create_table(
        "payments",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("wedding_id", sa.Integer(), sa.ForeignKey("weddings.id"), nullable=False),
        sa.Column("vendor_id", sa.Integer(), sa.ForeignKey("vendor_profiles.id"), nullable=True),
        sa.Column("quote_id", sa.Integer(), sa.ForeignKey("vendor_quotes.id"), nullable=True),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("currency", sa.String(3), nullable=False, server_default="USD"),
        sa.Column("paid_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("method", sa.String(32), nullable=False, server_default="OTHER"),
        sa.Column("note", sa.String(1000)),
        sa.Column("is_approved", sa.Boolean(), server_default=sa.false()),
        sa.Column("approved_by_user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("created_by_user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_payments_wedding_id", "payments", ["wedding_id"])
    op.create_index("ix_payments_vendor_id", "payments", ["vendor_id"])


def downgrade() -> None:
    op.drop_table("payments")
    op.drop_table("vendor_quotes")
    op.drop_table("task_activities")
    op.drop_table("task_comments")
    op.drop_table("task_watchers")
    op.drop_table("task_blocked_users")
    op.drop_table("task_allowed_users")
    op.drop_table("tasks")
    op.drop_table("permission_policies")
    op.drop_table("vendor_profiles")
    op.drop_table("users")
    op.drop_table("weddings")
