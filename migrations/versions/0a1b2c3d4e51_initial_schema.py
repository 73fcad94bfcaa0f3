"""initial_schema

Create users, projects, budget_items, project_plans, workflow_transitions
and audit_logs.

Revision ID: 0a1b2c3d4e51
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect as sa_inspect


# revision identifiers, used by Alembic.
revision = "0a1b2c3d4e51"
down_revision = None
branch_labels = None
depends_on = None

_PLAN_TEXT_COLUMNS = (
    "methodology",
    "tools_to_be_used",
    "deliverables",
    "dependencies",
    "quality_standards",
    "communication_plan",
    "change_control_process",
    "planning_assumptions",
    "planning_constraints",
    "planning_risks",
    "baseline_scope",
    "baseline_schedule",
)


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade():
    bind = op.get_bind()
    inspector = sa_inspect(bind)
    existing_tables = set(inspector.get_table_names())

    if "users" not in existing_tables:
        op.create_table(
            "users",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("email", sa.String(length=200), nullable=False),
            sa.Column("password_hash", sa.String(length=256), nullable=False),
            sa.Column("name", sa.String(length=200), nullable=False),
            sa.Column("role", sa.String(length=30), nullable=False, server_default="stakeholder"),
            sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
            *_timestamps(),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("email"),
        )

    if "projects" not in existing_tables:
        op.create_table(
            "projects",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("name", sa.String(length=200), nullable=False),
            sa.Column("description", sa.Text(), nullable=False, server_default=""),
            sa.Column("status", sa.String(length=30), nullable=False, server_default="planning"),
            sa.Column("owner_id", sa.Integer(), nullable=True),
            *_timestamps(),
            sa.ForeignKeyConstraint(["owner_id"], ["users.id"], ondelete="SET NULL"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_projects_owner_id", "projects", ["owner_id"])

    if "budget_items" not in existing_tables:
        op.create_table(
            "budget_items",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("project_id", sa.Integer(), nullable=False),
            sa.Column("budget_item_id", sa.String(length=50), nullable=False),
            sa.Column("category", sa.String(length=100), nullable=False),
            sa.Column("estimated_cost", sa.Numeric(14, 2), nullable=False),
            sa.Column("actual_cost", sa.Numeric(14, 2), nullable=False),
            sa.Column("contingency_percentage", sa.Numeric(5, 2), nullable=False),
            sa.Column("variance", sa.Numeric(16, 2), nullable=False),
            sa.Column("forecast_remaining", sa.Numeric(16, 2), nullable=False),
            sa.Column("fiscal_period", sa.String(length=20), nullable=False),
            sa.Column("cost_center", sa.String(length=100), nullable=True),
            sa.Column("justification", sa.Text(), nullable=True),
            sa.Column("funding_source", sa.String(length=200), nullable=True),
            sa.Column("approval_status", sa.String(length=20), nullable=False, server_default="pending"),
            sa.Column("approved_by", sa.Integer(), nullable=True),
            sa.Column("approval_date", sa.DateTime(timezone=True), nullable=True),
            sa.Column("last_review_date", sa.DateTime(timezone=True), nullable=True),
            *_timestamps(),
            sa.ForeignKeyConstraint(["project_id"], ["projects.id"]),
            sa.ForeignKeyConstraint(["approved_by"], ["users.id"], ondelete="SET NULL"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_budget_items_project_id", "budget_items", ["project_id"])
        op.create_index(
            "idx_budget_project_status", "budget_items", ["project_id", "approval_status"],
        )

    if "project_plans" not in existing_tables:
        op.create_table(
            "project_plans",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("project_id", sa.Integer(), nullable=False),
            sa.Column("planning_start_date", sa.DateTime(timezone=True), nullable=False),
            *[sa.Column(name, sa.Text(), nullable=True) for name in _PLAN_TEXT_COLUMNS],
            sa.Column("created_by", sa.Integer(), nullable=True),
            *_timestamps(),
            sa.ForeignKeyConstraint(["project_id"], ["projects.id"]),
            sa.ForeignKeyConstraint(["created_by"], ["users.id"], ondelete="SET NULL"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_project_plans_project_id", "project_plans", ["project_id"], unique=True)

    if "workflow_transitions" not in existing_tables:
        op.create_table(
            "workflow_transitions",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("project_id", sa.Integer(), nullable=False),
            sa.Column("from_status", sa.String(length=30), nullable=False),
            sa.Column("to_status", sa.String(length=30), nullable=False),
            sa.Column("transitioned_by", sa.Integer(), nullable=True),
            sa.Column("transitioned_at", sa.DateTime(timezone=True), nullable=False),
            sa.Column("status", sa.String(length=20), nullable=False, server_default="completed"),
            sa.ForeignKeyConstraint(["project_id"], ["projects.id"]),
            sa.ForeignKeyConstraint(["transitioned_by"], ["users.id"], ondelete="SET NULL"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index(
            "ix_workflow_transitions_project_id", "workflow_transitions", ["project_id"],
        )

    if "audit_logs" not in existing_tables:
        op.create_table(
            "audit_logs",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("entity_type", sa.String(length=30), nullable=False),
            sa.Column("entity_id", sa.String(length=36), nullable=False),
            sa.Column("user_id", sa.Integer(), nullable=True),
            sa.Column("action", sa.String(length=20), nullable=False),
            sa.Column("changes_json", sa.Text(), nullable=False, server_default="{}"),
            sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
            sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="SET NULL"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("idx_audit_entity", "audit_logs", ["entity_type", "entity_id"])
        op.create_index("idx_audit_user", "audit_logs", ["user_id"])
        op.create_index("idx_audit_ts", "audit_logs", ["timestamp"])


def downgrade():
    bind = op.get_bind()
    inspector = sa_inspect(bind)
    existing_tables = set(inspector.get_table_names())

    for table in (
        "audit_logs",
        "workflow_transitions",
        "project_plans",
        "budget_items",
        "projects",
        "users",
    ):
        if table in existing_tables:
            op.drop_table(table)
