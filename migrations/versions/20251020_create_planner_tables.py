"""create planner and login log tables

Revision ID: 20251020_create_planner_tables
Revises:
Create Date: 2025-10-20
"""

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "20251020_create_planner_tables"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "planned_days",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("date", sa.String(length=10), nullable=False),
    )
    op.create_index("ix_planned_days_user_id", "planned_days", ["user_id"])

    op.create_table(
        "categories",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("color", sa.String(), nullable=False),
    )
    op.create_index("ix_categories_user_id", "categories", ["user_id"])

    op.create_table(
        "day_categories",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("day_date", sa.String(length=10), nullable=False),
        sa.Column("category_id", sa.String(), nullable=False),
    )
    op.create_index("ix_day_categories_user_id", "day_categories", ["user_id"])

    op.create_table(
        "week_notes",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("week_number", sa.String(), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("note", sa.Text(), nullable=False),
    )
    op.create_index("ix_week_notes_user_id", "week_notes", ["user_id"])

    op.create_table(
        "login_logs",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("timestamp", sa.String(), nullable=False),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("username", sa.String(), nullable=False),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("success", sa.Boolean(), nullable=False),
        sa.Column("ip", sa.String(), nullable=False),
        sa.Column("user_agent", sa.String(), nullable=False),
        sa.Column("planned_days_count", sa.Integer(), nullable=False),
    )
    op.create_index("ix_login_logs_timestamp", "login_logs", ["timestamp"])


def downgrade() -> None:
    op.drop_index("ix_login_logs_timestamp", table_name="login_logs")
    op.drop_table("login_logs")
    op.drop_index("ix_week_notes_user_id", table_name="week_notes")
    op.drop_table("week_notes")
    op.drop_index("ix_day_categories_user_id", table_name="day_categories")
    op.drop_table("day_categories")
    op.drop_index("ix_categories_user_id", table_name="categories")
    op.drop_table("categories")
    op.drop_index("ix_planned_days_user_id", table_name="planned_days")
    op.drop_table("planned_days")
