"""Initial schema - all business tables.

Revision ID: 001
Revises:
Create Date: 2026-10-19

"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    """Create all business tables."""

    # 1. users (no FKs)
    op.create_table(
        "users",
        sa.Column("id", UUID(as_uuid=False), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("name", sa.String(100), server_default="", nullable=False),
        sa.Column("role", sa.String(20), server_default="STAFF", nullable=False),
        sa.Column("is_active", sa.Boolean, server_default="true", nullable=False),
        sa.Column("team", sa.String(50), server_default="CHUNG", nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=True),
        sa.Column("permissions", sa.JSON, nullable=False),
        *_timestamps(),
    )

    # 2. system_settings (no FKs)
    op.create_table(
        "system_settings",
        sa.Column("id", UUID(as_uuid=False), primary_key=True),
        sa.Column("key", sa.String(50), nullable=False, unique=True),
        sa.Column("config", sa.JSON, nullable=False),
        *_timestamps(),
    )

    # 3. ad_campaigns (no FKs)
    op.create_table(
        "ad_campaigns",
        sa.Column("id", UUID(as_uuid=False), primary_key=True),
        sa.Column("date", sa.Date, nullable=False),
        sa.Column("course", sa.String(50), nullable=False),
        sa.Column("content_name", sa.Text, server_default="", nullable=False),
        sa.Column("content_main", sa.Text, server_default="", nullable=False),
        sa.Column("format", sa.String(30), server_default="Video", nullable=False),
        sa.Column("budget", sa.BigInteger, server_default="0", nullable=False),
        sa.Column("spent", sa.BigInteger, server_default="0", nullable=False),
        sa.Column("mess", sa.BigInteger, server_default="0", nullable=False),
        sa.Column("orders_mong", sa.BigInteger, server_default="0", nullable=False),
        sa.Column("orders_thanh", sa.BigInteger, server_default="0", nullable=False),
        sa.Column("price_per_course", sa.BigInteger, server_default="3500000", nullable=False),
        sa.Column("base_cost", sa.BigInteger, server_default="0", nullable=False),
        sa.Column("evaluation", sa.String(30), server_default="normal", nullable=False),
        sa.Column("action", sa.String(30), server_default="monitor", nullable=False),
        sa.Column("status", sa.String(20), server_default="new", nullable=False),
        sa.Column("link", sa.Text, server_default="", nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_ad_campaigns_date", "ad_campaigns", ["date"])
    op.create_index("ix_ad_campaigns_course", "ad_campaigns", ["course"])

    # 4. customers (no FKs)
    op.create_table(
        "customers",
        sa.Column("id", UUID(as_uuid=False), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("phone", sa.String(50), nullable=False),
        sa.Column("course", sa.String(50), nullable=False),
        sa.Column("full_price", sa.BigInteger, server_default="5000000", nullable=False),
        sa.Column("paid_amount", sa.BigInteger, server_default="0", nullable=False),
        sa.Column("debt_amount", sa.BigInteger, server_default="0", nullable=False),
        sa.Column("status", sa.String(20), server_default="NEW", nullable=False),
        sa.Column("note", sa.Text, server_default="", nullable=False),
        sa.Column("source_ad_id", UUID(as_uuid=False), nullable=True),
        sa.Column("source_ad_name", sa.Text, server_default="", nullable=False),
        sa.Column("sale_id", sa.String(255), nullable=False),
        sa.Column("sale_name", sa.String(100), server_default="", nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_customers_course", "customers", ["course"])
    op.create_index("ix_customers_status", "customers", ["status"])
    op.create_index("ix_customers_sale_id", "customers", ["sale_id"])

    # 5. finance_transactions (FK to customers)
    op.create_table(
        "finance_transactions",
        sa.Column("id", UUID(as_uuid=False), primary_key=True),
        sa.Column("reference", sa.String(50), nullable=False, unique=True),
        sa.Column("occurred_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("amount", sa.BigInteger, nullable=False),
        sa.Column("type", sa.String(10), nullable=False),
        sa.Column("note", sa.Text, server_default="", nullable=False),
        sa.Column(
            "customer_id",
            UUID(as_uuid=False),
            sa.ForeignKey("customers.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("customer_name", sa.String(200), server_default="", nullable=False),
        sa.Column("course", sa.String(50), server_default="", nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_finance_transactions_occurred_at", "finance_transactions", ["occurred_at"])
    op.create_index("ix_finance_transactions_customer_id", "finance_transactions", ["customer_id"])

    # 6. leads (no FKs)
    op.create_table(
        "leads",
        sa.Column("id", UUID(as_uuid=False), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("phone", sa.String(50), nullable=False),
        sa.Column("course", sa.String(50), server_default="Other", nullable=False),
        sa.Column("status", sa.String(20), server_default="NEW", nullable=False),
        sa.Column("sale_id", sa.String(255), nullable=True),
        sa.Column("sale_name", sa.String(100), nullable=True),
        sa.Column("source", sa.String(100), server_default="", nullable=False),
        sa.Column("note", sa.Text, server_default="", nullable=False),
        sa.Column("received_at", sa.DateTime(timezone=True), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_leads_sale_id", "leads", ["sale_id"])
    op.create_index("ix_leads_received_at", "leads", ["received_at"])

    # 7. expenses (no FKs)
    op.create_table(
        "expenses",
        sa.Column("id", UUID(as_uuid=False), primary_key=True),
        sa.Column("spent_on", sa.Date, nullable=False),
        sa.Column("category", sa.String(100), nullable=False),
        sa.Column("content", sa.Text, nullable=False),
        sa.Column("amount", sa.BigInteger, nullable=False),
        sa.Column("requested_by", sa.String(255), nullable=False),
        sa.Column("requester_name", sa.String(100), server_default="", nullable=False),
        sa.Column("note", sa.Text, server_default="", nullable=False),
        sa.Column("status", sa.String(20), server_default="PENDING", nullable=False),
        sa.Column("reviewed_by", sa.String(255), nullable=True),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("review_note", sa.Text, server_default="", nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_expenses_spent_on", "expenses", ["spent_on"])
    op.create_index("ix_expenses_requested_by", "expenses", ["requested_by"])

    # 8. payroll_entries (no FKs)
    op.create_table(
        "payroll_entries",
        sa.Column("id", UUID(as_uuid=False), primary_key=True),
        sa.Column("month", sa.String(7), nullable=False),
        sa.Column("staff_name", sa.String(100), nullable=False),
        sa.Column("staff_email", sa.String(255), nullable=True),
        sa.Column("role", sa.String(50), server_default="Sale", nullable=False),
        sa.Column("base_salary", sa.BigInteger, server_default="0", nullable=False),
        sa.Column("sales_amount", sa.BigInteger, server_default="0", nullable=False),
        sa.Column("orders", sa.Integer, server_default="0", nullable=False),
        sa.Column("commission_rate", sa.Float, server_default="0.03", nullable=False),
        sa.Column("note", sa.Text, server_default="", nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("month", "staff_email", name="uq_payroll_month_staff"),
    )
    op.create_index("ix_payroll_entries_month", "payroll_entries", ["month"])

    # 9. work_tasks (no FKs)
    op.create_table(
        "work_tasks",
        sa.Column("id", UUID(as_uuid=False), primary_key=True),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text, server_default="", nullable=False),
        sa.Column("assignee", sa.String(255), nullable=True),
        sa.Column("department", sa.String(50), nullable=False),
        sa.Column("deadline", sa.Date, nullable=True),
        sa.Column("duration", sa.String(50), server_default="", nullable=False),
        sa.Column("priority", sa.String(10), server_default="NORMAL", nullable=False),
        sa.Column("status", sa.String(10), server_default="TODO", nullable=False),
        sa.Column("checklist", sa.JSON, nullable=False),
        sa.Column("tags", sa.JSON, nullable=False),
        sa.Column("attachments", sa.JSON, nullable=False),
        sa.Column("creator", sa.String(255), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_work_tasks_assignee", "work_tasks", ["assignee"])
    op.create_index("ix_work_tasks_department", "work_tasks", ["department"])

    # 10. work_reports (no FKs)
    op.create_table(
        "work_reports",
        sa.Column("id", UUID(as_uuid=False), primary_key=True),
        sa.Column("user_email", sa.String(255), nullable=False),
        sa.Column("user_name", sa.String(100), server_default="", nullable=False),
        sa.Column("report_date", sa.Date, nullable=False),
        sa.Column("done_tasks", sa.JSON, nullable=False),
        sa.Column("plan_tasks", sa.JSON, nullable=False),
        sa.Column("issues", sa.Text, server_default="", nullable=False),
        sa.Column("actual_duration", sa.String(50), server_default="", nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("user_email", "report_date", name="uq_work_report_user_date"),
    )
    op.create_index("ix_work_reports_user_email", "work_reports", ["user_email"])
    op.create_index("ix_work_reports_report_date", "work_reports", ["report_date"])

    # 11. team_summaries (no FKs)
    op.create_table(
        "team_summaries",
        sa.Column("id", UUID(as_uuid=False), primary_key=True),
        sa.Column("report_date", sa.Date, nullable=False),
        sa.Column("team", sa.String(50), nullable=False),
        sa.Column("result", sa.Text, nullable=False),
        sa.Column("issues", sa.Text, server_default="", nullable=False),
        sa.Column("reporter", sa.String(100), server_default="", nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("report_date", "team", name="uq_team_summary_date_team"),
    )

    # 12. smart_goals (no FKs)
    op.create_table(
        "smart_goals",
        sa.Column("id", UUID(as_uuid=False), primary_key=True),
        sa.Column("month", sa.String(7), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("target", sa.BigInteger, nullable=False),
        sa.Column("current", sa.BigInteger, server_default="0", nullable=False),
        sa.Column("unit", sa.String(30), server_default="", nullable=False),
        sa.Column("deadline", sa.Date, nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_smart_goals_month", "smart_goals", ["month"])

    # 13. training_templates (no FKs)
    op.create_table(
        "training_templates",
        sa.Column("id", UUID(as_uuid=False), primary_key=True),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("sessions", sa.Integer, server_default="1", nullable=False),
        sa.Column("time", sa.String(5), server_default="20:00", nullable=False),
        sa.Column("trainer", sa.String(100), server_default="", nullable=False),
        sa.Column("location", sa.String(200), server_default="Zoom", nullable=False),
        sa.Column("preferred_days", sa.JSON, nullable=False),
        sa.Column("color", sa.String(20), server_default="blue", nullable=False),
        *_timestamps(),
    )

    # 14. training_events (FK to training_templates)
    op.create_table(
        "training_events",
        sa.Column("id", UUID(as_uuid=False), primary_key=True),
        sa.Column("title", sa.String(300), nullable=False),
        sa.Column("date", sa.Date, nullable=False),
        sa.Column("time", sa.String(5), server_default="20:00", nullable=False),
        sa.Column("trainer", sa.String(100), server_default="", nullable=False),
        sa.Column("location", sa.String(200), server_default="Zoom", nullable=False),
        sa.Column("color", sa.String(20), server_default="blue", nullable=False),
        sa.Column(
            "template_id",
            UUID(as_uuid=False),
            sa.ForeignKey("training_templates.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("batch_code", sa.String(50), server_default="", nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_training_events_date", "training_events", ["date"])

    # 15. resource_nodes (self-referencing FK)
    op.create_table(
        "resource_nodes",
        sa.Column("id", UUID(as_uuid=False), primary_key=True),
        sa.Column("root", sa.String(10), nullable=False),
        sa.Column(
            "parent_id",
            UUID(as_uuid=False),
            sa.ForeignKey("resource_nodes.id", ondelete="CASCADE"),
            nullable=True,
        ),
        sa.Column("kind", sa.String(10), nullable=False),
        sa.Column("name", sa.String(300), nullable=False),
        sa.Column("link", sa.Text, server_default="", nullable=False),
        sa.Column("download_link", sa.Text, server_default="", nullable=False),
        sa.Column("file_type", sa.String(20), server_default="", nullable=False),
        sa.Column("description", sa.Text, server_default="", nullable=False),
        sa.Column("content", sa.Text, server_default="", nullable=False),
        sa.Column("drive_id", sa.String(100), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_resource_nodes_root", "resource_nodes", ["root"])
    op.create_index("ix_resource_nodes_parent_id", "resource_nodes", ["parent_id"])

    # 16. backups (no FKs)
    op.create_table(
        "backups",
        sa.Column("id", UUID(as_uuid=False), primary_key=True),
        sa.Column("note", sa.Text, server_default="", nullable=False),
        sa.Column("counts", sa.JSON, nullable=False),
        sa.Column("payload", sa.JSON, nullable=False),
        *_timestamps(),
    )

    # 17. activity_logs (no FKs)
    op.create_table(
        "activity_logs",
        sa.Column("id", UUID(as_uuid=False), primary_key=True),
        sa.Column("actor", sa.String(255), nullable=False),
        sa.Column("action", sa.String(50), nullable=False),
        sa.Column("resource", sa.String(50), nullable=False),
        sa.Column("resource_id", sa.String(64), nullable=True),
        sa.Column("summary", sa.Text, server_default="", nullable=False),
        sa.Column("details", sa.JSON, nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_activity_logs_actor", "activity_logs", ["actor"])
    op.create_index("ix_activity_logs_action", "activity_logs", ["action"])


def downgrade() -> None:
    """Drop all business tables in reverse dependency order."""
    op.drop_table("activity_logs")
    op.drop_table("backups")
    op.drop_table("resource_nodes")
    op.drop_table("training_events")
    op.drop_table("training_templates")
    op.drop_table("smart_goals")
    op.drop_table("team_summaries")
    op.drop_table("work_reports")
    op.drop_table("work_tasks")
    op.drop_table("payroll_entries")
    op.drop_table("expenses")
    op.drop_table("leads")
    op.drop_table("finance_transactions")
    op.drop_table("customers")
    op.drop_table("system_settings")
    op.drop_table("users")
