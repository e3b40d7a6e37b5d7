"""initial tables

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-18 00:00:00

"""
from alembic import op
import sqlalchemy as sa

revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def _enum(*values: str) -> sa.Enum:
    return sa.Enum(*values, native_enum=False, length=max(len(v) for v in values))


def upgrade() -> None:
    op.create_table(
        "boxes",
        sa.Column("box_id", sa.String(128), primary_key=True),
        sa.Column("label", sa.String(255), nullable=True),
        sa.Column("address", sa.String(512), nullable=False),
        sa.Column("city", sa.String(128), nullable=True),
        sa.Column("state", sa.String(64), nullable=True),
        sa.Column("boxes", sa.Integer(), nullable=True),
        sa.Column("lat", sa.Float(), nullable=True),
        sa.Column("lon", sa.Float(), nullable=True),
        sa.Column("volunteer", sa.String(255), nullable=True),
        sa.Column("provisioned_by", sa.String(128), nullable=False),
        sa.Column("contact_name", sa.String(255), nullable=True),
        sa.Column("contact_email", sa.String(255), nullable=True),
        sa.Column("contact_phone", sa.String(64), nullable=True),
        sa.Column("status", _enum("active", "deleted"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_boxes_provisioned_by", "boxes", ["provisioned_by"])
    op.create_index("ix_boxes_status", "boxes", ["status"])

    op.create_table(
        "reports",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("box_id", sa.String(128), nullable=False),
        sa.Column(
            "report_type",
            _enum("box_registered", "pickup_alert", "pickup_details", "problem_alert", "problem_report"),
            nullable=False,
        ),
        sa.Column("status", _enum("new", "cleared"), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("reporter_id", sa.String(128), nullable=True),
        sa.Column("reporter_name", sa.String(255), nullable=True),
        sa.Column("reporter_email", sa.String(255), nullable=True),
        sa.Column("label", sa.String(255), nullable=True),
        sa.Column("address", sa.String(512), nullable=True),
        sa.Column("city", sa.String(128), nullable=True),
        sa.Column("state", sa.String(64), nullable=True),
        sa.Column("volunteer", sa.String(255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("cleared_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cleared_by", sa.String(128), nullable=True),
    )
    op.create_index("ix_reports_box_id", "reports", ["box_id"])
    op.create_index("ix_reports_report_type", "reports", ["report_type"])
    op.create_index("ix_reports_status", "reports", ["status"])
    op.create_index("ix_reports_created_at", "reports", ["created_at"])

    op.create_table(
        "authorized_volunteers",
        sa.Column("uid", sa.String(128), primary_key=True),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("display_name", sa.String(255), nullable=True),
        sa.Column("role", _enum("root", "volunteer"), nullable=False),
        sa.Column("deleted", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("authorized_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("modified_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_authorized_volunteers_email", "authorized_volunteers", ["email"])

    op.create_table(
        "shared_config",
        sa.Column("id", sa.String(32), primary_key=True),
        sa.Column("shared_passcode", sa.String(255), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "location_suggestions",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("label", sa.String(255), nullable=False),
        sa.Column("address", sa.String(512), nullable=False),
        sa.Column("city", sa.String(128), nullable=True),
        sa.Column("state", sa.String(64), nullable=True),
        sa.Column("contact_name", sa.String(255), nullable=True),
        sa.Column("contact_email", sa.String(255), nullable=True),
        sa.Column("contact_phone", sa.String(64), nullable=True),
        sa.Column("search_label", sa.String(255), nullable=False),
        sa.Column("search_address", sa.String(512), nullable=False),
        sa.Column("row_number", sa.Integer(), nullable=True),
        sa.Column("synced_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_location_suggestions_search_label", "location_suggestions", ["search_label"])
    op.create_index("ix_location_suggestions_search_address", "location_suggestions", ["search_address"])

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("action", sa.String(64), nullable=False),
        sa.Column("actor_id", sa.String(128), nullable=True),
        sa.Column("actor_email", sa.String(255), nullable=True),
        sa.Column("actor_name", sa.String(255), nullable=True),
        sa.Column("details", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_audit_logs_action", "audit_logs", ["action"])
    op.create_index("ix_audit_logs_actor_id", "audit_logs", ["actor_id"])
    op.create_index("ix_audit_logs_created_at", "audit_logs", ["created_at"])


def downgrade() -> None:
    op.drop_table("audit_logs")
    op.drop_table("location_suggestions")
    op.drop_table("shared_config")
    op.drop_table("authorized_volunteers")
    op.drop_table("reports")
    op.drop_table("boxes")
