"""lifecycle core schema: projects, bids, contracts, notices

Revision ID: 0001_lifecycle_core
Revises:
Create Date: 2026-10-17
"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


revision = "0001_lifecycle_core"
down_revision = None
branch_labels = None
depends_on = None


JSONType = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def _ts(name: str, nullable: bool = True) -> sa.Column:
    return sa.Column(name, sa.DateTime(timezone=True), nullable=nullable)


def upgrade():
    # projects
    op.create_table(
        "projects",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("customer_id", sa.Uuid(), nullable=False),
        sa.Column("title", sa.String(length=200), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("category", sa.String(length=64), nullable=True),
        sa.Column("requirements", sa.Text(), nullable=True),
        sa.Column("location_json", JSONType, nullable=False),
        sa.Column("contact_json", JSONType, nullable=False),
        _ts("timeline_start"),
        _ts("timeline_end"),
        sa.Column("status", sa.String(length=32), nullable=False, server_default=sa.text("'drafted'")),
        sa.Column("admin_status", sa.String(length=32), nullable=False, server_default=sa.text("'pending'")),
        sa.Column("admin_rejection_reason", sa.Text(), nullable=True),
        sa.Column("starting_bid", sa.Numeric(14, 2), nullable=True),
        _ts("bid_end_date"),
        sa.Column("bid_active", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("current_round", sa.String(length=8), nullable=True),
        sa.Column("round1_status", sa.String(length=16), nullable=False, server_default=sa.text("'pending'")),
        _ts("round1_start"),
        _ts("round1_end"),
        sa.Column("round1_selected_bids", JSONType, nullable=False),
        sa.Column("round1_completed", sa.Boolean(), nullable=False, server_default=sa.false()),
        _ts("selection_deadline"),
        sa.Column("round2_status", sa.String(length=16), nullable=False, server_default=sa.text("'pending'")),
        _ts("round2_start"),
        _ts("round2_end"),
        sa.Column("round2_selected_bids", JSONType, nullable=False),
        sa.Column("round2_completed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("round3_status", sa.String(length=16), nullable=False, server_default=sa.text("'pending'")),
        sa.Column("round3_winning_bid_id", sa.Uuid(), nullable=True),
        _ts("round3_completed_at"),
        sa.Column("selected_bid_id", sa.Uuid(), nullable=True),
        sa.Column("bidding_completed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("contract_approved", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("completion_certificate_json", JSONType, nullable=True),
        sa.Column("is_archived", sa.Boolean(), nullable=False, server_default=sa.false()),
        _ts("created_at", nullable=False),
        _ts("updated_at", nullable=False),
        _ts("submitted_at"),
        _ts("activated_at"),
        _ts("winner_selected_at"),
        _ts("failed_at"),
        _ts("completed_at"),
        _ts("cancelled_at"),
        _ts("archived_at"),
    )
    op.create_index("ix_projects_customer_id", "projects", ["customer_id"])
    op.create_index("ix_projects_status_round", "projects", ["status", "current_round"])
    op.create_index("ix_projects_archive_scan", "projects", ["status", "is_archived", "updated_at"])

    # bids
    op.create_table(
        "bids",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("project_id", sa.Uuid(), sa.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False),
        sa.Column("seller_id", sa.Uuid(), nullable=False),
        sa.Column("customer_id", sa.Uuid(), nullable=False),
        sa.Column("amount", sa.Numeric(14, 2), nullable=False),
        sa.Column("proposal", sa.Text(), nullable=True),
        sa.Column("round", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("selection_status", sa.String(length=32), nullable=False, server_default=sa.text("'submitted'")),
        sa.Column("status", sa.String(length=32), nullable=False, server_default=sa.text("'submitted'")),
        sa.Column("is_active_in_round", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("certificate_json", JSONType, nullable=True),
        _ts("created_at", nullable=False),
        _ts("updated_at", nullable=False),
        _ts("won_at"),
        _ts("lost_at"),
        _ts("completed_at"),
        _ts("cancelled_at"),
        sa.CheckConstraint("round IN (1, 2)", name="ck_bids_round_valid"),
        sa.CheckConstraint("amount >= 0", name="ck_bids_amount_nonnegative"),
    )
    op.create_index(
        "uq_bids_project_seller_live",
        "bids",
        ["project_id", "seller_id"],
        unique=True,
        postgresql_where=sa.text("status <> 'cancelled'"),
        sqlite_where=sa.text("status <> 'cancelled'"),
    )
    op.create_index("ix_bids_project_round_selection", "bids", ["project_id", "round", "selection_status"])
    op.create_index("ix_bids_project_status_amount", "bids", ["project_id", "status", "amount"])

    # contracts
    op.create_table(
        "contracts",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("bid_id", sa.Uuid(), sa.ForeignKey("bids.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("project_id", sa.Uuid(), sa.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False),
        sa.Column("customer_id", sa.Uuid(), nullable=False),
        sa.Column("seller_id", sa.Uuid(), nullable=False),
        sa.Column("contract_value", sa.Numeric(14, 2), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False, server_default=sa.text("'pending-customer'")),
        sa.Column("customer_template_json", JSONType, nullable=True),
        sa.Column("seller_template_json", JSONType, nullable=True),
        sa.Column("customer_signed_json", JSONType, nullable=True),
        sa.Column("seller_signed_json", JSONType, nullable=True),
        sa.Column("customer_certificate_json", JSONType, nullable=True),
        sa.Column("seller_certificate_json", JSONType, nullable=True),
        sa.Column("final_certificate_json", JSONType, nullable=True),
        sa.Column("terms_json", JSONType, nullable=False),
        sa.Column("current_rejection_json", JSONType, nullable=True),
        sa.Column("rejection_history_json", JSONType, nullable=False),
        sa.Column("admin_approved", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("approved_by", sa.String(length=128), nullable=True),
        _ts("approved_at"),
        sa.Column("admin_notes", sa.Text(), nullable=True),
        _ts("created_at", nullable=False),
        _ts("updated_at", nullable=False),
        _ts("rejected_at"),
        _ts("cancelled_at"),
        sa.UniqueConstraint("bid_id", name="uq_contracts_bid"),
    )
    op.create_index("ix_contracts_status", "contracts", ["status"])
    op.create_index("ix_contracts_project", "contracts", ["project_id"])

    # notices
    op.create_table(
        "notices",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("title", sa.String(length=256), nullable=False),
        sa.Column("body", sa.Text(), nullable=False),
        sa.Column("audience", sa.String(length=16), nullable=False),
        sa.Column("severity", sa.String(length=16), nullable=False, server_default=sa.text("'info'")),
        sa.Column("target_user_id", sa.Uuid(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        _ts("start_date", nullable=False),
        _ts("end_date"),
        _ts("created_at", nullable=False),
    )
    op.create_index("ix_notices_audience_active", "notices", ["audience", "is_active"])
    op.create_index("ix_notices_target_user", "notices", ["target_user_id"])


def downgrade():
    op.drop_index("ix_notices_target_user", table_name="notices")
    op.drop_index("ix_notices_audience_active", table_name="notices")
    op.drop_table("notices")

    op.drop_index("ix_contracts_project", table_name="contracts")
    op.drop_index("ix_contracts_status", table_name="contracts")
    op.drop_table("contracts")

    op.drop_index("ix_bids_project_status_amount", table_name="bids")
    op.drop_index("ix_bids_project_round_selection", table_name="bids")
    op.drop_index("uq_bids_project_seller_live", table_name="bids")
    op.drop_table("bids")

    op.drop_index("ix_projects_archive_scan", table_name="projects")
    op.drop_index("ix_projects_status_round", table_name="projects")
    op.drop_index("ix_projects_customer_id", table_name="projects")
    op.drop_table("projects")
