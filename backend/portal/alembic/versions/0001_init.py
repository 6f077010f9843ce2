"""init schema

Revision ID: 0001_init
Revises:
Create Date: 2026-10-16
"""
from alembic import op
import sqlalchemy as sa


revision = "0001_init"
down_revision = None
branch_labels = None
depends_on = None


def _lock_columns():
    return [
        sa.Column("status", sa.String(length=20), nullable=False, server_default="NOT_STARTED"),
        sa.Column("is_finalized", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("finalized_at", sa.DateTime(), nullable=True),
        sa.Column("finalized_by_id", sa.Integer(), sa.ForeignKey("app_users.id"), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
    ]


def upgrade():
    op.create_table(
        "app_users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("full_name", sa.String(length=160), nullable=True),
        sa.Column("role", sa.String(length=20), nullable=False, server_default="TENANT"),
        sa.Column("phone", sa.String(length=40), nullable=True),
        sa.Column("insurance_status", sa.String(length=20), nullable=True),
        sa.Column("insurance_expires_at", sa.DateTime(), nullable=True),
        sa.Column("insurance_reviewed_at", sa.DateTime(), nullable=True),
        sa.Column("insurance_reviewed_by_id", sa.Integer(), nullable=True),
        sa.Column("insurance_rejection_reason", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_app_users_email", "app_users", ["email"], unique=True)

    op.create_table(
        "units",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("label", sa.String(length=80), nullable=False),
        sa.Column("address", sa.String(length=255), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )

    op.create_table(
        "tenancies",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("tenant_id", sa.Integer(), sa.ForeignKey("app_users.id"), nullable=False),
        sa.Column("unit_id", sa.Integer(), sa.ForeignKey("units.id"), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("start_date", sa.DateTime(), nullable=False),
        sa.Column("end_date", sa.DateTime(), nullable=True),
        sa.Column("move_out_date", sa.DateTime(), nullable=True),
        sa.Column("is_legacy_move_in", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_tenancies_tenant_id", "tenancies", ["tenant_id"])
    op.create_index("ix_tenancies_unit_id", "tenancies", ["unit_id"])
    op.create_index("ix_tenancies_tenant_active", "tenancies", ["tenant_id", "is_active"])

    op.create_table(
        "invoices",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("unit_id", sa.Integer(), sa.ForeignKey("units.id"), nullable=False),
        sa.Column("period_month", sa.String(length=7), nullable=False),
        sa.Column("amount", sa.Float(), nullable=False, server_default="0"),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="OPEN"),
        sa.Column("due_date", sa.DateTime(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_invoices_unit_status_due", "invoices", ["unit_id", "status", "due_date"])

    op.create_table(
        "tenant_documents",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("tenant_id", sa.Integer(), sa.ForeignKey("app_users.id"), nullable=False),
        sa.Column("filename", sa.String(length=255), nullable=False),
        sa.Column("storage_key", sa.String(length=255), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_tenant_documents_tenant_id", "tenant_documents", ["tenant_id"])

    op.create_table(
        "checklist_sets",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("tenancy_id", sa.Integer(), sa.ForeignKey("tenancies.id", ondelete="CASCADE"), nullable=False),
        sa.Column("checklist_type", sa.String(length=20), nullable=False),
        *_lock_columns(),
        sa.UniqueConstraint("tenancy_id", "checklist_type", name="uq_checklist_set_tenancy_type"),
    )

    op.create_table(
        "checklist_items",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("tenancy_id", sa.Integer(), sa.ForeignKey("tenancies.id", ondelete="CASCADE"), nullable=False),
        sa.Column(
            "checklist_set_id", sa.Integer(), sa.ForeignKey("checklist_sets.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("checklist_type", sa.String(length=20), nullable=False),
        sa.Column("item_type", sa.String(length=40), nullable=False, server_default="CUSTOM"),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_required", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_completed", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        sa.Column("completed_by_id", sa.Integer(), sa.ForeignKey("app_users.id"), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_checklist_items_checklist_set_id", "checklist_items", ["checklist_set_id"])
    op.create_index("ix_checklist_items_tenancy_type", "checklist_items", ["tenancy_id", "checklist_type"])

    op.create_table(
        "condition_checklists",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("tenancy_id", sa.Integer(), sa.ForeignKey("tenancies.id", ondelete="CASCADE"), nullable=False),
        sa.Column("kind", sa.String(length=30), nullable=False),
        sa.Column("inspection_type", sa.String(length=20), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("damage_notes", sa.Text(), nullable=True),
        sa.Column("damage_found", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("keys_returned", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        *_lock_columns(),
        sa.UniqueConstraint("tenancy_id", "kind", "inspection_type", name="uq_condition_checklist_tenancy_kind_type"),
    )
    op.create_index("ix_condition_checklists_tenancy_id", "condition_checklists", ["tenancy_id"])

    op.create_table(
        "condition_items",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "checklist_id", sa.Integer(), sa.ForeignKey("condition_checklists.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("category", sa.String(length=40), nullable=False),
        sa.Column("condition", sa.String(length=20), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("checklist_id", "category", name="uq_condition_item_per_category"),
    )
    op.create_index("ix_condition_items_checklist_id", "condition_items", ["checklist_id"])

    op.create_table(
        "condition_photos",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("item_id", sa.Integer(), sa.ForeignKey("condition_items.id", ondelete="CASCADE"), nullable=False),
        sa.Column("storage_key", sa.String(length=255), nullable=False, unique=True),
        sa.Column("filename", sa.String(length=255), nullable=False),
        sa.Column("mime_type", sa.String(length=60), nullable=False),
        sa.Column("size_bytes", sa.Integer(), nullable=False),
        sa.Column("caption", sa.String(length=500), nullable=True),
        sa.Column("uploaded_by_id", sa.Integer(), sa.ForeignKey("app_users.id"), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_condition_photos_item_id", "condition_photos", ["item_id"])

    op.create_table(
        "audit_events",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("actor_user_id", sa.Integer(), sa.ForeignKey("app_users.id"), nullable=True),
        sa.Column("action", sa.String(length=80), nullable=False),
        sa.Column("entity_type", sa.String(length=80), nullable=False),
        sa.Column("entity_id", sa.String(length=80), nullable=False),
        sa.Column("before_json", sa.Text(), nullable=True),
        sa.Column("after_json", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )


def downgrade():
    op.drop_table("audit_events")
    op.drop_index("ix_condition_photos_item_id", table_name="condition_photos")
    op.drop_table("condition_photos")
    op.drop_index("ix_condition_items_checklist_id", table_name="condition_items")
    op.drop_table("condition_items")
    op.drop_index("ix_condition_checklists_tenancy_id", table_name="condition_checklists")
    op.drop_table("condition_checklists")
    op.drop_index("ix_checklist_items_tenancy_type", table_name="checklist_items")
    op.drop_index("ix_checklist_items_checklist_set_id", table_name="checklist_items")
    op.drop_table("checklist_items")
    op.drop_table("checklist_sets")
    op.drop_index("ix_tenant_documents_tenant_id", table_name="tenant_documents")
    op.drop_table("tenant_documents")
    op.drop_index("ix_invoices_unit_status_due", table_name="invoices")
    op.drop_table("invoices")
    op.drop_index("ix_tenancies_tenant_active", table_name="tenancies")
    op.drop_index("ix_tenancies_unit_id", table_name="tenancies")
    op.drop_index("ix_tenancies_tenant_id", table_name="tenancies")
    op.drop_table("tenancies")
    op.drop_table("units")
    op.drop_index("ix_app_users_email", table_name="app_users")
    op.drop_table("app_users")
