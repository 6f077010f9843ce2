"""photo evidence on checklist items

Revision ID: 0002_checklist_item_photos
Revises: 0001_init
Create Date: 2026-10-16
"""
from alembic import op
import sqlalchemy as sa


revision = "0002_checklist_item_photos"
down_revision = "0001_init"
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "checklist_item_photos",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("item_id", sa.Integer(), sa.ForeignKey("checklist_items.id", ondelete="CASCADE"), nullable=False),
        sa.Column("storage_key", sa.String(length=255), nullable=False, unique=True),
        sa.Column("filename", sa.String(length=255), nullable=False),
        sa.Column("mime_type", sa.String(length=60), nullable=False),
        sa.Column("size_bytes", sa.Integer(), nullable=False),
        sa.Column("caption", sa.String(length=500), nullable=True),
        sa.Column("uploaded_by_id", sa.Integer(), sa.ForeignKey("app_users.id"), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_checklist_item_photos_item_id", "checklist_item_photos", ["item_id"])


def downgrade():
    op.drop_index("ix_checklist_item_photos_item_id", table_name="checklist_item_photos")
    op.drop_table("checklist_item_photos")
