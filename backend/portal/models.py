# backend/portal/models.py
from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Index,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .db import Base


# -----------------------------
# People / places
# -----------------------------
class AppUser(Base):
    __tablename__ = "app_users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    full_name: Mapped[Optional[str]] = mapped_column(String(160), nullable=True)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default="TENANT")  # ADMIN|TENANT
    phone: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)

    # stored insurance record; the effective status is derived (see domain/insurance.py)
    insurance_status: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    insurance_expires_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    insurance_reviewed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    insurance_reviewed_by_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    insurance_rejection_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

    tenancies: Mapped[List["Tenancy"]] = relationship(back_populates="tenant")


class Unit(Base):
    __tablename__ = "units"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    label: Mapped[str] = mapped_column(String(80), nullable=False)
    address: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

    tenancies: Mapped[List["Tenancy"]] = relationship(back_populates="unit")


class Tenancy(Base):
    __tablename__ = "tenancies"
    __table_args__ = (Index("ix_tenancies_tenant_active", "tenant_id", "is_active"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    tenant_id: Mapped[int] = mapped_column(ForeignKey("app_users.id"), nullable=False, index=True)
    unit_id: Mapped[int] = mapped_column(ForeignKey("units.id"), nullable=False, index=True)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    start_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    end_date: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)  # null = month-to-month
    move_out_date: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    is_legacy_move_in: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    tenant: Mapped["AppUser"] = relationship(back_populates="tenancies")
    unit: Mapped["Unit"] = relationship(back_populates="tenancies")
    checklist_sets: Mapped[List["ChecklistSet"]] = relationship(
        back_populates="tenancy", cascade="all, delete-orphan"
    )
    checklist_items: Mapped[List["ChecklistItem"]] = relationship(order_by="ChecklistItem.sort_order", viewonly=True)
    condition_checklists: Mapped[List["ConditionChecklist"]] = relationship(
        back_populates="tenancy", cascade="all, delete-orphan"
    )


class Invoice(Base):
    __tablename__ = "invoices"
    __table_args__ = (Index("ix_invoices_unit_status_due", "unit_id", "status", "due_date"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    unit_id: Mapped[int] = mapped_column(ForeignKey("units.id"), nullable=False)
    period_month: Mapped[str] = mapped_column(String(7), nullable=False)  # YYYY-MM
    amount: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="OPEN")
    due_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)


class TenantDocument(Base):
    __tablename__ = "tenant_documents"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    tenant_id: Mapped[int] = mapped_column(ForeignKey("app_users.id"), nullable=False, index=True)
    filename: Mapped[str] = mapped_column(String(255), nullable=False)
    storage_key: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)


# -----------------------------
# Lockable records
# -----------------------------
class LockableMixin:
    """
    Status axis + finalize lock shared by ChecklistSet and ConditionChecklist.

    `version` is the optimistic-concurrency counter: each concrete class maps it
    as `version_id_col`, so every UPDATE of the row is a compare-and-swap.
    """

    status: Mapped[str] = mapped_column(String(20), nullable=False, default="NOT_STARTED")
    is_finalized: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    finalized_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    finalized_by_id: Mapped[Optional[int]] = mapped_column(ForeignKey("app_users.id"), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)


class ChecklistSet(LockableMixin, Base):
    __tablename__ = "checklist_sets"
    __table_args__ = (UniqueConstraint("tenancy_id", "checklist_type", name="uq_checklist_set_tenancy_type"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    tenancy_id: Mapped[int] = mapped_column(ForeignKey("tenancies.id", ondelete="CASCADE"), nullable=False)
    checklist_type: Mapped[str] = mapped_column(String(20), nullable=False)  # MOVE_IN|MOVE_OUT
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    tenancy: Mapped["Tenancy"] = relationship(back_populates="checklist_sets")
    items: Mapped[List["ChecklistItem"]] = relationship(
        back_populates="checklist_set",
        cascade="all, delete-orphan",
        order_by="ChecklistItem.sort_order",
    )


class ChecklistItem(Base):
    __tablename__ = "checklist_items"
    __table_args__ = (Index("ix_checklist_items_tenancy_type", "tenancy_id", "checklist_type"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    tenancy_id: Mapped[int] = mapped_column(ForeignKey("tenancies.id", ondelete="CASCADE"), nullable=False)
    checklist_set_id: Mapped[int] = mapped_column(
        ForeignKey("checklist_sets.id", ondelete="CASCADE"), nullable=False, index=True
    )
    checklist_type: Mapped[str] = mapped_column(String(20), nullable=False)
    item_type: Mapped[str] = mapped_column(String(40), nullable=False, default="CUSTOM")

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_required: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    is_completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    completed_by_id: Mapped[Optional[int]] = mapped_column(ForeignKey("app_users.id"), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    tenancy: Mapped["Tenancy"] = relationship()
    checklist_set: Mapped["ChecklistSet"] = relationship(back_populates="items")
    photos: Mapped[List["ChecklistItemPhoto"]] = relationship(
        back_populates="item",
        cascade="all, delete-orphan",
        order_by="ChecklistItemPhoto.id",
    )


class ChecklistItemPhoto(Base):
    """Evidence for a boolean checklist item (signed lease scan, key handover)."""

    __tablename__ = "checklist_item_photos"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    item_id: Mapped[int] = mapped_column(ForeignKey("checklist_items.id", ondelete="CASCADE"), nullable=False, index=True)

    storage_key: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    filename: Mapped[str] = mapped_column(String(255), nullable=False)
    mime_type: Mapped[str] = mapped_column(String(60), nullable=False)
    size_bytes: Mapped[int] = mapped_column(Integer, nullable=False)
    caption: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    uploaded_by_id: Mapped[Optional[int]] = mapped_column(ForeignKey("app_users.id"), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

    item: Mapped["ChecklistItem"] = relationship(back_populates="photos")


class ConditionChecklist(LockableMixin, Base):
    """
    Condition-graded record: a move-in/move-out inspection, or the move-out
    checklist. `kind` tells the two flows apart; everything else is shared.
    """

    __tablename__ = "condition_checklists"
    __table_args__ = (
        UniqueConstraint("tenancy_id", "kind", "inspection_type", name="uq_condition_checklist_tenancy_kind_type"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    tenancy_id: Mapped[int] = mapped_column(ForeignKey("tenancies.id", ondelete="CASCADE"), nullable=False, index=True)
    kind: Mapped[str] = mapped_column(String(30), nullable=False)  # INSPECTION|MOVE_OUT_CHECKLIST
    inspection_type: Mapped[str] = mapped_column(String(20), nullable=False)  # MOVE_IN|MOVE_OUT

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    damage_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    damage_found: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    keys_returned: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    tenancy: Mapped["Tenancy"] = relationship(back_populates="condition_checklists")
    items: Mapped[List["ConditionItem"]] = relationship(
        back_populates="checklist",
        cascade="all, delete-orphan",
        order_by="ConditionItem.sort_order",
    )


class ConditionItem(Base):
    __tablename__ = "condition_items"
    __table_args__ = (UniqueConstraint("checklist_id", "category", name="uq_condition_item_per_category"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    checklist_id: Mapped[int] = mapped_column(
        ForeignKey("condition_checklists.id", ondelete="CASCADE"), nullable=False, index=True
    )
    category: Mapped[str] = mapped_column(String(40), nullable=False)
    condition: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    checklist: Mapped["ConditionChecklist"] = relationship(back_populates="items")
    photos: Mapped[List["ConditionPhoto"]] = relationship(
        back_populates="item",
        cascade="all, delete-orphan",
        order_by="ConditionPhoto.id",
    )


class ConditionPhoto(Base):
    __tablename__ = "condition_photos"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    item_id: Mapped[int] = mapped_column(ForeignKey("condition_items.id", ondelete="CASCADE"), nullable=False, index=True)

    storage_key: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    filename: Mapped[str] = mapped_column(String(255), nullable=False)
    mime_type: Mapped[str] = mapped_column(String(60), nullable=False)
    size_bytes: Mapped[int] = mapped_column(Integer, nullable=False)
    caption: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    uploaded_by_id: Mapped[Optional[int]] = mapped_column(ForeignKey("app_users.id"), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

    item: Mapped["ConditionItem"] = relationship(back_populates="photos")


# -----------------------------
# Audit trail
# -----------------------------
class AuditEvent(Base):
    __tablename__ = "audit_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    actor_user_id: Mapped[Optional[int]] = mapped_column(ForeignKey("app_users.id"), nullable=True)

    action: Mapped[str] = mapped_column(String(80), nullable=False)
    entity_type: Mapped[str] = mapped_column(String(80), nullable=False)
    entity_id: Mapped[str] = mapped_column(String(80), nullable=False)

    before_json: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    after_json: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
