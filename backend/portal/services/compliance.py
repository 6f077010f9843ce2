# backend/portal/services/compliance.py
from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..domain.compliance import (
    ChecklistCounts,
    ComplianceInputs,
    ComplianceSnapshot,
    InvoiceSnapshot,
    evaluate_compliance,
)
from ..domain.enums import ChecklistType, InvoiceStatus
from ..models import AppUser, ChecklistItem, Invoice, Tenancy, TenantDocument
from .ownership import get_active_tenancy_for_tenant, must_get_user


def _current_invoice(db: Session, *, unit_id: int) -> Optional[InvoiceSnapshot]:
    row = db.scalar(
        select(Invoice)
        .where(
            Invoice.unit_id == unit_id,
            Invoice.status.in_([InvoiceStatus.OPEN.value, InvoiceStatus.OVERDUE.value]),
        )
        .order_by(Invoice.due_date.asc(), Invoice.id.asc())
        .limit(1)
    )
    if row is None:
        return None
    return InvoiceSnapshot(period_month=row.period_month, status=row.status, due_date=row.due_date)


def _has_paid_invoice(db: Session, *, unit_id: int) -> bool:
    hit = db.scalar(
        select(Invoice.id).where(Invoice.unit_id == unit_id, Invoice.status == InvoiceStatus.PAID.value).limit(1)
    )
    return hit is not None


def _checklist_counts(db: Session, *, tenancy: Tenancy) -> ChecklistCounts:
    stmt = select(ChecklistItem).where(ChecklistItem.tenancy_id == tenancy.id)
    if tenancy.is_legacy_move_in:
        # legacy move-ins are exempt from move-in compliance entirely
        stmt = stmt.where(ChecklistItem.checklist_type != ChecklistType.MOVE_IN.value)
    return ChecklistCounts.from_items(db.scalars(stmt).all())


def load_compliance_inputs(db: Session, *, tenant: AppUser) -> ComplianceInputs:
    """
    Reads everything the aggregator needs in one session.

    A tenant without an active tenancy still gets a snapshot: rent is
    NO_INVOICE, there is no lease expiry and the checklist is empty.
    """
    documents_count = int(
        db.scalar(select(func.count(TenantDocument.id)).where(TenantDocument.tenant_id == tenant.id)) or 0
    )

    tenancy = get_active_tenancy_for_tenant(db, tenant_id=tenant.id)
    if tenancy is None:
        return ComplianceInputs(
            has_tenancy=False,
            phone=tenant.phone,
            insurance_status=tenant.insurance_status,
            insurance_expires_at=tenant.insurance_expires_at,
            documents_count=documents_count,
        )

    return ComplianceInputs(
        has_tenancy=True,
        phone=tenant.phone,
        insurance_status=tenant.insurance_status,
        insurance_expires_at=tenant.insurance_expires_at,
        lease_end_date=tenancy.end_date,
        current_invoice=_current_invoice(db, unit_id=tenancy.unit_id),
        has_paid_invoice=_has_paid_invoice(db, unit_id=tenancy.unit_id),
        documents_count=documents_count,
        checklist=_checklist_counts(db, tenancy=tenancy),
    )


def get_compliance_snapshot(db: Session, *, tenant_id: int, now: Optional[datetime] = None) -> ComplianceSnapshot:
    tenant = must_get_user(db, user_id=tenant_id)
    inputs = load_compliance_inputs(db, tenant=tenant)
    return evaluate_compliance(inputs, now=now or datetime.utcnow())
