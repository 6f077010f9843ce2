# backend/portal/cli/seed_demo.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from portal.db import Base, SessionLocal, engine
from portal.domain.enums import ChecklistType, ConditionRecordKind, InspectionType, InvoiceStatus, Role
from portal.models import AppUser, Invoice, Tenancy, Unit
from portal.services.checklists import initialize_checklist
from portal.services.condition_checklists import initialize_condition_checklist


@dataclass(frozen=True)
class SeedResult:
    admin_email: str
    tenant_email: str
    tenancy_id: int
    checklist_set_id: Optional[int]
    inspection_id: Optional[int]


def _get_or_create_user(db: Session, email: str, full_name: str, role: str) -> AppUser:
    row = db.scalar(select(AppUser).where(AppUser.email == email))
    if row:
        return row
    row = AppUser(email=email, full_name=full_name, role=role)
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def _get_or_create_unit(db: Session, label: str) -> Unit:
    row = db.scalar(select(Unit).where(Unit.label == label))
    if row:
        return row
    row = Unit(label=label, address="55 Logic Ave")
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def seed_demo(
    *,
    admin_email: str = "admin@demo.local",
    tenant_email: str = "tenant@demo.local",
    tenant_name: str = "Demo Tenant",
    unit_label: str = "1A",
    create_schema: bool = True,
) -> SeedResult:
    if create_schema:
        Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        admin = _get_or_create_user(db, admin_email, "Demo Admin", Role.ADMIN.value)
        tenant = _get_or_create_user(db, tenant_email, tenant_name, Role.TENANT.value)
        unit = _get_or_create_unit(db, unit_label)

        now = datetime.utcnow()
        tenancy = db.scalar(select(Tenancy).where(Tenancy.tenant_id == tenant.id, Tenancy.is_active.is_(True)))
        created = tenancy is None
        if created:
            tenancy = Tenancy(
                tenant_id=tenant.id,
                unit_id=unit.id,
                start_date=now - timedelta(days=30),
                end_date=now + timedelta(days=335),
            )
            db.add(tenancy)
            db.add(
                Invoice(
                    unit_id=unit.id,
                    period_month=now.strftime("%Y-%m"),
                    amount=1450.0,
                    status=InvoiceStatus.OPEN.value,
                    due_date=now + timedelta(days=10),
                )
            )
            db.commit()
            db.refresh(tenancy)

        set_id: Optional[int] = None
        inspection_id: Optional[int] = None
        if created:
            set_id = initialize_checklist(
                db, tenancy_id=tenancy.id, checklist_type=ChecklistType.MOVE_IN.value, actor_id=admin.id
            ).id
            inspection_id = initialize_condition_checklist(
                db,
                tenancy_id=tenancy.id,
                kind=ConditionRecordKind.INSPECTION.value,
                inspection_type=InspectionType.MOVE_IN.value,
                actor_id=admin.id,
            ).id

        return SeedResult(
            admin_email=admin.email,
            tenant_email=tenant.email,
            tenancy_id=int(tenancy.id),
            checklist_set_id=set_id,
            inspection_id=inspection_id,
        )
    finally:
        db.close()
