# backend/portal/routers/insurance.py
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..auth import Principal, require_admin
from ..db import get_db
from ..schemas import InsuranceOut, InsuranceRejectIn, InsuranceReminderOut
from ..services import insurance as svc

router = APIRouter(prefix="/admin/insurance", tags=["insurance"])


@router.get("/pending", response_model=list[InsuranceOut])
def pending(db: Session = Depends(get_db), _p: Principal = Depends(require_admin)):
    return [svc.insurance_view(u) for u in svc.list_pending_insurance(db)]


@router.post("/{tenant_id}/approve", response_model=InsuranceOut)
def approve(tenant_id: int, db: Session = Depends(get_db), p: Principal = Depends(require_admin)):
    return svc.insurance_view(svc.approve_insurance(db, tenant_id=tenant_id, actor_id=p.user_id))


@router.post("/{tenant_id}/reject", response_model=InsuranceOut)
def reject(
    tenant_id: int,
    payload: InsuranceRejectIn,
    db: Session = Depends(get_db),
    p: Principal = Depends(require_admin),
):
    return svc.insurance_view(svc.reject_insurance(db, tenant_id=tenant_id, actor_id=p.user_id, reason=payload.reason))


@router.post("/{tenant_id}/send-reminder", response_model=InsuranceReminderOut)
def send_reminder(tenant_id: int, db: Session = Depends(get_db), p: Principal = Depends(require_admin)):
    return svc.send_insurance_reminder(db, tenant_id=tenant_id, actor_id=p.user_id)
