# backend/portal/routers/tenant.py
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..auth import Principal, require_tenant
from ..db import get_db
from ..schemas import (
    ChecklistItemOut,
    ChecklistSetOut,
    ConditionChecklistOut,
    InsuranceOut,
    InsuranceSubmitIn,
    TenantMoveOutOut,
)
from ..services import checklists as checklist_svc
from ..services import condition_checklists as condition_svc
from ..services import insurance as insurance_svc
from ..services.compliance import get_compliance_snapshot
from ..services.ownership import must_get_active_tenancy_for_tenant, must_get_user
from .checklists import item_out, set_out
from .condition_checklists import condition_checklist_out

router = APIRouter(prefix="/tenant", tags=["tenant"])


@router.get("/checklists", response_model=list[ChecklistSetOut])
def my_checklists(db: Session = Depends(get_db), p: Principal = Depends(require_tenant)):
    tenancy = must_get_active_tenancy_for_tenant(db, tenant_id=p.user_id)
    return [set_out(r) for r in checklist_svc.list_checklist_sets(db, tenancy_id=tenancy.id)]


@router.post("/checklist-items/{item_id}/complete", response_model=ChecklistItemOut)
def complete_my_item(item_id: int, db: Session = Depends(get_db), p: Principal = Depends(require_tenant)):
    item = checklist_svc.complete_item(db, item_id=item_id, actor_id=p.user_id, actor_role=p.role)
    return item_out(item)


@router.get("/compliance", response_model=dict)
def my_compliance(db: Session = Depends(get_db), p: Principal = Depends(require_tenant)):
    return get_compliance_snapshot(db, tenant_id=p.user_id).as_dict()


@router.get("/inspections", response_model=list[ConditionChecklistOut])
def my_inspections(db: Session = Depends(get_db), p: Principal = Depends(require_tenant)):
    return [condition_checklist_out(r) for r in condition_svc.list_tenant_inspections(db, tenant_id=p.user_id)]


@router.get("/move-out-checklist", response_model=TenantMoveOutOut)
def my_move_out_checklist(db: Session = Depends(get_db), p: Principal = Depends(require_tenant)):
    move_out_date, record = condition_svc.get_tenant_move_out_checklist(db, tenant_id=p.user_id)
    return TenantMoveOutOut(
        move_out_date=move_out_date,
        checklist=condition_checklist_out(record) if record is not None else None,
    )


@router.get("/insurance", response_model=InsuranceOut)
def my_insurance(db: Session = Depends(get_db), p: Principal = Depends(require_tenant)):
    return insurance_svc.insurance_view(must_get_user(db, user_id=p.user_id))


@router.post("/insurance", response_model=InsuranceOut)
def submit_my_insurance(payload: InsuranceSubmitIn, db: Session = Depends(get_db), p: Principal = Depends(require_tenant)):
    return insurance_svc.insurance_view(insurance_svc.submit_insurance(db, tenant_id=p.user_id, expires_at=payload.expires_at))
