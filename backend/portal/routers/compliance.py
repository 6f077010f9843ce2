# backend/portal/routers/compliance.py
from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..auth import Principal, require_admin
from ..db import get_db
from ..domain.enums import MoveOutFilter
from ..schemas import InspectionTypeFilter, OverviewOut
from ..services import compliance_overview as overview
from ..services.compliance import get_compliance_snapshot

router = APIRouter(prefix="/admin/compliance", tags=["compliance"])


@router.get("/move-in", response_model=OverviewOut)
def move_in(db: Session = Depends(get_db), _p: Principal = Depends(require_admin)):
    return overview.move_in_overview(db).as_dict()


@router.get("/move-out", response_model=OverviewOut)
def move_out(
    status: MoveOutFilter = Query(default=MoveOutFilter.ALL),
    db: Session = Depends(get_db),
    _p: Principal = Depends(require_admin),
):
    return overview.move_out_overview(db, status_filter=status.value).as_dict()


@router.get("/inspections", response_model=OverviewOut)
def inspections(
    type: InspectionTypeFilter = Query(default="all"),
    db: Session = Depends(get_db),
    _p: Principal = Depends(require_admin),
):
    return overview.inspections_overview(db, inspection_type=type).as_dict()


@router.get("/checklists", response_model=OverviewOut)
def checklists(
    type: InspectionTypeFilter = Query(default="all"),
    db: Session = Depends(get_db),
    _p: Principal = Depends(require_admin),
):
    return overview.checklists_overview(db, checklist_type=type).as_dict()


@router.get("/tenants/{tenant_id}", response_model=dict)
def tenant_snapshot(tenant_id: int, db: Session = Depends(get_db), _p: Principal = Depends(require_admin)):
    return get_compliance_snapshot(db, tenant_id=tenant_id).as_dict()
