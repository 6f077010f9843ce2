# backend/portal/services/compliance_overview.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Iterable, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from ..domain.enums import (
    ChecklistType,
    ConditionRecordKind,
    InspectionType,
    MoveOutFilter,
    ProgressStatus,
)
from ..domain.errors import parse_enum
from ..models import AppUser, ChecklistItem, ConditionChecklist, Tenancy, Unit

# -----------------------------------------------------------------------------
# Admin compliance overviews
# -----------------------------------------------------------------------------
# Read-only lists across every active tenancy. Statuses here are derived on
# the fly; legacy move-in tenancies read as WAIVED for move-in and are left
# out of the move-in stats.
# -----------------------------------------------------------------------------


def _today() -> date:
    return datetime.utcnow().date()


def _iso(dt: Optional[datetime]) -> Optional[str]:
    return dt.isoformat() if dt else None


def _is_past(when: Optional[datetime], today: date) -> bool:
    return when is not None and when.date() < today


def derive_progress_status(items: Iterable[Any]) -> ProgressStatus:
    rows = list(items)
    done = sum(1 for r in rows if r.is_completed)
    if not rows or done == 0:
        return ProgressStatus.NOT_STARTED
    if done == len(rows):
        return ProgressStatus.COMPLETED
    return ProgressStatus.IN_PROGRESS


def _last_updated(items: Iterable[Any]) -> Optional[datetime]:
    stamps = [r.updated_at for r in items if r.updated_at is not None]
    return max(stamps) if stamps else None


def _tenant_fields(t: Tenancy) -> dict:
    return {
        "tenancy_id": t.id,
        "tenant_id": t.tenant.id,
        "tenant_name": t.tenant.full_name,
        "tenant_email": t.tenant.email,
        "unit_id": t.unit.id,
        "unit_label": t.unit.label,
    }


def _active_tenancies(db: Session, *, with_move_out_only: bool = False, by_move_out: bool = False) -> list[Tenancy]:
    stmt = (
        select(Tenancy)
        .join(Unit, Unit.id == Tenancy.unit_id)
        .join(AppUser, AppUser.id == Tenancy.tenant_id)
        .where(Tenancy.is_active.is_(True))
        .options(
            selectinload(Tenancy.tenant),
            selectinload(Tenancy.unit),
            selectinload(Tenancy.checklist_items),
            selectinload(Tenancy.condition_checklists),
        )
        .execution_options(populate_existing=True)
    )
    if with_move_out_only:
        stmt = stmt.where(Tenancy.move_out_date.is_not(None))
    if by_move_out:
        stmt = stmt.order_by(Tenancy.move_out_date.asc(), Unit.label.asc(), Tenancy.id.asc())
    else:
        stmt = stmt.order_by(Unit.label.asc(), AppUser.full_name.asc(), Tenancy.id.asc())
    return list(db.scalars(stmt).all())


def _condition_record(t: Tenancy, *, kind: str, inspection_type: str) -> Optional[ConditionChecklist]:
    for r in t.condition_checklists:
        if r.kind == kind and r.inspection_type == inspection_type:
            return r
    return None


def _items_of(t: Tenancy, checklist_type: str) -> list[ChecklistItem]:
    return [i for i in t.checklist_items if i.checklist_type == checklist_type]


@dataclass
class OverviewResult:
    items: list[dict] = field(default_factory=list)
    stats: dict = field(default_factory=dict)

    def as_dict(self) -> dict:
        return {"items": self.items, "stats": self.stats}


# -----------------------------
# Move-in
# -----------------------------
def move_in_overview(db: Session) -> OverviewResult:
    out = OverviewResult(stats={"waived": 0, "not_started": 0, "in_progress": 0, "completed": 0})

    for t in _active_tenancies(db):
        items = _items_of(t, ChecklistType.MOVE_IN.value)
        completed = sum(1 for i in items if i.is_completed)

        status = ProgressStatus.WAIVED if t.is_legacy_move_in else derive_progress_status(items)
        out.stats[status.value.lower()] += 1

        out.items.append(
            {
                **_tenant_fields(t),
                "checklist_status": status.value,
                "is_legacy_move_in": t.is_legacy_move_in,
                "progress": {"completed": completed, "total": len(items)},
                "last_updated": _iso(_last_updated(items)),
            }
        )
    return out


# -----------------------------
# Move-out
# -----------------------------
def move_out_overview(db: Session, *, status_filter: str = MoveOutFilter.ALL.value) -> OverviewResult:
    """
    Tenancies with a move-out date, against their move-out checklist.

    Stats always cover every row; the filter only narrows `items`.
    """
    flt = parse_enum(MoveOutFilter, status_filter, field="status")
    today = _today()
    stats = {"scheduled": 0, "in_progress": 0, "completed": 0, "finalized": 0, "overdue": 0}
    rows: list[dict] = []

    for t in _active_tenancies(db, with_move_out_only=True, by_move_out=True):
        record = _condition_record(
            t, kind=ConditionRecordKind.MOVE_OUT_CHECKLIST.value, inspection_type=InspectionType.MOVE_OUT.value
        )
        status = record.status if record else ProgressStatus.NOT_STARTED.value
        finalized = bool(record and record.is_finalized)
        overdue = _is_past(t.move_out_date, today) and not finalized

        if not finalized:
            stats["scheduled"] += 1
        if status == ProgressStatus.IN_PROGRESS.value:
            stats["in_progress"] += 1
        if status == ProgressStatus.COMPLETED.value:
            stats["completed"] += 1
        if finalized:
            stats["finalized"] += 1
        if overdue:
            stats["overdue"] += 1

        rows.append(
            {
                **_tenant_fields(t),
                "checklist_id": record.id if record else None,
                "move_out_date": _iso(t.move_out_date),
                "checklist_status": status,
                "is_finalized": finalized,
                "is_overdue": overdue,
                "last_updated": _iso(record.updated_at) if record else None,
            }
        )

    if flt == MoveOutFilter.SCHEDULED:
        rows = [r for r in rows if not r["is_finalized"]]
    elif flt == MoveOutFilter.COMPLETED:
        rows = [r for r in rows if r["is_finalized"] or r["checklist_status"] == ProgressStatus.COMPLETED.value]

    return OverviewResult(items=rows, stats=stats)


# -----------------------------
# Inspections
# -----------------------------
def _count_status(stats: dict, status: str, *, finalized: bool) -> None:
    if status == ProgressStatus.IN_PROGRESS.value:
        stats["in_progress"] += 1
    elif status == ProgressStatus.COMPLETED.value:
        stats["completed"] += 1
    else:
        stats["not_started"] += 1
    if finalized:
        stats["finalized"] += 1


def inspections_overview(db: Session, *, inspection_type: Optional[str] = None) -> OverviewResult:
    """One MOVE_IN row per tenancy, plus a MOVE_OUT row once a move-out date is set."""
    wanted = (
        {InspectionType.MOVE_IN, InspectionType.MOVE_OUT}
        if inspection_type in (None, "all")
        else {parse_enum(InspectionType, inspection_type, field="type")}
    )
    today = _today()
    out = OverviewResult(stats={"not_started": 0, "in_progress": 0, "completed": 0, "finalized": 0, "overdue": 0})
    kind = ConditionRecordKind.INSPECTION.value

    for t in _active_tenancies(db):
        if InspectionType.MOVE_IN in wanted:
            rec = _condition_record(t, kind=kind, inspection_type=InspectionType.MOVE_IN.value)
            finalized = bool(rec and rec.is_finalized)
            if t.is_legacy_move_in:
                status = ProgressStatus.WAIVED.value
            else:
                status = rec.status if rec else ProgressStatus.NOT_STARTED.value
                _count_status(out.stats, status, finalized=finalized)

            out.items.append(
                {
                    **_tenant_fields(t),
                    "inspection_id": rec.id if rec else None,
                    "inspection_type": InspectionType.MOVE_IN.value,
                    "inspection_status": status,
                    "is_finalized": finalized,
                    "is_legacy_move_in": t.is_legacy_move_in,
                    "move_out_date": None,
                    "is_overdue": False,
                    "last_updated": _iso(rec.updated_at) if rec else None,
                }
            )

        if InspectionType.MOVE_OUT in wanted and t.move_out_date is not None:
            rec = _condition_record(t, kind=kind, inspection_type=InspectionType.MOVE_OUT.value)
            finalized = bool(rec and rec.is_finalized)
            status = rec.status if rec else ProgressStatus.NOT_STARTED.value
            overdue = _is_past(t.move_out_date, today) and not finalized

            _count_status(out.stats, status, finalized=finalized)
            if overdue:
                out.stats["overdue"] += 1

            out.items.append(
                {
                    **_tenant_fields(t),
                    "inspection_id": rec.id if rec else None,
                    "inspection_type": InspectionType.MOVE_OUT.value,
                    "inspection_status": status,
                    "is_finalized": finalized,
                    "is_legacy_move_in": t.is_legacy_move_in,
                    "move_out_date": _iso(t.move_out_date),
                    "is_overdue": overdue,
                    "last_updated": _iso(rec.updated_at) if rec else None,
                }
            )
    return out


# -----------------------------
# Boolean checklists
# -----------------------------
def checklists_overview(db: Session, *, checklist_type: Optional[str] = None) -> OverviewResult:
    wanted = (
        {ChecklistType.MOVE_IN, ChecklistType.MOVE_OUT}
        if checklist_type in (None, "all")
        else {parse_enum(ChecklistType, checklist_type, field="type")}
    )
    today = _today()
    move_in = {"not_started": 0, "in_progress": 0, "completed": 0}
    move_out = {"not_started": 0, "in_progress": 0, "completed": 0, "overdue": 0}
    rows: list[dict] = []

    for t in _active_tenancies(db):
        if ChecklistType.MOVE_IN in wanted:
            items = _items_of(t, ChecklistType.MOVE_IN.value)
            if t.is_legacy_move_in:
                status = ProgressStatus.WAIVED
            else:
                status = derive_progress_status(items)
                move_in[status.value.lower()] += 1
            rows.append(
                {
                    **_tenant_fields(t),
                    "checklist_type": ChecklistType.MOVE_IN.value,
                    "checklist_status": status.value,
                    "is_legacy_move_in": t.is_legacy_move_in,
                    "move_out_date": None,
                    "is_overdue": False,
                    "progress": {"completed": sum(1 for i in items if i.is_completed), "total": len(items)},
                    "last_updated": _iso(_last_updated(items)),
                }
            )

        if ChecklistType.MOVE_OUT in wanted and t.move_out_date is not None:
            items = _items_of(t, ChecklistType.MOVE_OUT.value)
            status = derive_progress_status(items)
            overdue = _is_past(t.move_out_date, today) and status != ProgressStatus.COMPLETED
            move_out[status.value.lower()] += 1
            if overdue:
                move_out["overdue"] += 1
            rows.append(
                {
                    **_tenant_fields(t),
                    "checklist_type": ChecklistType.MOVE_OUT.value,
                    "checklist_status": status.value,
                    "is_legacy_move_in": t.is_legacy_move_in,
                    "move_out_date": _iso(t.move_out_date),
                    "is_overdue": overdue,
                    "progress": {"completed": sum(1 for i in items if i.is_completed), "total": len(items)},
                    "last_updated": _iso(_last_updated(items)),
                }
            )

    return OverviewResult(items=rows, stats={"move_in": move_in, "move_out": move_out})
