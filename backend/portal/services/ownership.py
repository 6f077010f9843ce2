# backend/portal/services/ownership.py
from __future__ import annotations

from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..domain.errors import ErrorCode, NotFoundError
from ..models import (
    AppUser,
    ChecklistItem,
    ChecklistItemPhoto,
    ChecklistSet,
    ConditionChecklist,
    ConditionItem,
    ConditionPhoto,
    Tenancy,
)


def must_get_user(db: Session, *, user_id: int) -> AppUser:
    row = db.get(AppUser, user_id)
    if not row:
        raise NotFoundError("user not found")
    return row


def must_get_tenancy(db: Session, *, tenancy_id: int) -> Tenancy:
    row = db.get(Tenancy, tenancy_id)
    if not row:
        raise NotFoundError("tenancy not found")
    return row


def must_get_active_tenancy(db: Session, *, tenancy_id: int) -> Tenancy:
    row = db.scalar(select(Tenancy).where(Tenancy.id == tenancy_id, Tenancy.is_active.is_(True)))
    if not row:
        raise NotFoundError("active tenancy not found")
    return row


def get_active_tenancy_for_tenant(db: Session, *, tenant_id: int) -> Optional[Tenancy]:
    # one active tenancy per tenant in practice; take the newest if data disagrees
    return db.scalar(
        select(Tenancy)
        .where(Tenancy.tenant_id == tenant_id, Tenancy.is_active.is_(True))
        .order_by(Tenancy.start_date.desc(), Tenancy.id.desc())
        .limit(1)
    )


def must_get_active_tenancy_for_tenant(db: Session, *, tenant_id: int) -> Tenancy:
    row = get_active_tenancy_for_tenant(db, tenant_id=tenant_id)
    if not row:
        raise NotFoundError("no active tenancy found", code=ErrorCode.NO_TENANCY)
    return row


def must_get_checklist_set(db: Session, *, set_id: int, for_update: bool = False) -> ChecklistSet:
    stmt = select(ChecklistSet).where(ChecklistSet.id == set_id)
    if for_update:
        stmt = stmt.with_for_update()
    row = db.scalar(stmt)
    if not row:
        raise NotFoundError("checklist not found")
    return row


def must_get_checklist_item(db: Session, *, item_id: int) -> ChecklistItem:
    row = db.get(ChecklistItem, item_id)
    if not row:
        raise NotFoundError("checklist item not found")
    return row


def must_get_checklist_item_photo(db: Session, *, photo_id: int) -> ChecklistItemPhoto:
    row = db.get(ChecklistItemPhoto, photo_id)
    if not row:
        raise NotFoundError("photo not found")
    return row


def must_get_condition_checklist(
    db: Session,
    *,
    record_id: int,
    kind: Optional[str] = None,
    for_update: bool = False,
) -> ConditionChecklist:
    stmt = select(ConditionChecklist).where(ConditionChecklist.id == record_id)
    if kind is not None:
        stmt = stmt.where(ConditionChecklist.kind == kind)
    if for_update:
        stmt = stmt.with_for_update()
    row = db.scalar(stmt)
    if not row:
        raise NotFoundError(f"{_kind_label(kind)} not found")
    return row


def must_get_condition_item(db: Session, *, item_id: int, kind: Optional[str] = None) -> ConditionItem:
    stmt = select(ConditionItem).where(ConditionItem.id == item_id)
    if kind is not None:
        stmt = stmt.join(ConditionChecklist, ConditionChecklist.id == ConditionItem.checklist_id).where(
            ConditionChecklist.kind == kind
        )
    row = db.scalar(stmt)
    if not row:
        raise NotFoundError(f"{_kind_label(kind)} item not found")
    return row


def must_get_condition_photo(db: Session, *, photo_id: int, kind: Optional[str] = None) -> ConditionPhoto:
    stmt = select(ConditionPhoto).where(ConditionPhoto.id == photo_id)
    if kind is not None:
        stmt = (
            stmt.join(ConditionItem, ConditionItem.id == ConditionPhoto.item_id)
            .join(ConditionChecklist, ConditionChecklist.id == ConditionItem.checklist_id)
            .where(ConditionChecklist.kind == kind)
        )
    row = db.scalar(stmt)
    if not row:
        raise NotFoundError("photo not found")
    return row


def photo_tenancy_id(db: Session, *, storage_key: str) -> Optional[int]:
    """Tenancy a stored photo belongs to, whichever record type holds it; None if no row references the key."""
    tid = db.scalar(
        select(ConditionChecklist.tenancy_id)
        .join(ConditionItem, ConditionItem.checklist_id == ConditionChecklist.id)
        .join(ConditionPhoto, ConditionPhoto.item_id == ConditionItem.id)
        .where(ConditionPhoto.storage_key == storage_key)
    )
    if tid is not None:
        return tid
    return db.scalar(
        select(ChecklistItem.tenancy_id)
        .join(ChecklistItemPhoto, ChecklistItemPhoto.item_id == ChecklistItem.id)
        .where(ChecklistItemPhoto.storage_key == storage_key)
    )


def _kind_label(kind: Optional[str]) -> str:
    if kind == "MOVE_OUT_CHECKLIST":
        return "move-out checklist"
    if kind == "INSPECTION":
        return "inspection"
    return "checklist"
