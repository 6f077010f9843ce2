# backend/portal/services/condition_checklists.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from ..domain.audit import audit_write
from ..domain.checklist_templates import DEFAULT_CATEGORIES
from ..domain.enums import Condition, ConditionRecordKind, InspectionType, RecordStatus
from ..domain.errors import ErrorCode, InputValidationError, StateConflictError, parse_enum
from ..domain.finalization import FinalizeWarnings, check_manual_status, ensure_unlocked
from ..models import ConditionChecklist, ConditionItem, ConditionPhoto, Tenancy
from .blob_store import LocalBlobStore, PhotoUpload, clean_caption, new_storage_key, sanitize_filename, validate_photo_upload
from .finalization import finalize_record, guarded_commit, reopen_record, touch_for_edit
from .notifications import dispatch_email, render_condition_report_finalized
from .ownership import (
    get_active_tenancy_for_tenant,
    must_get_condition_checklist,
    must_get_condition_item,
    must_get_condition_photo,
    must_get_tenancy,
)

# -----------------------------------------------------------------------------
# Condition-graded checklists
# -----------------------------------------------------------------------------
# One implementation behind both the move-in/move-out inspections and the
# move-out checklist. Callers pass `kind`; lookups are scoped to it so one
# flow's routes can never reach the other flow's records.
# -----------------------------------------------------------------------------

log = logging.getLogger("portal.condition_checklists")

ENTITY_TYPES = {
    ConditionRecordKind.INSPECTION.value: "Inspection",
    ConditionRecordKind.MOVE_OUT_CHECKLIST.value: "MoveOutChecklist",
}
LABELS = {
    ConditionRecordKind.INSPECTION.value: "Inspection",
    ConditionRecordKind.MOVE_OUT_CHECKLIST.value: "Move-out checklist",
}
REPORT_LABELS = {
    ConditionRecordKind.INSPECTION.value: "Inspection",
    ConditionRecordKind.MOVE_OUT_CHECKLIST.value: "Checklist",
}

RECORD_FIELDS = ("status", "notes", "damage_notes", "damage_found", "keys_returned")
ITEM_FIELDS = ("condition", "notes")


def _utcnow() -> datetime:
    return datetime.utcnow()


def _resolve_type(kind: ConditionRecordKind, inspection_type: Optional[str]) -> InspectionType:
    if kind == ConditionRecordKind.MOVE_OUT_CHECKLIST:
        if inspection_type and parse_enum(InspectionType, inspection_type, field="inspection_type") != InspectionType.MOVE_OUT:
            raise InputValidationError("Move-out checklists are always MOVE_OUT")
        return InspectionType.MOVE_OUT
    return parse_enum(InspectionType, inspection_type or InspectionType.MOVE_IN.value, field="inspection_type")


def _load_for_update(db: Session, *, record_id: int, kind: Optional[str]) -> ConditionChecklist:
    return must_get_condition_checklist(db, record_id=record_id, kind=kind, for_update=True)


# -----------------------------
# Create / read
# -----------------------------
def initialize_condition_checklist(
    db: Session,
    *,
    tenancy_id: int,
    kind: str,
    inspection_type: Optional[str] = None,
    actor_id: Optional[int] = None,
) -> ConditionChecklist:
    k = parse_enum(ConditionRecordKind, kind, field="kind")
    itype = _resolve_type(k, inspection_type)
    tenancy = must_get_tenancy(db, tenancy_id=tenancy_id)

    existing = db.scalar(
        select(ConditionChecklist.id).where(
            ConditionChecklist.tenancy_id == tenancy.id,
            ConditionChecklist.kind == k.value,
            ConditionChecklist.inspection_type == itype.value,
        )
    )
    if existing is not None:
        raise StateConflictError(
            ErrorCode.ALREADY_EXISTS,
            f"{LABELS[k.value]} already exists for this tenancy ({itype.value})",
            details={"id": existing},
        )

    now = _utcnow()
    row = ConditionChecklist(
        tenancy_id=tenancy.id,
        kind=k.value,
        inspection_type=itype.value,
        status=RecordStatus.NOT_STARTED.value,
        created_at=now,
        updated_at=now,
    )
    for idx, cat in enumerate(DEFAULT_CATEGORIES, start=1):
        row.items.append(ConditionItem(category=cat.category.value, sort_order=idx))
    db.add(row)

    audit_write(
        db,
        actor_user_id=actor_id,
        action=f"{ENTITY_TYPES[k.value]}.initialize",
        entity_type=ENTITY_TYPES[k.value],
        entity_id=f"tenancy:{tenancy.id}",
        after={"inspection_type": itype.value, "items": len(row.items)},
    )
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise StateConflictError(
            ErrorCode.ALREADY_EXISTS,
            f"{LABELS[k.value]} already exists for this tenancy ({itype.value})",
        ) from e

    db.refresh(row)
    return row


def get_condition_checklist(db: Session, *, record_id: int, kind: Optional[str] = None) -> ConditionChecklist:
    return must_get_condition_checklist(db, record_id=record_id, kind=kind)


def list_condition_checklists(
    db: Session,
    *,
    tenancy_id: int,
    kind: Optional[str] = None,
) -> list[ConditionChecklist]:
    stmt = (
        select(ConditionChecklist)
        .where(ConditionChecklist.tenancy_id == tenancy_id)
        .options(selectinload(ConditionChecklist.items).selectinload(ConditionItem.photos))
        .order_by(ConditionChecklist.inspection_type, ConditionChecklist.id)
    )
    if kind is not None:
        stmt = stmt.where(ConditionChecklist.kind == kind)
    return list(db.scalars(stmt).all())


def list_tenant_inspections(db: Session, *, tenant_id: int) -> list[ConditionChecklist]:
    """Read-only tenant view: inspections on the tenant's active tenancy."""
    tenancy: Optional[Tenancy] = get_active_tenancy_for_tenant(db, tenant_id=tenant_id)
    if tenancy is None:
        return []
    return list_condition_checklists(db, tenancy_id=tenancy.id, kind=ConditionRecordKind.INSPECTION.value)


def get_tenant_move_out_checklist(
    db: Session,
    *,
    tenant_id: int,
) -> tuple[Optional[datetime], Optional[ConditionChecklist]]:
    """
    Tenant view of the move-out checklist: (move_out_date, record).

    Both are None until a move-out date is set on the active tenancy; the
    record stays None until an admin creates it.
    """
    tenancy = get_active_tenancy_for_tenant(db, tenant_id=tenant_id)
    if tenancy is None or tenancy.move_out_date is None:
        return None, None

    rows = list_condition_checklists(db, tenancy_id=tenancy.id, kind=ConditionRecordKind.MOVE_OUT_CHECKLIST.value)
    return tenancy.move_out_date, (rows[0] if rows else None)


# -----------------------------
# Record / item edits
# -----------------------------
def update_condition_record(
    db: Session,
    *,
    record_id: int,
    changes: dict[str, Any],
    kind: Optional[str] = None,
) -> ConditionChecklist:
    unknown = set(changes) - set(RECORD_FIELDS)
    if unknown:
        raise InputValidationError(f"Unknown field(s): {', '.join(sorted(unknown))}")

    status = None
    if changes.get("status") is not None:
        status = parse_enum(RecordStatus, changes["status"], field="status")

    record = _load_for_update(db, record_id=record_id, kind=kind)
    label = LABELS.get(record.kind, "Checklist")
    ensure_unlocked(record, label=label)
    if status is not None:
        check_manual_status(record, status)

    # any accepted edit leaves the record IN_PROGRESS, which is as far as a manual status can go
    touch_for_edit(record, label=label)

    for f in ("notes", "damage_notes"):
        if f in changes:
            setattr(record, f, (changes[f] or "").strip() or None)
    for f in ("damage_found", "keys_returned"):
        if changes.get(f) is not None:
            setattr(record, f, bool(changes[f]))

    guarded_commit(db)
    return record


def update_condition_item(
    db: Session,
    *,
    item_id: int,
    changes: dict[str, Any],
    kind: Optional[str] = None,
) -> ConditionItem:
    """
    Set condition and/or notes on one item. An explicit None clears the field.
    """
    unknown = set(changes) - set(ITEM_FIELDS)
    if unknown:
        raise InputValidationError(f"Unknown field(s): {', '.join(sorted(unknown))}")

    condition = None
    if changes.get("condition") is not None:
        condition = parse_enum(Condition, changes["condition"], field="condition")

    item = must_get_condition_item(db, item_id=item_id, kind=kind)
    record = _load_for_update(db, record_id=item.checklist_id, kind=kind)
    touch_for_edit(record, label=LABELS.get(record.kind, "Checklist"))

    if "condition" in changes:
        item.condition = condition.value if condition is not None else None
    if "notes" in changes:
        item.notes = (changes["notes"] or "").strip() or None
    item.updated_at = _utcnow()

    guarded_commit(db)
    return item


# -----------------------------
# Photos
# -----------------------------
def add_photo(
    db: Session,
    *,
    item_id: int,
    upload: PhotoUpload,
    store: LocalBlobStore,
    caption: Optional[str] = None,
    kind: Optional[str] = None,
    actor_id: Optional[int] = None,
) -> ConditionPhoto:
    item = must_get_condition_item(db, item_id=item_id, kind=kind)
    record = _load_for_update(db, record_id=item.checklist_id, kind=kind)
    label = LABELS.get(record.kind, "Checklist")
    ensure_unlocked(record, label=label)
    ext = validate_photo_upload(upload)
    touch_for_edit(record, label=label)

    key = new_storage_key(item.id, ext)
    store.save(key, upload.data)

    photo = ConditionPhoto(
        storage_key=key,
        filename=sanitize_filename(upload.filename),
        mime_type=upload.content_type,
        size_bytes=upload.size,
        caption=clean_caption(caption),
        uploaded_by_id=actor_id,
        created_at=_utcnow(),
    )
    item.photos.append(photo)
    try:
        guarded_commit(db)
    except Exception:
        # the row never landed; don't leave an orphaned blob behind
        store.delete(key)
        raise
    return photo


def delete_photo(
    db: Session,
    *,
    photo_id: int,
    store: LocalBlobStore,
    kind: Optional[str] = None,
    actor_id: Optional[int] = None,
) -> None:
    photo = must_get_condition_photo(db, photo_id=photo_id, kind=kind)
    record = _load_for_update(db, record_id=photo.item.checklist_id, kind=kind)
    touch_for_edit(record, label=LABELS.get(record.kind, "Checklist"), promote=False)

    key = photo.storage_key
    photo.item.photos.remove(photo)
    guarded_commit(db)

    if not store.delete(key):
        log.warning("photo blob already gone", extra={"record_id": record.id, "user_id": actor_id})


# -----------------------------
# Lock transitions
# -----------------------------
def finalize_condition_checklist(
    db: Session,
    *,
    record_id: int,
    actor_id: Optional[int],
    kind: Optional[str] = None,
) -> tuple[ConditionChecklist, Optional[FinalizeWarnings]]:
    record = _load_for_update(db, record_id=record_id, kind=kind)
    items = list(record.items)

    warnings = finalize_record(
        db,
        record,
        actor_id=actor_id,
        entity_type=ENTITY_TYPES[record.kind],
        label=LABELS[record.kind],
        graded_items=items,
    )

    tenant = record.tenancy.tenant
    dispatch_email(
        to=tenant.email,
        message=render_condition_report_finalized(
            tenant_name=tenant.full_name,
            record_label=REPORT_LABELS[record.kind],
            inspection_type=record.inspection_type,
        ),
        metadata={"record_id": record.id, "tenancy_id": record.tenancy_id},
    )
    return record, warnings


def reopen_condition_checklist(
    db: Session,
    *,
    record_id: int,
    actor_id: Optional[int],
    kind: Optional[str] = None,
) -> ConditionChecklist:
    record = _load_for_update(db, record_id=record_id, kind=kind)
    return reopen_record(
        db,
        record,
        actor_id=actor_id,
        entity_type=ENTITY_TYPES[record.kind],
        label=LABELS[record.kind],
    )
