# backend/portal/services/checklists.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..domain.audit import audit_write
from ..domain.checklist_templates import default_items_for, is_default_item_type, is_self_completable
from ..domain.enums import ChecklistItemType, ChecklistType, Role
from ..domain.errors import ErrorCode, NotFoundError, StateConflictError, parse_enum
from ..domain.finalization import ensure_unlocked
from ..domain.self_completion import enforce_self_completion
from ..models import ChecklistItem, ChecklistItemPhoto, ChecklistSet
from .blob_store import LocalBlobStore, PhotoUpload, clean_caption, new_storage_key, sanitize_filename, validate_photo_upload
from .finalization import finalize_record, guarded_commit, guarded_flush, reopen_record, touch_for_edit
from .notifications import dispatch_email, render_checklist_reminder
from .ownership import (
    must_get_active_tenancy,
    must_get_active_tenancy_for_tenant,
    must_get_checklist_item,
    must_get_checklist_item_photo,
    must_get_checklist_set,
    must_get_user,
)

log = logging.getLogger("portal.checklists")

ENTITY = "ChecklistSet"
LABEL = "Checklist"


def _utcnow() -> datetime:
    return datetime.utcnow()


@dataclass(frozen=True)
class ChecklistProgress:
    total: int
    completed: int

    @property
    def percentage(self) -> int:
        if self.total <= 0:
            return 0
        return round(self.completed / self.total * 100)

    def as_dict(self) -> dict:
        return {"total": self.total, "completed": self.completed, "percentage": self.percentage}


def checklist_progress(items: Iterable[ChecklistItem]) -> ChecklistProgress:
    rows = list(items)
    return ChecklistProgress(total=len(rows), completed=sum(1 for r in rows if r.is_completed))


def item_flags(item: ChecklistItem) -> dict:
    return {
        "is_default": is_default_item_type(item.item_type),
        "self_completable": is_self_completable(item.checklist_type, item.item_type),
    }


def _get_set(db: Session, *, tenancy_id: int, checklist_type: str) -> Optional[ChecklistSet]:
    return db.scalar(
        select(ChecklistSet).where(
            ChecklistSet.tenancy_id == tenancy_id,
            ChecklistSet.checklist_type == checklist_type,
        )
    )


# -----------------------------
# Sets
# -----------------------------
def initialize_checklist(
    db: Session,
    *,
    tenancy_id: int,
    checklist_type: str = ChecklistType.MOVE_IN.value,
    actor_id: Optional[int] = None,
) -> ChecklistSet:
    ctype = parse_enum(ChecklistType, checklist_type, field="checklist_type")
    tenancy = must_get_active_tenancy(db, tenancy_id=tenancy_id)

    if ctype == ChecklistType.MOVE_OUT and tenancy.move_out_date is None:
        raise StateConflictError(
            ErrorCode.NO_MOVE_OUT_DATE,
            "Set a move-out date on the tenancy before initializing the move-out checklist",
        )

    if _get_set(db, tenancy_id=tenancy.id, checklist_type=ctype.value) is not None:
        raise StateConflictError(ErrorCode.ALREADY_EXISTS, f"{ctype.value} checklist already exists for this tenancy")

    now = _utcnow()
    row = ChecklistSet(tenancy_id=tenancy.id, checklist_type=ctype.value, created_at=now, updated_at=now)
    for idx, d in enumerate(default_items_for(ctype.value), start=1):
        row.items.append(
            ChecklistItem(
                tenancy_id=tenancy.id,
                checklist_type=ctype.value,
                item_type=d.item_type.value,
                title=d.title,
                description=d.description,
                is_required=d.is_required,
                sort_order=idx,
            )
        )
    db.add(row)

    audit_write(
        db,
        actor_user_id=actor_id,
        action="checklist.initialize",
        entity_type=ENTITY,
        entity_id=f"tenancy:{tenancy.id}",
        after={"checklist_type": ctype.value, "items": len(row.items)},
    )
    try:
        db.commit()
    except IntegrityError as e:
        # a concurrent initialize won the unique constraint
        db.rollback()
        raise StateConflictError(
            ErrorCode.ALREADY_EXISTS, f"{ctype.value} checklist already exists for this tenancy"
        ) from e

    db.refresh(row)
    return row


def list_checklist_sets(db: Session, *, tenancy_id: int) -> list[ChecklistSet]:
    return list(
        db.scalars(
            select(ChecklistSet).where(ChecklistSet.tenancy_id == tenancy_id).order_by(ChecklistSet.checklist_type)
        ).all()
    )


def finalize_checklist(db: Session, *, set_id: int, actor_id: Optional[int]) -> ChecklistSet:
    row = must_get_checklist_set(db, set_id=set_id, for_update=True)
    finalize_record(db, row, actor_id=actor_id, entity_type=ENTITY, label=LABEL)
    return row


def reopen_checklist(db: Session, *, set_id: int, actor_id: Optional[int]) -> ChecklistSet:
    row = must_get_checklist_set(db, set_id=set_id, for_update=True)
    return reopen_record(db, row, actor_id=actor_id, entity_type=ENTITY, label=LABEL)


# -----------------------------
# Items
# -----------------------------
def add_custom_item(
    db: Session,
    *,
    tenancy_id: int,
    checklist_type: str,
    title: str,
    description: Optional[str] = None,
    item_type: str = ChecklistItemType.CUSTOM.value,
    is_required: bool = True,
    actor_id: Optional[int] = None,
) -> ChecklistItem:
    ctype = parse_enum(ChecklistType, checklist_type, field="checklist_type")
    itype = parse_enum(ChecklistItemType, item_type, field="item_type")
    tenancy = must_get_active_tenancy(db, tenancy_id=tenancy_id)

    parent = _get_set(db, tenancy_id=tenancy.id, checklist_type=ctype.value)
    if parent is None:
        raise NotFoundError(f"{ctype.value} checklist has not been initialized for this tenancy")
    touch_for_edit(parent, label=LABEL)

    max_order = db.scalar(
        select(func.max(ChecklistItem.sort_order)).where(ChecklistItem.checklist_set_id == parent.id)
    )
    row = ChecklistItem(
        tenancy_id=tenancy.id,
        checklist_set_id=parent.id,
        checklist_type=ctype.value,
        item_type=itype.value,
        title=title.strip(),
        description=(description or "").strip() or None,
        is_required=bool(is_required),
        sort_order=int(max_order or 0) + 1,
    )
    parent.items.append(row)
    guarded_flush(db)

    audit_write(
        db,
        actor_user_id=actor_id,
        action="checklist_item.create",
        entity_type="ChecklistItem",
        entity_id=row.id,
        after={"title": row.title, "item_type": row.item_type, "is_required": row.is_required},
    )
    guarded_commit(db)
    return row


def delete_item(
    db: Session,
    *,
    item_id: int,
    actor_id: Optional[int] = None,
    store: Optional[LocalBlobStore] = None,
) -> None:
    item = must_get_checklist_item(db, item_id=item_id)
    parent = must_get_checklist_set(db, set_id=item.checklist_set_id, for_update=True)
    touch_for_edit(parent, label=LABEL)

    audit_write(
        db,
        actor_user_id=actor_id,
        action="checklist_item.delete",
        entity_type="ChecklistItem",
        entity_id=item.id,
        before={"title": item.title, "item_type": item.item_type, "is_completed": item.is_completed},
    )
    keys = [p.storage_key for p in item.photos]
    parent.items.remove(item)
    guarded_commit(db)

    if store is not None:
        for key in keys:
            store.delete(key)


def complete_item(db: Session, *, item_id: int, actor_id: int, actor_role: str) -> ChecklistItem:
    """
    Mark an item complete.

    TENANT actors go through the self-completion gate against their own active
    tenancy; ADMIN actors don't. Completing an already-complete item returns it
    untouched (original completed_at/completed_by_id kept).
    """
    now = _utcnow()

    role = parse_enum(Role, actor_role, field="actor_role")
    if role == Role.TENANT:
        tenancy = must_get_active_tenancy_for_tenant(db, tenant_id=actor_id)
        item = must_get_checklist_item(db, item_id=item_id)
        tenant = must_get_user(db, user_id=actor_id)
        enforce_self_completion(tenant=tenant, tenancy=tenancy, item=item, now=now)
    else:
        item = must_get_checklist_item(db, item_id=item_id)

    parent = must_get_checklist_set(db, set_id=item.checklist_set_id, for_update=True)
    if item.is_completed:
        # idempotent, but a locked set still reads as locked
        ensure_unlocked(parent, label=LABEL)
        return item

    touch_for_edit(parent, label=LABEL, now=now)
    item.is_completed = True
    item.completed_at = now
    item.completed_by_id = actor_id

    audit_write(
        db,
        actor_user_id=actor_id,
        action="checklist_item.complete",
        entity_type="ChecklistItem",
        entity_id=item.id,
        after={"completed_at": now, "actor_role": role.value},
    )
    guarded_commit(db)
    return item


def uncomplete_item(db: Session, *, item_id: int, actor_id: Optional[int] = None) -> ChecklistItem:
    item = must_get_checklist_item(db, item_id=item_id)
    parent = must_get_checklist_set(db, set_id=item.checklist_set_id, for_update=True)
    touch_for_edit(parent, label=LABEL)

    before = {"completed_at": item.completed_at, "completed_by_id": item.completed_by_id}
    item.is_completed = False
    item.completed_at = None
    item.completed_by_id = None

    audit_write(
        db,
        actor_user_id=actor_id,
        action="checklist_item.incomplete",
        entity_type="ChecklistItem",
        entity_id=item.id,
        before=before,
    )
    guarded_commit(db)
    return item


# -----------------------------
# Item photos
# -----------------------------
def add_item_photo(
    db: Session,
    *,
    item_id: int,
    upload: PhotoUpload,
    store: LocalBlobStore,
    caption: Optional[str] = None,
    actor_id: Optional[int] = None,
) -> ChecklistItemPhoto:
    item = must_get_checklist_item(db, item_id=item_id)
    parent = must_get_checklist_set(db, set_id=item.checklist_set_id, for_update=True)
    ensure_unlocked(parent, label=LABEL)
    ext = validate_photo_upload(upload)
    touch_for_edit(parent, label=LABEL)

    key = new_storage_key(item.id, ext)
    store.save(key, upload.data)

    photo = ChecklistItemPhoto(
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
        store.delete(key)
        raise
    return photo


def delete_item_photo(
    db: Session,
    *,
    photo_id: int,
    store: LocalBlobStore,
    actor_id: Optional[int] = None,
) -> None:
    photo = must_get_checklist_item_photo(db, photo_id=photo_id)
    parent = must_get_checklist_set(db, set_id=photo.item.checklist_set_id, for_update=True)
    touch_for_edit(parent, label=LABEL, promote=False)

    key = photo.storage_key
    photo.item.photos.remove(photo)
    guarded_commit(db)

    if not store.delete(key):
        log.warning("photo blob already gone", extra={"checklist_set_id": parent.id, "user_id": actor_id})


# -----------------------------
# Reminders
# -----------------------------
def send_checklist_reminder(db: Session, *, tenancy_id: int, actor_id: Optional[int] = None) -> dict:
    tenancy = must_get_active_tenancy(db, tenancy_id=tenancy_id)
    remaining = db.scalar(
        select(func.count(ChecklistItem.id)).where(
            ChecklistItem.tenancy_id == tenancy.id,
            ChecklistItem.checklist_type == ChecklistType.MOVE_IN.value,
            ChecklistItem.is_completed.is_(False),
        )
    )
    remaining = int(remaining or 0)
    if remaining == 0:
        return {"queued": False, "items_remaining": 0}

    tenant = tenancy.tenant
    queued = dispatch_email(
        to=tenant.email,
        message=render_checklist_reminder(tenant_name=tenant.full_name, items_remaining=remaining),
        metadata={"tenancy_id": tenancy.id, "sent_by": actor_id},
    )
    log.info(
        "checklist reminder %s",
        "queued" if queued else "not queued",
        extra={"tenancy_id": tenancy.id, "user_id": actor_id},
    )
    return {"queued": queued, "items_remaining": remaining}
