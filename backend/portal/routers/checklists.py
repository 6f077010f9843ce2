# backend/portal/routers/checklists.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.orm import Session

from ..auth import Principal, require_admin
from ..db import get_db
from ..models import ChecklistItem, ChecklistSet
from ..schemas import (
    ChecklistInitIn,
    ChecklistItemOut,
    ChecklistSetOut,
    CustomItemCreate,
    PhotoOut,
    ProgressOut,
    ReminderIn,
    ReminderOut,
)
from ..services import checklists as svc
from ..services.blob_store import LocalBlobStore, get_blob_store
from .condition_checklists import photo_out, read_photo_upload

router = APIRouter(prefix="/admin/checklists", tags=["checklists"])


def item_out(item: ChecklistItem) -> ChecklistItemOut:
    return ChecklistItemOut(
        id=item.id,
        tenancy_id=item.tenancy_id,
        checklist_type=item.checklist_type,
        item_type=item.item_type,
        title=item.title,
        description=item.description,
        is_required=item.is_required,
        sort_order=item.sort_order,
        is_completed=item.is_completed,
        completed_at=item.completed_at,
        completed_by_id=item.completed_by_id,
        photos=[photo_out(p) for p in item.photos],
        **svc.item_flags(item),
    )


def set_out(row: ChecklistSet) -> ChecklistSetOut:
    return ChecklistSetOut(
        id=row.id,
        tenancy_id=row.tenancy_id,
        checklist_type=row.checklist_type,
        status=row.status,
        is_finalized=row.is_finalized,
        finalized_at=row.finalized_at,
        finalized_by_id=row.finalized_by_id,
        updated_at=row.updated_at,
        items=[item_out(i) for i in row.items],
        progress=ProgressOut(**svc.checklist_progress(row.items).as_dict()),
    )


# -----------------------------
# Sets
# -----------------------------
@router.post("", response_model=ChecklistSetOut)
def initialize(payload: ChecklistInitIn, db: Session = Depends(get_db), p: Principal = Depends(require_admin)):
    row = svc.initialize_checklist(
        db, tenancy_id=payload.tenancy_id, checklist_type=payload.checklist_type.value, actor_id=p.user_id
    )
    return set_out(row)


@router.get("/tenancy/{tenancy_id}", response_model=list[ChecklistSetOut])
def list_for_tenancy(tenancy_id: int, db: Session = Depends(get_db), _p: Principal = Depends(require_admin)):
    return [set_out(r) for r in svc.list_checklist_sets(db, tenancy_id=tenancy_id)]


@router.post("/{set_id}/finalize", response_model=ChecklistSetOut)
def finalize(set_id: int, db: Session = Depends(get_db), p: Principal = Depends(require_admin)):
    return set_out(svc.finalize_checklist(db, set_id=set_id, actor_id=p.user_id))


@router.post("/{set_id}/reopen", response_model=ChecklistSetOut)
def reopen(set_id: int, db: Session = Depends(get_db), p: Principal = Depends(require_admin)):
    return set_out(svc.reopen_checklist(db, set_id=set_id, actor_id=p.user_id))


# -----------------------------
# Items
# -----------------------------
@router.post("/items", response_model=ChecklistItemOut)
def add_item(payload: CustomItemCreate, db: Session = Depends(get_db), p: Principal = Depends(require_admin)):
    row = svc.add_custom_item(
        db,
        tenancy_id=payload.tenancy_id,
        checklist_type=payload.checklist_type.value,
        title=payload.title,
        description=payload.description,
        item_type=payload.item_type.value,
        is_required=payload.is_required,
        actor_id=p.user_id,
    )
    return item_out(row)


@router.delete("/items/{item_id}", response_model=dict)
def delete_item(
    item_id: int,
    db: Session = Depends(get_db),
    store: LocalBlobStore = Depends(get_blob_store),
    p: Principal = Depends(require_admin),
):
    svc.delete_item(db, item_id=item_id, actor_id=p.user_id, store=store)
    return {"ok": True}


@router.post("/items/{item_id}/complete", response_model=ChecklistItemOut)
def complete_item(item_id: int, db: Session = Depends(get_db), p: Principal = Depends(require_admin)):
    return item_out(svc.complete_item(db, item_id=item_id, actor_id=p.user_id, actor_role=p.role))


@router.post("/items/{item_id}/uncomplete", response_model=ChecklistItemOut)
def uncomplete_item(item_id: int, db: Session = Depends(get_db), p: Principal = Depends(require_admin)):
    return item_out(svc.uncomplete_item(db, item_id=item_id, actor_id=p.user_id))


@router.post("/items/{item_id}/photos", response_model=PhotoOut)
def upload_item_photo(
    item_id: int,
    file: UploadFile = File(...),
    caption: Optional[str] = Form(default=None),
    db: Session = Depends(get_db),
    store: LocalBlobStore = Depends(get_blob_store),
    p: Principal = Depends(require_admin),
):
    photo = svc.add_item_photo(
        db,
        item_id=item_id,
        upload=read_photo_upload(file),
        store=store,
        caption=caption,
        actor_id=p.user_id,
    )
    return photo_out(photo)


@router.delete("/photos/{photo_id}", response_model=dict)
def remove_item_photo(
    photo_id: int,
    db: Session = Depends(get_db),
    store: LocalBlobStore = Depends(get_blob_store),
    p: Principal = Depends(require_admin),
):
    svc.delete_item_photo(db, photo_id=photo_id, store=store, actor_id=p.user_id)
    return {"ok": True}


# -----------------------------
# Reminders
# -----------------------------
@router.post("/reminders", response_model=ReminderOut)
def send_reminder(payload: ReminderIn, db: Session = Depends(get_db), p: Principal = Depends(require_admin)):
    return svc.send_checklist_reminder(db, tenancy_id=payload.tenancy_id, actor_id=p.user_id)
