# backend/portal/routers/condition_checklists.py
from __future__ import annotations

from typing import Optional, Union

from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.orm import Session

from ..auth import Principal, require_admin
from ..db import get_db
from ..domain.checklist_templates import category_label
from ..domain.enums import ConditionRecordKind
from ..models import ChecklistItemPhoto, ConditionChecklist, ConditionItem, ConditionPhoto
from ..schemas import (
    ConditionChecklistOut,
    ConditionInitIn,
    ConditionItemOut,
    ConditionItemUpdate,
    ConditionRecordUpdate,
    FinalizeOut,
    PhotoOut,
)
from ..services import condition_checklists as svc
from ..services.blob_store import LocalBlobStore, PhotoUpload, get_blob_store, photo_url, read_capped


def read_photo_upload(file: UploadFile) -> PhotoUpload:
    return PhotoUpload(
        filename=file.filename or "photo",
        content_type=file.content_type or "",
        data=read_capped(file.file),
    )


def photo_out(photo: Union[ConditionPhoto, ChecklistItemPhoto]) -> PhotoOut:
    return PhotoOut(
        id=photo.id,
        item_id=photo.item_id,
        filename=photo.filename,
        mime_type=photo.mime_type,
        size_bytes=photo.size_bytes,
        caption=photo.caption,
        url=photo_url(photo.storage_key),
        created_at=photo.created_at,
    )


def condition_item_out(item: ConditionItem) -> ConditionItemOut:
    return ConditionItemOut(
        id=item.id,
        category=item.category,
        category_label=category_label(item.category),
        condition=item.condition,
        notes=item.notes,
        sort_order=item.sort_order,
        photos=[photo_out(p) for p in item.photos],
    )


def condition_checklist_out(row: ConditionChecklist) -> ConditionChecklistOut:
    return ConditionChecklistOut(
        id=row.id,
        tenancy_id=row.tenancy_id,
        kind=row.kind,
        inspection_type=row.inspection_type,
        status=row.status,
        notes=row.notes,
        damage_notes=row.damage_notes,
        damage_found=row.damage_found,
        keys_returned=row.keys_returned,
        is_finalized=row.is_finalized,
        finalized_at=row.finalized_at,
        finalized_by_id=row.finalized_by_id,
        created_at=row.created_at,
        updated_at=row.updated_at,
        items=[condition_item_out(i) for i in row.items],
    )


def build_condition_router(kind: ConditionRecordKind, *, prefix: str, tag: str) -> APIRouter:
    """
    Admin routes for one flow of condition-graded records. Every lookup is
    scoped to `kind`, so /inspections ids never resolve move-out checklists
    and vice versa.
    """
    router = APIRouter(prefix=prefix, tags=[tag])
    k = kind.value

    @router.post("", response_model=ConditionChecklistOut)
    def initialize(payload: ConditionInitIn, db: Session = Depends(get_db), p: Principal = Depends(require_admin)):
        row = svc.initialize_condition_checklist(
            db,
            tenancy_id=payload.tenancy_id,
            kind=k,
            inspection_type=payload.inspection_type.value if payload.inspection_type else None,
            actor_id=p.user_id,
        )
        return condition_checklist_out(row)

    @router.get("/tenancy/{tenancy_id}", response_model=list[ConditionChecklistOut])
    def list_for_tenancy(tenancy_id: int, db: Session = Depends(get_db), _p: Principal = Depends(require_admin)):
        return [condition_checklist_out(r) for r in svc.list_condition_checklists(db, tenancy_id=tenancy_id, kind=k)]

    @router.get("/{record_id}", response_model=ConditionChecklistOut)
    def get_one(record_id: int, db: Session = Depends(get_db), _p: Principal = Depends(require_admin)):
        return condition_checklist_out(svc.get_condition_checklist(db, record_id=record_id, kind=k))

    @router.patch("/{record_id}", response_model=ConditionChecklistOut)
    def update_record(
        record_id: int,
        payload: ConditionRecordUpdate,
        db: Session = Depends(get_db),
        _p: Principal = Depends(require_admin),
    ):
        changes = payload.model_dump(mode="json", exclude_unset=True)
        row = svc.update_condition_record(db, record_id=record_id, changes=changes, kind=k)
        return condition_checklist_out(row)

    @router.patch("/items/{item_id}", response_model=ConditionItemOut)
    def update_item(
        item_id: int,
        payload: ConditionItemUpdate,
        db: Session = Depends(get_db),
        _p: Principal = Depends(require_admin),
    ):
        changes = payload.model_dump(mode="json", exclude_unset=True)
        return condition_item_out(svc.update_condition_item(db, item_id=item_id, changes=changes, kind=k))

    @router.post("/items/{item_id}/photos", response_model=PhotoOut)
    def upload_photo(
        item_id: int,
        file: UploadFile = File(...),
        caption: Optional[str] = Form(default=None),
        db: Session = Depends(get_db),
        store: LocalBlobStore = Depends(get_blob_store),
        p: Principal = Depends(require_admin),
    ):
        photo = svc.add_photo(
            db,
            item_id=item_id,
            upload=read_photo_upload(file),
            store=store,
            caption=caption,
            kind=k,
            actor_id=p.user_id,
        )
        return photo_out(photo)

    @router.delete("/photos/{photo_id}", response_model=dict)
    def remove_photo(
        photo_id: int,
        db: Session = Depends(get_db),
        store: LocalBlobStore = Depends(get_blob_store),
        p: Principal = Depends(require_admin),
    ):
        svc.delete_photo(db, photo_id=photo_id, store=store, kind=k, actor_id=p.user_id)
        return {"ok": True}

    @router.post("/{record_id}/finalize", response_model=FinalizeOut)
    def finalize(record_id: int, db: Session = Depends(get_db), p: Principal = Depends(require_admin)):
        row, warnings = svc.finalize_condition_checklist(db, record_id=record_id, actor_id=p.user_id, kind=k)
        return FinalizeOut(
            record=condition_checklist_out(row).model_dump(mode="json"),
            warnings=warnings.as_dict() if warnings else None,
        )

    @router.post("/{record_id}/reopen", response_model=ConditionChecklistOut)
    def reopen(record_id: int, db: Session = Depends(get_db), p: Principal = Depends(require_admin)):
        return condition_checklist_out(svc.reopen_condition_checklist(db, record_id=record_id, actor_id=p.user_id, kind=k))

    return router


inspections_router = build_condition_router(ConditionRecordKind.INSPECTION, prefix="/admin/inspections", tag="inspections")
move_out_checklists_router = build_condition_router(
    ConditionRecordKind.MOVE_OUT_CHECKLIST, prefix="/admin/move-out-checklists", tag="move-out-checklists"
)
