# backend/portal/routers/uploads.py
from __future__ import annotations

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from ..auth import Principal, get_principal
from ..db import get_db
from ..domain.errors import NotFoundError
from ..services.blob_store import LocalBlobStore, get_blob_store, media_type_for
from ..services.ownership import get_active_tenancy_for_tenant, photo_tenancy_id

router = APIRouter(prefix="/uploads", tags=["uploads"])


@router.get("/{storage_key}")
def read_upload(
    storage_key: str,
    db: Session = Depends(get_db),
    store: LocalBlobStore = Depends(get_blob_store),
    p: Principal = Depends(get_principal),
):
    """
    Serve a stored photo. Admins see everything; a tenant only sees photos on
    records of their own active tenancy. Anything else is a 404 so keys of
    other tenancies can't be confirmed.
    """
    owner = photo_tenancy_id(db, storage_key=storage_key)
    if owner is None:
        raise NotFoundError("file not found")

    if not p.is_admin:
        tenancy = get_active_tenancy_for_tenant(db, tenant_id=p.user_id)
        if tenancy is None or tenancy.id != owner:
            raise NotFoundError("file not found")

    data = store.read(storage_key)
    return Response(
        content=data,
        media_type=media_type_for(storage_key),
        headers={"Cache-Control": "private, max-age=3600"},
    )
