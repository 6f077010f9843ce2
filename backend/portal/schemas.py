# backend/portal/schemas.py
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

from .domain.enums import ChecklistItemType, ChecklistType, Condition, InspectionType, RecordStatus


def _naive_utc(v: Optional[datetime]) -> Optional[datetime]:
    # everything is stored as naive UTC
    if v is not None and v.tzinfo is not None:
        return v.astimezone(timezone.utc).replace(tzinfo=None)
    return v


# -------------------- Checklists --------------------

class ChecklistInitIn(BaseModel):
    tenancy_id: int
    checklist_type: ChecklistType = ChecklistType.MOVE_IN


class CustomItemCreate(BaseModel):
    tenancy_id: int
    checklist_type: ChecklistType
    title: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None
    item_type: ChecklistItemType = ChecklistItemType.CUSTOM
    is_required: bool = True


class ReminderIn(BaseModel):
    tenancy_id: int


class ReminderOut(BaseModel):
    queued: bool
    items_remaining: int


class PhotoOut(BaseModel):
    id: int
    item_id: int
    filename: str
    mime_type: str
    size_bytes: int
    caption: Optional[str] = None
    url: str
    created_at: datetime


class ChecklistItemOut(BaseModel):
    id: int
    tenancy_id: int
    checklist_type: str
    item_type: str
    title: str
    description: Optional[str] = None
    is_required: bool
    sort_order: int
    is_completed: bool
    completed_at: Optional[datetime] = None
    completed_by_id: Optional[int] = None
    photos: List[PhotoOut] = Field(default_factory=list)

    # derived from the static tables, not stored
    is_default: bool = False
    self_completable: bool = False


class ProgressOut(BaseModel):
    total: int
    completed: int
    percentage: int


class ChecklistSetOut(BaseModel):
    id: int
    tenancy_id: int
    checklist_type: str
    status: str
    is_finalized: bool
    finalized_at: Optional[datetime] = None
    finalized_by_id: Optional[int] = None
    updated_at: datetime
    items: List[ChecklistItemOut] = Field(default_factory=list)
    progress: Optional[ProgressOut] = None


# -------------------- Condition-graded checklists --------------------

class ConditionInitIn(BaseModel):
    tenancy_id: int
    inspection_type: Optional[InspectionType] = None


class ConditionRecordUpdate(BaseModel):
    status: Optional[RecordStatus] = None
    notes: Optional[str] = None
    damage_notes: Optional[str] = None
    damage_found: Optional[bool] = None
    keys_returned: Optional[bool] = None


class ConditionItemUpdate(BaseModel):
    condition: Optional[Condition] = None
    notes: Optional[str] = None


class ConditionItemOut(BaseModel):
    id: int
    category: str
    category_label: str
    condition: Optional[str] = None
    notes: Optional[str] = None
    sort_order: int
    photos: List[PhotoOut] = Field(default_factory=list)


class ConditionChecklistOut(BaseModel):
    id: int
    tenancy_id: int
    kind: str
    inspection_type: str
    status: str
    notes: Optional[str] = None
    damage_notes: Optional[str] = None
    damage_found: bool
    keys_returned: bool
    is_finalized: bool
    finalized_at: Optional[datetime] = None
    finalized_by_id: Optional[int] = None
    created_at: datetime
    updated_at: datetime
    items: List[ConditionItemOut] = Field(default_factory=list)


class TenantMoveOutOut(BaseModel):
    move_out_date: Optional[datetime] = None
    checklist: Optional[ConditionChecklistOut] = None


class FinalizeOut(BaseModel):
    record: Any
    warnings: Optional[dict[str, bool]] = None


# -------------------- Insurance --------------------

class InsuranceSubmitIn(BaseModel):
    expires_at: datetime

    @field_validator("expires_at")
    @classmethod
    def _to_naive_utc(cls, v: datetime) -> datetime:
        return _naive_utc(v)


class InsuranceRejectIn(BaseModel):
    reason: Optional[str] = Field(default=None, max_length=1000)


class InsuranceOut(BaseModel):
    tenant_id: int
    stored_status: Optional[str] = None
    status: str
    expires_at: Optional[datetime] = None
    reviewed_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None


class InsuranceReminderOut(BaseModel):
    queued: bool
    insurance_status: str


# -------------------- Overviews --------------------

class OverviewOut(BaseModel):
    items: list[dict[str, Any]]
    stats: dict[str, Any]


InspectionTypeFilter = Literal["MOVE_IN", "MOVE_OUT", "all"]
