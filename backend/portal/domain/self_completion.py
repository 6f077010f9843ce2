# backend/portal/domain/self_completion.py
from __future__ import annotations

from datetime import datetime
from typing import Any

from .checklist_templates import is_self_completable
from .enums import ChecklistItemType
from .errors import AuthorizationError, ErrorCode, NotFoundError, PreconditionError
from .insurance import effective_insurance_status, is_valid_for_acknowledgement


def can_complete(tenancy: Any, item: Any) -> bool:
    """True if a tenant on `tenancy` may mark `item` complete (allow-list only)."""
    if item.tenancy_id != tenancy.id:
        return False
    return is_self_completable(item.checklist_type, item.item_type)


def enforce_self_completion(*, tenant: Any, tenancy: Any, item: Any, now: datetime) -> None:
    """
    Raise the specific reason a tenant can't complete `item`:

      NOT_FOUND            item isn't on the tenant's active tenancy
      NOT_ALLOWED          item type isn't on the allow-list for its checklist type
      INSURANCE_NOT_VALID  insurance acknowledgement while insurance is missing/rejected/expired
    """
    if item.tenancy_id != tenancy.id:
        raise NotFoundError("checklist item not found")

    if not can_complete(tenancy, item):
        raise AuthorizationError(
            ErrorCode.NOT_ALLOWED,
            "This item can only be completed by property management",
        )

    if item.item_type == ChecklistItemType.INSURANCE_UPLOADED.value:
        status = effective_insurance_status(tenant.insurance_status, tenant.insurance_expires_at, now=now)
        if not is_valid_for_acknowledgement(status):
            raise PreconditionError(
                ErrorCode.INSURANCE_NOT_VALID,
                "Please upload valid renter's insurance before completing this item",
                details={"insurance_status": status.value},
            )
