# backend/portal/domain/insurance.py
from __future__ import annotations

from datetime import datetime
from typing import Optional

from .enums import InsuranceStatus

# statuses that block the tenant from acknowledging the insurance checklist item
INVALID_FOR_ACKNOWLEDGEMENT = frozenset(
    {InsuranceStatus.MISSING, InsuranceStatus.REJECTED, InsuranceStatus.EXPIRED}
)


def effective_insurance_status(
    stored_status: Optional[str],
    expires_at: Optional[datetime],
    *,
    now: datetime,
) -> InsuranceStatus:
    """
    Stored status with the expiry override applied.

    An APPROVED record whose expiry is strictly before `now` is EXPIRED no
    matter what was stored. Missing or unrecognised values read as MISSING.
    """
    if not stored_status:
        return InsuranceStatus.MISSING

    try:
        status = InsuranceStatus(stored_status.strip().upper())
    except ValueError:
        return InsuranceStatus.MISSING

    if status == InsuranceStatus.APPROVED and expires_at is not None and expires_at < now:
        return InsuranceStatus.EXPIRED
    return status


def is_valid_for_acknowledgement(status: InsuranceStatus) -> bool:
    return status not in INVALID_FOR_ACKNOWLEDGEMENT
