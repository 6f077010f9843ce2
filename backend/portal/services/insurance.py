# backend/portal/services/insurance.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..domain.audit import audit_write
from ..domain.enums import InsuranceStatus, Role
from ..domain.errors import ErrorCode, InputValidationError, StateConflictError
from ..domain.insurance import effective_insurance_status
from ..models import AppUser
from .notifications import dispatch_email, render_insurance_reminder
from .ownership import must_get_user

log = logging.getLogger("portal.insurance")

ENTITY = "Insurance"


def _utcnow() -> datetime:
    return datetime.utcnow()


def _snapshot(u: AppUser) -> dict:
    return {
        "insurance_status": u.insurance_status,
        "insurance_expires_at": u.insurance_expires_at,
        "insurance_reviewed_by_id": u.insurance_reviewed_by_id,
    }


def insurance_view(u: AppUser, *, now: Optional[datetime] = None) -> dict:
    return {
        "tenant_id": u.id,
        "stored_status": u.insurance_status,
        "status": effective_insurance_status(u.insurance_status, u.insurance_expires_at, now=now or _utcnow()).value,
        "expires_at": u.insurance_expires_at,
        "reviewed_at": u.insurance_reviewed_at,
        "rejection_reason": u.insurance_rejection_reason,
    }


def submit_insurance(db: Session, *, tenant_id: int, expires_at: datetime) -> AppUser:
    """A new policy always goes back to PENDING, whatever was on file before."""
    tenant = must_get_user(db, user_id=tenant_id)
    if expires_at <= _utcnow():
        raise InputValidationError("Policy expiry date must be in the future")

    before = _snapshot(tenant)
    tenant.insurance_status = InsuranceStatus.PENDING.value
    tenant.insurance_expires_at = expires_at
    tenant.insurance_reviewed_at = None
    tenant.insurance_reviewed_by_id = None
    tenant.insurance_rejection_reason = None

    audit_write(
        db,
        actor_user_id=tenant.id,
        action="insurance.submit",
        entity_type=ENTITY,
        entity_id=tenant.id,
        before=before,
        after=_snapshot(tenant),
    )
    db.commit()
    return tenant


def _must_be_pending(tenant: AppUser) -> None:
    if tenant.insurance_status != InsuranceStatus.PENDING.value:
        raise StateConflictError(
            ErrorCode.INVALID_STATE,
            f"Insurance is {tenant.insurance_status or InsuranceStatus.MISSING.value}, not PENDING",
            details={"insurance_status": tenant.insurance_status or InsuranceStatus.MISSING.value},
        )


def _review(
    db: Session,
    *,
    tenant_id: int,
    actor_id: int,
    approve: bool,
    reason: Optional[str] = None,
) -> AppUser:
    tenant = must_get_user(db, user_id=tenant_id)
    _must_be_pending(tenant)

    before = _snapshot(tenant)
    tenant.insurance_status = (InsuranceStatus.APPROVED if approve else InsuranceStatus.REJECTED).value
    tenant.insurance_reviewed_at = _utcnow()
    tenant.insurance_reviewed_by_id = actor_id
    tenant.insurance_rejection_reason = None if approve else ((reason or "").strip() or None)

    action = "insurance.approve" if approve else "insurance.reject"
    audit_write(
        db,
        actor_user_id=actor_id,
        action=action,
        entity_type=ENTITY,
        entity_id=tenant.id,
        before=before,
        after={**_snapshot(tenant), "reason": tenant.insurance_rejection_reason},
    )
    db.commit()

    log.info("%s", action, extra={"user_id": actor_id, "tenant_id": tenant.id, "action": action})
    return tenant


def approve_insurance(db: Session, *, tenant_id: int, actor_id: int) -> AppUser:
    return _review(db, tenant_id=tenant_id, actor_id=actor_id, approve=True)


def reject_insurance(db: Session, *, tenant_id: int, actor_id: int, reason: Optional[str] = None) -> AppUser:
    return _review(db, tenant_id=tenant_id, actor_id=actor_id, approve=False, reason=reason)


def list_pending_insurance(db: Session) -> list[AppUser]:
    return list(
        db.scalars(
            select(AppUser)
            .where(AppUser.role == Role.TENANT.value, AppUser.insurance_status == InsuranceStatus.PENDING.value)
            .order_by(AppUser.id)
        ).all()
    )


def send_insurance_reminder(db: Session, *, tenant_id: int, actor_id: Optional[int] = None) -> dict:
    """Nudge a tenant to submit a policy. Sent whatever the current status is; the admin decides."""
    tenant = must_get_user(db, user_id=tenant_id)
    if tenant.role != Role.TENANT.value:
        raise InputValidationError("User is not a tenant", code=ErrorCode.NOT_TENANT)

    status = effective_insurance_status(tenant.insurance_status, tenant.insurance_expires_at, now=_utcnow()).value
    queued = dispatch_email(
        to=tenant.email,
        message=render_insurance_reminder(tenant_name=tenant.full_name),
        metadata={"tenant_id": tenant.id, "sent_by": actor_id},
    )

    audit_write(
        db,
        actor_user_id=actor_id,
        action="insurance.reminder",
        entity_type=ENTITY,
        entity_id=tenant.id,
        after={"insurance_status": status, "queued": queued},
    )
    db.commit()

    log.info(
        "insurance reminder %s",
        "queued" if queued else "not queued",
        extra={"user_id": actor_id, "tenant_id": tenant.id, "action": "insurance.reminder"},
    )
    return {"queued": queued, "insurance_status": status}
