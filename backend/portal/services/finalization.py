# backend/portal/services/finalization.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Optional, Sequence

from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from ..domain.audit import audit_write, snapshot_lock
from ..domain.errors import ErrorCode, StateConflictError
from ..domain.finalization import (
    FinalizeWarnings,
    apply_finalize,
    apply_reopen,
    compute_finalize_warnings,
    count_ungraded,
    ensure_unlocked,
    promote_on_edit,
)

# -----------------------------------------------------------------------------
# Finalization state machine: persistence side
# -----------------------------------------------------------------------------
# Every lockable row maps `version` as SQLAlchemy's version_id_col, so each
# UPDATE is "... WHERE id = :id AND version = :seen". Item-level edits always
# touch their parent row (updated_at), which means:
#   - two finalize calls racing on one record: the second UPDATE matches zero
#     rows -> StaleDataError -> CONCURRENT_MODIFICATION, nothing lands;
#   - an item edit racing a finalize: same thing, the edit is rolled back
#     instead of landing behind the lock.
# Parents are also loaded FOR UPDATE where the backend supports it.
# -----------------------------------------------------------------------------

log = logging.getLogger("portal.finalization")


def _utcnow() -> datetime:
    return datetime.utcnow()


def _concurrent_modification() -> StateConflictError:
    return StateConflictError(
        ErrorCode.CONCURRENT_MODIFICATION,
        "This record was changed by someone else. Reload and try again.",
    )


def guarded_flush(db: Session) -> None:
    try:
        db.flush()
    except StaleDataError as e:
        db.rollback()
        raise _concurrent_modification() from e


def guarded_commit(db: Session) -> None:
    try:
        db.commit()
    except StaleDataError as e:
        db.rollback()
        raise _concurrent_modification() from e


def touch_for_edit(record: Any, *, label: str, now: Optional[datetime] = None, promote: bool = True) -> bool:
    """
    Gate + side effect for any item/photo/record-field edit.

    Raises CHECKLIST_FINALIZED while locked; otherwise promotes NOT_STARTED to
    IN_PROGRESS (unless promote=False) and bumps updated_at so the parent's
    version is checked on flush.
    """
    ensure_unlocked(record, label=label)
    promoted = promote_on_edit(record) if promote else False
    record.updated_at = now or _utcnow()
    return promoted


def finalize_record(
    db: Session,
    record: Any,
    *,
    actor_id: Optional[int],
    entity_type: str,
    label: str,
    graded_items: Optional[Sequence[Any]] = None,
) -> Optional[FinalizeWarnings]:
    """
    Lock a record. `graded_items` is given for condition-graded records only;
    it drives the INCOMPLETE_ITEMS check and the advisory warnings.
    """
    before = snapshot_lock(record)
    ungraded = count_ungraded(graded_items) if graded_items is not None else 0

    apply_finalize(record, actor_id=actor_id, now=_utcnow(), ungraded_count=ungraded, label=label)

    warnings: Optional[FinalizeWarnings] = None
    if graded_items is not None:
        warnings = compute_finalize_warnings(
            damage_found=bool(getattr(record, "damage_found", False)),
            damage_notes=getattr(record, "damage_notes", None),
            items=graded_items,
        )

    audit_write(
        db,
        actor_user_id=actor_id,
        action=f"{entity_type}.finalize",
        entity_type=entity_type,
        entity_id=record.id,
        before=before,
        after={**snapshot_lock(record), "warnings": warnings.as_dict() if warnings else None},
    )
    guarded_commit(db)

    log.info(
        "%s %s finalized",
        entity_type,
        record.id,
        extra={"user_id": actor_id, "record_id": record.id, "tenancy_id": getattr(record, "tenancy_id", None)},
    )
    return warnings


def reopen_record(
    db: Session,
    record: Any,
    *,
    actor_id: Optional[int],
    entity_type: str,
    label: str,
) -> Any:
    before = snapshot_lock(record)
    apply_reopen(record, now=_utcnow(), label=label)

    audit_write(
        db,
        actor_user_id=actor_id,
        action=f"{entity_type}.reopen",
        entity_type=entity_type,
        entity_id=record.id,
        before=before,
        after=snapshot_lock(record),
    )
    guarded_commit(db)

    log.info(
        "%s %s reopened",
        entity_type,
        record.id,
        extra={"user_id": actor_id, "record_id": record.id, "tenancy_id": getattr(record, "tenancy_id", None)},
    )
    return record
