# backend/portal/domain/finalization.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterable, Optional, Sequence

from .enums import DAMAGE_CONDITIONS, RecordStatus
from .errors import ErrorCode, InputValidationError, StateConflictError

# -----------------------------------------------------------------------------
# Finalization state machine (pure)
# -----------------------------------------------------------------------------
# Two independent axes on one record:
#   status: NOT_STARTED -> IN_PROGRESS -> COMPLETED
#   lock:   UNLOCKED <-> FINALIZED (is_finalized)
#
# Works on anything shaped like LockableMixin (ChecklistSet, ConditionChecklist)
# so the rules live in exactly one place. No DB access here; the service layer
# owns loading, version checks and commits.
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class FinalizeWarnings:
    no_photos: bool = False
    damage_without_evidence: bool = False

    def any(self) -> bool:
        return self.no_photos or self.damage_without_evidence

    def as_dict(self) -> Optional[dict[str, bool]]:
        # flags that don't apply are omitted entirely; no flags at all -> None
        out: dict[str, bool] = {}
        if self.no_photos:
            out["no_photos"] = True
        if self.damage_without_evidence:
            out["damage_without_evidence"] = True
        return out or None


def is_locked(record: Any) -> bool:
    return bool(getattr(record, "is_finalized", False))


def ensure_unlocked(record: Any, *, label: str = "Checklist") -> None:
    if is_locked(record):
        raise StateConflictError(
            ErrorCode.CHECKLIST_FINALIZED,
            f"{label} is finalized. Reopen it before making changes.",
        )


def promote_on_edit(record: Any) -> bool:
    """NOT_STARTED -> IN_PROGRESS on the first edit. Returns True if promoted."""
    if record.status == RecordStatus.NOT_STARTED.value:
        record.status = RecordStatus.IN_PROGRESS.value
        return True
    return False


STATUS_ORDER = (RecordStatus.NOT_STARTED, RecordStatus.IN_PROGRESS, RecordStatus.COMPLETED)


def check_manual_status(record: Any, requested: RecordStatus) -> None:
    """Status set by hand: forward only, and COMPLETED is reached through finalize."""
    if requested == RecordStatus.COMPLETED:
        raise InputValidationError("Use finalize to complete a checklist")

    current = RecordStatus(record.status)
    if STATUS_ORDER.index(requested) < STATUS_ORDER.index(current):
        raise InputValidationError(f"Status cannot move back from {current.value} to {requested.value}")


def count_ungraded(items: Iterable[Any]) -> int:
    return sum(1 for it in items if not getattr(it, "condition", None))


def compute_finalize_warnings(
    *,
    damage_found: bool,
    damage_notes: Optional[str],
    items: Sequence[Any],
) -> FinalizeWarnings:
    """
    Advisory only; never blocks finalize.

    damage_without_evidence: damage was flagged, but there are no notes and no
    photo on any POOR/DAMAGED item.
    """
    total_photos = sum(len(getattr(it, "photos", None) or []) for it in items)

    damage_without_evidence = False
    if damage_found:
        has_notes = bool((damage_notes or "").strip())
        has_damage_photo = any(
            (getattr(it, "condition", None) in DAMAGE_CONDITIONS) and len(getattr(it, "photos", None) or []) > 0
            for it in items
        )
        damage_without_evidence = not has_notes and not has_damage_photo

    return FinalizeWarnings(no_photos=total_photos == 0, damage_without_evidence=damage_without_evidence)


def apply_finalize(
    record: Any,
    *,
    actor_id: Optional[int],
    now: datetime,
    ungraded_count: int = 0,
    label: str = "Checklist",
) -> None:
    """
    Guarded UNLOCKED -> FINALIZED transition.

    `ungraded_count` is the number of condition items with no grade; pass 0 for
    boolean checklists, which have no grading requirement.
    """
    if is_locked(record):
        raise StateConflictError(ErrorCode.ALREADY_FINALIZED, f"{label} is already finalized")

    if ungraded_count > 0:
        raise StateConflictError(
            ErrorCode.INCOMPLETE_ITEMS,
            f"Cannot finalize: {ungraded_count} item(s) have no condition set",
            details={"count": ungraded_count},
        )

    record.is_finalized = True
    record.finalized_at = now
    record.finalized_by_id = actor_id
    record.status = RecordStatus.COMPLETED.value
    record.updated_at = now


def apply_reopen(record: Any, *, now: datetime, label: str = "Checklist") -> None:
    """FINALIZED -> UNLOCKED; a reopened record is presumed unfinished."""
    if not is_locked(record):
        raise StateConflictError(ErrorCode.NOT_FINALIZED, f"{label} is not finalized")

    record.is_finalized = False
    record.finalized_at = None
    record.finalized_by_id = None
    record.status = RecordStatus.IN_PROGRESS.value
    record.updated_at = now
