# backend/tests/test_finalization_state_machine.py
from __future__ import annotations

from datetime import datetime
from types import SimpleNamespace

import pytest

from portal.domain.enums import RecordStatus
from portal.domain.errors import ErrorCode, InputValidationError, StateConflictError
from portal.domain.finalization import (
    apply_finalize,
    apply_reopen,
    check_manual_status,
    compute_finalize_warnings,
    count_ungraded,
    ensure_unlocked,
    promote_on_edit,
)

NOW = datetime(2026, 10, 1, 12, 0, 0)


def _record(**kw):
    base = dict(status="NOT_STARTED", is_finalized=False, finalized_at=None, finalized_by_id=None, updated_at=None)
    base.update(kw)
    return SimpleNamespace(**base)


def _item(condition=None, photos=0):
    return SimpleNamespace(condition=condition, photos=[object()] * photos)


def test_finalize_sets_lock_and_completes():
    r = _record(status="IN_PROGRESS")
    apply_finalize(r, actor_id=7, now=NOW)

    assert r.is_finalized is True
    assert r.finalized_at == NOW
    assert r.finalized_by_id == 7
    assert r.status == "COMPLETED"


def test_finalize_twice_is_already_finalized():
    r = _record()
    apply_finalize(r, actor_id=1, now=NOW)
    with pytest.raises(StateConflictError) as ei:
        apply_finalize(r, actor_id=1, now=NOW)
    assert ei.value.code == ErrorCode.ALREADY_FINALIZED


def test_already_finalized_wins_over_incomplete_items():
    r = _record(is_finalized=True)
    with pytest.raises(StateConflictError) as ei:
        apply_finalize(r, actor_id=1, now=NOW, ungraded_count=3)
    assert ei.value.code == ErrorCode.ALREADY_FINALIZED


def test_incomplete_items_reports_exact_count():
    items = [_item("GOOD"), _item(None), _item(None), _item("FAIR")]
    r = _record()
    with pytest.raises(StateConflictError) as ei:
        apply_finalize(r, actor_id=1, now=NOW, ungraded_count=count_ungraded(items))

    assert ei.value.code == ErrorCode.INCOMPLETE_ITEMS
    assert ei.value.details == {"count": 2}
    assert "2 item(s)" in ei.value.message
    assert r.is_finalized is False


def test_reopen_requires_lock_and_moves_back_to_in_progress():
    r = _record()
    with pytest.raises(StateConflictError) as ei:
        apply_reopen(r, now=NOW)
    assert ei.value.code == ErrorCode.NOT_FINALIZED

    apply_finalize(r, actor_id=1, now=NOW)
    apply_reopen(r, now=NOW)
    assert r.is_finalized is False
    assert r.finalized_at is None
    assert r.finalized_by_id is None
    assert r.status == "IN_PROGRESS"


def test_locked_record_rejects_edits():
    r = _record(is_finalized=True)
    with pytest.raises(StateConflictError) as ei:
        ensure_unlocked(r, label="Inspection")
    assert ei.value.code == ErrorCode.CHECKLIST_FINALIZED


def test_first_edit_promotes_not_started_only():
    r = _record()
    assert promote_on_edit(r) is True
    assert r.status == "IN_PROGRESS"
    assert promote_on_edit(r) is False


def test_no_photos_warning():
    w = compute_finalize_warnings(damage_found=False, damage_notes=None, items=[_item("GOOD")])
    assert w.no_photos is True
    assert w.damage_without_evidence is False
    assert w.as_dict() == {"no_photos": True}


def test_damage_without_any_evidence_warns():
    w = compute_finalize_warnings(damage_found=True, damage_notes="  ", items=[_item("POOR"), _item("GOOD", photos=1)])
    assert w.damage_without_evidence is True
    assert w.no_photos is False


def test_damage_photo_on_poor_item_counts_as_evidence():
    w = compute_finalize_warnings(damage_found=True, damage_notes=None, items=[_item("POOR", photos=1)])
    assert w.damage_without_evidence is False
    assert w.as_dict() is None


def test_damage_notes_count_as_evidence():
    w = compute_finalize_warnings(damage_found=True, damage_notes="Hole in wall", items=[_item("GOOD")])
    assert w.damage_without_evidence is False


def test_reopen_then_finalize_reproduces_warnings():
    items = [_item("DAMAGED"), _item("GOOD")]
    r = _record()

    apply_finalize(r, actor_id=1, now=NOW)
    first = compute_finalize_warnings(damage_found=True, damage_notes=None, items=items)
    apply_reopen(r, now=NOW)
    apply_finalize(r, actor_id=1, now=NOW)
    second = compute_finalize_warnings(damage_found=True, damage_notes=None, items=items)

    assert first == second


def test_manual_status_moves_forward_only():
    r = _record(status="IN_PROGRESS")
    with pytest.raises(InputValidationError) as ei:
        check_manual_status(r, RecordStatus.NOT_STARTED)
    assert "IN_PROGRESS to NOT_STARTED" in ei.value.message

    check_manual_status(r, RecordStatus.IN_PROGRESS)
    check_manual_status(_record(), RecordStatus.IN_PROGRESS)


def test_manual_status_never_completes():
    with pytest.raises(InputValidationError):
        check_manual_status(_record(status="IN_PROGRESS"), RecordStatus.COMPLETED)
