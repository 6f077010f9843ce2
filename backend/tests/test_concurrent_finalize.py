# backend/tests/test_concurrent_finalize.py
from __future__ import annotations

from datetime import datetime

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from portal.db import Base
from portal.domain.errors import ErrorCode, StateConflictError
from portal.models import AppUser, ConditionChecklist, Tenancy, Unit
from portal.services import condition_checklists as svc


@pytest.fixture()
def two_sessions(tmp_path):
    # a file database so each session gets its own connection, like two app workers
    eng = create_engine(f"sqlite:///{tmp_path / 'race.db'}", connect_args={"check_same_thread": False})
    Base.metadata.create_all(bind=eng)
    Session = sessionmaker(bind=eng, autoflush=False, expire_on_commit=False)
    a, b = Session(), Session()
    try:
        yield a, b
    finally:
        a.close()
        b.close()
        eng.dispose()


def _seed(db) -> tuple[int, int]:
    admin = AppUser(email="a@race.local", role="ADMIN")
    tenant = AppUser(email="t@race.local", role="TENANT")
    unit = Unit(label="9Z")
    db.add_all([admin, tenant, unit])
    db.flush()
    t = Tenancy(tenant_id=tenant.id, unit_id=unit.id, start_date=datetime.utcnow())
    db.add(t)
    db.commit()

    rec = svc.initialize_condition_checklist(db, tenancy_id=t.id, kind="INSPECTION", inspection_type="MOVE_IN")
    for it in rec.items:
        svc.update_condition_item(db, item_id=it.id, changes={"condition": "GOOD"})
    return admin.id, rec.id


def test_item_edit_racing_finalize_is_rejected(two_sessions):
    a, b = two_sessions
    admin_id, record_id = _seed(a)

    # session A has the record in hand before B locks it
    stale = a.get(ConditionChecklist, record_id)
    item_id = stale.items[0].id
    assert stale.is_finalized is False

    svc.finalize_condition_checklist(b, record_id=record_id, actor_id=admin_id)

    with pytest.raises(StateConflictError) as ei:
        svc.update_condition_item(a, item_id=item_id, changes={"condition": "DAMAGED"})
    assert ei.value.code == ErrorCode.CONCURRENT_MODIFICATION

    b.expire_all()
    fresh = b.get(ConditionChecklist, record_id)
    assert fresh.is_finalized is True
    assert all(i.condition == "GOOD" for i in fresh.items)


def test_second_of_two_finalizes_is_rejected(two_sessions):
    a, b = two_sessions
    admin_id, record_id = _seed(a)
    a.get(ConditionChecklist, record_id)

    svc.finalize_condition_checklist(b, record_id=record_id, actor_id=admin_id)

    with pytest.raises(StateConflictError) as ei:
        svc.finalize_condition_checklist(a, record_id=record_id, actor_id=admin_id)
    assert ei.value.code == ErrorCode.CONCURRENT_MODIFICATION
