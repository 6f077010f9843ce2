# backend/tests/test_condition_checklists_api.py
from __future__ import annotations

from datetime import datetime, timedelta

from sqlalchemy import select

from portal.config import settings
from portal.models import AuditEvent, ConditionChecklist

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 256

INSPECTIONS = "/api/admin/inspections"
MOVE_OUT = "/api/admin/move-out-checklists"


def _as(user):
    return {"X-User-Email": user.email, "X-User-Role": user.role}


def _create_inspection(client, headers, tenancy_id, inspection_type="MOVE_IN"):
    r = client.post(INSPECTIONS, json={"tenancy_id": tenancy_id, "inspection_type": inspection_type}, headers=headers)
    assert r.status_code == 200, r.text
    return r.json()


def _grade_all(client, headers, record, condition="GOOD", base=INSPECTIONS):
    for it in record["items"]:
        r = client.patch(f"{base}/items/{it['id']}", json={"condition": condition}, headers=headers)
        assert r.status_code == 200, r.text


def _upload(client, headers, item_id, *, data=PNG, ctype="image/png", name="wall.png", caption=None, base=INSPECTIONS):
    form = {"caption": caption} if caption is not None else {}
    return client.post(
        f"{base}/items/{item_id}/photos",
        files={"file": (name, data, ctype)},
        data=form,
        headers=headers,
    )


def test_initialize_creates_seven_categories(client, admin_headers, tenancy):
    rec = _create_inspection(client, admin_headers, tenancy.id)

    assert rec["status"] == "NOT_STARTED"
    assert rec["kind"] == "INSPECTION"
    assert [i["category"] for i in rec["items"]] == [
        "KEYS_ACCESS",
        "WALLS_PAINT",
        "FLOORS",
        "KITCHEN",
        "BATHROOM",
        "APPLIANCES",
        "DOORS_WINDOWS",
    ]
    assert rec["items"][0]["category_label"] == "Keys & Access"

    dup = client.post(INSPECTIONS, json={"tenancy_id": tenancy.id, "inspection_type": "MOVE_IN"}, headers=admin_headers)
    assert dup.status_code == 409
    assert dup.json()["error"]["code"] == "ALREADY_EXISTS"


def test_tenant_cannot_use_admin_routes(client, tenant_headers, tenancy):
    r = client.post(INSPECTIONS, json={"tenancy_id": tenancy.id}, headers=tenant_headers)
    assert r.status_code == 403


def test_first_item_edit_promotes_status(client, admin_headers, tenancy):
    rec = _create_inspection(client, admin_headers, tenancy.id)
    item_id = rec["items"][0]["id"]

    r = client.patch(f"{INSPECTIONS}/items/{item_id}", json={"condition": "FAIR", "notes": "scuffs"}, headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["condition"] == "FAIR"

    again = client.get(f"{INSPECTIONS}/{rec['id']}", headers=admin_headers).json()
    assert again["status"] == "IN_PROGRESS"


def test_unknown_condition_is_rejected(client, admin_headers, tenancy):
    rec = _create_inspection(client, admin_headers, tenancy.id)
    r = client.patch(f"{INSPECTIONS}/items/{rec['items'][0]['id']}", json={"condition": "MEH"}, headers=admin_headers)
    assert r.status_code == 422


def test_status_completed_only_through_finalize(client, admin_headers, tenancy):
    rec = _create_inspection(client, admin_headers, tenancy.id)
    r = client.patch(f"{INSPECTIONS}/{rec['id']}", json={"status": "COMPLETED"}, headers=admin_headers)
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "VALIDATION_ERROR"


def test_status_cannot_move_backwards(client, admin_headers, tenancy):
    rec = _create_inspection(client, admin_headers, tenancy.id)
    base = f"{INSPECTIONS}/{rec['id']}"
    client.patch(f"{INSPECTIONS}/items/{rec['items'][0]['id']}", json={"condition": "GOOD"}, headers=admin_headers)

    r = client.patch(base, json={"status": "NOT_STARTED", "notes": "redo"}, headers=admin_headers)
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "VALIDATION_ERROR"

    after = client.get(base, headers=admin_headers).json()
    assert after["status"] == "IN_PROGRESS"
    assert after["notes"] is None

    same = client.patch(base, json={"status": "IN_PROGRESS"}, headers=admin_headers)
    assert same.status_code == 200
    assert same.json()["status"] == "IN_PROGRESS"


def test_finalize_with_ungraded_items_reports_count(client, admin_headers, tenancy):
    rec = _create_inspection(client, admin_headers, tenancy.id)
    for it in rec["items"][:4]:
        client.patch(f"{INSPECTIONS}/items/{it['id']}", json={"condition": "GOOD"}, headers=admin_headers)

    r = client.post(f"{INSPECTIONS}/{rec['id']}/finalize", headers=admin_headers)
    assert r.status_code == 409
    err = r.json()["error"]
    assert err["code"] == "INCOMPLETE_ITEMS"
    assert err["count"] == 3
    assert "3 item(s)" in err["message"]


def test_finalize_locks_until_reopen(client, admin_headers, admin, tenancy, db):
    rec = _create_inspection(client, admin_headers, tenancy.id)
    _grade_all(client, admin_headers, rec)
    item_id = rec["items"][0]["id"]
    photo = _upload(client, admin_headers, item_id).json()

    r = client.post(f"{INSPECTIONS}/{rec['id']}/finalize", headers=admin_headers)
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["record"]["is_finalized"] is True
    assert body["record"]["status"] == "COMPLETED"
    assert body["record"]["finalized_by_id"] == admin.id
    assert body["warnings"] is None

    blocked = [
        client.patch(f"{INSPECTIONS}/items/{item_id}", json={"condition": "FAIR"}, headers=admin_headers),
        _upload(client, admin_headers, item_id),
        client.delete(f"{INSPECTIONS}/photos/{photo['id']}", headers=admin_headers),
        client.patch(f"{INSPECTIONS}/{rec['id']}", json={"notes": "late"}, headers=admin_headers),
    ]
    for resp in blocked:
        assert resp.status_code == 409
        assert resp.json()["error"]["code"] == "CHECKLIST_FINALIZED"

    again = client.post(f"{INSPECTIONS}/{rec['id']}/finalize", headers=admin_headers)
    assert again.status_code == 409
    assert again.json()["error"]["code"] == "ALREADY_FINALIZED"

    reopened = client.post(f"{INSPECTIONS}/{rec['id']}/reopen", headers=admin_headers)
    assert reopened.status_code == 200
    assert reopened.json()["is_finalized"] is False
    assert reopened.json()["status"] == "IN_PROGRESS"

    ok = client.patch(f"{INSPECTIONS}/items/{item_id}", json={"condition": "FAIR"}, headers=admin_headers)
    assert ok.status_code == 200

    actions = set(db.scalars(select(AuditEvent.action)).all())
    assert {"Inspection.finalize", "Inspection.reopen"} <= actions


def test_reopen_unlocked_is_not_finalized(client, admin_headers, tenancy):
    rec = _create_inspection(client, admin_headers, tenancy.id)
    r = client.post(f"{INSPECTIONS}/{rec['id']}/reopen", headers=admin_headers)
    assert r.status_code == 409
    assert r.json()["error"]["code"] == "NOT_FINALIZED"


def test_warnings_repeat_after_reopen(client, admin_headers, tenancy):
    rec = _create_inspection(client, admin_headers, tenancy.id)
    _grade_all(client, admin_headers, rec)
    client.patch(f"{INSPECTIONS}/{rec['id']}", json={"damage_found": True}, headers=admin_headers)

    first = client.post(f"{INSPECTIONS}/{rec['id']}/finalize", headers=admin_headers).json()["warnings"]
    assert first == {"no_photos": True, "damage_without_evidence": True}

    client.post(f"{INSPECTIONS}/{rec['id']}/reopen", headers=admin_headers)
    second = client.post(f"{INSPECTIONS}/{rec['id']}/finalize", headers=admin_headers).json()["warnings"]
    assert second == first


def test_damage_photo_on_poor_item_is_evidence(client, admin_headers, tenancy):
    rec = _create_inspection(client, admin_headers, tenancy.id)
    _grade_all(client, admin_headers, rec)
    poor = rec["items"][1]["id"]
    client.patch(f"{INSPECTIONS}/items/{poor}", json={"condition": "POOR"}, headers=admin_headers)
    client.patch(f"{INSPECTIONS}/{rec['id']}", json={"damage_found": True}, headers=admin_headers)
    assert _upload(client, admin_headers, poor, caption="crack").status_code == 200

    r = client.post(f"{INSPECTIONS}/{rec['id']}/finalize", headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["warnings"] is None


# -----------------------------
# Photos
# -----------------------------
def test_photo_upload_read_and_delete(client, admin_headers, tenancy, blob_store):
    rec = _create_inspection(client, admin_headers, tenancy.id)
    item_id = rec["items"][0]["id"]

    r = _upload(client, admin_headers, item_id, name="../../etc/pass wd.png", caption="x" * 600)
    assert r.status_code == 200, r.text
    photo = r.json()
    key = photo["url"].rsplit("/", 1)[1]

    assert key.startswith(f"{item_id}-")
    assert key.endswith(".png")
    assert photo["filename"] == "pass_wd.png"
    assert len(photo["caption"]) == 500
    assert photo["size_bytes"] == len(PNG)

    served = client.get(photo["url"], headers=admin_headers)
    assert served.status_code == 200
    assert served.content == PNG
    assert served.headers["content-type"] == "image/png"

    d = client.delete(f"{INSPECTIONS}/photos/{photo['id']}", headers=admin_headers)
    assert d.status_code == 200
    assert client.get(photo["url"], headers=admin_headers).status_code == 404


def test_photo_validation(client, admin_headers, tenancy):
    rec = _create_inspection(client, admin_headers, tenancy.id)
    item_id = rec["items"][0]["id"]

    bad_type = _upload(client, admin_headers, item_id, ctype="application/pdf", name="x.pdf")
    assert bad_type.status_code == 400
    assert bad_type.json()["error"]["code"] == "INVALID_FILE"

    tiny = _upload(client, admin_headers, item_id, data=b"\x89PNG")
    assert tiny.status_code == 400
    assert tiny.json()["error"]["code"] == "INVALID_FILE"


def test_oversized_upload_is_rejected_before_storing(client, admin_headers, tenancy, blob_store, monkeypatch):
    monkeypatch.setattr(settings, "photo_max_bytes", 300)
    rec = _create_inspection(client, admin_headers, tenancy.id)

    r = _upload(client, admin_headers, rec["items"][0]["id"], data=PNG + b"\x00" * 100)
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "INVALID_FILE"
    assert "too large" in r.json()["error"]["message"]
    assert not blob_store.base_dir.exists() or not any(blob_store.base_dir.iterdir())


def test_photos_are_served_only_to_their_tenancy(client, admin_headers, tenant_headers, tenancy, make_user, make_tenancy):
    rec = _create_inspection(client, admin_headers, tenancy.id)
    url = _upload(client, admin_headers, rec["items"][0]["id"]).json()["url"]

    other = make_user("neighbour@t.local")
    make_tenancy(other, unit_label="3C")

    assert client.get(url, headers=_as(other)).status_code == 404
    assert client.get(url, headers=tenant_headers).status_code == 200
    assert client.get(url, headers=admin_headers).content == PNG

    # a tenant with no active tenancy sees nothing either
    drifter = make_user("drifter@t.local")
    assert client.get(url, headers=_as(drifter)).status_code == 404


def test_unknown_upload_key_is_404(client, admin_headers):
    assert client.get("/api/uploads/1-nothing.png", headers=admin_headers).status_code == 404


def test_photo_delete_does_not_promote_status(client, admin_headers, tenancy, db):
    rec = _create_inspection(client, admin_headers, tenancy.id)
    item_id = rec["items"][0]["id"]
    photo = _upload(client, admin_headers, item_id).json()

    row = db.get(ConditionChecklist, rec["id"])
    row.status = "NOT_STARTED"
    db.commit()

    d = client.delete(f"{INSPECTIONS}/photos/{photo['id']}", headers=admin_headers)
    assert d.status_code == 200

    assert client.get(f"{INSPECTIONS}/{rec['id']}", headers=admin_headers).json()["status"] == "NOT_STARTED"


# -----------------------------
# Move-out checklist flow
# -----------------------------
def test_move_out_checklist_shares_state_machine_but_not_ids(client, admin_headers, make_tenancy, make_user):
    t = make_tenancy(make_user("mo@t.local"), move_out_date=datetime.utcnow() + timedelta(days=10))

    r = client.post(MOVE_OUT, json={"tenancy_id": t.id}, headers=admin_headers)
    assert r.status_code == 200, r.text
    rec = r.json()
    assert rec["kind"] == "MOVE_OUT_CHECKLIST"
    assert rec["inspection_type"] == "MOVE_OUT"

    assert client.get(f"{INSPECTIONS}/{rec['id']}", headers=admin_headers).status_code == 404

    client.patch(f"{MOVE_OUT}/{rec['id']}", json={"keys_returned": True}, headers=admin_headers)
    _grade_all(client, admin_headers, rec, base=MOVE_OUT)
    fin = client.post(f"{MOVE_OUT}/{rec['id']}/finalize", headers=admin_headers)
    assert fin.status_code == 200
    assert fin.json()["record"]["keys_returned"] is True
    assert fin.json()["warnings"] == {"no_photos": True}

    listed = client.get(f"{MOVE_OUT}/tenancy/{t.id}", headers=admin_headers).json()
    assert [x["id"] for x in listed] == [rec["id"]]


def test_tenant_sees_own_inspections_read_only(client, admin_headers, tenant_headers, tenancy):
    rec = _create_inspection(client, admin_headers, tenancy.id)

    r = client.get("/api/tenant/inspections", headers=tenant_headers)
    assert r.status_code == 200
    assert [x["id"] for x in r.json()] == [rec["id"]]

    assert client.post(f"{INSPECTIONS}/{rec['id']}/finalize", headers=tenant_headers).status_code == 403
