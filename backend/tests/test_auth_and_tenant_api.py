# backend/tests/test_auth_and_tenant_api.py
from __future__ import annotations

from datetime import datetime, timedelta

from sqlalchemy import select

from portal.auth import create_access_token
from portal.models import AppUser

MOVE_IN_OVERVIEW = "/api/admin/compliance/move-in"


def test_health(client):
    r = client.get("/api/health")
    assert r.status_code == 200
    assert r.json()["ok"] is True
    assert r.headers.get("X-Request-ID")


# -----------------------------
# Auth
# -----------------------------
def test_bearer_token_authenticates(client, admin):
    token = create_access_token(admin)
    r = client.get(MOVE_IN_OVERVIEW, headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 200


def test_bad_or_expired_token_is_401(client, admin):
    assert client.get(MOVE_IN_OVERVIEW, headers={"Authorization": "Bearer nope"}).status_code == 401

    expired = create_access_token(admin, expires_minutes=-5)
    assert client.get(MOVE_IN_OVERVIEW, headers={"Authorization": f"Bearer {expired}"}).status_code == 401


def test_missing_credentials_is_401(client):
    assert client.get(MOVE_IN_OVERVIEW).status_code == 401


def test_stored_role_wins_over_header(client, admin, tenant):
    as_admin = client.get(MOVE_IN_OVERVIEW, headers={"X-User-Email": admin.email, "X-User-Role": "TENANT"})
    assert as_admin.status_code == 200

    escalate = client.get(MOVE_IN_OVERVIEW, headers={"X-User-Email": tenant.email, "X-User-Role": "ADMIN"})
    assert escalate.status_code == 403


def test_dev_headers_provision_new_user(client, db):
    r = client.get("/api/tenant/insurance", headers={"X-User-Email": "New@T.local"})
    assert r.status_code == 200
    assert r.json()["status"] == "MISSING"

    u = db.scalar(select(AppUser).where(AppUser.email == "new@t.local"))
    assert u is not None
    assert u.role == "TENANT"


# -----------------------------
# Tenant surface
# -----------------------------
def test_tenant_checklists_need_a_tenancy(client, make_user):
    loner = make_user("loner@t.local")
    r = client.get("/api/tenant/checklists", headers={"X-User-Email": loner.email})
    assert r.status_code == 404
    assert r.json()["error"]["code"] == "NO_TENANCY"


def test_tenant_acknowledges_insurance_item(client, admin_headers, tenant_headers, tenant, tenancy, db):
    r = client.post("/api/admin/checklists", json={"tenancy_id": tenancy.id}, headers=admin_headers)
    assert r.status_code == 200, r.text

    sets = client.get("/api/tenant/checklists", headers=tenant_headers).json()
    assert len(sets) == 1
    items = {i["item_type"]: i for i in sets[0]["items"]}
    assert items["INSURANCE_UPLOADED"]["self_completable"] is True
    assert items["LEASE_SIGNED"]["self_completable"] is False

    blocked = client.post(f"/api/tenant/checklist-items/{items['LEASE_SIGNED']['id']}/complete", headers=tenant_headers)
    assert blocked.status_code == 403
    assert blocked.json()["error"]["code"] == "NOT_ALLOWED"

    no_policy = client.post(
        f"/api/tenant/checklist-items/{items['INSURANCE_UPLOADED']['id']}/complete", headers=tenant_headers
    )
    assert no_policy.status_code == 400
    assert no_policy.json()["error"]["code"] == "INSURANCE_NOT_VALID"

    # a pending policy is enough to acknowledge the item
    client.post(
        "/api/tenant/insurance",
        json={"expires_at": (datetime.utcnow() + timedelta(days=120)).isoformat()},
        headers=tenant_headers,
    )
    ok = client.post(f"/api/tenant/checklist-items/{items['INSURANCE_UPLOADED']['id']}/complete", headers=tenant_headers)
    assert ok.status_code == 200
    assert ok.json()["is_completed"] is True
    assert ok.json()["completed_by_id"] == tenant.id

    progress = client.get("/api/tenant/checklists", headers=tenant_headers).json()[0]["progress"]
    assert progress["completed"] == 1


def test_tenant_move_out_checklist_view(client, admin_headers, tenant_headers, tenancy, db):
    empty = client.get("/api/tenant/move-out-checklist", headers=tenant_headers)
    assert empty.status_code == 200
    assert empty.json() == {"move_out_date": None, "checklist": None}

    tenancy.move_out_date = datetime(2026, 12, 31)
    db.commit()

    dated = client.get("/api/tenant/move-out-checklist", headers=tenant_headers).json()
    assert dated["move_out_date"].startswith("2026-12-31")
    assert dated["checklist"] is None

    created = client.post("/api/admin/move-out-checklists", json={"tenancy_id": tenancy.id}, headers=admin_headers)
    assert created.status_code == 200, created.text

    body = client.get("/api/tenant/move-out-checklist", headers=tenant_headers).json()
    assert body["checklist"]["id"] == created.json()["id"]
    assert body["checklist"]["kind"] == "MOVE_OUT_CHECKLIST"
    assert len(body["checklist"]["items"]) == 7


def test_admin_cannot_use_tenant_move_out_view(client, admin_headers):
    assert client.get("/api/tenant/move-out-checklist", headers=admin_headers).status_code == 403


# -----------------------------
# Checklist item photos
# -----------------------------
PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 256


def test_checklist_item_photo_roundtrip(client, admin_headers, tenant_headers, tenancy):
    row = client.post("/api/admin/checklists", json={"tenancy_id": tenancy.id}, headers=admin_headers).json()
    lease = next(i for i in row["items"] if i["item_type"] == "LEASE_SIGNED")

    up = client.post(
        f"/api/admin/checklists/items/{lease['id']}/photos",
        files={"file": ("lease.png", PNG, "image/png")},
        data={"caption": "signed copy"},
        headers=admin_headers,
    )
    assert up.status_code == 200, up.text
    photo = up.json()
    assert photo["item_id"] == lease["id"]
    assert photo["caption"] == "signed copy"

    sets = client.get("/api/tenant/checklists", headers=tenant_headers).json()
    listed = next(i for i in sets[0]["items"] if i["id"] == lease["id"])
    assert [p["id"] for p in listed["photos"]] == [photo["id"]]
    assert sets[0]["status"] == "IN_PROGRESS"

    assert client.get(photo["url"], headers=tenant_headers).content == PNG

    bad = client.post(
        f"/api/admin/checklists/items/{lease['id']}/photos",
        files={"file": ("lease.pdf", PNG, "application/pdf")},
        headers=admin_headers,
    )
    assert bad.status_code == 400
    assert bad.json()["error"]["code"] == "INVALID_FILE"

    client.post(f"/api/admin/checklists/{row['id']}/finalize", headers=admin_headers)
    locked = client.delete(f"/api/admin/checklists/photos/{photo['id']}", headers=admin_headers)
    assert locked.status_code == 409
    assert locked.json()["error"]["code"] == "CHECKLIST_FINALIZED"

    client.post(f"/api/admin/checklists/{row['id']}/reopen", headers=admin_headers)
    gone = client.delete(f"/api/admin/checklists/photos/{photo['id']}", headers=admin_headers)
    assert gone.status_code == 200
    assert client.get(photo["url"], headers=admin_headers).status_code == 404
