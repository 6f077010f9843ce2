# backend/tests/test_compliance_service.py
from __future__ import annotations

from datetime import datetime, timedelta

from portal.models import TenantDocument
from portal.services import checklists as checklist_svc
from portal.services.compliance import get_compliance_snapshot, load_compliance_inputs


def test_earliest_open_invoice_drives_rent(db, tenancy, tenant, make_invoice):
    now = datetime.utcnow()
    make_invoice(tenancy.unit_id, status="OPEN", due_date=now + timedelta(days=20), period_month="2026-11")
    make_invoice(tenancy.unit_id, status="OVERDUE", due_date=now - timedelta(days=2), period_month="2026-09")
    make_invoice(tenancy.unit_id, status="PAID", due_date=now - timedelta(days=40), period_month="2026-08")

    snap = get_compliance_snapshot(db, tenant_id=tenant.id, now=now)

    assert snap.summary.rent_status.value == "OVERDUE"
    assert snap.status.value == "NOT_IN_COMPLIANCE"
    rent_issue = snap.issues[0]
    assert rent_issue.type.value == "RENT_OVERDUE"
    assert "2026-09" in rent_issue.description


def test_paid_only_tenant_in_good_standing(db, make_user, make_tenancy, make_invoice):
    now = datetime.utcnow()
    u = make_user(
        "good@t.local",
        phone="555-0100",
        insurance_status="APPROVED",
        insurance_expires_at=now + timedelta(days=200),
    )
    t = make_tenancy(u, unit_label="7A")
    make_invoice(t.unit_id, status="PAID", due_date=now - timedelta(days=3))
    db.add(TenantDocument(tenant_id=u.id, filename="lease.pdf"))
    db.commit()

    snap = get_compliance_snapshot(db, tenant_id=u.id, now=now)
    assert snap.status.value == "GOOD_STANDING"
    assert snap.summary.rent_status.value == "PAID"
    assert snap.summary.documents_count == 1
    assert snap.issues == ()
    assert snap.profile_completion.percentage == 100
    assert snap.lease_expiry.end_date is None
    assert snap.lease_expiry.show_warning is False


def test_legacy_move_in_items_are_not_counted(db, make_user, make_tenancy, admin):
    u = make_user("legacy@t.local")
    t = make_tenancy(
        u,
        unit_label="8A",
        is_legacy_move_in=True,
        move_out_date=datetime.utcnow() + timedelta(days=30),
    )
    checklist_svc.initialize_checklist(db, tenancy_id=t.id, checklist_type="MOVE_IN")
    checklist_svc.initialize_checklist(db, tenancy_id=t.id, checklist_type="MOVE_OUT")

    inputs = load_compliance_inputs(db, tenant=u)
    assert inputs.checklist.total == 5
    assert inputs.checklist.required_total == 5


def test_required_items_feed_checklist_issue(db, tenancy, tenant, admin):
    row = checklist_svc.initialize_checklist(db, tenancy_id=tenancy.id)
    checklist_svc.complete_item(db, item_id=row.items[0].id, actor_id=admin.id, actor_role="ADMIN")

    snap = get_compliance_snapshot(db, tenant_id=tenant.id)
    issue = next(i for i in snap.issues if i.type.value == "CHECKLIST_INCOMPLETE")
    assert "4 required items" in issue.description
    assert snap.summary.checklist_progress.completed == 1
    assert "Move-in checklist" in snap.profile_completion.missing_items


def test_tenant_without_tenancy(db, make_user):
    u = make_user("drifter@t.local")
    snap = get_compliance_snapshot(db, tenant_id=u.id)

    assert snap.summary.rent_status.value == "NO_INVOICE"
    assert snap.lease_expiry is None
    assert snap.status.value == "ACTION_REQUIRED"
    assert [i.type.value for i in snap.issues] == ["INSURANCE_MISSING"]


# -----------------------------
# Routes
# -----------------------------
def test_admin_and_tenant_snapshot_routes(client, admin_headers, tenant_headers, tenant, tenancy):
    r = client.get(f"/api/admin/compliance/tenants/{tenant.id}", headers=admin_headers)
    assert r.status_code == 200, r.text
    body = r.json()
    assert set(body) == {"status", "issues", "summary", "lease_expiry", "profile_completion"}

    mine = client.get("/api/tenant/compliance", headers=tenant_headers)
    assert mine.status_code == 200
    assert mine.json()["status"] == body["status"]

    missing = client.get("/api/admin/compliance/tenants/99999", headers=admin_headers)
    assert missing.status_code == 404
    assert missing.json()["error"]["code"] == "NOT_FOUND"

    assert client.get(f"/api/admin/compliance/tenants/{tenant.id}", headers=tenant_headers).status_code == 403
