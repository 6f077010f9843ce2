# backend/tests/test_compliance_aggregator.py
from __future__ import annotations

from datetime import datetime, timedelta
from types import SimpleNamespace

from portal.domain.compliance import (
    ChecklistCounts,
    ComplianceInputs,
    InvoiceSnapshot,
    evaluate_compliance,
)
from portal.domain.enums import ComplianceStatus, IssueSeverity, IssueType, RentStatus

NOW = datetime(2026, 10, 1, 12, 0, 0)
GOOD_INSURANCE = dict(insurance_status="APPROVED", insurance_expires_at=NOW + timedelta(days=200))


def _inputs(**kw) -> ComplianceInputs:
    base = dict(has_tenancy=True, phone="555-0100", documents_count=1, **GOOD_INSURANCE)
    base.update(kw)
    return ComplianceInputs(**base)


def test_nothing_outstanding_is_good_standing():
    snap = evaluate_compliance(_inputs(), now=NOW)

    assert snap.status == ComplianceStatus.GOOD_STANDING
    assert snap.issues == ()
    assert snap.summary.rent_status == RentStatus.NO_INVOICE
    assert snap.profile_completion.percentage == 100


def test_paid_history_without_open_invoice_reads_paid():
    snap = evaluate_compliance(_inputs(has_paid_invoice=True), now=NOW)
    assert snap.summary.rent_status == RentStatus.PAID


def test_invoice_due_in_five_days_is_one_rent_due_warning():
    due = NOW + timedelta(days=5)
    inv = InvoiceSnapshot(period_month="2026-10", status="OPEN", due_date=due)
    snap = evaluate_compliance(_inputs(current_invoice=inv), now=NOW)

    assert snap.summary.rent_status == RentStatus.DUE
    assert len(snap.issues) == 1
    issue = snap.issues[0]
    assert issue.type == IssueType.RENT_DUE
    assert issue.severity == IssueSeverity.WARNING
    assert issue.due_date == due
    assert "due in 5 days" in issue.description
    assert snap.status == ComplianceStatus.ACTION_REQUIRED


def test_invoice_due_far_out_raises_no_issue():
    inv = InvoiceSnapshot(period_month="2026-11", status="OPEN", due_date=NOW + timedelta(days=20))
    snap = evaluate_compliance(_inputs(current_invoice=inv), now=NOW)
    assert snap.summary.rent_status == RentStatus.DUE
    assert snap.issues == ()
    assert snap.status == ComplianceStatus.GOOD_STANDING


def test_overdue_rent_dominates_everything_else():
    inv = InvoiceSnapshot(period_month="2026-09", status="OVERDUE", due_date=NOW + timedelta(days=3))
    snap = evaluate_compliance(_inputs(current_invoice=inv), now=NOW)

    assert snap.summary.rent_status == RentStatus.OVERDUE
    assert snap.status == ComplianceStatus.NOT_IN_COMPLIANCE
    assert snap.issues[0].type == IssueType.RENT_OVERDUE
    assert snap.issues[0].severity == IssueSeverity.CRITICAL


def test_open_invoice_past_due_date_counts_as_overdue():
    inv = InvoiceSnapshot(period_month="2026-09", status="OPEN", due_date=NOW - timedelta(hours=1))
    snap = evaluate_compliance(_inputs(current_invoice=inv), now=NOW)
    assert snap.summary.rent_status == RentStatus.OVERDUE
    assert snap.status == ComplianceStatus.NOT_IN_COMPLIANCE


def test_expired_insurance_is_not_in_compliance():
    snap = evaluate_compliance(
        _inputs(insurance_status="APPROVED", insurance_expires_at=NOW - timedelta(days=1)),
        now=NOW,
    )
    assert snap.summary.insurance_status.value == "EXPIRED"
    assert snap.status == ComplianceStatus.NOT_IN_COMPLIANCE
    assert [i.type for i in snap.issues] == [IssueType.INSURANCE_EXPIRED]


def test_pending_insurance_needs_action():
    snap = evaluate_compliance(_inputs(insurance_status="PENDING"), now=NOW)
    assert snap.status == ComplianceStatus.ACTION_REQUIRED
    assert snap.issues[0].title == "Insurance Pending Review"
    assert "Insurance verification" in snap.profile_completion.missing_items


def test_required_checklist_items_outstanding():
    items = [
        SimpleNamespace(is_completed=True, is_required=True),
        SimpleNamespace(is_completed=False, is_required=True),
        SimpleNamespace(is_completed=False, is_required=True),
        SimpleNamespace(is_completed=False, is_required=False),
    ]
    counts = ChecklistCounts.from_items(items)
    snap = evaluate_compliance(_inputs(checklist=counts), now=NOW)

    issue = snap.issues[0]
    assert issue.type == IssueType.CHECKLIST_INCOMPLETE
    assert "2 required items" in issue.description
    assert "Move-in checklist" in snap.profile_completion.missing_items
    assert snap.summary.checklist_progress.as_dict() == {
        "completed": 1,
        "total": 4,
        "required_completed": 1,
        "required_total": 3,
    }


def test_profile_completion_percentage():
    snap = evaluate_compliance(_inputs(phone=None, documents_count=0), now=NOW)
    assert snap.profile_completion.percentage == 50
    assert snap.profile_completion.missing_items == ("Phone number", "Lease documents")


def test_lease_expiry_warning_window():
    snap = evaluate_compliance(_inputs(lease_end_date=NOW + timedelta(days=30)), now=NOW)
    assert snap.lease_expiry.days_remaining == 30
    assert snap.lease_expiry.show_warning is True

    far = evaluate_compliance(_inputs(lease_end_date=NOW + timedelta(days=200)), now=NOW)
    assert far.lease_expiry.show_warning is False


def test_month_to_month_and_no_tenancy():
    m2m = evaluate_compliance(_inputs(lease_end_date=None), now=NOW)
    assert m2m.lease_expiry.end_date is None
    assert m2m.lease_expiry.days_remaining is None

    none = evaluate_compliance(_inputs(has_tenancy=False), now=NOW)
    assert none.lease_expiry is None
    assert none.summary.rent_status == RentStatus.NO_INVOICE


def test_snapshot_dict_shape():
    d = evaluate_compliance(_inputs(), now=NOW).as_dict()
    assert set(d) == {"status", "issues", "summary", "lease_expiry", "profile_completion"}
    assert set(d["summary"]) == {"rent_status", "insurance_status", "documents_count", "checklist_progress"}
