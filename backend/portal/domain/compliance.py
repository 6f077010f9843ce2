# backend/portal/domain/compliance.py
from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable, Optional

from .enums import (
    ComplianceStatus,
    InsuranceStatus,
    InvoiceStatus,
    IssueSeverity,
    IssueType,
    RentStatus,
)
from .insurance import effective_insurance_status

# -----------------------------------------------------------------------------
# Tenant standing (pure)
# -----------------------------------------------------------------------------
# evaluate_compliance() is a pure function of a ComplianceInputs snapshot and
# `now`. The service layer loads the snapshot fresh on every call; nothing
# here is cached or persisted.
# -----------------------------------------------------------------------------

RENT_DUE_SOON_DAYS = 7
LEASE_EXPIRY_WARNING_DAYS = 90
PROFILE_CHECKS = 4

PAYMENTS_URL = "/tenant/payments"
INSURANCE_URL = "/tenant/insurance"
CHECKLIST_URL = "/tenant/checklist"


def days_until(when: datetime, now: datetime) -> int:
    """Whole days from now until `when`, rounded up (negative once passed)."""
    return math.ceil((when - now).total_seconds() / 86400.0)


def _plural(n: int, word: str) -> str:
    return f"{n} {word}" if n == 1 else f"{n} {word}s"


# -----------------------------
# Inputs
# -----------------------------
@dataclass(frozen=True)
class InvoiceSnapshot:
    period_month: str
    status: str
    due_date: datetime


@dataclass(frozen=True)
class ChecklistCounts:
    completed: int = 0
    total: int = 0
    required_completed: int = 0
    required_total: int = 0

    @classmethod
    def from_items(cls, items: Iterable[Any]) -> "ChecklistCounts":
        completed = total = required_completed = required_total = 0
        for it in items:
            total += 1
            done = bool(getattr(it, "is_completed", False))
            if done:
                completed += 1
            if getattr(it, "is_required", False):
                required_total += 1
                if done:
                    required_completed += 1
        return cls(completed, total, required_completed, required_total)

    @property
    def fully_completed(self) -> bool:
        # an empty checklist has nothing outstanding
        return self.completed >= self.total

    def as_dict(self) -> dict:
        return {
            "completed": self.completed,
            "total": self.total,
            "required_completed": self.required_completed,
            "required_total": self.required_total,
        }


@dataclass(frozen=True)
class ComplianceInputs:
    has_tenancy: bool
    phone: Optional[str] = None
    insurance_status: Optional[str] = None
    insurance_expires_at: Optional[datetime] = None
    lease_end_date: Optional[datetime] = None
    current_invoice: Optional[InvoiceSnapshot] = None  # earliest OPEN/OVERDUE by due date
    has_paid_invoice: bool = False
    documents_count: int = 0
    checklist: ChecklistCounts = field(default_factory=ChecklistCounts)


# -----------------------------
# Outputs
# -----------------------------
@dataclass(frozen=True)
class ComplianceIssue:
    type: IssueType
    severity: IssueSeverity
    title: str
    description: str
    action_url: str
    due_date: Optional[datetime] = None

    def as_dict(self) -> dict:
        out = {
            "type": self.type.value,
            "severity": self.severity.value,
            "title": self.title,
            "description": self.description,
            "action_url": self.action_url,
        }
        if self.due_date is not None:
            out["due_date"] = self.due_date
        return out


@dataclass(frozen=True)
class LeaseExpiry:
    end_date: Optional[datetime]
    days_remaining: Optional[int]
    show_warning: bool

    def as_dict(self) -> dict:
        return {
            "end_date": self.end_date,
            "days_remaining": self.days_remaining,
            "show_warning": self.show_warning,
        }


@dataclass(frozen=True)
class ProfileCompletion:
    percentage: int
    missing_items: tuple[str, ...]

    def as_dict(self) -> dict:
        return {"percentage": self.percentage, "missing_items": list(self.missing_items)}


@dataclass(frozen=True)
class ComplianceSummary:
    rent_status: RentStatus
    insurance_status: InsuranceStatus
    documents_count: int
    checklist_progress: ChecklistCounts

    def as_dict(self) -> dict:
        return {
            "rent_status": self.rent_status.value,
            "insurance_status": self.insurance_status.value,
            "documents_count": self.documents_count,
            "checklist_progress": self.checklist_progress.as_dict(),
        }


@dataclass(frozen=True)
class ComplianceSnapshot:
    status: ComplianceStatus
    issues: tuple[ComplianceIssue, ...]
    summary: ComplianceSummary
    lease_expiry: Optional[LeaseExpiry]
    profile_completion: ProfileCompletion

    def as_dict(self) -> dict:
        return {
            "status": self.status.value,
            "issues": [i.as_dict() for i in self.issues],
            "summary": self.summary.as_dict(),
            "lease_expiry": self.lease_expiry.as_dict() if self.lease_expiry else None,
            "profile_completion": self.profile_completion.as_dict(),
        }


# -----------------------------
# Steps
# -----------------------------
def evaluate_rent(
    invoice: Optional[InvoiceSnapshot],
    *,
    has_paid_invoice: bool,
    now: datetime,
) -> tuple[RentStatus, Optional[ComplianceIssue]]:
    if invoice is None:
        return (RentStatus.PAID if has_paid_invoice else RentStatus.NO_INVOICE), None

    days = days_until(invoice.due_date, now)

    if invoice.status == InvoiceStatus.OVERDUE.value or days <= 0:
        verb = "is overdue" if invoice.status == InvoiceStatus.OVERDUE.value else "is past due"
        return RentStatus.OVERDUE, ComplianceIssue(
            type=IssueType.RENT_OVERDUE,
            severity=IssueSeverity.CRITICAL,
            title="Rent Payment Overdue",
            description=f"Your rent payment for {invoice.period_month} {verb}. Please make payment immediately.",
            action_url=PAYMENTS_URL,
            due_date=invoice.due_date,
        )

    if days <= RENT_DUE_SOON_DAYS:
        return RentStatus.DUE, ComplianceIssue(
            type=IssueType.RENT_DUE,
            severity=IssueSeverity.WARNING,
            title="Rent Payment Due Soon",
            description=f"Your rent payment for {invoice.period_month} is due in {_plural(days, 'day')}.",
            action_url=PAYMENTS_URL,
            due_date=invoice.due_date,
        )

    return RentStatus.DUE, None


def insurance_issue(status: InsuranceStatus, *, expires_at: Optional[datetime]) -> Optional[ComplianceIssue]:
    if status == InsuranceStatus.MISSING:
        return ComplianceIssue(
            type=IssueType.INSURANCE_MISSING,
            severity=IssueSeverity.WARNING,
            title="Insurance Required",
            description="Please upload proof of renter's insurance to comply with your lease terms.",
            action_url=INSURANCE_URL,
        )
    if status == InsuranceStatus.EXPIRED:
        return ComplianceIssue(
            type=IssueType.INSURANCE_EXPIRED,
            severity=IssueSeverity.CRITICAL,
            title="Insurance Expired",
            description="Your renter's insurance has expired. Please upload a new policy document.",
            action_url=INSURANCE_URL,
            due_date=expires_at,
        )
    if status == InsuranceStatus.PENDING:
        return ComplianceIssue(
            type=IssueType.INSURANCE_MISSING,
            severity=IssueSeverity.WARNING,
            title="Insurance Pending Review",
            description="Your insurance document is pending admin review.",
            action_url=INSURANCE_URL,
        )
    if status == InsuranceStatus.REJECTED:
        return ComplianceIssue(
            type=IssueType.INSURANCE_MISSING,
            severity=IssueSeverity.WARNING,
            title="Insurance Rejected",
            description="Your insurance document was rejected. Please upload a valid policy.",
            action_url=INSURANCE_URL,
        )
    return None


def checklist_issue(counts: ChecklistCounts) -> Optional[ComplianceIssue]:
    outstanding = counts.required_total - counts.required_completed
    if outstanding <= 0:
        return None
    return ComplianceIssue(
        type=IssueType.CHECKLIST_INCOMPLETE,
        severity=IssueSeverity.WARNING,
        title="Checklist Incomplete",
        description=f"You have {_plural(outstanding, 'required item')} to complete on your checklist.",
        action_url=CHECKLIST_URL,
    )


def evaluate_lease_expiry(*, has_tenancy: bool, end_date: Optional[datetime], now: datetime) -> Optional[LeaseExpiry]:
    if not has_tenancy:
        return None
    if end_date is None:
        # month-to-month
        return LeaseExpiry(end_date=None, days_remaining=None, show_warning=False)

    days = days_until(end_date, now)
    return LeaseExpiry(
        end_date=end_date,
        days_remaining=max(0, days),
        show_warning=0 < days <= LEASE_EXPIRY_WARNING_DAYS,
    )


def evaluate_profile(
    *,
    phone: Optional[str],
    insurance: InsuranceStatus,
    documents_count: int,
    checklist: ChecklistCounts,
) -> ProfileCompletion:
    missing: list[str] = []
    if not (phone or "").strip():
        missing.append("Phone number")
    if insurance != InsuranceStatus.APPROVED:
        missing.append("Insurance verification")
    if documents_count <= 0:
        missing.append("Lease documents")
    if not checklist.fully_completed:
        missing.append("Move-in checklist")

    pct = round((PROFILE_CHECKS - len(missing)) / PROFILE_CHECKS * 100)
    return ProfileCompletion(percentage=int(pct), missing_items=tuple(missing))


def overall_status(
    *,
    rent: RentStatus,
    insurance: InsuranceStatus,
    issues: Iterable[ComplianceIssue],
) -> ComplianceStatus:
    # critical conditions dominate regardless of how many warnings coexist
    if rent == RentStatus.OVERDUE or insurance == InsuranceStatus.EXPIRED:
        return ComplianceStatus.NOT_IN_COMPLIANCE
    if any(True for _ in issues):
        return ComplianceStatus.ACTION_REQUIRED
    return ComplianceStatus.GOOD_STANDING


def evaluate_compliance(inputs: ComplianceInputs, *, now: datetime) -> ComplianceSnapshot:
    issues: list[ComplianceIssue] = []

    rent, rent_issue = evaluate_rent(
        inputs.current_invoice if inputs.has_tenancy else None,
        has_paid_invoice=inputs.has_tenancy and inputs.has_paid_invoice,
        now=now,
    )
    if rent_issue:
        issues.append(rent_issue)

    insurance = effective_insurance_status(inputs.insurance_status, inputs.insurance_expires_at, now=now)
    ins_issue = insurance_issue(insurance, expires_at=inputs.insurance_expires_at)
    if ins_issue:
        issues.append(ins_issue)

    cl_issue = checklist_issue(inputs.checklist)
    if cl_issue:
        issues.append(cl_issue)

    lease = evaluate_lease_expiry(has_tenancy=inputs.has_tenancy, end_date=inputs.lease_end_date, now=now)

    profile = evaluate_profile(
        phone=inputs.phone,
        insurance=insurance,
        documents_count=inputs.documents_count,
        checklist=inputs.checklist,
    )

    return ComplianceSnapshot(
        status=overall_status(rent=rent, insurance=insurance, issues=issues),
        issues=tuple(issues),
        summary=ComplianceSummary(
            rent_status=rent,
            insurance_status=insurance,
            documents_count=inputs.documents_count,
            checklist_progress=inputs.checklist,
        ),
        lease_expiry=lease,
        profile_completion=profile,
    )
