# backend/portal/domain/enums.py
from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    ADMIN = "ADMIN"
    TENANT = "TENANT"


# -----------------------------
# Checklists
# -----------------------------
class ChecklistType(str, Enum):
    MOVE_IN = "MOVE_IN"
    MOVE_OUT = "MOVE_OUT"


class ChecklistItemType(str, Enum):
    LEASE_SIGNED = "LEASE_SIGNED"
    INSURANCE_UPLOADED = "INSURANCE_UPLOADED"
    INITIAL_PAYMENT = "INITIAL_PAYMENT"
    MOVE_IN_INSPECTION = "MOVE_IN_INSPECTION"
    KEYS_RECEIVED = "KEYS_RECEIVED"
    MOVE_OUT_INSPECTION = "MOVE_OUT_INSPECTION"
    FORWARDING_ADDRESS = "FORWARDING_ADDRESS"
    FINAL_CLEAN = "FINAL_CLEAN"
    KEYS_RETURNED = "KEYS_RETURNED"
    UTILITIES_TRANSFERRED = "UTILITIES_TRANSFERRED"
    CUSTOM = "CUSTOM"


class RecordStatus(str, Enum):
    """Status axis of a lockable record; the finalize lock is a separate flag."""

    NOT_STARTED = "NOT_STARTED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"


# -----------------------------
# Condition-graded checklists
# -----------------------------
class InspectionType(str, Enum):
    MOVE_IN = "MOVE_IN"
    MOVE_OUT = "MOVE_OUT"


class ConditionRecordKind(str, Enum):
    INSPECTION = "INSPECTION"
    MOVE_OUT_CHECKLIST = "MOVE_OUT_CHECKLIST"


class InspectionCategory(str, Enum):
    KEYS_ACCESS = "KEYS_ACCESS"
    WALLS_PAINT = "WALLS_PAINT"
    FLOORS = "FLOORS"
    KITCHEN = "KITCHEN"
    BATHROOM = "BATHROOM"
    APPLIANCES = "APPLIANCES"
    DOORS_WINDOWS = "DOORS_WINDOWS"


class Condition(str, Enum):
    EXCELLENT = "EXCELLENT"
    GOOD = "GOOD"
    FAIR = "FAIR"
    POOR = "POOR"
    DAMAGED = "DAMAGED"


# conditions that count as damage evidence when a photo is attached
DAMAGE_CONDITIONS = frozenset({Condition.POOR.value, Condition.DAMAGED.value})


# -----------------------------
# Insurance / rent / standing
# -----------------------------
class InsuranceStatus(str, Enum):
    MISSING = "MISSING"
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    EXPIRED = "EXPIRED"


class InvoiceStatus(str, Enum):
    OPEN = "OPEN"
    OVERDUE = "OVERDUE"
    PAID = "PAID"
    VOID = "VOID"


class RentStatus(str, Enum):
    PAID = "PAID"
    DUE = "DUE"
    OVERDUE = "OVERDUE"
    NO_INVOICE = "NO_INVOICE"


class ComplianceStatus(str, Enum):
    GOOD_STANDING = "GOOD_STANDING"
    ACTION_REQUIRED = "ACTION_REQUIRED"
    NOT_IN_COMPLIANCE = "NOT_IN_COMPLIANCE"


class IssueType(str, Enum):
    RENT_OVERDUE = "RENT_OVERDUE"
    RENT_DUE = "RENT_DUE"
    INSURANCE_MISSING = "INSURANCE_MISSING"
    INSURANCE_EXPIRED = "INSURANCE_EXPIRED"
    CHECKLIST_INCOMPLETE = "CHECKLIST_INCOMPLETE"


class IssueSeverity(str, Enum):
    WARNING = "warning"
    CRITICAL = "critical"


# -----------------------------
# Admin overviews
# -----------------------------
class ProgressStatus(str, Enum):
    """Derived (never stored) status used by the admin overview lists."""

    WAIVED = "WAIVED"
    NOT_STARTED = "NOT_STARTED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"


class MoveOutFilter(str, Enum):
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    ALL = "all"
