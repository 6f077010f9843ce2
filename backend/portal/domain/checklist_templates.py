# backend/portal/domain/checklist_templates.py
from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping

from .enums import ChecklistItemType, ChecklistType, InspectionCategory

# -----------------------------------------------------------------------------
# Static checklist tables
# -----------------------------------------------------------------------------
# These are read-only: MappingProxyType over tuples/frozensets keyed by the
# enum members, so the set of defaults and the tenant allow-list are closed
# and cannot be mutated at runtime.
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class DefaultChecklistItem:
    item_type: ChecklistItemType
    title: str
    description: str
    is_required: bool = True


@dataclass(frozen=True)
class CategoryDefinition:
    category: InspectionCategory
    label: str


DEFAULT_CHECKLIST_ITEMS: Mapping[ChecklistType, tuple[DefaultChecklistItem, ...]] = MappingProxyType(
    {
        ChecklistType.MOVE_IN: (
            DefaultChecklistItem(
                ChecklistItemType.LEASE_SIGNED,
                "Lease Agreement Signed",
                "The lease agreement has been signed by all parties",
            ),
            DefaultChecklistItem(
                ChecklistItemType.INSURANCE_UPLOADED,
                "Renter's Insurance Uploaded",
                "Valid renter's insurance has been uploaded and verified",
            ),
            DefaultChecklistItem(
                ChecklistItemType.INITIAL_PAYMENT,
                "Initial Payment Complete",
                "First month's rent and deposit have been paid",
            ),
            DefaultChecklistItem(
                ChecklistItemType.MOVE_IN_INSPECTION,
                "Move-in Inspection Complete",
                "Move-in inspection has been completed and documented",
            ),
            DefaultChecklistItem(
                ChecklistItemType.KEYS_RECEIVED,
                "Keys Received",
                "Tenant has received all keys and access cards",
            ),
        ),
        ChecklistType.MOVE_OUT: (
            DefaultChecklistItem(
                ChecklistItemType.FORWARDING_ADDRESS,
                "Forwarding Address Provided",
                "Tenant has provided a forwarding address for final correspondence and deposit return",
            ),
            DefaultChecklistItem(
                ChecklistItemType.FINAL_CLEAN,
                "Final Clean of Unit",
                "Unit has been cleaned and is move-out ready",
            ),
            DefaultChecklistItem(
                ChecklistItemType.KEYS_RETURNED,
                "Keys Returned",
                "All keys and access cards have been returned",
            ),
            DefaultChecklistItem(
                ChecklistItemType.UTILITIES_TRANSFERRED,
                "Utilities Transferred",
                "Utilities have been transferred out of tenant's name",
            ),
            DefaultChecklistItem(
                ChecklistItemType.MOVE_OUT_INSPECTION,
                "Move-out Inspection Complete",
                "Move-out inspection has been completed and documented",
            ),
        ),
    }
)

# Item types a TENANT may mark complete themselves, per checklist type.
SELF_COMPLETABLE_ITEM_TYPES: Mapping[ChecklistType, frozenset[ChecklistItemType]] = MappingProxyType(
    {
        ChecklistType.MOVE_IN: frozenset({ChecklistItemType.INSURANCE_UPLOADED}),
        ChecklistType.MOVE_OUT: frozenset(
            {ChecklistItemType.FORWARDING_ADDRESS, ChecklistItemType.UTILITIES_TRANSFERRED}
        ),
    }
)

DEFAULT_CATEGORIES: tuple[CategoryDefinition, ...] = (
    CategoryDefinition(InspectionCategory.KEYS_ACCESS, "Keys & Access"),
    CategoryDefinition(InspectionCategory.WALLS_PAINT, "Walls & Paint"),
    CategoryDefinition(InspectionCategory.FLOORS, "Floors"),
    CategoryDefinition(InspectionCategory.KITCHEN, "Kitchen"),
    CategoryDefinition(InspectionCategory.BATHROOM, "Bathroom"),
    CategoryDefinition(InspectionCategory.APPLIANCES, "Appliances"),
    CategoryDefinition(InspectionCategory.DOORS_WINDOWS, "Doors & Windows"),
)

CATEGORY_LABELS: Mapping[str, str] = MappingProxyType({c.category.value: c.label for c in DEFAULT_CATEGORIES})


def default_items_for(checklist_type: str) -> tuple[DefaultChecklistItem, ...]:
    return DEFAULT_CHECKLIST_ITEMS[ChecklistType(checklist_type)]


def is_self_completable(checklist_type: str, item_type: str) -> bool:
    try:
        ct = ChecklistType(checklist_type)
        it = ChecklistItemType(item_type)
    except ValueError:
        return False
    return it in SELF_COMPLETABLE_ITEM_TYPES.get(ct, frozenset())


def is_default_item_type(item_type: str) -> bool:
    return (item_type or "") != ChecklistItemType.CUSTOM.value


def category_label(category: str) -> str:
    return CATEGORY_LABELS.get(category, category.replace("_", " ").title())
