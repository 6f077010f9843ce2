# backend/portal/services/notifications.py
from __future__ import annotations

import html as html_lib
import logging
from dataclasses import dataclass
from typing import Any, Optional

from kombu.exceptions import OperationalError

from ..config import settings
from ..workers.notification_tasks import send_email

log = logging.getLogger("portal.notifications")


@dataclass(frozen=True)
class RenderedEmail:
    notification_type: str
    subject: str
    html: str
    text: str


def _wrap(title: str, greeting_name: Optional[str], body_html: str, link_path: str, link_label: str) -> str:
    name = html_lib.escape(greeting_name or "there")
    url = f"{settings.portal_url.rstrip('/')}{link_path}"
    return (
        '<div style="font-family: Georgia, serif; max-width: 600px; margin: 0 auto; padding: 20px;">'
        f'<h2 style="color: #1a1a1a;">{html_lib.escape(title)}</h2>'
        f"<p>Hello {name},</p>"
        f"{body_html}"
        f'<p><a href="{url}" style="color: #2563eb;">{html_lib.escape(link_label)}</a></p>'
        "</div>"
    )


# -----------------------------
# Templates
# -----------------------------
def render_checklist_reminder(*, tenant_name: Optional[str], items_remaining: int) -> RenderedEmail:
    body = (
        "<p>This is a friendly reminder to complete your move-in checklist.</p>"
        f"<p><strong>Items Remaining:</strong> {items_remaining}</p>"
    )
    return RenderedEmail(
        notification_type="MOVE_IN_CHECKLIST_REMINDER",
        subject="Move-In Checklist Reminder",
        html=_wrap("Checklist Reminder", tenant_name, body, "/portal/checklists", "Complete Checklist"),
        text=f"Reminder: {items_remaining} move-in checklist item(s) remaining.",
    )


def render_condition_report_finalized(
    *,
    tenant_name: Optional[str],
    record_label: str,
    inspection_type: str,
) -> RenderedEmail:
    phase = "Move-in" if inspection_type == "MOVE_IN" else "Move-out"
    title = f"{phase} {record_label} Finalized"
    body = (
        f"<p>Your {phase.lower()} {record_label.lower()} has been completed and finalized.</p>"
        "<p>You can review the recorded conditions and photos in the portal.</p>"
    )
    return RenderedEmail(
        notification_type="CONDITION_REPORT_FINALIZED",
        subject=title,
        html=_wrap(title, tenant_name, body, "/portal/inspections", "View Report"),
        text=f"Your {phase.lower()} {record_label.lower()} has been finalized.",
    )


def render_insurance_reminder(*, tenant_name: Optional[str]) -> RenderedEmail:
    body = (
        "<p>This is a reminder that we require proof of renters insurance for your unit.</p>"
        "<p>Per your lease agreement, all tenants must keep active renters insurance on file "
        "with management.</p>"
        "<p>Please log in to the tenant portal and submit your policy details.</p>"
    )
    return RenderedEmail(
        notification_type="INSURANCE_REMINDER",
        subject="Reminder: Renters Insurance Required",
        html=_wrap("Renters Insurance Required", tenant_name, body, "/portal/insurance", "Upload Insurance"),
        text="Reminder: please submit proof of renters insurance in the tenant portal.",
    )


# -----------------------------
# Dispatch (fire-and-forget)
# -----------------------------
def dispatch_email(*, to: Optional[str], message: RenderedEmail, metadata: Optional[dict[str, Any]] = None) -> bool:
    """
    Queue an e-mail for the worker. Never raises: a broker outage is logged
    and reported as False, the caller's request still succeeds.
    """
    if not to:
        log.info("email not queued: no recipient", extra={"action": message.notification_type})
        return False

    meta = {"notification_type": message.notification_type, **(metadata or {})}
    try:
        send_email.delay(to=to, subject=message.subject, html=message.html, text=message.text, metadata=meta)
    except OperationalError:
        log.warning("email not queued: broker unavailable", exc_info=True, extra={"action": message.notification_type})
        return False

    log.info("email queued", extra={"action": message.notification_type})
    return True
