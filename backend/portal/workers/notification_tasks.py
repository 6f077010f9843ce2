# backend/portal/workers/notification_tasks.py
from __future__ import annotations

import logging
import random
from typing import Any, Optional

from ..clients.sendgrid import SendGridClient
from .celery_app import celery_app

log = logging.getLogger("portal.notifications")


def _backoff_seconds(retries: int, *, base: int = 30, cap: int = 600) -> int:
    # exponential with +/- 20% jitter
    delay = min(cap, base * (2 ** max(0, int(retries))))
    jitter = int(delay * 0.2)
    if jitter > 0:
        delay = max(1, delay + random.randint(-jitter, jitter))
    return delay


@celery_app.task(
    bind=True,
    max_retries=3,
    default_retry_delay=30,
    name="portal.notifications.send_email",
)
def send_email(
    self,
    to: str,
    subject: str,
    html: str,
    text: Optional[str] = None,
    metadata: Optional[dict[str, Any]] = None,
) -> dict:
    """
    Deliver one rendered e-mail.

    Retries transient SendGrid/network failures with backoff; permanent
    failures (bad payload, auth) are logged and dropped.
    """
    meta = dict(metadata or {})
    client = SendGridClient()
    if not client.enabled():
        log.info("email skipped: sendgrid not configured", extra={"action": meta.get("notification_type")})
        return {"sent": False, "reason": "disabled"}

    category = meta.get("notification_type")
    res = client.send(to=to, subject=subject, html=html, text=text, categories=[category] if category else None)

    if res.sent:
        log.info("email sent", extra={"action": category, "task_id": self.request.id})
        return res.as_dict()

    if res.retryable and self.request.retries < self.max_retries:
        log.warning(
            "email send failed, retrying: %s",
            res.error,
            extra={"action": category, "task_id": self.request.id},
        )
        raise self.retry(countdown=_backoff_seconds(self.request.retries))

    log.error("email send failed: %s", res.error, extra={"action": category, "task_id": self.request.id})
    return res.as_dict()
