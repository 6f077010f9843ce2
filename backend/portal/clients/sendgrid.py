# backend/portal/clients/sendgrid.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

import httpx

from ..config import settings

# 429 and 5xx are worth another attempt; other 4xx mean the payload is wrong
RETRYABLE_STATUS = frozenset({429, 500, 502, 503, 504})


@dataclass(frozen=True)
class EmailSendResult:
    sent: bool
    status_code: Optional[int] = None
    error: Optional[str] = None
    retryable: bool = False
    raw: dict[str, Any] = field(default_factory=dict)

    def as_dict(self) -> dict:
        return {
            "sent": self.sent,
            "status_code": self.status_code,
            "error": self.error,
            "retryable": self.retryable,
        }


class SendGridClient:
    def __init__(self, *, api_key: Optional[str] = None, transport: Optional[httpx.BaseTransport] = None) -> None:
        self.base = settings.sendgrid_base_url.rstrip("/")
        self.api_key = api_key if api_key is not None else settings.sendgrid_api_key
        self.transport = transport
        self.from_address = settings.email_from_address
        self.from_name = settings.email_from_name

    def enabled(self) -> bool:
        return bool(self.api_key)

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    def _payload(self, *, to: str, subject: str, html: str, text: Optional[str], categories: list[str]) -> dict:
        content = []
        if text:
            content.append({"type": "text/plain", "value": text})
        content.append({"type": "text/html", "value": html})

        payload: dict[str, Any] = {
            "personalizations": [{"to": [{"email": to}]}],
            "from": {"email": self.from_address, "name": self.from_name},
            "subject": subject,
            "content": content,
        }
        if categories:
            payload["categories"] = categories
        return payload

    def send(
        self,
        *,
        to: str,
        subject: str,
        html: str,
        text: Optional[str] = None,
        categories: Optional[list[str]] = None,
    ) -> EmailSendResult:
        if not self.api_key:
            return EmailSendResult(sent=False, error="sendgrid_api_key not set")

        url = f"{self.base}/mail/send"
        body = self._payload(to=to, subject=subject, html=html, text=text, categories=list(categories or []))

        try:
            with httpx.Client(timeout=20.0, transport=self.transport) as client:
                r = client.post(url, headers=self._headers(), json=body)
        except httpx.HTTPError as e:
            return EmailSendResult(sent=False, error=str(e), retryable=True)

        # SendGrid answers 202 Accepted with an empty body on success
        if r.status_code in (200, 202):
            return EmailSendResult(sent=True, status_code=r.status_code)

        return EmailSendResult(
            sent=False,
            status_code=r.status_code,
            error=r.text[:500],
            retryable=r.status_code in RETRYABLE_STATUS,
        )
