# backend/portal/domain/audit.py
from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Any, Optional

from sqlalchemy.orm import Session

from ..models import AuditEvent

log = logging.getLogger("portal.audit")


def _dumps(v: Optional[dict[str, Any]]) -> Optional[str]:
    if v is None:
        return None
    return json.dumps(v, sort_keys=True, default=str)


def audit_write(
    db: Session,
    *,
    actor_user_id: Optional[int],
    action: str,
    entity_type: str,
    entity_id: Any,
    before: Optional[dict[str, Any]] = None,
    after: Optional[dict[str, Any]] = None,
    commit: bool = False,
) -> AuditEvent:
    """
    Preferred audit writer.

    - Does NOT commit by default, so the audit row lands in the same
      transaction as the change it describes (and disappears with it on rollback).
    - Also emits one log line, so the trail is visible before the commit.
    - Returns the AuditEvent row for tests / introspection.
    """
    row = AuditEvent(
        actor_user_id=actor_user_id,
        action=action,
        entity_type=entity_type,
        entity_id=str(entity_id),
        before_json=_dumps(before),
        after_json=_dumps(after),
        created_at=datetime.utcnow(),
    )
    db.add(row)

    log.info(
        "audit %s %s:%s",
        action,
        entity_type,
        entity_id,
        extra={"user_id": actor_user_id, "action": action, "record_id": str(entity_id)},
    )

    if commit:
        db.commit()
        db.refresh(row)
    return row


def snapshot_lock(record: Any) -> dict[str, Any]:
    """Before/after payload for lock transitions."""
    return {
        "status": getattr(record, "status", None),
        "is_finalized": bool(getattr(record, "is_finalized", False)),
        "finalized_at": getattr(record, "finalized_at", None),
        "finalized_by_id": getattr(record, "finalized_by_id", None),
    }
