# Overview: Append-only audit trail for ledger-affecting events.

from __future__ import annotations

import json
from datetime import datetime
from typing import Optional

from ..extensions import db
from ..models import AuditEvent
from ..time_utils import utcnow

"""
Audit trail invariants

- Append-only; events are never updated or deleted.
- Written inside the same DB transaction as the domain event they record,
  so a rolled-back operation leaves no audit row behind.
- occurred_at is business time; created_at is system time (DB default).
"""


def append_audit_event(
    *,
    event_type: str,
    event_category: str,
    entity_type: str,
    entity_id: int,
    actor_id: str | None = None,
    occurred_at: Optional[datetime] = None,
    note: Optional[str] = None,
    payload: dict | str | None = None,
) -> AuditEvent:
    if isinstance(payload, dict):
        payload = json.dumps(payload, sort_keys=True, default=str)

    ev = AuditEvent(
        event_type=event_type,
        event_category=event_category,
        entity_type=entity_type,
        entity_id=entity_id,
        actor_id=actor_id,
        occurred_at=occurred_at or utcnow(),
        note=note,
        payload=payload,
    )
    db.session.add(ev)
    db.session.flush()
    return ev

