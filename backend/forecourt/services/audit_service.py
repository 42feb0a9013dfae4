# Overview: Append-only audit recorder written inside the shift-closure transaction.

from __future__ import annotations

import json
from typing import Any, Optional
from datetime import datetime

from ..extensions import db
from ..models import AuditEvent
from forecourt.time_utils import utcnow
"""
Audit Invariants (authoritative)

- Append-only; no updates or deletes of existing events.
- No domain/business logic in the recorder itself.
- Events are written inside the same DB transaction as the change they record,
  so a rolled-back closure leaves no audit trace.
- occurred_at is business time; created_at is system time (DB default).
"""


def append_audit_event(
    *,
    location_id: int,
    event_type: str,
    event_category: str,
    entity_type: str,
    entity_id: int,
    actor_id: int | None = None,
    shift_id: int | None = None,
    occurred_at: Optional[datetime] = None,
    note: Optional[str] = None,
    payload: Optional[dict[str, Any]] = None,
) -> AuditEvent:
    """Flush (never commit) one audit event."""
    ev = AuditEvent(
        location_id=location_id,
        event_type=event_type,
        event_category=event_category,
        entity_type=entity_type,
        entity_id=entity_id,
        actor_id=actor_id,
        shift_id=shift_id,
        occurred_at=occurred_at or utcnow(),
        note=note[:255] if note else None,
        payload=json.dumps(payload, sort_keys=True, default=str) if payload is not None else None,
    )
    db.session.add(ev)
    db.session.flush()  # ensures ev.id is assigned without committing
    return ev


def list_shift_events(shift_id: int) -> list[AuditEvent]:
    return db.session.query(AuditEvent).filter_by(
        shift_id=shift_id
    ).order_by(AuditEvent.id.asc()).all()
