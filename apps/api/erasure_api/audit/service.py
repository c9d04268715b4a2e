"""Audit trail service with per-org hash chaining."""

import hashlib
import json
from typing import Optional

from sqlalchemy.orm import Session

from erasure_api.models import AuditEvent, DeletionRequest
from erasure_api.serializers import serialize_event, serialize_job, serialize_request
from erasure_api.utils.common import utcnow

SYSTEM_REQUEST_ID = "system"
EXPORT_VERSION = 1


class AuditTrail:
    """Append-only, tamper-evident audit events.

    Each event hashes its own content together with the previous event hash
    of the same org, so editing or deleting a row breaks ``verify_chain``.
    Appends only flush; the caller owns the transaction so the audit row
    commits atomically with the change it describes.
    """

    def __init__(self, db: Session):
        """Initialize audit trail."""
        self.db = db

    def _hash_event(self, event_data: dict) -> str:
        """Compute hash of event data."""
        event_str = json.dumps(event_data, sort_keys=True, default=str)
        return hashlib.sha256(event_str.encode()).hexdigest()

    def _event_data(self, event: AuditEvent) -> dict:
        return {
            "org_id": event.org_id,
            "request_id": event.request_id,
            "type": event.type,
            "actor": event.actor,
            "details": event.details_json,
            "previous_hash": event.previous_event_hash,
            "timestamp": event.ts.isoformat(),
        }

    def _get_last_event_hash(self, org_id: str) -> Optional[str]:
        """Get hash of last event for org."""
        last_event = (
            self.db.query(AuditEvent)
            .filter(AuditEvent.org_id == org_id)
            .order_by(AuditEvent.id.desc())
            .first()
        )
        return last_event.event_hash if last_event else None

    def append(
        self,
        org_id: str,
        request_id: Optional[str],
        event_type: str,
        actor: Optional[str],
        details: Optional[dict] = None,
    ) -> AuditEvent:
        """Append an event to the org's chain."""
        event = AuditEvent(
            org_id=org_id,
            request_id=request_id or SYSTEM_REQUEST_ID,
            ts=utcnow(),
            type=event_type,
            actor=actor,
            details_json=details or {},
            previous_event_hash=self._get_last_event_hash(org_id),
        )
        event.event_hash = self._hash_event(self._event_data(event))

        self.db.add(event)
        self.db.flush()
        return event

    def list_for_request(self, org_id: str, request_id: str) -> list[AuditEvent]:
        """Events for one request in append order."""
        return (
            self.db.query(AuditEvent)
            .filter(AuditEvent.org_id == org_id, AuditEvent.request_id == request_id)
            .order_by(AuditEvent.id.asc())
            .all()
        )

    def list_recent(self, org_id: str, limit: int = 100) -> list[AuditEvent]:
        """Most recent events for the org."""
        return (
            self.db.query(AuditEvent)
            .filter(AuditEvent.org_id == org_id)
            .order_by(AuditEvent.id.desc())
            .limit(limit)
            .all()
        )

    def export_request(self, request: DeletionRequest) -> dict:
        """Versioned export of a request, its audit events and its cascade jobs."""
        events = self.list_for_request(request.org_id, request.id)
        jobs = sorted(request.cascade_jobs, key=lambda job: (job.updated_at, job.id))
        return {
            "exportVersion": EXPORT_VERSION,
            "exportedAt": utcnow().isoformat(),
            "chainValid": self.verify_chain(request.org_id),
            "request": serialize_request(request),
            "events": [serialize_event(event) for event in events],
            "cascades": [serialize_job(job) for job in jobs],
        }

    def verify_chain(self, org_id: str) -> bool:
        """Verify hash chain integrity for org."""
        events = (
            self.db.query(AuditEvent)
            .filter(AuditEvent.org_id == org_id)
            .order_by(AuditEvent.id.asc())
            .all()
        )

        previous_hash = None
        for event in events:
            if event.previous_event_hash != previous_hash:
                return False
            if self._hash_event(self._event_data(event)) != event.event_hash:
                return False
            previous_hash = event.event_hash

        return True

