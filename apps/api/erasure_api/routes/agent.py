"""Agent-facing routes, authenticated by connector bearer token."""

import json
import logging
from typing import Any, Optional, Union

from fastapi import APIRouter, Depends
from pydantic import Field
from sqlalchemy.orm import Session

from erasure_api.audit.service import AuditTrail
from erasure_api.auth.api_key import ConnectorContext, get_connector_context
from erasure_api.db.session import get_db
from erasure_api.models import Connector
from erasure_api.routes.schemas import CamelModel
from erasure_api.utils import metrics
from erasure_api.utils.common import utcnow

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/agent", tags=["agent"])

AGENT_ACTOR = "agent"
EVENT_TYPE_LIMIT = 60
DETAILS_SIZE_LIMIT = 100_000


class HeartbeatBody(CamelModel):
    agent_version: Optional[str] = Field(default=None, max_length=60)


class AgentEvent(CamelModel):
    """One event reported by an agent; unknown keys are dropped."""

    type: str = Field(min_length=1)
    request_id: Optional[str] = Field(default=None, max_length=64)
    request_ref: Optional[str] = Field(default=None, max_length=64)
    subject_hash: Optional[str] = None
    matched: Optional[bool] = None
    match_count: Optional[int] = None
    run_id: Optional[str] = None
    stats: Optional[dict[str, Any]] = None
    details: Optional[dict[str, Any]] = None

    def audit_details(self) -> dict:
        details = dict(self.details or {})
        if self.subject_hash is not None:
            details["subjectHash"] = self.subject_hash
        if self.matched is not None:
            details["matched"] = self.matched
        if self.match_count is not None:
            details["matchCount"] = self.match_count
        if self.run_id is not None:
            details["runId"] = self.run_id
        if self.stats is not None:
            details["stats"] = self.stats
        if len(json.dumps(details, default=str)) > DETAILS_SIZE_LIMIT:
            return {"truncated": True}
        return details


@router.post("/heartbeat")
async def heartbeat(
    body: Optional[HeartbeatBody] = None,
    connector: ConnectorContext = Depends(get_connector_context),
    db: Session = Depends(get_db),
):
    """Mark the connector online."""
    now = utcnow()
    record = (
        db.query(Connector)
        .filter(Connector.id == connector.connector_id, Connector.org_id == connector.org_id)
        .first()
    )
    if record:
        record.last_heartbeat_at = now
        record.agent_version = body.agent_version if body else None
        record.status = "ONLINE"
        db.commit()
    return {"ok": True, "receivedAt": now.isoformat()}


@router.post("/events")
async def ingest_events(
    body: Union[list[AgentEvent], AgentEvent],
    connector: ConnectorContext = Depends(get_connector_context),
    db: Session = Depends(get_db),
):
    """Append agent events to the org's audit trail."""
    events = body if isinstance(body, list) else [body]
    trail = AuditTrail(db)
    for event in events:
        trail.append(
            org_id=connector.org_id,
            request_id=event.request_id or event.request_ref,
            event_type=event.type[:EVENT_TYPE_LIMIT],
            actor=AGENT_ACTOR,
            details=event.audit_details(),
        )
    db.commit()
    metrics.agent_events.inc(len(events))

    logger.info(
        f"Received {len(events)} agent events",
        extra={"org_id": connector.org_id, "connector_id": connector.connector_id},
    )
    return {"ok": True, "received": len(events)}
