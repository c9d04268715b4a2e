"""Audit trail routes."""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from erasure_api.audit.service import AuditTrail
from erasure_api.auth.api_key import AuthContext, get_auth_context
from erasure_api.db.session import get_db
from erasure_api.routes.requests import get_owned_request
from erasure_api.serializers import serialize_event

router = APIRouter(prefix="/v1", tags=["audit"])


@router.get("/audit")
async def list_audit_events(
    request_id: Optional[str] = Query(None, alias="requestId"),
    limit: int = Query(100, ge=1, le=500),
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    """List audit events for one request in append order, or the org's most recent events."""
    trail = AuditTrail(db)
    if request_id is None:
        events = trail.list_recent(auth.org_id, limit=limit)
    else:
        request = get_owned_request(db, auth.org_id, request_id)
        events = trail.list_for_request(auth.org_id, request.id)
    return {"items": [serialize_event(event) for event in events]}


@router.get("/audit/verify")
async def verify_audit_chain(
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    """Check the org's hash chain end to end."""
    return {"ok": True, "chainValid": AuditTrail(db).verify_chain(auth.org_id)}


@router.get("/audit/requests/{request_id}/export")
async def export_request_audit(
    request_id: str,
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    """Export a request with its audit events and cascade jobs."""
    request = get_owned_request(db, auth.org_id, request_id)
    return AuditTrail(db).export_request(request)
