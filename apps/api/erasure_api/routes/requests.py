"""Deletion request intake and cascade dispatch routes."""

from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import Field, field_validator
from sqlalchemy.orm import Session

from erasure_api.auth.api_key import AuthContext, get_auth_context
from erasure_api.cascade.dispatcher import CascadeDispatcher
from erasure_api.db.session import get_db
from erasure_api.models import DeletionRequest
from erasure_api.routes.schemas import CamelModel
from erasure_api.serializers import serialize_job, serialize_request
from erasure_api.utils.common import is_hex64, utcnow

router = APIRouter(prefix="/v1", tags=["requests"])

REQUEST_LIST_LIMIT = 200


class DeletionRequestCreate(CamelModel):
    """Deletion request intake. Identifiers arrive hashed, never raw."""

    subject_hash: str
    payload_hash: Optional[str] = None
    request_ref: Optional[str] = Field(default=None, max_length=255)
    system: str = Field(default="drop", min_length=1, max_length=80)
    meta: Optional[dict[str, Any]] = None

    @field_validator("subject_hash")
    @classmethod
    def _subject_hash_is_sha256(cls, value: str) -> str:
        if not is_hex64(value):
            raise ValueError("subjectHash must be 64 hex chars")
        return value.lower()

    @field_validator("payload_hash")
    @classmethod
    def _payload_hash_is_sha256(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not is_hex64(value):
            raise ValueError("payloadHash must be 64 hex chars")
        return value.lower() if value else value


def get_owned_request(db: Session, org_id: str, request_id: str) -> DeletionRequest:
    request = (
        db.query(DeletionRequest)
        .filter(DeletionRequest.id == request_id, DeletionRequest.org_id == org_id)
        .first()
    )
    if not request:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Request not found")
    return request


@router.post("/requests", status_code=status.HTTP_201_CREATED)
async def create_request(
    body: DeletionRequestCreate,
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    """Record a deletion request."""
    now = utcnow()
    request = DeletionRequest(
        org_id=auth.org_id,
        request_ref=body.request_ref,
        subject_hash=body.subject_hash,
        payload_hash=body.payload_hash,
        system=body.system,
        received_at=now,
        meta_json=body.meta,
        created_at=now,
    )
    db.add(request)
    db.commit()
    db.refresh(request)
    return serialize_request(request)


@router.get("/requests")
async def list_requests(
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    """List the org's most recent deletion requests."""
    requests = (
        db.query(DeletionRequest)
        .filter(DeletionRequest.org_id == auth.org_id)
        .order_by(DeletionRequest.created_at.desc())
        .limit(REQUEST_LIST_LIMIT)
        .all()
    )
    return {"requests": [serialize_request(r) for r in requests]}


@router.get("/requests/{request_id}")
async def get_request(
    request_id: str,
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    """Get a deletion request together with its cascade jobs."""
    request = get_owned_request(db, auth.org_id, request_id)
    return {
        **serialize_request(request),
        "cascadeJobs": [serialize_job(job) for job in request.cascade_jobs],
    }


@router.post("/requests/{request_id}/dispatch-cascade")
async def dispatch_request_cascade(
    request_id: str,
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    """Fan a request out to every policy target of the org."""
    result = CascadeDispatcher(db).dispatch(auth.org_id, request_id, actor_id=auth.actor_id)
    return {"ok": True, "tasksCreated": result.tasks_created}
