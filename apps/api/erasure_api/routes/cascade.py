"""Cascade dispatch and hash-match validation routes."""

from fastapi import APIRouter, Depends
from pydantic import field_validator
from sqlalchemy.orm import Session

from erasure_api.auth.api_key import AuthContext, get_auth_context
from erasure_api.cascade.dispatcher import CascadeDispatcher
from erasure_api.cascade.policies import load_policies
from erasure_api.db.session import get_db
from erasure_api.models import Connector, CustomerApiIntegration, Partner
from erasure_api.routes.schemas import CamelModel
from erasure_api.utils.common import is_hex64

router = APIRouter(prefix="/v1", tags=["cascade"])


class DispatchBody(CamelModel):
    request_id: str


class HashMatchBody(CamelModel):
    subject_hash: str
    dry_run: bool = True

    @field_validator("subject_hash")
    @classmethod
    def _subject_hash_is_sha256(cls, value: str) -> str:
        if not is_hex64(value):
            raise ValueError("subjectHash must be 64 hex chars")
        return value.lower()


@router.post("/cascade/dispatch")
async def dispatch_cascade(
    body: DispatchBody,
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    """Dispatch a cascade for the request named in the body."""
    result = CascadeDispatcher(db).dispatch(auth.org_id, body.request_id, actor_id=auth.actor_id)
    return {
        "ok": True,
        "tasksCreated": result.tasks_created,
        "legacyPolicies": result.legacy_policies,
        "targetPolicies": result.targeted_policies,
    }


@router.post("/hash-match/validate")
async def validate_hash_match(
    body: HashMatchBody,
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    """Report which targets a request with this subject hash would reach."""
    connectors = db.query(Connector).filter(Connector.org_id == auth.org_id).count()
    customer_apis = (
        db.query(CustomerApiIntegration)
        .filter(CustomerApiIntegration.org_id == auth.org_id)
        .count()
    )
    partners = (
        db.query(Partner)
        .filter(Partner.org_id == auth.org_id, Partner.enabled.is_(True))
        .count()
    )
    candidates = [
        {
            "partnerId": policy.partner_id,
            "partnerName": policy.partner_name,
            "targetType": policy.target_type,
            "targetId": policy.target_id,
            "mode": policy.mode,
        }
        for policy in load_policies(db, auth.org_id)
    ]

    notes = []
    if connectors == 0 and customer_apis == 0:
        notes.append("No connectors or customer APIs configured")
    if not candidates:
        notes.append("No cascade policies configured; no downstream targets will receive this request")

    return {
        "ok": True,
        "subjectHash": body.subject_hash,
        "dryRun": body.dry_run,
        "matchedTargets": {
            "connectors": connectors,
            "customerApis": customer_apis,
            "partners": partners,
        },
        "cascadeCandidates": candidates,
        "notes": notes,
    }
