"""Customer API integration routes."""

from typing import Literal, Optional

from fastapi import APIRouter, Depends, status
from pydantic import Field, field_validator
from sqlalchemy.orm import Session

from erasure_api.auth.api_key import AuthContext, get_auth_context
from erasure_api.db.session import get_db
from erasure_api.integrations.service import (
    NON_NULLABLE_FIELDS,
    IntegrationPatch,
    IntegrationService,
    IntegrationSpec,
)
from erasure_api.models import CustomerApiIntegration
from erasure_api.routes.schemas import CamelModel
from erasure_api.utils.common import is_hex64

router = APIRouter(prefix="/v1/integrations/customer-api", tags=["integrations"])

AuthType = Literal["NONE", "HMAC", "BEARER"]


class IntegrationFields(CamelModel):
    """Fields shared by create and patch bodies."""

    health_path: Optional[str] = Field(default=None, max_length=200)
    delete_path: Optional[str] = Field(default=None, max_length=200)
    status_path: Optional[str] = Field(default=None, max_length=200)
    webhook_path: Optional[str] = Field(default=None, max_length=200)
    shared_secret: Optional[str] = Field(default=None, min_length=1)
    bearer_token: Optional[str] = Field(default=None, min_length=1)
    headers: Optional[dict[str, str]] = None
    timeout_ms: Optional[int] = Field(default=None, ge=500, le=60_000)
    retries: Optional[int] = Field(default=None, ge=0, le=5)
    hmac_header_name: Optional[str] = Field(default=None, max_length=60)
    timestamp_header_name: Optional[str] = Field(default=None, max_length=60)
    replay_window_seconds: Optional[int] = Field(default=None, ge=60, le=3600)


class IntegrationCreate(IntegrationFields):
    name: str = Field(min_length=1, max_length=120)
    base_url: str = Field(min_length=1, max_length=500)
    auth_type: AuthType = "NONE"


class IntegrationUpdate(IntegrationFields):
    name: Optional[str] = Field(default=None, min_length=1, max_length=120)
    base_url: Optional[str] = Field(default=None, min_length=1, max_length=500)
    auth_type: Optional[AuthType] = None

    @field_validator(*NON_NULLABLE_FIELDS)
    @classmethod
    def _not_cleared(cls, value):
        # Omit a field to keep it; explicit null only clears nullable ones
        if value is None:
            raise ValueError("field cannot be null")
        return value


class TestDeleteBody(CamelModel):
    request_id: Optional[str] = Field(default=None, max_length=255)
    subject_hash: Optional[str] = None

    @field_validator("subject_hash")
    @classmethod
    def _subject_hash_is_sha256(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not is_hex64(value):
            raise ValueError("subjectHash must be 64 hex chars")
        return value.lower() if value else value


def get_integration_service(db: Session = Depends(get_db)) -> IntegrationService:
    return IntegrationService(db)


def serialize_integration(integration: CustomerApiIntegration) -> dict:
    # Secrets are reported as present/absent only
    return {
        "id": integration.id,
        "name": integration.name,
        "baseUrl": integration.base_url,
        "healthPath": integration.health_path,
        "deletePath": integration.delete_path,
        "statusPath": integration.status_path,
        "webhookPath": integration.webhook_path,
        "authType": integration.auth_type,
        "hasSharedSecret": bool(integration.shared_secret_encrypted),
        "hasBearerToken": bool(integration.bearer_token_encrypted),
        "headers": integration.headers_json,
        "timeoutMs": integration.timeout_ms,
        "retries": integration.retries,
        "hmacHeaderName": integration.hmac_header_name,
        "timestampHeaderName": integration.timestamp_header_name,
        "replayWindowSeconds": integration.replay_window_seconds,
        "lastHealthcheckAt": (
            integration.last_healthcheck_at.isoformat() if integration.last_healthcheck_at else None
        ),
        "lastHealthcheckOk": integration.last_healthcheck_ok,
        "lastHealthcheckStatus": integration.last_healthcheck_status,
        "lastHealthcheckError": integration.last_healthcheck_error,
        "createdAt": integration.created_at.isoformat(),
        "updatedAt": integration.updated_at.isoformat(),
    }


@router.get("")
async def list_integrations(
    auth: AuthContext = Depends(get_auth_context),
    service: IntegrationService = Depends(get_integration_service),
):
    """List the org's customer API integrations."""
    return {"items": [serialize_integration(i) for i in service.list(auth.org_id)]}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_integration(
    body: IntegrationCreate,
    auth: AuthContext = Depends(get_auth_context),
    service: IntegrationService = Depends(get_integration_service),
):
    """Create an integration. A generated HMAC secret is returned only here."""
    spec = IntegrationSpec(**body.model_dump())
    integration, shared_secret = service.create(auth.org_id, spec)
    response = serialize_integration(integration)
    if shared_secret is not None:
        response["sharedSecret"] = shared_secret
    return response


@router.get("/{integration_id}")
async def get_integration(
    integration_id: str,
    auth: AuthContext = Depends(get_auth_context),
    service: IntegrationService = Depends(get_integration_service),
):
    """Get one integration."""
    return serialize_integration(service.get(auth.org_id, integration_id))


@router.patch("/{integration_id}")
async def update_integration(
    integration_id: str,
    body: IntegrationUpdate,
    auth: AuthContext = Depends(get_auth_context),
    service: IntegrationService = Depends(get_integration_service),
):
    """Apply only the fields present in the body."""
    patch = IntegrationPatch.from_fields(body.model_dump(exclude_unset=True))
    return serialize_integration(service.update(auth.org_id, integration_id, patch))


@router.delete("/{integration_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_integration(
    integration_id: str,
    auth: AuthContext = Depends(get_auth_context),
    service: IntegrationService = Depends(get_integration_service),
):
    """Delete an integration and its stored credentials."""
    service.delete(auth.org_id, integration_id)


@router.post("/{integration_id}/rotate-secret")
async def rotate_integration_secret(
    integration_id: str,
    auth: AuthContext = Depends(get_auth_context),
    service: IntegrationService = Depends(get_integration_service),
):
    """Rotate the HMAC secret; the new secret is returned once."""
    return {"ok": True, "sharedSecret": service.rotate_secret(auth.org_id, integration_id)}


# Outbound calls block on the network, so these run in the threadpool
@router.post("/{integration_id}/test-health")
def test_integration_health(
    integration_id: str,
    auth: AuthContext = Depends(get_auth_context),
    service: IntegrationService = Depends(get_integration_service),
):
    """Call the health endpoint and record the outcome."""
    return service.test_health(auth.org_id, integration_id).to_dict()


@router.post("/{integration_id}/test-status")
def test_integration_status(
    integration_id: str,
    auth: AuthContext = Depends(get_auth_context),
    service: IntegrationService = Depends(get_integration_service),
):
    """Call the status endpoint."""
    return service.test_status(auth.org_id, integration_id).to_dict()


@router.post("/{integration_id}/test-delete")
def test_integration_delete(
    integration_id: str,
    body: Optional[TestDeleteBody] = None,
    auth: AuthContext = Depends(get_auth_context),
    service: IntegrationService = Depends(get_integration_service),
):
    """Send a dry-run delete carrying only a subject hash."""
    body = body or TestDeleteBody()
    return service.test_delete(
        auth.org_id,
        integration_id,
        request_id=body.request_id,
        subject_hash=body.subject_hash,
    ).to_dict()
