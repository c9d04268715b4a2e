"""Customer API integration lifecycle: credentials, patches, outbound tests."""

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from sqlalchemy.orm import Session

from erasure_api.delivery.client import DeliveryAttemptResult, DeliveryClient, TargetConfig
from erasure_api.delivery.signing import Credential
from erasure_api.errors import ConfigurationError, NotFound
from erasure_api.models import CustomerApiIntegration
from erasure_api.models.integration import AUTH_BEARER, AUTH_HMAC, AUTH_NONE, AUTH_TYPES
from erasure_api.security.vault import SecretVault, get_vault
from erasure_api.settings import get_settings
from erasure_api.utils.common import generate_secret, truncate, utcnow

logger = logging.getLogger(__name__)

_UNSET = object()


@dataclass
class IntegrationSpec:
    """Fields accepted when creating an integration."""

    name: str
    base_url: str
    auth_type: str = AUTH_NONE
    shared_secret: Optional[str] = None
    bearer_token: Optional[str] = None
    health_path: Optional[str] = None
    delete_path: Optional[str] = None
    status_path: Optional[str] = None
    webhook_path: Optional[str] = None
    headers: Optional[dict[str, str]] = None
    timeout_ms: Optional[int] = None
    retries: Optional[int] = None
    hmac_header_name: Optional[str] = None
    timestamp_header_name: Optional[str] = None
    replay_window_seconds: Optional[int] = None


# Patch fields backed by NOT NULL columns; they can be changed but never cleared
NON_NULLABLE_FIELDS = (
    "name",
    "base_url",
    "health_path",
    "delete_path",
    "status_path",
    "auth_type",
    "timeout_ms",
    "retries",
    "hmac_header_name",
    "timestamp_header_name",
    "replay_window_seconds",
)


@dataclass
class IntegrationPatch:
    """Partial update. ``_UNSET`` leaves a field alone; ``None`` clears nullable ones.

    Secrets are only written when ``auth_type`` in the same patch (or on the
    row) matches them, mirroring how credentials are validated at creation.
    """

    name: object = _UNSET
    base_url: object = _UNSET
    health_path: object = _UNSET
    delete_path: object = _UNSET
    status_path: object = _UNSET
    webhook_path: object = _UNSET
    auth_type: object = _UNSET
    headers: object = _UNSET
    timeout_ms: object = _UNSET
    retries: object = _UNSET
    hmac_header_name: object = _UNSET
    timestamp_header_name: object = _UNSET
    replay_window_seconds: object = _UNSET
    shared_secret: object = _UNSET
    bearer_token: object = _UNSET

    @classmethod
    def from_fields(cls, fields: dict) -> "IntegrationPatch":
        """Build a patch from explicitly-set fields only."""
        patch = cls()
        for key, value in fields.items():
            if not hasattr(patch, key):
                raise ValueError(f"Unknown integration field: {key}")
            if value is None and key in NON_NULLABLE_FIELDS:
                raise ValueError(f"Integration field cannot be cleared: {key}")
            setattr(patch, key, value)
        return patch


class IntegrationService:
    """Manages customer API integrations for one org."""

    def __init__(
        self,
        db: Session,
        vault_factory: Callable[[], SecretVault] = get_vault,
        delivery_client: Optional[DeliveryClient] = None,
    ):
        """Initialize integration service."""
        self.db = db
        self._vault_factory = vault_factory
        self.delivery_client = delivery_client or DeliveryClient()

    def _vault(self) -> SecretVault:
        return self._vault_factory()

    def get(self, org_id: str, integration_id: str) -> CustomerApiIntegration:
        """Get an integration scoped to the org."""
        integration = (
            self.db.query(CustomerApiIntegration)
            .filter(
                CustomerApiIntegration.id == integration_id,
                CustomerApiIntegration.org_id == org_id,
            )
            .first()
        )
        if not integration:
            raise NotFound("Integration not found")
        return integration

    def list(self, org_id: str) -> list[CustomerApiIntegration]:
        """List integrations, most recently updated first."""
        return (
            self.db.query(CustomerApiIntegration)
            .filter(CustomerApiIntegration.org_id == org_id)
            .order_by(CustomerApiIntegration.updated_at.desc())
            .all()
        )

    def create(self, org_id: str, spec: IntegrationSpec) -> tuple[CustomerApiIntegration, Optional[str]]:
        """Create an integration; returns the generated HMAC secret once, if any."""
        settings = get_settings()
        shared_secret_plain = None
        shared_secret_encrypted = None
        bearer_token_encrypted = None

        if spec.auth_type == AUTH_HMAC:
            vault = self._vault()
            shared_secret_plain = spec.shared_secret or generate_secret()
            shared_secret_encrypted = vault.encrypt(shared_secret_plain)
        elif spec.auth_type == AUTH_BEARER:
            if not spec.bearer_token:
                raise ConfigurationError("bearerToken is required for BEARER")
            bearer_token_encrypted = self._vault().encrypt(spec.bearer_token)
        elif spec.auth_type not in AUTH_TYPES:
            raise ConfigurationError(f"Unknown auth type: {spec.auth_type}")

        now = utcnow()
        integration = CustomerApiIntegration(
            org_id=org_id,
            name=spec.name,
            base_url=spec.base_url,
            health_path=spec.health_path or "/erasure/health",
            delete_path=spec.delete_path or "/erasure/delete",
            status_path=spec.status_path or "/erasure/status",
            webhook_path=spec.webhook_path,
            auth_type=spec.auth_type,
            shared_secret_encrypted=shared_secret_encrypted,
            bearer_token_encrypted=bearer_token_encrypted,
            headers_json=spec.headers,
            timeout_ms=spec.timeout_ms or settings.outbound_timeout_ms,
            retries=spec.retries if spec.retries is not None else settings.outbound_retries,
            hmac_header_name=spec.hmac_header_name or settings.outbound_signature_header,
            timestamp_header_name=spec.timestamp_header_name or settings.outbound_timestamp_header,
            replay_window_seconds=spec.replay_window_seconds or settings.outbound_replay_window_seconds,
            created_at=now,
            updated_at=now,
        )
        self.db.add(integration)
        self.db.commit()
        self.db.refresh(integration)

        logger.info(
            "Customer API integration created",
            extra={"org_id": org_id, "integration_id": integration.id, "auth_type": spec.auth_type},
        )
        return integration, shared_secret_plain if spec.auth_type == AUTH_HMAC else None

    def update(self, org_id: str, integration_id: str, patch: IntegrationPatch) -> CustomerApiIntegration:
        """Apply an explicit patch."""
        integration = self.get(org_id, integration_id)

        if patch.name is not _UNSET:
            integration.name = patch.name
        if patch.base_url is not _UNSET:
            integration.base_url = patch.base_url
        if patch.health_path is not _UNSET:
            integration.health_path = patch.health_path
        if patch.delete_path is not _UNSET:
            integration.delete_path = patch.delete_path
        if patch.status_path is not _UNSET:
            integration.status_path = patch.status_path
        if patch.webhook_path is not _UNSET:
            integration.webhook_path = patch.webhook_path
        if patch.headers is not _UNSET:
            integration.headers_json = patch.headers or None
        if patch.timeout_ms is not _UNSET:
            integration.timeout_ms = patch.timeout_ms
        if patch.retries is not _UNSET:
            integration.retries = patch.retries
        if patch.hmac_header_name is not _UNSET:
            integration.hmac_header_name = patch.hmac_header_name
        if patch.timestamp_header_name is not _UNSET:
            integration.timestamp_header_name = patch.timestamp_header_name
        if patch.replay_window_seconds is not _UNSET:
            integration.replay_window_seconds = patch.replay_window_seconds

        auth_type = integration.auth_type if patch.auth_type is _UNSET else patch.auth_type
        if auth_type not in AUTH_TYPES:
            raise ConfigurationError(f"Unknown auth type: {auth_type}")

        if auth_type == AUTH_HMAC and patch.shared_secret not in (_UNSET, None, ""):
            integration.shared_secret_encrypted = self._vault().encrypt(patch.shared_secret)
        if auth_type == AUTH_BEARER and patch.bearer_token not in (_UNSET, None, ""):
            integration.bearer_token_encrypted = self._vault().encrypt(patch.bearer_token)

        if auth_type == AUTH_HMAC and not integration.shared_secret_encrypted:
            raise ConfigurationError("sharedSecret is required for HMAC")
        if auth_type == AUTH_BEARER and not integration.bearer_token_encrypted:
            raise ConfigurationError("bearerToken is required for BEARER")
        integration.auth_type = auth_type

        integration.updated_at = utcnow()
        self.db.commit()
        self.db.refresh(integration)
        return integration

    def delete(self, org_id: str, integration_id: str) -> None:
        """Delete an integration together with its credentials."""
        integration = self.get(org_id, integration_id)
        self.db.delete(integration)
        self.db.commit()

    def rotate_secret(self, org_id: str, integration_id: str) -> str:
        """Replace the HMAC shared secret and return the new one once."""
        integration = self.get(org_id, integration_id)
        if integration.auth_type != AUTH_HMAC:
            raise ConfigurationError("rotate-secret only applies to HMAC integrations")

        new_secret = generate_secret()
        integration.shared_secret_encrypted = self._vault().encrypt(new_secret)
        integration.updated_at = utcnow()
        self.db.commit()

        logger.info(
            "HMAC secret rotated",
            extra={"org_id": org_id, "integration_id": integration_id},
        )
        return new_secret

    def build_target(self, integration: CustomerApiIntegration) -> TargetConfig:
        """Decrypt credentials into a call-scoped target configuration."""
        shared_secret = None
        bearer_token = None
        if integration.auth_type == AUTH_HMAC:
            if not integration.shared_secret_encrypted:
                raise ConfigurationError("HMAC integration has no stored shared secret")
            shared_secret = self._vault().decrypt(integration.shared_secret_encrypted)
        elif integration.auth_type == AUTH_BEARER:
            if not integration.bearer_token_encrypted:
                raise ConfigurationError("BEARER integration has no stored token")
            bearer_token = self._vault().decrypt(integration.bearer_token_encrypted)

        credential = Credential(
            auth_type=integration.auth_type,
            shared_secret=shared_secret,
            bearer_token=bearer_token,
            static_headers=dict(integration.headers_json or {}),
            signature_header=integration.hmac_header_name,
            timestamp_header=integration.timestamp_header_name,
        )
        return TargetConfig(
            base_url=integration.base_url,
            credential=credential,
            health_path=integration.health_path,
            status_path=integration.status_path,
            delete_path=integration.delete_path,
            timeout_ms=integration.timeout_ms,
            retries=integration.retries,
        )

    def test_health(self, org_id: str, integration_id: str) -> DeliveryAttemptResult:
        """Run a health check and persist its outcome on the integration."""
        integration = self.get(org_id, integration_id)
        result = self.delivery_client.health_check(self.build_target(integration))

        now = utcnow()
        integration.last_healthcheck_at = now
        integration.last_healthcheck_ok = result.ok
        integration.last_healthcheck_status = result.status_code
        integration.last_healthcheck_error = truncate(result.message, 1000)
        integration.updated_at = now
        self.db.commit()
        return result

    def test_status(self, org_id: str, integration_id: str) -> DeliveryAttemptResult:
        """Run a status check."""
        integration = self.get(org_id, integration_id)
        return self.delivery_client.status_check(self.build_target(integration))

    def test_delete(
        self,
        org_id: str,
        integration_id: str,
        request_id: Optional[str] = None,
        subject_hash: Optional[str] = None,
    ) -> DeliveryAttemptResult:
        """Send a dry-run delete call."""
        integration = self.get(org_id, integration_id)
        return self.delivery_client.delete_call(
            self.build_target(integration), request_id=request_id, subject_hash=subject_hash
        )
