"""API key authentication with prefix+digest lookup."""

import hashlib
import hmac
import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, HTTPException, Security, status
from fastapi.security import APIKeyHeader, HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from erasure_api.db.session import get_db
from erasure_api.models import APIKey, ConnectorToken, Org
from erasure_api.settings import get_settings
from erasure_api.utils.common import hash_token, utcnow

logger = logging.getLogger(__name__)

api_key_header = APIKeyHeader(name="x-api-key", auto_error=False)
bearer_scheme = HTTPBearer(auto_error=False)


@dataclass
class AuthContext:
    """Authenticated operator context handed to every tenant-scoped operation."""

    org: Org
    actor_id: str

    @property
    def org_id(self) -> str:
        return self.org.id


@dataclass
class ConnectorContext:
    """Authenticated on-premise agent."""

    connector_id: str
    org_id: str


def compute_key_prefix(raw_key: str) -> str:
    """Compute prefix (first 8 chars) of API key."""
    return raw_key[:8] if len(raw_key) >= 8 else raw_key


def compute_key_digest(raw_key: str) -> str:
    """Compute HMAC-SHA256 digest of API key."""
    secret = get_settings().secret_key.encode()
    return hmac.new(secret, raw_key.encode(), hashlib.sha256).hexdigest()


def get_api_key_record(db: Session, api_key: str) -> Optional[APIKey]:
    """Resolve an active API key record from the raw key."""
    if not api_key or len(api_key) < 8:
        return None

    prefix = compute_key_prefix(api_key)
    digest = compute_key_digest(api_key)

    candidates = (
        db.query(APIKey)
        .filter(
            APIKey.prefix == prefix,
            APIKey.is_active == True,  # noqa: E712
            APIKey.revoked_at.is_(None),
        )
        .all()
    )
    for record in candidates:
        if hmac.compare_digest(record.digest, digest):
            record.last_used_at = utcnow()
            db.commit()
            return record
    return None


async def get_auth_context(
    x_api_key: Optional[str] = Security(api_key_header),
    db: Session = Depends(get_db),
) -> AuthContext:
    """Get the authenticated org and actor from the API key."""
    if not x_api_key:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing API key. Provide x-api-key header.",
        )

    record = get_api_key_record(db, x_api_key)
    if not record:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or revoked API key.",
        )

    org = db.query(Org).filter(Org.id == record.org_id).first()
    if not org or org.status != "active":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Organization is not active.",
        )

    return AuthContext(org=org, actor_id=record.user_id or f"key:{record.id}")


async def get_connector_context(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(bearer_scheme),
    db: Session = Depends(get_db),
) -> ConnectorContext:
    """Authenticate an agent by its bearer token."""
    if not credentials or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing connector token.",
        )

    token = (
        db.query(ConnectorToken)
        .filter(
            ConnectorToken.token_hash == hash_token(credentials.credentials),
            ConnectorToken.revoked_at.is_(None),
        )
        .first()
    )
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or revoked connector token.",
        )

    return ConnectorContext(connector_id=token.connector_id, org_id=token.org_id)
