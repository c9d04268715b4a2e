"""Customer API integration model."""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, JSON, String, Text

from erasure_api.db.base import Base
from erasure_api.utils.common import new_id, utcnow

AUTH_NONE = "NONE"
AUTH_HMAC = "HMAC"
AUTH_BEARER = "BEARER"
AUTH_TYPES = (AUTH_NONE, AUTH_HMAC, AUTH_BEARER)


class CustomerApiIntegration(Base):
    """Customer-hosted HTTP endpoint called directly instead of through a connector."""

    __tablename__ = "customer_api_integrations"

    id = Column(String(64), primary_key=True, default=new_id)
    org_id = Column(String(64), ForeignKey("orgs.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(120), nullable=False)
    base_url = Column(String(500), nullable=False)
    health_path = Column(String(200), default="/erasure/health", nullable=False)
    delete_path = Column(String(200), default="/erasure/delete", nullable=False)
    status_path = Column(String(200), default="/erasure/status", nullable=False)
    webhook_path = Column(String(200), nullable=True)
    auth_type = Column(String(10), default=AUTH_NONE, nullable=False)
    shared_secret_encrypted = Column(Text, nullable=True)  # vault blob, HMAC only
    bearer_token_encrypted = Column(Text, nullable=True)  # vault blob, BEARER only
    headers_json = Column(JSON, nullable=True)  # static headers sent on every call
    timeout_ms = Column(Integer, default=8000, nullable=False)
    retries = Column(Integer, default=2, nullable=False)
    hmac_header_name = Column(String(60), default="X-Erasure-Signature", nullable=False)
    timestamp_header_name = Column(String(60), default="X-Erasure-Timestamp", nullable=False)
    replay_window_seconds = Column(Integer, default=300, nullable=False)
    last_healthcheck_at = Column(DateTime, nullable=True)
    last_healthcheck_ok = Column(Boolean, nullable=True)
    last_healthcheck_status = Column(Integer, nullable=True)
    last_healthcheck_error = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, nullable=False)
