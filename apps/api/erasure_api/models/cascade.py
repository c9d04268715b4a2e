"""Partner, connector, cascade policy and cascade job models."""

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from erasure_api.db.base import Base
from erasure_api.utils.common import new_id, utcnow

TARGET_CONNECTOR = "connector"
TARGET_CUSTOMER_API = "customer_api"

JOB_PENDING = "PENDING"
JOB_IN_PROGRESS = "IN_PROGRESS"
JOB_DONE = "DONE"
JOB_FAILED = "FAILED"


class Partner(Base):
    """Downstream partner that must receive deletion requests."""

    __tablename__ = "partners"

    id = Column(String(64), primary_key=True, default=new_id)
    org_id = Column(String(64), ForeignKey("orgs.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    type = Column(String(60), nullable=True)
    endpoint_url = Column(Text, nullable=True)
    enabled = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)


class Connector(Base):
    """Customer-operated on-premise agent."""

    __tablename__ = "connectors"

    id = Column(String(64), primary_key=True, default=new_id)
    org_id = Column(String(64), ForeignKey("orgs.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    status = Column(String(20), default="OFFLINE", nullable=False)  # ONLINE, OFFLINE
    agent_version = Column(String(60), nullable=True)
    last_heartbeat_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    # Relationships
    tokens = relationship("ConnectorToken", back_populates="connector", cascade="all, delete-orphan")


class ConnectorToken(Base):
    """Hashed bearer token an agent authenticates with."""

    __tablename__ = "connector_tokens"

    id = Column(Integer, primary_key=True, index=True)
    connector_id = Column(String(64), ForeignKey("connectors.id", ondelete="CASCADE"), nullable=False, index=True)
    org_id = Column(String(64), ForeignKey("orgs.id", ondelete="CASCADE"), nullable=False)
    token_hash = Column(String(64), nullable=False, unique=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    revoked_at = Column(DateTime, nullable=True)

    # Relationships
    connector = relationship("Connector", back_populates="tokens")


class LegacyCascadePolicy(Base):
    """First-generation policy; always targets a connector."""

    __tablename__ = "cascade_policies"

    id = Column(String(64), primary_key=True, default=new_id)
    org_id = Column(String(64), ForeignKey("orgs.id", ondelete="CASCADE"), nullable=False, index=True)
    partner_id = Column(String(64), ForeignKey("partners.id", ondelete="CASCADE"), nullable=False)
    connector_id = Column(String(64), nullable=False)
    mode = Column(String(60), nullable=False)
    retries_max = Column(Integer, default=3, nullable=False)
    backoff_minutes = Column(Integer, default=60, nullable=False)
    sla_days = Column(Integer, nullable=True)
    attestation_required = Column(Boolean, default=False, nullable=False)
    escalation_email = Column(String(320), nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)


class CascadePolicy(Base):
    """Generalized policy with an explicit target type."""

    __tablename__ = "cascade_policies_v2"

    id = Column(String(64), primary_key=True, default=new_id)
    org_id = Column(String(64), ForeignKey("orgs.id", ondelete="CASCADE"), nullable=False, index=True)
    partner_id = Column(String(64), ForeignKey("partners.id", ondelete="CASCADE"), nullable=False)
    target_type = Column(String(20), nullable=False)  # connector, customer_api
    target_id = Column(String(64), nullable=False)
    mode = Column(String(60), nullable=False)
    retries_max = Column(Integer, default=3, nullable=False)
    backoff_minutes = Column(Integer, default=60, nullable=False)
    sla_days = Column(Integer, nullable=True)
    attestation_required = Column(Boolean, default=False, nullable=False)
    escalation_email = Column(String(320), nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)


class CascadeJob(Base):
    """One (request, partner, target) delivery obligation."""

    __tablename__ = "cascade_jobs"
    __table_args__ = (
        UniqueConstraint("request_id", "partner_id", "target_id", name="uq_cascade_jobs_triple"),
    )

    id = Column(String(64), primary_key=True, default=new_id)
    org_id = Column(String(64), ForeignKey("orgs.id", ondelete="CASCADE"), nullable=False, index=True)
    request_id = Column(
        String(64), ForeignKey("deletion_requests.id", ondelete="CASCADE"), nullable=False, index=True
    )
    partner_id = Column(String(64), ForeignKey("partners.id", ondelete="CASCADE"), nullable=False)
    target_type = Column(String(20), nullable=False)
    target_id = Column(String(64), nullable=False)
    status = Column(String(20), default=JOB_PENDING, nullable=False, index=True)
    attempts = Column(Integer, default=0, nullable=False)
    last_error = Column(Text, nullable=True)
    updated_at = Column(DateTime, default=utcnow, nullable=False)

    # Relationships
    request = relationship("DeletionRequest", back_populates="cascade_jobs")
    partner = relationship("Partner")
