"""Deletion request and audit trail models."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, JSON, String
from sqlalchemy.orm import relationship

from erasure_api.db.base import Base
from erasure_api.utils.common import new_id, utcnow


class DeletionRequest(Base):
    """A privacy deletion request, identified only by hashes."""

    __tablename__ = "deletion_requests"

    id = Column(String(64), primary_key=True, default=new_id)
    org_id = Column(String(64), ForeignKey("orgs.id", ondelete="CASCADE"), nullable=False, index=True)
    request_ref = Column(String(255), nullable=True)
    subject_hash = Column(String(64), nullable=False, index=True)  # lowercase SHA-256 hex
    payload_hash = Column(String(64), nullable=True)
    system = Column(String(80), default="drop", nullable=False)
    status = Column(String(30), default="RECEIVED", nullable=False)
    received_at = Column(DateTime, nullable=False)
    meta_json = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)

    # Relationships
    cascade_jobs = relationship(
        "CascadeJob",
        back_populates="request",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class AuditEvent(Base):
    """Append-only audit trail entry with per-org hash chaining."""

    __tablename__ = "audit_events"

    id = Column(Integer, primary_key=True, autoincrement=True)
    org_id = Column(String(64), ForeignKey("orgs.id", ondelete="CASCADE"), nullable=False, index=True)
    request_id = Column(String(64), nullable=False, index=True)  # "system" for events without a request
    ts = Column(DateTime, nullable=False)
    type = Column(String(60), nullable=False)  # CASCADING, RUN_START, MATCHED, ...
    actor = Column(String(80), nullable=True)  # system, user id, agent
    details_json = Column(JSON, nullable=True)
    event_hash = Column(String(64), nullable=False, unique=True)
    previous_event_hash = Column(String(64), nullable=True)  # NULL for the first event of an org
