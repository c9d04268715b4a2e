"""Organization, user and API key models."""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from erasure_api.db.base import Base
from erasure_api.utils.common import new_id, utcnow


class Org(Base):
    """Tenant organization."""

    __tablename__ = "orgs"

    id = Column(String(64), primary_key=True, default=new_id)
    name = Column(String(255), nullable=False)
    status = Column(String(50), default="active", nullable=False)  # active, suspended
    stripe_customer_id = Column(String(255), nullable=True)
    setup_fee_paid_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    # Relationships
    users = relationship("User", back_populates="org", cascade="all, delete-orphan")
    api_keys = relationship("APIKey", back_populates="org", cascade="all, delete-orphan")


class User(Base):
    """Operator account; signup and login live outside this service."""

    __tablename__ = "users"

    id = Column(String(64), primary_key=True, default=new_id)
    org_id = Column(String(64), ForeignKey("orgs.id", ondelete="CASCADE"), nullable=False, index=True)
    email = Column(String(320), nullable=False, unique=True, index=True)
    role = Column(String(20), default="OWNER", nullable=False)  # OWNER, ADMIN, MEMBER
    created_at = Column(DateTime, default=utcnow, nullable=False)

    # Relationships
    org = relationship("Org", back_populates="users")


class APIKey(Base):
    """API key model for operator authentication."""

    __tablename__ = "api_keys"

    id = Column(Integer, primary_key=True, index=True)
    org_id = Column(String(64), ForeignKey("orgs.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(64), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    prefix = Column(String(16), nullable=False, index=True)
    digest = Column(String(64), nullable=False, unique=True)  # HMAC-SHA256 of the raw key
    label = Column(String(255), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    last_used_at = Column(DateTime, nullable=True)
    revoked_at = Column(DateTime, nullable=True)

    # Relationships
    org = relationship("Org", back_populates="api_keys")
