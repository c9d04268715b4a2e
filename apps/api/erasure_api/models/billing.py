"""Payment provider webhook ledger and billing payment models."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, JSON, String, Text

from erasure_api.db.base import Base
from erasure_api.utils.common import new_id, utcnow

EVENT_PENDING = "pending"
EVENT_PROCESSED = "processed"
EVENT_IGNORED = "ignored"
EVENT_FAILED = "failed"

PAYMENT_PENDING = "pending"
PAYMENT_PAID = "paid"
PAYMENT_FAILED = "failed"
PAYMENT_EXPIRED = "expired"


class WebhookEvent(Base):
    """Ledger of provider events; the single source of truth for deduplication."""

    __tablename__ = "stripe_events"

    id = Column(String(64), primary_key=True, default=new_id)
    stripe_event_id = Column(String(255), nullable=False, unique=True, index=True)
    event_type = Column(String(100), nullable=False, index=True)
    status = Column(String(20), default=EVENT_PENDING, nullable=False, index=True)
    payload_json = Column(JSON, nullable=True)
    error_message = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    processed_at = Column(DateTime, nullable=True)


class BillingPayment(Base):
    """One row per checkout session."""

    __tablename__ = "billing_payments"

    id = Column(String(128), primary_key=True)
    org_id = Column(String(64), ForeignKey("orgs.id", ondelete="SET NULL"), nullable=True, index=True)
    lead_id = Column(Integer, nullable=True)
    stripe_checkout_session_id = Column(String(255), nullable=False, unique=True)
    stripe_payment_intent_id = Column(String(255), nullable=True, index=True)
    stripe_customer_id = Column(String(255), nullable=True)
    amount_cents = Column(Integer, nullable=False)
    currency = Column(String(10), default="usd", nullable=False)
    status = Column(String(20), default=PAYMENT_PENDING, nullable=False)
    plan_id = Column(String(100), nullable=True)
    email = Column(String(320), nullable=True)
    metadata_json = Column(JSON, nullable=True)
    paid_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, nullable=False)
