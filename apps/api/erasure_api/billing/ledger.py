"""Idempotent application of payment provider events to billing state."""

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from erasure_api.billing.provider import ProviderEvent
from erasure_api.models import BillingPayment, Org, User, WebhookEvent
from erasure_api.models.billing import (
    EVENT_FAILED,
    EVENT_IGNORED,
    EVENT_PENDING,
    EVENT_PROCESSED,
    PAYMENT_EXPIRED,
    PAYMENT_FAILED,
    PAYMENT_PAID,
    PAYMENT_PENDING,
)
from erasure_api.utils import metrics
from erasure_api.utils.common import mask_email, truncate, utcnow

logger = logging.getLogger(__name__)

FAILED_POLICY_IGNORE = "ignore"
FAILED_POLICY_REPROCESS = "reprocess"

DEFAULT_PLAN_ID = "setup_fee_999"
DEFAULT_AMOUNT_CENTS = 99900
ERROR_MESSAGE_LIMIT = 1000


@dataclass
class HandleResult:
    """What the webhook caller needs to answer the provider."""

    already_processed: bool


def _ref_id(value) -> Optional[str]:
    """Provider references arrive either as an id string or an expanded object."""
    if isinstance(value, dict):
        return value.get("id")
    return value or None


def _sanitize(event: ProviderEvent) -> dict:
    # Payment objects carry e-mails and addresses; keep references only
    return {
        "object": event.data_object.get("object"),
        "objectId": event.data_object.get("id"),
        "livemode": event.livemode,
    }


class WebhookLedger:
    """Applies each provider event id at most once.

    The ledger row is committed as ``pending`` before any handler runs, so a
    crash mid-handler leaves the event visibly seen. A redelivered id that
    previously ended ``failed`` is reprocessed only under the ``reprocess``
    policy; every other redelivery is recorded as ``ignored``.
    """

    def __init__(self, db: Session, failed_event_policy: str = FAILED_POLICY_IGNORE):
        """Initialize ledger."""
        if failed_event_policy not in (FAILED_POLICY_IGNORE, FAILED_POLICY_REPROCESS):
            raise ValueError(f"Unknown failed event policy: {failed_event_policy}")
        self.db = db
        self.failed_event_policy = failed_event_policy
        self._handlers = {
            "checkout.session.completed": self._checkout_session_completed,
            "payment_intent.payment_failed": self._payment_intent_failed,
            "checkout.session.expired": self._checkout_session_expired,
        }

    def _get_event(self, provider_event_id: str) -> Optional[WebhookEvent]:
        return (
            self.db.query(WebhookEvent)
            .filter(WebhookEvent.stripe_event_id == provider_event_id)
            .first()
        )

    def _mark(self, row: WebhookEvent, status: str, error_message: Optional[str] = None) -> None:
        row.status = status
        row.error_message = error_message
        row.processed_at = utcnow()
        self.db.commit()
        metrics.webhook_events.labels(status=status).inc()

    def _claim(self, event: ProviderEvent) -> Optional[WebhookEvent]:
        """Return the ledger row to process, or None when the event was already seen."""
        existing = self._get_event(event.id)
        if existing is not None:
            if existing.status == EVENT_FAILED and self.failed_event_policy == FAILED_POLICY_REPROCESS:
                logger.info(
                    f"Reprocessing previously failed event {event.id}",
                    extra={"event_type": event.type},
                )
                existing.status = EVENT_PENDING
                existing.error_message = None
                self.db.commit()
                return existing
            self._mark(existing, EVENT_IGNORED)
            return None

        row = WebhookEvent(
            stripe_event_id=event.id,
            event_type=event.type,
            status=EVENT_PENDING,
            payload_json=_sanitize(event),
        )
        self.db.add(row)
        try:
            self.db.commit()
        except IntegrityError:
            # A concurrent delivery of the same id won the insert
            self.db.rollback()
            metrics.webhook_events.labels(status=EVENT_IGNORED).inc()
            return None
        return row

    def handle(self, event: ProviderEvent) -> HandleResult:
        """Apply an event exactly once and record the outcome."""
        row = self._claim(event)
        if row is None:
            logger.info(f"Duplicate webhook event {event.id} ignored", extra={"event_type": event.type})
            return HandleResult(already_processed=True)

        handler = self._handlers.get(event.type)
        try:
            if handler is not None:
                handler(event.data_object)
            self.db.flush()
        except Exception as e:
            self.db.rollback()
            message = truncate(str(e) or type(e).__name__, ERROR_MESSAGE_LIMIT)
            self._mark(row, EVENT_FAILED, message)
            logger.error(
                f"Webhook event {event.id} failed: {type(e).__name__}",
                extra={"event_type": event.type},
            )
            raise

        self._mark(row, EVENT_PROCESSED)
        return HandleResult(already_processed=False)

    def _checkout_session_completed(self, session: dict) -> None:
        if session.get("payment_status") == "paid":
            apply_setup_fee_payment(self.db, session)

    def _payment_intent_failed(self, payment_intent: dict) -> None:
        payment_intent_id = payment_intent.get("id")
        if not payment_intent_id:
            return
        self._transition(
            BillingPayment.stripe_payment_intent_id == payment_intent_id, PAYMENT_FAILED
        )

    def _checkout_session_expired(self, session: dict) -> None:
        session_id = session.get("id")
        if not session_id:
            return
        self._transition(
            BillingPayment.stripe_checkout_session_id == session_id, PAYMENT_EXPIRED
        )

    def _transition(self, criterion, status: str) -> None:
        """Move pending payments to a terminal status; terminal rows are left alone."""
        now = utcnow()
        payments = (
            self.db.query(BillingPayment)
            .filter(criterion, BillingPayment.status == PAYMENT_PENDING)
            .all()
        )
        for payment in payments:
            payment.status = status
            payment.updated_at = now


def apply_setup_fee_payment(db: Session, session: dict) -> Optional[BillingPayment]:
    """Record a paid checkout session and stamp the paying org.

    Idempotent on the checkout session id: a session already ``paid`` is a
    no-op. Does not commit.
    """
    session_id = session.get("id")
    if not session_id:
        return None

    metadata = session.get("metadata") or {}
    plan_id = metadata.get("planId") or DEFAULT_PLAN_ID
    org_id = metadata.get("orgId") or None
    lead_id = metadata.get("leadId")
    email = session.get("customer_email") or (session.get("customer_details") or {}).get("email")
    amount_total = session.get("amount_total")
    if amount_total is None:
        amount_total = DEFAULT_AMOUNT_CENTS
    payment_intent_id = _ref_id(session.get("payment_intent"))
    customer_id = _ref_id(session.get("customer"))
    now = utcnow()

    try:
        lead_id = int(lead_id) if lead_id is not None else None
    except (TypeError, ValueError):
        lead_id = None

    org = db.query(Org).filter(Org.id == org_id).first() if org_id else None
    if org_id and org is None:
        logger.warning(
            "Checkout session references an unknown org; falling back to e-mail",
            extra={"session_id": session_id},
        )

    payment = (
        db.query(BillingPayment)
        .filter(BillingPayment.stripe_checkout_session_id == session_id)
        .first()
    )
    if payment is not None:
        if payment.status == PAYMENT_PAID:
            return payment
        payment.status = PAYMENT_PAID
        payment.paid_at = now
        payment.updated_at = now
        payment.stripe_payment_intent_id = payment_intent_id
        payment.stripe_customer_id = customer_id
        payment.amount_cents = amount_total
    else:
        payment = BillingPayment(
            id=f"{session_id}_payment",
            org_id=org.id if org else None,
            lead_id=lead_id,
            stripe_checkout_session_id=session_id,
            stripe_payment_intent_id=payment_intent_id,
            stripe_customer_id=customer_id,
            amount_cents=amount_total,
            currency=(session.get("currency") or "usd").lower(),
            status=PAYMENT_PAID,
            plan_id=plan_id,
            email=email,
            metadata_json=dict(metadata),
            paid_at=now,
            created_at=now,
            updated_at=now,
        )
        db.add(payment)

    if org is None and email:
        user = db.query(User).filter(func.lower(User.email) == email.lower()).first()
        if user is not None:
            org = db.query(Org).filter(Org.id == user.org_id).first()
            payment.org_id = user.org_id
            logger.info(
                f"Setup fee payment attached to org by e-mail {mask_email(email)}",
                extra={"org_id": user.org_id, "session_id": session_id},
            )

    if org is not None and org.setup_fee_paid_at is None:
        org.setup_fee_paid_at = now
        if customer_id and not org.stripe_customer_id:
            org.stripe_customer_id = customer_id

    return payment
