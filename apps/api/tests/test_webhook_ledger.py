"""Tests for idempotent webhook event handling."""

import pytest
from sqlalchemy.orm import Session

from erasure_api.billing.ledger import WebhookLedger, apply_setup_fee_payment
from erasure_api.billing.provider import ProviderEvent
from erasure_api.models import BillingPayment, Org, User, WebhookEvent


def checkout_completed(event_id="evt_1", session_id="cs_1", **session):
    data = {
        "id": session_id,
        "object": "checkout.session",
        "payment_status": "paid",
        "amount_total": 99900,
        "payment_intent": "pi_1",
        "customer": "cus_1",
        "metadata": {"orgId": "org_1"},
    }
    data.update(session)
    return ProviderEvent(id=event_id, type="checkout.session.completed", data_object=data)


def _event_row(db, event_id):
    return db.query(WebhookEvent).filter(WebhookEvent.stripe_event_id == event_id).one()


class TestCheckoutCompleted:
    def test_paid_session_stamps_org(self, db: Session, org):
        result = WebhookLedger(db).handle(checkout_completed())

        assert result.already_processed is False
        db.refresh(org)
        assert org.setup_fee_paid_at is not None
        assert org.stripe_customer_id == "cus_1"

        payment = db.query(BillingPayment).one()
        assert payment.id == "cs_1_payment"
        assert payment.status == "paid"
        assert payment.amount_cents == 99900
        assert payment.currency == "usd"
        assert payment.plan_id == "setup_fee_999"
        assert payment.org_id == org.id
        assert _event_row(db, "evt_1").status == "processed"

    def test_replay_is_ignored(self, db: Session, org):
        ledger = WebhookLedger(db)
        ledger.handle(checkout_completed())
        db.refresh(org)
        stamped = org.setup_fee_paid_at

        result = ledger.handle(checkout_completed())

        assert result.already_processed is True
        db.refresh(org)
        assert org.setup_fee_paid_at == stamped
        assert db.query(BillingPayment).count() == 1
        assert _event_row(db, "evt_1").status == "ignored"

    def test_unpaid_session_is_noop(self, db: Session, org):
        WebhookLedger(db).handle(checkout_completed(payment_status="unpaid"))

        assert db.query(BillingPayment).count() == 0
        db.refresh(org)
        assert org.setup_fee_paid_at is None
        assert _event_row(db, "evt_1").status == "processed"

    def test_duplicate_session_under_new_event_id_is_noop(self, db: Session, org):
        ledger = WebhookLedger(db)
        ledger.handle(checkout_completed(event_id="evt_1"))
        db.refresh(org)
        stamped = org.setup_fee_paid_at

        result = ledger.handle(checkout_completed(event_id="evt_2", amount_total=1))

        assert result.already_processed is False
        payment = db.query(BillingPayment).one()
        assert payment.amount_cents == 99900
        db.refresh(org)
        assert org.setup_fee_paid_at == stamped

    def test_email_fallback_attaches_org(self, db: Session, org):
        event = checkout_completed(metadata={}, customer_email="Owner@Test.Example")
        WebhookLedger(db).handle(event)

        payment = db.query(BillingPayment).one()
        assert payment.org_id == org.id
        db.refresh(org)
        assert org.setup_fee_paid_at is not None

    def test_unknown_email_leaves_payment_unattached(self, db: Session, org):
        event = checkout_completed(metadata={}, customer_details={"email": "nobody@else.example"})
        WebhookLedger(db).handle(event)

        payment = db.query(BillingPayment).one()
        assert payment.org_id is None
        assert payment.email == "nobody@else.example"

    def test_pending_payment_transitions_to_paid(self, db: Session, org):
        db.add(
            BillingPayment(
                id="cs_1_payment",
                stripe_checkout_session_id="cs_1",
                amount_cents=99900,
                status="pending",
            )
        )
        db.commit()

        WebhookLedger(db).handle(checkout_completed())

        payment = db.query(BillingPayment).one()
        assert payment.status == "paid"
        assert payment.paid_at is not None
        assert payment.stripe_payment_intent_id == "pi_1"


class TestTerminalTransitions:
    @pytest.fixture
    def pending_payment(self, db: Session, org) -> BillingPayment:
        payment = BillingPayment(
            id="cs_9_payment",
            org_id=org.id,
            stripe_checkout_session_id="cs_9",
            stripe_payment_intent_id="pi_9",
            amount_cents=99900,
            status="pending",
        )
        db.add(payment)
        db.commit()
        return payment

    def test_payment_failed(self, db: Session, pending_payment):
        event = ProviderEvent(id="evt_f", type="payment_intent.payment_failed", data_object={"id": "pi_9"})
        WebhookLedger(db).handle(event)
        db.refresh(pending_payment)
        assert pending_payment.status == "failed"

    def test_session_expired(self, db: Session, pending_payment):
        event = ProviderEvent(id="evt_e", type="checkout.session.expired", data_object={"id": "cs_9"})
        WebhookLedger(db).handle(event)
        db.refresh(pending_payment)
        assert pending_payment.status == "expired"

    def test_paid_payment_never_downgraded(self, db: Session, pending_payment):
        pending_payment.status = "paid"
        db.commit()

        event = ProviderEvent(id="evt_e", type="checkout.session.expired", data_object={"id": "cs_9"})
        WebhookLedger(db).handle(event)
        db.refresh(pending_payment)
        assert pending_payment.status == "paid"

    def test_unrecognized_type_marked_processed(self, db: Session, org):
        event = ProviderEvent(id="evt_x", type="customer.created", data_object={"id": "cus_1"})
        result = WebhookLedger(db).handle(event)
        assert result.already_processed is False
        assert _event_row(db, "evt_x").status == "processed"


class TestFailurePolicy:
    @pytest.fixture
    def broken_ledger(self, db: Session):
        def _fail(session):
            raise RuntimeError("x" * 5000)

        def build(policy):
            ledger = WebhookLedger(db, failed_event_policy=policy)
            ledger._handlers["checkout.session.completed"] = _fail
            return ledger

        return build

    def test_failure_recorded_and_reraised(self, db: Session, org, broken_ledger):
        with pytest.raises(RuntimeError):
            broken_ledger("ignore").handle(checkout_completed())

        row = _event_row(db, "evt_1")
        assert row.status == "failed"
        assert len(row.error_message) == 1000
        assert db.query(BillingPayment).count() == 0

    def test_failed_event_ignored_on_redelivery_by_default(self, db: Session, org, broken_ledger):
        with pytest.raises(RuntimeError):
            broken_ledger("ignore").handle(checkout_completed())

        result = WebhookLedger(db, failed_event_policy="ignore").handle(checkout_completed())

        assert result.already_processed is True
        assert db.query(BillingPayment).count() == 0
        assert _event_row(db, "evt_1").status == "ignored"

    def test_failed_event_reprocessed_when_configured(self, db: Session, org, broken_ledger):
        with pytest.raises(RuntimeError):
            broken_ledger("reprocess").handle(checkout_completed())

        result = WebhookLedger(db, failed_event_policy="reprocess").handle(checkout_completed())

        assert result.already_processed is False
        assert db.query(BillingPayment).count() == 1
        row = _event_row(db, "evt_1")
        assert row.status == "processed"
        assert row.error_message is None

    def test_processed_event_not_reprocessed_under_reprocess_policy(self, db: Session, org):
        ledger = WebhookLedger(db, failed_event_policy="reprocess")
        ledger.handle(checkout_completed())
        assert ledger.handle(checkout_completed()).already_processed is True

    def test_unknown_policy_rejected(self, db: Session):
        with pytest.raises(ValueError):
            WebhookLedger(db, failed_event_policy="retry-forever")


def test_apply_setup_fee_payment_does_not_restamp(db: Session, org):
    session = checkout_completed().data_object
    apply_setup_fee_payment(db, session)
    db.commit()
    db.refresh(org)
    stamped = org.setup_fee_paid_at

    db.query(BillingPayment).delete()
    db.commit()
    apply_setup_fee_payment(db, session)
    db.commit()

    db.refresh(org)
    assert org.setup_fee_paid_at == stamped
