"""Payment provider webhook route."""

import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from erasure_api.billing.ledger import WebhookLedger
from erasure_api.billing.provider import StripeWebhookVerifier, get_payment_provider
from erasure_api.db.session import get_db
from erasure_api.settings import get_settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/billing", tags=["billing"])


@router.post("/webhook")
async def billing_webhook(
    request: Request,
    provider: StripeWebhookVerifier = Depends(get_payment_provider),
    db: Session = Depends(get_db),
):
    """Verify and apply a provider event.

    The signature is checked over the raw bytes before any ledger write.
    Handler failures propagate as 500 so the provider redelivers.
    """
    raw_body = await request.body()
    event = provider.construct_event(raw_body, request.headers.get("stripe-signature"))

    ledger = WebhookLedger(db, failed_event_policy=get_settings().webhook_failed_event_policy)
    result = ledger.handle(event)
    return {"received": True, "alreadyProcessed": result.already_processed}
