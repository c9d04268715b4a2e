"""Payment provider webhook verification."""

import json
import logging
from dataclasses import dataclass, field
from typing import Optional

import stripe

from erasure_api.errors import ConfigurationError, InvalidPayload, SignatureInvalid
from erasure_api.settings import get_settings

logger = logging.getLogger(__name__)


@dataclass
class ProviderEvent:
    """Verified provider event, reduced to what the ledger needs."""

    id: str
    type: str
    data_object: dict = field(default_factory=dict)
    livemode: bool = False

    @classmethod
    def from_payload(cls, payload: dict) -> "ProviderEvent":
        event_id = payload.get("id")
        event_type = payload.get("type")
        if not event_id or not event_type:
            raise InvalidPayload("Event is missing id or type")
        data_object = (payload.get("data") or {}).get("object") or {}
        if not isinstance(data_object, dict):
            raise InvalidPayload("Event data.object must be an object")
        return cls(
            id=str(event_id),
            type=str(event_type),
            data_object=data_object,
            livemode=bool(payload.get("livemode", False)),
        )


class StripeWebhookVerifier:
    """Verifies ``Stripe-Signature`` headers over the exact raw request bytes.

    Constructed explicitly and injected through ``get_payment_provider`` so
    tests can substitute their own secret or a fake.
    """

    def __init__(self, webhook_secret: Optional[str], tolerance_seconds: int = 300):
        self.webhook_secret = webhook_secret
        self.tolerance_seconds = tolerance_seconds

    def construct_event(self, raw_body: bytes, signature_header: Optional[str]) -> ProviderEvent:
        """Verify the signature, then parse the body into a ``ProviderEvent``."""
        if not self.webhook_secret:
            raise ConfigurationError("STRIPE_WEBHOOK_SECRET is not configured")
        if not signature_header:
            raise SignatureInvalid("Missing Stripe-Signature header")

        try:
            payload_text = raw_body.decode("utf-8")
        except UnicodeDecodeError as e:
            raise InvalidPayload("Webhook body is not valid UTF-8") from e

        try:
            stripe.WebhookSignature.verify_header(
                payload_text,
                signature_header,
                self.webhook_secret,
                self.tolerance_seconds,
            )
        except stripe.SignatureVerificationError as e:
            logger.warning("Webhook signature verification failed")
            raise SignatureInvalid("Invalid webhook signature") from e

        try:
            payload = json.loads(payload_text)
        except json.JSONDecodeError as e:
            raise InvalidPayload("Webhook body is not valid JSON") from e
        if not isinstance(payload, dict):
            raise InvalidPayload("Webhook body must be a JSON object")

        return ProviderEvent.from_payload(payload)


def get_payment_provider() -> StripeWebhookVerifier:
    """FastAPI dependency building the verifier from settings."""
    settings = get_settings()
    return StripeWebhookVerifier(
        webhook_secret=settings.stripe_webhook_secret,
        tolerance_seconds=settings.stripe_webhook_tolerance_seconds,
    )
