"""Database models - import all models here for Alembic discovery."""

from erasure_api.models.billing import BillingPayment, WebhookEvent
from erasure_api.models.cascade import (
    CascadeJob,
    CascadePolicy,
    Connector,
    ConnectorToken,
    LegacyCascadePolicy,
    Partner,
)
from erasure_api.models.integration import CustomerApiIntegration
from erasure_api.models.org import APIKey, Org, User
from erasure_api.models.request import AuditEvent, DeletionRequest

__all__ = [
    "Org",
    "User",
    "APIKey",
    "DeletionRequest",
    "AuditEvent",
    "Partner",
    "Connector",
    "ConnectorToken",
    "LegacyCascadePolicy",
    "CascadePolicy",
    "CascadeJob",
    "CustomerApiIntegration",
    "WebhookEvent",
    "BillingPayment",
]
