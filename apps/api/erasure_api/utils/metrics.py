"""Prometheus metrics."""

from prometheus_client import Counter, Histogram

cascade_dispatches = Counter(
    "erasure_cascade_dispatches_total",
    "Total cascade dispatch calls",
)

cascade_jobs_created = Counter(
    "erasure_cascade_jobs_created_total",
    "Cascade jobs newly inserted by dispatch",
    ["target_type"],
)

delivery_attempts = Counter(
    "erasure_delivery_attempts_total",
    "Outbound customer API calls by operation and outcome",
    ["operation", "outcome"],
)

delivery_latency = Histogram(
    "erasure_delivery_latency_seconds",
    "Latency of the final outbound attempt",
    ["operation"],
)

webhook_events = Counter(
    "erasure_webhook_events_total",
    "Payment provider webhook events by ledger status",
    ["status"],
)

agent_events = Counter(
    "erasure_agent_events_total",
    "Events received from connector agents",
)
