"""Outbound HTTP client for customer API calls (health, status, delete).

Every outcome is folded into ``DeliveryAttemptResult``: transport failures are
retried sequentially up to the configured budget and then reported with
``status_code=0``; any HTTP response, 4xx/5xx included, is returned as-is
without retrying.
"""

import json
import logging
import time
import uuid
from dataclasses import asdict, dataclass, field
from typing import Optional

import httpx

from erasure_api.delivery.signing import Credential, RequestSigner
from erasure_api.utils import metrics
from erasure_api.utils.common import is_hex64

logger = logging.getLogger(__name__)

RESPONSE_SAMPLE_LIMIT = 500
ERROR_MESSAGE_LIMIT = 200
TEST_SOURCE = "erasure-cascade-test"


@dataclass
class TargetConfig:
    """Where and how to call one customer API."""

    base_url: str
    credential: Credential = field(default_factory=Credential)
    health_path: str = "/erasure/health"
    status_path: str = "/erasure/status"
    delete_path: str = "/erasure/delete"
    timeout_ms: int = 8000
    retries: int = 2


@dataclass
class DeliveryAttemptResult:
    """Normalized outcome of one logical call."""

    ok: bool
    status_code: int  # 0 means transport failure or timeout, never an HTTP status
    latency_ms: int
    endpoint: str
    message: Optional[str] = None
    response_sample: Optional[str] = None

    def to_dict(self) -> dict:
        data = asdict(self)
        return {
            "ok": data["ok"],
            "statusCode": data["status_code"],
            "latencyMs": data["latency_ms"],
            "endpoint": data["endpoint"],
            "message": data["message"],
            "responseSample": data["response_sample"],
        }


def join_url(base: str, path: str) -> str:
    """Join base and path with exactly one slash at the boundary."""
    base = base.rstrip("/")
    path = path if path.startswith("/") else f"/{path}"
    return f"{base}{path}"


class DeliveryClient:
    """Calls customer endpoints with bounded timeout and bounded retry."""

    def __init__(
        self,
        signer: Optional[RequestSigner] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """Initialize client; ``transport`` lets tests substitute a fake network."""
        self.signer = signer or RequestSigner()
        self._transport = transport

    def health_check(self, target: TargetConfig) -> DeliveryAttemptResult:
        """GET the health path."""
        url = join_url(target.base_url, target.health_path)
        return self._call("health", "GET", url, b"", target)

    def status_check(self, target: TargetConfig) -> DeliveryAttemptResult:
        """GET the status path."""
        url = join_url(target.base_url, target.status_path)
        return self._call("status", "GET", url, b"", target)

    def delete_call(
        self,
        target: TargetConfig,
        request_id: Optional[str] = None,
        subject_hash: Optional[str] = None,
    ) -> DeliveryAttemptResult:
        """POST a dry-run deletion carrying only the subject hash."""
        subject_hash = (subject_hash or "0" * 64).lower()
        url = join_url(target.base_url, target.delete_path)
        if not is_hex64(subject_hash):
            metrics.delivery_attempts.labels(operation="delete", outcome="rejected").inc()
            return DeliveryAttemptResult(
                ok=False,
                status_code=0,
                latency_ms=0,
                endpoint=url,
                message="subject_hash must be a 64-char hex SHA-256 value",
            )

        payload = {
            "requestId": request_id or f"test-{uuid.uuid4()}",
            "subjectHash": subject_hash,
            "mode": "DRY_RUN",
            "source": TEST_SOURCE,
        }
        body = json.dumps(payload, separators=(",", ":")).encode("utf-8")
        return self._call("delete", "POST", url, body, target)

    def _call(
        self,
        operation: str,
        method: str,
        url: str,
        body: bytes,
        target: TargetConfig,
    ) -> DeliveryAttemptResult:
        """Issue the request, retrying transport failures only."""
        timeout = httpx.Timeout(target.timeout_ms / 1000.0)
        attempts = max(0, target.retries) + 1
        last_error: Optional[Exception] = None
        latency_ms = 0

        with httpx.Client(transport=self._transport, timeout=timeout) as client:
            for attempt in range(1, attempts + 1):
                # Re-signed per attempt so the HMAC timestamp is always fresh
                headers = {"Content-Type": "application/json"}
                headers.update(
                    self.signer.build_auth_headers(target.credential, method, url, body)
                )

                start = time.monotonic()
                try:
                    request = client.build_request(
                        method,
                        url,
                        headers=headers,
                        content=body or None,
                    )
                    response = client.send(request, stream=True)
                except (httpx.HTTPError, httpx.InvalidURL) as e:
                    latency_ms = int((time.monotonic() - start) * 1000)
                    last_error = e
                    logger.warning(
                        f"Outbound {operation} attempt {attempt}/{attempts} failed: {type(e).__name__}",
                        extra={"endpoint": url, "operation": operation},
                    )
                    continue

                # Status line is in; a body that fails to read only loses the sample
                try:
                    response_sample = self._read_sample(response)
                finally:
                    response.close()
                latency_ms = int((time.monotonic() - start) * 1000)
                return self._from_response(
                    operation, url, response.status_code, response_sample, latency_ms
                )

        message = str(last_error) or type(last_error).__name__
        metrics.delivery_attempts.labels(operation=operation, outcome="transport_error").inc()
        metrics.delivery_latency.labels(operation=operation).observe(latency_ms / 1000.0)
        return DeliveryAttemptResult(
            ok=False,
            status_code=0,
            latency_ms=latency_ms,
            endpoint=url,
            message=message[:ERROR_MESSAGE_LIMIT],
        )

    def _read_sample(self, response: httpx.Response) -> Optional[str]:
        try:
            response.read()
            return response.text[:RESPONSE_SAMPLE_LIMIT]
        except (httpx.HTTPError, httpx.StreamError, UnicodeDecodeError, LookupError) as e:
            logger.info(
                f"Response body unreadable: {type(e).__name__}",
                extra={"endpoint": str(response.request.url)},
            )
            return None

    def _from_response(
        self,
        operation: str,
        url: str,
        status_code: int,
        response_sample: Optional[str],
        latency_ms: int,
    ) -> DeliveryAttemptResult:
        ok = 200 <= status_code < 300

        metrics.delivery_attempts.labels(
            operation=operation, outcome="ok" if ok else "http_error"
        ).inc()
        metrics.delivery_latency.labels(operation=operation).observe(latency_ms / 1000.0)

        return DeliveryAttemptResult(
            ok=ok,
            status_code=status_code,
            latency_ms=latency_ms,
            endpoint=url,
            message=None if ok else f"HTTP {status_code}",
            response_sample=response_sample,
        )
