"""Erasure API client."""

from typing import Optional

import requests


class ErasureClient:
    """Client for the erasure API."""

    def __init__(self, api_key: str, base_url: str = "http://localhost:4242", timeout: float = 30.0):
        """Initialize client."""
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers.update({"x-api-key": api_key})

    def _post(self, path: str, payload: Optional[dict] = None) -> dict:
        response = self.session.post(f"{self.base_url}{path}", json=payload or {}, timeout=self.timeout)
        response.raise_for_status()
        return response.json()

    def _get(self, path: str, params: Optional[dict] = None) -> dict:
        response = self.session.get(f"{self.base_url}{path}", params=params, timeout=self.timeout)
        response.raise_for_status()
        return response.json()

    def create_request(
        self,
        subject_hash: str,
        request_ref: Optional[str] = None,
        payload_hash: Optional[str] = None,
        system: str = "drop",
        meta: Optional[dict] = None,
    ) -> dict:
        """Submit a deletion request identified by a SHA-256 subject hash."""
        payload = {"subjectHash": subject_hash, "system": system}
        if request_ref:
            payload["requestRef"] = request_ref
        if payload_hash:
            payload["payloadHash"] = payload_hash
        if meta:
            payload["meta"] = meta
        return self._post("/v1/requests", payload)

    def get_request(self, request_id: str) -> dict:
        """Get a request with its cascade jobs."""
        return self._get(f"/v1/requests/{request_id}")

    def dispatch_cascade(self, request_id: str) -> dict:
        """Fan a request out to its cascade targets."""
        return self._post(f"/v1/requests/{request_id}/dispatch-cascade")

    def validate_hash_match(self, subject_hash: str) -> dict:
        """Preview which targets a subject hash would cascade to."""
        return self._post("/v1/hash-match/validate", {"subjectHash": subject_hash})

    def export_audit(self, request_id: str) -> dict:
        """Download the audit export for a request."""
        return self._get(f"/v1/audit/requests/{request_id}/export")

    def test_integration_health(self, integration_id: str) -> dict:
        """Run a health check against a customer API integration."""
        return self._post(f"/v1/integrations/customer-api/{integration_id}/test-health")
