"""Tests for receiver-side verification in the SDK."""

import time

from erasure_api.delivery.signing import Credential, RequestSigner
from erasure_sdk import verify_request

SECRET = "shared-secret"
BODY = b'{"requestId":"r1","subjectHash":"' + b"a" * 64 + b'","mode":"DRY_RUN","source":"erasure-cascade-test"}'


def _signed_headers(body=BODY, clock=None, **credential_kwargs):
    credential = Credential(auth_type="HMAC", shared_secret=SECRET, **credential_kwargs)
    return RequestSigner(clock=clock).build_auth_headers(credential, "POST", "https://x", body)


class TestVerifyRequest:
    def test_valid_request(self):
        assert verify_request(_signed_headers(), BODY, SECRET) is True

    def test_lowercase_header_names(self):
        headers = {k.lower(): v for k, v in _signed_headers().items()}
        assert verify_request(headers, BODY, SECRET) is True

    def test_custom_header_names(self):
        headers = _signed_headers(signature_header="X-Sig", timestamp_header="X-Ts")
        assert verify_request(headers, BODY, SECRET, signature_header="X-Sig", timestamp_header="X-Ts") is True

    def test_modified_body_rejected(self):
        assert verify_request(_signed_headers(), BODY.replace(b"DRY_RUN", b"EXECUTE"), SECRET) is False

    def test_wrong_secret_rejected(self):
        assert verify_request(_signed_headers(), BODY, "other-secret") is False

    def test_outside_replay_window_rejected(self):
        headers = _signed_headers(clock=lambda: time.time() - 301)
        assert verify_request(headers, BODY, SECRET, tolerance_seconds=300) is False

    def test_missing_headers_rejected(self):
        assert verify_request({}, BODY, SECRET) is False

    def test_non_numeric_timestamp_rejected(self):
        headers = _signed_headers()
        headers["X-Erasure-Timestamp"] = "yesterday"
        assert verify_request(headers, BODY, SECRET) is False
