"""Tests for outbound request signing."""

import hashlib
import hmac

import pytest

from erasure_api.delivery.signing import Credential, RequestSigner, sign_hmac
from erasure_api.errors import ConfigurationError


class FakeClock:
    def __init__(self, start: float):
        self.now = start

    def __call__(self) -> float:
        return self.now


class TestSignHmac:
    """HMAC over timestamp and body."""

    def test_matches_reference_construction(self):
        expected = hmac.new(b"secret", b"1700000000" + b'{"a":1}', hashlib.sha256).hexdigest()
        assert sign_hmac("secret", "1700000000", b'{"a":1}') == expected

    def test_deterministic_for_fixed_inputs(self):
        assert sign_hmac("s", "1", "body") == sign_hmac("s", "1", b"body")

    def test_one_byte_body_change_changes_signature(self):
        assert sign_hmac("s", "1", b"body") != sign_hmac("s", "1", b"bodY")

    def test_no_separator_between_timestamp_and_body(self):
        # "12" + "3" and "1" + "23" sign the same bytes
        assert sign_hmac("s", "12", b"3") == sign_hmac("s", "1", b"23")


class TestBuildAuthHeaders:
    """Headers per auth type."""

    def test_none_returns_static_headers_only(self):
        credential = Credential(static_headers={"X-Tenant": "acme"})
        headers = RequestSigner().build_auth_headers(credential, "GET", "https://x", b"")
        assert headers == {"X-Tenant": "acme"}

    def test_bearer(self):
        credential = Credential(auth_type="BEARER", bearer_token="tok", static_headers={"A": "b"})
        headers = RequestSigner().build_auth_headers(credential, "POST", "https://x", b"{}")
        assert headers == {"A": "b", "Authorization": "Bearer tok"}

    def test_hmac_uses_configured_header_names(self):
        clock = FakeClock(1_700_000_000)
        credential = Credential(
            auth_type="HMAC",
            shared_secret="shh",
            signature_header="X-Sig",
            timestamp_header="X-Ts",
        )
        body = b'{"requestId":"r1"}'
        headers = RequestSigner(clock=clock).build_auth_headers(credential, "POST", "https://x", body)

        assert headers["X-Ts"] == "1700000000"
        assert headers["X-Sig"] == sign_hmac("shh", "1700000000", body)

    def test_hmac_timestamp_is_fresh_per_call(self):
        clock = FakeClock(1_700_000_000)
        signer = RequestSigner(clock=clock)
        credential = Credential(auth_type="HMAC", shared_secret="shh")

        first = signer.build_auth_headers(credential, "POST", "https://x", b"{}")
        clock.now += 5
        second = signer.build_auth_headers(credential, "POST", "https://x", b"{}")

        assert first["X-Erasure-Timestamp"] != second["X-Erasure-Timestamp"]
        assert first["X-Erasure-Signature"] != second["X-Erasure-Signature"]

    def test_static_headers_not_mutated(self):
        static = {"X-Tenant": "acme"}
        credential = Credential(auth_type="BEARER", bearer_token="tok", static_headers=static)
        RequestSigner().build_auth_headers(credential, "GET", "https://x", b"")
        assert static == {"X-Tenant": "acme"}


class TestCredentialInvariants:
    """A credential cannot exist without the secret its auth type needs."""

    def test_hmac_requires_secret(self):
        with pytest.raises(ConfigurationError):
            Credential(auth_type="HMAC")

    def test_bearer_requires_token(self):
        with pytest.raises(ConfigurationError):
            Credential(auth_type="BEARER")

    def test_unknown_auth_type(self):
        with pytest.raises(ConfigurationError):
            Credential(auth_type="BASIC")

    def test_secrets_hidden_from_repr(self):
        credential = Credential(auth_type="HMAC", shared_secret="do-not-print")
        assert "do-not-print" not in repr(credential)
