"""Tests for the outbound delivery client."""

import json
from unittest.mock import patch

import httpx
import pytest

from erasure_api.delivery.client import DeliveryClient, TargetConfig, join_url
from erasure_api.delivery.signing import Credential, RequestSigner, sign_hmac


class RecordingTransport:
    """Wraps a handler and records every request it sees."""

    def __init__(self, handler):
        self.requests = []
        self._handler = handler

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self._handler(request)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


def _client(handler):
    recorder = RecordingTransport(handler)
    return DeliveryClient(transport=recorder.transport), recorder


def _timeout(request: httpx.Request) -> httpx.Response:
    raise httpx.ConnectTimeout("timed out", request=request)


class TestJoinUrl:
    @pytest.mark.parametrize(
        "base,path",
        [
            ("https://api.example.com", "/erasure/health"),
            ("https://api.example.com/", "/erasure/health"),
            ("https://api.example.com//", "erasure/health"),
            ("https://api.example.com", "erasure/health"),
        ],
    )
    def test_exactly_one_slash(self, base, path):
        assert join_url(base, path) == "https://api.example.com/erasure/health"


class TestRetryBound:
    """Only transport failures are retried."""

    @pytest.mark.parametrize("retries", [0, 1, 2, 5])
    def test_timeout_attempts_retries_plus_one(self, retries):
        client, recorder = _client(_timeout)
        result = client.health_check(TargetConfig(base_url="https://x.test", retries=retries))

        assert len(recorder.requests) == retries + 1
        assert result.ok is False
        assert result.status_code == 0
        assert result.endpoint == "https://x.test/erasure/health"
        assert result.message

    def test_connect_error_folded_into_result(self):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        client, recorder = _client(refuse)
        result = client.status_check(TargetConfig(base_url="https://x.test", retries=2))

        assert len(recorder.requests) == 3
        assert result.status_code == 0
        assert "connection refused" in result.message

    def test_http_500_not_retried(self):
        client, recorder = _client(lambda request: httpx.Response(500, text="boom"))
        result = client.health_check(TargetConfig(base_url="https://x.test", retries=3))

        assert len(recorder.requests) == 1
        assert result.ok is False
        assert result.status_code == 500
        assert result.message == "HTTP 500"
        assert result.response_sample == "boom"

    def test_recovers_after_transient_failure(self):
        calls = {"n": 0}

        def flaky(request):
            calls["n"] += 1
            if calls["n"] == 1:
                raise httpx.ReadTimeout("slow", request=request)
            return httpx.Response(200, json={"ok": True})

        client, recorder = _client(flaky)
        result = client.health_check(TargetConfig(base_url="https://x.test", retries=2))

        assert len(recorder.requests) == 2
        assert result.ok is True
        assert result.status_code == 200


class TestResponseHandling:
    def test_2xx_is_ok(self):
        client, _ = _client(lambda request: httpx.Response(204))
        result = client.health_check(TargetConfig(base_url="https://x.test"))
        assert result.ok is True
        assert result.status_code == 204
        assert result.message is None

    def test_404_reported_not_raised(self):
        client, _ = _client(lambda request: httpx.Response(404, text="nope"))
        result = client.status_check(TargetConfig(base_url="https://x.test"))
        assert result.ok is False
        assert result.status_code == 404

    def test_response_sample_truncated(self):
        client, _ = _client(lambda request: httpx.Response(200, text="y" * 2000))
        result = client.health_check(TargetConfig(base_url="https://x.test"))
        assert len(result.response_sample) == 500

    def test_to_dict_uses_camel_case(self):
        client, _ = _client(lambda request: httpx.Response(200, text="ok"))
        data = client.health_check(TargetConfig(base_url="https://x.test")).to_dict()
        assert set(data) == {"ok", "statusCode", "latencyMs", "endpoint", "message", "responseSample"}


class TestSignedCalls:
    def test_every_call_sends_json_content_type(self):
        client, recorder = _client(lambda request: httpx.Response(200))
        client.health_check(TargetConfig(base_url="https://x.test"))
        assert recorder.requests[0].headers["content-type"] == "application/json"
        assert recorder.requests[0].method == "GET"

    def test_bearer_header_sent(self):
        client, recorder = _client(lambda request: httpx.Response(200))
        target = TargetConfig(
            base_url="https://x.test",
            credential=Credential(auth_type="BEARER", bearer_token="tok"),
        )
        client.status_check(target)
        assert recorder.requests[0].headers["authorization"] == "Bearer tok"

    def test_each_retry_is_resigned(self):
        ticks = iter([1_700_000_000, 1_700_000_007, 1_700_000_014])
        signer = RequestSigner(clock=lambda: next(ticks))
        recorder = RecordingTransport(_timeout)
        client = DeliveryClient(signer=signer, transport=recorder.transport)
        target = TargetConfig(
            base_url="https://x.test",
            credential=Credential(auth_type="HMAC", shared_secret="shh"),
            retries=2,
        )

        client.delete_call(target, request_id="r1", subject_hash="a" * 64)

        timestamps = [r.headers["x-erasure-timestamp"] for r in recorder.requests]
        assert timestamps == ["1700000000", "1700000007", "1700000014"]
        for request in recorder.requests:
            ts = request.headers["x-erasure-timestamp"]
            assert request.headers["x-erasure-signature"] == sign_hmac("shh", ts, request.content)


class TestDeleteCall:
    def test_fixed_shape_payload(self):
        client, recorder = _client(lambda request: httpx.Response(202))
        result = client.delete_call(
            TargetConfig(base_url="https://x.test/", delete_path="/v2/delete"),
            request_id="req-1",
            subject_hash="A" * 64,
        )

        request = recorder.requests[0]
        assert request.method == "POST"
        assert str(request.url) == "https://x.test/v2/delete"
        assert json.loads(request.content) == {
            "requestId": "req-1",
            "subjectHash": "a" * 64,
            "mode": "DRY_RUN",
            "source": "erasure-cascade-test",
        }
        assert result.ok is True

    def test_defaults_for_test_calls(self):
        client, recorder = _client(lambda request: httpx.Response(200))
        client.delete_call(TargetConfig(base_url="https://x.test"))

        body = json.loads(recorder.requests[0].content)
        assert body["requestId"].startswith("test-")
        assert body["subjectHash"] == "0" * 64

    def test_non_hash_subject_folded_into_result(self):
        client, recorder = _client(lambda request: httpx.Response(200))
        result = client.delete_call(TargetConfig(base_url="https://x.test"), subject_hash="alice@example.com")

        assert recorder.requests == []
        assert result.ok is False
        assert result.status_code == 0
        assert result.endpoint == "https://x.test/erasure/delete"
        assert "64-char hex" in result.message


class BrokenBody(httpx.SyncByteStream):
    """Yields a first chunk, then the connection drops."""

    def __iter__(self):
        yield b"partial"
        raise httpx.ReadError("connection reset while reading body")


class TestUnreadableBody:
    def test_status_kept_and_not_retried(self):
        client, recorder = _client(lambda request: httpx.Response(200, stream=BrokenBody()))
        result = client.delete_call(
            TargetConfig(base_url="https://x.test", retries=2),
            request_id="r1",
            subject_hash="a" * 64,
        )

        assert len(recorder.requests) == 1
        assert result.ok is True
        assert result.status_code == 200
        assert result.response_sample is None

    def test_http_error_with_broken_body(self):
        client, recorder = _client(lambda request: httpx.Response(503, stream=BrokenBody()))
        result = client.health_check(TargetConfig(base_url="https://x.test", retries=3))

        assert len(recorder.requests) == 1
        assert result.ok is False
        assert result.status_code == 503
        assert result.message == "HTTP 503"
        assert result.response_sample is None


class TestLatency:
    def test_reports_final_attempt_only(self):
        calls = {"n": 0}

        def flaky(request):
            calls["n"] += 1
            if calls["n"] == 1:
                raise httpx.ConnectError("refused", request=request)
            return httpx.Response(200, text="ok")

        client, recorder = _client(flaky)
        # failed attempt spans 0s..5s, successful one 10s..10.25s
        with patch("erasure_api.delivery.client.time") as fake_time:
            fake_time.monotonic.side_effect = [0.0, 5.0, 10.0, 10.25]
            result = client.health_check(TargetConfig(base_url="https://x.test", retries=2))

        assert len(recorder.requests) == 2
        assert result.ok is True
        assert result.latency_ms == 250

    def test_transport_failure_reports_last_attempt(self):
        client, _ = _client(_timeout)
        with patch("erasure_api.delivery.client.time") as fake_time:
            fake_time.monotonic.side_effect = [0.0, 1.0, 2.0, 2.5]
            result = client.health_check(TargetConfig(base_url="https://x.test", retries=1))

        assert result.status_code == 0
        assert result.latency_ms == 500
