"""Verification of signed calls from the erasure platform to a customer API."""

import hashlib
import hmac
import time
from typing import Mapping, Optional, Union

DEFAULT_SIGNATURE_HEADER = "X-Erasure-Signature"
DEFAULT_TIMESTAMP_HEADER = "X-Erasure-Timestamp"


def _header(headers: Mapping[str, str], name: str) -> str:
    # Frameworks differ in header casing
    value = headers.get(name)
    if value is None:
        lowered = name.lower()
        for key, candidate in headers.items():
            if key.lower() == lowered:
                return candidate
        return ""
    return value


def verify_request(
    headers: Mapping[str, str],
    raw_body: Union[bytes, str],
    secret: str,
    tolerance_seconds: int = 300,
    signature_header: str = DEFAULT_SIGNATURE_HEADER,
    timestamp_header: str = DEFAULT_TIMESTAMP_HEADER,
    now: Optional[float] = None,
) -> bool:
    """
    Verify an HMAC-signed request and its timestamp.

    The platform signs ``timestamp || raw_body`` (no separator) with
    HMAC-SHA256 and sends the hex digest. Pass the body bytes exactly as
    received; re-serialized JSON will not verify.

    Args:
        headers: Request headers
        raw_body: Raw request body bytes
        secret: Shared secret returned when the integration was created or rotated
        tolerance_seconds: Replay window (default: 300 = 5 minutes)
        signature_header: Signature header name configured on the integration
        timestamp_header: Timestamp header name configured on the integration
        now: Override for the current Unix time

    Returns:
        True if the request is authentic and fresh, False otherwise
    """
    signature = _header(headers, signature_header)
    timestamp_str = _header(headers, timestamp_header)
    if not signature or not timestamp_str:
        return False

    try:
        timestamp = int(timestamp_str)
    except (ValueError, TypeError):
        return False

    current_time = int(now if now is not None else time.time())
    if abs(current_time - timestamp) > tolerance_seconds:
        return False

    if not isinstance(raw_body, bytes):
        raw_body = raw_body.encode("utf-8")

    computed = hmac.new(
        secret.encode("utf-8"),
        timestamp_str.encode("utf-8") + raw_body,
        hashlib.sha256,
    ).hexdigest()
    return hmac.compare_digest(signature.lower(), computed)
