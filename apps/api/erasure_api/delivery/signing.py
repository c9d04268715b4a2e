"""Authentication headers for outbound calls."""

import hashlib
import hmac
import time
from dataclasses import dataclass, field
from typing import Callable, Optional, Union

from erasure_api.errors import ConfigurationError
from erasure_api.models.integration import AUTH_BEARER, AUTH_HMAC, AUTH_NONE

DEFAULT_SIGNATURE_HEADER = "X-Erasure-Signature"
DEFAULT_TIMESTAMP_HEADER = "X-Erasure-Timestamp"


@dataclass
class Credential:
    """Decrypted credential for one integration. Lives only for the call."""

    auth_type: str = AUTH_NONE
    shared_secret: Optional[str] = field(default=None, repr=False)
    bearer_token: Optional[str] = field(default=None, repr=False)
    static_headers: dict[str, str] = field(default_factory=dict)
    signature_header: str = DEFAULT_SIGNATURE_HEADER
    timestamp_header: str = DEFAULT_TIMESTAMP_HEADER

    def __post_init__(self):
        if self.auth_type == AUTH_HMAC and not self.shared_secret:
            raise ConfigurationError("HMAC credential requires a shared secret")
        if self.auth_type == AUTH_BEARER and not self.bearer_token:
            raise ConfigurationError("BEARER credential requires a token")
        if self.auth_type not in (AUTH_NONE, AUTH_HMAC, AUTH_BEARER):
            raise ConfigurationError(f"Unknown auth type: {self.auth_type}")


def _as_bytes(value: Union[str, bytes]) -> bytes:
    return value if isinstance(value, bytes) else value.encode("utf-8")


def sign_hmac(secret: str, timestamp: str, body: Union[str, bytes]) -> str:
    """HMAC-SHA256 over ``timestamp || body``, no separator, hex encoded."""
    message = timestamp.encode("utf-8") + _as_bytes(body)
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


class RequestSigner:
    """Builds per-attempt authentication headers.

    HMAC timestamps are generated on every call, so headers must never be
    reused across retries: receivers reject anything outside their replay window.
    """

    def __init__(self, clock: Optional[Callable[[], float]] = None):
        self._clock = clock or time.time

    def build_auth_headers(
        self,
        credential: Credential,
        method: str,
        url: str,
        body: Union[str, bytes],
    ) -> dict[str, str]:
        """Return static headers plus whatever the credential's auth type requires."""
        headers = dict(credential.static_headers)

        if credential.auth_type == AUTH_BEARER:
            headers["Authorization"] = f"Bearer {credential.bearer_token}"
        elif credential.auth_type == AUTH_HMAC:
            timestamp = str(int(self._clock()))
            headers[credential.timestamp_header] = timestamp
            headers[credential.signature_header] = sign_hmac(
                credential.shared_secret, timestamp, body
            )

        return headers
