"""Small helpers shared across services."""

import hashlib
import re
import secrets
import uuid
from datetime import datetime, timezone
from typing import Optional

_HEX64 = re.compile(r"^[a-fA-F0-9]{64}$")


def new_id() -> str:
    """Generate a random entity id."""
    return str(uuid.uuid4())


def utcnow() -> datetime:
    """Naive UTC timestamp, the storage convention for every DateTime column."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def is_hex64(value: Optional[str]) -> bool:
    """Check value looks like a hex SHA-256 digest."""
    return bool(value) and bool(_HEX64.match(value))


def truncate(value: Optional[str], limit: int) -> Optional[str]:
    """Bound a string before storage or logging."""
    if value is None:
        return None
    return value[:limit]


def mask_email(email: Optional[str]) -> str:
    """Mask an email for logs: p***@domain.com."""
    if not email or "@" not in email or email.index("@") == 0:
        return "***"
    local, domain = email.split("@", 1)
    masked = "***" if len(local) <= 2 else local[0] + "***"
    return f"{masked}@{domain}"


def hash_token(token: str) -> str:
    """SHA-256 hex digest of a bearer token, as stored in connector_tokens."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def generate_secret() -> str:
    """Generate a random 32-byte hex secret (connector tokens, HMAC shared secrets)."""
    return secrets.token_hex(32)
