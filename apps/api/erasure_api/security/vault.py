"""Vault for integration credentials stored at rest.

Blobs are AES-256-GCM: ``base64(nonce || tag || ciphertext)`` with a fresh
16-byte nonce per call. The key is SHA-256 of the operator-supplied
``APP_ENCRYPTION_KEY``. That hash only normalizes length, it is not a slow KDF,
so the configured value must itself carry enough entropy.
"""

import base64
import binascii
import hashlib
import logging
import secrets
from typing import Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from erasure_api.errors import ConfigurationError, DecryptionError
from erasure_api.settings import get_settings

logger = logging.getLogger(__name__)

MIN_KEY_LENGTH = 32
NONCE_LENGTH = 16
TAG_LENGTH = 16


def derive_key(key_material: str) -> bytes:
    """Normalize operator key material to a 256-bit AES key."""
    if not key_material or len(key_material) < MIN_KEY_LENGTH:
        raise ConfigurationError(
            f"APP_ENCRYPTION_KEY must be set and at least {MIN_KEY_LENGTH} characters "
            "for HMAC/BEARER integrations"
        )
    return hashlib.sha256(key_material[:64].encode("utf-8")).digest()


def encrypt(plaintext: str, key: bytes) -> str:
    """Encrypt plaintext with a 32-byte key and return the base64 blob."""
    nonce = secrets.token_bytes(NONCE_LENGTH)
    sealed = AESGCM(key).encrypt(nonce, plaintext.encode("utf-8"), None)
    ciphertext, tag = sealed[:-TAG_LENGTH], sealed[-TAG_LENGTH:]
    return base64.b64encode(nonce + tag + ciphertext).decode("ascii")


def decrypt(blob: str, key: bytes) -> str:
    """Decrypt a blob produced by ``encrypt``; fails closed on any mismatch."""
    try:
        raw = base64.b64decode(blob, validate=True)
    except (binascii.Error, ValueError, TypeError) as e:
        raise DecryptionError("Invalid encrypted payload") from e

    if len(raw) < NONCE_LENGTH + TAG_LENGTH:
        raise DecryptionError("Invalid encrypted payload")

    nonce = raw[:NONCE_LENGTH]
    tag = raw[NONCE_LENGTH:NONCE_LENGTH + TAG_LENGTH]
    ciphertext = raw[NONCE_LENGTH + TAG_LENGTH:]
    try:
        plaintext = AESGCM(key).decrypt(nonce, ciphertext + tag, None)
    except InvalidTag as e:
        raise DecryptionError("Encrypted payload failed authentication") from e

    try:
        return plaintext.decode("utf-8")
    except UnicodeDecodeError as e:
        raise DecryptionError("Encrypted payload is not valid text") from e


class SecretVault:
    """Encrypts and decrypts integration credentials with the operator key."""

    def __init__(self, key_material: Optional[str]):
        """Initialize vault; refuses to operate without a strong enough key."""
        self._key = derive_key(key_material)

    def encrypt(self, plaintext: str) -> str:
        """Encrypt a credential for storage."""
        return encrypt(plaintext, self._key)

    def decrypt(self, blob: str) -> str:
        """Decrypt a stored credential."""
        try:
            return decrypt(blob, self._key)
        except DecryptionError:
            # Never log the blob or key material
            logger.warning("Credential decryption failed (key mismatch or corrupted blob)")
            raise


def get_vault() -> SecretVault:
    """Build the vault from settings; raises ConfigurationError when the key is weak."""
    return SecretVault(get_settings().app_encryption_key)


def is_vault_configured() -> bool:
    """Check whether credential-bearing integrations can be used."""
    key = get_settings().app_encryption_key
    return bool(key) and len(key) >= MIN_KEY_LENGTH
