"""Erasure Python SDK."""

__version__ = "0.1.0"

from erasure_sdk.client import ErasureClient
from erasure_sdk.webhook import verify_request

__all__ = ["ErasureClient", "verify_request"]
