"""Error taxonomy shared by services and routes."""


class ErasureError(Exception):
    """Base class for service errors surfaced to callers."""


class ConfigurationError(ErasureError):
    """Operator configuration is missing or too weak for the requested operation."""


class DecryptionError(ErasureError):
    """A stored credential blob is malformed or failed authentication."""


class NotFound(ErasureError):
    """Entity does not exist or belongs to another tenant."""


class SignatureInvalid(ErasureError):
    """Inbound webhook signature did not verify against the raw body."""


class InvalidPayload(ErasureError):
    """Inbound payload passed signature checks but could not be parsed."""
