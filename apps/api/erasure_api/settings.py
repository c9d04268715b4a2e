"""Application settings and configuration."""

from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    database_url: str = "sqlite:///./data/erasure.db"

    # API
    api_port: int = 4242
    api_host: str = "0.0.0.0"
    environment: str = "development"
    secret_key: str = "dev-secret-key-change-in-production"  # API key digests

    # Vault (integration credentials at rest); must hold >= 32 chars of entropy
    app_encryption_key: Optional[str] = None

    # Payment provider
    stripe_webhook_secret: Optional[str] = None
    stripe_webhook_tolerance_seconds: int = 300
    webhook_failed_event_policy: str = "ignore"  # ignore, reprocess

    # Outbound calls to customer APIs
    outbound_timeout_ms: int = 8000
    outbound_retries: int = 2
    outbound_signature_header: str = "X-Erasure-Signature"
    outbound_timestamp_header: str = "X-Erasure-Timestamp"
    outbound_replay_window_seconds: int = 300

    # Logging
    log_level: str = "INFO"

    # CORS
    cors_origins: list[str] = ["*"]
    cors_allow_credentials: bool = True
    cors_allow_methods: list[str] = ["*"]
    cors_allow_headers: list[str] = ["*"]

    @property
    def is_development(self) -> bool:
        """Check if running in development."""
        return self.environment.lower() == "development"

    def validate_production_settings(self):
        """Validate settings for production environment."""
        env = self.environment.lower()
        if self.webhook_failed_event_policy not in ("ignore", "reprocess"):
            raise ValueError(
                "WEBHOOK_FAILED_EVENT_POLICY must be 'ignore' or 'reprocess', "
                f"got '{self.webhook_failed_event_policy}'"
            )
        if env not in ("development", "test", "dev"):
            if not self.app_encryption_key or len(self.app_encryption_key) < 32:
                raise ValueError(
                    "APP_ENCRYPTION_KEY (min 32 chars) is required in production."
                )
            if not self.stripe_webhook_secret:
                raise ValueError("STRIPE_WEBHOOK_SECRET is required in production.")
            if self.secret_key.startswith("dev-"):
                raise ValueError("SECRET_KEY must be changed from the development default.")


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
