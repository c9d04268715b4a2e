"""Erasure API - Main FastAPI application."""

import logging
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import make_asgi_app

from erasure_api import __version__
from erasure_api.errors import (
    ConfigurationError,
    DecryptionError,
    InvalidPayload,
    NotFound,
    SignatureInvalid,
)
from erasure_api.middleware.correlation import CorrelationIDMiddleware
from erasure_api.routes import agent, audit, billing, cascade, integrations, requests
from erasure_api.security.vault import is_vault_configured
from erasure_api.settings import get_settings

# Configure logging
logging.basicConfig(
    level=get_settings().log_level,
    format='{"time": "%(asctime)s", "level": "%(levelname)s", "message": "%(message)s", "module": "%(name)s"}',
    handlers=[logging.StreamHandler(sys.stdout)],
)
logger = logging.getLogger(__name__)

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    logger.info("Starting erasure API...")
    try:
        settings.validate_production_settings()
    except ValueError as e:
        logger.error(f"Configuration validation failed: {e}")
        raise

    if not is_vault_configured():
        logger.warning("APP_ENCRYPTION_KEY not set; HMAC and BEARER integrations are unavailable")

    yield
    logger.info("Shutting down erasure API...")


app = FastAPI(
    title="Erasure API",
    description="Deletion request cascade and outbound delivery backend",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)
app.add_middleware(CorrelationIDMiddleware)

# Prometheus metrics
metrics_app = make_asgi_app()
app.mount("/metrics", metrics_app)

# Register routers
app.include_router(requests.router)
app.include_router(cascade.router)
app.include_router(audit.router)
app.include_router(integrations.router)
app.include_router(agent.router)
app.include_router(billing.router)


def _error_response(status_code: int, detail: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"detail": detail})


@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request: Request, exc: ConfigurationError):
    return _error_response(status.HTTP_400_BAD_REQUEST, str(exc))


@app.exception_handler(DecryptionError)
async def decryption_error_handler(request: Request, exc: DecryptionError):
    # Never echo ciphertext or key details
    return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Stored credential could not be decrypted")


@app.exception_handler(NotFound)
async def not_found_handler(request: Request, exc: NotFound):
    return _error_response(status.HTTP_404_NOT_FOUND, str(exc))


@app.exception_handler(SignatureInvalid)
async def signature_invalid_handler(request: Request, exc: SignatureInvalid):
    return _error_response(status.HTTP_400_BAD_REQUEST, str(exc))


@app.exception_handler(InvalidPayload)
async def invalid_payload_handler(request: Request, exc: InvalidPayload):
    return _error_response(status.HTTP_400_BAD_REQUEST, str(exc))


@app.get("/health")
async def health_check():
    """Health check endpoint (basic liveness)."""
    return {
        "status": "healthy",
        "service": "erasure-api",
        "version": __version__,
        "vaultConfigured": is_vault_configured(),
    }
