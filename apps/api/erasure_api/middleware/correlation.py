"""Correlation ID middleware."""

import uuid

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

CORRELATION_HEADER = "x-correlation-id"
CORRELATION_ID_MAX_LENGTH = 64


class CorrelationIDMiddleware(BaseHTTPMiddleware):
    """Echo the caller's correlation ID (capped), or mint one, on every response."""

    async def dispatch(self, request: Request, call_next):
        inbound = request.headers.get(CORRELATION_HEADER)
        correlation_id = inbound[:CORRELATION_ID_MAX_LENGTH] if inbound else str(uuid.uuid4())
        request.state.correlation_id = correlation_id

        response: Response = await call_next(request)
        response.headers[CORRELATION_HEADER] = correlation_id
        return response
