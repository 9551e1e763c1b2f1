# =============================================================================
# Request Logging Middleware — Request/Response Lifecycle Logging
# =============================================================================
#
# Emits one log line per API request: method, path, namespace, status code
# and elapsed time. Orchestrators log their own request ids; this line
# gives the outer view that includes validation and serialisation.
#
# DESIGN DECISION: Starlette middleware (not a FastAPI dependency) because:
# 1. Middleware wraps the ENTIRE request lifecycle (captures status code)
# 2. Captures timing across the full request
# 3. Does not require every endpoint to explicitly opt-in
# =============================================================================

from __future__ import annotations

import logging
import time

from starlette.middleware.base import (
    BaseHTTPMiddleware,
    RequestResponseEndpoint,
)
from starlette.requests import Request
from starlette.responses import Response

from docqa.config import settings

logger = logging.getLogger(__name__)

# Endpoints to skip (health check, docs)
_SKIP_PATHS = {"/health", "/docs", "/redoc", "/openapi.json"}


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs every non-skipped request once its response is ready."""

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        if not settings.request_logging_enabled:
            return await call_next(request)

        if request.url.path in _SKIP_PATHS:
            return await call_next(request)

        start_time = time.monotonic()
        response = await call_next(request)
        elapsed_ms = int((time.monotonic() - start_time) * 1000)

        namespace = request.headers.get("x-namespace") or settings.vector_namespace
        logger.info(
            "%s %s namespace=%r status=%d elapsed=%dms",
            request.method,
            request.url.path,
            namespace,
            response.status_code,
            elapsed_ms,
        )
        return response
