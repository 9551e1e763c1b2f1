# =============================================================================
# Application Entry Point — FastAPI App Assembly
# =============================================================================
#
# Builds the FastAPI app: logging, middleware, routers, the request
# validation handler and the health check.
#
# Run locally:
#   uvicorn docqa.main:app --reload
#
# DESIGN DECISION: Validation errors use the query failure shape.
# FastAPI's default is a 422 with a `detail` list. Clients of this API
# read `answer`/`error`/`requestId` from every failure, so malformed
# bodies are answered with a 400 in that shape instead.
# =============================================================================

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from docqa.agents.pipeline import new_request_id
from docqa.api import admin, compare, decompose, ingest, query
from docqa.api.request_logging import RequestLoggingMiddleware
from docqa.config import settings
from docqa.models.responses import HealthResponse

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description=(
        "Question answering, multi-step decomposition and cross-document "
        "comparison over ingested documents, grounded in retrieved context."
    ),
)

app.add_middleware(RequestLoggingMiddleware)

app.include_router(query.router)
app.include_router(decompose.router)
app.include_router(compare.router)
app.include_router(ingest.router)
app.include_router(admin.router)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    request_id = new_request_id()
    errors = "; ".join(
        f"{'.'.join(str(part) for part in err.get('loc', ()))}: {err.get('msg', '')}"
        for err in exc.errors()
    )
    logger.warning(
        "Invalid request [%s] %s %s: %s",
        request_id, request.method, request.url.path, errors,
    )
    return JSONResponse(
        status_code=400,
        content={
            "answer": "Invalid request",
            "sources": [],
            "latency_ms": 0,
            "requestId": request_id,
            "error": errors or "Invalid request body",
        },
    )


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health() -> HealthResponse:
    return HealthResponse(
        status="ok",
        version=settings.app_version,
        service=settings.app_name,
    )
