# =============================================================================
# Admin API — Namespace Reset & Proof Metrics
# =============================================================================
#
# POST /admin/reset deletes every record in the request's namespace. It is
# guarded by X-Admin-Token (see deps.require_admin_token) and refuses to
# run without an explicit namespace, so the default partition of a shared
# index cannot be wiped by accident.
#
# GET /proof/metrics serves the benchmark summary produced outside the
# service (proof/metrics.json) as-is.
# =============================================================================

from __future__ import annotations

import json
import logging
from pathlib import Path

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from docqa.api.deps import get_namespace, get_store, require_admin_token
from docqa.api.query import respond
from docqa.config import settings
from docqa.models.responses import AdminErrorResponse, ResetResponse
from docqa.services.vectorstore import VectorStore

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Admin"])


# ---------------------------------------------------------------------------
# POST /admin/reset — Clear a namespace
# ---------------------------------------------------------------------------


@router.post(
    "/admin/reset",
    response_model=ResetResponse,
    summary="Delete every record in the namespace",
    description=(
        "Requires the X-Admin-Token header (except when ENVIRONMENT=test). "
        "The namespace comes from X-Namespace or VECTOR_NAMESPACE and must "
        "not be empty."
    ),
    responses={400: {"model": AdminErrorResponse}, 500: {"model": AdminErrorResponse}},
    dependencies=[Depends(require_admin_token)],
)
async def reset_namespace(
    namespace: str = Depends(get_namespace),
    store: VectorStore = Depends(get_store),
) -> JSONResponse:
    if not namespace:
        return respond(
            AdminErrorResponse(
                error="missing namespace (set VECTOR_NAMESPACE or X-Namespace)",
            ),
            400,
        )

    try:
        await store.delete_namespace(namespace)
    except Exception as e:
        logger.exception("Reset failed for namespace %r", namespace)
        return respond(AdminErrorResponse(error=str(e)), 500)

    logger.warning("Cleared namespace %r", namespace)
    return respond(ResetResponse(cleared={"namespace": namespace}))


# ---------------------------------------------------------------------------
# GET /proof/metrics — Benchmark summary
# ---------------------------------------------------------------------------


@router.get(
    "/proof/metrics",
    summary="Serve the recorded benchmark metrics",
    responses={404: {"description": "proof/metrics.json is missing or unreadable"}},
)
async def proof_metrics() -> JSONResponse:
    path = Path(settings.proof_metrics_path)
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        return JSONResponse(
            status_code=404,
            content={"error": "Missing proof metrics", "detail": str(e)},
        )
    return JSONResponse(content=payload)
