# =============================================================================
# Ingestion API — Document Upload Endpoints
# =============================================================================
#
# POST /ingest accepts one document as base64 PDF bytes or as extracted
# text, and writes its chunks to the request's namespace before returning.
# POST /demo/ingest loads the three bundled demo contracts from the data
# directory (see scripts/generate_demo_contracts.py).
#
# DESIGN DECISION: Ingestion completes within the request.
# There is no task queue: the response reports the number of chunks
# actually written, and the document is queryable as soon as it returns.
# =============================================================================

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from docqa.api.deps import get_namespace, get_store
from docqa.api.query import respond
from docqa.errors import InvalidRequest
from docqa.models.requests import IngestRequest
from docqa.models.responses import (
    DemoFileStatus,
    DemoIngestResponse,
    IngestErrorResponse,
    IngestResponse,
)
from docqa.services.ingestion import ingest_demo_documents, ingest_document
from docqa.services.vectorstore import VectorStore

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Ingestion"])


# ---------------------------------------------------------------------------
# POST /ingest — Ingest one document
# ---------------------------------------------------------------------------


@router.post(
    "/ingest",
    response_model=IngestResponse,
    summary="Ingest a document into the namespace",
    description=(
        "Provide `filename` plus either `text` or base64 `content` (PDF "
        "bytes). The text is chunked into 500-character windows with 50 "
        "characters of overlap; re-ingesting a filename overwrites its "
        "chunks."
    ),
    responses={400: {"model": IngestErrorResponse}, 500: {"model": IngestErrorResponse}},
)
async def ingest_endpoint(
    request: IngestRequest,
    namespace: str = Depends(get_namespace),
    store: VectorStore = Depends(get_store),
) -> JSONResponse:
    try:
        result = await ingest_document(
            request.filename or "",
            namespace=namespace,
            store=store,
            content_b64=request.content,
            text=request.text,
        )
    except InvalidRequest as e:
        return respond(IngestErrorResponse(message=str(e)), 400)
    except Exception as e:
        logger.exception("Ingest error for '%s'", request.filename)
        return respond(IngestErrorResponse(message=str(e)), 500)

    logger.info(
        "Ingested '%s': %d chunks (namespace=%r)",
        result.doc_id, result.chunks, namespace,
    )
    return respond(IngestResponse(chunks=result.chunks, doc_id=result.doc_id))


# ---------------------------------------------------------------------------
# POST /demo/ingest — Ingest the bundled demo contracts
# ---------------------------------------------------------------------------


@router.post(
    "/demo/ingest",
    response_model=DemoIngestResponse,
    summary="Ingest the bundled demo contracts",
    description=(
        "Loads Master_Services_Agreement.pdf, NDA_Contract.pdf and "
        "SaaS_License_Agreement.pdf from the demo data directory. Each "
        "file reports its own success or error."
    ),
)
async def demo_ingest_endpoint(
    namespace: str = Depends(get_namespace),
    store: VectorStore = Depends(get_store),
) -> JSONResponse:
    outcome = await ingest_demo_documents(namespace=namespace, store=store)
    return respond(DemoIngestResponse(
        status=outcome.status,
        results=[
            DemoFileStatus(
                filename=r.filename,
                status=r.status,
                chunks=r.chunks,
                error=r.error,
            )
            for r in outcome.results
        ],
    ))
