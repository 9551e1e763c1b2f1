# =============================================================================
# Query API — Single-Shot Document Q&A Endpoint
# =============================================================================
#
# POST /query runs the retrieval-augmented pipeline in agents/pipeline.py
# against the request's namespace.
#
# This endpoint is thin: dependency resolution, the orchestrator call, and
# response mapping. The orchestrator never raises; its FailureKind decides
# the status code (400 invalid request, 500 configuration/upstream).
# =============================================================================

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from docqa.agents.pipeline import QueryResult, answer_query
from docqa.api.deps import get_llm, get_namespace, get_store
from docqa.models.requests import QueryRequest
from docqa.models.responses import QueryDebugInfo, QueryResponse
from docqa.services.llm import LLMProvider
from docqa.services.vectorstore import VectorStore

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Question Answering"])


# ---------------------------------------------------------------------------
# POST /query — Answer a question from the ingested documents
# ---------------------------------------------------------------------------


@router.post(
    "/query",
    response_model=QueryResponse,
    summary="Ask a question about the ingested documents",
    description=(
        "Retrieves the most relevant chunks in the namespace and answers "
        "using only that context, citing blocks as [#id]. `sources` lists "
        "the documents the answer was grounded in."
    ),
)
async def query_endpoint(
    request: QueryRequest,
    namespace: str = Depends(get_namespace),
    store: VectorStore = Depends(get_store),
    llm: LLMProvider | None = Depends(get_llm),
) -> JSONResponse:
    result = await answer_query(
        request.query or "",
        namespace,
        store=store,
        llm=llm,
    )
    status_code = result.failure.status_code if result.failure else 200
    return respond(to_query_response(result), status_code)


# ---------------------------------------------------------------------------
# Response Mapping
# ---------------------------------------------------------------------------


def to_query_response(result: QueryResult) -> QueryResponse:
    debug = None
    if result.debug is not None:
        debug = QueryDebugInfo(
            retrieval_ms=result.debug.retrieval_ms,
            llm_ms=result.debug.llm_ms,
            chunks_count=result.debug.chunks_count,
            top_score=result.debug.top_score,
        )
    return QueryResponse(
        answer=result.answer,
        sources=result.sources,
        latency_ms=result.latency_ms,
        request_id=result.request_id,
        debug=debug,
        error=result.error,
    )


def respond(body: BaseModel, status_code: int = 200) -> JSONResponse:
    """Serialise a response model by alias, omitting unset optional fields."""
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(mode="json", by_alias=True, exclude_none=True),
    )
