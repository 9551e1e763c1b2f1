# =============================================================================
# Compare API — Cross-Document Comparison Endpoint
# =============================================================================
#
# POST /compare compares what two or more documents in the namespace say
# about a question (agents/comparator.py). The response carries the raw
# answer plus a best-effort per-aspect breakdown in `structured`.
# =============================================================================

from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from docqa.agents.comparator import ComparisonResult, compare_documents
from docqa.api.deps import get_llm, get_namespace, get_store
from docqa.api.query import respond
from docqa.models.requests import CompareRequest
from docqa.models.responses import (
    CompareDebugInfo,
    CompareResponse,
    ComparisonSectionModel,
    DocStatement,
    StructuredComparisonModel,
)
from docqa.services.llm import LLMProvider
from docqa.services.vectorstore import VectorStore

router = APIRouter(tags=["Comparison"])


@router.post(
    "/compare",
    response_model=CompareResponse,
    summary="Compare documents on a question",
    description=(
        "Retrieves context from the selected documents only (docIds match "
        "sources by case-insensitive substring) and produces a "
        "differences, similarities or summary comparison. Requires at "
        "least 2 distinct docIds."
    ),
)
async def compare_endpoint(
    request: CompareRequest,
    namespace: str = Depends(get_namespace),
    store: VectorStore = Depends(get_store),
    llm: LLMProvider | None = Depends(get_llm),
) -> JSONResponse:
    result = await compare_documents(
        request.query or "",
        request.doc_ids,
        request.comparison_type,
        namespace,
        store=store,
        llm=llm,
    )
    status_code = result.failure.status_code if result.failure else 200
    return respond(to_compare_response(result), status_code)


def to_compare_response(result: ComparisonResult) -> CompareResponse:
    structured = None
    if result.structured is not None:
        structured = StructuredComparisonModel(
            sections=[
                ComparisonSectionModel(
                    aspect=section.aspect,
                    comparisons=[
                        DocStatement(doc=c.doc, value=c.value)
                        for c in section.comparisons
                    ],
                )
                for section in result.structured.sections
            ],
            raw=result.structured.raw,
        )

    debug = None
    if result.debug is not None:
        debug = CompareDebugInfo(
            chunks_count=result.debug.chunks_count,
            docs_matched=result.debug.docs_matched,
        )

    return CompareResponse(
        answer=result.answer,
        sources=result.sources,
        doc_ids=result.doc_ids,
        comparison_type=result.comparison_type,
        structured=structured,
        request_id=result.request_id,
        latency_ms=result.latency_ms,
        debug=debug,
        error=result.error,
    )
