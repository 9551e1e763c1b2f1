# =============================================================================
# Decompose API — Multi-Step Reasoning Endpoint
# =============================================================================
#
# POST /decompose asks the decomposition graph (agents/decomposer.py)
# whether the question needs splitting. Decomposed questions come back
# with their steps and a synthesised final answer.
#
# DESIGN DECISION: The direct-query fallback is opt-in.
# Without `fallback`, a question that needs no decomposition returns only
# the analyser's reasoning, which lets clients route it to /query
# themselves. With `fallback: true` the query pipeline runs here and its
# response is attached as `result`, under the same request id.
# =============================================================================

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from docqa.agents.decomposer import DecomposedResult, run_decomposed_query
from docqa.agents.pipeline import answer_query
from docqa.api.deps import get_llm, get_namespace, get_store
from docqa.api.query import respond, to_query_response
from docqa.models.requests import DecomposeRequest
from docqa.models.responses import DecomposeDebugInfo, DecomposeResponse, SubQueryStep
from docqa.services.llm import LLMProvider
from docqa.services.vectorstore import VectorStore

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Question Answering"])


@router.post(
    "/decompose",
    response_model=DecomposeResponse,
    summary="Answer a complex question in steps",
    description=(
        "Analyses whether the question should be split into up to 3 "
        "sub-queries. Sub-queries are answered concurrently from their own "
        "retrieval, then synthesised into a final answer."
    ),
)
async def decompose_endpoint(
    request: DecomposeRequest,
    namespace: str = Depends(get_namespace),
    store: VectorStore = Depends(get_store),
    llm: LLMProvider | None = Depends(get_llm),
) -> JSONResponse:
    result = await run_decomposed_query(
        request.query or "",
        namespace,
        store=store,
        llm=llm,
    )
    if result.failure:
        return respond(to_decompose_response(result), result.failure.status_code)

    response = to_decompose_response(result)

    if not result.decomposed and request.fallback:
        logger.info("Decompose [%s]: running direct query fallback", result.request_id)
        direct = await answer_query(
            result.original_query,
            namespace,
            store=store,
            llm=llm,
            request_id=result.request_id,
        )
        response.result = to_query_response(direct)
        if direct.failure:
            response.error = direct.error
            return respond(response, direct.failure.status_code)

    return respond(response)


def to_decompose_response(result: DecomposedResult) -> DecomposeResponse:
    steps = None
    if result.steps is not None:
        steps = [
            SubQueryStep(
                step=s.step,
                query=s.query,
                answer=s.answer,
                sources=s.sources,
                retrieval_ms=s.retrieval_ms,
                chunks_used=s.chunks_used,
            )
            for s in result.steps
        ]

    debug = None
    if result.debug is not None:
        debug = DecomposeDebugInfo(
            total_steps=result.debug.total_steps,
            avg_retrieval_ms=result.debug.avg_retrieval_ms,
        )

    return DecomposeResponse(
        decomposed=result.decomposed,
        original_query=result.original_query,
        reasoning=result.reasoning,
        steps=steps,
        final_answer=result.final_answer,
        request_id=result.request_id,
        latency_ms=result.latency_ms,
        debug=debug,
        error=result.error,
    )
