# =============================================================================
# Query Pipeline — Retrieval-Augmented Answer Generation
# =============================================================================
#
# answer_query() is the single-shot RAG path behind POST /query, and the
# fallback for queries the decomposition orchestrator decides not to split.
#
# FLOW (each step timed independently):
#   1. Validate        — empty query → INVALID_REQUEST, no remote calls
#   2. Retrieve        — top-K search in the namespace (timeout + retry)
#   3. Assemble        — drop empty hits, dedupe sources in order
#   4. Ground          — no context → the prompt says so explicitly
#   5. Generate        — one LLM call under a grounding system prompt
#   6. Assemble result — answer, sources, latency, debug metrics
#
# DESIGN DECISION: Failures are results, not exceptions.
# The function never raises. Every outcome is a QueryResult; failed ones
# carry a FailureKind the API layer maps to a status code. The request id
# is logged with every failure so responses can be matched to server logs.
#
# DESIGN DECISION: Sources are only what was placed in the prompt.
# An empty retrieval yields sources=[]: the pipeline never attributes an
# answer to a document the model did not see.
# =============================================================================

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass, field

from docqa.config import settings
from docqa.errors import DocQAError, FailureKind
from docqa.services.llm import LLMProvider
from docqa.services.resilience import with_timeout
from docqa.services.vectorstore import RetrievalHit, VectorStore, resilient_search

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Data Structures
# ---------------------------------------------------------------------------


@dataclass
class ContextBlock:
    """A retrieved chunk as placed in a prompt."""

    index: int  # Position in the raw hit list; cited as [#index]
    source: str
    text: str
    score: float


@dataclass
class QueryDebug:
    retrieval_ms: int = 0
    llm_ms: int = 0
    chunks_count: int = 0
    top_score: float = 0.0


@dataclass
class QueryResult:
    """Outcome of answer_query(). Never persisted."""

    answer: str
    request_id: str
    latency_ms: int = 0
    sources: list[str] = field(default_factory=list)
    debug: QueryDebug | None = None
    error: str | None = None
    failure: FailureKind | None = None

    @property
    def ok(self) -> bool:
        return self.failure is None


# ---------------------------------------------------------------------------
# Prompts
# ---------------------------------------------------------------------------

QUERY_SYSTEM_PROMPT = (
    "You are a precise assistant for reviewing documents. Use ONLY the "
    "provided context when answering. If the context is insufficient, say "
    "so. Keep answers concise and actionable. When you use a fact from "
    "context, cite it like [#id]."
)

NO_CONTEXT = "(none found)"


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


async def answer_query(
    query: str,
    namespace: str,
    *,
    store: VectorStore,
    llm: LLMProvider | None,
    request_id: str | None = None,
) -> QueryResult:
    """
    Answer a question from the documents in a namespace.

    Args:
        query: The user's question.
        namespace: Namespace to retrieve from.
        store: Vector store client.
        llm: LLM provider, or None when no credential is configured.
        request_id: Correlation id; generated when omitted.

    Returns:
        A QueryResult. Failed results have `failure` set and no sources.
    """
    request_id = request_id or new_request_id()
    start = time.monotonic()
    query = (query or "").strip()

    if not query:
        return QueryResult(
            answer="Missing query",
            request_id=request_id,
            latency_ms=elapsed_ms(start),
            failure=FailureKind.INVALID_REQUEST,
        )

    if llm is None:
        logger.error("Query [%s] rejected: no LLM credential configured", request_id)
        return QueryResult(
            answer=(
                "Server is missing ANTHROPIC_API_KEY (or LLM_API_KEY). "
                "Add it to .env, then retry."
            ),
            request_id=request_id,
            latency_ms=elapsed_ms(start),
            error="LLM credential not configured",
            failure=FailureKind.CONFIGURATION,
        )

    logger.info(
        "Query [%s]: '%s' (namespace=%r)", request_id, query[:80], namespace,
    )

    try:
        # --- Step 1: Retrieval ---
        t_retrieval = time.monotonic()
        hits = await resilient_search(
            store, namespace, query, settings.query_top_k,
        )
        retrieval_ms = elapsed_ms(t_retrieval)

        # --- Step 2: Context assembly ---
        contexts = build_contexts(hits)
        sources = unique_sources(contexts)

        # --- Step 3: Generation, grounded in the context (or its absence) ---
        t_llm = time.monotonic()
        response = await with_timeout(
            llm.complete(
                messages=[{
                    "role": "user",
                    "content": _user_message(query, contexts),
                }],
                system=QUERY_SYSTEM_PROMPT,
                temperature=0.2,
                max_tokens=700,
            ),
            settings.llm_timeout_seconds,
            "LLM completion",
        )
        llm_ms = elapsed_ms(t_llm)
    except Exception as exc:
        logger.exception("Query error [%s]", request_id)
        return QueryResult(
            answer="Query failed",
            request_id=request_id,
            latency_ms=elapsed_ms(start),
            error=str(exc),
            failure=failure_kind(exc),
        )

    answer = response.content.strip() or "No answer generated."
    result = QueryResult(
        answer=answer,
        request_id=request_id,
        latency_ms=elapsed_ms(start),
        sources=sources,
        debug=QueryDebug(
            retrieval_ms=retrieval_ms,
            llm_ms=llm_ms,
            chunks_count=len(contexts),
            top_score=contexts[0].score if contexts else 0.0,
        ),
    )

    logger.info(
        "Query [%s] complete: %d chunks, %d sources, %dms "
        "(retrieval=%dms, llm=%dms)",
        request_id, len(contexts), len(sources), result.latency_ms,
        retrieval_ms, llm_ms,
    )
    return result


# ---------------------------------------------------------------------------
# Shared Helpers (also used by the decomposition and comparison agents)
# ---------------------------------------------------------------------------


def new_request_id() -> str:
    return str(uuid.uuid4())


def elapsed_ms(start: float) -> int:
    """Milliseconds since a time.monotonic() reading."""
    return int((time.monotonic() - start) * 1000)


def failure_kind(exc: Exception) -> FailureKind:
    """Classify an exception caught at an orchestrator boundary."""
    if isinstance(exc, DocQAError):
        return exc.kind
    return FailureKind.UPSTREAM


def build_contexts(hits: list[RetrievalHit]) -> list[ContextBlock]:
    """Map hits to context blocks, dropping hits without text."""
    return [
        ContextBlock(index=i, source=hit.source, text=hit.text, score=hit.score)
        for i, hit in enumerate(hits)
        if hit.text
    ]


def unique_sources(contexts: list[ContextBlock]) -> list[str]:
    """Deduplicate sources, keeping order of first appearance."""
    return list(dict.fromkeys(c.source for c in contexts))


def format_context(contexts: list[ContextBlock]) -> str:
    """
    Format context blocks for the query prompt.

    Example output:
        [#0 | NDA_Contract.pdf]
        The confidentiality obligations survive for 24 months...

        ---

        [#2 | Master_Services_Agreement.pdf]
        Invoices are payable within 30 days...
    """
    return "\n\n---\n\n".join(
        f"[#{c.index} | {c.source}]\n{c.text}" for c in contexts
    )


def _user_message(query: str, contexts: list[ContextBlock]) -> str:
    if not contexts:
        return f"Question: {query}\n\nContext: {NO_CONTEXT}"
    return f"Question: {query}\n\nContext:\n{format_context(contexts)}"
