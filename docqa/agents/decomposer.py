# =============================================================================
# Decomposition Orchestrator — Multi-Step Reasoning Graph
# =============================================================================
#
# Decides whether a question should be split into smaller sub-queries,
# answers each sub-query independently, then synthesises a final answer.
#
# GRAPH TOPOLOGY:
#   START ──▶ analyse ──┬──▶ END                                (direct)
#                       └──▶ execute ──▶ synthesise ──▶ END     (decomposed)
#
# DESIGN DECISION: The plan parse failure is a branch, not an exception.
# parse_plan() returns ParsedPlan or UnparsedPlan. An unparsed plan routes
# to the direct branch with reasoning "Parse error", so a chatty model
# never turns into a 500.
#
# DESIGN DECISION: Fail-fast fan-out.
# Sub-queries run under asyncio.gather. The first failure fails the whole
# batch; no partial synthesis is attempted from the remaining steps.
#
# DESIGN DECISION: Providers travel in the graph state.
# Same approach as the store/llm parameters elsewhere: nodes read them
# from state instead of module singletons. Safe because the graph has no
# checkpointer (state is never serialised).
# =============================================================================

from __future__ import annotations

import asyncio
import json
import logging
import time
from dataclasses import dataclass, field
from typing import Any

from langgraph.graph import END, START, StateGraph
from typing_extensions import TypedDict

from docqa.agents.pipeline import (
    NO_CONTEXT,
    build_contexts,
    elapsed_ms,
    failure_kind,
    new_request_id,
    unique_sources,
)
from docqa.config import settings
from docqa.errors import FailureKind
from docqa.services.llm import LLMProvider
from docqa.services.resilience import with_timeout
from docqa.services.vectorstore import VectorStore, resilient_search

logger = logging.getLogger(__name__)

SUB_QUERY_SYSTEM_PROMPT = "Answer concisely using only provided context."

# Hard ceiling on fan-out; the max_sub_queries setting can only lower it
MAX_SUB_QUERIES = 3


# ---------------------------------------------------------------------------
# Data Structures
# ---------------------------------------------------------------------------


@dataclass
class DecompositionPlan:
    needs_decomposition: bool
    reasoning: str
    sub_queries: list[str] = field(default_factory=list)


@dataclass
class ParsedPlan:
    plan: DecompositionPlan


@dataclass
class UnparsedPlan:
    reason: str


@dataclass
class SubQueryResult:
    """One answered sub-query. `step` is its 1-based position in the plan."""

    step: int
    query: str
    answer: str
    sources: list[str] = field(default_factory=list)
    retrieval_ms: int = 0
    chunks_used: int = 0


@dataclass
class DecomposeDebug:
    total_steps: int
    avg_retrieval_ms: int


@dataclass
class DecomposedResult:
    decomposed: bool
    original_query: str
    reasoning: str
    request_id: str
    latency_ms: int = 0
    steps: list[SubQueryResult] | None = None
    final_answer: str | None = None
    debug: DecomposeDebug | None = None
    error: str | None = None
    failure: FailureKind | None = None

    @property
    def ok(self) -> bool:
        return self.failure is None


# ---------------------------------------------------------------------------
# Graph State Schema
# ---------------------------------------------------------------------------


class DecomposeState(TypedDict, total=False):
    """
    State that flows through the decomposition graph.

    total=False so nodes only return the keys they update.
    """

    # --- Input (set by caller) ---
    query: str
    namespace: str
    request_id: str
    vector_store: VectorStore
    llm: LLMProvider

    # --- Set by analyse ---
    plan: DecompositionPlan

    # --- Set by execute / synthesise ---
    steps: list[SubQueryResult]
    final_answer: str


# ---------------------------------------------------------------------------
# Plan Parsing
# ---------------------------------------------------------------------------


def analysis_prompt(query: str) -> str:
    return (
        f'Analyze this query: "{query}"\n\n'
        "Determine if this requires breaking into multiple sub-queries or "
        "can be answered directly.\n\n"
        "Respond with JSON only:\n"
        "{\n"
        '  "needsDecomposition": boolean,\n'
        '  "reasoning": "brief explanation",\n'
        '  "subQueries": ["query 1", "query 2"] // if needed, max 3\n'
        "}"
    )


def extract_json_object(text: str) -> str | None:
    """
    Return the first balanced {...} substring of text, or None.

    Braces inside JSON string literals are ignored, so a reasoning value
    containing "}" does not end the object early.
    """
    start = text.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for pos in range(start, len(text)):
            char = text[pos]
            if in_string:
                if escaped:
                    escaped = False
                elif char == "\\":
                    escaped = True
                elif char == '"':
                    in_string = False
            elif char == '"':
                in_string = True
            elif char == "{":
                depth += 1
            elif char == "}":
                depth -= 1
                if depth == 0:
                    return text[start:pos + 1]
        # Unbalanced from this brace; try the next one
        start = text.find("{", start + 1)
    return None


def parse_plan(text: str) -> ParsedPlan | UnparsedPlan:
    """
    Parse the analyser's reply into a DecompositionPlan.

    Accepts prose around the JSON object. Sub-queries are stripped, blank
    or non-string entries dropped, and the list is capped at
    settings.max_sub_queries (never more than MAX_SUB_QUERIES).
    """
    candidate = extract_json_object(text or "")
    if candidate is None:
        return UnparsedPlan(reason="No JSON object in analysis output")

    try:
        raw = json.loads(candidate)
    except json.JSONDecodeError as exc:
        return UnparsedPlan(reason=f"Invalid JSON: {exc.msg}")

    if not isinstance(raw, dict):
        return UnparsedPlan(reason="Analysis output is not an object")

    sub_queries = raw.get("subQueries") or []
    if not isinstance(sub_queries, list):
        sub_queries = []
    cleaned = [q.strip() for q in sub_queries if isinstance(q, str) and q.strip()]

    reasoning = raw.get("reasoning")
    return ParsedPlan(plan=DecompositionPlan(
        needs_decomposition=bool(raw.get("needsDecomposition")),
        reasoning=reasoning if isinstance(reasoning, str) and reasoning else "Direct query",
        sub_queries=cleaned[:min(settings.max_sub_queries, MAX_SUB_QUERIES)],
    ))


# ---------------------------------------------------------------------------
# Node Functions
# ---------------------------------------------------------------------------


async def analyse_node(state: DecomposeState) -> dict:
    """Ask the LLM whether to decompose, and into which sub-queries."""
    response = await with_timeout(
        state["llm"].complete(
            messages=[{"role": "user", "content": analysis_prompt(state["query"])}],
            temperature=0,
            max_tokens=500,
        ),
        settings.llm_timeout_seconds,
        "LLM completion",
    )

    parsed = parse_plan(response.content.strip())
    if isinstance(parsed, UnparsedPlan):
        logger.warning(
            "Decompose [%s]: plan not parsed (%s)", state["request_id"], parsed.reason,
        )
        plan = DecompositionPlan(needs_decomposition=False, reasoning="Parse error")
    else:
        plan = parsed.plan

    logger.info(
        "Decompose [%s]: needs_decomposition=%s, %d sub-queries",
        state["request_id"], plan.needs_decomposition, len(plan.sub_queries),
    )
    return {"plan": plan}


def route_after_analyse(state: DecomposeState) -> str:
    plan = state["plan"]
    if plan.needs_decomposition and plan.sub_queries:
        return "execute"
    return END


async def execute_node(state: DecomposeState) -> dict:
    """Answer every sub-query concurrently."""
    tasks = [
        _answer_sub_query(
            step=i + 1,
            sub_query=sub_query,
            namespace=state["namespace"],
            store=state["vector_store"],
            llm=state["llm"],
        )
        for i, sub_query in enumerate(state["plan"].sub_queries)
    ]
    results = await asyncio.gather(*tasks)
    return {"steps": sorted(results, key=lambda r: r.step)}


async def synthesise_node(state: DecomposeState) -> dict:
    """Combine the step answers into one final answer."""
    findings = "\n\n".join(
        f"Step {r.step} ({r.query}): {r.answer}" for r in state["steps"]
    )
    prompt = (
        f'Original question: "{state["query"]}"\n\n'
        f"Step-by-step findings:\n{findings}\n\n"
        "Synthesize these findings into a cohesive final answer. "
        "Be concise but thorough."
    )

    response = await with_timeout(
        state["llm"].complete(
            messages=[{"role": "user", "content": prompt}],
            temperature=0.2,
            max_tokens=600,
        ),
        settings.llm_timeout_seconds,
        "LLM completion",
    )
    return {"final_answer": response.content.strip() or "No answer generated."}


# ---------------------------------------------------------------------------
# Graph Assembly
# ---------------------------------------------------------------------------

_builder = StateGraph(DecomposeState)
_builder.add_node("analyse", analyse_node)
_builder.add_node("execute", execute_node)
_builder.add_node("synthesise", synthesise_node)

_builder.add_edge(START, "analyse")
_builder.add_conditional_edges("analyse", route_after_analyse, ["execute", END])
_builder.add_edge("execute", "synthesise")
_builder.add_edge("synthesise", END)

graph = _builder.compile()


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


async def run_decomposed_query(
    query: str,
    namespace: str,
    *,
    store: VectorStore,
    llm: LLMProvider | None,
    request_id: str | None = None,
) -> DecomposedResult:
    """
    Answer a question, decomposing it into sub-queries when the LLM
    judges that helpful.

    Returns a DecomposedResult; never raises. A direct (not decomposed)
    result carries only the reasoning: the caller decides whether to run
    the single-shot query pipeline as a fallback.
    """
    request_id = request_id or new_request_id()
    start = time.monotonic()
    query = (query or "").strip()

    if not query:
        return DecomposedResult(
            decomposed=False,
            original_query="",
            reasoning="Missing query",
            request_id=request_id,
            latency_ms=elapsed_ms(start),
            error="Missing query",
            failure=FailureKind.INVALID_REQUEST,
        )

    if llm is None:
        logger.error("Decompose [%s] rejected: no LLM credential configured", request_id)
        return DecomposedResult(
            decomposed=False,
            original_query=query,
            reasoning="Decomposition failed",
            request_id=request_id,
            latency_ms=elapsed_ms(start),
            error="Server is missing ANTHROPIC_API_KEY (or LLM_API_KEY).",
            failure=FailureKind.CONFIGURATION,
        )

    logger.info("Decompose [%s]: '%s' (namespace=%r)", request_id, query[:80], namespace)

    initial_state: DecomposeState = {
        "query": query,
        "namespace": namespace,
        "request_id": request_id,
        "vector_store": store,
        "llm": llm,
    }

    try:
        final: dict[str, Any] = await graph.ainvoke(initial_state)
    except Exception as exc:
        logger.exception("Decompose error [%s]", request_id)
        return DecomposedResult(
            decomposed=False,
            original_query=query,
            reasoning="Decomposition failed",
            request_id=request_id,
            latency_ms=elapsed_ms(start),
            error=str(exc),
            failure=failure_kind(exc),
        )

    plan: DecompositionPlan = final["plan"]
    steps: list[SubQueryResult] | None = final.get("steps")

    if not steps:
        return DecomposedResult(
            decomposed=False,
            original_query=query,
            reasoning=plan.reasoning,
            request_id=request_id,
            latency_ms=elapsed_ms(start),
        )

    result = DecomposedResult(
        decomposed=True,
        original_query=query,
        reasoning=plan.reasoning,
        request_id=request_id,
        steps=steps,
        final_answer=final.get("final_answer") or "No answer generated.",
        debug=DecomposeDebug(
            total_steps=len(steps),
            avg_retrieval_ms=round(sum(s.retrieval_ms for s in steps) / len(steps)),
        ),
    )
    result.latency_ms = elapsed_ms(start)

    logger.info(
        "Decompose [%s] complete: %d steps, %dms",
        request_id, len(steps), result.latency_ms,
    )
    return result


# ---------------------------------------------------------------------------
# Internal Helpers
# ---------------------------------------------------------------------------


async def _answer_sub_query(
    step: int,
    sub_query: str,
    namespace: str,
    store: VectorStore,
    llm: LLMProvider,
) -> SubQueryResult:
    t_retrieval = time.monotonic()
    hits = await resilient_search(store, namespace, sub_query, settings.subquery_top_k)
    retrieval_ms = elapsed_ms(t_retrieval)

    contexts = build_contexts(hits)
    if contexts:
        context_text = "\n" + "\n\n".join(
            f"[{n}] {c.text}" for n, c in enumerate(contexts, start=1)
        )
    else:
        context_text = f" {NO_CONTEXT}"

    response = await with_timeout(
        llm.complete(
            messages=[{
                "role": "user",
                "content": f"Question: {sub_query}\n\nContext:{context_text}",
            }],
            system=SUB_QUERY_SYSTEM_PROMPT,
            temperature=0.2,
            max_tokens=400,
        ),
        settings.llm_timeout_seconds,
        "LLM completion",
    )

    return SubQueryResult(
        step=step,
        query=sub_query,
        answer=response.content,
        sources=unique_sources(contexts),
        retrieval_ms=retrieval_ms,
        chunks_used=len(contexts),
    )
