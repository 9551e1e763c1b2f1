# =============================================================================
# Comparison Orchestrator — Cross-Document Analysis
# =============================================================================
#
# Answers a question across two or more named documents: retrieves a
# wide candidate set, keeps only hits from the requested documents, and
# asks the LLM for a differences / similarities / summary comparison.
#
# DESIGN DECISION: Document selection by substring match on the source.
# Doc ids are what users see ("NDA", "SaaS_License_Agreement.pdf"), so a
# hit is kept when its source contains any doc id, case-insensitively.
#
# DESIGN DECISION: The structured view is best-effort.
# parse_comparison_answer() is a line heuristic over free text. It may
# yield no sections at all; the raw answer is always returned alongside.
# =============================================================================

from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass, field
from typing import Literal

from docqa.agents.pipeline import (
    ContextBlock,
    build_contexts,
    elapsed_ms,
    failure_kind,
    new_request_id,
)
from docqa.config import settings
from docqa.errors import FailureKind
from docqa.services.llm import LLMProvider
from docqa.services.resilience import with_timeout
from docqa.services.vectorstore import VectorStore, resilient_search

logger = logging.getLogger(__name__)

ComparisonType = Literal["differences", "similarities", "summary"]

INVALID_COMPARISON_ANSWER = "Comparison requires a query and at least 2 documents"

COMPARISON_SYSTEM_PROMPT = """You are a document review assistant in Comparison Mode. Analyze documents and provide structured comparisons.

Rules:
- Be precise and cite specific differences
- Use bullet points for clarity
- Highlight contradictions or variations
- If information is missing from a document, state "Not specified in [document name]"
- Be concise but thorough"""

COMPARISON_TEMPLATES: dict[str, str] = {
    "differences": """Compare the following documents and highlight KEY DIFFERENCES regarding: "{query}"

For each point of difference:
1. State the aspect being compared
2. Show what each document says
3. Note any contradictions

Documents to compare: {doc_list}

Context:
{context}""",

    "similarities": """Analyze the following documents and highlight COMMONALITIES regarding: "{query}"

Show what all documents agree on or share in common.

Documents: {doc_list}

Context:
{context}""",

    "summary": """Provide a comparative summary across these documents for: "{query}"

Structure:
- Overview (1-2 sentences)
- Per-document summary
- Key takeaways

Documents: {doc_list}

Context:
{context}""",
}

# A line opening with bold, a numbered item or a bullet starts a new aspect
_ASPECT_MARKER = re.compile(r"^\*\*|^\d+\.|^-")
_ASPECT_STRIP = re.compile(r"^\*\*|^\d+\.\s*|^-\s*")


# ---------------------------------------------------------------------------
# Data Structures
# ---------------------------------------------------------------------------


@dataclass
class DocComparison:
    doc: str
    value: str


@dataclass
class ComparisonSection:
    aspect: str
    comparisons: list[DocComparison] = field(default_factory=list)


@dataclass
class StructuredComparison:
    sections: list[ComparisonSection] = field(default_factory=list)
    raw: str = ""


@dataclass
class CompareDebug:
    chunks_count: int
    docs_matched: int


@dataclass
class ComparisonResult:
    answer: str
    request_id: str
    doc_ids: list[str]
    comparison_type: str
    latency_ms: int = 0
    sources: list[str] = field(default_factory=list)
    structured: StructuredComparison | None = None
    debug: CompareDebug | None = None
    error: str | None = None
    failure: FailureKind | None = None

    @property
    def ok(self) -> bool:
        return self.failure is None


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


async def compare_documents(
    query: str,
    doc_ids: list[str],
    comparison_type: ComparisonType,
    namespace: str,
    *,
    store: VectorStore,
    llm: LLMProvider | None,
    request_id: str | None = None,
) -> ComparisonResult:
    """
    Compare what several documents say about a question.

    Args:
        query: The comparison question, e.g. "payment terms".
        doc_ids: Document identifiers to compare (at least 2 distinct).
        comparison_type: "differences", "similarities" or "summary".
        namespace: Namespace to retrieve from.
        store: Vector store client.
        llm: LLM provider, or None when no credential is configured.
        request_id: Correlation id; generated when omitted.
    """
    request_id = request_id or new_request_id()
    start = time.monotonic()
    query = (query or "").strip()
    # Dedupe while keeping the caller's order
    doc_ids = list(dict.fromkeys(d.strip() for d in doc_ids or [] if d and d.strip()))

    if not query or len(doc_ids) < 2:
        return ComparisonResult(
            answer=INVALID_COMPARISON_ANSWER,
            request_id=request_id,
            doc_ids=doc_ids,
            comparison_type=comparison_type,
            latency_ms=elapsed_ms(start),
            failure=FailureKind.INVALID_REQUEST,
        )

    if llm is None:
        logger.error("Compare [%s] rejected: no LLM credential configured", request_id)
        return ComparisonResult(
            answer="Comparison failed",
            request_id=request_id,
            doc_ids=doc_ids,
            comparison_type=comparison_type,
            latency_ms=elapsed_ms(start),
            error="Server is missing ANTHROPIC_API_KEY (or LLM_API_KEY).",
            failure=FailureKind.CONFIGURATION,
        )

    logger.info(
        "Compare [%s]: '%s' across %s (%s, namespace=%r)",
        request_id, query[:80], doc_ids, comparison_type, namespace,
    )

    try:
        hits = await resilient_search(store, namespace, query, settings.compare_top_k)
        contexts = [
            c for c in build_contexts(hits)
            if _matches_any(c.source, doc_ids)
        ]
        sources = _group_by_source(contexts)

        template = COMPARISON_TEMPLATES.get(
            comparison_type, COMPARISON_TEMPLATES["differences"],
        )
        prompt = template.format(
            query=query,
            doc_list=", ".join(doc_ids),
            context=_format_documents(contexts),
        )

        response = await with_timeout(
            llm.complete(
                messages=[{"role": "user", "content": prompt}],
                system=COMPARISON_SYSTEM_PROMPT,
                temperature=0.2,
                max_tokens=1000,
            ),
            settings.llm_timeout_seconds,
            "LLM completion",
        )
    except Exception as exc:
        logger.exception("Comparison error [%s]", request_id)
        return ComparisonResult(
            answer="Comparison failed",
            request_id=request_id,
            doc_ids=doc_ids,
            comparison_type=comparison_type,
            latency_ms=elapsed_ms(start),
            error=str(exc),
            failure=failure_kind(exc),
        )

    answer = response.content.strip()
    result = ComparisonResult(
        answer=answer or "No comparison generated.",
        request_id=request_id,
        doc_ids=doc_ids,
        comparison_type=comparison_type,
        latency_ms=elapsed_ms(start),
        sources=list(sources),
        structured=parse_comparison_answer(answer, list(sources)),
        debug=CompareDebug(chunks_count=len(contexts), docs_matched=len(sources)),
    )

    logger.info(
        "Compare [%s] complete: %d chunks from %d documents, %dms",
        request_id, len(contexts), len(sources), result.latency_ms,
    )
    return result


def parse_comparison_answer(answer: str, sources: list[str]) -> StructuredComparison:
    """
    Split a comparison answer into aspects with per-document statements.

    A line opening with "**", "N." or "-" starts a new aspect: the marker
    is stripped and the text before the first ":" becomes the aspect name.
    Every line that mentions a source (case-insensitive) is attributed to
    the current aspect and that source.

    Example:
        **Payment terms**: they differ
        NDA_Contract.pdf does not specify a payment schedule.
        Master_Services_Agreement.pdf requires payment within 30 days.

        Yields one "Payment terms" section with two comparisons.
    """
    sections: list[ComparisonSection] = []
    by_aspect: dict[str, ComparisonSection] = {}
    current = ""

    for line in (answer or "").splitlines():
        trimmed = line.strip()
        if not trimmed:
            continue

        if _ASPECT_MARKER.match(trimmed):
            current = _ASPECT_STRIP.sub("", trimmed, count=1).split(":")[0].strip(" *")

        lowered = trimmed.lower()
        for source in sources:
            if source.lower() not in lowered:
                continue
            section = by_aspect.get(current)
            if section is None:
                section = ComparisonSection(aspect=current)
                by_aspect[current] = section
                sections.append(section)
            section.comparisons.append(DocComparison(doc=source, value=trimmed))

    return StructuredComparison(sections=sections, raw=answer or "")


# ---------------------------------------------------------------------------
# Internal Helpers
# ---------------------------------------------------------------------------


def _matches_any(source: str, doc_ids: list[str]) -> bool:
    lowered = source.lower()
    return any(doc_id.lower() in lowered for doc_id in doc_ids)


def _group_by_source(contexts: list[ContextBlock]) -> dict[str, list[ContextBlock]]:
    """Group contexts by source, in order of first appearance."""
    grouped: dict[str, list[ContextBlock]] = {}
    for context in contexts:
        grouped.setdefault(context.source, []).append(context)
    return grouped


def _format_documents(contexts: list[ContextBlock]) -> str:
    return "\n\n---\n\n".join(
        f"[Document: {c.source}]\n{c.text}" for c in contexts
    )
