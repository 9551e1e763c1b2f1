# =============================================================================
# Unit Tests — Comparison Orchestrator
# =============================================================================

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, patch

from docqa.agents.comparator import (
    COMPARISON_SYSTEM_PROMPT,
    INVALID_COMPARISON_ANSWER,
    compare_documents,
    parse_comparison_answer,
)
from docqa.config import settings
from docqa.errors import FailureKind


def _run(coro):
    """Helper to run async functions in sync tests."""
    return asyncio.run(coro)


class TestCompareDocuments:
    def test_filters_to_selected_documents(self, contracts_store, make_llm):
        llm = make_llm(
            "**Payment terms**\n"
            "- Master_Services_Agreement.pdf: net 30\n"
            "- SaaS_License_Agreement.pdf: annually in advance, 45 days\n"
        )

        result = _run(compare_documents(
            "payment terms",
            ["Master_Services_Agreement", "SaaS_License_Agreement"],
            "differences",
            "demo",
            store=contracts_store,
            llm=llm,
        ))

        assert result.ok
        assert set(result.sources) <= {
            "Master_Services_Agreement.pdf", "SaaS_License_Agreement.pdf",
        }
        assert "NDA_Contract.pdf" not in result.sources
        assert result.debug.docs_matched == len(result.sources)
        assert result.doc_ids == ["Master_Services_Agreement", "SaaS_License_Agreement"]
        assert result.comparison_type == "differences"
        assert result.structured.raw.startswith("**Payment terms**")

    def test_prompt_and_generation_parameters(self, contracts_store, make_llm):
        llm = make_llm("comparison")

        _run(compare_documents(
            "payment terms", ["master_services", "saas_license"], "similarities", "demo",
            store=contracts_store, llm=llm,
        ))

        assert contracts_store.searches == [("demo", "payment terms", 12)]
        call = llm.calls[0]
        assert call["system"] == COMPARISON_SYSTEM_PROMPT
        assert call["max_tokens"] == 1000
        assert call["temperature"] == 0.2
        prompt = call["messages"][0]["content"]
        assert prompt.startswith("Analyze the following documents and highlight COMMONALITIES")
        assert "Documents: master_services, saas_license" in prompt
        # Case-insensitive doc id match keeps the right blocks
        assert "[Document: Master_Services_Agreement.pdf]" in prompt
        assert "[Document: NDA_Contract.pdf]" not in prompt

    def test_summary_template(self, contracts_store, make_llm):
        llm = make_llm("summary")
        _run(compare_documents(
            "termination", ["NDA", "Master"], "summary", "demo",
            store=contracts_store, llm=llm,
        ))
        assert llm.calls[0]["messages"][0]["content"].startswith(
            'Provide a comparative summary across these documents for: "termination"'
        )

    def test_single_document_is_rejected_without_retrieval(self, contracts_store, make_llm):
        llm = make_llm()

        result = _run(compare_documents(
            "payment", ["NDA_Contract.pdf"], "differences", "demo",
            store=contracts_store, llm=llm,
        ))

        assert result.failure is FailureKind.INVALID_REQUEST
        assert result.answer == INVALID_COMPARISON_ANSWER
        assert result.sources == []
        assert contracts_store.searches == []
        assert llm.calls == []

    def test_duplicate_doc_ids_count_once(self, contracts_store, make_llm):
        result = _run(compare_documents(
            "payment", ["NDA", "NDA", " "], "differences", "demo",
            store=contracts_store, llm=make_llm(),
        ))
        assert result.failure is FailureKind.INVALID_REQUEST

    def test_empty_query_is_rejected(self, contracts_store, make_llm):
        result = _run(compare_documents(
            "", ["NDA", "SaaS"], "differences", "demo",
            store=contracts_store, llm=make_llm(),
        ))
        assert result.failure is FailureKind.INVALID_REQUEST

    def test_empty_llm_output_gets_placeholder(self, contracts_store, make_llm):
        result = _run(compare_documents(
            "payment", ["Master", "SaaS"], "differences", "demo",
            store=contracts_store, llm=make_llm(""),
        ))
        assert result.answer == "No comparison generated."
        assert result.structured.sections == []

    def test_upstream_failure(self, contracts_store):
        llm = AsyncMock()
        llm.complete.side_effect = RuntimeError("rate limited")

        result = _run(compare_documents(
            "payment", ["Master", "SaaS"], "differences", "demo",
            store=contracts_store, llm=llm,
        ))

        assert result.failure is FailureKind.UPSTREAM
        assert result.answer == "Comparison failed"
        assert result.error == "rate limited"
        assert result.sources == []

    def test_retrieval_failure(self, contracts_store, make_llm):
        contracts_store.fail_times = 10
        with patch.object(settings, "retrieval_backoff_seconds", 0):
            result = _run(compare_documents(
                "payment", ["Master", "SaaS"], "differences", "demo",
                store=contracts_store, llm=make_llm(),
            ))
        assert result.failure is FailureKind.UPSTREAM

    def test_missing_llm(self, contracts_store):
        result = _run(compare_documents(
            "payment", ["Master", "SaaS"], "differences", "demo",
            store=contracts_store, llm=None,
        ))
        assert result.failure is FailureKind.CONFIGURATION


class TestParseComparisonAnswer:
    SOURCES = ["NDA_Contract.pdf", "Master_Services_Agreement.pdf"]

    def test_statements_grouped_under_aspect(self):
        answer = (
            "**Termination notice**: they differ\n"
            "NDA_Contract.pdf allows 30 days' notice.\n"
            "Master_Services_Agreement.pdf requires 60 days' notice.\n"
        )
        structured = parse_comparison_answer(answer, self.SOURCES)

        assert len(structured.sections) == 1
        section = structured.sections[0]
        assert section.aspect == "Termination notice"
        assert [c.doc for c in section.comparisons] == self.SOURCES
        assert section.comparisons[0].value == "NDA_Contract.pdf allows 30 days' notice."

    def test_numbered_and_bullet_markers_start_aspects(self):
        answer = (
            "1. Payment: differs\n"
            "- nda_contract.pdf: none\n"
        )
        structured = parse_comparison_answer(answer, self.SOURCES)
        # The bullet line starts its own aspect and mentions the NDA
        assert [s.aspect for s in structured.sections] == ["nda_contract.pdf"]
        assert structured.sections[0].comparisons[0].doc == "NDA_Contract.pdf"

    def test_line_mentioning_two_sources_is_attributed_to_both(self):
        answer = "**Law**\nNDA_Contract.pdf and Master_Services_Agreement.pdf differ."
        structured = parse_comparison_answer(answer, self.SOURCES)
        assert [c.doc for c in structured.sections[0].comparisons] == self.SOURCES

    def test_lines_before_any_marker_use_empty_aspect(self):
        structured = parse_comparison_answer("NDA_Contract.pdf says nothing.", self.SOURCES)
        assert structured.sections[0].aspect == ""

    def test_no_source_mentions_yields_no_sections(self):
        answer = "**Overview**\nBoth documents are similar."
        structured = parse_comparison_answer(answer, self.SOURCES)
        assert structured.sections == []
        assert structured.raw == answer
