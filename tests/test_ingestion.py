# =============================================================================
# Unit Tests — Ingestion Service
# =============================================================================

from __future__ import annotations

import asyncio
import base64
from unittest.mock import AsyncMock, patch

import pytest

from docqa.errors import InvalidRequest
from docqa.services import ingestion
from docqa.services.ingestion import DEMO_FILES, ingest_demo_documents, ingest_document


def _run(coro):
    """Helper to run async functions in sync tests."""
    return asyncio.run(coro)


class TestIngestDocument:
    def test_text_payload_is_chunked_and_upserted(self, store):
        text = "Clause. " * 150  # 1200 characters

        result = _run(ingest_document("Policy.pdf", namespace="t1", store=store, text=text))

        assert result.status == "success"
        assert result.doc_id == "Policy.pdf"
        assert result.chunks == 3
        assert sorted(store.namespaces["t1"]) == ["Policy.pdf-0", "Policy.pdf-1", "Policy.pdf-2"]

    def test_text_wins_over_content(self, store):
        with patch.object(ingestion, "extract_text", AsyncMock()) as extract:
            _run(ingest_document(
                "a.pdf", namespace="t1", store=store,
                content_b64=base64.b64encode(b"%PDF").decode(), text="given text",
            ))
        extract.assert_not_called()
        assert store.namespaces["t1"]["a.pdf-0"].text == "given text"

    def test_content_is_decoded_and_extracted(self, store):
        pdf_bytes = b"%PDF-1.4 fake"
        with patch.object(
            ingestion, "extract_text", AsyncMock(return_value="Extracted clause text."),
        ) as extract:
            result = _run(ingest_document(
                "b.pdf", namespace="t1", store=store,
                content_b64=base64.b64encode(pdf_bytes).decode(),
            ))
        extract.assert_awaited_once_with(pdf_bytes)
        assert result.chunks == 1

    def test_reingest_overwrites_by_id(self, store):
        _run(ingest_document("c.pdf", namespace="t1", store=store, text="version one"))
        _run(ingest_document("c.pdf", namespace="t1", store=store, text="version two"))
        assert [c.text for c in store.namespaces["t1"].values()] == ["version two"]

    @pytest.mark.parametrize("filename,text,content", [
        ("", "text", None),
        ("d.pdf", None, None),
        ("d.pdf", "", ""),
    ])
    def test_missing_fields_rejected(self, store, filename, text, content):
        with pytest.raises(InvalidRequest, match="Missing filename or content"):
            _run(ingest_document(
                filename, namespace="t1", store=store, content_b64=content, text=text,
            ))
        assert store.namespaces == {}

    def test_invalid_base64_rejected(self, store):
        with pytest.raises(InvalidRequest, match="base64"):
            _run(ingest_document(
                "e.pdf", namespace="t1", store=store, content_b64="not*base64!",
            ))

    def test_non_alphabet_content_is_rejected_not_ingested_empty(self, store):
        with pytest.raises(InvalidRequest, match="base64"):
            _run(ingest_document("f.pdf", namespace="t1", store=store, content_b64="!!!!"))
        assert store.namespaces == {}

    def test_line_wrapped_base64_is_accepted(self, store):
        encoded = base64.b64encode(b"%PDF-1.4 wrapped payload").decode()
        wrapped = encoded[:8] + "\n" + encoded[8:] + "\n"
        with patch.object(
            ingestion, "extract_text", AsyncMock(return_value="Wrapped text."),
        ) as extract:
            _run(ingest_document("g.pdf", namespace="t1", store=store, content_b64=wrapped))
        extract.assert_awaited_once_with(b"%PDF-1.4 wrapped payload")


class TestIngestDemoDocuments:
    def test_reports_each_file(self, store, tmp_path):
        for name in DEMO_FILES[:2]:
            (tmp_path / name).write_bytes(b"demo contract text for " + name.encode())

        with patch.object(
            ingestion, "extract_text",
            AsyncMock(side_effect=lambda data: data.decode()),
        ):
            outcome = _run(ingest_demo_documents(
                namespace="demo", store=store, data_dir=str(tmp_path),
            ))

        assert outcome.status == "success"
        by_name = {r.filename: r for r in outcome.results}
        assert set(by_name) == set(DEMO_FILES)
        assert by_name[DEMO_FILES[0]].status == "success"
        assert by_name[DEMO_FILES[0]].chunks == 1
        missing = by_name[DEMO_FILES[2]]
        assert missing.status == "error"
        assert missing.chunks == 0
        assert missing.error
        assert len(store.namespaces["demo"]) == 2
