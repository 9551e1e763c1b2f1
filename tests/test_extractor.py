# =============================================================================
# Unit Tests — PDF Extraction Adapter
# =============================================================================
#
# The pdftotext binary is never required: the subprocess step is patched,
# or pointed at a path that does not exist to exercise the fallback.
# =============================================================================

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, patch

from docqa.config import settings
from docqa.services import extractor
from docqa.services.extractor import ExtractionError, decode_raw, extract_text


def _run(coro):
    """Helper to run async functions in sync tests."""
    return asyncio.run(coro)


class TestExtractText:
    def test_returns_pdftotext_output(self):
        with patch.object(
            extractor, "_run_pdftotext", AsyncMock(return_value="Clause 1. Payment."),
        ):
            assert _run(extract_text(b"%PDF-1.4 ...")) == "Clause 1. Payment."

    def test_missing_binary_falls_back_to_raw_bytes(self):
        with patch.object(settings, "pdftotext_path", "/nonexistent/bin/pdftotext"):
            text = _run(extract_text(b"plain text uploaded as a pdf"))
        assert text == "plain text uploaded as a pdf"

    def test_extraction_error_falls_back(self):
        with patch.object(
            extractor, "_run_pdftotext",
            AsyncMock(side_effect=ExtractionError("exit code 1: Syntax Error")),
        ):
            assert _run(extract_text(b"raw")) == "raw"

    def test_timeout_falls_back(self):
        with patch.object(
            extractor, "_run_pdftotext", AsyncMock(side_effect=asyncio.TimeoutError()),
        ):
            assert _run(extract_text(b"raw")) == "raw"

    def test_blank_output_falls_back(self):
        with patch.object(extractor, "_run_pdftotext", AsyncMock(return_value="  \n")):
            assert _run(extract_text(b"fallback text")) == "fallback text"


class TestDecodeRaw:
    def test_invalid_utf8_is_replaced(self):
        assert decode_raw(b"ok \xff end") == "ok � end"
