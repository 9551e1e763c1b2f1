# =============================================================================
# PDF Text Extraction — pdftotext with Raw-Text Fallback
# =============================================================================
#
# Converts uploaded PDF bytes into plain text by shelling out to Poppler's
# `pdftotext` binary.
#
# DESIGN DECISION: External binary over an in-process parser.
# pdftotext is fast, has no Python-side model downloads, and handles the
# contract-style documents this service targets well. The binary path is
# configurable (PDFTOTEXT_PATH) because it differs between Homebrew, apt
# and container images.
#
# DESIGN DECISION: Never fail ingestion because extraction failed.
# If the binary is missing, exits non-zero, times out, or produces nothing,
# the raw bytes are decoded as UTF-8 (invalid sequences replaced). For
# plain-text uploads mislabelled as PDF this is exactly right; for real
# PDFs it yields noisy text, which is logged as a warning.
# =============================================================================

from __future__ import annotations

import asyncio
import logging
import tempfile
from pathlib import Path

from docqa.config import settings

logger = logging.getLogger(__name__)


class ExtractionError(RuntimeError):
    """pdftotext could not produce text for a document."""


async def extract_text(pdf_bytes: bytes) -> str:
    """
    Extract plain text from PDF bytes.

    Args:
        pdf_bytes: The raw PDF file content.

    Returns:
        The extracted text, or the UTF-8 decoding of the raw bytes when
        pdftotext is unavailable or fails.
    """
    try:
        text = await _run_pdftotext(pdf_bytes)
    except (OSError, asyncio.TimeoutError, ExtractionError) as exc:
        logger.warning(
            "pdftotext failed (%s), falling back to raw text decoding",
            str(exc) or type(exc).__name__,
        )
        text = ""
    else:
        logger.info("Extracted %d chars via pdftotext", len(text))

    if not text.strip():
        text = decode_raw(pdf_bytes)
        logger.info("Fallback text length: %d", len(text))

    return text


def decode_raw(data: bytes) -> str:
    """Decode bytes as UTF-8, replacing invalid sequences."""
    return data.decode("utf-8", errors="replace")


# ---------------------------------------------------------------------------
# Internal Helpers
# ---------------------------------------------------------------------------


async def _run_pdftotext(pdf_bytes: bytes) -> str:
    """
    Run pdftotext on a temporary copy of the document.

    The uploaded filename is never used on disk; the temporary directory
    and both files are removed afterwards.
    """
    with tempfile.TemporaryDirectory(prefix="docqa-") as tmp:
        pdf_path = Path(tmp) / "input.pdf"
        txt_path = Path(tmp) / "output.txt"
        pdf_path.write_bytes(pdf_bytes)

        process = await asyncio.create_subprocess_exec(
            settings.pdftotext_path,
            "-enc", "UTF-8",
            str(pdf_path),
            str(txt_path),
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.PIPE,
        )
        try:
            _, stderr = await asyncio.wait_for(
                process.communicate(),
                timeout=settings.extraction_timeout_seconds,
            )
        except asyncio.TimeoutError:
            process.kill()
            await process.wait()
            raise

        if process.returncode != 0:
            raise ExtractionError(
                f"exit code {process.returncode}: "
                f"{stderr.decode('utf-8', errors='replace').strip()}"
            )

        if not txt_path.exists():
            raise ExtractionError("no output file produced")

        return txt_path.read_text(encoding="utf-8", errors="replace")
