# =============================================================================
# Ingestion Service — Extract, Chunk, Upsert
# =============================================================================
#
# INGESTION PIPELINE:
#   1. Resolve text: provided text wins; otherwise base64 content is decoded
#      and passed through the PDF extraction adapter
#   2. Chunk into fixed overlapping windows (ids "<filename>-<n>")
#   3. Upsert the chunks into the request's namespace
#
# DESIGN DECISION: Synchronous ingestion (no task queue).
# Extraction is a subprocess and the managed index embeds server-side, so
# a contract-sized PDF ingests within a single request. The caller gets
# the chunk count back directly.
#
# Re-ingesting the same file is idempotent: chunk ids are deterministic,
# so the second upsert overwrites the first record for record.
# =============================================================================

from __future__ import annotations

import base64
import binascii
import logging
from dataclasses import dataclass, field
from pathlib import Path

from docqa.config import settings
from docqa.errors import InvalidRequest
from docqa.services.chunker import Chunk, chunk_text
from docqa.services.extractor import extract_text
from docqa.services.vectorstore import VectorStore

logger = logging.getLogger(__name__)

DEMO_FILES = (
    "Master_Services_Agreement.pdf",
    "NDA_Contract.pdf",
    "SaaS_License_Agreement.pdf",
)


# ---------------------------------------------------------------------------
# Data Structures
# ---------------------------------------------------------------------------


@dataclass
class IngestResult:
    """Outcome of ingesting one document."""

    chunks: int
    doc_id: str
    status: str = "success"


@dataclass
class DemoFileResult:
    filename: str
    status: str  # "success" or "error"
    chunks: int = 0
    error: str | None = None


@dataclass
class DemoIngestResult:
    status: str = "success"
    results: list[DemoFileResult] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


async def ingest_document(
    filename: str,
    *,
    namespace: str,
    store: VectorStore,
    content_b64: str | None = None,
    text: str | None = None,
) -> IngestResult:
    """
    Ingest one document into a namespace.

    Args:
        filename: Document name; becomes the chunk source and id prefix.
        namespace: Target namespace.
        store: Vector store to upsert into.
        content_b64: Base64-encoded PDF bytes.
        text: Already-extracted text (takes precedence over content_b64).

    Raises:
        InvalidRequest: Missing filename/payload or undecodable content.
    """
    if not filename or not (content_b64 or text):
        raise InvalidRequest("Missing filename or content")

    logger.info(
        "Ingesting '%s' (content=%d chars, text=%d chars, namespace=%r)",
        filename, len(content_b64 or ""), len(text or ""), namespace,
    )

    if not text:
        try:
            pdf_bytes = base64.b64decode("".join((content_b64 or "").split()), validate=True)
        except (binascii.Error, ValueError) as exc:
            raise InvalidRequest(f"Content is not valid base64: {exc}") from exc
        text = await extract_text(pdf_bytes)

    chunks = _chunk(text, filename)
    await store.upsert(namespace, chunks)

    return IngestResult(chunks=len(chunks), doc_id=filename)


async def ingest_demo_documents(
    *,
    namespace: str,
    store: VectorStore,
    data_dir: str | None = None,
) -> DemoIngestResult:
    """
    Ingest the bundled demo contracts from the data directory.

    Each file is processed independently: a missing or failing file is
    recorded as an error entry and the others still ingest.
    """
    directory = Path(data_dir or settings.demo_data_dir)
    outcome = DemoIngestResult()

    for filename in DEMO_FILES:
        try:
            pdf_bytes = (directory / filename).read_bytes()
            text = await extract_text(pdf_bytes)
            chunks = _chunk(text, filename)
            await store.upsert(namespace, chunks)
            outcome.results.append(
                DemoFileResult(filename=filename, status="success", chunks=len(chunks))
            )
        except Exception as exc:
            logger.warning("Demo ingest failed for '%s': %s", filename, exc)
            outcome.results.append(
                DemoFileResult(filename=filename, status="error", error=str(exc))
            )

    return outcome


def _chunk(text: str, filename: str) -> list[Chunk]:
    return chunk_text(
        text,
        source=filename,
        chunk_size=settings.chunk_size,
        chunk_overlap=settings.chunk_overlap,
        strategy=settings.chunk_strategy,
    )
