# =============================================================================
# Text Chunker — Fixed Windows with Overlap
# =============================================================================
#
# Splits extracted document text into overlapping fixed-size windows. Each
# window becomes one Chunk, the unit of indexing and retrieval.
#
# DESIGN DECISION: Deterministic ids.
# A chunk's id is "<source>-<sequence_index>". Re-ingesting the same file
# with the same chunk settings yields exactly the same ids, so the upsert
# overwrites the previous records instead of duplicating them. This is what
# makes concurrent or repeated ingestion into one namespace safe without
# any locking.
#
# DESIGN DECISION: Character windows by default, token windows on request.
# Character windows are what the managed index embeds on its side, and
# they are independent of any tokenizer version. Token windows (tiktoken,
# cl100k_base) are available with CHUNK_STRATEGY=tokens for deployments
# that need to bound prompt size in model tokens.
#
# ALGORITHM (both strategies):
#   start = 0
#   repeat:
#       end = min(start + size, total)
#       keep window[start:end] if non-blank after strip()
#       stop when end reaches total
#       start = end - overlap
# =============================================================================

from __future__ import annotations

import logging
from dataclasses import dataclass

import tiktoken

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Data Structures
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Chunk:
    """
    A slice of a document's text, ready to be upserted.

    Immutable once created. Lives in the vector index until its namespace
    is cleared.
    """

    id: str  # "<source>-<sequence_index>", unique within a namespace
    text: str
    source: str  # Owning document (the uploaded filename)
    sequence_index: int  # 0-indexed position among the kept chunks


# ---------------------------------------------------------------------------
# Tiktoken Encoder — Cached Singleton
# ---------------------------------------------------------------------------

_encoder: tiktoken.Encoding | None = None


def _get_encoder() -> tiktoken.Encoding:
    """Lazily initialize and cache the tiktoken encoder."""
    global _encoder
    if _encoder is None:
        _encoder = tiktoken.get_encoding("cl100k_base")
    return _encoder


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def clean_text(text: str) -> str:
    """Remove NUL characters left behind by some PDF extractors."""
    return (text or "").replace("\x00", "")


def chunk_text(
    text: str,
    source: str,
    chunk_size: int = 500,
    chunk_overlap: int = 50,
    strategy: str = "characters",
) -> list[Chunk]:
    """
    Split text into overlapping windows and wrap them as Chunks.

    Args:
        text: Extracted document text.
        source: Document name; used as the id prefix and source field.
        chunk_size: Window size (characters, or tokens for "tokens").
        chunk_overlap: Overlap between consecutive windows. Must be
            smaller than chunk_size.
        strategy: "characters" (default) or "tokens".

    Returns:
        Chunks in document order. Empty when the text is blank.

    Raises:
        ValueError: On invalid sizes or an unknown strategy.
    """
    if chunk_size <= 0:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")
    if not 0 <= chunk_overlap < chunk_size:
        raise ValueError(
            f"chunk_overlap must be in [0, chunk_size), got {chunk_overlap}"
        )

    clean = clean_text(text)

    if strategy == "characters":
        pieces = _window_characters(clean, chunk_size, chunk_overlap)
    elif strategy == "tokens":
        pieces = _window_tokens(clean, chunk_size, chunk_overlap)
    else:
        raise ValueError(
            f"Unknown chunk strategy '{strategy}'. "
            "Supported: 'characters', 'tokens'"
        )

    chunks = [
        Chunk(id=f"{source}-{i}", text=piece, source=source, sequence_index=i)
        for i, piece in enumerate(pieces)
    ]

    if not chunks:
        logger.warning("No chunks produced for '%s'", source)
    else:
        logger.info(
            "Chunked '%s' into %d chunks (strategy=%s, size=%d, overlap=%d)",
            source, len(chunks), strategy, chunk_size, chunk_overlap,
        )

    return chunks


# ---------------------------------------------------------------------------
# Internal Helpers
# ---------------------------------------------------------------------------


def _window_characters(text: str, size: int, overlap: int) -> list[str]:
    pieces: list[str] = []
    start = 0
    while start < len(text):
        end = min(start + size, len(text))
        piece = text[start:end].strip()
        if piece:
            pieces.append(piece)
        if end >= len(text):
            break
        start = end - overlap
    return pieces


def _window_tokens(text: str, size: int, overlap: int) -> list[str]:
    encoder = _get_encoder()
    # Documents may legitimately contain "<|endoftext|>"; encode it as text
    tokens = encoder.encode(text, disallowed_special=())
    pieces: list[str] = []
    start = 0
    while start < len(tokens):
        end = min(start + size, len(tokens))
        piece = encoder.decode(tokens[start:end]).strip()
        if piece:
            pieces.append(piece)
        if end >= len(tokens):
            break
        start = end - overlap
    return pieces
