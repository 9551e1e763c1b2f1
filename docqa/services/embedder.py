# =============================================================================
# Embedding Service — Batch Vector Generation (Chroma backend)
# =============================================================================
#
# The managed Pinecone index embeds text on its side, so this module is only
# used by the local ChromaDB backend, which needs vectors supplied by us.
#
# Any OpenAI-compatible embeddings endpoint works: EMBEDDING_BASE_URL points
# the client elsewhere (Azure, DashScope, a local gateway).
#
# DESIGN DECISION: Sync-only. ChromaDB's client is synchronous too, and the
# vector store runs both inside asyncio.to_thread(), so one thread hop
# covers embedding + storage.
# =============================================================================

from __future__ import annotations

import logging
from collections.abc import Sequence

from openai import OpenAI

from docqa.config import settings
from docqa.errors import ConfigurationError

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Embedding Client — Lazy Singleton
# ---------------------------------------------------------------------------
# Lazy initialization avoids import-time failures when the key isn't set
# (e.g., when the Pinecone backend is in use and embeddings are never
# needed).
# ---------------------------------------------------------------------------

_client: OpenAI | None = None


def _get_client() -> OpenAI:
    """Lazily initialize and cache the embedding client."""
    global _client
    if _client is None:
        resolved_key = settings.openai_api_key or settings.llm_api_key
        if not resolved_key:
            raise ConfigurationError(
                "No API key configured for embeddings. "
                "Set OPENAI_API_KEY or LLM_API_KEY in .env"
            )

        client_kwargs: dict = {"api_key": resolved_key}
        if settings.embedding_base_url:
            client_kwargs["base_url"] = settings.embedding_base_url

        _client = OpenAI(**client_kwargs)

        logger.info(
            "Initialized embedding client (model=%s, base_url=%s)",
            settings.embedding_model,
            settings.embedding_base_url or "https://api.openai.com/v1",
        )
    return _client


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def embed_batch(
    texts: Sequence[str],
    batch_size: int | None = None,
) -> list[list[float]]:
    """
    Generate embeddings for texts, in the same order as the input.

    Raises:
        ConfigurationError: If no embedding API key is configured.
        openai.APIError: If the API call fails.
    """
    if not texts:
        return []

    client = _get_client()
    _batch_size = batch_size or settings.embedding_batch_size

    all_embeddings: list[list[float]] = [[] for _ in texts]

    for i in range(0, len(texts), _batch_size):
        batch = list(texts[i : i + _batch_size])

        create_kwargs: dict = {
            "model": settings.embedding_model,
            "input": batch,
        }
        if settings.embedding_dimensions:
            create_kwargs["dimensions"] = settings.embedding_dimensions

        response = client.embeddings.create(**create_kwargs)

        # Order by item.index; a mismatch would silently corrupt retrieval
        for item in sorted(response.data, key=lambda x: x.index):
            all_embeddings[i + item.index] = item.embedding

    logger.debug(
        "Generated %d embeddings (model=%s)",
        len(texts), settings.embedding_model,
    )
    return all_embeddings
