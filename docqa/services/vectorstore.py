# =============================================================================
# Vector Store Abstraction — Namespace-Scoped Pluggable Backend
# =============================================================================
#
# Every chunk and every retrieval is scoped to exactly one namespace. The
# rest of the service only sees three operations:
#
#   search(namespace, query_text, top_k) -> [RetrievalHit]
#   upsert(namespace, chunks)            -> number of records written
#   delete_namespace(namespace)
#
# DESIGN DECISION: Protocol (structural typing) over ABC.
# Orchestrators take a VectorStore parameter; tests pass an in-memory fake
# without inheriting from anything.
#
# DESIGN DECISION: Text in, hits out.
# Callers hand over query TEXT, not vectors. The Pinecone backend uses an
# index with integrated embedding, so the service never computes query
# vectors on that path. The Chroma backend embeds on our side with the
# OpenAI embedder.
#
# DESIGN DECISION: Async interface over sync SDKs.
# Both SDKs are synchronous; calls run in asyncio.to_thread() so a slow
# search never blocks the event loop serving other requests.
#
# ARCHITECTURE:
#   VectorStore (Protocol)
#   ├── PineconeVectorStore — managed index, integrated text embedding
#   └── ChromaVectorStore   — ChromaDB, one collection per namespace
#   get_vector_store()      — lazy singleton factory, reads from config
#   resilient_search()      — search + timeout + retry with backoff
# =============================================================================

from __future__ import annotations

import asyncio
import hashlib
import logging
import re
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Protocol

import chromadb
from pinecone import Pinecone

from docqa.config import settings
from docqa.errors import ConfigurationError
from docqa.services.chunker import Chunk
from docqa.services.resilience import retry_with_backoff

logger = logging.getLogger(__name__)

# Pinecone's name for the unnamed namespace
_PINECONE_DEFAULT_NAMESPACE = "__default__"


# ---------------------------------------------------------------------------
# Data Structures
# ---------------------------------------------------------------------------


@dataclass
class RetrievalHit:
    """A single search result. Ephemeral, produced per query."""

    id: str
    source: str
    text: str
    score: float  # Higher = more relevant


# ---------------------------------------------------------------------------
# Protocol Definition
# ---------------------------------------------------------------------------


class VectorStore(Protocol):
    """Namespace-scoped vector index operations used by the service."""

    async def search(
        self,
        namespace: str,
        query_text: str,
        top_k: int,
    ) -> list[RetrievalHit]:
        """Return up to top_k hits ordered by relevance (best first)."""
        ...

    async def upsert(self, namespace: str, chunks: Sequence[Chunk]) -> int:
        """Insert or overwrite chunks by id. Returns the number written."""
        ...

    async def delete_namespace(self, namespace: str) -> None:
        """Remove every record in the namespace."""
        ...


# ---------------------------------------------------------------------------
# Implementation 1: Pinecone (managed, integrated embedding)
# ---------------------------------------------------------------------------


class PineconeVectorStore:
    """
    Pinecone index whose embedding model is configured on the index.

    Records are stored as {_id, chunk_text, source, page}; chunk_text is the
    field the index embeds. The client is created on first use so a missing
    PINECONE_API_KEY surfaces as a per-request failure rather than an
    import-time crash.
    """

    def __init__(
        self,
        api_key: str | None = None,
        index_name: str | None = None,
        index: Any | None = None,
    ) -> None:
        self._api_key = api_key or settings.pinecone_api_key
        self._index_name = index_name or settings.pinecone_index
        self._index = index

    def _get_index(self) -> Any:
        if self._index is None:
            if not self._api_key:
                raise ConfigurationError(
                    "No Pinecone API key configured. Set PINECONE_API_KEY in .env"
                )
            client = Pinecone(api_key=self._api_key)
            self._index = client.Index(self._index_name)
            logger.info("Connected to Pinecone index '%s'", self._index_name)
        return self._index

    async def search(
        self,
        namespace: str,
        query_text: str,
        top_k: int,
    ) -> list[RetrievalHit]:
        def _sync_search() -> list[RetrievalHit]:
            response = self._get_index().search(
                namespace=namespace or _PINECONE_DEFAULT_NAMESPACE,
                query={"inputs": {"text": query_text}, "top_k": top_k},
                fields=["source", "chunk_text"],
            )
            result = _read(response, "result", default=None)
            hits = _read(result, "hits", default=None) or []
            return [_to_hit(hit) for hit in hits]

        hits = await asyncio.to_thread(_sync_search)
        logger.debug(
            "Pinecone search returned %d hits (namespace=%r, top_k=%d)",
            len(hits), namespace, top_k,
        )
        return hits

    async def upsert(self, namespace: str, chunks: Sequence[Chunk]) -> int:
        records = [
            {
                "_id": chunk.id,
                "chunk_text": chunk.text,
                "source": chunk.source,
                "page": chunk.sequence_index,
            }
            for chunk in chunks
        ]
        batch_size = settings.pinecone_upsert_batch_size

        def _sync_upsert() -> None:
            index = self._get_index()
            for i in range(0, len(records), batch_size):
                index.upsert_records(
                    namespace or _PINECONE_DEFAULT_NAMESPACE,
                    records[i : i + batch_size],
                )

        if records:
            await asyncio.to_thread(_sync_upsert)

        logger.info(
            "Upserted %d records into Pinecone (namespace=%r)",
            len(records), namespace,
        )
        return len(records)

    async def delete_namespace(self, namespace: str) -> None:
        def _sync_delete() -> None:
            self._get_index().delete(delete_all=True, namespace=namespace)

        await asyncio.to_thread(_sync_delete)
        logger.info("Deleted Pinecone namespace %r", namespace)


# ---------------------------------------------------------------------------
# Implementation 2: ChromaDB
# ---------------------------------------------------------------------------


class ChromaVectorStore:
    """
    ChromaDB-backed vector store for local development.

    DESIGN DECISION: One collection per namespace. Clearing a namespace is
    then a single delete_collection() call, and namespaces can never leak
    into each other's results.

    ChromaDB supports both in-process and client/server modes:
    - In-process (default): no extra infra
    - Client/server: set CHROMA_URL
    """

    def __init__(
        self,
        client: Any | None = None,
        embed_fn: Callable[[Sequence[str]], list[list[float]]] | None = None,
    ) -> None:
        if client is not None:
            self._client = client
        elif settings.chroma_url:
            self._client = chromadb.HttpClient(host=settings.chroma_url)
        else:
            self._client = chromadb.Client()

        if embed_fn is None:
            from docqa.services.embedder import embed_batch

            embed_fn = embed_batch
        self._embed = embed_fn

    def _collection(self, namespace: str) -> Any:
        return self._client.get_or_create_collection(
            name=collection_name(namespace),
            metadata={"hnsw:space": "cosine"},
        )

    async def search(
        self,
        namespace: str,
        query_text: str,
        top_k: int,
    ) -> list[RetrievalHit]:
        def _sync_search() -> list[RetrievalHit]:
            collection = self._collection(namespace)
            count = collection.count()
            if count == 0:
                return []

            results = collection.query(
                query_embeddings=self._embed([query_text]),
                n_results=min(top_k, count),
                include=["documents", "metadatas", "distances"],
            )

            hits: list[RetrievalHit] = []
            if results and results["ids"] and results["ids"][0]:
                for i, chroma_id in enumerate(results["ids"][0]):
                    distance = (
                        results["distances"][0][i] if results["distances"] else 1.0
                    )
                    metadata = (
                        results["metadatas"][0][i] if results["metadatas"] else None
                    ) or {}
                    text = (
                        results["documents"][0][i] if results["documents"] else ""
                    ) or ""
                    hits.append(RetrievalHit(
                        id=chroma_id,
                        source=str(metadata.get("source") or chroma_id),
                        text=text,
                        # Cosine distance is in [0, 2]; convert to similarity
                        score=round(1.0 - distance, 4),
                    ))
            return hits

        return await asyncio.to_thread(_sync_search)

    async def upsert(self, namespace: str, chunks: Sequence[Chunk]) -> int:
        if not chunks:
            return 0

        def _sync_upsert() -> None:
            texts = [chunk.text for chunk in chunks]
            self._collection(namespace).upsert(
                ids=[chunk.id for chunk in chunks],
                documents=texts,
                embeddings=self._embed(texts),
                metadatas=[
                    {"source": chunk.source, "page": chunk.sequence_index}
                    for chunk in chunks
                ],
            )

        await asyncio.to_thread(_sync_upsert)
        logger.info(
            "Upserted %d chunks into ChromaDB (namespace=%r)",
            len(chunks), namespace,
        )
        return len(chunks)

    async def delete_namespace(self, namespace: str) -> None:
        def _sync_delete() -> None:
            # get_or_create first so deleting an unknown namespace is a no-op
            collection = self._collection(namespace)
            self._client.delete_collection(collection.name)

        await asyncio.to_thread(_sync_delete)
        logger.info("Deleted ChromaDB namespace %r", namespace)


# ---------------------------------------------------------------------------
# Factory Function
# ---------------------------------------------------------------------------

_store: PineconeVectorStore | ChromaVectorStore | None = None


def get_vector_store() -> PineconeVectorStore | ChromaVectorStore:
    """
    Return the configured vector store backend (lazy singleton).

    Reads `vectorstore_type` from settings:
    - "pinecone" → PineconeVectorStore (default)
    - "chroma" → ChromaVectorStore
    """
    global _store
    if _store is None:
        if settings.vectorstore_type == "chroma":
            logger.info("Using ChromaDB vector store")
            _store = ChromaVectorStore()
        else:
            logger.info("Using Pinecone vector store")
            _store = PineconeVectorStore()
    return _store


async def resilient_search(
    store: VectorStore,
    namespace: str,
    query_text: str,
    top_k: int,
) -> list[RetrievalHit]:
    """
    Search with the configured timeout and retry-with-backoff policy.

    Raises:
        UpstreamFailure: When every attempt failed or timed out.
    """
    return await retry_with_backoff(
        lambda: store.search(namespace, query_text, top_k),
        operation="vector search",
        max_retries=settings.retrieval_max_retries,
        base_delay=settings.retrieval_backoff_seconds,
        timeout=settings.retrieval_timeout_seconds,
    )


# ---------------------------------------------------------------------------
# Internal Helpers
# ---------------------------------------------------------------------------

_INVALID_COLLECTION_CHARS = re.compile(r"[^a-zA-Z0-9._-]")
_REPEATED_DOTS = re.compile(r"\.{2,}")


def collection_name(namespace: str) -> str:
    """
    Map a namespace to a valid ChromaDB collection name.

    Chroma names allow [a-zA-Z0-9._-], must start and end with an
    alphanumeric character, be at least 3 characters long and contain
    no two consecutive periods.
    """
    safe = _INVALID_COLLECTION_CHARS.sub("_", namespace or "default")
    safe = _REPEATED_DOTS.sub(".", safe)
    if len(safe) > 48:
        safe = hashlib.sha256(namespace.encode()).hexdigest()[:32]
    return f"ns-{safe}-chunks"


def _read(obj: Any, *names: str, default: Any = None) -> Any:
    """
    Read the first present key/attribute from an SDK response object.

    Pinecone responses are model objects in some SDK versions and plain
    mappings in others (and in tests).
    """
    if obj is None:
        return default
    for name in names:
        if isinstance(obj, Mapping):
            if name in obj:
                return obj[name]
        elif hasattr(obj, name):
            return getattr(obj, name)
    return default


def _to_hit(hit: Any) -> RetrievalHit:
    hit_id = str(_read(hit, "_id", "id", default="") or "")
    fields = _read(hit, "fields", default=None) or {}
    source = _read(fields, "source", default=None) or hit_id or "unknown"
    return RetrievalHit(
        id=hit_id,
        source=str(source),
        text=str(_read(fields, "chunk_text", default="") or ""),
        score=float(_read(hit, "_score", "score", default=0.0) or 0.0),
    )
