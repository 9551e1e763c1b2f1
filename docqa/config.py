# =============================================================================
# Application Configuration — Pydantic Settings
# =============================================================================
#
# All runtime configuration comes from environment variables (or a .env
# file), validated once at startup. Values are read-only after that: the
# only state shared between requests is this object plus the lazily built
# vector store and LLM client singletons.
#
# Priority (highest first):
#   1. Environment variables (e.g., `PINECONE_API_KEY=...`)
#   2. Values from the .env file
#   3. Default values defined below
#
# USAGE:
#   from docqa.config import settings
#   print(settings.pinecone_index)
# =============================================================================

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Defaults are suitable for local development. Credentials have no
    defaults: a missing LLM key is reported to callers as a configuration
    error instead of crashing the service.
    """

    # -------------------------------------------------------------------------
    # Application
    # -------------------------------------------------------------------------
    app_name: str = "Document Review Q&A Agent"
    app_version: str = "0.1.0"
    environment: str = "development"  # "development", "production" or "test"
    log_level: str = "INFO"
    request_logging_enabled: bool = True

    # -------------------------------------------------------------------------
    # LLM Configuration — Multi-Provider
    # -------------------------------------------------------------------------
    # "anthropic": Claude via the native Anthropic SDK (default)
    # "openai_compatible": any OpenAI-compatible chat completion API
    #
    # Generation is never retried by the service. The SDK's own retry loop
    # is disabled by default (llm_max_retries=0) so a slow or failing call
    # costs at most one request.
    # -------------------------------------------------------------------------
    anthropic_api_key: str = ""
    openai_api_key: str = ""
    llm_provider: str = "anthropic"  # "anthropic" or "openai_compatible"
    llm_base_url: str | None = None  # Only needed for openai_compatible
    llm_api_key: str | None = None   # Overrides provider-specific key if set
    llm_model: str = "claude-sonnet-4-5-20250929"
    llm_temperature: float = 0.2
    llm_max_tokens: int = 1024
    llm_timeout_seconds: float = 60.0
    llm_max_retries: int = 0

    # -------------------------------------------------------------------------
    # Vector Store Configuration — Pluggable Backend
    # -------------------------------------------------------------------------
    # "pinecone": managed index with integrated text embedding (default)
    # "chroma": ChromaDB in-process (or client/server when chroma_url is set),
    #           embeddings produced by the OpenAI embedder below
    #
    # vector_namespace is the process-wide default partition. Every request
    # may override it with the X-Namespace header.
    # -------------------------------------------------------------------------
    vectorstore_type: str = "pinecone"  # "pinecone" or "chroma"
    pinecone_api_key: str = ""
    pinecone_index: str = "doc-review"
    pinecone_upsert_batch_size: int = 96  # Integrated-embedding upsert limit
    chroma_url: str | None = None
    vector_namespace: str = ""

    # -------------------------------------------------------------------------
    # Embedding Configuration (Chroma backend only)
    # -------------------------------------------------------------------------
    embedding_model: str = "text-embedding-3-small"
    embedding_dimensions: int = 1536
    embedding_batch_size: int = 100
    embedding_base_url: str | None = None

    # -------------------------------------------------------------------------
    # Chunking Configuration
    # -------------------------------------------------------------------------
    # Fixed windows with overlap. chunk_strategy="characters" (default) keeps
    # chunk ids stable across re-ingestion of the same text; "tokens" sizes
    # windows in cl100k_base tokens instead.
    # -------------------------------------------------------------------------
    chunk_size: int = 500
    chunk_overlap: int = 50
    chunk_strategy: str = "characters"  # "characters" or "tokens"

    # -------------------------------------------------------------------------
    # Retrieval Configuration
    # -------------------------------------------------------------------------
    # Top-K per operation, plus the timeout/retry policy for searches.
    # Searches are idempotent reads, so they are retried with exponential
    # backoff: delay = retrieval_backoff_seconds * 2 ** attempt.
    # -------------------------------------------------------------------------
    query_top_k: int = 6
    subquery_top_k: int = 4
    compare_top_k: int = 12
    max_sub_queries: int = Field(default=3, ge=1, le=3)
    retrieval_timeout_seconds: float = 10.0
    retrieval_max_retries: int = 2
    retrieval_backoff_seconds: float = 0.25

    # -------------------------------------------------------------------------
    # PDF Extraction
    # -------------------------------------------------------------------------
    pdftotext_path: str = "pdftotext"
    extraction_timeout_seconds: float = 30.0

    # -------------------------------------------------------------------------
    # Admin & Demo
    # -------------------------------------------------------------------------
    # admin_token gates POST /admin/reset. An empty token disables the
    # endpoint outside the test environment.
    # -------------------------------------------------------------------------
    admin_token: str = ""
    demo_data_dir: str = "data"
    proof_metrics_path: str = "proof/metrics.json"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    """
    Create and cache a Settings instance.

    Modules read the module-level `settings` below, so tests change
    individual values with patch.object(settings, "<field>", value).
    """
    return Settings()


# Import this directly in most cases:
#   from docqa.config import settings
settings = get_settings()
