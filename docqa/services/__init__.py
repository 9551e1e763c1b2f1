# =============================================================================
# Services Package — Integration with External Collaborators
# =============================================================================
#   - chunker.py: fixed-window chunking with deterministic chunk ids
#   - extractor.py: PDF → text via pdftotext, raw-text fallback
#   - vectorstore.py: namespace-scoped vector store protocol (Pinecone, Chroma)
#   - embedder.py: OpenAI embeddings for the Chroma backend
#   - llm.py: multi-provider LLM abstraction (Anthropic, OpenAI-compatible)
#   - resilience.py: timeouts and retry-with-backoff for remote calls
#   - ingestion.py: extract → chunk → upsert
#   - auth.py: admin token verification
# =============================================================================
