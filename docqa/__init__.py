# =============================================================================
# Document Review Q&A Agent
# =============================================================================
# A retrieval-augmented service for answering questions over contracts and
# similar documents: single-shot Q&A with citations, multi-step question
# decomposition (LangGraph), and cross-document comparison.
#
# Package structure:
#   docqa/
#   ├── api/          → FastAPI route handlers (query, decompose, compare,
#   │                    ingest, admin) and request logging middleware
#   ├── agents/       → Orchestrators (query pipeline, decomposition graph,
#   │                    comparison)
#   ├── models/       → Pydantic V2 request/response schemas
#   └── services/     → Chunking, PDF extraction, vector store, LLM
#                        providers, ingestion, retry/timeout helpers
# =============================================================================
