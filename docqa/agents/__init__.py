# =============================================================================
# Agents Package — Retrieval-Augmented Orchestration
# =============================================================================
#   - pipeline.py: single-shot RAG (retrieve → ground → generate)
#   - decomposer.py: LangGraph graph that splits a question into sub-queries,
#     answers them concurrently and synthesises a final answer
#   - comparator.py: cross-document comparison with a best-effort
#     structured view of the answer
#
# Every orchestrator returns a result object tagged with a FailureKind
# instead of raising; the API layer maps the kind to an HTTP status.
# =============================================================================
