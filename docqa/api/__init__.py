# =============================================================================
# API Package — FastAPI Route Handlers
# =============================================================================
# Each module defines a FastAPI APIRouter for a specific feature:
#   - query.py: POST /query (single-shot retrieval-augmented answer)
#   - decompose.py: POST /decompose (multi-step reasoning)
#   - compare.py: POST /compare (cross-document comparison)
#   - ingest.py: POST /ingest and POST /demo/ingest
#   - admin.py: POST /admin/reset and GET /proof/metrics
#   - deps.py: namespace, store, LLM and admin-token dependencies
#   - request_logging.py: per-request log line middleware
# =============================================================================
