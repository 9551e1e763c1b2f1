# =============================================================================
# API Dependencies — FastAPI Dependency Injection
# =============================================================================
#
# Resolves the per-request collaborators for the route handlers:
#
# 1. get_namespace()       — X-Namespace header, else the configured default
# 2. get_store()           — the vector store singleton
# 3. get_llm()             — the LLM provider singleton, or None when no
#                            credential is configured
# 4. require_admin_token() — guards the destructive admin endpoints
#
# DESIGN DECISION: FastAPI dependencies (not module globals in handlers).
# Tests replace the store and LLM through app.dependency_overrides, so the
# HTTP contract is exercised without network access or API keys.
#
# DESIGN DECISION: get_llm() degrades to None instead of raising.
# A missing key is reported by the orchestrators as a configuration
# failure with an explanatory answer, in the endpoint's normal body shape.
# =============================================================================

from __future__ import annotations

import logging

from fastapi import Header, HTTPException

from docqa.config import settings
from docqa.errors import ConfigurationError
from docqa.services.auth import verify_admin_token
from docqa.services.llm import LLMProvider, get_llm_provider
from docqa.services.vectorstore import VectorStore, get_vector_store

logger = logging.getLogger(__name__)


def get_namespace(
    x_namespace: str | None = Header(default=None, alias="X-Namespace"),
) -> str:
    """Namespace for this request: the header wins over VECTOR_NAMESPACE."""
    if x_namespace and x_namespace.strip():
        return x_namespace.strip()
    return settings.vector_namespace


def get_store() -> VectorStore:
    return get_vector_store()


def get_llm() -> LLMProvider | None:
    try:
        return get_llm_provider()
    except ConfigurationError as e:
        logger.warning("LLM provider unavailable: %s", e)
        return None


def require_admin_token(
    x_admin_token: str | None = Header(default=None, alias="X-Admin-Token"),
) -> None:
    """
    Reject the request unless X-Admin-Token matches ADMIN_TOKEN.

    The check is skipped when ENVIRONMENT=test.

    Raises:
        HTTPException 401: Missing or wrong token, or no ADMIN_TOKEN set.
    """
    if settings.environment == "test":
        return

    if not verify_admin_token(x_admin_token, settings.admin_token):
        logger.warning("Rejected admin request: invalid or missing admin token")
        raise HTTPException(status_code=401, detail="unauthorized")
