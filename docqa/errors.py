# =============================================================================
# Error Taxonomy
# =============================================================================
#
# Four kinds of failure can happen while serving a request:
#
#   InvalidRequest     — missing/insufficient input, detected before any
#                        remote call (HTTP 400)
#   ConfigurationError — a required credential is absent (HTTP 500, but the
#                        response still carries an explanatory answer)
#   UpstreamFailure    — the vector store or the LLM failed or timed out
#                        (HTTP 500, generic answer + raw error string)
#   Plan parse errors  — recovered inside the decomposition orchestrator,
#                        never surfaced (see agents/decomposer.py)
#
# Orchestrators convert these exceptions into results tagged with a
# FailureKind at their boundary; the API layer maps the kind to a status
# code. Nothing below the orchestrators knows about HTTP.
# =============================================================================

from __future__ import annotations

import enum


class FailureKind(str, enum.Enum):
    """Classification attached to failed orchestrator results."""

    INVALID_REQUEST = "invalid_request"
    CONFIGURATION = "configuration_error"
    UPSTREAM = "upstream_failure"

    @property
    def status_code(self) -> int:
        return 400 if self is FailureKind.INVALID_REQUEST else 500


class DocQAError(Exception):
    """Base class for errors raised inside the service."""

    kind: FailureKind = FailureKind.UPSTREAM


class InvalidRequest(DocQAError):
    kind = FailureKind.INVALID_REQUEST


class ConfigurationError(DocQAError, ValueError):
    """A required credential or setting is missing."""

    kind = FailureKind.CONFIGURATION


class UpstreamFailure(DocQAError):
    """A remote call failed after the timeout/retry policy was applied."""

    kind = FailureKind.UPSTREAM
