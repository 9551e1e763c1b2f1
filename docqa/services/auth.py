# =============================================================================
# Admin Token Verification
# =============================================================================
#
# Pure functions with no FastAPI dependency, used by the admin route
# dependency and by tests.
#
# DESIGN DECISION: Compare SHA-256 digests with hmac.compare_digest.
# Digests have a fixed length, so the comparison time does not depend on
# how much of the supplied token matches or on its length.
# =============================================================================

from __future__ import annotations

import hashlib
import hmac


def hash_token(raw_token: str) -> str:
    """Hash a token using SHA-256. Returns 64-char hex digest."""
    return hashlib.sha256(raw_token.encode()).hexdigest()


def verify_admin_token(provided: str | None, expected: str | None) -> bool:
    """
    Check a supplied admin token against the configured one.

    An empty configured token never matches: the admin surface is closed
    until ADMIN_TOKEN is set.
    """
    if not expected or not provided:
        return False
    return hmac.compare_digest(hash_token(provided), hash_token(expected))
