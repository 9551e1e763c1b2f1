# =============================================================================
# Models Package — Pydantic V2 Schemas
# =============================================================================
# Request/response schemas for the HTTP API. Orchestrators return plain
# dataclasses; the route handlers map them onto these models, so the wire
# format (camelCase keys such as requestId) stays out of the agents.
# =============================================================================
