# =============================================================================
# API Response Models — Pydantic V2 Schemas
# =============================================================================
#
# Shapes of the JSON bodies the API returns. Every query-style response
# carries `requestId` and `latency_ms`; failures reuse the same models with
# `error` set, so clients parse one shape per endpoint.
#
# DESIGN DECISION: Aliases for camelCase wire names.
# Field names stay snake_case in Python; `alias=` gives the wire name
# (requestId, originalQuery, ...). FastAPI serialises response models by
# alias. `latency_ms` and the debug keys are snake_case on the wire too.
# =============================================================================

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

_wire = ConfigDict(populate_by_name=True)


class HealthResponse(BaseModel):
    """Response for GET /health — confirms the API is running."""

    status: str = "ok"
    version: str
    service: str


# ---------------------------------------------------------------------------
# Query
# ---------------------------------------------------------------------------


class QueryDebugInfo(BaseModel):
    retrieval_ms: int = Field(description="Time spent in vector search")
    llm_ms: int = Field(description="Time spent in generation")
    chunks_count: int = Field(description="Context blocks placed in the prompt")
    top_score: float = Field(description="Score of the first context block, or 0")


class QueryResponse(BaseModel):
    """
    Response for POST /query.

    `sources` lists the distinct documents whose chunks were placed in the
    prompt, in retrieval order. It is empty on failure.
    """

    answer: str
    sources: list[str] = Field(default_factory=list)
    latency_ms: int
    request_id: str = Field(alias="requestId")
    debug: QueryDebugInfo | None = None
    error: str | None = None

    model_config = _wire


# ---------------------------------------------------------------------------
# Decompose
# ---------------------------------------------------------------------------


class SubQueryStep(BaseModel):
    step: int = Field(description="1-based position in the plan")
    query: str
    answer: str
    sources: list[str] = Field(default_factory=list)
    retrieval_ms: int = Field(alias="retrievalMs")
    chunks_used: int = Field(alias="chunksUsed")

    model_config = _wire


class DecomposeDebugInfo(BaseModel):
    total_steps: int = Field(alias="totalSteps")
    avg_retrieval_ms: int = Field(alias="avgRetrievalMs")

    model_config = _wire


class DecomposeResponse(BaseModel):
    """
    Response for POST /decompose.

    `steps`, `finalAnswer` and `debug` are present only when the question
    was decomposed; `result` only when the direct fallback ran.
    """

    decomposed: bool
    original_query: str = Field(alias="originalQuery")
    reasoning: str
    steps: list[SubQueryStep] | None = None
    final_answer: str | None = Field(default=None, alias="finalAnswer")
    result: QueryResponse | None = None
    request_id: str = Field(alias="requestId")
    latency_ms: int
    debug: DecomposeDebugInfo | None = None
    error: str | None = None

    model_config = _wire


# ---------------------------------------------------------------------------
# Compare
# ---------------------------------------------------------------------------


class DocStatement(BaseModel):
    doc: str
    value: str


class ComparisonSectionModel(BaseModel):
    aspect: str
    comparisons: list[DocStatement] = Field(default_factory=list)


class StructuredComparisonModel(BaseModel):
    sections: list[ComparisonSectionModel] = Field(default_factory=list)
    raw: str = ""


class CompareDebugInfo(BaseModel):
    chunks_count: int
    docs_matched: int


class CompareResponse(BaseModel):
    """Response for POST /compare."""

    answer: str
    sources: list[str] = Field(default_factory=list)
    doc_ids: list[str] = Field(default_factory=list, alias="docIds")
    comparison_type: str = Field(alias="comparisonType")
    structured: StructuredComparisonModel | None = None
    request_id: str = Field(alias="requestId")
    latency_ms: int
    debug: CompareDebugInfo | None = None
    error: str | None = None

    model_config = _wire


# ---------------------------------------------------------------------------
# Ingestion & Admin
# ---------------------------------------------------------------------------


class IngestResponse(BaseModel):
    """Response for POST /ingest — chunks written for the document."""

    chunks: int
    doc_id: str = Field(alias="docId")
    status: Literal["success"] = "success"

    model_config = _wire


class IngestErrorResponse(BaseModel):
    status: Literal["error"] = "error"
    message: str


class DemoFileStatus(BaseModel):
    filename: str
    status: Literal["success", "error"]
    chunks: int = 0
    error: str | None = None


class DemoIngestResponse(BaseModel):
    """Response for POST /demo/ingest — one entry per bundled contract."""

    status: str = "success"
    results: list[DemoFileStatus] = Field(default_factory=list)


class ResetResponse(BaseModel):
    """Response for POST /admin/reset."""

    ok: bool = True
    cleared: dict[str, str]


class AdminErrorResponse(BaseModel):
    ok: bool = False
    error: str
