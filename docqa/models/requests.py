# =============================================================================
# API Request Models — Pydantic V2 Schemas
# =============================================================================
#
# Shapes of the JSON bodies accepted by the API. Validation failures are
# answered with a 400 in the common failure shape (see docqa/main.py).
#
# DESIGN DECISION: `query` is optional at the schema level.
# A missing or blank query is a business-level INVALID_REQUEST answered
# by the orchestrators ("Missing query"), so it gets the same response
# body as every other failure instead of a field-level validation error.
#
# Wire names are camelCase (docIds, comparisonType); populate_by_name lets
# Python callers and tests use the snake_case attribute names as well.
# =============================================================================

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class QueryRequest(BaseModel):
    """
    Request body for POST /query.

    Example:
        {"query": "What is the termination notice period?"}
    """

    query: str | None = Field(
        default=None,
        max_length=4000,
        description="The question to answer from the ingested documents",
        examples=["What is the termination notice period?"],
    )


class DecomposeRequest(BaseModel):
    """
    Request body for POST /decompose.

    When the analyser decides the question needs no decomposition, the
    response carries only its reasoning, unless `fallback` is set: then the
    single-shot query pipeline runs and its output is attached as `result`.
    """

    query: str | None = Field(
        default=None,
        max_length=4000,
        description="The question to analyse and possibly decompose",
        examples=["Compare the liability caps and the termination terms"],
    )
    fallback: bool = Field(
        default=False,
        description="Run the direct query pipeline when no decomposition is needed",
    )


class CompareRequest(BaseModel):
    """
    Request body for POST /compare.

    Example:
        {
            "query": "payment terms",
            "docIds": ["Master_Services_Agreement", "SaaS_License_Agreement"],
            "comparisonType": "differences"
        }
    """

    query: str | None = Field(
        default=None,
        max_length=4000,
        description="What to compare across the documents",
    )
    doc_ids: list[str] = Field(
        default_factory=list,
        alias="docIds",
        description="Document identifiers to compare (at least 2 distinct)",
    )
    comparison_type: Literal["differences", "similarities", "summary"] = Field(
        default="differences",
        alias="comparisonType",
        description="Which comparison to produce",
    )

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "examples": [
                {
                    "query": "payment terms",
                    "docIds": ["Master_Services_Agreement", "SaaS_License_Agreement"],
                    "comparisonType": "differences",
                },
            ]
        },
    )


class IngestRequest(BaseModel):
    """
    Request body for POST /ingest.

    Either `text` (already extracted) or `content` (base64-encoded PDF
    bytes) must be supplied; `text` wins when both are present.
    """

    filename: str | None = Field(
        default=None,
        max_length=255,
        description="Document name; becomes the chunk source and id prefix",
        examples=["NDA_Contract.pdf"],
    )
    content: str | None = Field(
        default=None,
        description="Base64-encoded PDF bytes",
    )
    text: str | None = Field(
        default=None,
        description="Already-extracted document text",
    )
