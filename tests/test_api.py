# =============================================================================
# API Tests — HTTP Contract
# =============================================================================
#
# Drives the FastAPI app through TestClient with the vector store, LLM and
# (where needed) settings replaced, so every endpoint's status codes and
# wire shapes are checked without network access.
# =============================================================================

from __future__ import annotations

import json
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from docqa.api.deps import get_llm, get_store
from docqa.config import settings
from docqa.main import app


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def wire(contracts_store, make_llm):
    """Install a store and a scripted LLM; returns them for inspection."""

    def install(reply="The answer [#0].", store=contracts_store, llm=...):
        if llm is ...:
            llm = make_llm(reply)
        app.dependency_overrides[get_store] = lambda: store
        app.dependency_overrides[get_llm] = lambda: llm
        return store, llm

    return install


DEMO = {"X-Namespace": "demo"}


class TestHealth:
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ok"
        assert body["version"] == settings.app_version


# ---------------------------------------------------------------------------
# POST /query
# ---------------------------------------------------------------------------


class TestQueryEndpoint:
    def test_answer_with_sources(self, client, wire):
        store, _ = wire("NDA notice is 30 days [#0].")

        response = client.post("/query", json={"query": "NDA termination notice"}, headers=DEMO)

        assert response.status_code == 200
        body = response.json()
        assert body["answer"] == "NDA notice is 30 days [#0]."
        assert "NDA_Contract.pdf" in body["sources"]
        assert body["requestId"]
        assert isinstance(body["latency_ms"], int)
        assert set(body["debug"]) == {"retrieval_ms", "llm_ms", "chunks_count", "top_score"}
        assert "error" not in body
        assert store.searches[0][0] == "demo"

    def test_missing_query_is_400(self, client, wire):
        store, llm = wire()

        response = client.post("/query", json={}, headers=DEMO)

        assert response.status_code == 400
        body = response.json()
        assert body["answer"] == "Missing query"
        assert body["sources"] == []
        assert body["requestId"]
        assert store.searches == []
        assert llm.calls == []

    def test_missing_llm_key_is_500_with_explanation(self, client, wire):
        wire(llm=None)

        response = client.post("/query", json={"query": "payment terms"}, headers=DEMO)

        assert response.status_code == 500
        assert "ANTHROPIC_API_KEY" in response.json()["answer"]

    def test_namespace_defaults_to_configuration(self, client, wire):
        store, _ = wire()
        with patch.object(settings, "vector_namespace", "demo"):
            client.post("/query", json={"query": "payment"})
        assert store.searches[0][0] == "demo"

    def test_other_namespace_sees_nothing(self, client, wire):
        wire("I don't have enough information.")
        response = client.post(
            "/query", json={"query": "payment"}, headers={"X-Namespace": "tenant-b"},
        )
        assert response.status_code == 200
        assert response.json()["sources"] == []

    def test_malformed_body_uses_failure_shape(self, client, wire):
        wire()
        response = client.post("/query", json={"query": 42}, headers=DEMO)

        assert response.status_code == 400
        body = response.json()
        assert body["answer"] == "Invalid request"
        assert body["sources"] == []
        assert body["requestId"]
        assert "query" in body["error"]


# ---------------------------------------------------------------------------
# POST /decompose
# ---------------------------------------------------------------------------


def _planner(plan: dict, other: str = "Step answer."):
    def reply(prompt: str) -> str:
        if prompt.startswith("Analyze this query"):
            return json.dumps(plan)
        return other
    return reply


class TestDecomposeEndpoint:
    def test_direct_without_fallback(self, client, wire):
        wire(_planner({"needsDecomposition": False, "reasoning": "Simple lookup"}))

        response = client.post("/decompose", json={"query": "NDA notice?"}, headers=DEMO)

        assert response.status_code == 200
        body = response.json()
        assert body["decomposed"] is False
        assert body["originalQuery"] == "NDA notice?"
        assert body["reasoning"] == "Simple lookup"
        assert "steps" not in body
        assert "result" not in body

    def test_direct_with_fallback_attaches_query_result(self, client, wire):
        wire(_planner({"needsDecomposition": False, "reasoning": "Simple"}, "Thirty days."))

        response = client.post(
            "/decompose", json={"query": "NDA notice?", "fallback": True}, headers=DEMO,
        )

        body = response.json()
        assert response.status_code == 200
        assert body["result"]["answer"] == "Thirty days."
        assert body["result"]["requestId"] == body["requestId"]

    def test_decomposed_response_shape(self, client, wire):
        wire(_planner({
            "needsDecomposition": True,
            "reasoning": "Two contracts",
            "subQueries": ["NDA termination notice", "MSA termination notice"],
        }))

        response = client.post(
            "/decompose", json={"query": "Compare termination notice"}, headers=DEMO,
        )

        assert response.status_code == 200
        body = response.json()
        assert body["decomposed"] is True
        assert [s["step"] for s in body["steps"]] == [1, 2]
        assert set(body["steps"][0]) == {
            "step", "query", "answer", "sources", "retrievalMs", "chunksUsed",
        }
        assert body["finalAnswer"] == "Step answer."
        assert body["debug"]["totalSteps"] == 2
        assert "avgRetrievalMs" in body["debug"]

    def test_missing_query_is_400(self, client, wire):
        wire()
        response = client.post("/decompose", json={}, headers=DEMO)
        assert response.status_code == 400


# ---------------------------------------------------------------------------
# POST /compare
# ---------------------------------------------------------------------------


class TestCompareEndpoint:
    def test_comparison_shape(self, client, wire):
        wire("**Payment**\n- Master_Services_Agreement.pdf: net 30\n")

        response = client.post("/compare", json={
            "query": "payment terms",
            "docIds": ["Master_Services_Agreement", "SaaS_License_Agreement"],
            "comparisonType": "differences",
        }, headers=DEMO)

        assert response.status_code == 200
        body = response.json()
        assert body["docIds"] == ["Master_Services_Agreement", "SaaS_License_Agreement"]
        assert body["comparisonType"] == "differences"
        assert "NDA_Contract.pdf" not in body["sources"]
        assert body["structured"]["raw"].startswith("**Payment**")
        assert set(body["debug"]) == {"chunks_count", "docs_matched"}

    def test_fewer_than_two_docs_is_400(self, client, wire):
        wire()
        response = client.post("/compare", json={
            "query": "payment", "docIds": ["NDA"],
        }, headers=DEMO)

        assert response.status_code == 400
        assert response.json()["sources"] == []

    def test_unknown_comparison_type_is_400(self, client, wire):
        wire()
        response = client.post("/compare", json={
            "query": "payment", "docIds": ["NDA", "MSA"], "comparisonType": "ranking",
        }, headers=DEMO)

        assert response.status_code == 400
        assert "comparisonType" in response.json()["error"]


# ---------------------------------------------------------------------------
# POST /ingest, POST /demo/ingest
# ---------------------------------------------------------------------------


class TestIngestEndpoints:
    def test_ingest_text(self, client, wire, store):
        wire(store=store)

        response = client.post(
            "/ingest",
            json={"filename": "Policy.pdf", "text": "Remote work is allowed."},
            headers={"X-Namespace": "t1"},
        )

        assert response.status_code == 200
        assert response.json() == {"chunks": 1, "docId": "Policy.pdf", "status": "success"}
        assert list(store.namespaces["t1"]) == ["Policy.pdf-0"]

    def test_ingest_missing_content_is_400(self, client, wire, store):
        wire(store=store)

        response = client.post("/ingest", json={"filename": "Policy.pdf"})

        assert response.status_code == 400
        assert response.json() == {
            "status": "error", "message": "Missing filename or content",
        }

    def test_demo_ingest_reports_missing_files(self, client, wire, store, tmp_path):
        wire(store=store)
        with patch.object(settings, "demo_data_dir", str(tmp_path)):
            response = client.post("/demo/ingest", headers=DEMO)

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "success"
        assert len(body["results"]) == 3
        assert all(r["status"] == "error" for r in body["results"])


# ---------------------------------------------------------------------------
# POST /admin/reset, GET /proof/metrics
# ---------------------------------------------------------------------------


class TestAdminEndpoints:
    def test_reset_requires_token(self, client, wire):
        store, _ = wire()
        with patch.object(settings, "environment", "production"), \
                patch.object(settings, "admin_token", "s3cret"):
            response = client.post("/admin/reset", headers=DEMO)

        assert response.status_code == 401
        assert "demo" in store.namespaces

    def test_reset_with_token_clears_namespace(self, client, wire):
        store, _ = wire()
        with patch.object(settings, "environment", "production"), \
                patch.object(settings, "admin_token", "s3cret"):
            response = client.post(
                "/admin/reset", headers={**DEMO, "X-Admin-Token": "s3cret"},
            )

        assert response.status_code == 200
        assert response.json() == {"ok": True, "cleared": {"namespace": "demo"}}
        assert "demo" not in store.namespaces

    def test_reset_without_namespace_is_400(self, client, wire):
        wire()
        with patch.object(settings, "environment", "test"), \
                patch.object(settings, "vector_namespace", ""):
            response = client.post("/admin/reset")

        assert response.status_code == 400
        assert response.json()["ok"] is False

    def test_proof_metrics_missing(self, client, tmp_path):
        with patch.object(settings, "proof_metrics_path", str(tmp_path / "none.json")):
            response = client.get("/proof/metrics")

        assert response.status_code == 404
        assert response.json()["error"] == "Missing proof metrics"

    def test_proof_metrics_served_verbatim(self, client, tmp_path):
        metrics = {"avg_latency_ms": 812, "queries": 20}
        path = tmp_path / "metrics.json"
        path.write_text(json.dumps(metrics))

        with patch.object(settings, "proof_metrics_path", str(path)):
            response = client.get("/proof/metrics")

        assert response.status_code == 200
        assert response.json() == metrics
