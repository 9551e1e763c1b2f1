# =============================================================================
# Shared Test Fixtures — In-Memory Vector Store and Scripted LLM
# =============================================================================
#
# No test needs network access, API keys or the pdftotext binary. The
# orchestrators take their store and LLM as parameters, and the HTTP tests
# swap them in through app.dependency_overrides.
# =============================================================================

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

import pytest

from docqa.services.chunker import Chunk
from docqa.services.llm import LLMResponse
from docqa.services.vectorstore import RetrievalHit


@dataclass
class FakeVectorStore:
    """
    Namespace-partitioned in-memory store.

    search() scores chunks by how many query words they contain and
    returns the best top_k, so tests control retrieval with plain text.
    Set `fail_times` to make the next N searches raise.
    """

    namespaces: dict[str, dict[str, Chunk]] = field(default_factory=dict)
    searches: list[tuple[str, str, int]] = field(default_factory=list)
    fail_times: int = 0
    error: Exception = field(default_factory=lambda: RuntimeError("index unavailable"))

    async def search(self, namespace: str, query_text: str, top_k: int) -> list[RetrievalHit]:
        self.searches.append((namespace, query_text, top_k))
        if self.fail_times > 0:
            self.fail_times -= 1
            raise self.error

        words = {w.lower().strip("?.,") for w in query_text.split() if len(w) > 2}
        scored = []
        for chunk in self.namespaces.get(namespace, {}).values():
            text = chunk.text.lower()
            matched = sum(1 for w in words if w in text)
            if matched:
                scored.append((matched / max(len(words), 1), chunk))
        scored.sort(key=lambda pair: pair[0], reverse=True)
        return [
            RetrievalHit(id=c.id, source=c.source, text=c.text, score=round(score, 4))
            for score, c in scored[:top_k]
        ]

    async def upsert(self, namespace: str, chunks: Sequence[Chunk]) -> int:
        bucket = self.namespaces.setdefault(namespace, {})
        for chunk in chunks:
            bucket[chunk.id] = chunk
        return len(chunks)

    async def delete_namespace(self, namespace: str) -> None:
        self.namespaces.pop(namespace, None)

    def add_text(self, namespace: str, source: str, *texts: str) -> None:
        bucket = self.namespaces.setdefault(namespace, {})
        for text in texts:
            i = sum(1 for c in bucket.values() if c.source == source)
            bucket[f"{source}-{i}"] = Chunk(
                id=f"{source}-{i}", text=text, source=source, sequence_index=i,
            )


class FakeLLM:
    """
    LLM provider returning scripted replies.

    `reply` is either a fixed string or a function of the last user
    message. Every call is recorded in `calls` as its keyword arguments.
    """

    def __init__(self, reply: str | Callable[[str], str] = "ok", model: str = "fake-model"):
        self._reply = reply
        self._model = model
        self.calls: list[dict] = []

    async def complete(
        self,
        messages: list[dict[str, str]],
        system: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> LLMResponse:
        self.calls.append({
            "messages": messages,
            "system": system,
            "temperature": temperature,
            "max_tokens": max_tokens,
        })
        prompt = messages[-1]["content"]
        content = self._reply(prompt) if callable(self._reply) else self._reply
        return LLMResponse(
            content=content, model=self._model, input_tokens=10, output_tokens=5,
        )


@pytest.fixture
def store() -> FakeVectorStore:
    return FakeVectorStore()


@pytest.fixture
def contracts_store() -> FakeVectorStore:
    """Store with the three demo contracts in the "demo" namespace."""
    fake = FakeVectorStore()
    fake.add_text(
        "demo", "NDA_Contract.pdf",
        "Either Party may terminate this NDA on 30 days' written notice.",
        "Confidentiality obligations survive termination for 5 years.",
    )
    fake.add_text(
        "demo", "Master_Services_Agreement.pdf",
        "Invoices are payable within 30 days of receipt (net 30) payment terms.",
        "Either party may terminate for convenience on 60 days' written notice.",
    )
    fake.add_text(
        "demo", "SaaS_License_Agreement.pdf",
        "Subscription fees are invoiced annually in advance; payment terms are 45 days.",
        "The subscription renews unless 90 days' notice is given to terminate.",
    )
    return fake


@pytest.fixture
def make_llm() -> type[FakeLLM]:
    """The FakeLLM class, so tests can script their own replies."""
    return FakeLLM
