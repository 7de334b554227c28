import asyncio
import re
from typing import Dict, List, Optional

import pytest

from doc_chat_server.chat.dispatcher import ConversationDispatcher
from doc_chat_server.documents.models import Document
from doc_chat_server.documents.store import DocumentStore
from doc_chat_server.embeddings.embedder import EmbeddingError
from doc_chat_server.knowledge.coordinator import KnowledgeCoordinator
from doc_chat_server.llm.client import LLMError
from doc_chat_server.llm.polyfill import QWEN3_POLYFILL
from doc_chat_server.runtime.capabilities import Capabilities
from doc_chat_server.runtime.workspace import Workspace
from doc_chat_server.sessions.store import SessionStore

FAKE_DIMENSION = 32


class FakeEmbedder:
    """
    Bag-of-words embedder. Each distinct word gets its own slot (in order of
    first appearance), so similar texts get similar vectors.
    """

    def __init__(self, dimension: int = FAKE_DIMENSION, fail_on=(), error=None):
        self.dimension = dimension
        self.fail_on = set(fail_on)
        self.error = error or EmbeddingError("Embedding generation failed: ReadTimeout")
        self.calls: List[str] = []
        self._vocab: Dict[str, int] = {}

    def vector(self, text: str) -> List[float]:
        vec = [0.0] * self.dimension
        for word in re.findall(r"\w+", text.lower()):
            slot = self._vocab.setdefault(word, len(self._vocab) % self.dimension)
            vec[slot] += 1.0
        return vec

    async def embed_one(self, text: str) -> List[float]:
        self.calls.append(text)
        if any(marker in text for marker in self.fail_on):
            raise self.error
        return self.vector(text)

    async def embed(self, texts):
        return [await self.embed_one(t) for t in texts]

    async def detect_dimension(self) -> int:
        return self.dimension


class FakeLLM:
    """Streams `reply` in three-character pieces, cumulatively."""

    def __init__(
        self,
        reply: str = "Hello there!",
        available: bool = True,
        fail_after: Optional[int] = None,
        delay: float = 0.0,
    ):
        self.reply = reply
        self.available = available
        self.delay = delay
        self.checks = 0
        self.fail_after = fail_after
        self.requests: List[List[dict]] = []

    async def check_available(self) -> None:
        self.checks += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if not self.available:
            raise LLMError("Language model unavailable: ConnectError")

    async def stream_chat(self, messages):
        self.requests.append(list(messages))
        text = ""
        for i in range(0, len(self.reply), 3):
            if self.fail_after is not None and i // 3 >= self.fail_after:
                raise LLMError("Chat stream failed: ReadError")
            text += self.reply[i : i + 3]
            yield text


def make_document(doc_id: str, content: str, name: Optional[str] = None) -> Document:
    return Document(
        id=doc_id,
        name=name or f"{doc_id}.txt",
        content=content,
        size=len(content.encode("utf-8")),
    )


@pytest.fixture
def fake_embedder():
    return FakeEmbedder()


@pytest.fixture
def fake_llm():
    return FakeLLM()


@pytest.fixture
def store(tmp_path):
    return DocumentStore(str(tmp_path / "documents.json"))


@pytest.fixture
def make_capabilities(fake_llm, fake_embedder):
    def _make(llm=None, embedder=None) -> Capabilities:
        llm = llm or fake_llm
        embedder = embedder or fake_embedder
        return Capabilities(
            FAKE_DIMENSION,
            llm_factory=lambda: llm,
            embedder_factory=lambda: embedder,
        )
    return _make


@pytest.fixture
def make_workspace(store, make_capabilities):
    def _make(llm=None, embedder=None, seed_sample_document: bool = False) -> Workspace:
        return Workspace(
            store=store,
            capabilities=make_capabilities(llm, embedder),
            sessions=SessionStore(),
            coordinator=KnowledgeCoordinator(top_k=3),
            dispatcher=ConversationDispatcher(QWEN3_POLYFILL),
            chunk_size=500,
            seed_sample_document=seed_sample_document,
        )
    return _make
