"""
Knowledge Assembly

A Knowledge value binds a vector index to the embedder that produced its
vectors, so queries are embedded in the same space they are searched in.
It is a plain binding: rebuilt, never mutated.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List

from ..embeddings.embedder import Embedder
from ..embeddings.index import FaissIndex, IndexedChunk


@dataclass(frozen=True)
class RetrievedChunk:
    chunk: IndexedChunk
    score: float


@dataclass(frozen=True)
class Knowledge:
    index: FaissIndex
    embedder: Embedder
    top_k: int = 5

    async def retrieve(self, query: str, k: int | None = None) -> List[RetrievedChunk]:
        """
        Return the records nearest to `query`, best first.

        Raises EmbeddingError / FaissIndexError from the underlying services.
        """
        query_emb = await self.embedder.embed_one(query)
        hits = self.index.search(query_emb, k or self.top_k)
        return [RetrievedChunk(chunk=chunk, score=score) for chunk, score in hits]


def assemble_knowledge(index: FaissIndex, embedder: Embedder, top_k: int = 5) -> Knowledge:
    return Knowledge(index=index, embedder=embedder, top_k=top_k)
