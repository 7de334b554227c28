"""
Embedding Data Models

This module defines the records that flow through the indexing pipeline:

- Chunk: one ordinal slice of a Document's text (never persisted)
- VectorRecord: one embedding plus its chunk text and metadata, as inserted
  into the vector index
- ChunkFailure / IndexResult: the outcome of an indexing pass
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

from pydantic import BaseModel, Field, ConfigDict


@dataclass(frozen=True)
class Chunk:
    """Ordinal slice of a document, the unit of embedding and retrieval."""

    document_id: str
    index: int
    text: str


class ChunkMetadata(BaseModel):
    """
    Metadata stored next to every vector in the index.
    """

    file_name: str = Field(..., min_length=1)
    file_id: str = Field(..., min_length=1)
    chunk_index: int = Field(..., ge=0)

    model_config = ConfigDict(
        extra="forbid",
        frozen=True,
    )


class VectorRecord(BaseModel):
    """
    A single (embedding, chunk text, metadata) record.

    The embedding is only held here until insertion; the index keeps the text
    and metadata, and FAISS keeps the vector.
    """

    embedding: List[float] = Field(..., min_length=1)

    document: str = Field(
        ...,
        min_length=1,
        description="Raw text of the embedded chunk.",
    )

    metadata: ChunkMetadata

    model_config = ConfigDict(
        extra="forbid",
        frozen=True,
    )


@dataclass(frozen=True)
class ChunkFailure:
    """One chunk whose embedding or insertion failed."""

    document_id: str
    chunk_index: int
    cause: str


@dataclass(frozen=True)
class ChunkResult:
    """Tagged per-chunk outcome: success when `failure` is None."""

    chunk: Chunk
    failure: Optional[ChunkFailure] = None

    @property
    def ok(self) -> bool:
        return self.failure is None


@dataclass
class IndexResult:
    """Aggregate outcome of indexing one or more documents."""

    inserted: int = 0
    failures: List[ChunkFailure] = field(default_factory=list)

    def record(self, result: ChunkResult) -> None:
        if result.failure is None:
            self.inserted += 1
        else:
            self.failures.append(result.failure)

    def merge(self, other: "IndexResult") -> None:
        self.inserted += other.inserted
        self.failures.extend(other.failures)
