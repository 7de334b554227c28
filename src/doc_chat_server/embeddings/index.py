"""
FAISS Vector Index

This module implements the in-memory FAISS-backed vector index holding the
embedded chunks of every uploaded document.

Key Properties
--------------
- Explicit ID management via IndexIDMap2
- Fixed dimension chosen at construction; mismatched vectors are rejected
- Deterministic add / delete / search behavior
- Not persisted: the index is a cache rebuilt from the document store
- Concurrency-safe (thread locking)
"""

from __future__ import annotations

from threading import RLock
from typing import Dict, List, Optional, Tuple

import faiss
import numpy as np

from .models import ChunkMetadata, VectorRecord


# ---------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------

class FaissIndexError(RuntimeError):
    """Base error for FAISS index failures."""


class IndexUnavailableError(FaissIndexError):
    """Raised when the index is used after it has been released."""


class DimensionMismatchError(FaissIndexError):
    """Raised when a vector's length differs from the index dimension."""


# ---------------------------------------------------------------------
# Stored chunk (text + metadata, no vector)
# ---------------------------------------------------------------------

class IndexedChunk(ChunkMetadata):
    """
    Text and metadata of one stored vector, returned by search.
    """

    text: str


# ---------------------------------------------------------------------
# FAISS Index Wrapper
# ---------------------------------------------------------------------

class FaissIndex:
    """
    FAISS inner-product index over L2-normalized vectors (cosine similarity).

    This class is thread-safe; writers from the async side are additionally
    serialized by the knowledge coordinator.
    """

    def __init__(self, dimension: int) -> None:
        """
        Initialize an empty index.

        Parameters
        ----------
        dimension : int
            Length every inserted and queried vector must have.
        """
        if dimension <= 0:
            raise FaissIndexError("Index dimension must be positive.")

        self._dimension = dimension
        self._index: Optional[faiss.IndexIDMap2] = None
        self._chunks: Dict[int, IndexedChunk] = {}
        self._next_id: int = 0

        self._lock = RLock()
        self._init_index()

    @classmethod
    def new_with_dimension(cls, dimension: int) -> "FaissIndex":
        return cls(dimension)

    # ------------------------------------------------------------------
    # Internal Helpers
    # ------------------------------------------------------------------

    def _init_index(self) -> None:
        base = faiss.IndexFlatIP(self._dimension)
        self._index = faiss.IndexIDMap2(base)

    def _require_index(self) -> faiss.IndexIDMap2:
        if self._index is None:
            raise IndexUnavailableError("Vector index is not available.")
        return self._index

    def _validate_vector(self, vector: List[float]) -> None:
        if len(vector) != self._dimension:
            raise DimensionMismatchError(
                f"Vector has dimension {len(vector)}, index expects {self._dimension}."
            )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def dimension(self) -> int:
        return self._dimension

    @property
    def is_available(self) -> bool:
        return self._index is not None

    def add(self, record: VectorRecord) -> int:
        """
        Insert one record and return its internal id.

        Raises
        ------
        IndexUnavailableError
            If the index has been released.
        DimensionMismatchError
            If the embedding length differs from the index dimension.
        """
        with self._lock:
            index = self._require_index()
            self._validate_vector(record.embedding)

            vectors = np.asarray([record.embedding], dtype="float32")
            faiss.normalize_L2(vectors)
            ids = np.asarray([self._next_id], dtype="int64")

            try:
                index.add_with_ids(vectors, ids)
            except Exception as exc:
                raise FaissIndexError(
                    f"Failed to add vector to FAISS: {type(exc).__name__}"
                ) from exc

            record_id = self._next_id
            self._next_id += 1
            self._chunks[record_id] = IndexedChunk(
                text=record.document,
                **record.metadata.model_dump(),
            )
            return record_id

    def delete_document(self, file_id: str) -> int:
        """
        Remove all chunks belonging to a given document.

        Returns
        -------
        int
            Number of removed chunks.
        """
        with self._lock:
            index = self._require_index()

            ids_to_remove = [
                record_id
                for record_id, chunk in self._chunks.items()
                if chunk.file_id == file_id
            ]

            if not ids_to_remove:
                return 0

            try:
                index.remove_ids(np.asarray(ids_to_remove, dtype="int64"))
            except Exception as exc:
                raise FaissIndexError(
                    f"Failed to remove IDs from FAISS: {type(exc).__name__}"
                ) from exc

            for record_id in ids_to_remove:
                self._chunks.pop(record_id, None)

            return len(ids_to_remove)

    def clear(self) -> None:
        """
        Drop every record, keeping the index usable with the same dimension.
        """
        with self._lock:
            self._require_index()
            self._init_index()
            self._chunks.clear()
            self._next_id = 0

    def close(self) -> None:
        """
        Release the FAISS index. Later calls raise IndexUnavailableError.
        """
        with self._lock:
            self._index = None
            self._chunks.clear()

    def search(
        self,
        query_emb: List[float],
        k: int = 5,
    ) -> List[Tuple[IndexedChunk, float]]:
        """
        Search the index using a query embedding.

        Returns ranked (chunk, score) tuples, best first.
        """
        with self._lock:
            index = self._require_index()
            self._validate_vector(query_emb)

            if not self._chunks or k <= 0:
                return []

            q = np.asarray([query_emb], dtype="float32")
            faiss.normalize_L2(q)

            scores, idxs = index.search(q, min(k, len(self._chunks)))

            results: List[Tuple[IndexedChunk, float]] = []

            for score, idx in zip(scores[0], idxs[0]):
                idx = int(idx)
                if idx == -1:
                    continue

                chunk = self._chunks.get(idx)
                if chunk is None:
                    continue

                results.append((chunk, float(score)))

            return results

    def get_stats(self) -> dict:
        """
        Return index statistics for diagnostics.
        """
        with self._lock:
            chunks_per_document: Dict[str, int] = {}
            for chunk in self._chunks.values():
                chunks_per_document[chunk.file_id] = chunks_per_document.get(chunk.file_id, 0) + 1

            return {
                "available": self._index is not None,
                "dimension": self._dimension,
                "total_vectors": self._index.ntotal if self._index is not None else 0,
                "total_documents": len(chunks_per_document),
                "chunks_per_document": chunks_per_document,
            }

    def __len__(self) -> int:
        with self._lock:
            return len(self._chunks)
