"""Document indexing pipeline."""

from __future__ import annotations

import logging
from typing import Sequence

from .chunker import DEFAULT_CHUNK_SIZE, build_chunks
from .embedder import Embedder, EmbeddingError
from .index import FaissIndex, FaissIndexError
from .models import Chunk, ChunkFailure, ChunkMetadata, ChunkResult, IndexResult, VectorRecord
from ..documents.models import Document

logger = logging.getLogger("docchat.indexer")


class DocumentIndexer:
    """Chunks documents, embeds each chunk and inserts it into the index."""

    def __init__(
        self,
        embedder: Embedder,
        index: FaissIndex,
        *,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> None:
        self.embedder = embedder
        self.index = index
        self.chunk_size = chunk_size

    async def index_document(self, document: Document) -> IndexResult:
        """
        Index one document, chunk by chunk in ordinal order.

        A failing chunk is recorded and skipped; the remaining chunks are
        still attempted.
        """
        chunks = build_chunks(document, self.chunk_size)
        logger.info("Processing %s: %d chunks", document.name, len(chunks))

        result = IndexResult()
        for chunk in chunks:
            result.record(await self._index_chunk(document, chunk))

        if result.failures:
            logger.warning(
                "Indexed %s with %d of %d chunks failed",
                document.name,
                len(result.failures),
                len(chunks),
            )
        return result

    async def index_many(self, documents: Sequence[Document]) -> IndexResult:
        """Index every document in the given order and aggregate the outcome."""
        total = IndexResult()
        for document in documents:
            total.merge(await self.index_document(document))
        return total

    async def _index_chunk(self, document: Document, chunk: Chunk) -> ChunkResult:
        try:
            embedding = await self.embedder.embed_one(chunk.text)
            self.index.add(
                VectorRecord(
                    embedding=embedding,
                    document=chunk.text,
                    metadata=ChunkMetadata(
                        file_name=document.name,
                        file_id=document.id,
                        chunk_index=chunk.index,
                    ),
                )
            )
        except (EmbeddingError, FaissIndexError) as exc:
            logger.error(
                "Failed to embed chunk %d of %s: %s", chunk.index, document.name, exc
            )
            return self._failed(document, chunk, exc)
        except Exception as exc:
            logger.exception(
                "Unexpected error indexing chunk %d of %s", chunk.index, document.name
            )
            return self._failed(document, chunk, exc)

        return ChunkResult(chunk=chunk)

    @staticmethod
    def _failed(document: Document, chunk: Chunk, exc: Exception) -> ChunkResult:
        return ChunkResult(
            chunk=chunk,
            failure=ChunkFailure(
                document_id=document.id,
                chunk_index=chunk.index,
                cause=f"{type(exc).__name__}: {exc}",
            ),
        )
