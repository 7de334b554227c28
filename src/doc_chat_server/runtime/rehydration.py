"""
Rehydration

The vector index is not persisted, so at process start it is rebuilt from
the document store once the services are ready:

- WAITING_FOR_CAPABILITIES: services not ready; nothing happens.
- REHYDRATING: every persisted document is indexed in persisted order, then
  knowledge is assembled and the agent rebound.
- SEEDING: the store is empty; the sample document is persisted and
  selected, then indexed as in REHYDRATING.
- COMPLETE: terminal, reached even when some chunks failed.

The controller runs at most once per process. It is separate from the
per-upload indexing path.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, List, Optional, Tuple

from .capabilities import Capabilities
from ..documents.models import Document
from ..documents.sample import build_sample_document
from ..documents.store import DocumentStore
from ..embeddings.chunker import DEFAULT_CHUNK_SIZE
from ..embeddings.indexer import DocumentIndexer
from ..embeddings.models import IndexResult
from ..knowledge.coordinator import KnowledgeCoordinator

logger = logging.getLogger("docchat.rehydration")


class RehydrationState(str, Enum):
    WAITING_FOR_CAPABILITIES = "waiting-for-capabilities"
    REHYDRATING = "rehydrating"
    SEEDING = "seeding"
    COMPLETE = "complete"


class RehydrationController:
    def __init__(
        self,
        store: DocumentStore,
        coordinator: KnowledgeCoordinator,
        *,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        seed_sample_document: bool = True,
        on_select: Optional[Callable[[str], None]] = None,
    ) -> None:
        self.store = store
        self.coordinator = coordinator
        self.chunk_size = chunk_size
        self.seed_sample_document = seed_sample_document
        self._on_select = on_select

        self.state = RehydrationState.WAITING_FOR_CAPABILITIES
        self.result: Optional[IndexResult] = None
        self._started = False

    @property
    def started(self) -> bool:
        return self._started

    async def run(self, capabilities: Capabilities) -> RehydrationState:
        """
        Rebuild the index from the store if the services are ready.

        Returns the resulting state. Calls after the first run are no-ops.
        """
        if self._started:
            return self.state

        if not capabilities.is_ready:
            self.state = RehydrationState.WAITING_FOR_CAPABILITIES
            return self.state

        self._started = True

        if not self.store.list_documents():
            self._seed()

        self.state = RehydrationState.REHYDRATING
        try:
            documents, self.result = await self._replay(capabilities)
        finally:
            # Terminal even if the replay itself failed; it is never retried
            self.state = RehydrationState.COMPLETE

        logger.info(
            "Loaded %d file(s) from storage (%d chunks indexed, %d failed)",
            len(documents),
            self.result.inserted,
            len(self.result.failures),
        )
        return self.state

    def _seed(self) -> None:
        self.state = RehydrationState.SEEDING
        if not self.seed_sample_document:
            return

        sample = build_sample_document()
        self.store.add([sample])
        if self._on_select is not None:
            self._on_select(sample.id)

        logger.info("Sample file loaded: %s", sample.name)

    async def _replay(
        self,
        capabilities: Capabilities,
    ) -> Tuple[List[Document], IndexResult]:
        index = capabilities.index
        indexer = DocumentIndexer(
            capabilities.embedder,
            index,
            chunk_size=self.chunk_size,
        )

        async def rebuild() -> Tuple[List[Document], IndexResult]:
            # Read under the writer lock so uploads that finished first are included
            documents = self.store.list_documents()
            if documents:
                logger.info("Re-indexing %d stored file(s)...", len(documents))
            # Start from an empty index so a replay never duplicates records
            index.clear()
            return documents, await indexer.index_many(documents)

        return await self.coordinator.update_index(
            rebuild,
            capabilities.llm,
            index,
            capabilities.embedder,
        )
