"""
Workspace

Application-level coordinator wiring the document store, the services, the
knowledge coordinator, rehydration and the chat dispatcher together. The API
layer talks only to this object.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from .capabilities import Capabilities, CapabilityNotReadyError, LLMStatus
from .rehydration import RehydrationController, RehydrationState
from ..chat.dispatcher import ConversationDispatcher, TurnInProgressError
from ..config import Settings, settings as default_settings
from ..documents.models import Document
from ..documents.store import DocumentStore, DocumentStoreError
from ..documents.uploads import RejectedFile, UploadedFile, read_uploaded_files
from ..embeddings.indexer import DocumentIndexer
from ..embeddings.models import ChunkFailure, IndexResult
from ..knowledge.assembler import RetrievedChunk
from ..knowledge.coordinator import KnowledgeCoordinator
from ..llm.polyfill import get_document_polyfill
from ..sessions.models import ConversationMessage, new_message
from ..sessions.store import SessionStore

logger = logging.getLogger("docchat.workspace")


@dataclass
class UploadReport:
    documents: List[Document] = field(default_factory=list)
    rejected: List[RejectedFile] = field(default_factory=list)
    inserted_chunks: int = 0
    failures: List[ChunkFailure] = field(default_factory=list)


class Workspace:
    def __init__(
        self,
        store: DocumentStore,
        capabilities: Capabilities,
        sessions: SessionStore,
        coordinator: KnowledgeCoordinator,
        dispatcher: ConversationDispatcher,
        *,
        chunk_size: int,
        seed_sample_document: bool = True,
    ) -> None:
        self.store = store
        self.capabilities = capabilities
        self.sessions = sessions
        self.coordinator = coordinator
        self.dispatcher = dispatcher
        self.chunk_size = chunk_size

        self._startup_lock = asyncio.Lock()
        self.selected_document_id: Optional[str] = None
        self.rehydration = RehydrationController(
            store,
            coordinator,
            chunk_size=chunk_size,
            seed_sample_document=seed_sample_document,
            on_select=self.select_document,
        )

    @classmethod
    def from_settings(cls, config: Settings = default_settings) -> "Workspace":
        return cls(
            store=DocumentStore(str(Path(config.data_root_path) / config.documents_file)),
            capabilities=Capabilities(config.embedding_dimension),
            sessions=SessionStore(config.max_messages_per_session),
            coordinator=KnowledgeCoordinator(top_k=config.retrieval_top_k),
            dispatcher=ConversationDispatcher(get_document_polyfill(config.llm_model_family)),
            chunk_size=config.chunk_size,
            seed_sample_document=config.seed_sample_document,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> RehydrationState:
        """
        Load persisted documents, bring up the services and rehydrate.
        """
        documents = self.store.load()
        logger.info("Found %d stored file(s)", len(documents))
        return await self.initialize_capabilities()

    async def initialize_capabilities(self) -> RehydrationState:
        """
        (Re)try service initialisation. Once ready, the agent is installed and
        rehydration runs (only the first time).

        Calls are serialised: a reload that arrives while startup is still
        loading waits for it and then finds everything in place.
        """
        async with self._startup_lock:
            was_ready = self.capabilities.is_ready
            if await self.capabilities.initialize() and not was_ready:
                await self.coordinator.bind_agent(self.capabilities.llm)
            return await self.rehydration.run(self.capabilities)

    def close(self) -> None:
        self.capabilities.close()

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    def list_documents(self) -> List[Document]:
        return self.store.list_documents()

    def get_document(self, document_id: str) -> Document:
        return self.store.get(document_id)

    def select_document(self, document_id: str) -> None:
        self.store.get(document_id)
        self.selected_document_id = document_id

    async def upload(self, uploads: Sequence[UploadedFile]) -> UploadReport:
        """
        Read, index and persist a batch of uploaded files.

        Rejected files are reported and do not affect the rest of the batch.
        Knowledge is rebuilt once after all accepted files are indexed.

        Raises
        ------
        CapabilityNotReadyError
            If the embedding model or index is not ready.
        """
        self.capabilities.require_ready()

        accepted, rejected = read_uploaded_files(uploads)
        for item in rejected:
            logger.warning("Rejected upload %s: %s", item.filename, item.reason)

        report = UploadReport(documents=accepted, rejected=rejected)
        if not accepted:
            return report

        logger.info("Processing %d document(s) for RAG...", len(accepted))
        result = await self._index(accepted)
        report.inserted_chunks = result.inserted
        report.failures = result.failures

        try:
            self.store.add(accepted)
        except DocumentStoreError:
            # Unpersisted documents must not stay retrievable
            await self._drop([doc.id for doc in accepted])
            raise

        if self.selected_document_id is None:
            self.selected_document_id = accepted[0].id

        logger.info("%d file(s) uploaded and indexed for RAG", len(accepted))
        return report

    async def delete_document(self, document_id: str) -> Tuple[Document, int]:
        """
        Remove a document from the store and its records from the index.

        Returns the removed document and the number of removed records.
        """
        removed = self.store.delete(document_id)
        if self.selected_document_id == document_id:
            self.selected_document_id = None

        removed_records = await self._drop([document_id])

        logger.info("File deleted: %s (%d records)", removed.name, removed_records)
        return removed, removed_records

    async def _drop(self, document_ids: Sequence[str]) -> int:
        if not self.capabilities.is_ready:
            return 0
        caps = self.capabilities

        async def drop() -> int:
            return sum(caps.index.delete_document(doc_id) for doc_id in document_ids)

        return await self.coordinator.update_index(drop, caps.llm, caps.index, caps.embedder)

    async def _index(self, documents: Sequence[Document]) -> IndexResult:
        caps = self.capabilities
        indexer = DocumentIndexer(caps.embedder, caps.index, chunk_size=self.chunk_size)

        async def add() -> IndexResult:
            return await indexer.index_many(documents)

        return await self.coordinator.update_index(add, caps.llm, caps.index, caps.embedder)

    def index_stats(self) -> dict:
        if self.capabilities.index is None:
            return {
                "available": False,
                "dimension": self.capabilities.embedding_dimension,
                "total_vectors": 0,
                "total_documents": 0,
                "chunks_per_document": {},
            }
        return self.capabilities.index.get_stats()

    # ------------------------------------------------------------------
    # Retrieval & chat
    # ------------------------------------------------------------------

    async def search(self, query: str, k: int) -> List[RetrievedChunk]:
        knowledge = self.coordinator.knowledge
        if knowledge is None:
            return []
        return await knowledge.retrieve(query, k)

    async def send_message(
        self,
        session_id: str,
        text: str,
    ) -> Tuple[ConversationMessage, ConversationMessage]:
        """
        Run one chat turn and record both messages in the session history.

        Raises
        ------
        CapabilityNotReadyError
            If no agent is bound yet.
        TurnInProgressError
            If another turn is still running.
        """
        agent = self.coordinator.agent
        if agent is None or not self.capabilities.is_ready:
            raise CapabilityNotReadyError("LLM agent is not initialized")
        if self.dispatcher.busy:
            raise TurnInProgressError("A response is already being generated.")

        history = self.sessions.get_history(session_id)
        user_message = new_message("user", text)
        self.sessions.add_messages(session_id, [user_message])

        self.capabilities.status = LLMStatus.PROCESSING
        try:
            reply = await self.dispatcher.send(
                history,
                text,
                agent,
                self.coordinator.knowledge_present,
            )
        finally:
            self.capabilities.status = LLMStatus.LOADED

        self.sessions.add_messages(session_id, [reply])
        return user_message, reply

    def clear_conversation(self, session_id: str) -> int:
        return self.sessions.clear(session_id)
