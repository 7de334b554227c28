"""
Capabilities

Holds the three external services the core depends on (language model,
embedding model, vector index) and their readiness.

Readiness is all-or-nothing: the three references are published together
only after every service has been initialised and checked. A failed
initialisation leaves the system "not-loaded"; it is never retried
automatically.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Callable, Optional

from ..embeddings.embedder import Embedder, EmbeddingError
from ..embeddings.index import FaissIndex, FaissIndexError
from ..llm.client import LLMClient, LLMError

logger = logging.getLogger("docchat.capabilities")


class CapabilityInitError(RuntimeError):
    """Raised when a service fails to initialise."""


class CapabilityNotReadyError(RuntimeError):
    """Raised when an operation needs services that are not ready."""


class LLMStatus(str, Enum):
    LOADED = "loaded"
    NOT_LOADED = "not-loaded"
    PROCESSING = "processing"


class Capabilities:
    def __init__(
        self,
        embedding_dimension: int,
        llm_factory: Callable[[], LLMClient] = LLMClient,
        embedder_factory: Callable[[], Embedder] = Embedder,
    ) -> None:
        self.embedding_dimension = embedding_dimension
        self._llm_factory = llm_factory
        self._embedder_factory = embedder_factory

        self.llm: Optional[LLMClient] = None
        self.embedder: Optional[Embedder] = None
        self.index: Optional[FaissIndex] = None

        self.status = LLMStatus.NOT_LOADED
        self.error: Optional[str] = None
        self._init_lock = asyncio.Lock()

    @property
    def is_ready(self) -> bool:
        return (
            self.llm is not None
            and self.embedder is not None
            and self.index is not None
        )

    def require_ready(self) -> None:
        if not self.is_ready:
            raise CapabilityNotReadyError("Models are not loaded yet. Please wait...")

    async def initialize(self) -> bool:
        """
        Bring up every service. Returns True when all are ready.

        Concurrent calls are serialised; a call that finds the services
        already published returns without checking them again. Failures are
        logged and recorded in `error`; the status becomes not-loaded and
        previously published services stay untouched.
        """
        async with self._init_lock:
            if self.is_ready:
                return True
            return await self._initialize()

    async def _initialize(self) -> bool:
        self.status = LLMStatus.PROCESSING
        logger.info("Loading LLM and embedding models...")

        try:
            llm = self._llm_factory()
            await llm.check_available()

            embedder = self._embedder_factory()
            dimension = await embedder.detect_dimension()
            if dimension != self.embedding_dimension:
                raise CapabilityInitError(
                    f"Embedding model returns {dimension}-d vectors, "
                    f"index is configured for {self.embedding_dimension}."
                )

            index = FaissIndex.new_with_dimension(self.embedding_dimension)
        except (LLMError, EmbeddingError, FaissIndexError, CapabilityInitError) as exc:
            self.status = LLMStatus.NOT_LOADED
            self.error = str(exc)
            logger.error("Failed to initialize models: %s", exc)
            return False

        self.llm, self.embedder, self.index = llm, embedder, index
        self.status = LLMStatus.LOADED
        self.error = None
        logger.info("Models loaded successfully")
        return True

    def close(self) -> None:
        if self.index is not None:
            self.index.close()
