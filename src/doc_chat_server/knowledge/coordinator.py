"""
Knowledge Coordinator

Single-writer reference cell for the process-wide Agent and Knowledge.

Every change to the vector index that affects retrieval (initial population,
uploads, deletions, rehydration) goes through `update_index`, which holds an
asyncio lock while it mutates the index, reassembles Knowledge, rebuilds the
Agent and swaps both references. Readers never take the lock; they always see
the last committed pair.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar

from .agent import Agent, rebind_agent
from .assembler import Knowledge, assemble_knowledge
from ..embeddings.embedder import Embedder
from ..embeddings.index import FaissIndex
from ..llm.client import LLMClient

logger = logging.getLogger("docchat.knowledge")

T = TypeVar("T")


class KnowledgeCoordinator:
    def __init__(self, top_k: int = 5) -> None:
        self._lock = asyncio.Lock()
        self._agent: Optional[Agent] = None
        self._knowledge: Optional[Knowledge] = None
        self._generation = 0
        self.top_k = top_k

    # ------------------------------------------------------------------
    # Readers
    # ------------------------------------------------------------------

    @property
    def agent(self) -> Optional[Agent]:
        return self._agent

    @property
    def knowledge(self) -> Optional[Knowledge]:
        return self._knowledge

    @property
    def knowledge_present(self) -> bool:
        return self._knowledge is not None

    @property
    def generation(self) -> int:
        """Number of committed swaps so far."""
        return self._generation

    # ------------------------------------------------------------------
    # Writers
    # ------------------------------------------------------------------

    def _commit(self, agent: Agent, knowledge: Optional[Knowledge]) -> None:
        self._knowledge = knowledge
        self._agent = agent
        self._generation += 1

    async def bind_agent(self, llm: LLMClient) -> Agent:
        """
        Install an Agent for `llm` once the language model is ready.

        The current knowledge is kept, so an index update committed between
        service start and this call is never discarded.
        """
        async with self._lock:
            agent = rebind_agent(llm, self._knowledge)
            self._commit(agent, self._knowledge)
            return agent

    async def update_index(
        self,
        mutation: Callable[[], Awaitable[T]],
        llm: LLMClient,
        index: FaissIndex,
        embedder: Embedder,
    ) -> T:
        """
        Run `mutation` under the writer lock, then rebind.

        Knowledge is bound only when the index holds records afterwards; an
        empty index yields an Agent without knowledge. The rebind happens
        even if the mutation raises, so the Agent never lags the index.
        """
        async with self._lock:
            try:
                return await mutation()
            finally:
                knowledge = (
                    assemble_knowledge(index, embedder, self.top_k)
                    if index.is_available and len(index) > 0
                    else None
                )
                self._commit(rebind_agent(llm, knowledge), knowledge)
                logger.info(
                    "Rebound agent (generation %d, %d records, knowledge=%s)",
                    self._generation,
                    len(index),
                    knowledge is not None,
                )
