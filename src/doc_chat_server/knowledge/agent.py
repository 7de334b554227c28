"""
Conversational Agent

An Agent pairs the language model with an optional Knowledge binding. Agents
are immutable: binding new knowledge means building a new Agent with
`rebind_agent` and swapping the reference held by the coordinator.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, AsyncIterator, Dict, List, Optional

from .assembler import Knowledge
from ..llm.client import LLMClient
from ..llm.polyfill import InferenceConfig

logger = logging.getLogger("docchat.agent")


@dataclass(frozen=True)
class AgentResponse:
    """One streamed snapshot; `text` is cumulative, not a delta."""

    text: str


@dataclass(frozen=True)
class Agent:
    llm: LLMClient
    knowledge: Optional[Knowledge] = None

    async def run(
        self,
        messages: List[Dict[str, Any]],
        config: Optional[InferenceConfig] = None,
    ) -> AsyncIterator[AgentResponse]:
        """
        Generate a reply to `messages`, streaming cumulative snapshots.

        Retrieval only happens when this agent has knowledge and the config
        carries a document polyfill; the latest user message is the query.
        """
        request = list(messages)

        polyfill = config.document_polyfill if config else None
        if self.knowledge is not None and polyfill is not None:
            query = _latest_user_text(request)
            if query:
                retrieved = await self.knowledge.retrieve(query)
                logger.debug("Retrieved %d chunks for query", len(retrieved))
                request = polyfill.apply(request, [r.chunk for r in retrieved])

        async for text in self.llm.stream_chat(request):
            yield AgentResponse(text=text)


def _latest_user_text(messages: List[Dict[str, Any]]) -> str:
    for message in reversed(messages):
        if message.get("role") == "user":
            return message.get("content") or ""
    return ""


def rebind_agent(llm: LLMClient, knowledge: Optional[Knowledge]) -> Agent:
    """Build a fresh Agent bound to `knowledge` (None for no retrieval)."""
    return Agent(llm=llm, knowledge=knowledge)
