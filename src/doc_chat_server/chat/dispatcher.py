"""
Conversation Dispatcher

Runs one chat turn against the current Agent:

1. Build the request from the full history plus the new user message.
2. Attach the retrieval configuration when knowledge is bound.
3. Consume the response stream, keeping only the latest cumulative text.
4. Return one assistant message, or the fixed fallback message on failure.

Turn state moves Idle -> Sending -> Streaming -> Idle, or Idle -> Sending ->
Idle when the turn fails. Only one turn may be in flight at a time.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from ..knowledge.agent import Agent
from ..llm.polyfill import DocumentPolyfill, InferenceConfig
from ..sessions.models import ConversationMessage, new_message

logger = logging.getLogger("docchat.chat")


FALLBACK_MESSAGE = "Sorry, I encountered an error while processing your request."


class TurnInProgressError(RuntimeError):
    """Raised when a turn is started while another one is still running."""


class ChatTurnState(str, Enum):
    IDLE = "idle"
    SENDING = "sending"
    STREAMING = "streaming"


def build_request(
    history: Sequence[ConversationMessage],
    text: str,
) -> List[Dict[str, Any]]:
    """Convert the history and the new user text into LLM messages."""
    messages = [{"role": m.role, "content": m.content} for m in history]
    messages.append({"role": "user", "content": text})
    return messages


class ConversationDispatcher:
    def __init__(self, document_polyfill: DocumentPolyfill) -> None:
        self.document_polyfill = document_polyfill
        self._state = ChatTurnState.IDLE

    @property
    def state(self) -> ChatTurnState:
        return self._state

    @property
    def busy(self) -> bool:
        return self._state is not ChatTurnState.IDLE

    def inference_config(self, knowledge_present: bool) -> Optional[InferenceConfig]:
        if not knowledge_present:
            return None
        return InferenceConfig(document_polyfill=self.document_polyfill)

    async def send(
        self,
        history: Sequence[ConversationMessage],
        text: str,
        agent: Agent,
        knowledge_present: bool,
    ) -> ConversationMessage:
        """
        Run one turn and return the assistant message.

        Any failure while building the request or streaming is logged and
        answered with FALLBACK_MESSAGE; partial output is discarded and the
        turn is not retried.

        Raises
        ------
        TurnInProgressError
            If another turn is still running.
        """
        if self.busy:
            raise TurnInProgressError("A response is already being generated.")

        self._state = ChatTurnState.SENDING
        try:
            messages = build_request(history, text)
            config = self.inference_config(knowledge_present)

            latest = ""
            async for response in agent.run(messages, config):
                self._state = ChatTurnState.STREAMING
                latest = response.text

            return new_message("assistant", latest)
        except Exception:
            logger.exception("LLM response error")
            return new_message("assistant", FALLBACK_MESSAGE)
        finally:
            self._state = ChatTurnState.IDLE
