"""
Conversation Message Model
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, Field, ConfigDict


class ConversationMessage(BaseModel):
    """
    Single message in the conversation history.
    """

    id: str = Field(..., min_length=1)
    role: Literal["user", "assistant"]
    content: str
    timestamp: datetime

    model_config = ConfigDict(
        extra="forbid",
        frozen=True,
    )


def new_message(role: Literal["user", "assistant"], content: str) -> ConversationMessage:
    return ConversationMessage(
        id=f"msg-{uuid.uuid4().hex}-{role}",
        role=role,
        content=content,
        timestamp=datetime.now(timezone.utc),
    )
