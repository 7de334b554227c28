"""
API Models

Pydantic request/response models for the document, chat, search and health
endpoints.
"""

from __future__ import annotations

from typing import List, Optional, Dict, Literal
from pydantic import BaseModel, Field, ConfigDict

from ..sessions.models import ConversationMessage
from ..sessions.store import DEFAULT_SESSION_ID


class OperationResult(BaseModel):
    """
    Standardized mutation operation result.
    """
    status: Literal["deleted", "selected", "cleared", "ok"]
    count: Optional[int] = Field(default=None, ge=0)

    model_config = ConfigDict(extra="forbid")


# ---------------------------------------------------------------------
# Document Models
# ---------------------------------------------------------------------

class DocumentSummary(BaseModel):
    id: str
    name: str
    size: int = Field(..., ge=0)

    model_config = ConfigDict(extra="forbid")


class DocumentDetail(DocumentSummary):
    content: str


class DocumentListResponse(BaseModel):
    documents: List[DocumentSummary]
    selected_document_id: Optional[str] = None

    model_config = ConfigDict(extra="forbid")


class RejectedUpload(BaseModel):
    filename: str
    reason: str

    model_config = ConfigDict(extra="forbid")


class ChunkFailureInfo(BaseModel):
    document_id: str
    chunk_index: int = Field(..., ge=0)
    cause: str

    model_config = ConfigDict(extra="forbid")


class UploadResponse(BaseModel):
    """
    Outcome of a multi-file upload. Accepted documents are indexed and
    persisted even when some of their chunks failed.
    """
    documents: List[DocumentSummary]
    rejected: List[RejectedUpload] = Field(default_factory=list)
    inserted_chunks: int = Field(..., ge=0)
    failed_chunks: List[ChunkFailureInfo] = Field(default_factory=list)

    model_config = ConfigDict(extra="forbid")


class IndexStatsResponse(BaseModel):
    available: bool
    dimension: int = Field(..., ge=1)
    total_vectors: int = Field(..., ge=0)
    total_documents: int = Field(..., ge=0)
    chunks_per_document: Dict[str, int] = Field(default_factory=dict)

    model_config = ConfigDict(extra="forbid")


# ---------------------------------------------------------------------
# Chat Models
# ---------------------------------------------------------------------

class ChatRequest(BaseModel):
    message: str = Field(..., min_length=1)
    session_id: str = Field(default=DEFAULT_SESSION_ID, min_length=1)

    model_config = ConfigDict(extra="forbid")


class ChatResponse(BaseModel):
    """
    The user's message and the assistant's reply for one turn.
    """
    messages: List[ConversationMessage]

    model_config = ConfigDict(extra="forbid")


class HistoryResponse(BaseModel):
    session_id: str
    messages: List[ConversationMessage]

    model_config = ConfigDict(extra="forbid")


# ---------------------------------------------------------------------
# Search Models
# ---------------------------------------------------------------------

class SearchRequest(BaseModel):
    query: str = Field(..., min_length=1)
    k: int = Field(default=5, ge=1, le=100)

    model_config = ConfigDict(extra="forbid")


class SearchResult(BaseModel):
    file_id: str
    file_name: str
    chunk_index: int = Field(..., ge=0)
    score: float
    text: str

    model_config = ConfigDict(extra="forbid")


# ---------------------------------------------------------------------
# Health Models
# ---------------------------------------------------------------------

class HealthResponse(BaseModel):
    status: Literal["ok"] = "ok"
    llm_status: Literal["loaded", "not-loaded", "processing"]
    rehydration: str
    knowledge_present: bool
    documents: int = Field(..., ge=0)
    error: Optional[str] = None

    model_config = ConfigDict(extra="forbid")
