"""
Chat Routes: Retrieval-Augmented Conversation

One POST runs one turn: the user's message is appended to the session
history, the current agent answers (pulling relevant chunks when documents
are indexed), and both messages are returned. Generation failures come back
as a normal assistant message carrying the fallback text.
"""

from fastapi import APIRouter, Depends, Query, status
from typing import Annotated

from .dependencies import get_workspace
from .models import ChatRequest, ChatResponse, HistoryResponse, OperationResult
from ..runtime.workspace import Workspace
from ..sessions.store import DEFAULT_SESSION_ID

router = APIRouter(prefix="/chat", tags=["chat"])


@router.post(
    "",
    response_model=ChatResponse,
    summary="Send a message to the document assistant",
    status_code=status.HTTP_200_OK,
)
async def chat(
    req: ChatRequest,
    workspace: Annotated[Workspace, Depends(get_workspace)],
) -> ChatResponse:
    """
    Raises 503 while the models are not loaded and 409 while another
    response is still being generated.
    """
    user_message, reply = await workspace.send_message(req.session_id, req.message)
    return ChatResponse(messages=[user_message, reply])


@router.get("/history", response_model=HistoryResponse)
async def get_history(
    workspace: Annotated[Workspace, Depends(get_workspace)],
    session_id: str = Query(default=DEFAULT_SESSION_ID, min_length=1),
) -> HistoryResponse:
    return HistoryResponse(
        session_id=session_id,
        messages=workspace.sessions.get_history(session_id),
    )


@router.delete("/history", response_model=OperationResult)
async def clear_history(
    workspace: Annotated[Workspace, Depends(get_workspace)],
    session_id: str = Query(default=DEFAULT_SESSION_ID, min_length=1),
) -> OperationResult:
    removed = workspace.clear_conversation(session_id)
    return OperationResult(status="cleared", count=removed)
