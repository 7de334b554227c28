"""
Search Routes

Direct semantic search over the indexed document chunks, using the same
Knowledge binding the agent retrieves through.
"""

from fastapi import APIRouter, Depends, status
from typing import List, Annotated

from .dependencies import get_workspace
from .models import SearchRequest, SearchResult
from ..runtime.workspace import Workspace

router = APIRouter(prefix="/search", tags=["search"])


@router.post(
    "",
    response_model=List[SearchResult],
    summary="Vector-based semantic search",
    status_code=status.HTTP_200_OK,
)
async def search(
    req: SearchRequest,
    workspace: Annotated[Workspace, Depends(get_workspace)],
) -> List[SearchResult]:
    """
    Return the `k` chunks nearest to the query, best first. Empty when no
    documents are indexed yet.
    """
    # Embedding/index failures fall through to the global exception handler.
    hits = await workspace.search(req.query, req.k)

    return [
        SearchResult(
            file_id=hit.chunk.file_id,
            file_name=hit.chunk.file_name,
            chunk_index=hit.chunk.chunk_index,
            score=hit.score,
            text=hit.chunk.text,
        )
        for hit in hits
    ]
