"""
Document Routes

Endpoints for managing the uploaded document set:
- Listing, viewing and selecting documents
- Multi-file upload (indexed for retrieval before the response returns)
- Deletion (removes the document and its vectors)
- Index statistics
"""

from fastapi import APIRouter, Depends, File, UploadFile, status
from typing import List, Annotated

from .dependencies import get_workspace
from .models import (
    ChunkFailureInfo,
    DocumentDetail,
    DocumentListResponse,
    DocumentSummary,
    IndexStatsResponse,
    OperationResult,
    RejectedUpload,
    UploadResponse,
)
from ..documents.models import Document
from ..documents.uploads import UploadedFile
from ..runtime.workspace import Workspace

router = APIRouter(prefix="/documents", tags=["documents"])


def _summary(doc: Document) -> DocumentSummary:
    return DocumentSummary(id=doc.id, name=doc.name, size=doc.size)


@router.get("", response_model=DocumentListResponse)
async def list_documents(
    workspace: Annotated[Workspace, Depends(get_workspace)],
) -> DocumentListResponse:
    return DocumentListResponse(
        documents=[_summary(doc) for doc in workspace.list_documents()],
        selected_document_id=workspace.selected_document_id,
    )


@router.post(
    "",
    response_model=UploadResponse,
    summary="Upload and index text files",
    status_code=status.HTTP_200_OK,
)
async def upload_documents(
    workspace: Annotated[Workspace, Depends(get_workspace)],
    files: List[UploadFile] = File(...),
) -> UploadResponse:
    """
    Upload one or more text files.

    Non-text or unreadable files are reported under `rejected`; the rest of
    the batch is still indexed and stored.
    """
    uploads = [
        UploadedFile(
            filename=f.filename or "untitled",
            content_type=f.content_type,
            data=await f.read(),
        )
        for f in files
    ]

    report = await workspace.upload(uploads)

    return UploadResponse(
        documents=[_summary(doc) for doc in report.documents],
        rejected=[RejectedUpload(filename=r.filename, reason=r.reason) for r in report.rejected],
        inserted_chunks=report.inserted_chunks,
        failed_chunks=[
            ChunkFailureInfo(
                document_id=f.document_id,
                chunk_index=f.chunk_index,
                cause=f.cause,
            )
            for f in report.failures
        ],
    )


@router.get("/index/stats", response_model=IndexStatsResponse)
async def index_stats(
    workspace: Annotated[Workspace, Depends(get_workspace)],
) -> IndexStatsResponse:
    return IndexStatsResponse(**workspace.index_stats())


@router.get("/{document_id}", response_model=DocumentDetail)
async def get_document(
    document_id: str,
    workspace: Annotated[Workspace, Depends(get_workspace)],
) -> DocumentDetail:
    doc = workspace.get_document(document_id)
    return DocumentDetail(id=doc.id, name=doc.name, size=doc.size, content=doc.content)


@router.post("/{document_id}/select", response_model=OperationResult)
async def select_document(
    document_id: str,
    workspace: Annotated[Workspace, Depends(get_workspace)],
) -> OperationResult:
    workspace.select_document(document_id)
    return OperationResult(status="selected")


@router.delete("/{document_id}", response_model=OperationResult)
async def delete_document(
    document_id: str,
    workspace: Annotated[Workspace, Depends(get_workspace)],
) -> OperationResult:
    _, removed_records = await workspace.delete_document(document_id)
    return OperationResult(status="deleted", count=removed_records)
