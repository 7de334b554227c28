"""
Documents Package

Document records, their JSON-file store, upload intake and the built-in
sample document.
"""

from .models import Document
from .store import DocumentStore, DocumentStoreError, DocumentNotFoundError
from .uploads import (
    UploadedFile,
    RejectedFile,
    UnsupportedFileTypeError,
    FileReadError,
    read_uploaded_files,
)
from .sample import build_sample_document

__all__ = [
    "Document",
    "DocumentStore",
    "DocumentStoreError",
    "DocumentNotFoundError",
    "UploadedFile",
    "RejectedFile",
    "UnsupportedFileTypeError",
    "FileReadError",
    "read_uploaded_files",
    "build_sample_document",
]
