"""
Upload Intake

Turns raw uploaded files into Document records. Each file is judged on its
own; a rejected file never affects the other files of the same batch.
"""

from __future__ import annotations

import secrets
import string
import time
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from .models import Document


TEXT_FILE_SUFFIXES = (".txt", ".md")

_ID_ALPHABET = string.digits + string.ascii_lowercase


# ---------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------

class UnsupportedFileTypeError(ValueError):
    """Raised when an uploaded file is not a text file."""


class FileReadError(ValueError):
    """Raised when an uploaded file cannot be decoded as text."""


# ---------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------

@dataclass(frozen=True)
class UploadedFile:
    """Raw file as received from the client."""

    filename: str
    content_type: Optional[str]
    data: bytes


@dataclass(frozen=True)
class RejectedFile:
    filename: str
    reason: str


# ---------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------

def is_text_file(filename: str, content_type: Optional[str]) -> bool:
    if content_type and "text" in content_type:
        return True
    return filename.endswith(TEXT_FILE_SUFFIXES)


def generate_document_id() -> str:
    """
    Return a new id of the form ``file-<epoch ms>-<9 base36 chars>``.
    """
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(9))
    return f"file-{int(time.time() * 1000)}-{suffix}"


def read_uploaded_file(upload: UploadedFile) -> Document:
    """
    Validate and decode one uploaded file.

    Raises
    ------
    UnsupportedFileTypeError
        If the file is neither a text content type nor a .txt/.md file.
    FileReadError
        If the bytes are not valid UTF-8.
    """
    if not is_text_file(upload.filename, upload.content_type):
        raise UnsupportedFileTypeError(
            f"{upload.filename} is not a text file. Only text files are supported."
        )

    try:
        content = upload.data.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise FileReadError(f"Failed to read {upload.filename}") from exc

    return Document(
        id=generate_document_id(),
        name=upload.filename,
        content=content,
        size=len(upload.data),
    )


def read_uploaded_files(
    uploads: Sequence[UploadedFile],
) -> Tuple[List[Document], List[RejectedFile]]:
    """
    Read a batch of uploads, splitting them into accepted documents and
    rejected files (in input order).
    """
    accepted: List[Document] = []
    rejected: List[RejectedFile] = []

    for upload in uploads:
        try:
            accepted.append(read_uploaded_file(upload))
        except (UnsupportedFileTypeError, FileReadError) as exc:
            rejected.append(RejectedFile(filename=upload.filename, reason=str(exc)))

    return accepted, rejected
