"""
Paragraph Chunker

Splits document text into chunks on blank-line boundaries, greedily packing
paragraphs up to a character budget. A paragraph longer than the budget is
kept whole as an oversized chunk; it is never split mid-paragraph.
"""

from __future__ import annotations

from typing import List

from .models import Chunk
from ..documents.models import Document


DEFAULT_CHUNK_SIZE = 500
PARAGRAPH_SEPARATOR = "\n\n"


def chunk_text(text: str, chunk_size: int = DEFAULT_CHUNK_SIZE) -> List[str]:
    """
    Split text into paragraph-aligned chunks of roughly `chunk_size` characters.

    The size check compares the buffer and the next paragraph lengths only
    (the separator is not counted), so re-chunking an emitted chunk with the
    same size yields that chunk again.

    Parameters
    ----------
    text : str
        Raw document text.
    chunk_size : int
        Target chunk size in characters (not tokens).

    Returns
    -------
    List[str]
        Non-empty, stripped chunks in document order.
    """
    chunks: List[str] = []
    current = ""

    for paragraph in text.split(PARAGRAPH_SEPARATOR):
        if len(current) + len(paragraph) > chunk_size and len(current) > 0:
            chunks.append(current.strip())
            current = paragraph
        else:
            current += (PARAGRAPH_SEPARATOR if current else "") + paragraph

    if current:
        chunks.append(current.strip())

    return [chunk for chunk in chunks if chunk]


def build_chunks(document: Document, chunk_size: int = DEFAULT_CHUNK_SIZE) -> List[Chunk]:
    """Chunk a document and attach contiguous 0-based ordinals."""
    return [
        Chunk(document_id=document.id, index=i, text=text)
        for i, text in enumerate(chunk_text(document.content, chunk_size))
    ]
