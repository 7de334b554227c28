"""
Document Data Models

A Document is the unit the user uploads and the only state that survives a
restart. Everything stored in the vector index is derived from it.
"""

from __future__ import annotations

from pydantic import BaseModel, Field, ConfigDict


class Document(BaseModel):
    """
    A user-provided text document.
    """

    id: str = Field(
        ...,
        min_length=1,
        description="Opaque unique identifier, e.g. 'file-1700000000000-k3j9x0a1b'.",
    )

    name: str = Field(
        ...,
        min_length=1,
        description="Original file name as uploaded.",
    )

    content: str = Field(
        ...,
        description="Full raw text of the document.",
    )

    size: int = Field(
        ...,
        ge=0,
        description="Size of the uploaded file in bytes.",
    )

    model_config = ConfigDict(
        extra="forbid",
        frozen=True,
    )
