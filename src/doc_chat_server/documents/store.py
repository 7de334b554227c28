"""
Document Store

Durable storage for the uploaded document list.

The store keeps the ordered list of Document records in memory and writes it
through to a single JSON file on every add/delete. Load order is preserved, so
rehydration replays documents in the order they were uploaded.

Design choices
--------------
- One JSON file per deployment (no database).
- Write-through on every mutation; writes go to a temp file that is then
  renamed over the target.
- Thread-safe access using a re-entrant lock.
- Copy-on-read semantics (callers cannot mutate internal state).
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from threading import RLock
from typing import List, Optional, Sequence

from pydantic import ValidationError

from .models import Document
from ..config import settings

logger = logging.getLogger("docchat.documents")


# ---------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------

class DocumentStoreError(RuntimeError):
    """Raised when the document list cannot be persisted."""


class DocumentNotFoundError(KeyError):
    """Raised when a document id is not present in the store."""


# ---------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------

class DocumentStore:
    """
    JSON-file-backed, ordered collection of Documents.
    """

    def __init__(self, path: Optional[str] = None) -> None:
        """
        Parameters
        ----------
        path : Optional[str]
            File used for persistence. Defaults to
            settings.data_root_path / settings.documents_file.
        """
        self._path = Path(path) if path else Path(settings.data_root_path) / settings.documents_file
        self._documents: List[Document] = []
        self._lock = RLock()

    @property
    def path(self) -> Path:
        return self._path

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def load(self) -> List[Document]:
        """
        Load the persisted document list, replacing the in-memory copy.

        A missing file means no documents. An unreadable or corrupt file is
        logged and treated as empty, so a damaged store never blocks startup.
        """
        with self._lock:
            if not self._path.exists():
                self._documents = []
                return []

            try:
                with self._path.open("r", encoding="utf-8") as f:
                    raw = json.load(f)
                if not isinstance(raw, list):
                    raise ValueError("document list must be a JSON array")
                self._documents = [Document(**item) for item in raw]
            except (OSError, ValueError, TypeError, ValidationError) as exc:
                logger.error(
                    "Failed to load documents from %s: %s", self._path, exc
                )
                self._documents = []

            return list(self._documents)

    def _save(self) -> None:
        payload = [doc.model_dump() for doc in self._documents]
        tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")

        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with tmp_path.open("w", encoding="utf-8") as f:
                json.dump(payload, f, ensure_ascii=False)
            tmp_path.replace(self._path)
        except OSError as exc:
            raise DocumentStoreError(
                f"Failed to write document list: {type(exc).__name__}"
            ) from exc

    # ------------------------------------------------------------------
    # Core operations
    # ------------------------------------------------------------------

    def list_documents(self) -> List[Document]:
        """Return the documents in persisted order."""
        with self._lock:
            return list(self._documents)

    def get(self, document_id: str) -> Document:
        with self._lock:
            for doc in self._documents:
                if doc.id == document_id:
                    return doc
        raise DocumentNotFoundError(document_id)

    def add(self, documents: Sequence[Document]) -> None:
        """
        Append documents and persist the full list.

        Raises
        ------
        DocumentStoreError
            If the list cannot be written. The in-memory list is rolled back.
        """
        if not documents:
            return

        with self._lock:
            previous = list(self._documents)
            self._documents.extend(documents)
            try:
                self._save()
            except DocumentStoreError:
                self._documents = previous
                raise

    def delete(self, document_id: str) -> Document:
        """
        Remove a document and persist the remaining list.

        Returns the removed document.

        Raises
        ------
        DocumentNotFoundError
            If no document has this id.
        DocumentStoreError
            If the list cannot be written. The in-memory list is rolled back.
        """
        with self._lock:
            removed = self.get(document_id)
            previous = list(self._documents)
            self._documents = [d for d in self._documents if d.id != document_id]
            try:
                self._save()
            except DocumentStoreError:
                self._documents = previous
                raise
            return removed

    # ------------------------------------------------------------------
    # Utility operations
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        with self._lock:
            return len(self._documents)

    def __contains__(self, document_id: object) -> bool:
        with self._lock:
            return any(doc.id == document_id for doc in self._documents)
