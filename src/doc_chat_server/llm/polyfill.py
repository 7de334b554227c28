"""
Document Polyfills

Chat models differ in how they expect retrieved documents to be presented.
A polyfill renders retrieved chunks into a system message in the layout a
given model family was trained on. The polyfill is passed per request inside
an InferenceConfig; a request without one gets no retrieval.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from ..embeddings.index import IndexedChunk

logger = logging.getLogger("docchat.llm")


@dataclass(frozen=True)
class DocumentPolyfill:
    system_message_template: str  # must contain {documents}
    document_template: str  # may use {index}, {title}, {text}

    def render_documents(self, documents: Sequence[IndexedChunk]) -> str:
        return "\n".join(
            self.document_template.format(index=i, title=doc.file_name, text=doc.text)
            for i, doc in enumerate(documents)
        )

    def apply(
        self,
        messages: List[Dict[str, Any]],
        documents: Sequence[IndexedChunk],
    ) -> List[Dict[str, Any]]:
        """
        Return a copy of `messages` with the documents rendered into the
        system message (merged into an existing leading one, else prepended).
        """
        if not documents:
            return list(messages)

        block = self.system_message_template.format(
            documents=self.render_documents(documents)
        )

        if messages and messages[0].get("role") == "system":
            merged = {**messages[0], "content": f"{messages[0]['content']}\n\n{block}"}
            return [merged] + list(messages[1:])

        return [{"role": "system", "content": block}] + list(messages)


@dataclass(frozen=True)
class InferenceConfig:
    """Per-request generation options handed to Agent.run."""

    document_polyfill: Optional[DocumentPolyfill] = None


QWEN3_POLYFILL = DocumentPolyfill(
    system_message_template=(
        "# Knowledge\n"
        "The following documents were retrieved for the user's question. "
        "Use them when they are relevant and say so when they do not contain "
        "the answer.\n"
        "<documents>\n{documents}\n</documents>"
    ),
    document_template='<document id="{index}" title="{title}">\n{text}\n</document>',
)

GENERIC_POLYFILL = DocumentPolyfill(
    system_message_template=(
        "Answer using the reference documents below when they are relevant.\n\n"
        "{documents}"
    ),
    document_template="[{index}] {title}\n{text}\n",
)

DOCUMENT_POLYFILLS: Dict[str, DocumentPolyfill] = {
    "qwen3": QWEN3_POLYFILL,
    "generic": GENERIC_POLYFILL,
}


def get_document_polyfill(model_family: str) -> DocumentPolyfill:
    """
    Look up the polyfill for a model family (case-insensitive).

    Unknown families fall back to the generic layout.
    """
    polyfill = DOCUMENT_POLYFILLS.get(model_family.lower())
    if polyfill is None:
        logger.warning(
            "No document polyfill for model family %r, using generic layout",
            model_family,
        )
        return GENERIC_POLYFILL
    return polyfill
