from __future__ import annotations

from datetime import datetime, timezone
from typing import Protocol
from uuid import uuid4

from pydantic import BaseModel


class Document(BaseModel):
    id: str
    title: str
    kind: str = "text"
    content: str
    created_at: datetime


class DocumentStore(Protocol):
    async def create_document(self, *, title: str, content: str, kind: str = "text") -> Document: ...
    async def get_document(self, document_id: str) -> Document | None: ...


class InMemoryDocumentStore:
    """Process-local artifact store for research reports."""

    def __init__(self) -> None:
        self._documents: dict[str, Document] = {}

    async def create_document(self, *, title: str, content: str, kind: str = "text") -> Document:
        document = Document(
            id=str(uuid4()),
            title=title.strip()[:200] or "Untitled research",
            kind=kind,
            content=content,
            created_at=datetime.now(timezone.utc),
        )
        self._documents[document.id] = document
        return document

    async def get_document(self, document_id: str) -> Document | None:
        return self._documents.get(document_id)


def research_document_title(topic: str) -> str:
    return f"Research Report: {' '.join(topic.split())}"


_store: DocumentStore | None = None


def get_document_store() -> DocumentStore:
    global _store
    if _store is None:
        _store = InMemoryDocumentStore()
    return _store
