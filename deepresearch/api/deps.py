from __future__ import annotations

from typing import Callable

from deepresearch.agents.orchestrator import DeepResearchOrchestrator
from deepresearch.services.documents import DocumentStore
from deepresearch.services.documents import get_document_store as _get_document_store

OrchestratorFactory = Callable[[str | None], DeepResearchOrchestrator]


def build_orchestrator(model: str | None = None) -> DeepResearchOrchestrator:
    return DeepResearchOrchestrator(model=model)


def get_orchestrator_factory() -> OrchestratorFactory:
    """Dependency hook; tests override it to inject stub collaborators."""
    return build_orchestrator


def get_document_store() -> DocumentStore:
    return _get_document_store()
