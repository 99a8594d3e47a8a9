from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sse_starlette.sse import EventSourceResponse

from deepresearch.api.deps import OrchestratorFactory, get_document_store, get_orchestrator_factory
from deepresearch.models.schemas import (
    DocumentResponse,
    ResearchOutput,
    ResearchRequest,
    ResearchRunResponse,
)
from deepresearch.services import logger as log_service
from deepresearch.services import streaming
from deepresearch.services.documents import DocumentStore, research_document_title

router = APIRouter(prefix="/api", tags=["research"])


def _artifact_writer(store: DocumentStore, created: list[str]):
    async def on_finish(output: ResearchOutput) -> None:
        if not output.create_artifact:
            return
        document = await store.create_document(
            title=research_document_title(output.topic),
            content=output.text,
        )
        created.append(document.id)
        log_service.log_event(
            event_type="document_created",
            message="Research report saved as document",
            document_id=document.id,
            topic=output.topic[:100],
        )

    return on_finish


@router.post("/research")
async def stream_research(
    request: ResearchRequest,
    factory: OrchestratorFactory = Depends(get_orchestrator_factory),
    store: DocumentStore = Depends(get_document_store),
):
    """SSE endpoint that streams research progress events, ending with ``result``."""
    orchestrator = factory(request.model)
    created: list[str] = []

    async def event_generator():
        log_service.log_event(
            event_type="research_started",
            message="Research started",
            topic=request.topic[:100],
            max_depth=request.max_depth,
        )
        try:
            async for event in orchestrator.stream(
                request.topic,
                request.max_depth,
                request.create_artifact,
                on_finish=_artifact_writer(store, created),
            ):
                yield event.to_sse()
        except Exception as e:
            log_service.log_event(
                event_type="stream_error",
                message="Unhandled error in research stream",
                topic=request.topic[:100],
                error=str(e),
            )
            yield streaming.error(str(e) or type(e).__name__).to_sse()

    return EventSourceResponse(event_generator())


@router.post("/research/run", response_model=ResearchRunResponse, response_model_exclude_none=True)
async def run_research(
    request: ResearchRequest,
    factory: OrchestratorFactory = Depends(get_orchestrator_factory),
    store: DocumentStore = Depends(get_document_store),
):
    """Run research to completion and return the outcome as JSON."""
    orchestrator = factory(request.model)
    created: list[str] = []
    outcome = await orchestrator.run(
        request.topic,
        request.max_depth,
        request.create_artifact,
        on_finish=_artifact_writer(store, created),
    )
    return ResearchRunResponse(
        **outcome.model_dump(),
        document_id=created[0] if created else None,
    )


@router.get("/documents/{document_id}", response_model=DocumentResponse)
async def get_document(
    document_id: str,
    store: DocumentStore = Depends(get_document_store),
):
    document = await store.get_document(document_id)
    if document is None:
        raise HTTPException(status_code=404, detail="Document not found")
    return DocumentResponse(**document.model_dump())
