from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


# --- Requests ---


class ResearchRequest(CamelModel):
    topic: str = Field(min_length=1)
    max_depth: int = Field(default=7, ge=1, le=20)
    create_artifact: bool = False
    model: str | None = None


# --- Research results ---


class FindingModel(BaseModel):
    text: str
    source: str


class ResearchOutput(CamelModel):
    """Payload of the terminal ``finish`` event and of the on_finish callback."""

    text: str
    format: str = "markdown"
    create_artifact: bool
    topic: str


class ResearchData(CamelModel):
    findings: list[FindingModel] = Field(default_factory=list)
    analysis: str | None = None
    completed_steps: int
    total_steps: int
    create_artifact: bool
    topic: str
    next_steps: str


class ResearchOutcome(CamelModel):
    success: bool
    error: str | None = None
    data: ResearchData


class ResearchRunResponse(ResearchOutcome):
    document_id: str | None = None


class DocumentResponse(CamelModel):
    id: str
    title: str
    kind: str
    content: str
    created_at: datetime
