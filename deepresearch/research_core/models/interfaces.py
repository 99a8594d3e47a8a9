from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from deepresearch.models.events import SSEEvent


@dataclass(slots=True)
class SearchOptions:
    num_results: int = 5
    fetch_text: bool = True


@dataclass(slots=True)
class SearchHit:
    url: str
    title: str = ""
    text: str = ""  # fetched page body, empty when the provider has none
    summary: str = ""
    highlights: list[str] = field(default_factory=list)
    score: float = 0.0


@dataclass(slots=True)
class SearchResult:
    hits: list[SearchHit] = field(default_factory=list)
    provider: str = "unknown"

    @property
    def is_empty(self) -> bool:
        return not self.hits


@dataclass(slots=True)
class Finding:
    text: str
    source: str

    def to_dict(self) -> dict[str, str]:
        return {"text": self.text, "source": self.source}


class TextSearchAndFetch(Protocol):
    async def search(self, topic: str, options: SearchOptions) -> SearchResult: ...


class ReasoningGenerate(Protocol):
    async def generate(self, prompt: str) -> str: ...


class EventSink(Protocol):
    def emit(self, event: SSEEvent) -> None: ...
