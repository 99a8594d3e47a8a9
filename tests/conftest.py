from __future__ import annotations

import json
from typing import Callable

import pytest

from deepresearch.research_core.errors import ProviderError
from deepresearch.research_core.models.interfaces import SearchHit, SearchOptions, SearchResult
from deepresearch.services.event_sinks import ListEventSink

ANALYSIS_MARKER = "You are a research agent"
FINAL_MARKER = "Create a comprehensive research report"
INTERMEDIATE_MARKER = "Create an organized summary"


def analysis_json(
    summary: str = "s",
    *,
    themes: list[str] | None = None,
    gaps: list[str] | None = None,
    should_continue: bool = False,
    next_search_topic: str | None = None,
) -> str:
    body: dict = {
        "summary": summary,
        "themes": themes or [],
        "gaps": gaps or [],
        "nextSteps": [],
        "shouldContinue": should_continue,
    }
    if next_search_topic is not None:
        body["nextSearchTopic"] = next_search_topic
    return json.dumps({"analysis": body})


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class StubSearch:
    """Returns canned hits; ``results`` may be a list per call or one list for every call."""

    def __init__(
        self,
        hits: list[SearchHit] | None = None,
        *,
        per_call: list[list[SearchHit] | Exception] | None = None,
        on_call: Callable[[str], None] | None = None,
    ):
        self.hits = hits or []
        self.per_call = list(per_call) if per_call is not None else None
        self.on_call = on_call
        self.calls: list[tuple[str, SearchOptions]] = []

    async def search(self, topic: str, options: SearchOptions) -> SearchResult:
        self.calls.append((topic, options))
        if self.on_call is not None:
            self.on_call(topic)
        if self.per_call is not None:
            outcome = self.per_call.pop(0) if self.per_call else []
            if isinstance(outcome, Exception):
                raise outcome
            return SearchResult(hits=list(outcome), provider="stub")
        return SearchResult(hits=list(self.hits), provider="stub")

    @property
    def topics(self) -> list[str]:
        return [topic for topic, _ in self.calls]


class StubReasoner:
    """Answers analysis, intermediate and final prompts separately."""

    def __init__(
        self,
        analysis: str | Exception | Callable[[str], str] = "",
        *,
        final: str | Exception = "# Report\n\nFinal synthesized report.",
        intermediate: str | Exception = "Intermediate themes.",
    ):
        self.analysis = analysis
        self.final = final
        self.intermediate = intermediate
        self.prompts: list[str] = []

    async def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if prompt.startswith(FINAL_MARKER):
            response = self.final
        elif prompt.startswith(INTERMEDIATE_MARKER):
            response = self.intermediate
        else:
            response = self.analysis(prompt) if callable(self.analysis) else self.analysis
        if isinstance(response, Exception):
            raise response
        return response

    def prompts_of(self, marker: str) -> list[str]:
        return [p for p in self.prompts if p.startswith(marker)]


def make_hit(n: int = 1, text: str | None = None) -> SearchHit:
    return SearchHit(
        url=f"https://example.com/article-{n}",
        title=f"Article {n}",
        text=text if text is not None else f"Battery chemistry article {n} about lithium cells.",
        summary=f"Summary {n}",
    )


@pytest.fixture
def sink() -> ListEventSink:
    return ListEventSink()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def provider_error() -> ProviderError:
    return ProviderError("quota exceeded", provider="stub")
