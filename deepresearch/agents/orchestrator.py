from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from functools import partial
from typing import AsyncGenerator, Awaitable, Callable

from loguru import logger

from deepresearch.agents.reasoner import LLMReasoner
from deepresearch.config import settings
from deepresearch.models.events import ActivityStatus, ActivityType, SSEEvent
from deepresearch.models.schemas import FindingModel, ResearchData, ResearchOutcome, ResearchOutput
from deepresearch.research_core.analyze.service import AnalysisResult, AnalyzeService
from deepresearch.research_core.errors import EngineFailure, ProviderError
from deepresearch.research_core.models.interfaces import (
    EventSink,
    Finding,
    ReasoningGenerate,
    SearchHit,
    SearchOptions,
    TextSearchAndFetch,
)
from deepresearch.research_core.models.session import ResearchSession
from deepresearch.research_core.synthesize.service import SynthesizeService
from deepresearch.services import logger as log_service
from deepresearch.services import streaming
from deepresearch.services.event_sinks import FanoutEventSink, LoggingEventSink, QueueEventSink
from deepresearch.tools.search_provider import WebSearchTool

CREATE_DOCUMENT_GUIDANCE = (
    "You should call the createDocument tool with this research content to save it "
    "as a document. Use an appropriate title based on the topic."
)
INCLUDE_IN_RESPONSE_GUIDANCE = (
    "You should include this full research content directly in your response to the user."
)
REPORT_ERROR_GUIDANCE = (
    "Report the research error to the user and share any partial findings that were gathered."
)
NO_CONTENT = "No content extracted"
UNKNOWN_SOURCE = "Unknown source"
SOURCE_RELEVANCE_CHARS = 500

OnFinish = Callable[[ResearchOutput], Awaitable[None]]


def extract_finding(hit: SearchHit) -> Finding:
    """Prefer fetched text, then the summary, then highlights."""
    text = hit.text or hit.summary or "\n".join(hit.highlights) or NO_CONTENT
    return Finding(text=text, source=hit.url or UNKNOWN_SOURCE)


@dataclass
class _RunContext:
    session: ResearchSession
    sink: EventSink


class DeepResearchOrchestrator:
    """Iterative research loop: search, extract, analyze, decide, synthesize.

    Iterations run strictly one after another because each search topic
    comes from the previous analysis. A run owns its ResearchSession and
    never raises: every terminal path returns a ResearchOutcome.

    Flow per depth:
      1. Search the current topic (failed/empty searches retry with a gap
         or an alternative phrasing at the same depth)
      2. Turn the top results into findings
      3. Ask the reasoning model for a summary, gaps and the next topic
      4. Continue while the model (or the minimum-iteration floor) asks
         for more, a next topic exists, and depth and time budget allow
    Then a final report is synthesized from everything collected.
    """

    def __init__(
        self,
        search_tool: TextSearchAndFetch | None = None,
        reasoner: ReasoningGenerate | None = None,
        sink: EventSink | None = None,
        *,
        model: str | None = None,
        time_limit: float | None = None,
        max_failed_attempts: int | None = None,
        results_per_search: int | None = None,
        min_iterations_cap: int | None = None,
        min_iteration_time_floor: float | None = None,
        intermediate_interval: int | None = None,
        intermediate_min_findings: int | None = None,
        keyword_fallback_policy: str | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.search_tool = search_tool or WebSearchTool()
        self.reasoner = reasoner or LLMReasoner(model=model)
        self.sink = sink or LoggingEventSink()
        self.clock = clock

        self.time_limit = float(
            time_limit if time_limit is not None else settings.research_time_limit_seconds
        )
        self.max_failed_attempts = max(
            int(max_failed_attempts or settings.research_max_failed_attempts), 1
        )
        self.results_per_search = max(
            int(results_per_search or settings.research_results_per_search), 1
        )
        self.min_iterations_cap = max(
            int(min_iterations_cap or settings.research_min_iterations_cap), 1
        )
        self.intermediate_interval = max(
            int(
                intermediate_interval
                if intermediate_interval is not None
                else settings.intermediate_synthesis_interval
            ),
            0,
        )
        self.intermediate_min_findings = int(
            intermediate_min_findings
            if intermediate_min_findings is not None
            else settings.intermediate_synthesis_min_findings
        )

        self.analyzer = AnalyzeService(
            self.reasoner,
            min_iteration_time_floor=float(
                min_iteration_time_floor
                if min_iteration_time_floor is not None
                else settings.research_min_iteration_time_floor_seconds
            ),
            keyword_fallback_policy=keyword_fallback_policy or settings.keyword_fallback_policy,
        )
        self.synthesizer = SynthesizeService(self.reasoner)

    # -- event plumbing -----------------------------------------------------

    def _emit(self, ctx: _RunContext, event: SSEEvent) -> None:
        try:
            ctx.sink.emit(event)
        except Exception:
            logger.exception(f"Event sink failed on {event.event.value}")

    def _activity(
        self,
        ctx: _RunContext,
        activity_type: ActivityType,
        status: ActivityStatus,
        message: str,
    ) -> None:
        depth, completed, total = ctx.session.record_activity(status == ActivityStatus.COMPLETE)
        log_service.log_research_step(
            ctx.session.topic,
            activity_type.value,
            status.value,
            {"depth": depth, "message": message[:200]},
        )
        self._emit(
            ctx,
            streaming.activity(
                activity_type,
                status,
                message,
                depth=depth,
                completed_steps=completed,
                total_steps=total,
            ),
        )

    # -- phases -------------------------------------------------------------

    async def _run_iteration(
        self, ctx: _RunContext, topic: str, depth: int
    ) -> AnalysisResult | None:
        """One search/extract/analyze pass. Returns None when the search failed."""
        session = ctx.session
        session.enter_depth(depth)

        self._activity(
            ctx,
            ActivityType.SEARCH,
            ActivityStatus.PENDING,
            f'Searching for "{topic}" (Depth: {depth}/{session.max_depth})',
        )
        try:
            result = await self.search_tool.search(
                topic,
                SearchOptions(num_results=self.results_per_search, fetch_text=True),
            )
        except ProviderError as exc:
            logger.warning(f"Search failed for '{topic[:80]}': {exc}")
            self._activity(
                ctx, ActivityType.SEARCH, ActivityStatus.ERROR, f'Search failed for "{topic}": {exc}'
            )
            return None

        if result.is_empty:
            self._activity(
                ctx, ActivityType.SEARCH, ActivityStatus.ERROR, f'No results found for "{topic}"'
            )
            return None

        self._activity(
            ctx,
            ActivityType.SEARCH,
            ActivityStatus.COMPLETE,
            f'Found {len(result.hits)} relevant results for "{topic}"',
        )
        for hit in result.hits:
            relevance = hit.summary or hit.text[:SOURCE_RELEVANCE_CHARS] or "No description available"
            self._emit(ctx, streaming.source(hit.url, hit.title or hit.url, relevance))

        top_hits = result.hits[: self.results_per_search]
        self._activity(
            ctx,
            ActivityType.EXTRACT,
            ActivityStatus.PENDING,
            f"Analyzing top {len(top_hits)} results",
        )
        findings = [extract_finding(hit) for hit in top_hits]
        session.add_findings(findings)
        self._activity(
            ctx,
            ActivityType.EXTRACT,
            ActivityStatus.COMPLETE,
            f"Extracted content from {len(findings)} sources",
        )

        self._activity(
            ctx,
            ActivityType.ANALYZE,
            ActivityStatus.PENDING,
            "Analyzing findings to determine next research direction",
        )
        analysis = await self.analyzer.analyze(
            session,
            session.findings,
            topic,
            partial(self._activity, ctx),
        )
        self._activity(
            ctx,
            ActivityType.ANALYZE,
            ActivityStatus.COMPLETE,
            f'Next research direction: "{analysis.next_search_topic}"'
            if analysis.next_search_topic
            else "Research path complete",
        )

        if analysis.gaps:
            session.add_gaps(analysis.gaps)
        if analysis.summary:
            session.summaries.append(analysis.summary)
        return analysis

    def _intermediate_due(self, session: ResearchSession, depth: int) -> bool:
        if self.intermediate_interval <= 0:
            return False
        return depth % self.intermediate_interval == 0 and len(session.findings) > self.intermediate_min_findings

    async def _intermediate_synthesis(self, ctx: _RunContext, depth: int) -> None:
        self._activity(
            ctx, ActivityType.SYNTHESIS, ActivityStatus.PENDING, "Creating intermediate research summary"
        )
        try:
            entry = await self.synthesizer.intermediate(ctx.session, depth)
        except Exception as exc:
            logger.error(f"Intermediate synthesis failed at depth {depth}: {exc}")
            self._activity(
                ctx, ActivityType.SYNTHESIS, ActivityStatus.ERROR, "Failed to create intermediate summary"
            )
            return

        if entry is None:
            self._activity(
                ctx, ActivityType.SYNTHESIS, ActivityStatus.ERROR, "Intermediate summary was empty"
            )
            return
        self._activity(
            ctx, ActivityType.SYNTHESIS, ActivityStatus.COMPLETE, "Created intermediate research summary"
        )

    @staticmethod
    def _should_advance(session: ResearchSession, analysis: AnalysisResult) -> bool:
        # The minimum-iteration floor never overrides max_depth or the time budget.
        if session.budget_exhausted():
            return False
        wants_more = analysis.should_continue or session.current_depth < session.minimum_iterations
        return (
            wants_more
            and bool(analysis.next_search_topic)
            and session.current_depth < session.max_depth
        )

    @staticmethod
    def _stop_reason(
        session: ResearchSession, analysis: AnalysisResult
    ) -> tuple[ActivityType, ActivityStatus, str]:
        if session.budget_exhausted():
            return ActivityType.THOUGHT, ActivityStatus.ERROR, "Research terminated due to time limit"
        if analysis.should_continue and session.current_depth >= session.max_depth:
            return ActivityType.THOUGHT, ActivityStatus.COMPLETE, "Maximum depth reached"
        if analysis.should_continue:
            return (
                ActivityType.THOUGHT,
                ActivityStatus.COMPLETE,
                "No further research direction identified",
            )
        return ActivityType.THOUGHT, ActivityStatus.COMPLETE, "Research complete based on analysis"

    async def _iterate(self, ctx: _RunContext) -> int:
        session = ctx.session
        current_topic = session.topic
        depth = 1

        while depth <= session.max_depth:
            if session.budget_exhausted():
                self._activity(
                    ctx, ActivityType.THOUGHT, ActivityStatus.ERROR, "Research terminated due to time limit"
                )
                break

            analysis = await self._run_iteration(ctx, current_topic, depth)

            if analysis is None:
                if session.record_failed_attempt():
                    self._activity(
                        ctx,
                        ActivityType.THOUGHT,
                        ActivityStatus.ERROR,
                        f"Stopping research after {session.failed_attempts} failed search attempts",
                    )
                    break
                current_topic = session.next_gap() or f"alternative perspective on {session.topic}"
                continue

            if self._intermediate_due(session, depth):
                await self._intermediate_synthesis(ctx, depth)

            if self._should_advance(session, analysis):
                current_topic = analysis.next_search_topic or current_topic
                depth += 1
                if depth <= session.minimum_iterations:
                    self._activity(
                        ctx,
                        ActivityType.THOUGHT,
                        ActivityStatus.COMPLETE,
                        f"Continuing to iteration {depth}/{session.minimum_iterations} (minimum required)",
                    )
                continue

            self._activity(ctx, *self._stop_reason(session, analysis))
            break

        return session.current_depth

    async def _finalize(
        self,
        ctx: _RunContext,
        iterations: int,
        create_artifact: bool,
        on_finish: OnFinish | None,
    ) -> ResearchOutcome:
        session = ctx.session
        self._activity(ctx, ActivityType.SYNTHESIS, ActivityStatus.PENDING, "Preparing final analysis")
        report, used_fallback = await self.synthesizer.final(session, iterations)
        if used_fallback:
            log_service.log_event(
                event_type="synthesis_fallback",
                message="Final report assembled without the reasoning model",
                topic=session.topic[:100],
                findings=len(session.findings),
            )
        self._activity(ctx, ActivityType.SYNTHESIS, ActivityStatus.COMPLETE, "Research completed")

        output = ResearchOutput(text=report, create_artifact=create_artifact, topic=session.topic)
        if on_finish is not None:
            await on_finish(output)
        self._emit(
            ctx,
            streaming.finish(output.text, create_artifact=create_artifact, topic=session.topic),
        )

        return ResearchOutcome(
            success=True,
            data=ResearchData(
                findings=[FindingModel(**f.to_dict()) for f in session.findings],
                analysis=report,
                completed_steps=session.completed_steps,
                total_steps=session.total_expected_steps,
                create_artifact=create_artifact,
                topic=session.topic,
                next_steps=CREATE_DOCUMENT_GUIDANCE if create_artifact else INCLUDE_IN_RESPONSE_GUIDANCE,
            ),
        )

    # -- entry points -------------------------------------------------------

    async def run(
        self,
        topic: str,
        max_depth: int | None = None,
        create_artifact: bool = False,
        *,
        on_finish: OnFinish | None = None,
        sink: EventSink | None = None,
    ) -> ResearchOutcome:
        session = ResearchSession(
            topic=topic,
            max_depth=max(int(max_depth or settings.research_default_max_depth), 1),
            time_limit=self.time_limit,
            min_iterations_cap=self.min_iterations_cap,
            max_failed_attempts=self.max_failed_attempts,
            clock=self.clock,
        )
        ctx = _RunContext(session=session, sink=sink or self.sink)
        logger.info(f"Starting deep research on '{topic[:100]}' (max depth {session.max_depth})")

        try:
            if not topic.strip():
                raise ValueError("Research topic must not be empty")
            self._emit(ctx, streaming.progress_init(session.max_depth, session.total_expected_steps))
            iterations = await self._iterate(ctx)
            outcome = await self._finalize(ctx, iterations, create_artifact, on_finish)
            logger.info(
                f"Research complete: depth {session.current_depth}, "
                f"{len(session.findings)} findings, {session.completed_steps} steps, "
                f"{session.elapsed():.1f}s"
            )
            return outcome
        except Exception as exc:
            failure = EngineFailure(str(exc) or type(exc).__name__)
            logger.exception(f"Deep research failed: {failure}")
            message = str(failure)
            self._activity(ctx, ActivityType.THOUGHT, ActivityStatus.ERROR, f"Research failed: {message}")
            return ResearchOutcome(
                success=False,
                error=message,
                data=ResearchData(
                    findings=[FindingModel(**f.to_dict()) for f in session.findings],
                    completed_steps=session.completed_steps,
                    total_steps=session.total_expected_steps,
                    create_artifact=create_artifact,
                    topic=topic,
                    next_steps=REPORT_ERROR_GUIDANCE,
                ),
            )

    async def stream(
        self,
        topic: str,
        max_depth: int | None = None,
        create_artifact: bool = False,
        *,
        on_finish: OnFinish | None = None,
    ) -> AsyncGenerator[SSEEvent, None]:
        """Yield every event of a run as it happens, then a ``result`` event."""
        queue_sink = QueueEventSink()
        sink = FanoutEventSink([queue_sink, self.sink])

        async def produce() -> None:
            try:
                outcome = await self.run(
                    topic, max_depth, create_artifact, on_finish=on_finish, sink=sink
                )
                queue_sink.emit(streaming.result(outcome.to_wire()))
            finally:
                queue_sink.close()

        task = asyncio.create_task(produce())
        try:
            while True:
                event = await queue_sink.queue.get()
                if event is None:
                    break
                yield event
            await task
        finally:
            if not task.done():
                task.cancel()
