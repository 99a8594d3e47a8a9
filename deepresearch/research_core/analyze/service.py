from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable

from loguru import logger

from deepresearch.models.events import ActivityStatus, ActivityType
from deepresearch.research_core.analyze.parsing import extract_keywords, parse_analysis
from deepresearch.research_core.errors import ParseError
from deepresearch.research_core.models.interfaces import Finding, ReasoningGenerate
from deepresearch.research_core.models.session import ResearchSession
from deepresearch.services.prompt_store import render_prompt

ActivityReporter = Callable[[ActivityType, ActivityStatus, str], None]

RECENT_FINDINGS = 5
FINDING_PROMPT_CHARS = 3000
KEYWORD_FALLBACK_POLICIES = ("off_root", "always", "never")


@dataclass
class AnalysisResult:
    summary: str
    gaps: list[str] = field(default_factory=list)
    next_steps: list[str] = field(default_factory=list)
    should_continue: bool = False
    next_search_topic: str | None = None
    url_to_search: str | None = None
    themes: list[str] = field(default_factory=list)
    origin: str = "model"  # model | keyword_fallback | failed


class AnalyzeService:
    """Summarize findings and choose the next search direction."""

    def __init__(
        self,
        reasoner: ReasoningGenerate,
        *,
        min_iteration_time_floor: float = 60.0,
        keyword_fallback_policy: str = "off_root",
    ):
        policy = keyword_fallback_policy.lower().strip()
        if policy not in KEYWORD_FALLBACK_POLICIES:
            raise ValueError(f"Unsupported keyword fallback policy: {keyword_fallback_policy}")
        self.reasoner = reasoner
        self.min_iteration_time_floor = min_iteration_time_floor
        self.keyword_fallback_policy = policy

    def build_prompt(self, session: ResearchSession, findings: list[Finding], current_topic: str) -> str:
        minutes_remaining = round(max(session.time_remaining(), 0.0) / 60, 1)
        recent = findings[-RECENT_FINDINGS:]
        findings_text = "\n\n".join(
            f"[From {f.source}]: {f.text[:FINDING_PROMPT_CHARS]}" for f in recent
        )
        return render_prompt(
            "analyze.prompt",
            topic=current_topic,
            minutes_remaining=minutes_remaining,
            findings=findings_text or "none",
            current_depth=session.current_depth,
            minimum_iterations=session.minimum_iterations,
        )

    async def analyze(
        self,
        session: ResearchSession,
        findings: list[Finding],
        current_topic: str,
        report: ActivityReporter,
    ) -> AnalysisResult:
        report(
            ActivityType.REASONING,
            ActivityStatus.PENDING,
            "Analyzing findings and planning next steps",
        )

        try:
            raw_text = await self.reasoner.generate(
                self.build_prompt(session, findings, current_topic)
            )
        except Exception as exc:
            logger.warning(f"Analysis call failed for '{current_topic[:80]}': {exc}")
            report(ActivityType.REASONING, ActivityStatus.ERROR, f"Analysis failed: {exc}")
            return AnalysisResult(summary="Analysis failed", origin="failed")

        try:
            payload = parse_analysis(raw_text)
        except ParseError as exc:
            logger.warning(f"Failed to parse analysis response: {exc}")
            logger.debug(f"Raw analysis response: {raw_text[:2000]}")
            report(ActivityType.REASONING, ActivityStatus.ERROR, "Failed to parse analysis response")
            return self.keyword_fallback(session, findings, current_topic)

        report(
            ActivityType.REASONING,
            ActivityStatus.COMPLETE,
            f"Analysis complete: {payload.summary[:100]}...",
        )

        result = AnalysisResult(
            summary=payload.summary or "No summary provided",
            gaps=list(payload.gaps),
            next_steps=list(payload.next_steps),
            should_continue=payload.should_continue,
            next_search_topic=payload.next_search_topic,
            url_to_search=payload.url_to_search,
            themes=list(payload.themes),
        )

        if (
            session.current_depth < session.minimum_iterations
            and session.time_remaining() > self.min_iteration_time_floor
        ):
            report(
                ActivityType.THOUGHT,
                ActivityStatus.PENDING,
                "Enforcing minimum iteration requirement "
                f"({session.current_depth}/{session.minimum_iterations})",
            )
            result.should_continue = True
            if not result.next_search_topic:
                result.next_search_topic = (
                    result.gaps[0] if result.gaps else f"{current_topic} deeper analysis"
                )

        if result.themes:
            session.themes.extend(result.themes)

        return result

    def keyword_fallback(
        self,
        session: ResearchSession,
        findings: list[Finding],
        current_topic: str,
    ) -> AnalysisResult:
        keywords = extract_keywords("\n\n".join(f.text for f in findings))
        top = keywords[0] if keywords else ""
        suggested = f"{current_topic} {top}".strip()

        if self.keyword_fallback_policy == "always":
            should_continue = True
        elif self.keyword_fallback_policy == "never":
            should_continue = False
        else:
            should_continue = current_topic != session.topic

        return AnalysisResult(
            summary="Analysis parsing failed, using keyword extraction as fallback",
            next_steps=[f'Research "{suggested}"'],
            should_continue=should_continue,
            next_search_topic=suggested if top else None,
            origin="keyword_fallback",
        )
