from __future__ import annotations

from loguru import logger

from deepresearch.research_core.models.interfaces import Finding, ReasoningGenerate
from deepresearch.research_core.models.session import ResearchSession
from deepresearch.services.prompt_store import render_prompt

INTERMEDIATE_FINDINGS = 10
INTERMEDIATE_FINDING_CHARS = 1500
FINAL_FINDINGS = 10
FINAL_FINDING_CHARS = 2000
FINAL_THEMES = 10
DETAILED_THEMES = 5


def fallback_report(topic: str, findings: list[Finding], iterations: int) -> str:
    """Plain concatenation of every finding. Performs no I/O."""
    sections = [
        f"Source {i + 1}: {finding.source}\n{finding.text[:FINAL_FINDING_CHARS]}...\n"
        for i, finding in enumerate(findings)
    ]
    return (
        f'Research findings for "{topic}":\n\n'
        + "\n\n".join(sections)
        + f"\n\nResearch completed with {iterations} iterations, "
        f"finding {len(findings)} relevant sources."
    )


class SynthesizeService:
    def __init__(self, reasoner: ReasoningGenerate):
        self.reasoner = reasoner

    async def intermediate(self, session: ResearchSession, depth: int) -> str | None:
        """Organize recent findings into themed prose and file it under *summaries*.

        Returns the stored summary, or None when the model produced nothing.
        Provider failures propagate so the caller can report them.
        """
        recent = session.findings[-INTERMEDIATE_FINDINGS:]
        prompt = render_prompt(
            "synthesize.intermediate_prompt",
            topic=session.topic,
            findings="\n\n".join(
                f"Source: {f.source}\n{f.text[:INTERMEDIATE_FINDING_CHARS]}..." for f in recent
            ),
            summaries="\n\n".join(session.summaries) or "none",
        )
        text = (await self.reasoner.generate(prompt)).strip()
        if not text:
            return None
        entry = f"[Intermediate Summary at Depth {depth}]: {text}"
        session.summaries.append(entry)
        return entry

    def build_final_prompt(self, session: ResearchSession) -> str:
        findings = session.findings[:FINAL_FINDINGS]
        themes = session.unique_themes()
        gaps = session.unique_gaps()
        gaps_text = ""
        if gaps:
            gaps_text = "Consider these identified gaps:\n" + "\n".join(f"- {gap}" for gap in gaps)
        return render_prompt(
            "synthesize.final_prompt",
            topic=session.topic,
            findings="\n\n".join(
                f"Source {i + 1} ({f.source}): {f.text[:FINAL_FINDING_CHARS]}..."
                for i, f in enumerate(findings)
            )
            or "none",
            summaries="\n\n".join(
                f"[Summary {i + 1}]: {summary}" for i, summary in enumerate(session.summaries)
            )
            or "none",
            themes="\n".join(
                f"{i + 1}. {theme}" for i, theme in enumerate(themes[:FINAL_THEMES])
            )
            or "none",
            theme_sections="\n\n".join(
                f"### {theme}\n[Analyze this theme based on the research findings]"
                for theme in themes[:DETAILED_THEMES]
            ),
            gaps=gaps_text,
        )

    async def final(self, session: ResearchSession, iterations: int) -> tuple[str, bool]:
        """Produce the final report; returns (text, used_fallback). Never raises."""
        try:
            prompt = self.build_final_prompt(session)
            text = (await self.reasoner.generate(prompt)).strip()
        except Exception as exc:
            logger.error(f"Final synthesis failed, using concatenation fallback: {exc}")
            return fallback_report(session.topic, session.findings, iterations), True

        if not text:
            logger.warning("Final synthesis returned no text, using concatenation fallback")
            return fallback_report(session.topic, session.findings, iterations), True
        return text, False
