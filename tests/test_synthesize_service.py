import pytest

from conftest import FakeClock, StubReasoner
from deepresearch.research_core.errors import ProviderError
from deepresearch.research_core.models.interfaces import Finding
from deepresearch.research_core.models.session import ResearchSession
from deepresearch.research_core.synthesize.service import SynthesizeService, fallback_report


def _session() -> ResearchSession:
    session = ResearchSession(topic="heat pumps", max_depth=3, time_limit=270, clock=FakeClock())
    session.add_findings(
        [
            Finding(text="Cold climate performance data", source="https://a.example"),
            Finding(text="Installation cost survey", source="https://b.example"),
        ]
    )
    session.themes.extend(["efficiency", "cost", "efficiency"])
    session.add_gaps(["grid impact", "grid impact"])
    session.summaries.append("first pass")
    return session


def test_fallback_report_layout():
    findings = [Finding(text="alpha", source="s1"), Finding(text="beta", source="s2")]
    report = fallback_report("heat pumps", findings, 2)
    assert report == (
        'Research findings for "heat pumps":\n\n'
        "Source 1: s1\nalpha...\n\n\n"
        "Source 2: s2\nbeta...\n"
        "\n\nResearch completed with 2 iterations, finding 2 relevant sources."
    )


def test_fallback_report_without_findings():
    report = fallback_report("heat pumps", [], 0)
    assert report.startswith('Research findings for "heat pumps":')
    assert report.endswith("Research completed with 0 iterations, finding 0 relevant sources.")


def test_final_prompt_deduplicates_themes_and_gaps():
    prompt = SynthesizeService(StubReasoner()).build_final_prompt(_session())
    assert prompt.count("### efficiency") == 1
    assert "1. efficiency\n2. cost" in prompt
    assert prompt.count("- grid impact") == 1
    assert "[Summary 1]: first pass" in prompt
    assert "Source 2 (https://b.example): Installation cost survey..." in prompt


@pytest.mark.asyncio
async def test_final_uses_model_text():
    text, used_fallback = await SynthesizeService(StubReasoner(final="# Report")).final(_session(), 2)
    assert text == "# Report"
    assert used_fallback is False


@pytest.mark.asyncio
@pytest.mark.parametrize("final", [ProviderError("down", provider="openrouter"), "   "])
async def test_final_falls_back_on_error_or_empty_text(final):
    session = _session()
    text, used_fallback = await SynthesizeService(StubReasoner(final=final)).final(session, 2)
    assert used_fallback is True
    assert text == fallback_report(session.topic, session.findings, 2)


@pytest.mark.asyncio
async def test_intermediate_appends_tagged_summary():
    session = _session()
    entry = await SynthesizeService(StubReasoner(intermediate="Themes: cost")).intermediate(session, 3)
    assert entry == "[Intermediate Summary at Depth 3]: Themes: cost"
    assert session.summaries[-1] == entry


@pytest.mark.asyncio
async def test_intermediate_propagates_provider_errors():
    reasoner = StubReasoner(intermediate=ProviderError("down", provider="openrouter"))
    with pytest.raises(ProviderError):
        await SynthesizeService(reasoner).intermediate(_session(), 3)
