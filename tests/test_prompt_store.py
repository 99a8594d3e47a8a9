from __future__ import annotations

import pytest

from deepresearch.services.prompt_store import clear_prompt_cache, render_prompt


@pytest.fixture(autouse=True)
def fresh_catalog():
    clear_prompt_cache()
    yield
    clear_prompt_cache()


def test_render_prompt_substitutes_template_values():
    prompt = render_prompt("reasoner.system_prompt", today_iso="2026-02-21")
    assert "2026-02-21" in prompt


def test_render_prompt_joins_line_lists():
    prompt = render_prompt(
        "synthesize.intermediate_prompt",
        topic="tidal power",
        findings="F",
        summaries="S",
    )
    assert prompt.startswith("Create an organized summary of the research findings so far on: tidal power\n")
    assert "\nF\n" in prompt


def test_render_prompt_raises_for_unknown_key():
    with pytest.raises(KeyError):
        render_prompt("missing.prompt.key")


def test_render_prompt_raises_for_missing_value():
    with pytest.raises(KeyError):
        render_prompt("reasoner.system_prompt")
