from __future__ import annotations

import time
from datetime import date

from deepresearch.config import settings
from deepresearch.llm_client import OpenRouterClientAdapter, client as llm_client, get_model
from deepresearch.research_core.errors import ProviderError
from deepresearch.services import logger as log_service
from deepresearch.services.prompt_store import render_prompt


class LLMReasoner:
    """Single-shot text generation over the OpenRouter client.

    No retries: a failed call surfaces as ProviderError and the research
    loop falls back locally.
    """

    name = "reasoner"

    def __init__(
        self,
        model: str | None = None,
        *,
        max_tokens: int | None = None,
        client: OpenRouterClientAdapter | None = None,
    ):
        self.model = model or get_model()
        self.max_tokens = max_tokens or settings.llm_max_tokens
        self.client = client

    @staticmethod
    def get_system_prompt() -> str:
        return render_prompt("reasoner.system_prompt", today_iso=date.today().isoformat())

    async def generate(self, prompt: str) -> str:
        active_client = self.client or llm_client()
        t0 = time.monotonic()
        try:
            response = await active_client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                system=self.get_system_prompt(),
                messages=[{"role": "user", "content": prompt}],
            )
        except Exception as exc:
            log_service.log_llm_call(
                model=self.model,
                caller=self.name,
                duration_ms=int((time.monotonic() - t0) * 1000),
                status="error",
                error=str(exc),
            )
            raise ProviderError(str(exc) or type(exc).__name__, provider="openrouter") from exc

        log_service.log_llm_call(
            model=self.model,
            caller=self.name,
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
            duration_ms=int((time.monotonic() - t0) * 1000),
        )
        return response.text
