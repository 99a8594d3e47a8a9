from __future__ import annotations

from typing import Any

import httpx

from deepresearch.config import settings
from deepresearch.research_core.models.interfaces import SearchHit

BRAVE_SEARCH_URL = "https://api.search.brave.com/res/v1/web/search"


async def search(
    query: str,
    *,
    max_results: int = 5,
) -> list[SearchHit]:
    """Execute a Brave web search and normalize results.

    Brave returns snippets only, so hits carry a summary and highlights but
    no fetched body text.
    """
    if not settings.brave_api_key:
        raise RuntimeError("BRAVE_API_KEY is not configured")

    params: dict[str, Any] = {
        "q": query,
        "count": max_results,
    }

    async with httpx.AsyncClient(timeout=settings.search_timeout_seconds) as client:
        response = await client.get(
            BRAVE_SEARCH_URL,
            params=params,
            headers={
                "Accept": "application/json",
                "X-Subscription-Token": settings.brave_api_key,
            },
        )
        response.raise_for_status()
        payload = response.json()

    raw_results = payload.get("web", {}).get("results", [])
    total = max(len(raw_results), 1)
    mapped: list[SearchHit] = []
    for idx, item in enumerate(raw_results):
        snippets = [s for s in (item.get("extra_snippets") or []) if isinstance(s, str)]
        # Brave does not expose a direct relevance score in this response shape.
        score = max(0.0, 1.0 - (idx / total))
        mapped.append(
            SearchHit(
                url=item.get("url", ""),
                title=item.get("title", ""),
                summary=(item.get("description") or "").strip(),
                highlights=snippets,
                score=score,
            )
        )
    return mapped
