from __future__ import annotations

from typing import Any

from tavily import AsyncTavilyClient

from deepresearch.config import settings
from deepresearch.research_core.models.interfaces import SearchHit


async def search(
    query: str,
    *,
    max_results: int = 5,
    fetch_text: bool = True,
    search_depth: str = "advanced",
    topic: str = "general",
) -> list[SearchHit]:
    """Execute a Tavily web search; with *fetch_text* the page body comes back too."""
    if not settings.tavily_api_key:
        raise RuntimeError("TAVILY_API_KEY is not configured")

    client = AsyncTavilyClient(api_key=settings.tavily_api_key)
    kwargs: dict[str, Any] = {
        "query": query,
        "search_depth": search_depth,
        "max_results": max_results,
        "topic": topic,
        "include_raw_content": fetch_text,
    }
    response = await client.search(**kwargs)

    return [
        SearchHit(
            url=r.get("url") or "",
            title=r.get("title") or "",
            text=r.get("raw_content") or "",
            summary=r.get("content") or "",
            score=float(r.get("score") or 0.0),
        )
        for r in response.get("results", [])
    ]
