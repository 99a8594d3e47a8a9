from __future__ import annotations

from dataclasses import dataclass

import httpx
from loguru import logger

from deepresearch.config import settings
from deepresearch.research_core.errors import ProviderError
from deepresearch.research_core.models.interfaces import SearchHit, SearchOptions, SearchResult
from deepresearch.tools import brave_search, tavily_search, web_utils


@dataclass
class SearchResponse:
    results: list[SearchHit]
    provider: str
    fallback_from: str | None = None
    fallback_reason: str | None = None


async def search(
    query: str,
    *,
    max_results: int = 5,
    fetch_text: bool = True,
) -> SearchResponse:
    provider = settings.search_provider.lower().strip()
    use_fallback = settings.search_fallback_to_tavily

    if provider == "tavily":
        results = await tavily_search.search(
            query=query,
            max_results=max_results,
            fetch_text=fetch_text,
        )
        return SearchResponse(results=results, provider="tavily")

    if provider == "brave":
        try:
            results = await brave_search.search(query=query, max_results=max_results)
            if results or not use_fallback:
                return SearchResponse(results=results, provider="brave")

            fallback_results = await tavily_search.search(
                query=query,
                max_results=max_results,
                fetch_text=fetch_text,
            )
            return SearchResponse(
                results=fallback_results,
                provider="tavily",
                fallback_from="brave",
                fallback_reason="brave returned zero results",
            )
        except (httpx.HTTPError, RuntimeError) as e:
            if not use_fallback:
                raise
            fallback_results = await tavily_search.search(
                query=query,
                max_results=max_results,
                fetch_text=fetch_text,
            )
            return SearchResponse(
                results=fallback_results,
                provider="tavily",
                fallback_from="brave",
                fallback_reason=str(e),
            )

    raise ValueError(f"Unsupported SEARCH_PROVIDER: {settings.search_provider}")


def normalize_hits(hits: list[SearchHit], *, max_chars: int) -> list[SearchHit]:
    """Coerce provider output into well-typed hits before it reaches the engine."""
    normalized: list[SearchHit] = []
    for hit in hits:
        url = (hit.url or "").strip()
        if url and not web_utils.is_valid_url(url):
            logger.debug(f"Dropping search hit with invalid url: {url[:120]}")
            continue
        normalized.append(
            SearchHit(
                url=url,
                title=" ".join((hit.title or "").split()),
                text=web_utils.clean_content(hit.text or "", max_length=max_chars),
                summary=web_utils.clean_content(hit.summary or "", max_length=max_chars),
                highlights=[
                    " ".join(h.split()) for h in (hit.highlights or []) if isinstance(h, str) and h.strip()
                ],
                score=float(hit.score or 0.0),
            )
        )
    return normalized


class WebSearchTool:
    """TextSearchAndFetch backed by the configured web search provider."""

    async def search(self, topic: str, options: SearchOptions) -> SearchResult:
        try:
            response = await search(
                topic,
                max_results=options.num_results,
                fetch_text=options.fetch_text,
            )
        except Exception as exc:
            raise ProviderError(
                str(exc) or type(exc).__name__,
                provider=settings.search_provider,
            ) from exc

        if response.fallback_from:
            logger.warning(
                f"Search fell back from {response.fallback_from} to {response.provider}: "
                f"{response.fallback_reason}"
            )
        hits = normalize_hits(response.results, max_chars=settings.max_finding_chars)
        return SearchResult(hits=hits, provider=response.provider)
