from __future__ import annotations

from typing import Any

import httpx
from loguru import logger

from research_agent.config import settings
from research_agent.tools.web_utils import is_valid_url

ERROR_PREFIX = "Error:"
NO_RESULTS = "No results found."


def format_results(raw_results: list[dict[str, Any]], *, limit: int) -> str:
    """Render Brave results as ``Title/URL/Snippet`` blocks separated by ``---``."""
    blocks: list[str] = []
    for item in raw_results:
        url = (item.get("url") or "").strip()
        if not is_valid_url(url):
            continue
        title = (item.get("title") or "").strip() or "Untitled"
        snippet = (item.get("description") or "").strip()
        blocks.append(f"Title: {title}\nURL: {url}\nSnippet: {snippet}".rstrip())
        if len(blocks) >= limit:
            break
    return "\n---\n".join(blocks) or NO_RESULTS


class WebSearchTool:
    """Brave web search returning a plain-text result listing.

    Never raises: transport and HTTP failures come back as a string
    starting with ``Error:``.
    """

    name = "web_search"

    def __init__(self, http_client: httpx.AsyncClient | None = None):
        self._http_client = http_client

    async def execute(self, query: str) -> str:
        logger.info(f"Searching for: '{query}'")
        try:
            payload = await self._fetch(query)
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            body = e.response.text
            logger.error(f"Brave Search API error: {status} {e.response.reason_phrase}. Body: {body[:500]}")
            return f"{ERROR_PREFIX} Web search failed ({status}). {e.response.reason_phrase}. {body[:200]}"
        except Exception as e:
            logger.error(f"Brave Search API call failed: {e}")
            return f"{ERROR_PREFIX} Web search failed. {e}"

        raw_results = (payload.get("web") or {}).get("results") or []
        logger.info(f"Brave search returned {len(raw_results)} results for query '{query}'")
        return format_results(raw_results, limit=settings.search_max_results)

    async def _fetch(self, query: str) -> dict[str, Any]:
        params = {"q": query, "count": settings.search_result_count}
        headers = {
            "Accept": "application/json",
            "X-Subscription-Token": settings.brave_api_key,
        }
        if self._http_client is not None:
            response = await self._http_client.get(settings.brave_search_url, params=params, headers=headers)
            response.raise_for_status()
            return response.json()

        async with httpx.AsyncClient(timeout=settings.http_timeout_seconds) as client:
            response = await client.get(settings.brave_search_url, params=params, headers=headers)
            response.raise_for_status()
            return response.json()
