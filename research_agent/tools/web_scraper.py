from __future__ import annotations

import httpx
from bs4 import BeautifulSoup
from loguru import logger

from research_agent.config import settings
from research_agent.tools.web_utils import clean_content

TEXT_MEDIA_TYPES = ("application/xhtml+xml",)


def is_text_content(content_type: str | None) -> bool:
    """True for ``text/*``, XHTML, or a missing content type."""
    if not content_type:
        return True
    media_type = content_type.split(";", 1)[0].strip().lower()
    return media_type.startswith("text/") or media_type in TEXT_MEDIA_TYPES


def html_to_text(raw_html: str, *, max_chars: int) -> str:
    soup = BeautifulSoup(raw_html, "html.parser")
    for tag in soup(["script", "style", "noscript"]):
        tag.decompose()
    return clean_content(soup.get_text(" "), max_length=max_chars)


class WebScraperTool:
    """Fetch a page and return its visible text, capped at ``fetch_max_chars``.

    Returns an empty string when the page cannot be fetched or is not text.
    """

    name = "web_scraper"

    def __init__(self, http_client: httpx.AsyncClient | None = None):
        self._http_client = http_client

    async def execute(self, url: str) -> str:
        logger.info(f"Scraping: '{url}'")
        try:
            response = await self._get(url)
        except Exception as e:
            logger.error(f"Failed to scrape URL {url}: {e}")
            return ""

        content_type = response.headers.get("content-type")
        if not is_text_content(content_type):
            logger.warning(f"Skipping non-text content from {url} ({content_type})")
            return ""
        return html_to_text(response.text, max_chars=settings.fetch_max_chars)

    async def _get(self, url: str) -> httpx.Response:
        if self._http_client is not None:
            return await self._http_client.get(url, follow_redirects=True)

        async with httpx.AsyncClient(timeout=settings.http_timeout_seconds, follow_redirects=True) as client:
            return await client.get(url)
