from __future__ import annotations

from typing import Any, Protocol


class SearchProvider(Protocol):
    """Returns newline-delimited result blocks with ``URL: <url>`` lines.

    Failures are reported as a string starting with ``Error:``.
    """

    async def execute(self, query: str) -> str: ...


class ContentFetcher(Protocol):
    """Returns extracted plain text, or an empty string on failure."""

    async def execute(self, url: str) -> str: ...


class EmbeddingProvider(Protocol):
    async def embed(self, text: str) -> list[float] | None: ...


class ChatProvider(Protocol):
    async def complete(self, messages: list[dict[str, Any]]) -> str | None: ...
