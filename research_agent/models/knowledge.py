from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True, slots=True)
class Fact:
    content: str
    source_url: str
    embedding: tuple[float, ...]


@dataclass(slots=True)
class ResearchState:
    """Per-run state. Visited URLs only grow, through ``claim_url``."""

    research_id: str
    initial_query: str
    # dict keeps claim order for rendering
    _visited: dict[str, None] = field(default_factory=dict, repr=False)

    def claim_url(self, url: str) -> bool:
        """Mark ``url`` as visited. Returns False if it was already claimed."""
        if url in self._visited:
            return False
        self._visited[url] = None
        return True

    def is_visited(self, url: str) -> bool:
        return url in self._visited

    @property
    def visited_urls(self) -> list[str]:
        return list(self._visited)
