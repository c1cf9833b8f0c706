from __future__ import annotations

import math
from collections.abc import Sequence

from loguru import logger

from research_agent.config import settings
from research_agent.models.interfaces import EmbeddingProvider
from research_agent.models.knowledge import Fact


class KnowledgeStore:
    """Deduplicating fact repository keyed by content.

    A candidate is rejected when its content is already stored verbatim, when
    no embedding can be produced for it, or when its cosine similarity to any
    stored fact exceeds ``similarity_threshold``. The similarity scan and the
    insert run without an await in between, so on a single event loop the
    check-then-insert is atomic. The scan is linear in the number of facts.
    """

    def __init__(
        self,
        embedder: EmbeddingProvider,
        similarity_threshold: float | None = None,
    ):
        self._embedder = embedder
        self.similarity_threshold = (
            settings.similarity_threshold if similarity_threshold is None else similarity_threshold
        )
        self._facts: dict[str, Fact] = {}

    async def add_fact(self, content: str, source_url: str) -> bool:
        if content in self._facts:
            return False

        embedding = await self._embedder.embed(content)
        if not embedding:
            logger.warning(
                f"Embedding unavailable, skipping fact: '{content[:120]}'"
            )
            return False

        # another task may have stored the same content while we awaited
        if content in self._facts:
            return False

        best = self.most_similar(embedding)
        if best is not None and best[0] > self.similarity_threshold:
            logger.info(f"Skipping redundant fact (similarity: {best[0] * 100:.2f}%): '{content}'")
            return False

        self._facts[content] = Fact(
            content=content,
            source_url=source_url,
            embedding=tuple(float(v) for v in embedding),
        )
        logger.info(f"New fact added: '{content}' from {source_url}")
        return True

    def most_similar(self, vector: Sequence[float]) -> tuple[float, Fact] | None:
        if not self._facts:
            return None
        return max(
            ((cosine_similarity(vector, fact.embedding), fact) for fact in self._facts.values()),
            key=lambda pair: pair[0],
        )

    def get_all_facts(self) -> list[Fact]:
        """All stored facts in insertion order."""
        return list(self._facts.values())

    def get_fact_count(self) -> int:
        return len(self._facts)

    def clear(self) -> None:
        self._facts.clear()


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine of the angle between ``a`` and ``b``; 0.0 for empty, zero-norm or mismatched vectors."""
    if len(a) != len(b) or not a:
        return 0.0
    dot = sum(x * y for x, y in zip(a, b))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(y * y for y in b))
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return dot / (norm_a * norm_b)
