from __future__ import annotations

from loguru import logger

from research_agent.agents.fact_parsing import facts_from_response, heuristic_facts
from research_agent.config import settings
from research_agent.models.interfaces import ChatProvider
from research_agent.models.knowledge import Fact
from research_agent.services.prompt_store import render_prompt

REPORT_FAILURE = "Error: Could not generate the final report."


def _messages(system: str, user: str) -> list[dict[str, str]]:
    return [
        {"role": "system", "content": system},
        {"role": "user", "content": user},
    ]


def _strip_quotes(text: str) -> str:
    for quote in ('"', "'"):
        if len(text) >= 2 and text.startswith(quote) and text.endswith(quote):
            text = text[1:-1]
    return text.strip()


class SynthesizerAgent:
    """LLM-backed fact extraction, query planning and report writing."""

    name = "synthesizer"

    def __init__(self, chat: ChatProvider, next_query_fact_window: int | None = None):
        self.chat = chat
        self.next_query_fact_window = max(
            int(next_query_fact_window or settings.next_query_fact_window), 1
        )

    async def extract_facts(self, content: str, original_query: str) -> list[str]:
        """Extract atomic facts, degrading from JSON to markers to a sentence heuristic."""
        response = await self.chat.complete(
            _messages(
                render_prompt("synthesizer.extract_facts_system"),
                render_prompt("synthesizer.extract_facts_user", query=original_query, content=content),
            )
        )
        facts = facts_from_response(response or "")
        if facts:
            return facts

        logger.debug("Model response had no parseable facts, using sentence heuristic")
        return heuristic_facts(content, original_query)

    async def generate_next_query(self, original_query: str, known_facts: list[Fact]) -> str:
        recent = known_facts[-self.next_query_fact_window :]
        fact_summary = "\n".join(f"- {fact.content}" for fact in recent)
        response = await self.chat.complete(
            _messages(
                render_prompt("synthesizer.next_query_system"),
                render_prompt("synthesizer.next_query_user", query=original_query, facts=fact_summary),
            )
        )
        return _strip_quotes((response or original_query).strip())

    async def generate_final_report(self, original_query: str, all_facts: list[Fact]) -> str:
        by_source: dict[str, list[Fact]] = {}
        for fact in all_facts:
            by_source.setdefault(fact.source_url, []).append(fact)

        knowledge = "\n\n".join(
            f"Source: {url}\nFacts:\n" + "\n".join(f"- {fact.content}" for fact in facts)
            for url, facts in by_source.items()
        )
        response = await self.chat.complete(
            _messages(
                render_prompt("synthesizer.final_report_system"),
                render_prompt("synthesizer.final_report_user", query=original_query, knowledge=knowledge),
            )
        )
        return response or REPORT_FAILURE
