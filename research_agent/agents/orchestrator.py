from __future__ import annotations

import asyncio
import re

from loguru import logger

from research_agent.agents.synthesizer import SynthesizerAgent
from research_agent.config import settings
from research_agent.llm_client import OpenAIService
from research_agent.models.events import ProgressUpdate
from research_agent.models.interfaces import ContentFetcher, SearchProvider
from research_agent.models.knowledge import ResearchState
from research_agent.services import logger as log_service
from research_agent.services.graph_builder import build_graph
from research_agent.services.knowledge_store import KnowledgeStore
from research_agent.services.progress import ProgressChannel
from research_agent.services.retry import retry
from research_agent.tools.web_scraper import WebScraperTool
from research_agent.tools.web_search import ERROR_PREFIX, WebSearchTool
from research_agent.tools.web_utils import extract_host

# One URL per result line, as written by the search tool.
URL_LINE_PATTERN = re.compile(r"^[ \t]*URL:[ \t]*(https?://\S+)", re.MULTILINE)

COMPLETE_MESSAGE = "Research complete."


def extract_urls(search_results: str) -> list[str]:
    return URL_LINE_PATTERN.findall(search_results)


def pick_diverse(urls: list[str], take: int) -> list[str]:
    """Pick up to ``take`` URLs, one per host first, then fill from the rest."""
    first_per_host: dict[str, str] = {}
    for url in urls:
        first_per_host.setdefault(extract_host(url) or url, url)
    first_pass = list(first_per_host.values())
    if len(first_pass) >= take:
        return first_pass[:take]

    chosen = set(first_pass)
    remaining = [url for url in urls if url not in chosen]
    return list(dict.fromkeys(first_pass + remaining))[:take]


class ResearchOrchestrator:
    """Runs the iterative research loop for one query.

    Flow per iteration:
      1. Search for the current query
      2. Pick a host-diverse batch of unvisited URLs
      3. Fetch, extract and store facts for the batch concurrently
      4. Ask the planner for the next query
    then write the final report. Every step publishes a progress snapshot.
    """

    def __init__(
        self,
        search_tool: SearchProvider | None = None,
        scraper_tool: ContentFetcher | None = None,
        synthesizer: SynthesizerAgent | None = None,
        knowledge_store: KnowledgeStore | None = None,
        *,
        max_iterations: int | None = None,
        scrape_concurrency: int | None = None,
    ):
        llm = OpenAIService() if synthesizer is None or knowledge_store is None else None
        self.search_tool = search_tool or WebSearchTool()
        self.scraper_tool = scraper_tool or WebScraperTool()
        self.synthesizer = synthesizer or SynthesizerAgent(llm)
        self.knowledge_store = knowledge_store or KnowledgeStore(llm)
        self.max_iterations = max(
            int(settings.max_iterations if max_iterations is None else max_iterations), 1
        )
        self.scrape_concurrency = max(
            int(settings.scrape_concurrency if scrape_concurrency is None else scrape_concurrency), 1
        )
        self.url_batch_size = max(2, self.scrape_concurrency * 2)
        self.fetch_retry_times = max(int(settings.fetch_retry_times), 1)

    async def conduct_research(self, research_id: str, query: str, progress: ProgressChannel) -> None:
        """Run to a terminal progress update. Never raises."""
        state = ResearchState(research_id=research_id, initial_query=query)
        self.knowledge_store.clear()
        log_service.log_research_step(research_id, "research", "started", {"query": query})

        try:
            current_query = query

            for iteration in range(1, self.max_iterations + 1):
                self._update(progress, state, f"Iteration {iteration}: Searching for '{current_query}'")
                search_results = await self.search_tool.execute(current_query)

                if search_results.startswith(ERROR_PREFIX):
                    self._update(progress, state, search_results)
                    break

                urls = extract_urls(search_results)
                pending = [url for url in urls if not state.is_visited(url)]
                if not pending:
                    self._update(progress, state, "No new URLs found.")
                    break

                selected = pick_diverse(pending, self.url_batch_size)
                new_facts = await self._process_urls(selected, state, current_query, progress)

                facts = self.knowledge_store.get_all_facts()
                sources_with_facts = len({fact.source_url for fact in facts})
                self._update(
                    progress,
                    state,
                    f"Found {new_facts} new facts. Total facts: {len(facts)}. "
                    f"Sources with facts: {sources_with_facts}.",
                )
                log_service.log_research_step(
                    research_id,
                    "iteration",
                    "completed",
                    {"iteration": iteration, "new_facts": new_facts, "total_facts": len(facts)},
                )

                if iteration < self.max_iterations:
                    self._update(progress, state, "Reflecting on findings to plan next step...")
                    current_query = (
                        await self.synthesizer.generate_next_query(query, self.knowledge_store.get_all_facts())
                    ).strip()

            self._update(progress, state, "Synthesizing final report...")
            final_report = await self.synthesizer.generate_final_report(
                query, self.knowledge_store.get_all_facts()
            )
            self._update(progress, state, COMPLETE_MESSAGE, is_complete=True, final_report=final_report)
            log_service.log_research_step(
                research_id, "research", "completed", {"facts": self.knowledge_store.get_fact_count()}
            )
        except Exception as e:
            logger.exception(f"Research failed for id={research_id}")
            self._update(progress, state, f"Error: {e}", is_complete=True)
            log_service.log_research_step(research_id, "research", "failed", {"error": str(e)})

    async def _process_urls(
        self,
        urls: list[str],
        state: ResearchState,
        query: str,
        progress: ProgressChannel,
    ) -> int:
        """Fetch and mine at most ``scrape_concurrency`` URLs concurrently; returns facts added."""

        async def run_one(url: str) -> int:
            if not state.claim_url(url):
                return 0
            self._update(progress, state, f"Scraping {url}")
            content = await retry(self.fetch_retry_times, lambda: self.scraper_tool.execute(url))
            if not content.strip():
                return 0

            self._update(progress, state, f"Analyzing content from {url}")
            facts = await self.synthesizer.extract_facts(content, query)
            added = 0
            for fact in facts:
                if await self.knowledge_store.add_fact(fact, url):
                    added += 1
                    self._update(progress, state, "New fact discovered.")
            return added

        tasks = [asyncio.create_task(run_one(url)) for url in urls[: self.scrape_concurrency]]
        try:
            counts = await asyncio.gather(*tasks)
        except Exception:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise
        return sum(counts)

    def _update(
        self,
        progress: ProgressChannel,
        state: ResearchState,
        message: str,
        *,
        is_complete: bool = False,
        final_report: str | None = None,
    ) -> None:
        logger.info(f"[{state.research_id}] {message}")
        graph = build_graph(state, self.knowledge_store.get_all_facts())
        progress.publish(
            ProgressUpdate(
                research_id=state.research_id,
                message=message,
                is_complete=is_complete,
                final_report=final_report,
                knowledge_graph=graph,
            )
        )
