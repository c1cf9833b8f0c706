from __future__ import annotations

import asyncio
from typing import Callable
from uuid import uuid4

from research_agent.agents.orchestrator import ResearchOrchestrator
from research_agent.models.events import ProgressUpdate
from research_agent.models.evidence import EvidenceFact, EvidenceMatrix, EvidenceSource
from research_agent.models.knowledge import Fact
from research_agent.services import logger as log_service
from research_agent.services.knowledge_store import cosine_similarity
from research_agent.services.progress import ProgressChannel
from research_agent.tools.web_utils import host_label

QUEUED_MESSAGE = "Job queued..."


class ResearchJobConflict(RuntimeError):
    """A job with this research id already exists."""


class ResearchJobNotFound(KeyError):
    """No job is registered under this research id."""


class ResearchService:
    """Registry of research jobs and their progress channels.

    Each job gets its own orchestrator, and with it its own knowledge store,
    so concurrent jobs do not clear each other's facts. When a job finishes
    its task and orchestrator are released and only the terminal snapshot and
    the collected facts are kept, until ``remove_job`` drops them too.
    """

    def __init__(self, orchestrator_factory: Callable[[], ResearchOrchestrator] = ResearchOrchestrator):
        self._orchestrator_factory = orchestrator_factory
        self._channels: dict[str, ProgressChannel] = {}
        self._orchestrators: dict[str, ResearchOrchestrator] = {}
        self._tasks: dict[str, asyncio.Task] = {}
        self._finished_facts: dict[str, list[Fact]] = {}

    def start_job(self, research_id: str, query: str) -> ProgressChannel:
        if research_id in self._channels:
            raise ResearchJobConflict(f"Research job with id {research_id} already exists.")

        channel = ProgressChannel(ProgressUpdate(research_id=research_id, message=QUEUED_MESSAGE))
        orchestrator = self._orchestrator_factory()
        self._channels[research_id] = channel
        self._orchestrators[research_id] = orchestrator
        task = asyncio.create_task(
            orchestrator.conduct_research(research_id, query, channel),
            name=f"research-{research_id}",
        )
        self._tasks[research_id] = task
        task.add_done_callback(lambda done: self._release_job(research_id, done))
        log_service.log_event(
            "research_job_started",
            f"Started research job {research_id}",
            research_id=research_id,
            query=query,
        )
        return channel

    def start_research(self, query: str) -> str:
        research_id = str(uuid4())
        self.start_job(research_id, query)
        return research_id

    def get_progress_channel(self, research_id: str) -> ProgressChannel:
        try:
            return self._channels[research_id]
        except KeyError:
            raise ResearchJobNotFound(research_id) from None

    async def wait_for(self, research_id: str) -> ProgressUpdate:
        """Wait for the job to finish and return its terminal update."""
        channel = self.get_progress_channel(research_id)
        task = self._tasks.get(research_id)
        if task is not None:
            await task
        return channel.value

    def compute_evidence_matrix(self, research_id: str) -> EvidenceMatrix:
        self.get_progress_channel(research_id)
        orchestrator = self._orchestrators.get(research_id)
        if orchestrator is not None:
            return evidence_matrix(orchestrator.knowledge_store.get_all_facts())
        return evidence_matrix(self._finished_facts.get(research_id, []))

    def remove_job(self, research_id: str) -> None:
        """Forget a job entirely, cancelling it if it is still running."""
        self.get_progress_channel(research_id)
        task = self._tasks.pop(research_id, None)
        if task is not None:
            task.cancel()
        self._orchestrators.pop(research_id, None)
        self._finished_facts.pop(research_id, None)
        del self._channels[research_id]
        log_service.log_event(
            "research_job_removed",
            f"Removed research job {research_id}",
            research_id=research_id,
        )

    @property
    def running_job_count(self) -> int:
        return len(self._tasks)

    def _release_job(self, research_id: str, task: asyncio.Task) -> None:
        # the id may have been removed and reused by a newer job
        if self._tasks.get(research_id) is not task:
            return
        del self._tasks[research_id]
        orchestrator = self._orchestrators.pop(research_id, None)
        if orchestrator is not None:
            self._finished_facts[research_id] = orchestrator.knowledge_store.get_all_facts()


def evidence_matrix(facts: list[Fact]) -> EvidenceMatrix:
    """Score how strongly each source corroborates each fact from another source.

    A cell is the best cosine similarity between the fact and the source's own
    facts, mapped from [-1, 1] onto [0, 1]. A source never scores its own facts.
    """
    if not facts:
        return EvidenceMatrix()

    facts_by_source: dict[str, list[Fact]] = {}
    for fact in facts:
        facts_by_source.setdefault(fact.source_url, []).append(fact)

    sources = [EvidenceSource(id=url, label=host_label(url)) for url in facts_by_source]
    fact_items = [
        EvidenceFact(id=f"f-{index}", label=fact.content, source_id=fact.source_url)
        for index, fact in enumerate(facts)
    ]

    scores: list[list[float]] = []
    for source in sources:
        source_facts = facts_by_source[source.id]
        row: list[float] = []
        for fact in facts:
            if fact.source_url == source.id:
                row.append(0.0)
                continue
            best = max(cosine_similarity(fact.embedding, other.embedding) for other in source_facts)
            row.append(min(max((best + 1.0) / 2.0, 0.0), 1.0))
        scores.append(row)

    return EvidenceMatrix(sources=sources, facts=fact_items, scores=scores)
