from __future__ import annotations

import asyncio

import pytest

from research_agent.models.events import ProgressUpdate
from research_agent.models.knowledge import Fact
from research_agent.services.knowledge_store import KnowledgeStore
from research_agent.services.research_service import (
    QUEUED_MESSAGE,
    ResearchJobConflict,
    ResearchJobNotFound,
    ResearchService,
    evidence_matrix,
)


class _VectorEmbedder:
    def __init__(self, vectors: dict[str, list[float]]):
        self.vectors = vectors

    async def embed(self, text: str) -> list[float] | None:
        return self.vectors.get(text)


class _FakeOrchestrator:
    """Stores the query as a fact and completes once released."""

    def __init__(self):
        self.knowledge_store = KnowledgeStore(_VectorEmbedder({"alpha": [1.0, 0.0], "beta": [0.0, 1.0]}))
        self.release = asyncio.Event()

    async def conduct_research(self, research_id, query, progress):
        await self.release.wait()
        await self.knowledge_store.add_fact(query, f"https://{query}.example/page")
        progress.publish(
            ProgressUpdate(research_id=research_id, message="Research complete.", is_complete=True, final_report=query)
        )


def _released() -> _FakeOrchestrator:
    orchestrator = _FakeOrchestrator()
    orchestrator.release.set()
    return orchestrator


def _fact(content: str, url: str, vector: tuple[float, ...]) -> Fact:
    return Fact(content=content, source_url=url, embedding=vector)


@pytest.mark.asyncio
async def test_start_job_publishes_queued_snapshot_and_runs():
    orchestrators: list[_FakeOrchestrator] = []

    def factory():
        orchestrators.append(_FakeOrchestrator())
        return orchestrators[-1]

    service = ResearchService(factory)
    channel = service.start_job("job-1", "alpha")

    assert channel.value.message == QUEUED_MESSAGE
    assert channel.value.is_complete is False

    orchestrators[0].release.set()
    final = await asyncio.wait_for(service.wait_for("job-1"), timeout=1.0)

    assert final.is_complete is True
    assert final.final_report == "alpha"
    assert service.get_progress_channel("job-1") is channel


@pytest.mark.asyncio
async def test_start_job_rejects_duplicate_id():
    service = ResearchService(_released)
    service.start_job("job-1", "alpha")

    with pytest.raises(ResearchJobConflict):
        service.start_job("job-1", "beta")

    await service.wait_for("job-1")


@pytest.mark.asyncio
async def test_start_research_assigns_unique_ids():
    service = ResearchService(_released)

    first = service.start_research("alpha")
    second = service.start_research("beta")

    assert first != second
    assert service.get_progress_channel(first).value.research_id == first
    await asyncio.gather(service.wait_for(first), service.wait_for(second))


@pytest.mark.asyncio
async def test_unknown_job_raises_not_found():
    service = ResearchService(_released)

    with pytest.raises(ResearchJobNotFound):
        service.get_progress_channel("missing")
    with pytest.raises(ResearchJobNotFound):
        service.compute_evidence_matrix("missing")


@pytest.mark.asyncio
async def test_jobs_keep_separate_knowledge():
    orchestrators: list[_FakeOrchestrator] = []

    def factory():
        orchestrators.append(_FakeOrchestrator())
        return orchestrators[-1]

    service = ResearchService(factory)
    service.start_job("a", "alpha")
    service.start_job("b", "beta")
    for orchestrator in orchestrators:
        orchestrator.release.set()
    await asyncio.wait_for(asyncio.gather(service.wait_for("a"), service.wait_for("b")), timeout=1.0)

    matrix_a = service.compute_evidence_matrix("a")
    matrix_b = service.compute_evidence_matrix("b")

    assert [fact.label for fact in matrix_a.facts] == ["alpha"]
    assert [fact.label for fact in matrix_b.facts] == ["beta"]


@pytest.mark.asyncio
async def test_finished_jobs_release_orchestrators():
    created: list[_FakeOrchestrator] = []

    def factory():
        created.append(_released())
        return created[-1]

    service = ResearchService(factory)
    ids = []
    for _ in range(50):
        research_id = service.start_research("alpha")
        await service.wait_for(research_id)
        ids.append(research_id)

    assert service.running_job_count == 0
    assert service._orchestrators == {}
    assert service.get_progress_channel(ids[-1]).value.is_complete is True
    assert [fact.label for fact in service.compute_evidence_matrix(ids[0]).facts] == ["alpha"]


@pytest.mark.asyncio
async def test_running_job_is_tracked_until_done():
    orchestrator = _FakeOrchestrator()
    service = ResearchService(lambda: orchestrator)
    service.start_job("job-1", "alpha")

    assert service.running_job_count == 1

    orchestrator.release.set()
    await service.wait_for("job-1")

    assert service.running_job_count == 0
    assert (await service.wait_for("job-1")).is_complete is True


@pytest.mark.asyncio
async def test_remove_job_forgets_finished_job():
    service = ResearchService(_released)
    service.start_job("job-1", "alpha")
    await service.wait_for("job-1")

    service.remove_job("job-1")

    with pytest.raises(ResearchJobNotFound):
        service.get_progress_channel("job-1")
    with pytest.raises(ResearchJobNotFound):
        service.remove_job("job-1")
    service.start_job("job-1", "beta")
    await service.wait_for("job-1")


@pytest.mark.asyncio
async def test_remove_job_cancels_running_job():
    orchestrator = _FakeOrchestrator()
    service = ResearchService(lambda: orchestrator)
    service.start_job("job-1", "alpha")
    await asyncio.sleep(0)

    service.remove_job("job-1")
    await asyncio.sleep(0)

    assert service.running_job_count == 0
    assert orchestrator.knowledge_store.get_fact_count() == 0
    with pytest.raises(ResearchJobNotFound):
        service.compute_evidence_matrix("job-1")


@pytest.mark.asyncio
async def test_reused_id_is_not_released_by_cancelled_job():
    first = _FakeOrchestrator()
    second = _FakeOrchestrator()
    pending = [first, second]
    service = ResearchService(lambda: pending.pop(0))
    service.start_job("job-1", "alpha")
    await asyncio.sleep(0)

    service.remove_job("job-1")
    service.start_job("job-1", "beta")
    await asyncio.sleep(0)
    await asyncio.sleep(0)

    assert service.running_job_count == 1
    second.release.set()
    final = await service.wait_for("job-1")

    assert final.final_report == "beta"
    assert [fact.label for fact in service.compute_evidence_matrix("job-1").facts] == ["beta"]


def test_evidence_matrix_empty():
    matrix = evidence_matrix([])

    assert matrix.sources == []
    assert matrix.facts == []
    assert matrix.scores == []


def test_evidence_matrix_scores_cross_source_similarity():
    one, two, three = "https://www.one.example/a", "https://two.example/b", "https://three.example/c"
    facts = [
        _fact("F0", one, (1.0, 0.0)),
        _fact("F1", two, (1.0, 0.0)),
        _fact("F2", three, (0.0, 1.0)),
    ]

    matrix = evidence_matrix(facts)

    assert [(source.id, source.label) for source in matrix.sources] == [
        (one, "one.example"),
        (two, "two.example"),
        (three, "three.example"),
    ]
    assert [(fact.id, fact.source_id) for fact in matrix.facts] == [("f-0", one), ("f-1", two), ("f-2", three)]
    assert matrix.scores == [
        [0.0, 1.0, 0.5],
        [1.0, 0.0, 0.5],
        [0.5, 0.5, 0.0],
    ]


def test_evidence_matrix_maps_opposite_vectors_to_zero():
    facts = [
        _fact("up", "https://a.example", (1.0, 0.0)),
        _fact("down", "https://b.example", (-1.0, 0.0)),
    ]

    matrix = evidence_matrix(facts)

    assert matrix.scores == [[0.0, 0.0], [0.0, 0.0]]


def test_evidence_matrix_uses_best_fact_of_each_source():
    facts = [
        _fact("x", "https://a.example", (1.0, 0.0)),
        _fact("y", "https://a.example", (0.0, 1.0)),
        _fact("z", "https://b.example", (0.0, 1.0)),
    ]

    matrix = evidence_matrix(facts)

    assert matrix.scores[0] == [0.0, 0.0, 1.0]
    assert matrix.scores[1] == [0.5, 1.0, 0.0]
