"""Iterative research agent

Simple CLI for running research queries.
"""

import argparse
import asyncio

from research_agent.agents.orchestrator import ResearchOrchestrator
from research_agent.services.logger import configure_logging
from research_agent.services.research_service import ResearchService


async def run_research(query: str, max_iterations: int | None = None, concurrency: int | None = None):
    """Run research on the given query."""
    print(f"Research query: {query}")
    print("-" * 50)

    service = ResearchService(
        lambda: ResearchOrchestrator(max_iterations=max_iterations, scrape_concurrency=concurrency)
    )
    research_id = service.start_research(query)

    async for update in service.get_progress_channel(research_id).subscribe():
        graph = update.knowledge_graph
        nodes = len(graph.nodes) if graph else 0
        print(f"[~] {update.message} (graph nodes: {nodes})")

        if update.is_complete:
            if update.final_report:
                print(f"\n{'='*50}")
                print("REPORT:")
                print(f"{'='*50}")
                print(update.final_report)
            break

    await service.wait_for(research_id)


def main():
    parser = argparse.ArgumentParser(description="Iterative research agent")
    parser.add_argument("--query", "-q", required=True, help="Research query")
    parser.add_argument("--iterations", "-i", type=int, help="Max iterations (default: from config)")
    parser.add_argument("--concurrency", "-c", type=int, help="Concurrent fetches per iteration")

    args = parser.parse_args()

    configure_logging()
    asyncio.run(run_research(args.query, args.iterations, args.concurrency))


if __name__ == "__main__":
    main()
