from __future__ import annotations

from research_agent.models.events import GraphEdge, GraphNode, KnowledgeGraph
from research_agent.models.knowledge import Fact, ResearchState
from research_agent.tools.web_utils import host_label


def build_graph(state: ResearchState, facts: list[Fact]) -> KnowledgeGraph | None:
    """Build the visualization graph from scratch.

    Returns None while there is nothing to show. Before any fact is stored the
    graph holds one source node per visited URL; afterwards it holds one node
    per fact source, one node per fact (``f-<index>``) and a source->fact edge.
    """
    if not facts:
        visited = state.visited_urls
        if not visited:
            return None
        return KnowledgeGraph(
            nodes=[GraphNode(id=url, label=host_label(url), type="source") for url in visited],
            edges=[],
        )

    source_nodes: dict[str, GraphNode] = {}
    fact_nodes: list[GraphNode] = []
    edges: list[GraphEdge] = []

    for index, fact in enumerate(facts):
        source_id = fact.source_url
        if source_id not in source_nodes:
            source_nodes[source_id] = GraphNode(
                id=source_id, label=host_label(source_id), type="source"
            )
        fact_id = f"f-{index}"
        fact_nodes.append(GraphNode(id=fact_id, label=fact.content, type="fact"))
        edges.append(GraphEdge(from_=source_id, to=fact_id))

    return KnowledgeGraph(nodes=[*source_nodes.values(), *fact_nodes], edges=edges)
