from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class GraphNode(_CamelModel):
    id: str
    label: str
    type: Literal["source", "fact"]
    iteration: Optional[int] = None


class GraphEdge(_CamelModel):
    from_: str = Field(alias="from")
    to: str


class KnowledgeGraph(_CamelModel):
    nodes: list[GraphNode] = []
    edges: list[GraphEdge] = []


class ProgressUpdate(_CamelModel):
    """A complete snapshot of a run's progress, never a delta."""

    research_id: str
    message: str
    is_complete: bool = False
    final_report: Optional[str] = None
    knowledge_graph: Optional[KnowledgeGraph] = None

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)

    def format(self) -> str:
        """Render as a server-sent-event frame."""
        return f"event: progress\ndata: {self.to_json()}\n\n"
