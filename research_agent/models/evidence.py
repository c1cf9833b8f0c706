from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class EvidenceSource(BaseModel):
    id: str
    label: str


class EvidenceFact(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    label: str
    source_id: str


class EvidenceMatrix(BaseModel):
    """Cross-source support scores: one row per source, one column per fact."""

    sources: list[EvidenceSource] = []
    facts: list[EvidenceFact] = []
    scores: list[list[float]] = []
