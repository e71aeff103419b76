"""Relationship (edge) models."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class MemoryRef(BaseModel):
    """Address of a memory across modules."""

    model_config = ConfigDict(frozen=True)

    module_id: str
    memory_id: str

    def key(self) -> tuple[str, str]:
        return (self.module_id, self.memory_id)


class Relationship(BaseModel):
    """Typed, directed, weighted edge between two memories."""

    id: str
    owner_id: str
    source: MemoryRef
    target: MemoryRef
    relationship_type: str = "related"
    strength: float = Field(default=0.5, ge=0.0, le=1.0)
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)


class RelatedMemory(BaseModel):
    """One hop away from a memory: the other endpoint plus edge data."""

    module_id: str
    memory_id: str
    relationship_type: str
    strength: float
    direction: str = "outgoing"
    relationship_id: str | None = None
