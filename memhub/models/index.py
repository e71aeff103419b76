"""Central index models."""

from datetime import datetime

from pydantic import BaseModel, Field


class CentralIndexEntry(BaseModel):
    """
    Compact cross-module projection of one memory.

    Holds no content, only what is needed to route and rank. Unique per
    (module_id, remote_memory_id).
    """

    id: str
    owner_id: str
    module_id: str
    remote_memory_id: str
    embedding: list[float] = Field(default_factory=list, description="Index embedding")
    title: str = ""
    summary: str = ""
    keywords: list[str] = Field(default_factory=list)
    categories: list[str] = Field(default_factory=list)
    importance_score: float = Field(default=0.5, ge=0.0, le=1.0)
    access_count: int = Field(default=0, ge=0)
    last_accessed: datetime | None = None
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)


class CandidateHit(BaseModel):
    """One entry of a coarse candidate shortlist."""

    module_id: str
    remote_memory_id: str
    coarse_score: float
    importance_score: float = 0.5
    access_count: int = 0
    last_accessed: datetime | None = None
    keywords: list[str] = Field(default_factory=list)


class ModuleIndexStats(BaseModel):
    """Per-module aggregate over an owner's index entries."""

    module_id: str
    memory_count: int
    avg_importance: float
    total_access: int
