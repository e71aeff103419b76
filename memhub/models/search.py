"""
Result models for store, routing and federated search operations.
"""

from typing import Literal

from pydantic import BaseModel, Field

from memhub.models.memory import Memory


class StoreResult(BaseModel):
    """
    Outcome of storing a memory.

    The memory is persisted even when ``indexed`` is False; the reason the
    central index write failed is carried in ``warnings``.
    """

    memory_id: str
    module_id: str
    indexed: bool = True
    warnings: list[str] = Field(default_factory=list)


class RoutingDecision(BaseModel):
    """Why a module was (or was not) part of a fan-out."""

    module_id: str
    score: float = 0.0
    hits: int = 0
    matched_keywords: list[str] = Field(default_factory=list)
    reason: Literal["routed", "top_k", "explicit", "filter", "cold_index"] = "routed"


class ScoreBreakdown(BaseModel):
    """Components of a fused ranking score, each in [0, 1]."""

    semantic: float = 0.0
    routing: float = 0.0
    importance: float = 0.5
    recency: float = 0.0
    relationship: float = 0.0
    fused: float = 0.0


class FederatedResult(BaseModel):
    """One ranked item of a federated search."""

    memory: Memory
    module_id: str
    breakdown: ScoreBreakdown
    index_similarity: float | None = None
    indexed: bool = True
    source: Literal["module_search", "candidate"] = "module_search"

    @property
    def score(self) -> float:
        return self.breakdown.fused


class ModuleFailure(BaseModel):
    """A module branch that contributed no results."""

    module_id: str
    reason: Literal["timeout", "error", "cancelled"]
    message: str = ""


class FederatedSearchResponse(BaseModel):
    """Merged, ranked answer to a federated query."""

    query: str
    results: list[FederatedResult] = Field(default_factory=list)
    searched_modules: list[str] = Field(default_factory=list)
    failed_modules: list[ModuleFailure] = Field(default_factory=list)
    routing: list[RoutingDecision] = Field(default_factory=list)
    stale_dropped: int = 0
    timed_out_stages: list[str] = Field(default_factory=list)
    degraded: bool = False
    elapsed_ms: float = 0.0


class ReconciliationReport(BaseModel):
    """Summary of one reconciliation pass."""

    owner_id: str | None = None
    modules_checked: list[str] = Field(default_factory=list)
    entries_removed: int = 0
    entries_reindexed: int = 0
    orphans_flushed: int = 0
    errors: list[str] = Field(default_factory=list)
