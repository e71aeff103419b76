"""
Data models for MemHub.

Core models:
- Memory, ScoredMemory: module-owned memory records
- CentralIndexEntry, CandidateHit: cross-module index projection
- Relationship, MemoryRef, RelatedMemory: typed edges between memories
- ModuleInfo, ModuleStats: module descriptors
- Search results: StoreResult, RoutingDecision, FederatedSearchResponse, ...
"""

from memhub.models.index import CandidateHit, CentralIndexEntry, ModuleIndexStats
from memhub.models.memory import Memory, MetadataValue, ScoredMemory, validate_metadata
from memhub.models.module import ModuleInfo, ModuleStats
from memhub.models.relationships import MemoryRef, RelatedMemory, Relationship
from memhub.models.search import (
    FederatedResult,
    FederatedSearchResponse,
    ModuleFailure,
    ReconciliationReport,
    RoutingDecision,
    ScoreBreakdown,
    StoreResult,
)

__all__ = [
    # Memory models
    "Memory",
    "ScoredMemory",
    "MetadataValue",
    "validate_metadata",
    # Index models
    "CentralIndexEntry",
    "CandidateHit",
    "ModuleIndexStats",
    # Relationship models
    "MemoryRef",
    "Relationship",
    "RelatedMemory",
    # Module models
    "ModuleInfo",
    "ModuleStats",
    # Result models
    "StoreResult",
    "RoutingDecision",
    "ScoreBreakdown",
    "FederatedResult",
    "ModuleFailure",
    "FederatedSearchResponse",
    "ReconciliationReport",
]
