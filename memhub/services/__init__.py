"""
Services for MemHub.

High-level business logic services:
- MemoryHub: Unified interface for all memory operations
- ModuleRouter: Chooses modules for a query from the central index
- FederatedSearchOrchestrator: Concurrent cross-module search
- ScoreFusion: Ranking of merged results
- IndexReconciler: Central index / module consistency repair
"""

from memhub.services.federated_search import FederatedSearchOrchestrator
from memhub.services.fusion import ScoreFusion
from memhub.services.memory_hub import MemoryHub
from memhub.services.reconciliation import IndexReconciler
from memhub.services.router import ModuleRouter

__all__ = [
    "MemoryHub",
    "ModuleRouter",
    "FederatedSearchOrchestrator",
    "ScoreFusion",
    "IndexReconciler",
]
