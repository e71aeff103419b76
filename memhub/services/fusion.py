"""
Score fusion for federated results.

Combines module-local similarity with index-side signals into one ranking
score. Every component is clamped to [0, 1] and the weights are
non-negative, so the fused score never decreases when a component grows.
"""

import math
from datetime import datetime

from memhub.config import FusionConfig
from memhub.models.search import ScoreBreakdown


def _clamp(value: float) -> float:
    return max(0.0, min(1.0, value))


class ScoreFusion:
    """Weighted linear fusion of ranking signals."""

    def __init__(self, config: FusionConfig | None = None):
        self.config = config or FusionConfig()

    def importance(self, importance_score: float, access_count: int) -> float:
        boost = self.config.access_boost * math.log1p(max(0, access_count))
        return _clamp(importance_score + boost)

    def recency(self, last_activity: datetime | None, now: datetime | None = None) -> float:
        """Exponential decay with the configured half-life; 0 when unknown."""
        if last_activity is None:
            return 0.0
        now = now or datetime.now()
        age_days = max(0.0, (now - last_activity).total_seconds() / 86400.0)
        return 0.5 ** (age_days / self.config.recency_half_life_days)

    def fuse(
        self,
        semantic: float,
        routing: float,
        importance: float,
        recency: float,
        relationship: float = 0.0,
    ) -> ScoreBreakdown:
        semantic = _clamp(semantic)
        routing = _clamp(routing)
        importance = _clamp(importance)
        recency = _clamp(recency)
        relationship = _clamp(relationship)

        cfg = self.config
        fused = (
            cfg.semantic_weight * semantic
            + cfg.routing_weight * routing
            + cfg.importance_weight * importance
            + cfg.recency_weight * recency
            + cfg.relationship_weight * relationship
        )
        return ScoreBreakdown(
            semantic=semantic,
            routing=routing,
            importance=importance,
            recency=recency,
            relationship=relationship,
            fused=fused,
        )
