"""
Module router.

Turns a coarse candidate shortlist from the central index into the set of
modules a federated query should fan out to.
"""

from collections import defaultdict

from memhub.core.central_index.base import CentralIndex
from memhub.core.modules.registry import ModuleRegistry
from memhub.models.index import CandidateHit
from memhub.models.search import RoutingDecision
from memhub.utils.logger import get_logger
from memhub.utils.text import keyword_overlap

logger = get_logger(__name__)


class ModuleRouter:
    """
    Score modules by their best candidate hits.

    Per hit: coarse similarity plus ``keyword_boost`` when one of the entry's
    keywords appears in the query. Per module: the best hit plus
    ``sum_bonus`` for every further hit, capped at 1.0.
    """

    def __init__(
        self,
        index: CentralIndex,
        registry: ModuleRegistry,
        candidate_pool: int = 50,
        top_k: int = 3,
        min_route_score: float = 0.3,
        keyword_boost: float = 0.1,
        sum_bonus: float = 0.05,
    ):
        self.index = index
        self.registry = registry
        self.candidate_pool = candidate_pool
        self.top_k = top_k
        self.min_route_score = min_route_score
        self.keyword_boost = keyword_boost
        self.sum_bonus = sum_bonus

    def hit_score(self, query_text: str, hit: CandidateHit) -> tuple[float, list[str]]:
        """Routing score of a single candidate and the keywords it matched."""
        matched = keyword_overlap(query_text, hit.keywords)
        score = hit.coarse_score + (self.keyword_boost if matched else 0.0)
        return min(1.0, max(0.0, score)), matched

    def score_modules(
        self, query_text: str, hits: list[CandidateHit]
    ) -> list[RoutingDecision]:
        """Aggregate candidate hits into one ordered decision per active module."""
        per_module: dict[str, list[float]] = defaultdict(list)
        keywords: dict[str, list[str]] = defaultdict(list)

        for hit in hits:
            if not self.registry.is_active(hit.module_id):
                continue
            score, matched = self.hit_score(query_text, hit)
            per_module[hit.module_id].append(score)
            for kw in matched:
                if kw not in keywords[hit.module_id]:
                    keywords[hit.module_id].append(kw)

        decisions = [
            RoutingDecision(
                module_id=module_id,
                score=min(1.0, max(scores) + self.sum_bonus * (len(scores) - 1)),
                hits=len(scores),
                matched_keywords=keywords[module_id],
            )
            for module_id, scores in per_module.items()
        ]
        decisions.sort(key=lambda d: (-d.score, -d.hits, d.module_id))
        return decisions

    async def select_modules(
        self,
        owner_id: str,
        query_text: str,
        query_embedding: list[float],
        include: list[str] | None = None,
        top_k: int | None = None,
        hits: list[CandidateHit] | None = None,
    ) -> list[RoutingDecision]:
        """
        Choose the modules to search.

        Args:
            owner_id: Owner whose index entries are searched
            query_text: Raw query, used for keyword matching
            query_embedding: Index-size query vector
            include: Modules that must always be searched
            top_k: Override of the always-kept module count
            hits: Precomputed candidate shortlist (skips the index call)

        Returns:
            Routing decisions in fan-out order
        """
        if hits is None:
            hits = await self.index.candidate_search(
                owner_id, query_embedding, top_n=self.candidate_pool
            )
        k = self.top_k if top_k is None else top_k

        ranked = self.score_modules(query_text, hits)

        if not ranked:
            decisions = [
                RoutingDecision(module_id=module_id, reason="cold_index")
                for module_id in self.registry.active_ids()
            ]
        else:
            decisions = []
            for position, decision in enumerate(ranked):
                if decision.score >= self.min_route_score:
                    decisions.append(decision)
                elif position < k:
                    decisions.append(decision.model_copy(update={"reason": "top_k"}))

        selected = {d.module_id for d in decisions}
        for module_id in include or []:
            if module_id not in selected and self.registry.is_active(module_id):
                decisions.append(RoutingDecision(module_id=module_id, reason="explicit"))
                selected.add(module_id)

        logger.debug(
            f"Routed query to {len(decisions)} modules",
            extra={
                "owner_id": owner_id,
                "modules": [d.module_id for d in decisions],
                "candidates": len(hits),
            },
        )
        return decisions
