"""
Federated search orchestrator.

Answers one query across many modules:
1. embed the query once
2. route it to a subset of modules through the central index
3. fan out concurrent per-module searches with per-branch and overall timeouts
4. hydrate strong index candidates the module searches missed
5. fuse scores, de-duplicate, order deterministically and truncate

Only input errors and embedding errors escape; everything else degrades
the answer and is reported in the response.
"""

import asyncio
import time
from typing import TYPE_CHECKING

from memhub.config import SearchConfig
from memhub.core.central_index.base import CentralIndex
from memhub.core.embeddings.gateway import EmbeddingGateway
from memhub.core.modules.base import MemoryModule
from memhub.core.modules.registry import ModuleRegistry
from memhub.core.relationship_store.base import RelationshipStore
from memhub.models.index import CandidateHit, CentralIndexEntry
from memhub.models.memory import Memory, ScoredMemory
from memhub.models.relationships import MemoryRef
from memhub.models.search import (
    FederatedResult,
    FederatedSearchResponse,
    ModuleFailure,
    RoutingDecision,
)
from memhub.services.fusion import ScoreFusion
from memhub.services.router import ModuleRouter
from memhub.utils.exceptions import ValidationError
from memhub.utils.logger import get_logger
from memhub.utils.vectors import cosine_similarity

if TYPE_CHECKING:
    from memhub.services.reconciliation import IndexReconciler

logger = get_logger(__name__)

Key = tuple[str, str]


class FederatedSearchOrchestrator:
    """Concurrent cross-module search with score fusion."""

    def __init__(
        self,
        registry: ModuleRegistry,
        index: CentralIndex,
        gateway: EmbeddingGateway,
        router: ModuleRouter,
        relationships: RelationshipStore | None = None,
        fusion: ScoreFusion | None = None,
        config: SearchConfig | None = None,
        reconciler: "IndexReconciler | None" = None,
    ):
        self.registry = registry
        self.index = index
        self.gateway = gateway
        self.router = router
        self.relationships = relationships
        self.fusion = fusion or ScoreFusion()
        self.config = config or SearchConfig()
        self.reconciler = reconciler

    def _validate(
        self,
        owner_id: str,
        query_text: str,
        limit: int,
        module_filter: list[str] | None,
        min_score: float | None,
    ) -> None:
        if not isinstance(owner_id, str) or not owner_id.strip():
            raise ValidationError("owner_id cannot be empty")
        if not isinstance(query_text, str) or not query_text.strip():
            raise ValidationError("Query cannot be empty")
        if limit <= 0:
            raise ValidationError(f"limit must be positive, got {limit}")
        if min_score is not None and not 0.0 <= min_score <= 1.0:
            raise ValidationError(f"min_score must be within [0, 1], got {min_score}")
        if module_filter is not None:
            if not module_filter:
                raise ValidationError("module_filter cannot be empty")
            for module_id in module_filter:
                self.registry.require(module_id)

    async def federated_search(
        self,
        owner_id: str,
        query_text: str,
        limit: int | None = None,
        module_filter: list[str] | None = None,
        min_score: float | None = None,
        use_relationships: bool = True,
    ) -> FederatedSearchResponse:
        """
        Search every relevant module of an owner and merge the results.

        Args:
            owner_id: Owner whose memories are searched
            query_text: Free-text query
            limit: Maximum results (default from config, capped at max_limit)
            module_filter: Search exactly these modules instead of routing
            min_score: Minimum module-local similarity
            use_relationships: Boost results linked to other results

        Returns:
            FederatedSearchResponse

        Raises:
            ValidationError: Bad owner, query, limit or module filter
            EmbeddingUnavailableError: Query embedding failed after retries
            EmbeddingInputError: Provider rejected the query
        """
        limit = self.config.default_limit if limit is None else limit
        self._validate(owner_id, query_text, limit, module_filter, min_score)
        limit = min(limit, self.config.max_limit)
        started = time.perf_counter()
        deadline = started + self.config.overall_timeout
        timed_out: list[str] = []

        full_vector, index_vector = await self.gateway.embed_pair(query_text)

        index_ok = True
        try:
            hits = await self._within(
                deadline,
                self.index.candidate_search(
                    owner_id,
                    index_vector,
                    top_n=self.config.candidate_pool,
                    module_ids=module_filter,
                ),
            )
        except asyncio.TimeoutError:
            index_ok = False
            hits = []
            timed_out.append("candidate_search")
            logger.warning(
                "Candidate search timed out, routing without index",
                extra={"owner_id": owner_id},
            )
        except Exception as e:
            index_ok = False
            hits = []
            logger.warning(
                f"Candidate search failed, routing without index: {e}",
                extra={"owner_id": owner_id, "error": str(e), "error_type": type(e).__name__},
            )

        if module_filter is not None:
            routing = self._filter_decisions(query_text, hits, module_filter)
        else:
            routing = await self.router.select_modules(
                owner_id, query_text, index_vector, hits=hits
            )

        per_module_limit = limit * max(1, self.config.oversample)
        module_results, failures = await self._fan_out(
            owner_id,
            [d.module_id for d in routing],
            full_vector,
            per_module_limit,
            min_score,
            deadline,
        )

        merged: dict[Key, tuple[ScoredMemory, str]] = {}
        for module_id in sorted(module_results):
            for scored in module_results[module_id]:
                merged.setdefault((module_id, scored.memory.id), (scored, "module_search"))

        succeeded = set(module_results)
        stale_dropped = 0
        if self.config.hydrate_candidates and hits:
            stale_dropped = await self._hydrate(
                owner_id, hits, succeeded, merged, full_vector, min_score, deadline, timed_out
            )

        results = await self._rank(
            owner_id, merged, hits, routing, use_relationships, deadline, timed_out
        )
        results = results[:limit]

        await self._touch(results, deadline)

        elapsed_ms = (time.perf_counter() - started) * 1000
        response = FederatedSearchResponse(
            query=query_text,
            results=results,
            searched_modules=sorted(succeeded),
            failed_modules=failures,
            routing=routing,
            stale_dropped=stale_dropped,
            timed_out_stages=timed_out,
            degraded=bool(failures) or stale_dropped > 0 or not index_ok or bool(timed_out),
            elapsed_ms=elapsed_ms,
        )

        logger.info(
            f"Federated search returned {len(results)} results",
            extra={
                "operation": "federated_search",
                "owner_id": owner_id,
                "modules": [d.module_id for d in routing],
                "failed": [f.module_id for f in failures],
                "stale_dropped": stale_dropped,
                "elapsed_ms": round(elapsed_ms, 1),
            },
        )
        return response

    @staticmethod
    async def _within(deadline: float, awaitable):
        """Await ``awaitable`` within what is left of the overall budget."""
        remaining = max(0.0, deadline - time.perf_counter())
        return await asyncio.wait_for(awaitable, timeout=remaining)

    def _filter_decisions(
        self, query_text: str, hits: list[CandidateHit], module_filter: list[str]
    ) -> list[RoutingDecision]:
        """Decisions for an explicit filter, scored by their best candidates."""
        scored = {d.module_id: d for d in self.router.score_modules(query_text, hits)}
        decisions = []
        for module_id in dict.fromkeys(module_filter):
            base = scored.get(module_id)
            if base is None:
                decisions.append(RoutingDecision(module_id=module_id, reason="filter"))
            else:
                decisions.append(base.model_copy(update={"reason": "filter"}))
        return decisions

    async def _search_branch(
        self,
        module: MemoryModule,
        semaphore: asyncio.Semaphore,
        owner_id: str,
        vector: list[float],
        limit: int,
        min_score: float | None,
    ) -> list[ScoredMemory] | ModuleFailure:
        try:
            async with semaphore:
                return await asyncio.wait_for(
                    module.search_by_embedding(owner_id, vector, limit, min_score),
                    timeout=self.config.module_timeout,
                )
        except asyncio.TimeoutError:
            return ModuleFailure(
                module_id=module.module_id,
                reason="timeout",
                message=f"no answer within {self.config.module_timeout}s",
            )
        except Exception as e:
            logger.warning(
                f"Module {module.module_id} search failed: {e}",
                extra={
                    "owner_id": owner_id,
                    "module_id": module.module_id,
                    "error": str(e),
                    "error_type": type(e).__name__,
                },
            )
            return ModuleFailure(module_id=module.module_id, reason="error", message=str(e))

    async def _fan_out(
        self,
        owner_id: str,
        module_ids: list[str],
        vector: list[float],
        limit: int,
        min_score: float | None,
        deadline: float,
    ) -> tuple[dict[str, list[ScoredMemory]], list[ModuleFailure]]:
        """Run every module search concurrently and settle all branches by the deadline."""
        if not module_ids:
            return {}, []

        semaphore = asyncio.Semaphore(max(1, self.config.max_concurrency))
        tasks: dict[asyncio.Task, str] = {}
        for module_id in module_ids:
            module = self.registry.get(module_id)
            if module is None:
                continue
            task = asyncio.create_task(
                self._search_branch(module, semaphore, owner_id, vector, limit, min_score)
            )
            tasks[task] = module_id

        remaining = max(0.0, deadline - time.perf_counter())
        done, pending = await asyncio.wait(tasks, timeout=remaining)

        failures: list[ModuleFailure] = []
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
            for task in pending:
                failures.append(
                    ModuleFailure(
                        module_id=tasks[task],
                        reason="timeout",
                        message=f"overall timeout {self.config.overall_timeout}s reached",
                    )
                )

        results: dict[str, list[ScoredMemory]] = {}
        for task in done:
            module_id = tasks[task]
            if task.cancelled():
                failures.append(ModuleFailure(module_id=module_id, reason="cancelled"))
                continue
            outcome = task.result()
            if isinstance(outcome, ModuleFailure):
                failures.append(outcome)
            else:
                results[module_id] = outcome

        failures.sort(key=lambda f: f.module_id)
        return results, failures

    async def _hydrate(
        self,
        owner_id: str,
        hits: list[CandidateHit],
        succeeded: set[str],
        merged: dict[Key, tuple[ScoredMemory, str]],
        query_vector: list[float],
        min_score: float | None,
        deadline: float,
        timed_out: list[str],
    ) -> int:
        """
        Fetch strong candidates no module search returned.

        A candidate whose module no longer has the memory is stale: it is
        dropped and handed to the reconciler. Hydration that does not finish
        by the deadline is skipped as a whole.
        """
        pending = [
            hit
            for hit in hits
            if hit.coarse_score >= self.config.hydrate_min_score
            and hit.module_id in succeeded
            and (hit.module_id, hit.remote_memory_id) not in merged
        ]
        if not pending:
            return 0

        try:
            fetched = await self._within(
                deadline,
                asyncio.gather(
                    *(
                        self.registry.get(hit.module_id).get(owner_id, hit.remote_memory_id)
                        for hit in pending
                    ),
                    return_exceptions=True,
                ),
            )
        except asyncio.TimeoutError:
            timed_out.append("hydration")
            logger.warning(
                f"Candidate hydration timed out, skipped {len(pending)} candidates",
                extra={"owner_id": owner_id},
            )
            return 0

        stale = 0
        for hit, outcome in zip(pending, fetched, strict=True):
            if isinstance(outcome, BaseException):
                logger.warning(
                    f"Candidate hydration failed: {outcome}",
                    extra={
                        "owner_id": owner_id,
                        "module_id": hit.module_id,
                        "memory_id": hit.remote_memory_id,
                        "error": str(outcome),
                    },
                )
                continue

            if outcome is None:
                stale += 1
                await self._drop_stale(hit.module_id, hit.remote_memory_id, deadline)
                continue

            memory: Memory = outcome
            similarity = (
                cosine_similarity(memory.embedding, query_vector)
                if len(memory.embedding) == len(query_vector)
                else 0.0
            )
            if min_score is not None and similarity < min_score:
                continue
            merged[(hit.module_id, memory.id)] = (
                ScoredMemory(memory=memory, score=similarity),
                "candidate",
            )

        return stale

    async def _drop_stale(self, module_id: str, memory_id: str, deadline: float) -> None:
        logger.info(
            f"Dropping stale index entry {module_id}/{memory_id}",
            extra={"module_id": module_id, "memory_id": memory_id},
        )
        if self.reconciler is None:
            return
        try:
            # Left for the next reconcile run when the budget is spent
            await self._within(deadline, self.reconciler.drop_stale(module_id, memory_id))
        except Exception as e:
            logger.warning(
                f"Stale entry cleanup failed: {e}",
                extra={"module_id": module_id, "memory_id": memory_id, "error": str(e)},
            )

    async def _rank(
        self,
        owner_id: str,
        merged: dict[Key, tuple[ScoredMemory, str]],
        hits: list[CandidateHit],
        routing: list[RoutingDecision],
        use_relationships: bool,
        deadline: float,
        timed_out: list[str],
    ) -> list[FederatedResult]:
        if not merged:
            return []

        keys = list(merged)
        try:
            entries = await self._within(deadline, self.index.get_entries(owner_id, keys))
        except asyncio.TimeoutError:
            entries = {}
            timed_out.append("index_entries")
            logger.warning("Index entry lookup timed out", extra={"owner_id": owner_id})
        except Exception as e:
            entries = {}
            logger.warning(
                f"Index entry lookup failed: {e}",
                extra={"owner_id": owner_id, "error": str(e)},
            )

        strengths = (
            await self._relationship_strengths(owner_id, keys, deadline, timed_out)
            if use_relationships
            else {}
        )

        hit_scores: dict[Key, float] = {}
        for hit in hits:
            key = (hit.module_id, hit.remote_memory_id)
            hit_scores.setdefault(key, hit.coarse_score)
        module_scores = {d.module_id: d.score for d in routing}

        results = []
        for key in keys:
            scored, source = merged[key]
            entry: CentralIndexEntry | None = entries.get(key)
            memory = scored.memory

            if entry is not None:
                importance = self.fusion.importance(entry.importance_score, entry.access_count)
            else:
                importance = 0.5

            activity = memory.last_activity()
            if entry is not None and entry.last_accessed and entry.last_accessed > activity:
                activity = entry.last_accessed

            routing_score = hit_scores.get(key, module_scores.get(key[0], 0.0))

            breakdown = self.fusion.fuse(
                semantic=scored.score,
                routing=routing_score,
                importance=importance,
                recency=self.fusion.recency(activity),
                relationship=strengths.get(key, 0.0),
            )
            results.append(
                FederatedResult(
                    memory=memory,
                    module_id=key[0],
                    breakdown=breakdown,
                    index_similarity=hit_scores.get(key),
                    indexed=entry is not None,
                    source=source,
                )
            )

        results.sort(key=lambda r: (-r.breakdown.fused, r.module_id, r.memory.id))
        return results

    async def _relationship_strengths(
        self, owner_id: str, keys: list[Key], deadline: float, timed_out: list[str]
    ) -> dict[Key, float]:
        """Strongest edge linking each item to another item of the merged set."""
        if self.relationships is None or len(keys) < 2:
            return {}

        refs = [MemoryRef(module_id=m, memory_id=i) for m, i in keys]
        try:
            edges = await self._within(deadline, self.relationships.edges_among(owner_id, refs))
        except asyncio.TimeoutError:
            timed_out.append("relationships")
            logger.warning("Relationship lookup timed out", extra={"owner_id": owner_id})
            return {}
        except Exception as e:
            logger.warning(
                f"Relationship lookup failed: {e}",
                extra={"owner_id": owner_id, "error": str(e)},
            )
            return {}

        strengths: dict[Key, float] = {}
        for edge in edges:
            for ref in (edge.source, edge.target):
                key = ref.key()
                strengths[key] = max(strengths.get(key, 0.0), edge.strength)
        return strengths

    async def _touch(self, results: list[FederatedResult], deadline: float) -> None:
        """Record access on surfaced index entries; failures and timeouts are only logged."""
        indexed = [r for r in results if r.indexed]
        if not indexed:
            return

        try:
            outcomes = await self._within(
                deadline,
                asyncio.gather(
                    *(self.index.touch_access(r.module_id, r.memory.id) for r in indexed),
                    return_exceptions=True,
                ),
            )
        except asyncio.TimeoutError:
            logger.warning(
                f"Access tracking timed out for {len(indexed)} results",
                extra={"operation": "touch_access"},
            )
            return

        for result, outcome in zip(indexed, outcomes, strict=True):
            if isinstance(outcome, BaseException):
                logger.warning(
                    f"touch_access failed: {outcome}",
                    extra={
                        "module_id": result.module_id,
                        "memory_id": result.memory.id,
                        "error": str(outcome),
                    },
                )
