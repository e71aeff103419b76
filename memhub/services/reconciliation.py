"""
Index reconciliation.

The central index and the relationship store are derived from module
partitions and can drift when a dual write half-fails. Drift is repaired:
1. Lazily: federated search drops stale entries it trips over
2. On delete failure: the orphan is queued and retried
3. Periodically: a batch pass compares modules with the index
"""

import asyncio

from memhub.core.central_index.base import CentralIndex
from memhub.core.modules.registry import ModuleRegistry
from memhub.core.relationship_store.base import RelationshipStore
from memhub.models.search import ReconciliationReport
from memhub.utils.logger import get_logger

logger = get_logger(__name__)


class IndexReconciler:
    """Keeps the central index and relationships consistent with modules."""

    def __init__(
        self,
        registry: ModuleRegistry,
        index: CentralIndex,
        relationships: RelationshipStore,
    ):
        self.registry = registry
        self.index = index
        self.relationships = relationships
        self._orphans: set[tuple[str, str]] = set()
        self._worker_task: asyncio.Task | None = None

    @property
    def pending_orphans(self) -> list[tuple[str, str]]:
        return sorted(self._orphans)

    async def drop_stale(self, module_id: str, memory_id: str) -> None:
        """Remove the index entry and edges of a memory its module no longer has."""
        await self.index.remove(module_id, memory_id)
        removed = await self.relationships.delete_for_memory(module_id, memory_id)
        logger.info(
            f"Dropped stale entry {module_id}/{memory_id}",
            extra={"module_id": module_id, "memory_id": memory_id, "edges_removed": removed},
        )

    def register_orphan(self, module_id: str, memory_id: str) -> None:
        """Queue a deleted memory whose derived rows could not be removed."""
        self._orphans.add((module_id, memory_id))
        logger.warning(
            f"Registered orphan {module_id}/{memory_id}",
            extra={"module_id": module_id, "memory_id": memory_id},
        )

    async def flush_orphans(self) -> int:
        """
        Retry cleanup of queued orphans.

        Returns:
            Number of orphans cleaned up; failures stay queued
        """
        flushed = 0
        for module_id, memory_id in sorted(self._orphans):
            try:
                await self.drop_stale(module_id, memory_id)
            except Exception as e:
                logger.warning(
                    f"Orphan cleanup still failing for {module_id}/{memory_id}: {e}",
                    extra={"module_id": module_id, "memory_id": memory_id, "error": str(e)},
                )
                continue
            self._orphans.discard((module_id, memory_id))
            flushed += 1
        return flushed

    async def reconcile(self, owner_id: str | None = None) -> ReconciliationReport:
        """
        Compare every active module with the central index.

        Index entries without a memory are removed; memories without an
        entry are re-indexed from the module.

        Args:
            owner_id: Restrict the pass to one owner (all owners when None)
        """
        report = ReconciliationReport(owner_id=owner_id)
        report.orphans_flushed = await self.flush_orphans()

        for module in self.registry.active():
            module_id = module.module_id
            report.modules_checked.append(module_id)

            try:
                memory_keys = set(await module.list_memory_ids(owner_id))
                entries = await self.index.list_entries(owner_id=owner_id, module_id=module_id)
            except Exception as e:
                logger.error(
                    f"Reconciliation of {module_id} failed: {e}",
                    extra={"module_id": module_id, "owner_id": owner_id, "error": str(e)},
                )
                report.errors.append(f"{module_id}: {e}")
                continue

            entry_keys = {(e.owner_id, e.remote_memory_id) for e in entries}

            for entry_owner, memory_id in sorted(entry_keys - memory_keys):
                try:
                    await self.drop_stale(module_id, memory_id)
                    report.entries_removed += 1
                except Exception as e:
                    report.errors.append(f"{module_id}/{memory_id}: {e}")

            for memory_owner, memory_id in sorted(memory_keys - entry_keys):
                try:
                    if await module.reindex(memory_owner, memory_id):
                        report.entries_reindexed += 1
                except Exception as e:
                    report.errors.append(f"{module_id}/{memory_id}: {e}")

        logger.info(
            "Reconciliation complete",
            extra={
                "owner_id": owner_id,
                "entries_removed": report.entries_removed,
                "entries_reindexed": report.entries_reindexed,
                "orphans_flushed": report.orphans_flushed,
                "errors": len(report.errors),
            },
        )
        return report

    def start_background_worker(self, interval_hours: float = 24):
        """
        Start background reconciliation worker.

        Args:
            interval_hours: Hours between reconciliation runs
        """
        if self._worker_task is None or self._worker_task.done():
            self._worker_task = asyncio.create_task(self._reconciliation_worker(interval_hours))

    def stop_background_worker(self):
        """Stop background reconciliation worker."""
        if self._worker_task and not self._worker_task.done():
            self._worker_task.cancel()

    async def _reconciliation_worker(self, interval_hours: float):
        """Background worker that periodically reconciles all owners."""
        while True:
            try:
                await asyncio.sleep(interval_hours * 3600)
                logger.info("Starting periodic reconciliation")
                await self.reconcile()
            except asyncio.CancelledError:
                logger.info("Background reconciliation worker stopped")
                break
            except Exception as e:
                logger.error(f"Error in reconciliation worker: {e}")
