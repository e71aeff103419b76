"""
Bounded multi-hop traversal over the relationship store.
"""

from collections import deque

from memhub.core.relationship_store.base import RelationshipStore
from memhub.models.relationships import MemoryRef, RelatedMemory


async def walk_related(
    store: RelationshipStore,
    owner_id: str,
    start: MemoryRef,
    max_hops: int = 2,
    limit: int = 50,
    types: list[str] | None = None,
    direction: str = "outgoing",
) -> list[tuple[RelatedMemory, int]]:
    """
    Breadth-first neighbourhood of ``start`` up to ``max_hops`` edges away.

    Each memory is reported once, at the hop it was first reached. The
    visited set makes this terminate on cyclic graphs.

    Returns:
        (neighbour, hop) pairs in BFS order, at most ``limit`` of them
    """
    if max_hops <= 0 or limit <= 0:
        return []

    visited: set[tuple[str, str]] = {start.key()}
    frontier: deque[tuple[MemoryRef, int]] = deque([(start, 0)])
    found: list[tuple[RelatedMemory, int]] = []

    while frontier:
        ref, depth = frontier.popleft()
        if depth >= max_hops:
            continue

        neighbours = await store.related_to(
            owner_id, ref.module_id, ref.memory_id, types=types, direction=direction
        )
        for neighbour in neighbours:
            key = (neighbour.module_id, neighbour.memory_id)
            if key in visited:
                continue
            visited.add(key)
            found.append((neighbour, depth + 1))
            if len(found) >= limit:
                return found
            frontier.append(
                (MemoryRef(module_id=neighbour.module_id, memory_id=neighbour.memory_id), depth + 1)
            )

    return found
