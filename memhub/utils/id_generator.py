"""
ID generation utilities for MemHub.

Provides consistent ID generation for all entity types:
- Memories: mem_xxx
- Relationships: rel_xxx
- Index entries: deterministic UUID derived from (module_id, remote_memory_id)
"""

from uuid import NAMESPACE_URL, uuid4, uuid5


def generate_memory_id() -> str:
    """
    Generate unique Memory ID.

    Returns:
        ID in format "mem_xxx" where xxx is 12 hex characters
    """
    return f"mem_{uuid4().hex[:12]}"


def generate_relationship_id() -> str:
    """
    Generate unique Relationship ID.

    Returns:
        ID in format "rel_xxx" where xxx is 12 hex characters
    """
    return f"rel_{uuid4().hex[:12]}"


def index_entry_id(module_id: str, remote_memory_id: str) -> str:
    """
    Derive the central index entry ID for a module memory.

    The same (module_id, remote_memory_id) pair always maps to the same ID,
    so concurrent upserts for one memory land on a single entry.

    Args:
        module_id: Owning module
        remote_memory_id: Memory ID inside the module

    Returns:
        UUID string
    """
    return str(uuid5(NAMESPACE_URL, f"memhub-index:{module_id}:{remote_memory_id}"))


def partition_point_id(owner_id: str, memory_id: str) -> str:
    """
    Derive the vector store point ID for a memory inside a module partition.

    Memory IDs are only unique per owner, so the owner is part of the key.
    """
    return str(uuid5(NAMESPACE_URL, f"memhub-memory:{owner_id}:{memory_id}"))
