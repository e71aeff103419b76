"""Relationship edges between memories across modules."""

from memhub.core.relationship_store.base import DIRECTIONS, RelationshipStore
from memhub.core.relationship_store.sqlite_store import SQLiteRelationshipStore
from memhub.core.relationship_store.traversal import walk_related

__all__ = [
    "DIRECTIONS",
    "RelationshipStore",
    "SQLiteRelationshipStore",
    "walk_related",
]
