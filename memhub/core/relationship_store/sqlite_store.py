"""
SQLite relationship store implementation.

Clean, efficient implementation using aiosqlite.
"""

import json
from datetime import datetime
from pathlib import Path
from typing import Any

import aiosqlite

from memhub.core.relationship_store.base import DIRECTIONS, RelationshipStore
from memhub.models.relationships import MemoryRef, RelatedMemory, Relationship
from memhub.utils.exceptions import RelationshipStoreError, ValidationError
from memhub.utils.id_generator import generate_relationship_id
from memhub.utils.logger import get_logger

logger = get_logger(__name__)

# SQLite's default limit on host parameters is 999
_MAX_REFS_PER_QUERY = 400


class SQLiteRelationshipStore(RelationshipStore):
    """
    SQLite-based relationship store.

    Features:
    - Fast local storage
    - JSON support for metadata
    - Upserts on the (source, target, type) unique key
    """

    def __init__(self, db_path: str = "data/relationships.db"):
        """
        Initialize SQLite relationship store.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = db_path
        self.connection: aiosqlite.Connection | None = None

        # Ensure directory exists
        if db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    async def connect(self) -> None:
        """Establish connection to SQLite."""
        if self.connection is None:
            self.connection = await aiosqlite.connect(self.db_path)
            self.connection.row_factory = aiosqlite.Row
            await self.connection.execute("PRAGMA journal_mode = WAL")
            await self.connection.commit()

    async def initialize(self) -> None:
        """Initialize database schema."""
        await self.connect()

        await self.connection.execute(
            """
            CREATE TABLE IF NOT EXISTS relationships (
                id TEXT PRIMARY KEY,
                owner_id TEXT NOT NULL,
                source_module TEXT NOT NULL,
                source_id TEXT NOT NULL,
                target_module TEXT NOT NULL,
                target_id TEXT NOT NULL,
                type TEXT NOT NULL,
                strength REAL NOT NULL DEFAULT 0.5,
                metadata TEXT DEFAULT '{}',
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL,
                UNIQUE (source_module, source_id, target_module, target_id, type)
            )
        """
        )

        await self.connection.execute(
            "CREATE INDEX IF NOT EXISTS idx_rel_source ON relationships(source_module, source_id)"
        )
        await self.connection.execute(
            "CREATE INDEX IF NOT EXISTS idx_rel_target ON relationships(target_module, target_id)"
        )
        await self.connection.execute(
            "CREATE INDEX IF NOT EXISTS idx_rel_owner ON relationships(owner_id)"
        )

        await self.connection.commit()

    def _row_to_relationship(self, row: aiosqlite.Row) -> Relationship:
        return Relationship(
            id=row["id"],
            owner_id=row["owner_id"],
            source=MemoryRef(module_id=row["source_module"], memory_id=row["source_id"]),
            target=MemoryRef(module_id=row["target_module"], memory_id=row["target_id"]),
            relationship_type=row["type"],
            strength=row["strength"],
            metadata=json.loads(row["metadata"]) if row["metadata"] else {},
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )

    async def link(
        self,
        owner_id: str,
        source: MemoryRef,
        target: MemoryRef,
        relationship_type: str = "related",
        strength: float = 0.5,
        metadata: dict[str, Any] | None = None,
    ) -> Relationship:
        if source == target:
            raise ValidationError(
                "A memory cannot be linked to itself",
                {"module_id": source.module_id, "memory_id": source.memory_id},
            )
        if not relationship_type or not relationship_type.strip():
            raise ValidationError("Relationship type cannot be empty")
        if not 0.0 <= strength <= 1.0:
            raise ValidationError(f"Strength must be within [0, 1], got {strength}")

        await self.connect()
        now = datetime.now().isoformat()

        try:
            await self.connection.execute(
                """
                INSERT INTO relationships (
                    id, owner_id, source_module, source_id, target_module, target_id,
                    type, strength, metadata, created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT (source_module, source_id, target_module, target_id, type)
                DO UPDATE SET
                    strength = excluded.strength,
                    metadata = excluded.metadata,
                    updated_at = excluded.updated_at
                """,
                (
                    generate_relationship_id(),
                    owner_id,
                    source.module_id,
                    source.memory_id,
                    target.module_id,
                    target.memory_id,
                    relationship_type,
                    strength,
                    json.dumps(metadata or {}),
                    now,
                    now,
                ),
            )
            await self.connection.commit()

            cursor = await self.connection.execute(
                """
                SELECT * FROM relationships
                WHERE source_module = ? AND source_id = ?
                  AND target_module = ? AND target_id = ? AND type = ?
                """,
                (
                    source.module_id,
                    source.memory_id,
                    target.module_id,
                    target.memory_id,
                    relationship_type,
                ),
            )
            row = await cursor.fetchone()
        except aiosqlite.Error as e:
            logger.error(
                f"Failed to link memories: {e}",
                extra={"owner_id": owner_id, "type": relationship_type, "error": str(e)},
            )
            raise RelationshipStoreError(f"Failed to link memories: {e}") from e

        return self._row_to_relationship(row)

    async def related_to(
        self,
        owner_id: str,
        module_id: str,
        memory_id: str,
        types: list[str] | None = None,
        direction: str = "both",
        limit: int = 100,
    ) -> list[RelatedMemory]:
        if direction not in DIRECTIONS:
            raise ValidationError(f"direction must be one of {DIRECTIONS}, got {direction!r}")
        if limit <= 0:
            return []

        await self.connect()

        type_clause = ""
        type_params: list[Any] = []
        if types:
            type_clause = f" AND type IN ({', '.join('?' * len(types))})"
            type_params = list(types)

        queries = []
        params: list[Any] = []
        if direction in ("outgoing", "both"):
            queries.append(
                "SELECT id, target_module AS module_id, target_id AS memory_id, type, strength,"
                " 'outgoing' AS direction FROM relationships"
                " WHERE owner_id = ? AND source_module = ? AND source_id = ?" + type_clause
            )
            params += [owner_id, module_id, memory_id, *type_params]
        if direction in ("incoming", "both"):
            queries.append(
                "SELECT id, source_module AS module_id, source_id AS memory_id, type, strength,"
                " 'incoming' AS direction FROM relationships"
                " WHERE owner_id = ? AND target_module = ? AND target_id = ?" + type_clause
            )
            params += [owner_id, module_id, memory_id, *type_params]

        query = (
            " UNION ALL ".join(queries)
            + " ORDER BY strength DESC, module_id ASC, memory_id ASC, type ASC LIMIT ?"
        )
        params.append(limit)

        try:
            cursor = await self.connection.execute(query, params)
            rows = await cursor.fetchall()
        except aiosqlite.Error as e:
            raise RelationshipStoreError(f"Failed to query relationships: {e}") from e

        return [
            RelatedMemory(
                module_id=row["module_id"],
                memory_id=row["memory_id"],
                relationship_type=row["type"],
                strength=row["strength"],
                direction=row["direction"],
                relationship_id=row["id"],
            )
            for row in rows
        ]

    async def unlink(
        self,
        owner_id: str,
        source: MemoryRef,
        target: MemoryRef,
        relationship_type: str | None = None,
    ) -> int:
        await self.connect()

        query = (
            "DELETE FROM relationships WHERE owner_id = ?"
            " AND source_module = ? AND source_id = ? AND target_module = ? AND target_id = ?"
        )
        params: list[Any] = [
            owner_id,
            source.module_id,
            source.memory_id,
            target.module_id,
            target.memory_id,
        ]
        if relationship_type is not None:
            query += " AND type = ?"
            params.append(relationship_type)

        try:
            cursor = await self.connection.execute(query, params)
            await self.connection.commit()
        except aiosqlite.Error as e:
            raise RelationshipStoreError(f"Failed to unlink memories: {e}") from e
        return cursor.rowcount

    async def delete_for_memory(self, module_id: str, memory_id: str) -> int:
        await self.connect()

        try:
            cursor = await self.connection.execute(
                """
                DELETE FROM relationships
                WHERE (source_module = ? AND source_id = ?)
                   OR (target_module = ? AND target_id = ?)
                """,
                (module_id, memory_id, module_id, memory_id),
            )
            await self.connection.commit()
        except aiosqlite.Error as e:
            logger.error(
                f"Failed to delete relationships: {e}",
                extra={"module_id": module_id, "memory_id": memory_id, "error": str(e)},
            )
            raise RelationshipStoreError(f"Failed to delete relationships: {e}") from e
        return cursor.rowcount

    async def edges_among(self, owner_id: str, refs: list[MemoryRef]) -> list[Relationship]:
        unique = list(dict.fromkeys(refs))
        if len(unique) < 2:
            return []

        await self.connect()
        wanted = {ref.key() for ref in unique}
        edges: dict[str, Relationship] = {}

        # Fetch edges leaving any ref, then keep those landing inside the set
        for start in range(0, len(unique), _MAX_REFS_PER_QUERY):
            chunk = unique[start : start + _MAX_REFS_PER_QUERY]
            clause = " OR ".join("(source_module = ? AND source_id = ?)" for _ in chunk)
            params: list[Any] = [owner_id]
            for ref in chunk:
                params += [ref.module_id, ref.memory_id]

            try:
                cursor = await self.connection.execute(
                    f"SELECT * FROM relationships WHERE owner_id = ? AND ({clause})", params
                )
                rows = await cursor.fetchall()
            except aiosqlite.Error as e:
                raise RelationshipStoreError(f"Failed to query relationships: {e}") from e

            for row in rows:
                if (row["target_module"], row["target_id"]) in wanted:
                    edges[row["id"]] = self._row_to_relationship(row)

        return sorted(edges.values(), key=lambda r: (-r.strength, r.id))

    async def count(self, owner_id: str | None = None) -> int:
        await self.connect()

        if owner_id is None:
            cursor = await self.connection.execute("SELECT COUNT(*) FROM relationships")
        else:
            cursor = await self.connection.execute(
                "SELECT COUNT(*) FROM relationships WHERE owner_id = ?", (owner_id,)
            )
        row = await cursor.fetchone()
        return row[0]

    async def close(self) -> None:
        """Close the connection."""
        if self.connection is not None:
            await self.connection.close()
            self.connection = None
