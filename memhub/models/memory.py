"""
Memory model: one stored unit of user content owned by exactly one module.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, field_validator

Scalar = str | int | float | bool | None
MetadataValue = Scalar | list[Scalar]


def validate_metadata(metadata: dict[str, Any] | None) -> dict[str, MetadataValue]:
    """
    Check that a metadata document only holds scalars or flat lists of scalars.

    Metadata is opaque to everything except the owning module, but it must
    stay serialisable into any partition store, so nested objects are
    rejected here at the module boundary.

    Raises:
        ValueError: On non-string keys or unsupported value kinds
    """
    if metadata is None:
        return {}
    if not isinstance(metadata, dict):
        raise ValueError("metadata must be a mapping")

    clean: dict[str, MetadataValue] = {}
    for key, value in metadata.items():
        if not isinstance(key, str) or not key:
            raise ValueError(f"metadata keys must be non-empty strings, got {key!r}")
        if isinstance(value, (tuple, set, frozenset)):
            value = list(value)
        if isinstance(value, list):
            for item in value:
                if not _is_scalar(item):
                    raise ValueError(
                        f"metadata[{key!r}] list items must be scalars, got {type(item).__name__}"
                    )
            clean[key] = list(value)
        elif _is_scalar(value):
            clean[key] = value
        else:
            raise ValueError(
                f"metadata[{key!r}] has unsupported type {type(value).__name__}"
            )
    return clean


def _is_scalar(value: Any) -> bool:
    return value is None or isinstance(value, (str, int, float, bool))


class Memory(BaseModel):
    """
    A memory record inside a module partition.

    The module is the source of truth for content, embedding and metadata;
    the central index only holds a projection of it.
    """

    id: str = Field(..., description="Memory ID, unique within (module, owner)")
    owner_id: str = Field(..., description="Owner user ID")
    module_id: str = Field(..., description="Owning module")
    content: str = Field(..., description="Free-text content")
    embedding: list[float] = Field(default_factory=list, description="Full embedding")
    metadata: dict[str, MetadataValue] = Field(default_factory=dict)

    access_count: int = Field(default=0, ge=0)
    last_accessed: datetime | None = None
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)

    @field_validator("metadata", mode="before")
    @classmethod
    def _check_metadata(cls, value: Any) -> dict[str, MetadataValue]:
        return validate_metadata(value)

    @property
    def memory_type(self) -> str | None:
        """The ``type`` discriminator carried in metadata."""
        value = self.metadata.get("type")
        return str(value) if value is not None else None

    def last_activity(self) -> datetime:
        """Most recent access, falling back to the last update."""
        return self.last_accessed or self.updated_at


class ScoredMemory(BaseModel):
    """A memory returned by a module search, with its similarity score."""

    memory: Memory
    score: float
