"""Module descriptor model."""

from pydantic import BaseModel, Field


class ModuleInfo(BaseModel):
    """
    Static description of a memory module.

    Field lists and the schema are documentation hints only; nothing in
    the central index enforces them.
    """

    module_id: str
    display_name: str
    description: str = ""
    kind: str = "standard"
    active: bool = True
    default_type: str = "note"
    searchable_fields: list[str] = Field(default_factory=list)
    indexed_fields: list[str] = Field(default_factory=list)
    metadata_schema: dict[str, str] = Field(default_factory=dict)


class ModuleStats(BaseModel):
    """Per-owner statistics of one module partition."""

    module_id: str
    total_memories: int = 0
    last_accessed: str | None = None
    average_access_count: float = 0.0
    most_frequent_types: list[str] = Field(default_factory=list)
