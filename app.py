"""
MemHub FastAPI Application

A REST API server for the MemHub memory modules.
Provides endpoints for storing, reading, updating and deleting memories,
federated search across modules, and relationships between memories.
"""

from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from memhub.config import Config
from memhub.models.memory import MetadataValue
from memhub.models.relationships import MemoryRef
from memhub.services.memory_hub import MemoryHub
from memhub.utils.exceptions import (
    EmbeddingError,
    EmbeddingInputError,
    MemHubError,
    ValidationError,
)
from memhub.utils.logger import get_logger, setup_logging

# Global hub instance
hub: MemoryHub | None = None
logger = get_logger(__name__)


# Pydantic models for API
class StoreMemoryRequest(BaseModel):
    """Request model for storing a memory."""

    owner_id: str = Field(..., description="Owner user ID")
    content: str = Field(..., description="Memory content")
    metadata: dict[str, MetadataValue] | None = Field(default=None)
    module_id: str | None = Field(default=None, description="Target module (auto if omitted)")


class UpdateMemoryRequest(BaseModel):
    """Request model for updating a memory."""

    owner_id: str
    content: str | None = None
    metadata: dict[str, MetadataValue] | None = None


class SearchRequest(BaseModel):
    """Request model for federated search."""

    owner_id: str
    query: str = Field(..., description="Search query")
    limit: int = Field(default=10, ge=1, le=100, description="Max results")
    modules: list[str] | None = Field(default=None, description="Restrict to these modules")
    min_score: float | None = Field(default=None, ge=0.0, le=1.0)
    use_relationships: bool = True


class LinkRequest(BaseModel):
    """Request model for linking two memories."""

    owner_id: str
    source: MemoryRef
    target: MemoryRef
    relationship_type: str = "related"
    strength: float = Field(default=0.5, ge=0.0, le=1.0)
    metadata: dict[str, Any] | None = None


def _require_hub() -> MemoryHub:
    if not hub:
        raise HTTPException(status_code=503, detail="MemHub not initialized")
    return hub


def _http_error(e: MemHubError) -> HTTPException:
    """Map domain errors onto HTTP status codes."""
    if isinstance(e, ValidationError):
        status = 400
    elif isinstance(e, EmbeddingInputError):
        # Provider refused the text itself
        status = 422
    elif isinstance(e, EmbeddingError):
        status = 503
    else:
        status = 500
        logger.error(f"Request failed: {e}", extra={"error_type": type(e).__name__})
    return HTTPException(status_code=status, detail=e.message)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup/shutdown."""
    global hub

    # Load configuration from environment or use defaults
    config = Config.from_env()

    setup_logging(
        level=config.logging.level,
        log_to_file=config.logging.log_to_file,
        log_dir=config.logging.log_dir,
        file_rotation=config.logging.file_rotation,
        file_retention=config.logging.file_retention,
        compression=config.logging.compression,
        serialize=config.logging.serialize,
    )

    logger.info("Starting MemHub server")
    logger.info(
        f"Configuration: Embedder={config.embedder.provider}/{config.embedder.model}, "
        f"Qdrant={config.qdrant.location or config.qdrant.url}"
    )

    hub = await MemoryHub.create(config)
    await hub.initialize()
    logger.info("MemHub initialized")

    yield

    logger.info("Shutting down MemHub server")
    await hub.close()
    hub = None
    logger.info("Cleanup complete")


# Create FastAPI app
app = FastAPI(
    title="MemHub API",
    description="Per-user memory modules with a central index and federated search",
    version="1.0.0",
    lifespan=lifespan,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
async def health_check():
    """Health check of modules, central index and relationship store."""
    if not hub:
        return {"status": "initializing"}
    return await hub.health()


@app.get("/modules")
async def list_modules():
    """List registered memory modules."""
    return [info.model_dump() for info in _require_hub().list_modules()]


# Memory endpoints
@app.post("/memories")
async def store_memory(request: StoreMemoryRequest):
    """
    Store a memory.

    The memory goes to ``module_id`` when given, otherwise to a module chosen
    from its content. ``indexed`` is false when the central index write
    failed; the memory is stored regardless.
    """
    memhub = _require_hub()
    try:
        result = await memhub.store(
            request.owner_id, request.content, request.metadata, module_id=request.module_id
        )
    except MemHubError as e:
        raise _http_error(e) from e
    return result.model_dump()


@app.get("/memories/{module_id}/{memory_id}")
async def get_memory(module_id: str, memory_id: str, owner_id: str = Query(...)):
    """Retrieve a memory; access tracking is updated."""
    memhub = _require_hub()
    try:
        memory = await memhub.get(owner_id, module_id, memory_id)
    except MemHubError as e:
        raise _http_error(e) from e

    if memory is None:
        raise HTTPException(status_code=404, detail="Memory not found")
    return memory.model_dump(mode="json", exclude={"embedding"})


@app.patch("/memories/{module_id}/{memory_id}")
async def update_memory(module_id: str, memory_id: str, request: UpdateMemoryRequest):
    """Update content and/or metadata of a memory."""
    memhub = _require_hub()
    try:
        updated = await memhub.update(
            request.owner_id,
            module_id,
            memory_id,
            content=request.content,
            metadata=request.metadata,
        )
    except MemHubError as e:
        raise _http_error(e) from e

    if not updated:
        raise HTTPException(status_code=404, detail="Memory not found")
    return {"id": memory_id, "module_id": module_id, "updated": True}


@app.delete("/memories/{module_id}/{memory_id}")
async def delete_memory(module_id: str, memory_id: str, owner_id: str = Query(...)):
    """Delete a memory, its index entry and its relationships."""
    memhub = _require_hub()
    try:
        deleted = await memhub.delete(owner_id, module_id, memory_id)
    except MemHubError as e:
        raise _http_error(e) from e

    if not deleted:
        raise HTTPException(status_code=404, detail="Memory not found")
    return {"id": memory_id, "module_id": module_id, "deleted": True}


@app.post("/search")
async def federated_search(request: SearchRequest):
    """
    Search across modules.

    Returns ranked results with score breakdowns, the routing decisions
    behind the fan-out and any modules that failed or timed out.
    """
    memhub = _require_hub()
    try:
        response = await memhub.federated_search(
            request.owner_id,
            request.query,
            limit=request.limit,
            module_filter=request.modules,
            min_score=request.min_score,
            use_relationships=request.use_relationships,
        )
    except MemHubError as e:
        raise _http_error(e) from e

    payload = response.model_dump(mode="json")
    for result in payload["results"]:
        result["memory"].pop("embedding", None)
    return payload


# Relationship endpoints
@app.post("/relationships")
async def link_memories(request: LinkRequest):
    """Create or update a typed edge between two memories."""
    memhub = _require_hub()
    try:
        relationship = await memhub.link(
            request.owner_id,
            request.source,
            request.target,
            relationship_type=request.relationship_type,
            strength=request.strength,
            metadata=request.metadata,
        )
    except MemHubError as e:
        raise _http_error(e) from e
    return relationship.model_dump(mode="json")


@app.get("/relationships/{module_id}/{memory_id}")
async def related_memories(
    module_id: str,
    memory_id: str,
    owner_id: str = Query(...),
    direction: str = Query(default="both"),
    types: list[str] | None = Query(default=None),
    limit: int = Query(default=100, ge=1, le=1000),
):
    """Single-hop neighbours of a memory."""
    memhub = _require_hub()
    try:
        related = await memhub.related_to(
            owner_id, module_id, memory_id, types=types, direction=direction, limit=limit
        )
    except MemHubError as e:
        raise _http_error(e) from e
    return [r.model_dump() for r in related]


# Statistics and maintenance
@app.get("/stats")
async def get_stats(owner_id: str = Query(...)):
    """Per-module statistics of an owner."""
    memhub = _require_hub()
    try:
        return await memhub.module_stats(owner_id)
    except MemHubError as e:
        raise _http_error(e) from e


@app.post("/reconcile")
async def reconcile(owner_id: str | None = Query(default=None)):
    """Run a reconciliation pass between modules and the central index."""
    report = await _require_hub().reconcile(owner_id)
    return report.model_dump()


# Root endpoint
@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "name": "MemHub API",
        "version": "1.0.0",
        "docs": "/docs",
    }
