"""
Configuration for MemHub.

Supports loading from:
1. Environment variables (highest priority)
2. YAML config file
3. Default values (fallback)
"""

import os
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, model_validator


class EmbedderConfig(BaseModel):
    """Embedder / embedding gateway configuration."""

    provider: str = "ollama"  # ollama, openai, hashing
    model: str = "nomic-embed-text"
    base_url: str = "http://localhost:11434"
    api_key: str | None = None
    timeout: float = 120.0
    # Optional: embedding dimension (fallback to auto-detect)
    dimension: int | None = None
    # Central index vectors are compressed to this size
    index_dimension: int = 512
    max_retries: int = 3
    retry_base_delay: float = 0.5
    cache_size: int = 1024


class QdrantConfig(BaseModel):
    """Qdrant configuration for module partitions and the central index."""

    url: str = "http://localhost:6333"
    # Local mode (":memory:" or a path); overrides url when set
    location: str | None = None
    collection_prefix: str = "memhub"
    index_collection: str = "memhub_central_index"
    use_grpc: bool = True
    hnsw_m: int = 16
    hnsw_ef_construct: int = 100
    use_quantization: bool = True
    quantization_type: str = "int8"
    on_disk: bool = False
    batch_size: int = 100
    timeout: int = 30


class RelationshipStoreConfig(BaseModel):
    """Relationship store (SQLite) configuration."""

    db_path: str = "data/relationships.db"


class SearchConfig(BaseModel):
    """Routing and fan-out configuration."""

    default_limit: int = 10
    max_limit: int = 100
    candidate_pool: int = 50
    routing_top_k: int = 3
    min_route_score: float = 0.3
    keyword_boost: float = 0.1
    sum_bonus: float = 0.05
    module_timeout: float = 5.0
    overall_timeout: float = 10.0
    max_concurrency: int = 4
    # Per-module result count is limit * oversample before fusion
    oversample: int = 2
    hydrate_candidates: bool = True
    hydrate_min_score: float = 0.5


class FusionConfig(BaseModel):
    """Score fusion weights for ranking federated results."""

    semantic_weight: float = 0.50
    routing_weight: float = 0.10
    importance_weight: float = 0.25
    recency_weight: float = 0.15
    relationship_weight: float = 0.05
    recency_half_life_days: float = 30.0
    access_boost: float = 0.05

    @model_validator(mode="after")
    def _non_negative(self) -> "FusionConfig":
        weights = (
            self.semantic_weight,
            self.routing_weight,
            self.importance_weight,
            self.recency_weight,
            self.relationship_weight,
        )
        if any(w < 0 for w in weights):
            raise ValueError("fusion weights must be non-negative")
        if self.recency_half_life_days <= 0:
            raise ValueError("recency_half_life_days must be positive")
        return self


class ReconciliationConfig(BaseModel):
    """Index reconciliation configuration."""

    enabled: bool = False
    interval_hours: float = 24.0
    cascade_max_retries: int = 3
    cascade_base_delay: float = 0.2


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    log_to_file: bool = True
    log_dir: str = "logs"
    file_rotation: str = "10 MB"
    file_retention: str = "7 days"
    compression: str = "zip"
    serialize: bool = True


class ModuleConfig(BaseModel):
    """One entry of the module registry."""

    module_id: str
    display_name: str
    description: str = ""
    kind: str = "standard"  # standard, technical
    active: bool = True
    default_type: str = "note"


def default_modules() -> list[ModuleConfig]:
    """The six built-in memory modules."""
    return [
        ModuleConfig(
            module_id="personal",
            display_name="Personal",
            description="Personal notes, preferences and life events",
            default_type="note",
        ),
        ModuleConfig(
            module_id="work",
            display_name="Work",
            description="Meetings, projects, deadlines and tasks",
            default_type="task",
        ),
        ModuleConfig(
            module_id="technical",
            display_name="Technical",
            description="Code snippets, errors, solutions and technical notes",
            kind="technical",
            default_type="note",
        ),
        ModuleConfig(
            module_id="learning",
            display_name="Learning",
            description="Courses, study notes and things learned",
            default_type="note",
        ),
        ModuleConfig(
            module_id="communication",
            display_name="Communication",
            description="Emails, messages, calls and chats",
            default_type="message",
        ),
        ModuleConfig(
            module_id="creative",
            display_name="Creative",
            description="Ideas, designs and creative projects",
            default_type="idea",
        ),
    ]


class Config(BaseModel):
    """Main configuration."""

    embedder: EmbedderConfig = Field(default_factory=EmbedderConfig)
    qdrant: QdrantConfig = Field(default_factory=QdrantConfig)
    relationship_store: RelationshipStoreConfig = Field(default_factory=RelationshipStoreConfig)
    search: SearchConfig = Field(default_factory=SearchConfig)
    fusion: FusionConfig = Field(default_factory=FusionConfig)
    reconciliation: ReconciliationConfig = Field(default_factory=ReconciliationConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    modules: list[ModuleConfig] = Field(default_factory=default_modules)

    @classmethod
    def from_env(cls, env_file: str | Path | None = None) -> "Config":
        """
        Load configuration from environment variables.

        Priority: .env file -> system environment variables -> defaults

        Args:
            env_file: Optional path to .env file (default: .env in project root)

        Returns:
            Config instance

        Environment variables:
            MEMHUB_EMBEDDER_PROVIDER: Embedder provider (ollama, openai, hashing)
            MEMHUB_EMBEDDER_MODEL: Embedder model name
            MEMHUB_EMBEDDER_API_KEY: Embedder API key (for OpenAI)
            MEMHUB_EMBEDDER_DIMENSION: Embedding dimension (optional)
            MEMHUB_EMBEDDER_INDEX_DIMENSION: Central index vector size
            MEMHUB_QDRANT_URL: Qdrant URL
            MEMHUB_QDRANT_LOCATION: Qdrant local mode location (":memory:" or path)
            MEMHUB_QDRANT_COLLECTION_PREFIX: Prefix of module partition collections
            MEMHUB_RELATIONSHIP_DB_PATH: SQLite file for relationships
            MEMHUB_SEARCH_*: Routing and fan-out settings
            MEMHUB_FUSION_*: Score fusion weights
            MEMHUB_LOG_*: Logging settings
        """
        # Load .env file if provided or exists
        if env_file:
            load_dotenv(env_file)
        elif Path(".env").exists():
            load_dotenv()

        def get_env(key: str, default: Any = None, cast: type | None = None) -> Any:
            """Get environment variable with type conversion."""
            value = os.getenv(key)
            if value is None:
                return default
            # If value is empty string, return default
            if value == "":
                return default
            target = cast or (type(default) if default is not None else None)
            # Convert boolean strings
            if target is bool:
                return str(value).lower() in ("true", "1", "yes")
            # Convert numeric strings
            if target is int:
                return int(value)
            if target is float:
                return float(value)
            return value

        return cls(
            embedder=EmbedderConfig(
                provider=get_env("MEMHUB_EMBEDDER_PROVIDER", "ollama"),
                model=get_env("MEMHUB_EMBEDDER_MODEL", "nomic-embed-text"),
                base_url=get_env("MEMHUB_EMBEDDER_BASE_URL", "http://localhost:11434"),
                api_key=get_env("MEMHUB_EMBEDDER_API_KEY"),
                timeout=get_env("MEMHUB_EMBEDDER_TIMEOUT", 120.0),
                dimension=get_env("MEMHUB_EMBEDDER_DIMENSION", cast=int),
                index_dimension=get_env("MEMHUB_EMBEDDER_INDEX_DIMENSION", 512),
                max_retries=get_env("MEMHUB_EMBEDDER_MAX_RETRIES", 3),
                retry_base_delay=get_env("MEMHUB_EMBEDDER_RETRY_BASE_DELAY", 0.5),
                cache_size=get_env("MEMHUB_EMBEDDER_CACHE_SIZE", 1024),
            ),
            qdrant=QdrantConfig(
                url=get_env("MEMHUB_QDRANT_URL", "http://localhost:6333"),
                location=get_env("MEMHUB_QDRANT_LOCATION"),
                collection_prefix=get_env("MEMHUB_QDRANT_COLLECTION_PREFIX", "memhub"),
                index_collection=get_env(
                    "MEMHUB_QDRANT_INDEX_COLLECTION", "memhub_central_index"
                ),
                use_grpc=get_env("MEMHUB_QDRANT_USE_GRPC", True),
                hnsw_m=get_env("MEMHUB_QDRANT_HNSW_M", 16),
                hnsw_ef_construct=get_env("MEMHUB_QDRANT_HNSW_EF_CONSTRUCT", 100),
                use_quantization=get_env("MEMHUB_QDRANT_USE_QUANTIZATION", True),
                quantization_type=get_env("MEMHUB_QDRANT_QUANTIZATION_TYPE", "int8"),
                on_disk=get_env("MEMHUB_QDRANT_ON_DISK", False),
            ),
            relationship_store=RelationshipStoreConfig(
                db_path=get_env("MEMHUB_RELATIONSHIP_DB_PATH", "data/relationships.db"),
            ),
            search=SearchConfig(
                default_limit=get_env("MEMHUB_SEARCH_DEFAULT_LIMIT", 10),
                candidate_pool=get_env("MEMHUB_SEARCH_CANDIDATE_POOL", 50),
                routing_top_k=get_env("MEMHUB_SEARCH_ROUTING_TOP_K", 3),
                min_route_score=get_env("MEMHUB_SEARCH_MIN_ROUTE_SCORE", 0.3),
                module_timeout=get_env("MEMHUB_SEARCH_MODULE_TIMEOUT", 5.0),
                overall_timeout=get_env("MEMHUB_SEARCH_OVERALL_TIMEOUT", 10.0),
                max_concurrency=get_env("MEMHUB_SEARCH_MAX_CONCURRENCY", 4),
            ),
            fusion=FusionConfig(
                semantic_weight=get_env("MEMHUB_FUSION_SEMANTIC_WEIGHT", 0.50),
                routing_weight=get_env("MEMHUB_FUSION_ROUTING_WEIGHT", 0.10),
                importance_weight=get_env("MEMHUB_FUSION_IMPORTANCE_WEIGHT", 0.25),
                recency_weight=get_env("MEMHUB_FUSION_RECENCY_WEIGHT", 0.15),
                relationship_weight=get_env("MEMHUB_FUSION_RELATIONSHIP_WEIGHT", 0.05),
                recency_half_life_days=get_env("MEMHUB_FUSION_RECENCY_HALF_LIFE_DAYS", 30.0),
            ),
            reconciliation=ReconciliationConfig(
                enabled=get_env("MEMHUB_RECONCILIATION_ENABLED", False),
                interval_hours=get_env("MEMHUB_RECONCILIATION_INTERVAL_HOURS", 24.0),
            ),
            logging=LoggingConfig(
                level=get_env("MEMHUB_LOG_LEVEL", "INFO"),
                log_to_file=get_env("MEMHUB_LOG_TO_FILE", True),
                log_dir=get_env("MEMHUB_LOG_DIR", "logs"),
                file_rotation=get_env("MEMHUB_LOG_FILE_ROTATION", "10 MB"),
                file_retention=get_env("MEMHUB_LOG_FILE_RETENTION", "7 days"),
                compression=get_env("MEMHUB_LOG_COMPRESSION", "zip"),
                serialize=get_env("MEMHUB_LOG_SERIALIZE", True),
            ),
        )

    @classmethod
    def from_yaml(cls, yaml_path: str | Path) -> "Config":
        """
        Load configuration from YAML file.

        Args:
            yaml_path: Path to YAML configuration file

        Returns:
            Config instance

        Raises:
            FileNotFoundError: If YAML file doesn't exist
            yaml.YAMLError: If YAML is invalid
        """
        yaml_path = Path(yaml_path)
        if not yaml_path.exists():
            raise FileNotFoundError(f"Config file not found: {yaml_path}")

        with open(yaml_path) as f:
            data = yaml.safe_load(f) or {}

        return cls(**data)

    @classmethod
    def from_env_or_yaml(
        cls, yaml_path: str | Path | None = None, env_file: str | Path | None = None
    ) -> "Config":
        """
        Load configuration with priority: env vars > YAML > defaults.

        Args:
            yaml_path: Optional path to YAML config
            env_file: Optional path to .env file

        Returns:
            Config instance
        """
        # Start with YAML if provided
        if yaml_path and Path(yaml_path).exists():
            with open(yaml_path) as f:
                config_dict = yaml.safe_load(f) or {}
        else:
            config_dict = {}

        env_config = cls.from_env(env_file)

        # Merge: env vars override YAML, section by section
        final_dict = {**config_dict}
        default = cls()
        for section in (
            "embedder",
            "qdrant",
            "relationship_store",
            "search",
            "fusion",
            "reconciliation",
            "logging",
        ):
            env_section = getattr(env_config, section)
            if env_section != getattr(default, section):
                final_dict[section] = env_section.model_dump()

        return cls(**final_dict) if final_dict else env_config

    def active_modules(self) -> list[ModuleConfig]:
        """Module configs with ``active`` set."""
        return [m for m in self.modules if m.active]


# Default config instance
default_config = Config()
