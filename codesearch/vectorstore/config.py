"""
Configuration for vector store operations.

Uses Pydantic BaseSettings for environment variable support.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from codesearch.vectorstore.base import RerankStrategy


class VectorStoreConfig(BaseSettings):
    """
    Configuration shared by every VectorDatabase adapter.

    All settings can be overridden via environment variables with
    VECTORSTORE_ prefix (e.g., VECTORSTORE_UPSERT_BATCH_SIZE=50).
    """

    # Search defaults
    default_top_k: int = Field(
        default=10,
        ge=1,
        le=1000,
        description="Default number of results for dense search",
    )
    default_hybrid_limit: int = Field(
        default=10,
        ge=1,
        le=1000,
        description="Fallback limit for hybrid search when neither options nor request set one",
    )
    default_query_limit: int = Field(
        default=100,
        ge=1,
        le=10000,
        description="Default number of points returned by a filtered scroll",
    )

    # Hybrid fusion
    default_rerank_strategy: RerankStrategy = Field(
        default=RerankStrategy.MAJORITY_OVERLAP,
        description="Fusion applied when the caller does not choose one",
    )
    lexical_boost: float = Field(
        default=0.2,
        ge=0.0,
        le=1.0,
        description="Score added to results containing the full lexical query",
    )
    min_token_length: int = Field(
        default=3,
        ge=1,
        description="Tokens shorter than this are ignored by lexical matching",
    )

    # Collection schema
    dense_vector_name: str = Field(
        default="dense_vector",
        description="Name of the dense vector in multi-vector collections",
    )
    sparse_vector_name: str = Field(
        default="sparse_vector",
        description="Name of the sparse vector in multi-vector collections",
    )

    # Point identifiers
    derive_point_ids: bool = Field(
        default=True,
        description="Hash caller IDs into UUIDs (Qdrant only accepts UUID or integer IDs)",
    )

    # Batch processing
    upsert_batch_size: int = Field(
        default=100,
        ge=1,
        le=1000,
        description="Batch size for upsert operations",
    )

    # Transport
    request_timeout_seconds: float = Field(
        default=30.0,
        gt=0.0,
        description="Per-request timeout handed to the HTTP client",
    )

    model_config = SettingsConfigDict(env_prefix="VECTORSTORE_")
