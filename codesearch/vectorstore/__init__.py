"""
Vector store abstraction layer for codebase semantic search.

This module provides one capability set, VectorDatabase, with two
interchangeable Qdrant adapters, plus the helpers they share.

Main components:
- VectorDatabase: Interface implemented by every adapter
- QdrantRestVectorDatabase: Adapter over the Qdrant REST API (httpx)
- QdrantNativeVectorDatabase: Adapter over qdrant-client's AsyncQdrantClient
- create_vector_database: Picks the adapter from settings
- translate_filter: Filter expression -> Qdrant filter predicate
- VectorDocument / VectorSearchResult / HybridSearchResult: Data model
"""

from codesearch.vectorstore.base import (
    AnnsField,
    HybridSearchOptions,
    HybridSearchRequest,
    HybridSearchResult,
    RerankStrategy,
    SearchOptions,
    SparseVector,
    VectorDatabase,
    VectorDocument,
    VectorSearchResult,
)
from codesearch.vectorstore.config import VectorStoreConfig
from codesearch.vectorstore.errors import (
    COLLECTION_LIMIT_MESSAGE,
    BatchInsertError,
    CollectionLimitExceededError,
    CollectionNotFoundError,
    NotInitializedError,
    QdrantRequestError,
    VectorStoreError,
)
from codesearch.vectorstore.factory import create_vector_database
from codesearch.vectorstore.filters import translate_filter
from codesearch.vectorstore.qdrant_native import QdrantNativeVectorDatabase
from codesearch.vectorstore.qdrant_rest import QdrantRestVectorDatabase

__all__ = [
    "AnnsField",
    "BatchInsertError",
    "COLLECTION_LIMIT_MESSAGE",
    "CollectionLimitExceededError",
    "CollectionNotFoundError",
    "HybridSearchOptions",
    "HybridSearchRequest",
    "HybridSearchResult",
    "NotInitializedError",
    "QdrantNativeVectorDatabase",
    "QdrantRequestError",
    "QdrantRestVectorDatabase",
    "RerankStrategy",
    "SearchOptions",
    "SparseVector",
    "VectorDatabase",
    "VectorDocument",
    "VectorSearchResult",
    "VectorStoreConfig",
    "VectorStoreError",
    "create_vector_database",
    "translate_filter",
]
