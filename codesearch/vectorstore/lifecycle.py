"""
Collection lifecycle helpers shared by the adapters.

Builds collection schemas in Qdrant's REST shape and classifies backend
errors that signal an exhausted collection quota.
"""

import re
from typing import Any

from codesearch.vectorstore.config import VectorStoreConfig

# Best-effort: Qdrant Cloud reports quota exhaustion only in the message text.
_COLLECTION_LIMIT_RE = re.compile(r"limit.*collection|collection.*limit", re.IGNORECASE)

COSINE = "Cosine"


def is_collection_limit_error(error: BaseException | str) -> bool:
    """Check whether an error message reports the account's collection limit."""
    message = error if isinstance(error, str) else str(error)
    return bool(_COLLECTION_LIMIT_RE.search(message))


def dense_collection_schema(dimension: int) -> dict[str, Any]:
    """Schema for a single unnamed dense cosine vector."""
    if dimension < 1:
        raise ValueError(f"dimension must be positive, got {dimension}")
    return {"vectors": {"size": dimension, "distance": COSINE}}


def hybrid_collection_schema(dimension: int, config: VectorStoreConfig) -> dict[str, Any]:
    """Schema for a named dense vector plus a named sparse channel."""
    if dimension < 1:
        raise ValueError(f"dimension must be positive, got {dimension}")
    return {
        "vectors": {
            config.dense_vector_name: {"size": dimension, "distance": COSINE},
        },
        "sparse_vectors": {
            config.sparse_vector_name: {},
        },
        "on_disk_payload": True,
    }


def content_text_index() -> dict[str, Any]:
    """Full-text payload index over chunk content."""
    return {"field_name": "content", "field_schema": "text"}
