"""
Mapping between caller document IDs and Qdrant point IDs.

Qdrant only accepts unsigned integers or UUIDs as point IDs, so caller IDs
are hashed into a deterministic version-4-shaped UUID. The caller ID is
stored in the payload under ORIGINAL_ID_FIELD and recovered on read.
"""

import hashlib
import uuid
from typing import Any

ORIGINAL_ID_FIELD = "originalId"


def derive_point_id(doc_id: str) -> str:
    """
    Derive a deterministic UUID string from a caller ID.

    The MD5 digest of the ID supplies all 128 bits; the version nibble is
    forced to 4 and the variant bits to RFC 4122.

    Args:
        doc_id: Caller-assigned document ID

    Returns:
        Canonical hyphenated UUID string
    """
    digest = hashlib.md5(doc_id.encode("utf-8")).digest()
    return str(uuid.UUID(bytes=digest, version=4))


def encode_point_id(doc_id: str, derive: bool = True) -> str:
    """Return the backend point ID for a caller ID."""
    return derive_point_id(doc_id) if derive else doc_id


def decode_point_id(point_id: Any, payload: dict[str, Any] | None) -> str:
    """
    Recover the caller ID for a stored point.

    Falls back to the point ID itself for points written without an
    original-ID field.
    """
    if payload:
        original = payload.get(ORIGINAL_ID_FIELD)
        if original is not None:
            return str(original)
    return str(point_id)
