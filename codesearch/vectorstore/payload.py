"""
Conversion between VectorDocument and Qdrant point payloads.

Payload fields use the camelCase names shared with other indexers of the
same collections: content, relativePath, startLine, endLine,
fileExtension, metadata, originalId.
"""

import json
from typing import Any

import structlog

from codesearch.observability.metrics import get_metrics
from codesearch.vectorstore.base import SparseVector, VectorDocument
from codesearch.vectorstore.ids import ORIGINAL_ID_FIELD, decode_point_id

logger = structlog.get_logger(__name__)


def build_payload(doc: VectorDocument, serialize_metadata: bool) -> dict[str, Any]:
    """
    Build the stored payload for a document.

    Args:
        doc: Document to store
        serialize_metadata: Store metadata as a JSON string instead of an object
    """
    return {
        "content": doc.content,
        "relativePath": doc.relative_path,
        "startLine": doc.start_line,
        "endLine": doc.end_line,
        "fileExtension": doc.file_extension,
        "metadata": json.dumps(doc.metadata) if serialize_metadata else doc.metadata,
        ORIGINAL_ID_FIELD: doc.id,
    }


def parse_metadata(raw: Any, point_id: Any = None) -> dict[str, Any]:
    """
    Recover structured metadata from a stored payload value.

    A JSON string that cannot be decoded into an object yields an empty
    dict and a warning; it never fails the surrounding operation.
    """
    if raw is None or raw == "":
        return {}
    if isinstance(raw, dict):
        return raw
    if isinstance(raw, str):
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning("Failed to parse metadata", point_id=str(point_id), error=str(e))
            get_metrics().record_metadata_parse_failure()
            return {}
        if isinstance(parsed, dict):
            return parsed

    logger.warning(
        "Ignoring non-object metadata",
        point_id=str(point_id),
        metadata_type=type(raw).__name__,
    )
    get_metrics().record_metadata_parse_failure()
    return {}


def document_from_payload(
    point_id: Any,
    payload: dict[str, Any] | None,
    vector: list[float],
    sparse_vector: SparseVector | None = None,
) -> VectorDocument:
    """Rebuild a VectorDocument from a stored point."""
    payload = payload or {}
    start_line = payload.get("startLine") or 0
    # Points written by other indexers may lack endLine; never fail the read on it
    end_line = max(payload.get("endLine") or start_line, start_line)
    return VectorDocument(
        id=decode_point_id(point_id, payload),
        vector=vector,
        content=payload.get("content") or "",
        relative_path=payload.get("relativePath") or "",
        start_line=start_line,
        end_line=end_line,
        file_extension=payload.get("fileExtension") or "",
        metadata=parse_metadata(payload.get("metadata"), point_id),
        sparse_vector=sparse_vector,
    )


def project_fields(
    point_id: Any,
    payload: dict[str, Any] | None,
    output_fields: list[str],
) -> dict[str, Any]:
    """
    Project the requested payload fields of a scrolled point.

    The row always carries ``id`` (the recovered caller ID). Stringified
    metadata is decoded; if decoding fails the raw string is kept.
    """
    payload = payload or {}
    row: dict[str, Any] = {"id": decode_point_id(point_id, payload)}

    for field_name in output_fields:
        if field_name == "id":
            continue
        if field_name not in payload:
            continue
        value = payload[field_name]
        if field_name == "metadata" and isinstance(value, str):
            try:
                value = json.loads(value)
            except json.JSONDecodeError:
                pass  # keep the raw string
        row[field_name] = value

    return row
