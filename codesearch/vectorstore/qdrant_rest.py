"""
Qdrant implementation of VectorDatabase over the REST API.

Talks to Qdrant with plain JSON requests through httpx, for environments
where the qdrant-client package is not wanted. Hybrid collections carry a
named dense vector and a named sparse channel fed with synthesized term
frequencies; metadata is stored as a JSON string.
"""

from typing import Any

import structlog

from codesearch.observability.logging import log_operation
from codesearch.vectorstore.base import (
    HybridSearchOptions,
    HybridSearchRequest,
    HybridSearchResult,
    SearchOptions,
    SparseVector,
    VectorDatabase,
    VectorDocument,
    VectorSearchResult,
)
from codesearch.vectorstore.batching import upsert_in_batches
from codesearch.vectorstore.config import VectorStoreConfig
from codesearch.vectorstore.connection import ConnectionManager, resolve_endpoint
from codesearch.vectorstore.errors import (
    CollectionLimitExceededError,
    CollectionNotFoundError,
    QdrantRequestError,
)
from codesearch.vectorstore.filters import translate_filter
from codesearch.vectorstore.hybrid import (
    apply_rerank,
    dense_query_vector,
    resolve_limit,
    split_requests,
    synthesize_sparse_vector,
)
from codesearch.vectorstore.ids import encode_point_id
from codesearch.vectorstore.lifecycle import (
    content_text_index,
    dense_collection_schema,
    hybrid_collection_schema,
    is_collection_limit_error,
)
from codesearch.vectorstore.payload import build_payload, document_from_payload, project_fields
from codesearch.vectorstore.transport import QdrantTransport

logger = structlog.get_logger(__name__)

BACKEND = "rest"
WAIT = {"wait": "true"}


class QdrantRestVectorDatabase(VectorDatabase):
    """
    Qdrant adapter speaking the REST API directly.

    Endpoints used:
    - /collections and /collections/{name} for collection CRUD
    - /collections/{name}/index for the content text index
    - /collections/{name}/points for upserts
    - /collections/{name}/points/search, /scroll, /delete for reads and deletes
    """

    backend = BACKEND

    def __init__(
        self,
        url: str | None = None,
        api_key: str | None = None,
        host: str | None = None,
        port: int | None = None,
        https: bool | None = None,
        prefix: str | None = None,
        config: VectorStoreConfig | None = None,
    ):
        """
        Initialize the adapter and start connecting when a loop is running.

        Args:
            url: Full Qdrant URL (takes precedence over host/port)
            api_key: API key sent in the api-key header
            host: Qdrant host (https by default)
            port: Qdrant port (default 6333)
            https: Force http/https when building the URL from host
            prefix: Optional path prefix appended to the base URL
            config: Optional configuration
        """
        self._url = url
        self._api_key = api_key
        self._host = host
        self._port = port
        self._https = https
        self._prefix = prefix
        self._config = config or VectorStoreConfig()
        self._connection: ConnectionManager[QdrantTransport] = ConnectionManager(
            self._connect, name="Qdrant REST client"
        )

    async def _connect(self) -> QdrantTransport:
        base_url = resolve_endpoint(
            url=self._url,
            host=self._host,
            port=self._port,
            https=self._https,
            prefix=self._prefix,
        )
        logger.info("Connecting to Qdrant REST API", url=base_url)
        return QdrantTransport(
            base_url,
            api_key=self._api_key,
            timeout=self._config.request_timeout_seconds,
        )

    async def ensure_initialized(self) -> QdrantTransport:
        """Wait for the shared connection setup."""
        return await self._connection.ensure_initialized()

    async def close(self) -> None:
        transport = await self._connection.release()
        if transport is not None:
            await transport.aclose()

    # -- collections ---------------------------------------------------

    async def _collection_exists(self, transport: QdrantTransport, collection_name: str) -> bool:
        try:
            await transport.request(
                "GET", f"/collections/{collection_name}", operation="get_collection"
            )
        except CollectionNotFoundError:
            return False
        return True

    async def _create_with_limit_check(
        self,
        transport: QdrantTransport,
        collection_name: str,
        schema: dict[str, Any],
    ) -> None:
        try:
            await transport.request(
                "PUT",
                f"/collections/{collection_name}",
                json_body=schema,
                operation="create_collection",
            )
        except QdrantRequestError as e:
            if is_collection_limit_error(e):
                raise CollectionLimitExceededError(collection_name) from e
            raise

    @log_operation("create_collection")
    async def create_collection(
        self,
        collection_name: str,
        dimension: int,
        description: str | None = None,
    ) -> None:
        transport = await self.ensure_initialized()

        if await self._collection_exists(transport, collection_name):
            logger.info("Collection already exists, skipping creation", collection=collection_name)
            return

        await self._create_with_limit_check(
            transport, collection_name, dense_collection_schema(dimension)
        )
        logger.info("Created collection", collection=collection_name, dimension=dimension)

    @log_operation("create_hybrid_collection")
    async def create_hybrid_collection(
        self,
        collection_name: str,
        dimension: int,
        description: str | None = None,
    ) -> None:
        transport = await self.ensure_initialized()

        if await self._collection_exists(transport, collection_name):
            logger.info("Collection already exists, skipping creation", collection=collection_name)
            return

        await self._create_with_limit_check(
            transport, collection_name, hybrid_collection_schema(dimension, self._config)
        )
        await transport.request(
            "PUT",
            f"/collections/{collection_name}/index",
            json_body=content_text_index(),
            params=WAIT,
            operation="create_index",
        )
        logger.info("Created hybrid collection", collection=collection_name, dimension=dimension)

    @log_operation("drop_collection")
    async def drop_collection(self, collection_name: str) -> None:
        transport = await self.ensure_initialized()
        await transport.request(
            "DELETE", f"/collections/{collection_name}", operation="drop_collection"
        )
        logger.info("Dropped collection", collection=collection_name)

    @log_operation("has_collection")
    async def has_collection(self, collection_name: str) -> bool:
        transport = await self.ensure_initialized()
        return await self._collection_exists(transport, collection_name)

    @log_operation("list_collections")
    async def list_collections(self) -> list[str]:
        transport = await self.ensure_initialized()
        body = await transport.request("GET", "/collections", operation="list_collections")
        collections = (body.get("result") or {}).get("collections") or []
        return [c["name"] for c in collections]

    # -- writes --------------------------------------------------------

    async def _upsert_points(
        self,
        transport: QdrantTransport,
        collection_name: str,
        points: list[dict[str, Any]],
    ) -> int:
        async def upsert_batch(batch: list[dict[str, Any]]) -> None:
            await transport.request(
                "PUT",
                f"/collections/{collection_name}/points",
                json_body={"points": list(batch)},
                params=WAIT,
                operation="upsert",
            )

        return await upsert_in_batches(
            collection_name,
            points,
            upsert_batch,
            batch_size=self._config.upsert_batch_size,
            backend=BACKEND,
        )

    @log_operation("insert")
    async def insert(
        self,
        collection_name: str,
        documents: list[VectorDocument],
    ) -> None:
        transport = await self.ensure_initialized()

        points = [
            {
                "id": encode_point_id(doc.id, self._config.derive_point_ids),
                "vector": doc.vector,
                "payload": build_payload(doc, serialize_metadata=True),
            }
            for doc in documents
        ]
        written = await self._upsert_points(transport, collection_name, points)
        logger.info("Inserted documents", collection=collection_name, count=written)

    @log_operation("insert_hybrid")
    async def insert_hybrid(
        self,
        collection_name: str,
        documents: list[VectorDocument],
    ) -> None:
        transport = await self.ensure_initialized()

        points = [
            {
                "id": encode_point_id(doc.id, self._config.derive_point_ids),
                "vector": {
                    self._config.dense_vector_name: doc.vector,
                    self._config.sparse_vector_name: synthesize_sparse_vector(
                        doc.content, self._config.min_token_length
                    ).to_dict(),
                },
                "payload": build_payload(doc, serialize_metadata=True),
            }
            for doc in documents
        ]
        written = await self._upsert_points(transport, collection_name, points)
        logger.info("Inserted hybrid documents", collection=collection_name, count=written)

    @log_operation("delete")
    async def delete(self, collection_name: str, ids: list[str]) -> None:
        transport = await self.ensure_initialized()
        if not ids:
            return

        await transport.request(
            "POST",
            f"/collections/{collection_name}/points/delete",
            json_body={
                "points": [encode_point_id(doc_id, self._config.derive_point_ids) for doc_id in ids]
            },
            params=WAIT,
            operation="delete",
        )
        logger.info("Deleted documents", collection=collection_name, count=len(ids))

    # -- reads ---------------------------------------------------------

    def _with_filter(self, body: dict[str, Any], filter_expr: str | None) -> dict[str, Any]:
        predicate = translate_filter(filter_expr)
        if predicate is not None:
            body["filter"] = predicate
        return body

    @log_operation("search")
    async def search(
        self,
        collection_name: str,
        query_vector: list[float],
        options: SearchOptions | None = None,
    ) -> list[VectorSearchResult]:
        transport = await self.ensure_initialized()
        options = options or SearchOptions(top_k=self._config.default_top_k)

        body = self._with_filter(
            {
                "vector": query_vector,
                "limit": options.top_k,
                "with_payload": True,
                "with_vector": False,
            },
            options.filter_expr,
        )
        response = await transport.request(
            "POST",
            f"/collections/{collection_name}/points/search",
            json_body=body,
            operation="search",
        )

        return [
            VectorSearchResult(
                document=document_from_payload(item["id"], item.get("payload"), query_vector),
                score=item.get("score") or 0.0,
            )
            for item in response.get("result") or []
        ]

    @log_operation("hybrid_search")
    async def hybrid_search(
        self,
        collection_name: str,
        requests: list[HybridSearchRequest],
        options: HybridSearchOptions | None = None,
    ) -> list[HybridSearchResult]:
        transport = await self.ensure_initialized()
        dense_request, sparse_request = split_requests(requests)
        options = options or HybridSearchOptions()

        body = self._with_filter(
            {
                "vector": {
                    "name": self._config.dense_vector_name,
                    "vector": dense_query_vector(dense_request),
                },
                "limit": resolve_limit(options, dense_request, self._config.default_hybrid_limit),
                "with_payload": True,
                "with_vector": False,
            },
            options.filter_expr,
        )
        response = await transport.request(
            "POST",
            f"/collections/{collection_name}/points/search",
            json_body=body,
            operation="hybrid_search",
        )

        results = [
            HybridSearchResult(
                document=document_from_payload(
                    item["id"], item.get("payload"), vector=[], sparse_vector=SparseVector()
                ),
                score=item.get("score") or 0.0,
            )
            for item in response.get("result") or []
        ]

        if sparse_request is not None and isinstance(sparse_request.data, str):
            strategy = options.rerank or self._config.default_rerank_strategy
            results = apply_rerank(results, sparse_request.data, strategy, self._config)

        logger.info(
            "Hybrid search complete",
            collection=collection_name,
            results=len(results),
        )
        return results

    @log_operation("query")
    async def query(
        self,
        collection_name: str,
        filter_expr: str,
        output_fields: list[str],
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        transport = await self.ensure_initialized()

        body = self._with_filter(
            {
                "limit": limit or self._config.default_query_limit,
                "with_payload": True,
                "with_vector": False,
            },
            filter_expr,
        )
        response = await transport.request(
            "POST",
            f"/collections/{collection_name}/points/scroll",
            json_body=body,
            operation="query",
        )

        points = (response.get("result") or {}).get("points") or []
        return [
            project_fields(point["id"], point.get("payload"), output_fields)
            for point in points
        ]
