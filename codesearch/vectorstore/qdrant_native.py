"""
Qdrant implementation of VectorDatabase using qdrant-client.

Uses AsyncQdrantClient and its typed models. Metadata is stored as a
structured payload object; filters produced by the translator are
validated into ``models.Filter``.
"""

import time
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import structlog
from qdrant_client import AsyncQdrantClient, models
from qdrant_client.http.exceptions import UnexpectedResponse

from codesearch.observability.logging import log_operation
from codesearch.observability.metrics import get_metrics
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
from codesearch.vectorstore.errors import CollectionLimitExceededError
from codesearch.vectorstore.filters import translate_filter
from codesearch.vectorstore.hybrid import (
    apply_rerank,
    dense_query_vector,
    resolve_limit,
    split_requests,
    synthesize_sparse_vector,
)
from codesearch.vectorstore.ids import encode_point_id
from codesearch.vectorstore.lifecycle import is_collection_limit_error
from codesearch.vectorstore.payload import build_payload, document_from_payload, project_fields

logger = structlog.get_logger(__name__)

BACKEND = "native"


@contextmanager
def _timed(operation: str) -> Iterator[None]:
    """Record request latency for one client call, whether or not it succeeds."""
    started = time.perf_counter()
    try:
        yield
    finally:
        get_metrics().record_request_latency(BACKEND, operation, time.perf_counter() - started)


class QdrantNativeVectorDatabase(VectorDatabase):
    """
    Qdrant adapter built on the official async client.

    Features:
    - Collection existence checks that tell 404 apart from other failures
    - Typed filters via qdrant_client.models
    - Sequential batched upserts acknowledged with wait=True
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
            api_key: Qdrant API key
            host: Qdrant host (https by default)
            port: Qdrant port (default 6333)
            https: Force http/https when building the URL from host
            prefix: Optional path prefix for all REST calls
            config: Optional configuration
        """
        self._url = url
        self._api_key = api_key
        self._host = host
        self._port = port
        self._https = https
        self._prefix = prefix
        self._config = config or VectorStoreConfig()
        self._connection: ConnectionManager[AsyncQdrantClient] = ConnectionManager(
            self._connect, name="Qdrant client"
        )

    async def _connect(self) -> AsyncQdrantClient:
        base_url = resolve_endpoint(
            url=self._url,
            host=self._host,
            port=self._port,
            https=self._https,
        )
        logger.info("Connecting to Qdrant", url=base_url, prefix=self._prefix)
        return AsyncQdrantClient(
            url=base_url,
            api_key=self._api_key,
            prefix=self._prefix,
            timeout=int(self._config.request_timeout_seconds),
        )

    async def ensure_initialized(self) -> AsyncQdrantClient:
        """Wait for the shared connection setup."""
        return await self._connection.ensure_initialized()

    async def close(self) -> None:
        client = await self._connection.release()
        if client is not None:
            await client.close()

    # -- collections ---------------------------------------------------

    async def _collection_exists(self, client: AsyncQdrantClient, collection_name: str) -> bool:
        try:
            await client.get_collection(collection_name)
        except UnexpectedResponse as e:
            if e.status_code == 404:
                return False
            raise
        return True

    async def _create_with_limit_check(
        self,
        client: AsyncQdrantClient,
        collection_name: str,
        **schema: Any,
    ) -> None:
        try:
            await client.create_collection(collection_name=collection_name, **schema)
        except Exception as e:
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
        client = await self.ensure_initialized()

        if await self._collection_exists(client, collection_name):
            logger.info("Collection already exists, skipping creation", collection=collection_name)
            return

        await self._create_with_limit_check(
            client,
            collection_name,
            vectors_config=models.VectorParams(size=dimension, distance=models.Distance.COSINE),
        )
        logger.info("Created collection", collection=collection_name, dimension=dimension)

    @log_operation("create_hybrid_collection")
    async def create_hybrid_collection(
        self,
        collection_name: str,
        dimension: int,
        description: str | None = None,
    ) -> None:
        client = await self.ensure_initialized()

        if await self._collection_exists(client, collection_name):
            logger.info("Collection already exists, skipping creation", collection=collection_name)
            return

        await self._create_with_limit_check(
            client,
            collection_name,
            vectors_config={
                self._config.dense_vector_name: models.VectorParams(
                    size=dimension, distance=models.Distance.COSINE
                ),
            },
            sparse_vectors_config={
                self._config.sparse_vector_name: models.SparseVectorParams(),
            },
            on_disk_payload=True,
        )
        await client.create_payload_index(
            collection_name=collection_name,
            field_name="content",
            field_schema=models.PayloadSchemaType.TEXT,
            wait=True,
        )
        logger.info("Created hybrid collection", collection=collection_name, dimension=dimension)

    @log_operation("drop_collection")
    async def drop_collection(self, collection_name: str) -> None:
        client = await self.ensure_initialized()
        await client.delete_collection(collection_name)
        logger.info("Dropped collection", collection=collection_name)

    @log_operation("has_collection")
    async def has_collection(self, collection_name: str) -> bool:
        client = await self.ensure_initialized()
        return await self._collection_exists(client, collection_name)

    @log_operation("list_collections")
    async def list_collections(self) -> list[str]:
        client = await self.ensure_initialized()
        response = await client.get_collections()
        return [c.name for c in response.collections]

    # -- writes --------------------------------------------------------

    async def _upsert_points(
        self,
        client: AsyncQdrantClient,
        collection_name: str,
        points: list[models.PointStruct],
    ) -> int:
        async def upsert_batch(batch: list[models.PointStruct]) -> None:
            await client.upsert(collection_name=collection_name, points=list(batch), wait=True)

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
        client = await self.ensure_initialized()

        points = [
            models.PointStruct(
                id=encode_point_id(doc.id, self._config.derive_point_ids),
                vector=doc.vector,
                payload=build_payload(doc, serialize_metadata=False),
            )
            for doc in documents
        ]
        written = await self._upsert_points(client, collection_name, points)
        logger.info("Inserted documents", collection=collection_name, count=written)

    @log_operation("insert_hybrid")
    async def insert_hybrid(
        self,
        collection_name: str,
        documents: list[VectorDocument],
    ) -> None:
        client = await self.ensure_initialized()

        points = []
        for doc in documents:
            sparse = synthesize_sparse_vector(doc.content, self._config.min_token_length)
            points.append(
                models.PointStruct(
                    id=encode_point_id(doc.id, self._config.derive_point_ids),
                    vector={
                        self._config.dense_vector_name: doc.vector,
                        self._config.sparse_vector_name: models.SparseVector(
                            indices=sparse.indices, values=sparse.values
                        ),
                    },
                    payload=build_payload(doc, serialize_metadata=False),
                )
            )
        written = await self._upsert_points(client, collection_name, points)
        logger.info("Inserted hybrid documents", collection=collection_name, count=written)

    @log_operation("delete")
    async def delete(self, collection_name: str, ids: list[str]) -> None:
        client = await self.ensure_initialized()
        if not ids:
            return

        await client.delete(
            collection_name=collection_name,
            points_selector=models.PointIdsList(
                points=[encode_point_id(doc_id, self._config.derive_point_ids) for doc_id in ids]
            ),
            wait=True,
        )
        logger.info("Deleted documents", collection=collection_name, count=len(ids))

    # -- reads ---------------------------------------------------------

    @staticmethod
    def _filter(filter_expr: str | None) -> models.Filter | None:
        predicate = translate_filter(filter_expr)
        if predicate is None:
            return None
        return models.Filter.model_validate(predicate)

    @log_operation("search")
    async def search(
        self,
        collection_name: str,
        query_vector: list[float],
        options: SearchOptions | None = None,
    ) -> list[VectorSearchResult]:
        client = await self.ensure_initialized()
        options = options or SearchOptions(top_k=self._config.default_top_k)

        query_filter = self._filter(options.filter_expr)
        with _timed("search"):
            response = await client.query_points(
                collection_name=collection_name,
                query=query_vector,
                query_filter=query_filter,
                limit=options.top_k,
                with_payload=True,
                with_vectors=False,
            )

        return [
            VectorSearchResult(
                document=document_from_payload(point.id, point.payload, query_vector),
                score=point.score,
            )
            for point in response.points
        ]

    @log_operation("hybrid_search")
    async def hybrid_search(
        self,
        collection_name: str,
        requests: list[HybridSearchRequest],
        options: HybridSearchOptions | None = None,
    ) -> list[HybridSearchResult]:
        client = await self.ensure_initialized()
        dense_request, sparse_request = split_requests(requests)
        options = options or HybridSearchOptions()

        query_vector = dense_query_vector(dense_request)
        query_filter = self._filter(options.filter_expr)
        limit = resolve_limit(options, dense_request, self._config.default_hybrid_limit)
        with _timed("hybrid_search"):
            response = await client.query_points(
                collection_name=collection_name,
                query=query_vector,
                using=self._config.dense_vector_name,
                query_filter=query_filter,
                limit=limit,
                with_payload=True,
                with_vectors=False,
            )

        results = [
            HybridSearchResult(
                document=document_from_payload(
                    point.id, point.payload, vector=[], sparse_vector=SparseVector()
                ),
                score=point.score,
            )
            for point in response.points
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
        client = await self.ensure_initialized()

        scroll_filter = self._filter(filter_expr)
        with _timed("query"):
            points, _next_offset = await client.scroll(
                collection_name=collection_name,
                scroll_filter=scroll_filter,
                limit=limit or self._config.default_query_limit,
                with_payload=True,
                with_vectors=False,
            )

        return [project_fields(point.id, point.payload, output_fields) for point in points]
