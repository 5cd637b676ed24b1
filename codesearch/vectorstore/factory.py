"""Construction-time selection of the vector database adapter."""

from codesearch.config.settings import Settings, get_settings
from codesearch.vectorstore.base import VectorDatabase
from codesearch.vectorstore.config import VectorStoreConfig
from codesearch.vectorstore.qdrant_native import QdrantNativeVectorDatabase
from codesearch.vectorstore.qdrant_rest import QdrantRestVectorDatabase

_ADAPTERS: dict[str, type[QdrantRestVectorDatabase] | type[QdrantNativeVectorDatabase]] = {
    "rest": QdrantRestVectorDatabase,
    "native": QdrantNativeVectorDatabase,
}


def create_vector_database(
    settings: Settings | None = None,
    config: VectorStoreConfig | None = None,
    backend: str | None = None,
) -> VectorDatabase:
    """
    Build the configured VectorDatabase adapter.

    Args:
        settings: Application settings (defaults to cached settings)
        config: Vector store configuration
        backend: Override of settings.vectordb_backend ("rest" or "native")

    Returns:
        Adapter instance; connection setup starts immediately if an event
        loop is running

    Raises:
        ValueError: If the backend name is unknown
    """
    settings = settings or get_settings()
    backend = backend or settings.vectordb_backend

    try:
        adapter_cls = _ADAPTERS[backend]
    except KeyError:
        raise ValueError(
            f"Unknown vector database backend '{backend}', expected one of {sorted(_ADAPTERS)}"
        ) from None

    return adapter_cls(
        url=settings.qdrant_url,
        api_key=settings.qdrant_api_key,
        host=settings.qdrant_host,
        port=settings.qdrant_port,
        https=settings.qdrant_https,
        prefix=settings.qdrant_prefix,
        config=config,
    )
