"""
Data models and the capability interface for vector database adapters.

Every adapter implements ``VectorDatabase``; behaviour shared between
adapters (filter translation, ID derivation, batching, sparse synthesis)
lives in free functions in the sibling modules, not in this class.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


@dataclass
class SparseVector:
    """Sparse lexical signal as parallel index/value arrays."""

    indices: list[int] = field(default_factory=list)
    values: list[float] = field(default_factory=list)

    def __post_init__(self) -> None:
        if len(self.indices) != len(self.values):
            raise ValueError(
                f"indices and values must have same length: "
                f"{len(self.indices)} != {len(self.values)}"
            )

    def to_dict(self) -> dict[str, list]:
        return {"indices": list(self.indices), "values": list(self.values)}


@dataclass
class VectorDocument:
    """
    A chunk of source code with its dense embedding.

    Attributes:
        id: Caller-assigned identifier, unique within a collection
        vector: Dense embedding (dimension fixed per collection)
        content: Source text of the chunk
        relative_path: Path of the file relative to the indexed root
        start_line: First line of the chunk (1-based)
        end_line: Last line of the chunk (inclusive)
        file_extension: Extension of the source file (e.g. ".py")
        metadata: Caller-defined JSON-compatible mapping
        sparse_vector: Lexical signal, only populated on hybrid paths
    """

    id: str
    vector: list[float]
    content: str
    relative_path: str
    start_line: int
    end_line: int
    file_extension: str
    metadata: dict[str, Any] = field(default_factory=dict)
    sparse_vector: SparseVector | None = None

    def __post_init__(self) -> None:
        """Validate line range."""
        if self.start_line > self.end_line:
            raise ValueError(
                f"start_line must not exceed end_line, "
                f"got {self.start_line} > {self.end_line}"
            )


@dataclass
class SearchOptions:
    """Options for dense top-K search."""

    top_k: int = 10
    filter_expr: str | None = None

    def __post_init__(self) -> None:
        if self.top_k < 1:
            raise ValueError(f"top_k must be at least 1, got {self.top_k}")


@dataclass
class VectorSearchResult:
    """
    Result from a dense similarity search.

    Attributes:
        document: Recovered document (vector is the query vector)
        score: Backend cosine similarity, higher is more similar
    """

    document: VectorDocument
    score: float


class AnnsField(str, Enum):
    """Channel a hybrid search request targets."""

    DENSE = "dense_vector"
    SPARSE = "sparse_vector"

    @classmethod
    def _missing_(cls, value: object) -> "AnnsField | None":
        aliases = {"vector": cls.DENSE, "dense": cls.DENSE, "sparse": cls.SPARSE}
        if isinstance(value, str):
            return aliases.get(value.lower())
        return None


class RerankStrategy(str, Enum):
    """
    How the lexical channel is fused with dense results.

    MAJORITY_OVERLAP keeps only results sharing at least half of the query
    terms. LEXICAL_BOOST keeps every result and adds a fixed bonus to those
    containing the full query text, then re-sorts.
    """

    MAJORITY_OVERLAP = "majority_overlap"
    LEXICAL_BOOST = "lexical_boost"


@dataclass
class HybridSearchRequest:
    """
    One channel of a hybrid query.

    Dense requests carry a vector (or a list holding one vector); sparse
    requests carry raw query text.
    """

    anns_field: AnnsField
    data: list[float] | list[list[float]] | str
    limit: int | None = None

    def __post_init__(self) -> None:
        self.anns_field = AnnsField(self.anns_field)


@dataclass
class HybridSearchOptions:
    """Options for hybrid search."""

    limit: int | None = None
    filter_expr: str | None = None
    rerank: RerankStrategy | None = None

    def __post_init__(self) -> None:
        if self.limit is not None and self.limit < 1:
            raise ValueError(f"limit must be at least 1, got {self.limit}")
        if self.rerank is not None:
            self.rerank = RerankStrategy(self.rerank)


@dataclass
class HybridSearchResult:
    """Result from a hybrid search; score reflects the fused ranking."""

    document: VectorDocument
    score: float


class VectorDatabase(ABC):
    """
    Capability set every vector database adapter provides.

    All methods are async to support non-blocking I/O. Each call waits for
    the adapter's connection to be established before touching the backend.
    """

    @abstractmethod
    async def create_collection(
        self,
        collection_name: str,
        dimension: int,
        description: str | None = None,
    ) -> None:
        """Create a dense cosine collection; no-op if it already exists."""
        ...

    @abstractmethod
    async def create_hybrid_collection(
        self,
        collection_name: str,
        dimension: int,
        description: str | None = None,
    ) -> None:
        """Create a collection with lexical indexing; no-op if it already exists."""
        ...

    @abstractmethod
    async def drop_collection(self, collection_name: str) -> None:
        """Drop a collection and all its points."""
        ...

    @abstractmethod
    async def has_collection(self, collection_name: str) -> bool:
        """Return True if the collection exists, False if it is not found."""
        ...

    @abstractmethod
    async def list_collections(self) -> list[str]:
        """Return the names of all collections."""
        ...

    @abstractmethod
    async def insert(
        self,
        collection_name: str,
        documents: list[VectorDocument],
    ) -> None:
        """Upsert documents in sequential fixed-size batches."""
        ...

    @abstractmethod
    async def insert_hybrid(
        self,
        collection_name: str,
        documents: list[VectorDocument],
    ) -> None:
        """Upsert documents into a hybrid collection in sequential batches."""
        ...

    @abstractmethod
    async def search(
        self,
        collection_name: str,
        query_vector: list[float],
        options: SearchOptions | None = None,
    ) -> list[VectorSearchResult]:
        """Top-K dense nearest-neighbour search."""
        ...

    @abstractmethod
    async def hybrid_search(
        self,
        collection_name: str,
        requests: list[HybridSearchRequest],
        options: HybridSearchOptions | None = None,
    ) -> list[HybridSearchResult]:
        """Dense search fused with a lexical channel."""
        ...

    @abstractmethod
    async def query(
        self,
        collection_name: str,
        filter_expr: str,
        output_fields: list[str],
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """Scroll points matching a filter, projecting the requested fields."""
        ...

    @abstractmethod
    async def delete(self, collection_name: str, ids: list[str]) -> None:
        """Delete documents by caller ID."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Release the underlying client."""
        ...
