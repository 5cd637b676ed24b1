"""
Error taxonomy for vector store adapters.

Malformed filter expressions and unreadable metadata payloads are not
errors: they degrade to "no filter" and "empty metadata" with a warning.
"""

COLLECTION_LIMIT_MESSAGE = (
    "[Error]: Your Qdrant account has hit its collection limit. "
    "To continue creating collections, please upgrade your plan "
    "or delete existing collections."
)


class VectorStoreError(Exception):
    """Base exception for vector store errors."""

    pass


class NotInitializedError(VectorStoreError):
    """Raised when an operation runs without a successfully established connection."""

    pass


class CollectionLimitExceededError(VectorStoreError):
    """Raised when the backend refuses to create more collections for this account."""

    def __init__(self, collection_name: str, message: str = COLLECTION_LIMIT_MESSAGE):
        super().__init__(message)
        self.collection_name = collection_name


class QdrantRequestError(VectorStoreError):
    """Raised when the Qdrant REST API answers with a non-success status."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response_body: str | None = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body


class CollectionNotFoundError(QdrantRequestError):
    """Raised when the requested collection (or resource) does not exist (HTTP 404)."""

    pass


class BatchInsertError(VectorStoreError):
    """
    Raised when one upsert batch fails.

    Batches before ``batch_index`` are already durably written; the write is
    not rolled back.
    """

    def __init__(
        self,
        collection_name: str,
        batch_index: int,
        documents_written: int,
        cause: BaseException,
    ):
        super().__init__(
            f"Upsert batch {batch_index} into '{collection_name}' failed "
            f"after {documents_written} documents were written: {cause}"
        )
        self.collection_name = collection_name
        self.batch_index = batch_index
        self.documents_written = documents_written
