"""Pytest fixtures for codesearch tests."""

import pytest

from codesearch.config.settings import Settings
from codesearch.vectorstore.base import VectorDocument
from codesearch.vectorstore.config import VectorStoreConfig


@pytest.fixture
def test_settings() -> Settings:
    """Settings configured for testing."""
    return Settings(
        environment="development",
        log_level="DEBUG",
        qdrant_url="http://qdrant.test:6333",
        qdrant_api_key="test-qdrant-key",
    )


@pytest.fixture
def vector_store_config() -> VectorStoreConfig:
    """Default vector store configuration for tests."""
    return VectorStoreConfig(
        upsert_batch_size=100,
        default_top_k=10,
        default_hybrid_limit=10,
    )


def make_document(
    doc_id: str,
    vector: list[float] | None = None,
    content: str = "def handler(request): return response",
    relative_path: str = "src/app.py",
    start_line: int = 1,
    end_line: int = 10,
    file_extension: str = ".py",
    metadata: dict | None = None,
) -> VectorDocument:
    """Build a VectorDocument with sensible defaults."""
    return VectorDocument(
        id=doc_id,
        vector=vector if vector is not None else [1.0, 0.0, 0.0, 0.0],
        content=content,
        relative_path=relative_path,
        start_line=start_line,
        end_line=end_line,
        file_extension=file_extension,
        metadata=metadata if metadata is not None else {},
    )


@pytest.fixture
def document_factory():
    """Factory for VectorDocuments (see make_document)."""
    return make_document


@pytest.fixture
def sample_document() -> VectorDocument:
    """Create a sample code chunk for testing."""
    return make_document(
        "src/auth.py:1-20",
        vector=[1.0, 0.0, 0.0, 0.0],
        content="class AuthService:\n    def login_handler(self, user, password):\n        ...",
        relative_path="src/auth.py",
        start_line=1,
        end_line=20,
        metadata={"language": "python", "codebasePath": "/repo", "tags": ["auth", "login"]},
    )


@pytest.fixture
def sample_documents() -> list[VectorDocument]:
    """A few chunks pointing in different directions of a 4-dim space."""
    return [
        make_document(
            "auth",
            vector=[1.0, 0.0, 0.0, 0.0],
            content="login handler validates user password",
            relative_path="src/auth.ts",
            file_extension=".ts",
        ),
        make_document(
            "db",
            vector=[0.0, 1.0, 0.0, 0.0],
            content="database connection pool query",
            relative_path="src/db.py",
            start_line=5,
            end_line=40,
        ),
        make_document(
            "utils",
            vector=[0.7, 0.7, 0.0, 0.0],
            content="format date and validate email helpers",
            relative_path="src/utils.py",
            start_line=12,
            end_line=30,
        ),
    ]
