"""
Async HTTP transport for the Qdrant REST API.

Wraps an httpx.AsyncClient bound to the Qdrant base URL, adds the
api-key header, decodes JSON responses and maps error statuses to
QdrantRequestError (CollectionNotFoundError for 404). Transport-level
failures (timeouts, connection errors) propagate as httpx exceptions.
No retries are performed here.
"""

import logging
import time
from typing import Any

import httpx

from codesearch.observability.metrics import get_metrics
from codesearch.vectorstore.errors import CollectionNotFoundError, QdrantRequestError

logger = logging.getLogger(__name__)

BACKEND = "rest"


class QdrantTransport:
    """
    JSON request/response client for one Qdrant endpoint.

    Example:
        transport = QdrantTransport("http://localhost:6333", api_key="secret")
        body = await transport.request("GET", "/collections", operation="list_collections")
        await transport.aclose()
    """

    def __init__(
        self,
        base_url: str,
        api_key: str | None = None,
        timeout: float = 30.0,
    ):
        """
        Initialize transport.

        Args:
            base_url: Qdrant base URL (no trailing slash)
            api_key: Optional API key sent in the api-key header
            timeout: Request timeout in seconds
        """
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if api_key:
            headers["api-key"] = api_key

        self.base_url = base_url
        self._client = httpx.AsyncClient(base_url=base_url, headers=headers, timeout=timeout)

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def request(
        self,
        method: str,
        endpoint: str,
        json_body: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
        operation: str = "request",
    ) -> Any:
        """
        Send one request and return the decoded JSON body.

        Args:
            method: HTTP method
            endpoint: Path relative to the base URL (e.g. "/collections/foo")
            json_body: JSON body for POST/PUT/PATCH
            params: Query parameters
            operation: Operation label for latency metrics

        Returns:
            Decoded JSON body, or the raw text if the body is not JSON

        Raises:
            CollectionNotFoundError: On HTTP 404
            QdrantRequestError: On any other non-success status
        """
        send_body = json_body if method in ("POST", "PUT", "PATCH") else None

        started = time.perf_counter()
        try:
            response = await self._client.request(method, endpoint, json=send_body, params=params)
        except httpx.HTTPError as e:
            logger.error(f"Qdrant REST request {method} {endpoint} failed: {e}")
            raise
        finally:
            get_metrics().record_request_latency(BACKEND, operation, time.perf_counter() - started)

        try:
            result: Any = response.json()
        except ValueError:
            result = response.text

        if response.is_success:
            return result

        message = f"HTTP {response.status_code}: {_error_text(result, response)}"
        error_cls = CollectionNotFoundError if response.status_code == 404 else QdrantRequestError
        raise error_cls(message, status_code=response.status_code, response_body=response.text)


def _error_text(result: Any, response: httpx.Response) -> str:
    """Pull Qdrant's error description out of an error body."""
    if isinstance(result, dict):
        status = result.get("status")
        if isinstance(status, dict) and status.get("error"):
            return str(status["error"])
        if result.get("message"):
            return str(result["message"])
    return response.reason_phrase or "request failed"
