"""Pytest fixtures for vectorstore tests.

FakeQdrant is an in-memory stand-in for the Qdrant REST API, served
through respx so the REST adapter runs its real httpx requests.
"""

import json
import math
import uuid
from typing import Any
from unittest.mock import AsyncMock

import httpx
import pytest
import respx

from codesearch.vectorstore.qdrant_rest import QdrantRestVectorDatabase

QDRANT_URL = "http://qdrant.test:6333"
API_KEY = "test-qdrant-key"

_COLLECTION = r"^/collections/(?P<name>[^/]+)"


def _ok(result: Any) -> httpx.Response:
    return httpx.Response(200, json={"result": result, "status": "ok", "time": 0.001})


def _error(status_code: int, message: str) -> httpx.Response:
    return httpx.Response(status_code, json={"status": {"error": message}, "time": 0.001})


def _cosine(a: list[float], b: list[float]) -> float:
    dot = sum(x * y for x, y in zip(a, b))
    norm = math.sqrt(sum(x * x for x in a)) * math.sqrt(sum(y * y for y in b))
    return dot / norm if norm else 0.0


def _condition_matches(payload: dict[str, Any], condition: dict[str, Any]) -> bool:
    value = payload.get(condition["key"])
    if "match" in condition:
        return value == condition["match"]["value"]
    if "range" in condition:
        if value is None:
            return False
        checks = {
            "gt": lambda bound: value > bound,
            "gte": lambda bound: value >= bound,
            "lt": lambda bound: value < bound,
            "lte": lambda bound: value <= bound,
        }
        return all(checks[op](bound) for op, bound in condition["range"].items())
    return False


def _filter_matches(payload: dict[str, Any], flt: dict[str, Any] | None) -> bool:
    if not flt:
        return True
    must = flt.get("must") or []
    should = flt.get("should") or []
    if not all(_condition_matches(payload, c) for c in must):
        return False
    if should and not any(_condition_matches(payload, c) for c in should):
        return False
    return True


class FakeQdrant:
    """In-memory Qdrant REST API covering the endpoints the adapter uses."""

    def __init__(self):
        self.collections: dict[str, dict[str, Any]] = {}
        self.upsert_batch_sizes: list[int] = []
        self.search_bodies: list[dict[str, Any]] = []
        self.scroll_bodies: list[dict[str, Any]] = []
        self.requests: list[httpx.Request] = []
        self.create_error: tuple[int, str] | None = None
        self.get_error: tuple[int, str] | None = None
        self.fail_upsert_call: int | None = None

    def install(self, router: respx.MockRouter) -> None:
        router.route(method="GET", path="/collections").mock(side_effect=self.list_collections)
        router.route(method="GET", path__regex=_COLLECTION + "$").mock(side_effect=self.get_collection)
        router.route(method="PUT", path__regex=_COLLECTION + "$").mock(side_effect=self.create_collection)
        router.route(method="DELETE", path__regex=_COLLECTION + "$").mock(side_effect=self.delete_collection)
        router.route(method="PUT", path__regex=_COLLECTION + "/index$").mock(side_effect=self.create_index)
        router.route(method="PUT", path__regex=_COLLECTION + "/points$").mock(side_effect=self.upsert)
        router.route(method="POST", path__regex=_COLLECTION + "/points/search$").mock(side_effect=self.search)
        router.route(method="POST", path__regex=_COLLECTION + "/points/scroll$").mock(side_effect=self.scroll)
        router.route(method="POST", path__regex=_COLLECTION + "/points/delete$").mock(side_effect=self.delete_points)

    # -- helpers -------------------------------------------------------

    def _record(self, request: httpx.Request) -> dict[str, Any]:
        self.requests.append(request)
        return json.loads(request.content) if request.content else {}

    def _missing(self, name: str) -> httpx.Response:
        return _error(404, f"Not found: Collection `{name}` doesn't exist!")

    def points(self, name: str) -> dict[str, dict[str, Any]]:
        return self.collections[name]["points"]

    # -- collections ---------------------------------------------------

    def list_collections(self, request: httpx.Request) -> httpx.Response:
        self._record(request)
        return _ok({"collections": [{"name": name} for name in self.collections]})

    def get_collection(self, request: httpx.Request, name: str) -> httpx.Response:
        self._record(request)
        if self.get_error is not None:
            return _error(*self.get_error)
        if name not in self.collections:
            return self._missing(name)
        return _ok({"status": "green", "config": {"params": self.collections[name]["config"]}})

    def create_collection(self, request: httpx.Request, name: str) -> httpx.Response:
        body = self._record(request)
        if self.create_error is not None:
            return _error(*self.create_error)
        if name in self.collections:
            return _error(409, f"Wrong input: Collection `{name}` already exists!")
        self.collections[name] = {"config": body, "points": {}, "indexes": []}
        return _ok(True)

    def delete_collection(self, request: httpx.Request, name: str) -> httpx.Response:
        self._record(request)
        return _ok(self.collections.pop(name, None) is not None)

    def create_index(self, request: httpx.Request, name: str) -> httpx.Response:
        body = self._record(request)
        if name not in self.collections:
            return self._missing(name)
        self.collections[name]["indexes"].append(body)
        return _ok({"operation_id": 1, "status": "completed"})

    # -- points --------------------------------------------------------

    def _dense_size(self, name: str, vector_name: str | None) -> int:
        vectors = self.collections[name]["config"]["vectors"]
        if vector_name is None:
            return vectors["size"]
        return vectors[vector_name]["size"]

    def _dense_vector(self, name: str, point: dict[str, Any]) -> list[float]:
        vector = point["vector"]
        if isinstance(vector, dict):
            named = [key for key in self.collections[name]["config"]["vectors"]]
            return vector[named[0]]
        return vector

    def upsert(self, request: httpx.Request, name: str) -> httpx.Response:
        body = self._record(request)
        if name not in self.collections:
            return self._missing(name)

        call_index = len(self.upsert_batch_sizes)
        self.upsert_batch_sizes.append(len(body["points"]))
        if self.fail_upsert_call == call_index:
            return _error(500, "Service internal error: storage unavailable")

        for point in body["points"]:
            try:
                uuid.UUID(str(point["id"]))
            except ValueError:
                return _error(400, f"Unable to parse UUID: {point['id']}")
            vector = point["vector"]
            if isinstance(vector, dict):
                for vector_name, values in vector.items():
                    if isinstance(values, list) and len(values) != self._dense_size(name, vector_name):
                        return _error(400, "Wrong input: Vector dimension error")
            elif len(vector) != self._dense_size(name, None):
                return _error(400, "Wrong input: Vector dimension error")

        for point in body["points"]:
            self.points(name)[str(point["id"])] = point
        return _ok({"operation_id": call_index, "status": "completed"})

    def search(self, request: httpx.Request, name: str) -> httpx.Response:
        body = self._record(request)
        self.search_bodies.append(body)
        if name not in self.collections:
            return self._missing(name)

        query = body["vector"]
        if isinstance(query, dict):
            query = query["vector"]

        scored = [
            {
                "id": point_id,
                "version": 0,
                "score": _cosine(query, self._dense_vector(name, point)),
                "payload": point["payload"],
            }
            for point_id, point in self.points(name).items()
            if _filter_matches(point["payload"], body.get("filter"))
        ]
        scored.sort(key=lambda item: item["score"], reverse=True)
        return _ok(scored[: body["limit"]])

    def scroll(self, request: httpx.Request, name: str) -> httpx.Response:
        body = self._record(request)
        self.scroll_bodies.append(body)
        if name not in self.collections:
            return self._missing(name)

        matching = [
            {"id": point_id, "payload": point["payload"]}
            for point_id, point in self.points(name).items()
            if _filter_matches(point["payload"], body.get("filter"))
        ]
        return _ok({"points": matching[: body["limit"]], "next_page_offset": None})

    def delete_points(self, request: httpx.Request, name: str) -> httpx.Response:
        body = self._record(request)
        if name not in self.collections:
            return self._missing(name)
        for point_id in body["points"]:
            self.points(name).pop(str(point_id), None)
        return _ok({"operation_id": 0, "status": "completed"})


@pytest.fixture
def fake_qdrant():
    """In-memory Qdrant answering the REST adapter's requests."""
    fake = FakeQdrant()
    with respx.mock(assert_all_called=False) as router:
        fake.install(router)
        yield fake


@pytest.fixture
async def rest_store(fake_qdrant, vector_store_config):
    """REST adapter wired to the fake Qdrant."""
    store = QdrantRestVectorDatabase(
        url=QDRANT_URL,
        api_key=API_KEY,
        config=vector_store_config,
    )
    yield store
    await store.close()


@pytest.fixture
def mock_qdrant_client() -> AsyncMock:
    """Mock AsyncQdrantClient instance."""
    client = AsyncMock()
    client.get_collection = AsyncMock(return_value=object())
    client.create_collection = AsyncMock(return_value=True)
    client.create_payload_index = AsyncMock()
    client.delete_collection = AsyncMock(return_value=True)
    client.upsert = AsyncMock()
    client.delete = AsyncMock()
    client.close = AsyncMock()
    return client
