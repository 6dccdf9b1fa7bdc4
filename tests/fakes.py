"""Test doubles shared by the regionfeed test suite."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from regionfeed.cache import MemoryCacheStore
from regionfeed.config import LayerSpec
from regionfeed.exceptions import NetworkError, StorageError
from regionfeed.models.cache import CacheEntry
from regionfeed.models.feature import Feature

NOW = datetime(2026, 1, 1, 12, 0, tzinfo=UTC)

TEST_LAYER = LayerSpec(
    name="test",
    endpoint="/features",
    key_param="key",
    page_size=3,
    key_pattern=r"^\d{4}$",
    writeback_endpoint="/regions",
    parent_param="parent",
)


def make_feature(key: str, n: int) -> dict[str, Any]:
    return {
        "type": "Feature",
        "geometry": {"type": "Point", "coordinates": [4.9 + n / 1000, 52.3]},
        "properties": {"region": key, "n": n},
    }


def make_features(key: str, count: int, start: int = 0) -> list[Feature]:
    return [Feature.model_validate(make_feature(key, start + i)) for i in range(count)]


@dataclass
class FakeFeatureBackend:
    """In-memory feature server speaking the `Transport` protocol."""

    pages: dict[str, list[Any]] = field(default_factory=dict)
    key_listing: dict[str, list[str]] = field(default_factory=dict)
    server_cache: dict[str, dict[str, Any]] = field(default_factory=dict)
    writeback_error: Exception | None = None
    on_fetch: Callable[[str, int], None] | None = None
    feature_calls: list[tuple[str, str | None]] = field(default_factory=list)
    writebacks: list[tuple[str, dict[str, Any]]] = field(default_factory=list)
    lookups: list[str] = field(default_factory=list)

    def serve(self, key: str, *page_sizes: int) -> None:
        """Serve *key* as consecutive pages of the given sizes."""
        payloads: list[Any] = []
        start = 0
        for index, size in enumerate(page_sizes):
            payload: dict[str, Any] = {
                "type": "FeatureCollection",
                "features": [make_feature(key, start + i) for i in range(size)],
            }
            if index < len(page_sizes) - 1:
                payload["nextCursor"] = str(index + 1)
            payloads.append(payload)
            start += size
        self.pages[key] = payloads

    def fail(self, key: str, page_index: int, error: Exception | Any) -> None:
        """Replace one page with an exception or a malformed body."""
        self.pages[key][page_index] = error

    @property
    def network_calls(self) -> int:
        return len(self.feature_calls)

    async def get_json(self, endpoint: str, params: Any) -> Any:
        if endpoint == TEST_LAYER.writeback_endpoint:
            parent = str(params[TEST_LAYER.parent_param])
            self.lookups.append(parent)
            if parent in self.server_cache:
                return self.server_cache[parent]
            return {"status": "fetch_postcodes", "postcodes": self.key_listing.get(parent, [])}

        key = str(params[TEST_LAYER.key_param])
        cursor = params.get(TEST_LAYER.cursor_param)
        self.feature_calls.append((key, None if cursor is None else str(cursor)))
        index = int(cursor) if cursor is not None else 0
        if self.on_fetch is not None:
            self.on_fetch(key, index)
        if key not in self.pages:
            raise NetworkError(f"HTTP 404 from {endpoint}", status_code=404, endpoint=endpoint)
        item = self.pages[key][index]
        if isinstance(item, Exception):
            raise item
        return item

    async def post_json(self, endpoint: str, payload: Any, params: Any) -> Any:
        parent = str(params[TEST_LAYER.parent_param])
        self.writebacks.append((parent, payload))
        if self.writeback_error is not None:
            raise self.writeback_error
        return {"status": "success"}


class RecordingStore(MemoryCacheStore):
    def __init__(self) -> None:
        super().__init__()
        self.saved_keys: list[str] = []

    async def save(self, entry: CacheEntry) -> None:
        self.saved_keys.append(entry.key)
        await super().save(entry)

    def seed(self, key: str, features: list[Feature], fetched_at: datetime) -> None:
        self._entries[key] = CacheEntry(key=key, features=features, fetched_at=fetched_at)


class BrokenStore:
    async def load(self, key: str) -> CacheEntry | None:
        raise StorageError("disk on fire", key=key)

    async def save(self, entry: CacheEntry) -> None:
        raise StorageError("disk on fire", key=entry.key)


class ExplodingStore:
    """Third-party store that raises outside the regionfeed taxonomy."""

    async def load(self, key: str) -> CacheEntry | None:
        raise RuntimeError(f"driver crashed reading {key}")

    async def save(self, entry: CacheEntry) -> None:
        raise RuntimeError(f"driver crashed writing {entry.key}")


@dataclass
class FakeResponse:
    status: int = 200
    body: str | bytes = b""
    content_type: str = "application/json"

    @property
    def headers(self) -> dict[str, str]:
        return {"Content-Type": self.content_type} if self.content_type else {}

    async def read(self) -> bytes:
        return self.body.encode("utf-8") if isinstance(self.body, str) else self.body

    async def __aenter__(self) -> FakeResponse:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        return None


@dataclass
class FakeHttpSession:
    """Stands in for ``aiohttp.ClientSession.request``.

    Responses in ``by_key`` are picked by the request's ``key`` query
    parameter; everything else gets ``response``.
    """

    response: FakeResponse | Exception = field(default_factory=FakeResponse)
    by_key: dict[str, FakeResponse | Exception] = field(default_factory=dict)
    requests: list[dict[str, Any]] = field(default_factory=list)

    def request(self, method: str, url: str, **kwargs: Any) -> FakeResponse:
        self.requests.append({"method": method, "url": url, **kwargs})
        key = (kwargs.get("params") or {}).get(TEST_LAYER.key_param)
        response = self.by_key.get(key, self.response) if key is not None else self.response
        if isinstance(response, Exception):
            raise response
        return response


async def no_sleep(_seconds: float) -> None:
    return None
