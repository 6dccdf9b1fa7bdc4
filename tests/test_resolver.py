from __future__ import annotations

import pytest
from fakes import FakeFeatureBackend

from regionfeed.exceptions import FormatError
from regionfeed.models.feature import Feature, FeatureCollection
from regionfeed.resolver import (
    FeatureCollectionKeyResolver,
    RemoteKeyResolver,
    StaticKeyResolver,
    normalize_keys,
    postcode4_from_features,
    resolve_keys,
)


def _neighbourhoods(*postcodes: str | None) -> FeatureCollection:
    features = [
        Feature(properties={} if code is None else {"meestVoorkomendePostcode": code}) for code in postcodes
    ]
    return FeatureCollection(features=features)


class TestNormalizeKeys:
    def test_strips_and_deduplicates_in_order(self) -> None:
        assert normalize_keys([" 1012", "1011", "1012 ", "1011"]) == ["1012", "1011"]

    def test_drops_empty_and_none(self) -> None:
        assert normalize_keys(["", None, "  ", "1011"]) == ["1011"]

    def test_pattern_filters_keys(self) -> None:
        keys = ["1011", "0123", "10AB", "10111", 2000]
        assert normalize_keys(keys, r"^[1-9][0-9]{3}$") == ["1011", "2000"]


def test_postcode4_from_features() -> None:
    collection = _neighbourhoods("1011AB", None, "1012 CD", "")
    assert postcode4_from_features(collection) == ["1011", "1012"]


@pytest.mark.asyncio
async def test_static_resolver() -> None:
    resolver = StaticKeyResolver({"GM0363": ["1011", "1012"]})
    assert await resolve_keys(resolver, "GM0363") == ["1011", "1012"]
    assert await resolve_keys(resolver, "GM9999") == []


@pytest.mark.asyncio
async def test_feature_collection_resolver_with_sync_provider() -> None:
    resolver = FeatureCollectionKeyResolver(lambda parent: _neighbourhoods("1011AB", "1011CD", "1017XY"))
    keys = await resolve_keys(resolver, "GM0363")
    assert keys == ["1011", "1011", "1017"]
    assert normalize_keys(keys) == ["1011", "1017"]


@pytest.mark.asyncio
async def test_feature_collection_resolver_with_async_provider() -> None:
    requested: list[str] = []

    async def _provider(parent: str) -> FeatureCollection:
        requested.append(parent)
        return _neighbourhoods("3511AA")

    resolver = FeatureCollectionKeyResolver(_provider)
    assert await resolver.resolve("GM0344") == ["3511"]
    assert requested == ["GM0344"]


@pytest.mark.asyncio
async def test_feature_collection_resolver_custom_property() -> None:
    collection = FeatureCollection(features=[Feature(properties={"pc": "9711ZZ"})])
    resolver = FeatureCollectionKeyResolver(lambda parent: collection, property_name="pc")
    assert await resolver.resolve("GM0014") == ["9711"]


@pytest.mark.asyncio
async def test_remote_resolver_reads_key_listing(backend: FakeFeatureBackend) -> None:
    backend.key_listing["GM0363"] = ["1011", 1012]
    resolver = RemoteKeyResolver(backend, "/regions", parent_param="parent")

    assert await resolver.resolve("GM0363") == ["1011", "1012"]
    assert backend.lookups == ["GM0363"]


@pytest.mark.asyncio
async def test_remote_resolver_rejects_unexpected_body(backend: FakeFeatureBackend) -> None:
    backend.server_cache["GM0363"] = {"type": "FeatureCollection", "features": []}
    resolver = RemoteKeyResolver(backend, "/regions")

    with pytest.raises(FormatError):
        await resolver.resolve("GM0363")
