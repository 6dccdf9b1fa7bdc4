"""Tests for GeoJSON and cache models built on FeedBaseModel."""

from __future__ import annotations

from datetime import datetime, timedelta

import pydantic
import pytest
from fakes import NOW, make_feature, make_features

from regionfeed.models.cache import CacheEntry
from regionfeed.models.feature import Feature, FeatureCollection
from regionfeed.models.page import Page
from regionfeed.models.progress import ProgressEvent

# ------------------------------------------------------------------
# Feature
# ------------------------------------------------------------------


class TestFeature:
    def test_parses_plain_geojson(self) -> None:
        feature = Feature.model_validate(make_feature("1011", 3))
        assert feature.id is None
        assert feature.type == "Feature"
        assert feature.geometry is not None
        assert feature.geometry["type"] == "Point"
        assert feature.properties == {"region": "1011", "n": 3}

    def test_foreign_ids_are_discarded(self) -> None:
        for raw_id in ("verblijfsobject.123", 1.5, True, None):
            feature = Feature.model_validate({**make_feature("1011", 0), "id": raw_id})
            assert feature.id is None

    def test_integer_id_is_kept(self) -> None:
        assert Feature.model_validate({**make_feature("1011", 0), "id": 7}).id == 7

    def test_null_properties_become_empty(self) -> None:
        feature = Feature.model_validate({"type": "Feature", "geometry": None, "properties": None})
        assert feature.properties == {}

    def test_wrong_type_rejected(self) -> None:
        with pytest.raises(pydantic.ValidationError):
            Feature.model_validate({"type": "Polygon", "coordinates": []})

    def test_with_id_returns_copy(self) -> None:
        original = make_features("1011", 1)[0]
        numbered = original.with_id(4)
        assert numbered.id == 4
        assert original.id is None

    def test_without_properties(self) -> None:
        feature = Feature.model_validate(
            {"type": "Feature", "geometry": None, "properties": {"a": 1, "rdf_seealso": "http://x"}}
        )
        assert feature.without_properties(["rdf_seealso"]).properties == {"a": 1}
        assert feature.without_properties(["missing"]) is feature

    def test_content_key_ignores_id(self) -> None:
        feature = make_features("1011", 1)[0]
        assert feature.with_id(1).content_key() == feature.with_id(99).content_key()

    def test_frozen(self) -> None:
        feature = make_features("1011", 1)[0]
        with pytest.raises(pydantic.ValidationError):
            feature.id = 3  # type: ignore[misc]


# ------------------------------------------------------------------
# FeatureCollection
# ------------------------------------------------------------------


class TestFeatureCollection:
    def test_to_geojson_omits_unassigned_ids(self) -> None:
        features = make_features("1011", 2)
        collection = FeatureCollection(features=[features[0].with_id(0), features[1]])
        payload = collection.to_geojson()
        assert payload["type"] == "FeatureCollection"
        assert payload["features"][0]["id"] == 0
        assert "id" not in payload["features"][1]

    def test_len(self) -> None:
        assert len(FeatureCollection(features=make_features("1011", 3))) == 3
        assert len(FeatureCollection()) == 0


# ------------------------------------------------------------------
# Page / CacheEntry / ProgressEvent
# ------------------------------------------------------------------


class TestPage:
    def test_is_last_without_continuation(self) -> None:
        assert Page(features=[]).is_last is True
        assert Page(features=[], continuation="abc").is_last is False
        assert Page(features=[], continuation=0).is_last is False


class TestCacheEntry:
    def test_fresh_strictly_before_ttl(self) -> None:
        ttl = timedelta(hours=24)
        just_fresh = CacheEntry(key="1011", fetched_at=NOW - ttl + timedelta(milliseconds=1))
        boundary = CacheEntry(key="1011", fetched_at=NOW - ttl)
        stale = CacheEntry(key="1011", fetched_at=NOW - ttl - timedelta(milliseconds=1))

        assert just_fresh.is_fresh(NOW, ttl) is True
        assert boundary.is_fresh(NOW, ttl) is False
        assert stale.is_fresh(NOW, ttl) is False

    def test_naive_timestamp_is_utc(self) -> None:
        entry = CacheEntry(key="1011", fetched_at=datetime(2026, 1, 1, 12, 0))
        assert entry.fetched_at.utcoffset() == timedelta(0)
        assert entry.age(NOW) == timedelta(0)

    def test_json_uses_camel_case(self) -> None:
        entry = CacheEntry(key="1011", features=make_features("1011", 1), fetched_at=NOW)
        payload = entry.model_dump(by_alias=True, mode="json")
        assert set(payload) == {"key", "features", "fetchedAt"}
        assert CacheEntry.model_validate(payload) == entry


class TestProgressEvent:
    def test_defaults(self) -> None:
        event = ProgressEvent(message="Initializing region data...")
        assert (event.loaded_count, event.total_count, event.failed_count, event.feature_count) == (0, 0, 0, 0)
