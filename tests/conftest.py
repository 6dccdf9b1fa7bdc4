from __future__ import annotations

from datetime import timedelta

import pytest
from fakes import NOW, FakeFeatureBackend, RecordingStore

from regionfeed.cache import PersistentCache
from regionfeed.config import LoaderConfig


@pytest.fixture
def backend() -> FakeFeatureBackend:
    return FakeFeatureBackend()


@pytest.fixture
def store() -> RecordingStore:
    return RecordingStore()


@pytest.fixture
def cache(store: RecordingStore) -> PersistentCache:
    return PersistentCache(store, ttl=timedelta(hours=24), clock=lambda: NOW)


@pytest.fixture
def config() -> LoaderConfig:
    return LoaderConfig(page_delay=0.0, key_delay=0.0, empty_keys_retry_delay=0.0)
