"""regionfeed - Async, cache-aware loader for region-partitioned GeoJSON layers."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("regionfeed")
except PackageNotFoundError:
    __version__ = "0+local"
from regionfeed.cache import CacheStore, MemoryCacheStore, PersistentCache, SqliteCacheStore
from regionfeed.config import BAG_LAYER, POSTCODE6_LAYER, LayerSpec, LoaderConfig, PagingMode
from regionfeed.exceptions import (
    ConfigError,
    FormatError,
    LoaderNotStartedError,
    NetworkError,
    RegionFeedError,
    SessionFatalError,
    StorageError,
)
from regionfeed.loader import CancelHandle, RegionLoader
from regionfeed.models import CacheEntry, Feature, FeatureCollection, Page, ProgressEvent
from regionfeed.progress import ProgressReporter
from regionfeed.resolver import (
    FeatureCollectionKeyResolver,
    RegionKeyResolver,
    RemoteKeyResolver,
    StaticKeyResolver,
    normalize_keys,
)
from regionfeed.session import LoadResult, LoadSession, LoadState
from regionfeed.sink import MergeSink
from regionfeed.source import RemoteSource, parse_page
from regionfeed.writeback import CacheWriteback

__all__ = [
    "__version__",
    "BAG_LAYER",
    "CacheEntry",
    "CacheStore",
    "CacheWriteback",
    "CancelHandle",
    "ConfigError",
    "Feature",
    "FeatureCollection",
    "FeatureCollectionKeyResolver",
    "FormatError",
    "LayerSpec",
    "LoadResult",
    "LoadSession",
    "LoadState",
    "LoaderConfig",
    "LoaderNotStartedError",
    "MemoryCacheStore",
    "MergeSink",
    "NetworkError",
    "POSTCODE6_LAYER",
    "Page",
    "PagingMode",
    "PersistentCache",
    "ProgressEvent",
    "ProgressReporter",
    "RegionFeedError",
    "RegionKeyResolver",
    "RegionLoader",
    "RemoteKeyResolver",
    "RemoteSource",
    "SessionFatalError",
    "SqliteCacheStore",
    "StaticKeyResolver",
    "StorageError",
    "normalize_keys",
    "parse_page",
]
