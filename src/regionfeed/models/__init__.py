"""Typed records for regionfeed."""

from regionfeed.models.cache import CacheEntry
from regionfeed.models.feature import Feature, FeatureCollection
from regionfeed.models.page import Cursor, Page
from regionfeed.models.progress import ProgressEvent

__all__ = [
    "CacheEntry",
    "Cursor",
    "Feature",
    "FeatureCollection",
    "Page",
    "ProgressEvent",
]
