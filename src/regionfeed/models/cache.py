"""Client-side cache entry model."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any

from pydantic import Field, field_validator

from regionfeed.models._base import FeedBaseModel, ensure_utc, utcnow
from regionfeed.models.feature import Feature


class CacheEntry(FeedBaseModel):
    """Cached feature set of one region key.

    Serialized as ``{"key", "features", "fetchedAt"}``.
    """

    key: str
    features: list[Feature] = Field(default_factory=list)
    fetched_at: datetime = Field(default_factory=utcnow)

    @field_validator("fetched_at", mode="before")
    @classmethod
    def _ensure_tz_aware(cls, value: Any) -> Any:
        return ensure_utc(value)

    def age(self, now: datetime) -> timedelta:
        return now - self.fetched_at

    def is_fresh(self, now: datetime, ttl: timedelta) -> bool:
        """True iff ``now - fetched_at < ttl``."""
        return self.age(now) < ttl
