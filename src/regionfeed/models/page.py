"""A single page of a paginated feature response."""

from __future__ import annotations

from pydantic import Field

from regionfeed.models._base import FeedBaseModel
from regionfeed.models.feature import Feature

Cursor = str | int


class Page(FeedBaseModel):
    """Features returned by one request plus an optional continuation.

    Absence of ``continuation`` marks the terminal page for a key.
    """

    features: list[Feature] = Field(default_factory=list)
    continuation: Cursor | None = None

    @property
    def is_last(self) -> bool:
        return self.continuation is None
