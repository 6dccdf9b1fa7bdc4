"""Base model for regionfeed records.

Every model inherits from :class:`FeedBaseModel` which provides:

* ``alias_generator=to_camel`` so camelCase wire keys (``nextCursor``,
  ``fetchedAt``) map automatically to snake_case fields.
* ``frozen=True`` so records handed to renderers and callbacks cannot
  be mutated in place.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


def utcnow() -> datetime:
    return datetime.now(UTC)


def ensure_utc(value: Any) -> Any:
    """Attach UTC to naive datetimes; leave everything else untouched."""
    if isinstance(value, datetime) and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


class FeedBaseModel(BaseModel):
    """Base for regionfeed models."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )
