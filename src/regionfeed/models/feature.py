"""GeoJSON feature models."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any, Literal

from pydantic import Field, field_validator

from regionfeed.models._base import FeedBaseModel


class Feature(FeedBaseModel):
    """A single GeoJSON feature.

    ``id`` is ``None`` until a :class:`~regionfeed.sink.MergeSink`
    assigns the session-local sequential id.  Upstream ids that are not
    integers (e.g. WFS ``"verblijfsobject.123"``) are discarded.
    """

    id: int | None = None
    type: Literal["Feature"] = "Feature"
    geometry: dict[str, Any] | None = None
    properties: dict[str, Any] = Field(default_factory=dict)

    @field_validator("id", mode="before")
    @classmethod
    def _drop_foreign_ids(cls, value: Any) -> int | None:
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        return None

    @field_validator("properties", mode="before")
    @classmethod
    def _none_properties(cls, value: Any) -> Any:
        return {} if value is None else value

    def with_id(self, feature_id: int) -> Feature:
        return self.model_copy(update={"id": feature_id})

    def without_properties(self, names: Iterable[str]) -> Feature:
        """Return a copy with the given property names removed."""
        drop = set(names)
        if not drop.intersection(self.properties):
            return self
        kept = {k: v for k, v in self.properties.items() if k not in drop}
        return self.model_copy(update={"properties": kept})

    def content_key(self) -> tuple[str, str]:
        """Identity of the feature ignoring its session-local id."""
        return (
            self.model_dump_json(include={"geometry"}),
            self.model_dump_json(include={"properties"}),
        )


class FeatureCollection(FeedBaseModel):
    """A GeoJSON FeatureCollection."""

    type: Literal["FeatureCollection"] = "FeatureCollection"
    features: list[Feature] = Field(default_factory=list)

    def __len__(self) -> int:
        return len(self.features)

    def to_geojson(self) -> dict[str, Any]:
        """Plain JSON-ready dict; unassigned ids are omitted."""
        features: list[dict[str, Any]] = []
        for feature in self.features:
            item = feature.model_dump(mode="json")
            if item.get("id") is None:
                item.pop("id", None)
            features.append(item)
        return {"type": self.type, "features": features}
