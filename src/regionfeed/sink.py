"""Append-only feature accumulator visible to a renderer."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable

from regionfeed.models.feature import Feature, FeatureCollection

_logger = logging.getLogger(__name__)

Renderer = Callable[[FeatureCollection], None]


class MergeSink:
    """Accumulates features for one session and assigns their ids.

    Ids start at 0 and increase by one per feature in append order,
    regardless of which region key produced the feature.  After every
    non-empty append the renderer receives the full collection so far
    (full-replace semantics).

    The sink is append-only with one exception: :meth:`retract_from`
    withdraws the partial pages of a key that failed mid-pagination, so
    the key contributes nothing.  The renderer is then handed a smaller
    collection than the previous one, and renderers must accept that
    shrink.  Ids of withdrawn features are never reused.
    """

    def __init__(self, renderer: Renderer | None = None) -> None:
        self._renderer = renderer
        self._features: list[Feature] = []
        self._next_id = 0

    def __len__(self) -> int:
        return len(self._features)

    @property
    def features(self) -> list[Feature]:
        return list(self._features)

    def snapshot(self) -> FeatureCollection:
        return FeatureCollection(features=list(self._features))

    def reset(self) -> None:
        self._features.clear()
        self._next_id = 0

    def append(self, features: Iterable[Feature]) -> list[Feature]:
        """Assign ids to *features*, append them and notify the renderer.

        Returns the appended features with their ids.
        """
        added: list[Feature] = []
        for feature in features:
            added.append(feature.with_id(self._next_id))
            self._next_id += 1
        if not added:
            return added
        self._features.extend(added)
        self._publish()
        return added

    def retract_from(self, feature_id: int) -> int:
        """Drop every feature whose id is ``>= feature_id``.

        Used when a key fails after some of its pages were merged.  The
        id counter is not rewound, so ids stay unique within the session.
        Returns the number of features removed.
        """
        kept = [f for f in self._features if f.id is not None and f.id < feature_id]
        removed = len(self._features) - len(kept)
        if removed:
            self._features = kept
            self._publish()
        return removed

    def _publish(self) -> None:
        if self._renderer is None:
            return
        try:
            self._renderer(self.snapshot())
        except Exception:
            _logger.debug("renderer callback failed", exc_info=True)
