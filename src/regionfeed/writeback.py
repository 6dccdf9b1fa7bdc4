"""Best-effort server-side cache of merged collections.

Writeback is fire-and-forget: failures are logged once and never
retried or surfaced.  The client-side cache stays authoritative.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from regionfeed._transport import Transport
from regionfeed.config import LayerSpec
from regionfeed.exceptions import FormatError, NetworkError
from regionfeed.models.feature import Feature, FeatureCollection
from regionfeed.source import parse_page

_logger = logging.getLogger(__name__)


class CacheWriteback:
    """Reads and writes the server-side cache of one layer, keyed by parent region."""

    def __init__(self, transport: Transport, layer: LayerSpec) -> None:
        if layer.writeback_endpoint is None:
            raise ValueError(f"layer {layer.name!r} has no writeback endpoint")
        self._transport = transport
        self._layer = layer
        self._endpoint: str = layer.writeback_endpoint

    async def submit(self, parent_key: str, features: Sequence[Feature]) -> bool:
        """POST the full collection for *parent_key*.  Returns ``True`` on success."""
        collection = FeatureCollection(features=list(features))
        try:
            await self._transport.post_json(
                self._endpoint,
                collection.to_geojson(),
                {self._layer.parent_param: parent_key},
            )
        except (NetworkError, FormatError) as exc:
            _logger.warning("Writeback of %s (%d features) failed: %s", parent_key, len(collection), exc)
            return False
        _logger.info("Wrote %d features for %s to the server cache", len(collection), parent_key)
        return True

    async def lookup(self, parent_key: str) -> list[Feature] | None:
        """Return the server-cached collection for *parent_key*, if it has one.

        The endpoint answers either with a FeatureCollection (cache hit)
        or with some other JSON document such as a key listing (miss).
        """
        try:
            payload = await self._transport.get_json(self._endpoint, {self._layer.parent_param: parent_key})
        except (NetworkError, FormatError) as exc:
            _logger.warning("Server cache lookup for %s failed: %s", parent_key, exc)
            return None
        if not isinstance(payload, dict) or payload.get("type") != "FeatureCollection":
            return None
        try:
            page = parse_page(payload, self._layer, endpoint=self._endpoint)
        except FormatError as exc:
            _logger.warning("Ignoring malformed server cache entry for %s: %s", parent_key, exc)
            return None
        return page.features
