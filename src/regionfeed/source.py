"""Paginated feature source.

One call to :meth:`RemoteSource.fetch_page` issues exactly one request.
Looping until the terminal page is the caller's job so that every page
can be merged as soon as it arrives.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError

from regionfeed._transport import Transport
from regionfeed.config import LayerSpec, PagingMode
from regionfeed.exceptions import FormatError
from regionfeed.models.feature import Feature
from regionfeed.models.page import Cursor, Page

_logger = logging.getLogger(__name__)


def _parse_features(payload: Any, *, endpoint: str, drop_properties: tuple[str, ...]) -> list[Feature]:
    if not isinstance(payload, dict):
        raise FormatError(f"Expected a JSON object from {endpoint}, got {type(payload).__name__}", endpoint=endpoint)
    raw_features = payload.get("features")
    if not isinstance(raw_features, list):
        raise FormatError(f"Missing 'features' array in response from {endpoint}", endpoint=endpoint)

    features: list[Feature] = []
    for index, item in enumerate(raw_features):
        if not isinstance(item, dict):
            raise FormatError(f"Feature {index} from {endpoint} is not an object", endpoint=endpoint)
        try:
            feature = Feature.model_validate(item)
        except ValidationError as exc:
            raise FormatError(f"Feature {index} from {endpoint} is invalid: {exc}", endpoint=endpoint) from exc
        if drop_properties:
            feature = feature.without_properties(drop_properties)
        features.append(feature)
    return features


def parse_page(
    payload: Any,
    layer: LayerSpec,
    *,
    endpoint: str = "",
    offset: int = 0,
) -> Page:
    """Turn a decoded response body into a :class:`Page`.

    Cursor paging reads ``nextCursor`` from the body.  Offset paging
    continues at ``offset + len(features)`` while pages come back full.
    """
    endpoint = endpoint or layer.endpoint
    features = _parse_features(payload, endpoint=endpoint, drop_properties=layer.drop_properties)

    continuation: Cursor | None
    if layer.paging == PagingMode.OFFSET:
        continuation = offset + len(features) if len(features) >= layer.page_size else None
    else:
        next_cursor = payload.get("nextCursor")
        if next_cursor is None or next_cursor == "":
            continuation = None
        elif isinstance(next_cursor, (str, int)) and not isinstance(next_cursor, bool):
            continuation = next_cursor
        else:
            raise FormatError(f"Invalid nextCursor {next_cursor!r} from {endpoint}", endpoint=endpoint)

    return Page(features=features, continuation=continuation)


class RemoteSource:
    """Fetches pages of one layer's features for a region key."""

    def __init__(self, transport: Transport, layer: LayerSpec) -> None:
        self._transport = transport
        self._layer = layer

    @property
    def layer(self) -> LayerSpec:
        return self._layer

    def _params(self, key: str, cursor: Cursor | None) -> tuple[dict[str, str | int], int]:
        layer = self._layer
        params: dict[str, str | int] = {
            layer.key_param: key,
            layer.page_size_param: layer.page_size,
        }
        offset = 0
        if layer.paging == PagingMode.OFFSET:
            try:
                offset = int(cursor) if cursor is not None else 0
            except ValueError as exc:
                raise ValueError(f"offset cursor must be numeric, got {cursor!r}") from exc
            params[layer.cursor_param] = offset
        elif cursor is not None:
            params[layer.cursor_param] = cursor
        return params, offset

    async def fetch_page(self, key: str, cursor: Cursor | None = None) -> Page:
        """Fetch one page for *key*.

        Raises
        ------
        NetworkError
            Connection failure or non-OK status.
        FormatError
            Unexpected content type or response shape.
        """
        params, offset = self._params(key, cursor)
        payload = await self._transport.get_json(self._layer.endpoint, params)
        page = parse_page(payload, self._layer, offset=offset)
        _logger.debug(
            "%s key=%s cursor=%s -> %d features, next=%s",
            self._layer.name,
            key,
            cursor,
            len(page.features),
            page.continuation,
        )
        return page
