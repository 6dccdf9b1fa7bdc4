"""Parent region → child fetch key resolution."""

from __future__ import annotations

import inspect
import logging
import re
from collections.abc import Awaitable, Callable, Iterable, Mapping, Sequence
from typing import Any, Protocol

from regionfeed._constants import POSTCODE_PROPERTY
from regionfeed._transport import Transport
from regionfeed.exceptions import FormatError
from regionfeed.models.feature import FeatureCollection

_logger = logging.getLogger(__name__)


class RegionKeyResolver(Protocol):
    """Returns the ordered child keys of a parent region.

    ``resolve`` may return the keys directly or an awaitable of them.
    """

    def resolve(self, parent_key: str) -> Sequence[str] | Awaitable[Sequence[str]]:
        ...


async def resolve_keys(resolver: RegionKeyResolver, parent_key: str) -> list[str]:
    """Call *resolver* and await the result if needed."""
    result = resolver.resolve(parent_key)
    if inspect.isawaitable(result):
        result = await result
    return list(result)


def normalize_keys(keys: Iterable[Any], pattern: str | None = None) -> list[str]:
    """Strip, validate and de-duplicate *keys*, keeping first-seen order."""
    compiled = re.compile(pattern) if pattern else None
    seen: set[str] = set()
    normalized: list[str] = []
    for raw in keys:
        if raw is None:
            continue
        key = str(raw).strip()
        if not key or key in seen:
            continue
        if compiled is not None and not compiled.fullmatch(key):
            _logger.debug("Dropping key %r not matching %s", key, pattern)
            continue
        seen.add(key)
        normalized.append(key)
    return normalized


class StaticKeyResolver:
    """Resolver backed by a fixed mapping; unknown parents have no keys."""

    def __init__(self, mapping: Mapping[str, Sequence[str]]) -> None:
        self._mapping = {parent: list(keys) for parent, keys in mapping.items()}

    def resolve(self, parent_key: str) -> list[str]:
        return list(self._mapping.get(parent_key, []))


def postcode4_from_features(collection: FeatureCollection, property_name: str = POSTCODE_PROPERTY) -> list[str]:
    """First four characters of *property_name* for every feature that has it."""
    keys: list[str] = []
    for feature in collection.features:
        value = feature.properties.get(property_name)
        if value:
            keys.append(str(value)[:4])
    return keys


CollectionProvider = Callable[[str], FeatureCollection | Awaitable[FeatureCollection]]


class FeatureCollectionKeyResolver:
    """Derives child keys from the parent region's own features.

    *provider* returns the FeatureCollection describing a parent (for
    example the neighbourhoods of a municipality); each feature's
    postcode property contributes its 4-digit prefix.
    """

    def __init__(self, provider: CollectionProvider, *, property_name: str = POSTCODE_PROPERTY) -> None:
        self._provider = provider
        self._property_name = property_name

    async def resolve(self, parent_key: str) -> list[str]:
        collection = self._provider(parent_key)
        if inspect.isawaitable(collection):
            collection = await collection
        return postcode4_from_features(collection, self._property_name)


class RemoteKeyResolver:
    """Asks the server for the child keys of a parent.

    Expects ``{"postcodes": [...]}`` (optionally with
    ``"status": "fetch_postcodes"``).  Transport errors propagate.
    """

    def __init__(
        self,
        transport: Transport,
        endpoint: str,
        *,
        parent_param: str = "parent",
        keys_field: str = "postcodes",
    ) -> None:
        self._transport = transport
        self._endpoint = endpoint
        self._parent_param = parent_param
        self._keys_field = keys_field

    async def resolve(self, parent_key: str) -> list[str]:
        payload = await self._transport.get_json(self._endpoint, {self._parent_param: parent_key})
        keys = payload.get(self._keys_field) if isinstance(payload, dict) else None
        if not isinstance(keys, list):
            raise FormatError(
                f"Missing '{self._keys_field}' list in key listing for {parent_key}",
                endpoint=self._endpoint,
            )
        return [str(key) for key in keys]
