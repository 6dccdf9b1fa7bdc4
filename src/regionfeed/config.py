"""Loader configuration for regionfeed."""

from __future__ import annotations

import dataclasses
import enum
import os
import re
from typing import Any

from regionfeed._constants import (
    BAG_POSTCODE4_PATTERN,
    BASE_URL,
    DEFAULT_CACHE_TTL_SECONDS,
    DEFAULT_EMPTY_KEYS_RETRY_DELAY,
    DEFAULT_KEY_DELAY,
    DEFAULT_PAGE_DELAY,
    DEFAULT_REQUEST_TIMEOUT,
    POSTCODE4_PATTERN,
    USER_AGENT,
)
from regionfeed.exceptions import ConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _env_float(env_key: str, value: str) -> float:
    try:
        return float(value)
    except ValueError as exc:
        raise ConfigError(f"{env_key} must be a number, got {value!r}") from exc


class PagingMode(enum.StrEnum):
    """How a remote endpoint signals that more pages follow."""

    #: Server returns ``nextCursor``; its absence marks the last page.
    CURSOR = "cursor"
    #: Client advances ``startIndex``; a short page marks the last page.
    OFFSET = "offset"


@dataclasses.dataclass(frozen=True)
class LayerSpec:
    """Describes one region-partitioned feature endpoint.

    A single :class:`~regionfeed.session.LoadSession` implementation
    serves every layer; only this description differs between them.

    Parameters
    ----------
    name : str
        Human readable layer name, used in logs.
    endpoint : str
        Path (relative to ``LoaderConfig.base_url``) of the paginated
        feature endpoint.
    key_param : str
        Query parameter carrying the child region key.
    page_size : int
        Maximum number of features requested per page.
    paging : PagingMode
        Continuation style of the endpoint.
    cursor_param : str
        Query parameter carrying the continuation cursor.
    page_size_param : str
        Query parameter carrying the page size.
    key_pattern : str or None
        Regular expression every child key must fully match.  Keys that
        do not match are dropped before loading starts.
    drop_properties : tuple of str
        Feature properties removed from every parsed feature.
    writeback_endpoint : str or None
        Server-side cache endpoint keyed by parent region.  ``None``
        disables writeback and server cache lookup.
    parent_param : str
        Query parameter carrying the parent region key on the
        writeback endpoint.
    """

    name: str
    endpoint: str
    key_param: str = "key"
    page_size: int = 500
    paging: PagingMode = PagingMode.CURSOR
    cursor_param: str = "cursor"
    page_size_param: str = "pageSize"
    key_pattern: str | None = None
    drop_properties: tuple[str, ...] = ()
    writeback_endpoint: str | None = None
    parent_param: str = "parent"

    def __post_init__(self) -> None:
        if self.page_size <= 0:
            raise ConfigError(f"page_size must be positive, got {self.page_size}")
        if self.key_pattern is not None:
            try:
                re.compile(self.key_pattern)
            except re.error as exc:
                raise ConfigError(f"invalid key_pattern {self.key_pattern!r}: {exc}") from exc


POSTCODE6_LAYER = LayerSpec(
    name="postcode6",
    endpoint="/api/postcode6.php",
    key_param="postcode4",
    page_size=500,
    paging=PagingMode.CURSOR,
    key_pattern=POSTCODE4_PATTERN,
)

BAG_LAYER = LayerSpec(
    name="bag",
    endpoint="/api/bag.php",
    key_param="postcode4",
    page_size=1000,
    paging=PagingMode.OFFSET,
    cursor_param="startIndex",
    page_size_param="maxFeatures",
    key_pattern=BAG_POSTCODE4_PATTERN,
    drop_properties=("rdf_seealso",),
    writeback_endpoint="/api/bag.php",
    parent_param="municipality_code",
)


@dataclasses.dataclass(frozen=True)
class LoaderConfig:
    """Loader configuration.

    Parameters
    ----------
    base_url : str
        Base URL of the feature server.
    cache_path : str or None
        Path of the SQLite file backing the client-side cache.  ``None``
        keeps the cache in memory for the lifetime of the loader.
    cache_ttl : float
        Seconds after which a cached region is stale.  Defaults to 24 hours.
    page_delay : float
        Courtesy delay in seconds between successive page fetches.
    key_delay : float
        Courtesy delay in seconds between successive region keys.
    empty_keys_retry_delay : float
        Seconds to wait before resolving an empty key set once more.
    request_timeout : float
        Total timeout in seconds for a single HTTP request.
    server_cache_lookup : bool
        Ask the server-side cache for a complete collection before
        resolving child keys.
    api_token : str or None
        Optional bearer token sent with every request.
    user_agent : str
        User-Agent header value.
    """

    base_url: str = BASE_URL
    cache_path: str | None = None
    cache_ttl: float = DEFAULT_CACHE_TTL_SECONDS
    page_delay: float = DEFAULT_PAGE_DELAY
    key_delay: float = DEFAULT_KEY_DELAY
    empty_keys_retry_delay: float = DEFAULT_EMPTY_KEYS_RETRY_DELAY
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    server_cache_lookup: bool = False
    api_token: str | None = None
    user_agent: str = USER_AGENT

    def __post_init__(self) -> None:
        if self.cache_ttl <= 0:
            raise ConfigError(f"cache_ttl must be positive, got {self.cache_ttl}")
        for name in ("page_delay", "key_delay", "empty_keys_retry_delay"):
            if getattr(self, name) < 0:
                raise ConfigError(f"{name} must not be negative")
        if self.request_timeout <= 0:
            raise ConfigError(f"request_timeout must be positive, got {self.request_timeout}")

    @classmethod
    def from_env(cls, **overrides: Any) -> LoaderConfig:
        """Create configuration from environment variables.

        Reads optional ``REGIONFEED_*`` variables. Explicit keyword
        arguments override environment values.

        Parameters
        ----------
        **overrides
            Explicit field values that take precedence over env vars.

        Returns
        -------
        LoaderConfig
            Populated configuration.
        """
        env = os.environ

        _ENV_STR_MAP = {
            "REGIONFEED_BASE_URL": "base_url",
            "REGIONFEED_CACHE_PATH": "cache_path",
            "REGIONFEED_API_TOKEN": "api_token",
            "REGIONFEED_USER_AGENT": "user_agent",
        }
        _ENV_FLOAT_MAP = {
            "REGIONFEED_CACHE_TTL": "cache_ttl",
            "REGIONFEED_PAGE_DELAY": "page_delay",
            "REGIONFEED_KEY_DELAY": "key_delay",
            "REGIONFEED_EMPTY_KEYS_RETRY_DELAY": "empty_keys_retry_delay",
            "REGIONFEED_REQUEST_TIMEOUT": "request_timeout",
        }

        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_STR_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        for env_key, field_name in _ENV_FLOAT_MAP.items():
            val = env.get(env_key)
            if val is not None and field_name not in overrides:
                config_kwargs[field_name] = _env_float(env_key, val)

        if "server_cache_lookup" not in overrides:
            config_kwargs["server_cache_lookup"] = _env_bool(env.get("REGIONFEED_SERVER_CACHE_LOOKUP"), False)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
