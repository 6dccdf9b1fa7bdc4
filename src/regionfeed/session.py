"""Load session: the cache-or-fetch orchestration core.

A session walks the child keys of one parent region strictly in order.
For each key it either replays a fresh client-side cache entry or pages
through the remote source, merging every page into the session's
:class:`~regionfeed.sink.MergeSink` as soon as it arrives.

Cancellation is cooperative.  :meth:`LoadSession.cancel` only sets a
flag; the flag is polled before each key and before each page fetch, so
an in-flight request always finishes and merges cleanly.
"""

from __future__ import annotations

import asyncio
import enum
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from regionfeed._constants import PROGRESS_FAILED_MESSAGE
from regionfeed.cache import PersistentCache
from regionfeed.config import LayerSpec, LoaderConfig
from regionfeed.exceptions import FormatError, NetworkError, SessionFatalError
from regionfeed.models.feature import Feature, FeatureCollection
from regionfeed.models.page import Cursor
from regionfeed.models.progress import ProgressEvent
from regionfeed.progress import ProgressReporter
from regionfeed.resolver import RegionKeyResolver, normalize_keys, resolve_keys
from regionfeed.sink import MergeSink
from regionfeed.source import RemoteSource
from regionfeed.writeback import CacheWriteback

_logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


class LoadState(enum.StrEnum):
    INIT = "init"
    RUNNING = "running"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (LoadState.COMPLETED, LoadState.CANCELLED, LoadState.FAILED)


@dataclass
class LoadResult:
    """Outcome of a session that reached COMPLETED or CANCELLED."""

    parent_key: str
    state: LoadState
    features: list[Feature] = field(default_factory=list)
    loaded_count: int = 0
    total_count: int = 0
    failed_keys: list[str] = field(default_factory=list)
    from_server_cache: bool = False

    @property
    def collection(self) -> FeatureCollection:
        return FeatureCollection(features=list(self.features))


class LoadSession:
    """One load of a parent region for one layer.

    A session runs at most once.  Its state never outlives it: only the
    client-side cache and the server writeback persist.
    """

    def __init__(
        self,
        parent_key: str,
        *,
        layer: LayerSpec,
        resolver: RegionKeyResolver,
        source: RemoteSource,
        cache: PersistentCache,
        sink: MergeSink | None = None,
        progress: ProgressReporter | None = None,
        writeback: CacheWriteback | None = None,
        config: LoaderConfig | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.parent_key = parent_key
        self._layer = layer
        self._resolver = resolver
        self._source = source
        self._cache = cache
        self._sink = sink if sink is not None else MergeSink()
        self._progress = progress if progress is not None else ProgressReporter()
        self._writeback = writeback
        self._config = config if config is not None else LoaderConfig()
        self._sleep = sleep

        self._state = LoadState.INIT
        self._cancelled = False
        self._requested_keys: list[str] = []
        self._loaded_count = 0
        self._failed_keys: list[str] = []

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def state(self) -> LoadState:
        return self._state

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def requested_keys(self) -> list[str]:
        return list(self._requested_keys)

    @property
    def loaded_count(self) -> int:
        return self._loaded_count

    @property
    def sink(self) -> MergeSink:
        return self._sink

    def cancel(self) -> None:
        """Request cancellation.  Terminal: no new network calls after it is observed."""
        if not self._cancelled:
            _logger.debug("Cancellation requested for %s/%s", self._layer.name, self.parent_key)
        self._cancelled = True

    # ------------------------------------------------------------------
    # Progress helpers
    # ------------------------------------------------------------------

    def _emit(self, message: str) -> None:
        self._progress.emit(
            ProgressEvent(
                message=message,
                loaded_count=self._loaded_count,
                total_count=len(self._requested_keys),
                failed_count=len(self._failed_keys),
                feature_count=len(self._sink),
            )
        )

    def _summary_message(self) -> str:
        total = len(self._requested_keys)
        message = f"Loaded {len(self._sink)} features from {self._loaded_count}/{total} regions"
        if self._failed_keys:
            message += f" ({len(self._failed_keys)} failed)"
        return message

    def _result(self, *, from_server_cache: bool = False) -> LoadResult:
        return LoadResult(
            parent_key=self.parent_key,
            state=self._state,
            features=self._sink.features,
            loaded_count=self._loaded_count,
            total_count=len(self._requested_keys),
            failed_keys=list(self._failed_keys),
            from_server_cache=from_server_cache,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def run(self) -> LoadResult:
        """Execute the session.

        Returns the result for COMPLETED and CANCELLED sessions.

        Raises
        ------
        SessionFatalError
            The child keys of the parent could not be resolved.  The
            session ends FAILED; whatever was merged stays in the sink.
        """
        if self._state is not LoadState.INIT:
            raise RuntimeError(f"LoadSession for {self.parent_key} already {self._state}")
        self._state = LoadState.RUNNING
        self._sink.reset()
        _logger.info("Loading %s for %s", self._layer.name, self.parent_key)

        if self._cancelled:
            return self._finish_cancelled()

        if self._config.server_cache_lookup and self._writeback is not None:
            cached = await self._writeback.lookup(self.parent_key)
            if cached is not None:
                return self._finish_from_server_cache(cached)
            if self._cancelled:
                return self._finish_cancelled()

        self._emit("Initializing region data...")
        try:
            keys = await self._resolve()
        except SessionFatalError:
            self._state = LoadState.FAILED
            self._emit(PROGRESS_FAILED_MESSAGE)
            raise

        self._requested_keys = keys
        if self._cancelled:
            return self._finish_cancelled()
        if not keys:
            self._state = LoadState.COMPLETED
            _logger.info("No region keys for %s; nothing to load", self.parent_key)
            self._progress.clear()
            return self._result()

        for index, key in enumerate(keys):
            if index > 0 and self._config.key_delay:
                await self._sleep(self._config.key_delay)
            if self._cancelled:
                return self._finish_cancelled()
            if not await self._load_key(key):
                return self._finish_cancelled()

        return await self._finish_completed()

    async def _resolve_once(self) -> list[str]:
        try:
            raw = await resolve_keys(self._resolver, self.parent_key)
        except Exception as exc:
            raise SessionFatalError(
                f"Could not resolve region keys for {self.parent_key}: {exc}",
                parent_key=self.parent_key,
            ) from exc
        return normalize_keys(raw, self._layer.key_pattern)

    async def _resolve(self) -> list[str]:
        keys = await self._resolve_once()
        if keys:
            return keys
        # Key discovery may still be in flight elsewhere; give it one more chance.
        _logger.debug(
            "Empty key set for %s, retrying once in %.2fs",
            self.parent_key,
            self._config.empty_keys_retry_delay,
        )
        await self._sleep(self._config.empty_keys_retry_delay)
        if self._cancelled:
            return []
        return await self._resolve_once()

    async def _load_key(self, key: str) -> bool:
        """Load one key.  Returns ``False`` once cancellation is observed."""
        total = len(self._requested_keys)
        self._emit(f"Loading region {key}... ({self._loaded_count}/{total})")

        entry = await self._cache.get(key)
        if entry is not None and self._cache.is_fresh(entry):
            _logger.debug("Cache hit for %s (%d features)", key, len(entry.features))
            self._sink.append(entry.features)
            self._loaded_count += 1
            self._emit(f"Loading regions... ({self._loaded_count}/{total}) - {len(self._sink)} features loaded")
            return True

        collected: list[Feature] = []
        first_merged: int | None = None
        cursor: Cursor | None = None
        page_number = 0
        while True:
            if page_number > 0 and self._config.page_delay:
                await self._sleep(self._config.page_delay)
            if self._cancelled:
                return False
            try:
                page = await self._source.fetch_page(key, cursor)
            except (NetworkError, FormatError) as exc:
                _logger.warning("Skipping %s region %s: %s", self._layer.name, key, exc)
                if first_merged is not None:
                    self._sink.retract_from(first_merged)
                self._failed_keys.append(key)
                self._emit(f"Loading regions... ({self._loaded_count}/{total}) - {key} failed")
                return True

            page_number += 1
            collected.extend(page.features)
            added = self._sink.append(page.features)
            if added and first_merged is None:
                first_merged = added[0].id
            self._emit(f"Loading region {key}... ({self._loaded_count}/{total}) - {len(self._sink)} features loaded")
            if page.is_last:
                break
            cursor = page.continuation

        await self._cache.set(key, collected)
        self._loaded_count += 1
        self._emit(f"Loading regions... ({self._loaded_count}/{total}) - {len(self._sink)} features loaded")
        return True

    def _finish_cancelled(self) -> LoadResult:
        self._state = LoadState.CANCELLED
        _logger.info(
            "Cancelled %s load for %s after %d/%d regions",
            self._layer.name,
            self.parent_key,
            self._loaded_count,
            len(self._requested_keys),
        )
        self._progress.clear(loaded_count=self._loaded_count, total_count=len(self._requested_keys))
        return self._result()

    def _finish_from_server_cache(self, features: list[Feature]) -> LoadResult:
        self._sink.append(features)
        self._state = LoadState.COMPLETED
        _logger.info("Served %d features for %s from the server cache", len(features), self.parent_key)
        self._emit(f"Loaded {len(self._sink)} features from server cache")
        return self._result(from_server_cache=True)

    async def _finish_completed(self) -> LoadResult:
        self._emit(self._summary_message())
        self._state = LoadState.COMPLETED
        _logger.info(
            "Loaded %s for %s: %d features, %d/%d regions, %d failed",
            self._layer.name,
            self.parent_key,
            len(self._sink),
            self._loaded_count,
            len(self._requested_keys),
            len(self._failed_keys),
        )
        result = self._result()
        if self._writeback is not None:
            try:
                await self._writeback.submit(self.parent_key, result.features)
            except Exception:
                _logger.warning("Writeback for %s raised", self.parent_key, exc_info=True)
        return result
