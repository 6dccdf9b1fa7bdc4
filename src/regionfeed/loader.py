"""High-level async loader for region-partitioned feature layers."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Any

import aiohttp

from regionfeed._transport import HttpTransport, Transport
from regionfeed.cache import MemoryCacheStore, PersistentCache, SqliteCacheStore
from regionfeed.config import LayerSpec, LoaderConfig
from regionfeed.exceptions import LoaderNotStartedError
from regionfeed.models._base import utcnow
from regionfeed.progress import ProgressCallback, ProgressReporter
from regionfeed.resolver import RegionKeyResolver
from regionfeed.session import LoadResult, LoadSession, LoadState, Sleep
from regionfeed.sink import MergeSink, Renderer
from regionfeed.source import RemoteSource
from regionfeed.writeback import CacheWriteback

_logger = logging.getLogger(__name__)


class CancelHandle:
    """Handle to one running load, returned by :meth:`RegionLoader.start_load`."""

    def __init__(self, session: LoadSession, task: asyncio.Task[LoadResult]) -> None:
        self._session = session
        self._task = task

    @property
    def parent_key(self) -> str:
        return self._session.parent_key

    @property
    def session(self) -> LoadSession:
        return self._session

    @property
    def state(self) -> LoadState:
        return self._session.state

    def cancel(self) -> None:
        """Set the session's cancellation flag.  Never interrupts an in-flight request."""
        self._session.cancel()

    def done(self) -> bool:
        return self._task.done()

    async def wait(self) -> LoadResult:
        """Wait for the session and return its result.

        Re-raises :class:`~regionfeed.exceptions.SessionFatalError` for
        FAILED sessions.  Cancelling the waiter does not cancel the load.
        """
        return await asyncio.shield(self._task)

    async def wait_done(self) -> None:
        """Wait until the session is terminal without raising its error."""
        await asyncio.wait({self._task})


class RegionLoader:
    """Async loader for one feature layer.

    Usage::

        async with RegionLoader(config, BAG_LAYER, resolver, renderer=draw) as loader:
            loader.on_progress(print)
            handle = loader.start_load("GM0363")
            result = await handle.wait()

    Only one session per parent region is active at a time: starting a
    new load for a parent cancels the running one and waits for it to
    reach a terminal state before the new session touches any state.
    """

    def __init__(
        self,
        config: LoaderConfig,
        layer: LayerSpec,
        resolver: RegionKeyResolver,
        *,
        session: aiohttp.ClientSession | None = None,
        transport: Transport | None = None,
        cache: PersistentCache | None = None,
        renderer: Renderer | None = None,
        sleep: Sleep = asyncio.sleep,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._config = config
        self._layer = layer
        self._resolver = resolver
        self._external_session = session is not None
        self._http_session = session
        self._transport = transport
        self._cache = cache
        self._owned_store: SqliteCacheStore | None = None
        self._renderer = renderer
        self._sleep = sleep
        self._clock = clock
        self._progress = ProgressReporter()
        self._source: RemoteSource | None = None
        self._writeback: CacheWriteback | None = None
        self._active: dict[str, CancelHandle] = {}

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> RegionLoader:
        if self._transport is None:
            if self._http_session is None:
                self._http_session = aiohttp.ClientSession()
            self._transport = HttpTransport(self._config, self._http_session)
        if self._cache is None:
            self._cache = PersistentCache(
                self._build_store(),
                ttl=timedelta(seconds=self._config.cache_ttl),
                clock=self._clock,
            )
        self._source = RemoteSource(self._transport, self._layer)
        if self._layer.writeback_endpoint is not None:
            self._writeback = CacheWriteback(self._transport, self._layer)
        return self

    async def __aexit__(self, *exc: Any) -> None:
        handles = list(self._active.values())
        for handle in handles:
            handle.cancel()
        for handle in handles:
            await handle.wait_done()
        self._active.clear()
        if self._owned_store is not None:
            self._owned_store.close()
            self._owned_store = None
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None
        self._source = None
        self._writeback = None

    def _build_store(self) -> MemoryCacheStore | SqliteCacheStore:
        if self._config.cache_path:
            self._owned_store = SqliteCacheStore(self._config.cache_path)
            return self._owned_store
        return MemoryCacheStore()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def layer(self) -> LayerSpec:
        return self._layer

    @property
    def cache(self) -> PersistentCache:
        if self._cache is None:
            raise LoaderNotStartedError("Loader not started. Use 'async with RegionLoader(...) as loader:'")
        return self._cache

    def active_handle(self, parent_key: str) -> CancelHandle | None:
        return self._active.get(parent_key)

    def on_progress(self, callback: ProgressCallback) -> Callable[[], None]:
        """Subscribe to ``(message, loaded_count, total_count)`` progress updates."""
        return self._progress.subscribe(callback)

    def start_load(self, parent_key: str) -> CancelHandle:
        """Begin loading *parent_key* and return its cancel handle.

        Must be called from a running event loop inside the loader's
        ``async with`` block.
        """
        if self._source is None or self._cache is None:
            raise LoaderNotStartedError("Loader not started. Use 'async with RegionLoader(...) as loader:'")

        previous = self._active.get(parent_key)
        if previous is not None and not previous.done():
            _logger.debug("Superseding running load for %s", parent_key)
            previous.cancel()
        else:
            previous = None

        session = LoadSession(
            parent_key,
            layer=self._layer,
            resolver=self._resolver,
            source=self._source,
            cache=self._cache,
            sink=MergeSink(self._renderer),
            progress=self._progress,
            writeback=self._writeback,
            config=self._config,
            sleep=self._sleep,
        )
        task = asyncio.create_task(
            self._run(session, previous),
            name=f"regionfeed-{self._layer.name}-{parent_key}",
        )
        handle = CancelHandle(session, task)
        self._active[parent_key] = handle
        task.add_done_callback(lambda t: self._on_task_done(parent_key, handle, t))
        return handle

    async def load(self, parent_key: str) -> LoadResult:
        """Convenience wrapper: start a load and wait for its result."""
        return await self.start_load(parent_key).wait()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    async def _run(session: LoadSession, previous: CancelHandle | None) -> LoadResult:
        if previous is not None:
            await previous.wait_done()
        return await session.run()

    def _on_task_done(self, parent_key: str, handle: CancelHandle, task: asyncio.Task[LoadResult]) -> None:
        if self._active.get(parent_key) is handle:
            del self._active[parent_key]
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            _logger.debug("Load for %s ended with %r", parent_key, exc)
