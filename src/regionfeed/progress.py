"""Progress subscription and dispatch."""

from __future__ import annotations

import logging
from collections.abc import Callable

from regionfeed.models.progress import ProgressEvent

_logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str, int, int], None]


class ProgressReporter:
    """Fan out :class:`ProgressEvent` objects to subscribed callbacks.

    Callbacks receive ``(message, loaded_count, total_count)``.  A
    callback that raises is logged and skipped; it never interrupts a load.
    """

    def __init__(self) -> None:
        self._callbacks: list[ProgressCallback] = []
        self._last: ProgressEvent | None = None

    @property
    def last_event(self) -> ProgressEvent | None:
        return self._last

    def subscribe(self, callback: ProgressCallback) -> Callable[[], None]:
        """Register *callback*; the returned function unsubscribes it."""
        self._callbacks.append(callback)

        def _unsubscribe() -> None:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return _unsubscribe

    def emit(self, event: ProgressEvent) -> None:
        self._last = event
        if event.message:
            _logger.debug("progress: %s", event.message)
        for callback in list(self._callbacks):
            try:
                callback(event.message, event.loaded_count, event.total_count)
            except Exception:
                _logger.debug("progress callback failed", exc_info=True)

    def clear(self, *, loaded_count: int = 0, total_count: int = 0) -> None:
        """Emit an empty message so consumers hide their indicator."""
        self.emit(ProgressEvent(message="", loaded_count=loaded_count, total_count=total_count))
