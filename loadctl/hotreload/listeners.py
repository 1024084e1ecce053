"""
loadctl Change Listeners

Ordered fan-out of change notifications with per-listener failure isolation.
"""

from __future__ import annotations

from typing import Any, Callable, Iterator, List

import structlog

from loadctl.core.errors import ListenerNotificationError

logger = structlog.get_logger(__name__)

ChangeListener = Callable[[Any], None]


class ListenerRegistry:
    """
    Ordered set of change subscribers.

    Insertion order is notification order and the same callable may be
    registered more than once. Registration is expected to happen during
    setup, before any watcher starts; :meth:`notify` iterates over a copy
    so a late registration never disturbs a fan-out in progress.
    """

    def __init__(self) -> None:
        self._listeners: List[ChangeListener] = []

    def add(self, listener: ChangeListener) -> None:
        """Register a listener."""
        self._listeners.append(listener)

    def remove(self, listener: ChangeListener) -> bool:
        """Remove the first registration of ``listener``."""
        try:
            self._listeners.remove(listener)
            return True
        except ValueError:
            return False

    def clear(self) -> None:
        self._listeners.clear()

    def __len__(self) -> int:
        return len(self._listeners)

    def __iter__(self) -> Iterator[ChangeListener]:
        return iter(list(self._listeners))

    def notify(self, event: Any) -> List[ListenerNotificationError]:
        """
        Call every listener with ``event``, in registration order.

        A listener that raises is logged and skipped; the remaining listeners
        still run. The failures are returned to the caller.
        """
        failures: List[ListenerNotificationError] = []
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                failure = ListenerNotificationError(listener, e)
                logger.error(
                    "Change listener failed",
                    listener=getattr(listener, "__qualname__", repr(listener)),
                    error=str(e),
                )
                failures.append(failure)
        return failures
