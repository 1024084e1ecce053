"""
loadctl File Watcher

Polls one file's modification time on a dedicated daemon thread and calls a
handler once per detected change.

Lifecycle::

    CREATED --start()--> RUNNING --stop()--> STOPPED
       \\______________stop()_______________/

``STOPPED`` is terminal; construct a new watcher to resume watching.
"""

from __future__ import annotations

import os
import threading
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Optional, Union

import structlog
from watchdog.utils import BaseThread

from loadctl.core.config import DEFAULT_POLL_DELAY_MS
from loadctl.core.errors import WatchTargetUnavailable

logger = structlog.get_logger(__name__)


class WatcherState(str, Enum):
    """Lifecycle states of a :class:`FileWatcher`."""
    CREATED = "created"
    RUNNING = "running"
    STOPPED = "stopped"


@dataclass
class WatchTarget:
    """What a watcher polls and whom it tells."""
    path: Path
    poll_delay_ms: int
    on_change: Callable[[], None]
    last_known_mtime: Optional[int] = None


class FileWatcher(BaseThread):
    """
    Modification-time poller for a single path.

    ``on_change`` runs synchronously on the watcher thread, never on the
    caller's. A missing or unreadable path counts as "no change" for that
    cycle and polling continues. Watchers share no mutable state, so any
    number can run side by side.

    Usage::

        watcher = FileWatcher("/srv/loadctl/system.conf", store.reload)
        watcher.start()
        ...
        watcher.stop()   # returns immediately
    """

    def __init__(
        self,
        path: Union[str, Path],
        on_change: Callable[[], None],
        poll_delay_ms: int = DEFAULT_POLL_DELAY_MS,
        name: Optional[str] = None,
    ) -> None:
        super().__init__()
        if poll_delay_ms <= 0:
            raise ValueError("poll_delay_ms must be > 0")
        self._watch = WatchTarget(
            path=Path(path),
            poll_delay_ms=poll_delay_ms,
            on_change=on_change,
        )
        self._lifecycle = WatcherState.CREATED
        self._lifecycle_lock = threading.Lock()
        self.name = name or f"FileWatcher - {self._watch.path.name}"

    @property
    def path(self) -> Path:
        return self._watch.path

    @property
    def poll_delay_ms(self) -> int:
        return self._watch.poll_delay_ms

    @property
    def last_known_mtime(self) -> Optional[int]:
        return self._watch.last_known_mtime

    @property
    def state(self) -> WatcherState:
        return self._lifecycle

    # === Lifecycle ===

    def start(self) -> None:
        """
        Begin polling.

        Calling ``start()`` on a running watcher is a no-op; calling it on a
        stopped watcher raises ``RuntimeError``.
        """
        with self._lifecycle_lock:
            if self._lifecycle is WatcherState.RUNNING:
                return
            if self._lifecycle is WatcherState.STOPPED:
                raise RuntimeError(
                    f"{self.name} is stopped and cannot be restarted"
                )
            self._lifecycle = WatcherState.RUNNING
        super().start()

    def on_thread_start(self) -> None:
        # Baseline taken on the caller's thread so that changes made right
        # after start() returns are never missed.
        try:
            self._watch.last_known_mtime = self._read_mtime()
        except WatchTargetUnavailable:
            self._watch.last_known_mtime = None
        logger.debug(
            "File watcher started",
            path=str(self._watch.path),
            poll_delay_ms=self._watch.poll_delay_ms,
        )

    def stop(self) -> None:
        """Signal the polling loop to exit. Idempotent and non-blocking."""
        with self._lifecycle_lock:
            if self._lifecycle is WatcherState.STOPPED:
                return
            self._lifecycle = WatcherState.STOPPED
        super().stop()

    def on_thread_stop(self) -> None:
        logger.debug("File watcher stopped", path=str(self._watch.path))

    # === Polling ===

    def run(self) -> None:
        delay = self._watch.poll_delay_ms / 1000.0
        while self.should_keep_running():
            if self.stopped_event.wait(delay):
                break
            try:
                self.check()
            except Exception as e:
                logger.error(
                    "File change handler failed",
                    path=str(self._watch.path),
                    error=str(e),
                )

    def check(self) -> bool:
        """
        Compare the current modification time with the last known one.

        Returns True when a change was detected and ``on_change`` was called.
        """
        try:
            mtime = self._read_mtime()
        except WatchTargetUnavailable as e:
            logger.debug(
                "Watch target unavailable",
                path=str(e.path),
                error=str(e.cause),
            )
            return False

        if mtime == self._watch.last_known_mtime:
            return False
        self._watch.last_known_mtime = mtime

        if not self.should_keep_running():
            return False
        logger.debug("File change detected", path=str(self._watch.path))
        self._watch.on_change()
        return True

    def _read_mtime(self) -> int:
        try:
            return os.stat(self._watch.path).st_mtime_ns
        except OSError as e:
            raise WatchTargetUnavailable(self._watch.path, e) from e
