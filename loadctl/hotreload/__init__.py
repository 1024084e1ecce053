"""
loadctl Hot Reload

File watching and change fan-out:

- :class:`FileWatcher`      -- one polling thread per watched file
- :class:`ListenerRegistry` -- ordered, failure-isolated subscribers
"""

from __future__ import annotations

from loadctl.hotreload.listeners import ChangeListener, ListenerRegistry
from loadctl.hotreload.watcher import FileWatcher, WatcherState, WatchTarget

__all__ = [
    "ChangeListener",
    "FileWatcher",
    "ListenerRegistry",
    "WatcherState",
    "WatchTarget",
]
