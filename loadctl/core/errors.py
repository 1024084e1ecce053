"""
loadctl Error Types

All library-level exceptions derive from :class:`LoadCtlError` so callers
can catch the whole family at once. Each error keeps the values needed to
log it with structured context.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional, Sequence


class LoadCtlError(Exception):
    """Base error type for loadctl."""


class ConfigurationError(LoadCtlError):
    """Raised when the controller configuration is invalid or incomplete."""


class InvalidClusterMember(ConfigurationError, ValueError):
    """Raised when a cluster member entry cannot be parsed or is out of range."""


class AddressResolutionError(LoadCtlError):
    """
    Raised when the cluster member list does not contain exactly one entry
    for this node.

    ``candidates`` holds the members that matched a local interface and the
    listener port. An empty list means this node is missing from the
    cluster; two or more means the identity is ambiguous.
    """

    def __init__(self, candidates: Sequence[Any], listener_port: int) -> None:
        self.candidates = list(candidates)
        self.listener_port = listener_port
        if not self.candidates:
            message = (
                f"No cluster member matches a local address on port {listener_port}"
            )
        else:
            joined = ", ".join(str(c) for c in self.candidates)
            message = (
                f"{len(self.candidates)} cluster members match a local address "
                f"on port {listener_port}: {joined}"
            )
        super().__init__(message)


class SourceReadError(LoadCtlError):
    """Raised when a configuration source exists but cannot be read."""

    def __init__(self, path: Path, cause: Optional[BaseException] = None) -> None:
        self.path = Path(path)
        self.cause = cause
        detail = f": {cause}" if cause else ""
        super().__init__(f"Cannot read configuration source {self.path}{detail}")


class ListenerNotificationError(LoadCtlError):
    """Wraps an exception raised by a change listener during fan-out."""

    def __init__(self, listener: Any, cause: BaseException) -> None:
        self.listener = listener
        self.cause = cause
        name = getattr(listener, "__qualname__", None) or repr(listener)
        super().__init__(f"Listener {name} failed: {cause}")


class WatchTargetUnavailable(LoadCtlError):
    """Raised when a watched path is missing or cannot be stat'ed."""

    def __init__(self, path: Path, cause: Optional[BaseException] = None) -> None:
        self.path = Path(path)
        self.cause = cause
        super().__init__(f"Watch target unavailable: {self.path}")
