"""
loadctl core: settings, logging setup and error types.
"""

from __future__ import annotations

from loadctl.core.config import (
    DEFAULT_CLUSTER_LISTENER_PORT,
    DEFAULT_POLL_DELAY_MS,
    ClusterDefaults,
    ControllerSettings,
    LogLevel,
    WatchSettings,
    get_settings,
    reset_settings,
    set_settings,
)
from loadctl.core.errors import (
    AddressResolutionError,
    ConfigurationError,
    InvalidClusterMember,
    ListenerNotificationError,
    LoadCtlError,
    SourceReadError,
    WatchTargetUnavailable,
)
from loadctl.core.logging import set_verbose, setup_logging

__all__ = [
    "DEFAULT_CLUSTER_LISTENER_PORT",
    "DEFAULT_POLL_DELAY_MS",
    "ClusterDefaults",
    "ControllerSettings",
    "LogLevel",
    "WatchSettings",
    "get_settings",
    "reset_settings",
    "set_settings",
    "AddressResolutionError",
    "ConfigurationError",
    "InvalidClusterMember",
    "ListenerNotificationError",
    "LoadCtlError",
    "SourceReadError",
    "WatchTargetUnavailable",
    "set_verbose",
    "setup_logging",
]
