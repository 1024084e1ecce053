"""
loadctl Configuration Store

Live, hot-reloadable controller configuration:

- ``system.conf`` in the controller home is the base source
- ``system-ex.conf`` in the extended home, when present, overrides it
- each file change detected by a :class:`FileWatcher` triggers a reload
- listeners are notified after every successful reload

Construction has no side effects. :meth:`ConfigStore.start` creates the
home, loads the first snapshot and starts the watchers; :meth:`stop` halts
them.
"""

from __future__ import annotations

import threading
from datetime import datetime
from functools import partial
from pathlib import Path
from typing import Any, List, Optional, Tuple

import structlog

from loadctl import __version__
from loadctl.cluster.types import ClusterMembership, parse_membership
from loadctl.config.home import ControllerHome
from loadctl.config.lazy import LazyFileContent
from loadctl.config.loader import PropertiesSource, load_layers
from loadctl.config.snapshot import ConfigSnapshot
from loadctl.core.config import ControllerSettings
from loadctl.core.errors import ConfigurationError, SourceReadError
from loadctl.core.logging import set_verbose
from loadctl.hotreload.listeners import ChangeListener, ListenerRegistry
from loadctl.hotreload.watcher import FileWatcher

logger = structlog.get_logger(__name__)

SYSTEM_CONF = "system.conf"
SYSTEM_EX_CONF = "system-ex.conf"
ANNOUNCEMENT_CONF = "announcement.conf"
POLICY_SCRIPT = "process_and_thread_policy.js"
NO_MORE_TEST_LOCK = "no_more_test.lock"
SHUTDOWN_LOCK = "shutdown.lock"

HOME_KEY = "LOADCTL_HOME"
NONE_REGION = "NONE"

PROP_CLUSTER_ENABLED = "cluster.enabled"
PROP_CLUSTER_MEMBERS = "cluster.members"
PROP_CLUSTER_PORT = "cluster.port"
PROP_CLUSTER_REGION = "cluster.region"
PROP_CLUSTER_HIDDEN_REGION = "cluster.hidden_region"
PROP_CONTROLLER_IP = "controller.ip"
PROP_CONTROLLER_MONITOR_PORT = "controller.monitor_port"
PROP_CONTROLLER_HELP_URL = "controller.help_url"
PROP_CONTROLLER_VERBOSE = "controller.verbose"
PROP_CONTROLLER_DEV_MODE = "controller.dev_mode"

DEFAULT_MONITOR_PORT = 13243

INTERNAL_PROPERTIES = {"internal.version": __version__}


class ConfigStore:
    """
    Holds the current :class:`ConfigSnapshot` and keeps it fresh.

    Reloads are serialized by a lock. The new snapshot is merged off to the
    side and published with a single reference assignment, so
    :meth:`current` returns either the old or the new snapshot, never a
    mix. Listeners run after the swap and outside the reload lock. Fan-out
    is serialized by its own lock, and a snapshot that was already replaced
    by a newer reload is not delivered, so the last snapshot every listener
    receives is the current one.

    Usage::

        store = ConfigStore(ControllerSettings(home=Path("/srv/loadctl")))
        store.add_listener(lambda snapshot: print(snapshot.generation))
        with store:
            members = store.cluster_members()
    """

    def __init__(self, settings: Optional[ControllerSettings] = None) -> None:
        self._settings = settings or ControllerSettings()
        self._home = ControllerHome(self._settings.home)
        self._ex_home = ControllerHome(self._settings.ex_home)

        self._base = PropertiesSource(self._home.sub_file(SYSTEM_CONF), required=True)
        self._override = PropertiesSource(self._ex_home.sub_file(SYSTEM_EX_CONF))

        self._reload_lock = threading.Lock()
        self._notify_lock = threading.Lock()
        self._snapshot: Optional[ConfigSnapshot] = None
        self._generation = 0
        self._clustered: Optional[bool] = None

        self._listeners = ListenerRegistry()
        self._watchers: List[FileWatcher] = []
        self._started = False

        self._announcement: Tuple[str, Optional[datetime]] = ("", None)
        self._policy_script = LazyFileContent(self._home.sub_file(POLICY_SCRIPT))

    # === Properties ===

    @property
    def settings(self) -> ControllerSettings:
        return self._settings

    @property
    def home(self) -> ControllerHome:
        return self._home

    @property
    def ex_home(self) -> ControllerHome:
        return self._ex_home

    @property
    def listeners(self) -> ListenerRegistry:
        return self._listeners

    @property
    def watchers(self) -> List[FileWatcher]:
        return list(self._watchers)

    def add_listener(self, listener: ChangeListener) -> None:
        """Register a listener called with the new snapshot after each reload."""
        self._listeners.add(listener)

    # === Snapshot lifecycle ===

    def load(self) -> ConfigSnapshot:
        """
        Load the first snapshot.

        Raises:
            SourceReadError: if ``system.conf`` is missing or unreadable.
        """
        with self._reload_lock:
            snapshot = self._build_snapshot()
            self._snapshot = snapshot
            if self._clustered is None:
                # Cluster mode is fixed for the lifetime of the process.
                self._clustered = snapshot.get_bool(PROP_CLUSTER_ENABLED)
        logger.info(
            "Configuration loaded",
            home=str(self._home.directory),
            generation=snapshot.generation,
            clustered=self._clustered,
        )
        return snapshot

    def reload(self) -> ConfigSnapshot:
        """
        Re-read the sources, publish the new snapshot and notify listeners.

        Raises:
            SourceReadError: if a source cannot be read; the previous
                snapshot stays current.
        """
        with self._reload_lock:
            snapshot = self._build_snapshot()
            self._snapshot = snapshot
            if self._clustered is None:
                self._clustered = snapshot.get_bool(PROP_CLUSTER_ENABLED)
        logger.info("New system configuration is applied", generation=snapshot.generation)
        with self._notify_lock:
            if snapshot is self._snapshot:
                self._listeners.notify(snapshot)
            else:
                logger.debug(
                    "Skipping notification for a superseded snapshot",
                    generation=snapshot.generation,
                )
        return snapshot

    def current(self) -> ConfigSnapshot:
        """Return the latest completed snapshot."""
        snapshot = self._snapshot
        if snapshot is None:
            raise ConfigurationError("Configuration has not been loaded yet")
        return snapshot

    def _build_snapshot(self) -> ConfigSnapshot:
        values = load_layers(self._base, self._override)
        values[HOME_KEY] = str(self._home.directory)
        self._generation += 1
        return ConfigSnapshot(values, internal=INTERNAL_PROPERTIES, generation=self._generation)

    # === Watching ===

    def start(self) -> ConfigSnapshot:
        """
        Prepare the home, load the configuration and start the watchers.

        Source read errors here are fatal and propagate to the caller.
        """
        if self._started:
            return self.current()

        self._home.init()
        if self._settings.template_dir is not None:
            self._home.copy_defaults(self._settings.template_dir)

        snapshot = self.load()
        self._apply_verbose(snapshot)
        self._listeners.add(self._apply_verbose)
        self.load_announcement()

        if self._settings.watch.enabled:
            delay = self._settings.watch.poll_delay_ms
            self._watchers = [
                FileWatcher(
                    self._home.sub_file(SYSTEM_CONF),
                    partial(self._on_system_conf_change, self._home.sub_file(SYSTEM_CONF)),
                    poll_delay_ms=delay,
                    name=f"WatchDog - {SYSTEM_CONF}",
                ),
                FileWatcher(
                    self._home.sub_file(ANNOUNCEMENT_CONF),
                    self._on_announcement_change,
                    poll_delay_ms=delay,
                    name=f"WatchDog - {ANNOUNCEMENT_CONF}",
                ),
                FileWatcher(
                    self._home.sub_file(POLICY_SCRIPT),
                    self._on_policy_script_change,
                    poll_delay_ms=delay,
                    name=f"WatchDog - {POLICY_SCRIPT}",
                ),
            ]
            if self._ex_home.exists():
                self._watchers.append(
                    FileWatcher(
                        self._ex_home.sub_file(SYSTEM_EX_CONF),
                        partial(self._on_system_conf_change, self._ex_home.sub_file(SYSTEM_EX_CONF)),
                        poll_delay_ms=delay,
                        name=f"WatchDog - {SYSTEM_EX_CONF}",
                    )
                )
            for watcher in self._watchers:
                watcher.start()

        self._started = True
        return snapshot

    def stop(self) -> None:
        """Stop all watchers. Does not wait for their threads to exit."""
        for watcher in self._watchers:
            watcher.stop()
        self._watchers = []
        if self._started:
            self._listeners.remove(self._apply_verbose)
        self._started = False

    def __enter__(self) -> "ConfigStore":
        self.start()
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.stop()

    def _on_system_conf_change(self, path: Path) -> None:
        logger.info("System configuration is changed", path=str(path))
        try:
            self.reload()
        except SourceReadError as e:
            logger.error(
                "Error occurs while applying new system configuration",
                path=str(e.path),
                error=str(e),
            )

    def _on_announcement_change(self) -> None:
        logger.info("Announcement file is changed")
        self.load_announcement()

    def _on_policy_script_change(self) -> None:
        logger.info("Process and thread policy file is changed")
        self._policy_script.invalidate()

    def _apply_verbose(self, snapshot: ConfigSnapshot) -> None:
        set_verbose(snapshot.get_bool(PROP_CONTROLLER_VERBOSE))

    # === Accessors ===

    def is_clustered(self) -> bool:
        """Cluster mode as read by the first load; not reloadable."""
        if self._clustered is None:
            self.current()
        return bool(self._clustered)

    def cluster_listener_port(self) -> int:
        return self.current().get_int(
            PROP_CLUSTER_PORT, self._settings.cluster.listener_port
        )

    def cluster_members(self) -> ClusterMembership:
        """Configured cluster members; members without a port get the listener port."""
        raw = self.current().get(PROP_CLUSTER_MEMBERS, "")
        return parse_membership(raw, self.cluster_listener_port())

    def region(self) -> str:
        if not self.is_clustered():
            return NONE_REGION
        return self.current().get(PROP_CLUSTER_REGION, NONE_REGION) or NONE_REGION

    def is_invisible_region(self) -> bool:
        """True when this controller is hidden from the cluster region list."""
        return self.current().get_bool(PROP_CLUSTER_HIDDEN_REGION)

    def current_ip(self) -> str:
        return (self.current().get(PROP_CONTROLLER_IP, "") or "").strip()

    def monitor_port(self) -> int:
        return self.current().get_int(PROP_CONTROLLER_MONITOR_PORT, DEFAULT_MONITOR_PORT)

    def help_url(self) -> str:
        return self.current().get(PROP_CONTROLLER_HELP_URL, "")

    def is_verbose(self) -> bool:
        return self.current().get_bool(PROP_CONTROLLER_VERBOSE)

    def is_dev_mode(self) -> bool:
        return self.current().get_bool(PROP_CONTROLLER_DEV_MODE)

    def version(self) -> str:
        return self.current().get("internal.version", __version__)

    def load_announcement(self) -> str:
        """Re-read ``announcement.conf``; a missing file is an empty announcement."""
        path = self._home.sub_file(ANNOUNCEMENT_CONF)
        try:
            text = path.read_text(encoding="utf-8")
            modified = datetime.fromtimestamp(path.stat().st_mtime)
        except FileNotFoundError:
            text, modified = "", None
        except (OSError, UnicodeDecodeError) as e:
            logger.error("Error while reading announcement file", path=str(path), error=str(e))
            text, modified = "", None
        self._announcement = (text, modified)
        return text

    def announcement(self) -> str:
        return self._announcement[0]

    def announcement_modified(self) -> Optional[datetime]:
        return self._announcement[1]

    def process_and_thread_policy(self) -> str:
        """Content of ``process_and_thread_policy.js``, cached until the file changes."""
        return self._policy_script.get()

    def has_no_more_test_lock(self) -> bool:
        return self._ex_home.exists() and self._ex_home.sub_file(NO_MORE_TEST_LOCK).exists()

    def has_shutdown_lock(self) -> bool:
        return self._ex_home.exists() and self._ex_home.sub_file(SHUTDOWN_LOCK).exists()
