"""
loadctl - cluster awareness and live configuration for a load-testing controller

- Cluster member resolution and replicated-cache peer topology
- Hot-reloadable configuration snapshots driven by file watchers
"""

__version__ = "1.0.0"

from loadctl.config.store import ConfigStore
from loadctl.cluster.cache import CacheManagerSetup
from loadctl.core.config import ControllerSettings

__all__ = ["ConfigStore", "CacheManagerSetup", "ControllerSettings", "__version__"]
