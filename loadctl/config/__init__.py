"""
loadctl Configuration

Public API surface for the configuration sub-package:

- :class:`ConfigStore`      -- hot-reloadable snapshot holder
- :class:`ConfigSnapshot`   -- immutable, domain-partitioned view
- :class:`ControllerHome`   -- home directory helpers
- :class:`PropertiesSource` -- ``key=value`` file layer
"""

from __future__ import annotations

from loadctl.config.home import ControllerHome
from loadctl.config.lazy import LazyFileContent
from loadctl.config.loader import PropertiesSource, load_layers, parse_properties
from loadctl.config.snapshot import (
    DOMAIN_CLUSTER,
    DOMAIN_CONTROLLER,
    DOMAIN_DATABASE,
    DOMAIN_INTERNAL,
    DOMAINS,
    ConfigSnapshot,
    domain_of,
)
from loadctl.config.store import ConfigStore

__all__ = [
    "ConfigSnapshot",
    "ConfigStore",
    "ControllerHome",
    "DOMAIN_CLUSTER",
    "DOMAIN_CONTROLLER",
    "DOMAIN_DATABASE",
    "DOMAIN_INTERNAL",
    "DOMAINS",
    "LazyFileContent",
    "PropertiesSource",
    "domain_of",
    "load_layers",
    "parse_properties",
]
