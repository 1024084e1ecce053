"""
loadctl Configuration Snapshot

An immutable, fully merged view of the controller properties at one point
in time, partitioned into domains:

- ``cluster``    -- keys starting with ``cluster.``
- ``database``   -- keys starting with ``database.``
- ``controller`` -- every other user-supplied key
- ``internal``   -- packaged values that users cannot override

Snapshots are never mutated. A reload builds a new one and swaps the
reference, so a reader holding a snapshot always sees one consistent merge.
"""

from __future__ import annotations

import time
from collections.abc import Mapping
from types import MappingProxyType
from typing import Any, Dict, Iterator, Optional

DOMAIN_CONTROLLER = "controller"
DOMAIN_CLUSTER = "cluster"
DOMAIN_DATABASE = "database"
DOMAIN_INTERNAL = "internal"

DOMAINS = (DOMAIN_CONTROLLER, DOMAIN_CLUSTER, DOMAIN_DATABASE, DOMAIN_INTERNAL)

_PREFIXED_DOMAINS = (DOMAIN_CLUSTER, DOMAIN_DATABASE)

_TRUE_VALUES = frozenset({"true", "yes", "on", "1"})
_FALSE_VALUES = frozenset({"false", "no", "off", "0"})


def domain_of(key: str) -> str:
    """Domain a user-supplied key belongs to."""
    prefix = key.split(".", 1)[0].lower()
    if prefix in _PREFIXED_DOMAINS:
        return prefix
    return DOMAIN_CONTROLLER


class ConfigSnapshot(Mapping):
    """
    Read-only mapping of configuration keys to string values.

    Lookups through the mapping interface cover user-supplied keys;
    :meth:`get` falls back to the internal domain.
    """

    __slots__ = ("_values", "_domains", "_generation", "_loaded_at")

    def __init__(
        self,
        values: Mapping[str, str],
        internal: Optional[Mapping[str, str]] = None,
        generation: int = 0,
    ) -> None:
        merged = {str(k): str(v) for k, v in values.items()}
        partitions: Dict[str, Dict[str, str]] = {name: {} for name in DOMAINS}
        for key, value in merged.items():
            partitions[domain_of(key)][key] = value
        partitions[DOMAIN_INTERNAL] = {str(k): str(v) for k, v in (internal or {}).items()}

        self._values = MappingProxyType(merged)
        self._domains = MappingProxyType(
            {name: MappingProxyType(part) for name, part in partitions.items()}
        )
        self._generation = generation
        self._loaded_at = time.time()

    # === Mapping protocol ===

    def __getitem__(self, key: str) -> str:
        return self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"ConfigSnapshot(generation={self._generation}, keys={len(self._values)})"

    # === Metadata ===

    @property
    def generation(self) -> int:
        """Increases by one with every successful load or reload."""
        return self._generation

    @property
    def loaded_at(self) -> float:
        return self._loaded_at

    # === Domains ===

    def domain(self, name: str) -> Mapping[str, str]:
        """Return the read-only mapping for one domain."""
        try:
            return self._domains[name]
        except KeyError:
            raise KeyError(f"Unknown configuration domain: {name}") from None

    @property
    def domains(self) -> Mapping[str, Mapping[str, str]]:
        return self._domains

    @property
    def controller(self) -> Mapping[str, str]:
        return self._domains[DOMAIN_CONTROLLER]

    @property
    def cluster(self) -> Mapping[str, str]:
        return self._domains[DOMAIN_CLUSTER]

    @property
    def database(self) -> Mapping[str, str]:
        return self._domains[DOMAIN_DATABASE]

    @property
    def internal(self) -> Mapping[str, str]:
        return self._domains[DOMAIN_INTERNAL]

    # === Typed accessors ===

    def get(self, key: str, default: Any = None) -> Any:
        if key in self._values:
            return self._values[key]
        return self._domains[DOMAIN_INTERNAL].get(key, default)

    def get_int(self, key: str, default: int = 0) -> int:
        raw = self.get(key)
        if raw is None or not str(raw).strip():
            return default
        try:
            return int(str(raw).strip())
        except ValueError:
            raise ValueError(f"Configuration key {key!r} is not an integer: {raw!r}") from None

    def get_bool(self, key: str, default: bool = False) -> bool:
        raw = self.get(key)
        if raw is None:
            return default
        text = str(raw).strip().lower()
        if text in _TRUE_VALUES:
            return True
        if text in _FALSE_VALUES:
            return False
        return default

    def to_dict(self) -> Dict[str, Dict[str, str]]:
        return {name: dict(part) for name, part in self._domains.items()}
