"""
loadctl Cluster

Public API surface for the cluster sub-package:

- :class:`AddressResolver`      -- local/remote classification of members
- :class:`CacheTopologyBuilder` -- peer provider/listener properties
- :class:`CacheManagerSetup`    -- local vs. clustered cache configuration
"""

from __future__ import annotations

from loadctl.cluster.cache import (
    CacheManagerConfig,
    CacheManagerSetup,
    FactoryConfig,
)
from loadctl.cluster.resolver import AddressResolver, local_interface_addresses
from loadctl.cluster.topology import (
    PEER_SOCKET_TIMEOUT_MILLIS,
    REPLICATOR_FACTORY_IDENTIFIER,
    CacheTopologyBuilder,
    extract_replicated_cache_names,
)
from loadctl.cluster.types import (
    ClusterMember,
    ClusterMembership,
    PeerTopology,
    parse_membership,
)

__all__ = [
    "AddressResolver",
    "CacheManagerConfig",
    "CacheManagerSetup",
    "CacheTopologyBuilder",
    "ClusterMember",
    "ClusterMembership",
    "FactoryConfig",
    "PEER_SOCKET_TIMEOUT_MILLIS",
    "PeerTopology",
    "REPLICATOR_FACTORY_IDENTIFIER",
    "extract_replicated_cache_names",
    "local_interface_addresses",
    "parse_membership",
]
