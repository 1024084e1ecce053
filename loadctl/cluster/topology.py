"""
loadctl Cache Topology

Builds the manual peer-discovery configuration of an RMI-replicated cache
manager from the resolved cluster membership:

- **Peer provider**: ``peerDiscovery=manual,rmiUrls=//ip:port/cache|...``
  listing every remote member crossed with every replicated cache.
- **Peer listener**: ``hostName=ip, port=port, socketTimeoutMillis=1000``
  describing where this node accepts peer connections.

Only caches whose event listeners include the RMI replicator factory take
part in replication; :func:`extract_replicated_cache_names` selects them.
"""

from __future__ import annotations

from typing import Any, Iterable, List, Mapping, Optional, Sequence, Union

import structlog

from loadctl.cluster.resolver import AddressResolver
from loadctl.cluster.types import ClusterMember, PeerTopology

logger = structlog.get_logger(__name__)

REPLICATOR_FACTORY_IDENTIFIER = "net.sf.ehcache.distribution.RMICacheReplicatorFactory"
PEER_SOCKET_TIMEOUT_MILLIS = 1000

ListenerDescriptor = Union[str, Mapping[str, Any], Any]


def _factory_identifier(descriptor: ListenerDescriptor) -> str:
    if isinstance(descriptor, str):
        return descriptor
    if isinstance(descriptor, Mapping):
        return str(descriptor.get("factoryIdentifier", ""))
    return str(getattr(descriptor, "factory_identifier", ""))


def is_replicated(descriptors: Iterable[ListenerDescriptor]) -> bool:
    """True if any descriptor names the RMI replicator factory exactly."""
    return any(
        _factory_identifier(d) == REPLICATOR_FACTORY_IDENTIFIER for d in descriptors
    )


def extract_replicated_cache_names(
    cache_listeners: Mapping[str, Iterable[ListenerDescriptor]],
) -> List[str]:
    """
    Select the caches configured for cross-node replication.

    ``cache_listeners`` maps a cache name to its event listener factory
    descriptors. Descriptors may be ``{"factoryIdentifier": ...}`` mappings,
    objects with a ``factory_identifier`` attribute, or bare strings.
    Mapping order is preserved.
    """
    names = [
        name
        for name, descriptors in cache_listeners.items()
        if is_replicated(descriptors or ())
    ]
    logger.debug("Replicated caches selected", caches=names)
    return names


def format_peer_provider(
    remotes: Sequence[ClusterMember],
    replicated_cache_names: Sequence[str],
) -> str:
    urls = [
        f"//{remote}/{cache_name}"
        for remote in remotes
        for cache_name in replicated_cache_names
    ]
    return "peerDiscovery=manual,rmiUrls=" + "|".join(urls)


def format_peer_listener(local: ClusterMember) -> str:
    return (
        f"hostName={local.formatted_ip}, port={local.port}, "
        f"socketTimeoutMillis={PEER_SOCKET_TIMEOUT_MILLIS}"
    )


class CacheTopologyBuilder:
    """
    Produces :class:`PeerTopology` values for the cache manager.

    The builder is stateless apart from the resolver used by
    :meth:`build_for_membership`.
    """

    def __init__(self, resolver: Optional[AddressResolver] = None) -> None:
        self._resolver = resolver or AddressResolver()

    def build(
        self,
        replicated_cache_names: Iterable[str],
        local: ClusterMember,
        remotes: Sequence[ClusterMember],
    ) -> PeerTopology:
        """Build the topology from an already resolved membership."""
        names = list(replicated_cache_names)
        topology = PeerTopology(
            local_member=local,
            peer_provider_property=format_peer_provider(remotes, names),
            peer_listener_property=format_peer_listener(local),
        )
        logger.info("Peer provider is set", properties=topology.peer_provider_property)
        logger.info("Peer listener is set", properties=topology.peer_listener_property)
        return topology

    def build_for_membership(
        self,
        replicated_cache_names: Iterable[str],
        members: Union[str, Sequence[ClusterMember]],
        listener_port: int,
    ) -> PeerTopology:
        """
        Resolve ``members`` and build the topology.

        :class:`~loadctl.core.errors.AddressResolutionError` propagates
        unchanged; no topology is produced without a unique local member.
        """
        local, remotes = self._resolver.resolve(members, listener_port)
        return self.build(replicated_cache_names, local, remotes)
