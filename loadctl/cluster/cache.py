"""
loadctl Cache Manager Setup

Decides how the controller's cache manager is configured:

- **Local mode** -- no peers, plain local caches.
- **Cluster mode** -- replicated caches get an RMI peer provider listing
  every remote member and a peer listener bound to the local member.

The cache engine itself is external; this module only produces the
configuration values it is initialised with.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Mapping, Optional

import structlog

from loadctl.cluster.topology import (
    CacheTopologyBuilder,
    ListenerDescriptor,
    extract_replicated_cache_names,
)
from loadctl.cluster.types import PeerTopology

if TYPE_CHECKING:
    from loadctl.config.store import ConfigStore

logger = structlog.get_logger(__name__)

CACHE_MANAGER_NAME = "cacheManager"
PEER_PROVIDER_FACTORY = "net.sf.ehcache.distribution.RMICacheManagerPeerProviderFactory"
PEER_LISTENER_FACTORY = "net.sf.ehcache.distribution.RMICacheManagerPeerListenerFactory"


@dataclass(frozen=True)
class FactoryConfig:
    """A factory class name and its property string."""
    class_name: str
    properties: str


@dataclass
class CacheManagerConfig:
    """Everything the cache engine initializer needs."""
    name: str = CACHE_MANAGER_NAME
    clustered: bool = False
    replicated_caches: List[str] = field(default_factory=list)
    peer_provider: Optional[FactoryConfig] = None
    peer_listener: Optional[FactoryConfig] = None
    rmi_hostname: Optional[str] = None
    topology: Optional[PeerTopology] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "clustered": self.clustered,
            "replicated_caches": list(self.replicated_caches),
            "peer_provider": (
                {"class": self.peer_provider.class_name, "properties": self.peer_provider.properties}
                if self.peer_provider else None
            ),
            "peer_listener": (
                {"class": self.peer_listener.class_name, "properties": self.peer_listener.properties}
                if self.peer_listener else None
            ),
            "rmi_hostname": self.rmi_hostname,
        }


class CacheManagerSetup:
    """
    Builds :class:`CacheManagerConfig` from the configuration store.

    In cluster mode an :class:`~loadctl.core.errors.AddressResolutionError`
    propagates to the caller and cluster cache setup is aborted.
    """

    def __init__(
        self,
        store: "ConfigStore",
        builder: Optional[CacheTopologyBuilder] = None,
    ) -> None:
        self._store = store
        self._builder = builder or CacheTopologyBuilder()

    def configure(
        self,
        cache_listeners: Mapping[str, Iterable[ListenerDescriptor]],
    ) -> CacheManagerConfig:
        if not self._store.is_clustered():
            logger.info("In local cache mode")
            return CacheManagerConfig(clustered=False)

        logger.info("In cluster mode")
        replicated = extract_replicated_cache_names(cache_listeners)
        topology = self._builder.build_for_membership(
            replicated,
            self._store.cluster_members(),
            self._store.cluster_listener_port(),
        )
        return CacheManagerConfig(
            clustered=True,
            replicated_caches=replicated,
            peer_provider=FactoryConfig(PEER_PROVIDER_FACTORY, topology.peer_provider_property),
            peer_listener=FactoryConfig(PEER_LISTENER_FACTORY, topology.peer_listener_property),
            rmi_hostname=topology.local_member.formatted_ip,
            topology=topology,
        )
