"""
loadctl Address Resolver

Classifies the configured cluster members as local or remote relative to
this process:

- A member is **local** when its address belongs to one of this host's
  network interfaces (or loopback) *and* its port equals the cluster
  listener port.
- Every other member, including same-host members on another port, is
  **remote**.

Exactly one local member is required. Zero matches means this node is not
part of the configured cluster; several matches means its identity is
ambiguous. Both abort cluster cache setup with
:class:`~loadctl.core.errors.AddressResolutionError`.
"""

from __future__ import annotations

import ipaddress
import socket
from typing import Callable, FrozenSet, Iterable, List, Optional, Sequence, Tuple, Union

import psutil
import structlog

from loadctl.cluster.types import ClusterMember, ClusterMembership, parse_membership
from loadctl.core.errors import AddressResolutionError

logger = structlog.get_logger(__name__)

_LOOPBACK_ADDRESSES = ("127.0.0.1", "::1")


def _strip_scope(address: str) -> str:
    # psutil reports link-local IPv6 addresses as "fe80::1%eth0"
    return address.split("%", 1)[0]


def local_interface_addresses() -> FrozenSet[str]:
    """
    Collect every IPv4/IPv6 address assigned to this host.

    Includes loopback and whatever the host name resolves to, which covers
    hosts whose advertised address is only reachable through DNS.
    """
    addresses = set(_LOOPBACK_ADDRESSES)

    for _interface, addrs in psutil.net_if_addrs().items():
        for addr in addrs:
            if addr.family in (socket.AF_INET, socket.AF_INET6):
                addresses.add(_strip_scope(addr.address))

    try:
        _, _, host_ips = socket.gethostbyname_ex(socket.gethostname())
        addresses.update(host_ips)
    except OSError as e:
        logger.debug("Host name lookup failed", error=str(e))

    return frozenset(addresses)


def resolve_host(host: str) -> FrozenSet[str]:
    """Resolve a member host to its IP addresses; empty if unresolvable."""
    try:
        ipaddress.ip_address(host)
        return frozenset([host])
    except ValueError:
        pass

    try:
        infos = socket.getaddrinfo(host, None)
    except socket.gaierror as e:
        logger.warning("Cannot resolve cluster member host", host=host, error=str(e))
        return frozenset()
    return frozenset(_strip_scope(info[4][0]) for info in infos)


def _is_loopback(ip: str) -> bool:
    try:
        return ipaddress.ip_address(ip).is_loopback
    except ValueError:
        return False


class AddressResolver:
    """
    Splits a cluster membership into the local member and its remotes.

    Both network queries are injectable so that resolution is deterministic
    in tests:

    * ``local_addresses`` -- returns this host's interface addresses
    * ``host_resolver``   -- maps a member host to its IP addresses

    Usage::

        resolver = AddressResolver()
        local, remotes = resolver.resolve("10.0.0.1;10.0.0.2:40003", 40003)
    """

    def __init__(
        self,
        local_addresses: Optional[Callable[[], Iterable[str]]] = None,
        host_resolver: Optional[Callable[[str], Iterable[str]]] = None,
    ) -> None:
        self._local_addresses = local_addresses or local_interface_addresses
        self._host_resolver = host_resolver or resolve_host

    def resolve(
        self,
        members: Union[str, Sequence[ClusterMember]],
        listener_port: int,
    ) -> Tuple[ClusterMember, List[ClusterMember]]:
        """
        Return ``(local, remotes)`` for ``members``.

        ``members`` is either the raw member string or an already parsed
        membership. Remote order follows input order.

        Raises:
            AddressResolutionError: if not exactly one member is local.
        """
        membership: ClusterMembership
        if isinstance(members, str):
            membership = parse_membership(members, listener_port)
        else:
            membership = tuple(members)

        own_addresses = frozenset(self._local_addresses())

        local_matches: List[ClusterMember] = []
        remotes: List[ClusterMember] = []
        for member in membership:
            if self._is_local(member, listener_port, own_addresses):
                local_matches.append(member)
            else:
                remotes.append(member)

        if len(local_matches) != 1:
            logger.error(
                "Cluster address resolution failed",
                listener_port=listener_port,
                local_matches=[str(m) for m in local_matches],
                members=[str(m) for m in membership],
            )
            raise AddressResolutionError(local_matches, listener_port)

        local = local_matches[0]
        logger.info(
            "Resolved cluster membership",
            local=str(local),
            remotes=[str(m) for m in remotes],
        )
        return local, remotes

    def is_local(self, member: ClusterMember, listener_port: int) -> bool:
        """Check a single member against this host and ``listener_port``."""
        return self._is_local(member, listener_port, frozenset(self._local_addresses()))

    def _is_local(
        self,
        member: ClusterMember,
        listener_port: int,
        own_addresses: FrozenSet[str],
    ) -> bool:
        if member.port != listener_port:
            return False
        for ip in self._host_resolver(member.ip):
            if ip in own_addresses or _is_loopback(ip):
                return True
        return False
