"""
loadctl Cluster Types

Value types shared by the address resolver and the cache topology builder.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Dict, Tuple

from loadctl.core.errors import InvalidClusterMember

_MEMBER_SEPARATORS = re.compile(r"[,;]")


@dataclass(frozen=True)
class ClusterMember:
    """
    One controller node taking part in cache replication.

    Equality is structural, so two members with the same ``ip`` and
    ``port`` are interchangeable.
    """
    ip: str
    port: int

    def __post_init__(self) -> None:
        if not self.ip:
            raise InvalidClusterMember("ClusterMember.ip must be a non-empty string")
        if not 1 <= int(self.port) <= 65535:
            raise InvalidClusterMember(f"ClusterMember.port out of range: {self.port}")

    @classmethod
    def parse(cls, raw: str, default_port: int) -> "ClusterMember":
        """
        Parse ``ip`` or ``ip:port``.

        IPv6 literals must be bracketed when a port is given
        (``[::1]:40003``); an unbracketed IPv6 literal is taken as a bare
        address.
        """
        text = raw.strip()
        if not text:
            raise InvalidClusterMember("Empty cluster member entry")

        if text.startswith("["):
            host, _, rest = text[1:].partition("]")
            port_text = rest[1:] if rest.startswith(":") else ""
        elif text.count(":") == 1:
            host, _, port_text = text.partition(":")
        else:
            host, port_text = text, ""

        host = host.strip()
        port_text = port_text.strip()
        if not port_text:
            return cls(ip=host, port=default_port)
        try:
            port = int(port_text)
        except ValueError:
            raise InvalidClusterMember(f"Invalid port in cluster member {raw!r}") from None
        return cls(ip=host, port=port)

    @property
    def formatted_ip(self) -> str:
        """IP suitable for URLs; IPv6 literals are bracketed."""
        return f"[{self.ip}]" if ":" in self.ip else self.ip

    def __str__(self) -> str:
        return f"{self.formatted_ip}:{self.port}"

    def to_dict(self) -> Dict[str, Any]:
        return {"ip": self.ip, "port": self.port}


ClusterMembership = Tuple[ClusterMember, ...]


def parse_membership(raw: str, default_port: int) -> ClusterMembership:
    """
    Parse a member list separated by ``,`` or ``;``.

    Blank entries are skipped, so ``None``-like or trailing separators are
    harmless. Members without a port get ``default_port``.
    """
    if not raw:
        return ()
    return tuple(
        ClusterMember.parse(entry, default_port)
        for entry in _MEMBER_SEPARATORS.split(raw)
        if entry.strip()
    )


@dataclass(frozen=True)
class PeerTopology:
    """Peer discovery configuration for a replicated cache manager."""
    local_member: ClusterMember
    peer_provider_property: str
    peer_listener_property: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "local_member": self.local_member.to_dict(),
            "peer_provider_property": self.peer_provider_property,
            "peer_listener_property": self.peer_listener_property,
        }
