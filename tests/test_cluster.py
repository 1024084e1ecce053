"""
loadctl Cluster Tests

Covers member parsing, local/remote address resolution, replicated cache
selection, peer topology formatting and cache manager setup.
"""

from __future__ import annotations

import socket
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

from loadctl.cluster import (
    AddressResolver,
    CacheManagerSetup,
    CacheTopologyBuilder,
    ClusterMember,
    REPLICATOR_FACTORY_IDENTIFIER,
    extract_replicated_cache_names,
    local_interface_addresses,
    parse_membership,
)
from loadctl.cluster.cache import PEER_LISTENER_FACTORY, PEER_PROVIDER_FACTORY
from loadctl.core.errors import AddressResolutionError, ConfigurationError

PORT = 40003


# === Test Fixtures ===


@pytest.fixture
def resolver():
    """Resolver that sees 10.0.0.1 as this host's only interface."""
    return AddressResolver(local_addresses=lambda: ["10.0.0.1"])


@pytest.fixture
def builder(resolver):
    return CacheTopologyBuilder(resolver)


# === Member Parsing Tests ===


class TestClusterMember:
    """Test member parsing and formatting."""

    def test_parse_with_port(self):
        member = ClusterMember.parse("10.0.0.2:40010", PORT)
        assert member == ClusterMember("10.0.0.2", 40010)

    def test_parse_without_port_uses_default(self):
        assert ClusterMember.parse(" 10.0.0.2 ", PORT) == ClusterMember("10.0.0.2", PORT)

    def test_parse_bracketed_ipv6(self):
        member = ClusterMember.parse("[fe80::1]:40010", PORT)
        assert member.ip == "fe80::1"
        assert member.port == 40010
        assert str(member) == "[fe80::1]:40010"

    def test_parse_bare_ipv6(self):
        member = ClusterMember.parse("::1", PORT)
        assert member == ClusterMember("::1", PORT)

    def test_parse_invalid_port(self):
        with pytest.raises(ValueError):
            ClusterMember.parse("10.0.0.2:abc", PORT)

    def test_port_out_of_range(self):
        with pytest.raises(ValueError):
            ClusterMember("10.0.0.2", 70000)

    def test_invalid_member_is_configuration_error(self):
        with pytest.raises(ConfigurationError):
            parse_membership("10.0.0.1;10.0.0.2:abc", PORT)

    def test_structural_equality(self):
        assert ClusterMember("10.0.0.2", PORT) == ClusterMember("10.0.0.2", PORT)
        assert len({ClusterMember("10.0.0.2", PORT), ClusterMember("10.0.0.2", PORT)}) == 1

    def test_parse_membership_separators(self):
        members = parse_membership("10.0.0.1;10.0.0.2:40004, 10.0.0.3,;", PORT)
        assert members == (
            ClusterMember("10.0.0.1", PORT),
            ClusterMember("10.0.0.2", 40004),
            ClusterMember("10.0.0.3", PORT),
        )

    def test_parse_empty_membership(self):
        assert parse_membership("", PORT) == ()
        assert parse_membership(" ; , ", PORT) == ()


# === Address Resolution Tests ===


class TestAddressResolver:
    """Test local/remote classification."""

    def test_single_local_member(self, resolver):
        local, remotes = resolver.resolve("10.0.0.2,10.0.0.1;10.0.0.3:40003", PORT)
        assert local == ClusterMember("10.0.0.1", PORT)
        assert remotes == [ClusterMember("10.0.0.2", PORT), ClusterMember("10.0.0.3", PORT)]

    def test_remote_order_preserved(self, resolver):
        members = [
            ClusterMember("10.0.0.9", PORT),
            ClusterMember("10.0.0.1", PORT),
            ClusterMember("10.0.0.4", PORT),
            ClusterMember("10.0.0.7", PORT),
        ]
        _, remotes = resolver.resolve(members, PORT)
        assert [m.ip for m in remotes] == ["10.0.0.9", "10.0.0.4", "10.0.0.7"]

    def test_same_host_other_port_is_remote(self, resolver):
        local, remotes = resolver.resolve("10.0.0.1:40004,10.0.0.1:40003", PORT)
        assert local == ClusterMember("10.0.0.1", PORT)
        assert remotes == [ClusterMember("10.0.0.1", 40004)]

    def test_no_local_member_fails(self, resolver):
        with pytest.raises(AddressResolutionError) as exc_info:
            resolver.resolve("10.0.0.2,10.0.0.3", PORT)
        assert exc_info.value.candidates == []
        assert exc_info.value.listener_port == PORT

    def test_no_local_member_on_port_fails(self, resolver):
        with pytest.raises(AddressResolutionError):
            resolver.resolve("10.0.0.1:40010,10.0.0.2", PORT)

    def test_two_local_members_fail(self, resolver):
        with pytest.raises(AddressResolutionError) as exc_info:
            resolver.resolve("10.0.0.1,127.0.0.1,10.0.0.2", PORT)
        assert exc_info.value.candidates == [
            ClusterMember("10.0.0.1", PORT),
            ClusterMember("127.0.0.1", PORT),
        ]

    def test_duplicate_local_entries_fail(self, resolver):
        with pytest.raises(AddressResolutionError):
            resolver.resolve("10.0.0.1;10.0.0.1", PORT)

    def test_empty_membership_fails(self, resolver):
        with pytest.raises(AddressResolutionError):
            resolver.resolve("", PORT)

    def test_loopback_is_local(self):
        resolver = AddressResolver(local_addresses=lambda: [])
        local, remotes = resolver.resolve("127.0.0.1,10.0.0.2", PORT)
        assert local == ClusterMember("127.0.0.1", PORT)
        assert remotes == [ClusterMember("10.0.0.2", PORT)]

    def test_hostname_is_resolved(self):
        hosts = {"node-a": ["10.0.0.1"], "node-b": ["10.0.0.2"]}
        resolver = AddressResolver(
            local_addresses=lambda: ["10.0.0.1"],
            host_resolver=lambda host: hosts.get(host, []),
        )
        local, remotes = resolver.resolve("node-b,node-a", PORT)
        assert local == ClusterMember("node-a", PORT)
        assert remotes == [ClusterMember("node-b", PORT)]

    def test_unresolvable_host_is_remote(self):
        resolver = AddressResolver(
            local_addresses=lambda: ["10.0.0.1"],
            host_resolver=lambda host: [host] if host[0].isdigit() else [],
        )
        _, remotes = resolver.resolve("10.0.0.1,no-such-host", PORT)
        assert remotes == [ClusterMember("no-such-host", PORT)]

    def test_is_local(self, resolver):
        assert resolver.is_local(ClusterMember("10.0.0.1", PORT), PORT)
        assert not resolver.is_local(ClusterMember("10.0.0.1", 40004), PORT)
        assert not resolver.is_local(ClusterMember("10.0.0.2", PORT), PORT)


class TestLocalInterfaceAddresses:
    """Test the default interface query."""

    def test_collects_interface_addresses(self):
        interfaces = {
            "eth0": [
                SimpleNamespace(family=socket.AF_INET, address="192.168.1.5"),
                SimpleNamespace(family=socket.AF_INET6, address="fe80::1%eth0"),
                SimpleNamespace(family=-1, address="00:11:22:33:44:55"),
            ],
        }
        with patch("loadctl.cluster.resolver.psutil.net_if_addrs", return_value=interfaces), \
                patch("loadctl.cluster.resolver.socket.gethostbyname_ex", side_effect=OSError("no dns")):
            addresses = local_interface_addresses()

        assert "192.168.1.5" in addresses
        assert "fe80::1" in addresses
        assert "127.0.0.1" in addresses
        assert "00:11:22:33:44:55" not in addresses

    def test_includes_host_name_addresses(self):
        with patch("loadctl.cluster.resolver.psutil.net_if_addrs", return_value={}), \
                patch(
                    "loadctl.cluster.resolver.socket.gethostbyname_ex",
                    return_value=("host", [], ["10.1.2.3"]),
                ):
            addresses = local_interface_addresses()
        assert "10.1.2.3" in addresses


# === Replicated Cache Selection Tests ===


class TestExtractReplicatedCacheNames:
    """Test the replicator factory filter."""

    def test_selects_only_replicated_caches(self):
        caches = {
            "sessionCache": [{"factoryIdentifier": REPLICATOR_FACTORY_IDENTIFIER}],
            "localCache": [{"factoryIdentifier": "com.example.LoggingListenerFactory"}],
            "emptyCache": [],
            "resultCache": [
                {"factoryIdentifier": "com.example.LoggingListenerFactory"},
                {"factoryIdentifier": REPLICATOR_FACTORY_IDENTIFIER},
            ],
        }
        assert extract_replicated_cache_names(caches) == ["sessionCache", "resultCache"]

    def test_identifier_must_match_exactly(self):
        caches = {
            "a": [{"factoryIdentifier": REPLICATOR_FACTORY_IDENTIFIER + "Ex"}],
            "b": [{"factoryIdentifier": REPLICATOR_FACTORY_IDENTIFIER.lower()}],
        }
        assert extract_replicated_cache_names(caches) == []

    def test_accepts_objects_and_strings(self):
        caches = {
            "a": [SimpleNamespace(factory_identifier=REPLICATOR_FACTORY_IDENTIFIER)],
            "b": [REPLICATOR_FACTORY_IDENTIFIER],
            "c": None,
        }
        assert extract_replicated_cache_names(caches) == ["a", "b"]


# === Topology Tests ===


class TestCacheTopologyBuilder:
    """Test peer provider and listener formatting."""

    def test_peer_provider_property(self, builder):
        topology = builder.build(
            ["sessionCache", "resultCache"],
            ClusterMember("10.0.0.1", PORT),
            [ClusterMember("10.0.0.2", PORT), ClusterMember("10.0.0.3", PORT)],
        )
        assert topology.peer_provider_property == (
            "peerDiscovery=manual,rmiUrls="
            "//10.0.0.2:40003/sessionCache|//10.0.0.2:40003/resultCache|"
            "//10.0.0.3:40003/sessionCache|//10.0.0.3:40003/resultCache"
        )

    def test_peer_listener_property(self, builder):
        topology = builder.build([], ClusterMember("10.0.0.1", PORT), [])
        assert topology.peer_listener_property == (
            "hostName=10.0.0.1, port=40003, socketTimeoutMillis=1000"
        )

    def test_no_replicated_caches(self, builder):
        topology = builder.build(
            [], ClusterMember("10.0.0.1", PORT), [ClusterMember("10.0.0.2", PORT)]
        )
        assert topology.peer_provider_property == "peerDiscovery=manual,rmiUrls="

    def test_no_remotes(self, builder):
        topology = builder.build(["a"], ClusterMember("10.0.0.1", PORT), [])
        assert topology.peer_provider_property.endswith("rmiUrls=")

    def test_local_member_never_a_peer(self, builder):
        topology = builder.build_for_membership(
            ["sessionCache"], "10.0.0.2,10.0.0.1,10.0.0.3", PORT
        )
        assert topology.local_member == ClusterMember("10.0.0.1", PORT)
        assert "10.0.0.1" not in topology.peer_provider_property
        assert topology.peer_provider_property.count("//") == 2

    def test_resolution_failure_propagates(self, builder):
        with pytest.raises(AddressResolutionError):
            builder.build_for_membership(["sessionCache"], "10.0.0.2,10.0.0.3", PORT)

    def test_to_dict(self, builder):
        topology = builder.build(["a"], ClusterMember("10.0.0.1", PORT), [])
        data = topology.to_dict()
        assert data["local_member"] == {"ip": "10.0.0.1", "port": PORT}
        assert data["peer_listener_property"].startswith("hostName=10.0.0.1")


# === Cache Manager Setup Tests ===


class TestCacheManagerSetup:
    """Test local vs. clustered cache configuration."""

    CACHES = {
        "sessionCache": [{"factoryIdentifier": REPLICATOR_FACTORY_IDENTIFIER}],
        "localCache": [],
    }

    def _store(self, clustered, members="10.0.0.1,10.0.0.2"):
        store = MagicMock()
        store.is_clustered.return_value = clustered
        store.cluster_members.return_value = parse_membership(members, PORT)
        store.cluster_listener_port.return_value = PORT
        return store

    def test_local_mode(self, builder):
        config = CacheManagerSetup(self._store(False), builder).configure(self.CACHES)
        assert config.clustered is False
        assert config.peer_provider is None
        assert config.peer_listener is None
        assert config.name == "cacheManager"

    def test_cluster_mode(self, builder):
        config = CacheManagerSetup(self._store(True), builder).configure(self.CACHES)
        assert config.clustered is True
        assert config.replicated_caches == ["sessionCache"]
        assert config.peer_provider.class_name == PEER_PROVIDER_FACTORY
        assert config.peer_provider.properties == (
            "peerDiscovery=manual,rmiUrls=//10.0.0.2:40003/sessionCache"
        )
        assert config.peer_listener.class_name == PEER_LISTENER_FACTORY
        assert config.rmi_hostname == "10.0.0.1"
        assert config.to_dict()["clustered"] is True

    def test_cluster_mode_aborts_on_ambiguity(self, builder):
        store = self._store(True, members="10.0.0.1,10.0.0.1")
        with pytest.raises(AddressResolutionError):
            CacheManagerSetup(store, builder).configure(self.CACHES)
