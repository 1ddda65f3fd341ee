"""Tests for the network registry and connection caching."""

import asyncio

import pytest
from chainstage.core.errors import (
    DuplicateNetworkError,
    NoReachableEndpointError,
    UnknownNetworkError,
)
from chainstage.networks import NetworkDescriptor, NetworkRegistry, resolve_accounts
from fakes import NODE_ACCOUNTS, FakeConnector
from pydantic import ValidationError


def descriptor(network_id="N1", endpoints=("http://a.local",), **kwargs):
    return NetworkDescriptor(id=network_id, endpoints=list(endpoints), **kwargs)


class TestRegistration:
    def test_add_and_lookup(self):
        registry = NetworkRegistry(connector=FakeConnector())
        registry.add_network(descriptor())

        assert "N1" in registry
        assert registry.descriptor("N1").endpoints == ["http://a.local"]
        assert [d.id for d in registry.list()] == ["N1"]

    def test_duplicate_id_rejected(self):
        registry = NetworkRegistry(connector=FakeConnector())
        registry.add_network(descriptor())

        with pytest.raises(DuplicateNetworkError):
            registry.add_network(descriptor(endpoints=["http://b.local"]))

    def test_unknown_network(self):
        registry = NetworkRegistry(connector=FakeConnector())

        with pytest.raises(UnknownNetworkError):
            registry.descriptor("nope")

    @pytest.mark.asyncio
    async def test_unknown_network_connection(self):
        registry = NetworkRegistry(connector=FakeConnector())

        with pytest.raises(UnknownNetworkError):
            await registry.connection_for("nope")


class TestDescriptorValidation:
    def test_requires_endpoint(self):
        with pytest.raises(ValidationError):
            NetworkDescriptor(id="N1", endpoints=[])

    def test_requires_http_url(self):
        with pytest.raises(ValidationError):
            NetworkDescriptor(id="N1", endpoints=["ws://node.local"])

    def test_frozen(self):
        d = descriptor()
        with pytest.raises(ValidationError):
            d.id = "other"


class TestConnections:
    @pytest.mark.asyncio
    async def test_connection_is_cached(self):
        connector = FakeConnector()
        registry = NetworkRegistry(connector=connector)
        registry.add_network(descriptor())

        first = await registry.connection_for("N1")
        second = await registry.connection_for("N1")

        assert first is second
        assert connector.probes == ["http://a.local"]
        assert first.chain_id == 31337

    @pytest.mark.asyncio
    async def test_falls_back_to_next_endpoint(self):
        connector = FakeConnector(down={"http://a.local"})
        registry = NetworkRegistry(connector=connector)
        registry.add_network(descriptor(endpoints=["http://a.local", "http://b.local"]))

        connection = await registry.connection_for("N1")

        assert connection.endpoint == "http://b.local"
        assert connector.probes == ["http://a.local", "http://b.local"]

    @pytest.mark.asyncio
    async def test_all_endpoints_down(self):
        connector = FakeConnector(down={"http://a.local", "http://b.local"})
        registry = NetworkRegistry(connector=connector)
        registry.add_network(descriptor(endpoints=["http://a.local", "http://b.local"]))

        with pytest.raises(NoReachableEndpointError) as exc:
            await registry.connection_for("N1")

        assert exc.value.endpoints == ["http://a.local", "http://b.local"]
        assert len(exc.value.details["errors"]) == 2

    @pytest.mark.asyncio
    async def test_failure_is_not_cached(self):
        connector = FakeConnector(down={"http://a.local"})
        registry = NetworkRegistry(connector=connector)
        registry.add_network(descriptor())

        with pytest.raises(NoReachableEndpointError):
            await registry.connection_for("N1")

        connector.down.clear()
        connection = await registry.connection_for("N1")
        assert connection.endpoint == "http://a.local"

    @pytest.mark.asyncio
    async def test_concurrent_requests_share_one_probe(self):
        connector = FakeConnector(delay=0.01)
        registry = NetworkRegistry(connector=connector)
        registry.add_network(descriptor())

        connections = await asyncio.gather(*(registry.connection_for("N1") for _ in range(5)))

        assert all(c is connections[0] for c in connections)
        assert connector.probes == ["http://a.local"]

    @pytest.mark.asyncio
    async def test_aclose_drops_cached_connections(self):
        connector = FakeConnector()
        registry = NetworkRegistry(connector=connector)
        registry.add_network(descriptor())

        first = await registry.connection_for("N1")
        await registry.aclose()
        second = await registry.connection_for("N1")

        assert first is not second
        assert connector.probes == ["http://a.local", "http://a.local"]

    @pytest.mark.asyncio
    async def test_networks_connect_independently(self):
        connector = FakeConnector(down={"http://b.local"})
        registry = NetworkRegistry(connector=connector)
        registry.add_network(descriptor("N1", ["http://a.local"]))
        registry.add_network(descriptor("N2", ["http://b.local"]))

        assert (await registry.connection_for("N1")).network_id == "N1"
        with pytest.raises(NoReachableEndpointError):
            await registry.connection_for("N2")


class TestResolveAccounts:
    def test_default_deployer(self):
        assert resolve_accounts(descriptor(), NODE_ACCOUNTS) == {"deployer": NODE_ACCOUNTS[0]}

    def test_no_node_accounts(self):
        assert resolve_accounts(descriptor(), []) == {}

    def test_named_indexes_and_literals(self):
        d = descriptor(accounts={"deployer": 2, "multisig": "0x" + "9" * 40})
        assert resolve_accounts(d, NODE_ACCOUNTS) == {
            "deployer": NODE_ACCOUNTS[2],
            "multisig": "0x" + "9" * 40,
        }

    def test_out_of_range_index_skipped(self):
        d = descriptor(accounts={"deployer": 0, "admin": 9})
        assert resolve_accounts(d, NODE_ACCOUNTS) == {"deployer": NODE_ACCOUNTS[0]}
