"""
Network registry.

Maps network identifiers to their connection configuration and lazily builds
one connection per network, shared by every run in the process that uses the
same registry.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Awaitable, Callable, Dict, List

import httpx
import structlog

from chainstage.config.settings import Settings, get_settings
from chainstage.core.errors import (
    DuplicateNetworkError,
    NoReachableEndpointError,
    UnknownNetworkError,
)
from chainstage.networks.models import NetworkConnection, NetworkDescriptor
from chainstage.networks.rpc import RetryableRPCError, RpcClient, RpcError

if TYPE_CHECKING:
    from chainstage.config.loader import ChainstageConfig

logger = structlog.get_logger()

Connector = Callable[[NetworkDescriptor, str], Awaitable[NetworkConnection]]

PROBE_ERRORS = (RetryableRPCError, RpcError, httpx.HTTPError, ValueError)


def rpc_connector(settings: Settings | None = None) -> Connector:
    """Build a connector that probes endpoints over JSON-RPC."""
    cfg = settings or get_settings()

    async def connect(descriptor: NetworkDescriptor, endpoint: str) -> NetworkConnection:
        client = RpcClient(
            endpoint,
            timeout=cfg.rpc_timeout,
            max_retries=cfg.rpc_max_retries,
            backoff_factor=cfg.rpc_retry_backoff_factor,
        )
        chain_id = await client.chain_id()
        node_accounts = await client.accounts()
        return NetworkConnection(
            network_id=descriptor.id,
            endpoint=endpoint,
            chain_id=chain_id,
            client=client,
            accounts=resolve_accounts(descriptor, node_accounts),
            addresses=dict(descriptor.addresses),
        )

    return connect


def resolve_accounts(descriptor: NetworkDescriptor, node_accounts: List[str]) -> Dict[str, str]:
    """Map named accounts onto node account indexes or literal addresses."""
    if not descriptor.accounts:
        return {"deployer": node_accounts[0]} if node_accounts else {}

    resolved: Dict[str, str] = {}
    for name, ref in descriptor.accounts.items():
        if isinstance(ref, int):
            if ref >= len(node_accounts):
                logger.warning(
                    "named_account_unavailable",
                    network=descriptor.id,
                    account=name,
                    index=ref,
                    available=len(node_accounts),
                )
                continue
            resolved[name] = node_accounts[ref]
        else:
            resolved[name] = ref
    return resolved


class NetworkRegistry:
    """Registry of network descriptors with cached, lazily built connections."""

    def __init__(self, connector: Connector | None = None) -> None:
        self._descriptors: Dict[str, NetworkDescriptor] = {}
        self._connections: Dict[str, NetworkConnection] = {}
        self._locks: Dict[str, asyncio.Lock] = {}
        self._connector = connector or rpc_connector()

    @classmethod
    def from_config(
        cls, config: "ChainstageConfig", connector: Connector | None = None
    ) -> "NetworkRegistry":
        registry = cls(connector=connector)
        for descriptor in config.networks.values():
            registry.add_network(descriptor)
        return registry

    def add_network(self, descriptor: NetworkDescriptor) -> None:
        """Register a network; ids are unique."""
        if descriptor.id in self._descriptors:
            raise DuplicateNetworkError(descriptor.id)
        self._descriptors[descriptor.id] = descriptor
        self._locks[descriptor.id] = asyncio.Lock()

    def descriptor(self, network_id: str) -> NetworkDescriptor:
        try:
            return self._descriptors[network_id]
        except KeyError:
            raise UnknownNetworkError(network_id) from None

    def list(self) -> List[NetworkDescriptor]:
        return list(self._descriptors.values())

    def __contains__(self, network_id: object) -> bool:
        return network_id in self._descriptors

    async def connection_for(self, network_id: str) -> NetworkConnection:
        """Return the cached connection, constructing it on first use."""
        cached = self._connections.get(network_id)
        if cached is not None:
            return cached

        descriptor = self.descriptor(network_id)
        async with self._locks[network_id]:
            # Another task may have finished construction while we waited.
            cached = self._connections.get(network_id)
            if cached is not None:
                return cached

            connection = await self._probe(descriptor)
            self._connections[network_id] = connection
            return connection

    async def aclose(self) -> None:
        """Drop every cached connection; the next access probes again."""
        for network_id in list(self._connections):
            async with self._locks[network_id]:
                connection = self._connections.pop(network_id, None)
            if connection is not None:
                logger.debug(
                    "network_disconnected", network=network_id, endpoint=connection.endpoint
                )

    async def _probe(self, descriptor: NetworkDescriptor) -> NetworkConnection:
        errors: List[str] = []
        for endpoint in descriptor.endpoints:
            try:
                connection = await self._connector(descriptor, endpoint)
            except PROBE_ERRORS as exc:
                logger.warning(
                    "endpoint_unreachable",
                    network=descriptor.id,
                    endpoint=endpoint,
                    error=str(exc),
                )
                errors.append(f"{endpoint}: {exc}")
                continue

            logger.info(
                "network_connected",
                network=descriptor.id,
                endpoint=endpoint,
                chain_id=connection.chain_id,
                accounts=sorted(connection.accounts),
            )
            return connection

        raise NoReachableEndpointError(descriptor.id, descriptor.endpoints, errors)
