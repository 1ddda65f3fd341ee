"""Network descriptors, JSON-RPC client and the connection registry."""

from chainstage.networks.models import NetworkConnection, NetworkDescriptor
from chainstage.networks.registry import NetworkRegistry, resolve_accounts, rpc_connector
from chainstage.networks.rpc import RetryableRPCError, RpcClient, RpcError

__all__ = [
    "NetworkConnection",
    "NetworkDescriptor",
    "NetworkRegistry",
    "RetryableRPCError",
    "RpcClient",
    "RpcError",
    "resolve_accounts",
    "rpc_connector",
]
