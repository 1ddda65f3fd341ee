"""
Executors submit artifacts and calls to a network.

The orchestrator treats publishing as opaque: it hands a template, arguments
and a signer to an Executor and gets back an address, or a
PublishRejectedError.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Protocol, Sequence

import structlog
from eth_abi import decode, encode
from eth_utils import function_abi_to_4byte_selector, to_checksum_address

from chainstage.core.errors import PublishRejectedError
from chainstage.networks.rpc import RetryableRPCError, RpcError

if TYPE_CHECKING:
    from chainstage.artifacts.catalog import Template
    from chainstage.artifacts.factory import ArtifactHandle
    from chainstage.networks.models import NetworkConnection

logger = structlog.get_logger()


@dataclass(frozen=True)
class PublishReceipt:
    """Confirmation of an included transaction."""

    tx_hash: str
    address: Optional[str] = None
    block_number: Optional[int] = None


class Executor(Protocol):
    """Opaque network operations used by artifact builders and handles."""

    async def publish(
        self,
        connection: NetworkConnection,
        template: Template,
        args: Sequence[Any],
        signer: str,
    ) -> PublishReceipt:
        ...

    async def call(
        self,
        connection: NetworkConnection,
        handle: ArtifactHandle,
        function: str,
        args: Sequence[Any],
    ) -> Any:
        ...

    async def transact(
        self,
        connection: NetworkConnection,
        handle: ArtifactHandle,
        function: str,
        args: Sequence[Any],
        signer: str,
    ) -> PublishReceipt:
        ...


def _types(inputs: List[Dict[str, Any]]) -> List[str]:
    return [item["type"] for item in inputs]


def _function_abi(handle: ArtifactHandle, function: str) -> Dict[str, Any]:
    abi = handle.template.function(function)
    if abi is None:
        raise AttributeError(f"{handle.template.name} has no function '{function}'")
    return abi


def _encode_call(abi: Dict[str, Any], args: Sequence[Any]) -> str:
    selector = function_abi_to_4byte_selector(abi)
    return "0x" + (selector + encode(_types(abi.get("inputs", [])), list(args))).hex()


class JsonRpcExecutor:
    """Executor backed by a node that manages the signing accounts."""

    def __init__(self, confirmation_timeout: float = 120.0, poll_interval: float = 1.0) -> None:
        self._confirmation_timeout = confirmation_timeout
        self._poll_interval = poll_interval

    async def publish(
        self,
        connection: NetworkConnection,
        template: Template,
        args: Sequence[Any],
        signer: str,
    ) -> PublishReceipt:
        if not template.publishable:
            raise PublishRejectedError(
                f"Template '{template.name}' has no creation bytecode",
                {"template": template.name, "network": connection.network_id},
            )
        encoded_args = encode(_types(template.constructor_inputs), list(args))
        data = template.bytecode + encoded_args.hex()
        receipt = await self._send(connection, {"from": signer, "data": data}, template.name)

        if not receipt.address:
            raise PublishRejectedError(
                f"Receipt for '{template.name}' carries no contract address",
                {"template": template.name, "tx_hash": receipt.tx_hash},
            )
        return receipt

    async def call(
        self,
        connection: NetworkConnection,
        handle: ArtifactHandle,
        function: str,
        args: Sequence[Any],
    ) -> Any:
        abi = _function_abi(handle, function)
        data = _encode_call(abi, args)
        raw = await connection.client.request(
            "eth_call", [{"to": handle.address, "data": data}, "latest"]
        )

        output_types = _types(abi.get("outputs", []))
        if not output_types:
            return None
        values = decode(output_types, bytes.fromhex(raw[2:] if raw.startswith("0x") else raw))
        return values[0] if len(values) == 1 else values

    async def transact(
        self,
        connection: NetworkConnection,
        handle: ArtifactHandle,
        function: str,
        args: Sequence[Any],
        signer: str,
    ) -> PublishReceipt:
        abi = _function_abi(handle, function)
        data = _encode_call(abi, args)
        return await self._send(
            connection,
            {"from": signer, "to": handle.address, "data": data},
            f"{handle.template.name}.{function}",
        )

    async def _send(
        self, connection: NetworkConnection, tx: Dict[str, Any], label: str
    ) -> PublishReceipt:
        client = connection.client
        try:
            # A lost response may still mean the node accepted the transaction.
            tx_hash = await client.request("eth_sendTransaction", [tx], retry=False)
        except (RpcError, RetryableRPCError) as exc:
            raise PublishRejectedError(
                f"Network rejected '{label}': {exc}",
                {"network": connection.network_id, "target": label},
            ) from exc

        logger.debug(
            "transaction_submitted",
            network=connection.network_id,
            target=label,
            tx_hash=tx_hash,
        )
        receipt = await self._wait_for_receipt(connection, tx_hash, label)

        if int(receipt.get("status", "0x1"), 16) == 0:
            raise PublishRejectedError(
                f"Transaction for '{label}' reverted",
                {"network": connection.network_id, "tx_hash": tx_hash},
            )

        address = receipt.get("contractAddress")
        block = receipt.get("blockNumber")
        return PublishReceipt(
            tx_hash=tx_hash,
            address=to_checksum_address(address) if address else None,
            block_number=int(block, 16) if block else None,
        )

    async def _wait_for_receipt(
        self, connection: NetworkConnection, tx_hash: str, label: str
    ) -> Dict[str, Any]:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self._confirmation_timeout
        while True:
            try:
                receipt = await connection.client.request("eth_getTransactionReceipt", [tx_hash])
            except (RpcError, RetryableRPCError) as exc:
                raise PublishRejectedError(
                    f"Lost track of '{label}' while waiting for confirmation: {exc}",
                    {"network": connection.network_id, "tx_hash": tx_hash},
                ) from exc
            if receipt:
                return receipt
            if loop.time() >= deadline:
                raise PublishRejectedError(
                    f"Timed out waiting for confirmation of '{label}'",
                    {
                        "network": connection.network_id,
                        "tx_hash": tx_hash,
                        "timeout_seconds": self._confirmation_timeout,
                    },
                )
            await asyncio.sleep(self._poll_interval)
