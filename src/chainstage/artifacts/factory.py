"""Artifact factory: builders that publish or attach typed handles."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence, Tuple

import structlog

from chainstage.artifacts.catalog import Template, TemplateCatalog
from chainstage.artifacts.executor import Executor, PublishReceipt
from chainstage.core.errors import PublishRejectedError
from chainstage.networks.models import NetworkConnection

logger = structlog.get_logger()


@dataclass(frozen=True)
class ArtifactHandle:
    """Typed binding of a template to an address on one network."""

    connection: NetworkConnection
    address: str
    template: Template
    executor: Executor

    @property
    def network_id(self) -> str:
        return self.connection.network_id

    @property
    def template_name(self) -> str:
        return self.template.name

    async def call(self, function: str, *args: Any) -> Any:
        """Read-only call against the artifact."""
        return await self.executor.call(self.connection, self, function, args)

    async def transact(
        self, function: str, *args: Any, signer: str | None = None
    ) -> PublishReceipt:
        """State-changing call, awaited until confirmed."""
        sender = signer or self.connection.default_signer
        if sender is None:
            raise ValueError(f"No signer available on network '{self.network_id}'")
        return await self.executor.transact(self.connection, self, function, args, sender)

    def __repr__(self) -> str:
        return f"ArtifactHandle({self.template.name}@{self.address} on {self.network_id})"


class ArtifactBuilder:
    """Template bound to a connection and signer."""

    def __init__(
        self,
        template: Template,
        connection: NetworkConnection,
        signer: str | None,
        executor: Executor,
    ) -> None:
        self.template = template
        self.connection = connection
        self.signer = signer
        self._executor = executor

    async def publish(self, args: Sequence[Any] = ()) -> Tuple[ArtifactHandle, PublishReceipt]:
        """Submit a new instance and wait for the network to confirm it."""
        if self.signer is None:
            raise ValueError(f"No signer available on network '{self.connection.network_id}'")

        receipt = await self._executor.publish(self.connection, self.template, args, self.signer)
        if not receipt.address:
            raise PublishRejectedError(
                f"Executor returned no address for '{self.template.name}'",
                {
                    "template": self.template.name,
                    "network": self.connection.network_id,
                    "tx_hash": receipt.tx_hash,
                },
            )
        logger.info(
            "artifact_published",
            network=self.connection.network_id,
            template=self.template.name,
            address=receipt.address,
            tx_hash=receipt.tx_hash,
            block=receipt.block_number,
        )
        return self.attach(receipt.address), receipt

    def attach(self, address: str) -> ArtifactHandle:
        """Bind to an existing address. No network call."""
        return ArtifactHandle(
            connection=self.connection,
            address=address,
            template=self.template,
            executor=self._executor,
        )


class ArtifactFactory:
    """Produces builders for catalog templates."""

    def __init__(self, catalog: TemplateCatalog, executor: Executor) -> None:
        self.catalog = catalog
        self.executor = executor

    def build(
        self,
        template_name: str,
        connection: NetworkConnection,
        signer: str | None = None,
    ) -> ArtifactBuilder:
        """Fails fast with InvalidTemplateError for unknown templates."""
        template = self.catalog.get(template_name)
        return ArtifactBuilder(
            template=template,
            connection=connection,
            signer=signer if signer is not None else connection.default_signer,
            executor=self.executor,
        )
