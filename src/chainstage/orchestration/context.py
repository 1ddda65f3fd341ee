"""
Execution context handed to each deployment unit body.

A fresh context is built for every unit invocation. It borrows the network
connection, ledger and artifact factory from the orchestrator and is dropped
when the unit returns.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterator, Optional, Sequence, Union

from chainstage.artifacts.factory import ArtifactFactory, ArtifactHandle
from chainstage.core.errors import (
    ConfigurationError,
    LedgerConflictError,
    UnresolvedDependencyError,
)
from chainstage.ledger.base import DeploymentLedger
from chainstage.ledger.models import LedgerEntry, fingerprint_args
from chainstage.logging import bind_context
from chainstage.networks.models import NetworkConnection
from chainstage.orchestration.resolver import ExecutionPlan
from chainstage.units.models import DeploymentUnit


@dataclass(frozen=True)
class Published:
    """``deploy`` submitted a new artifact and recorded it."""

    handle: ArtifactHandle
    entry: LedgerEntry

    newly_published = True

    def __iter__(self) -> Iterator[Any]:
        # Allows ``handle, newly_published = await ctx.deploy(...)``
        return iter((self.handle, self.newly_published))


@dataclass(frozen=True)
class Attached:
    """``deploy`` found a matching ledger entry and bound to it."""

    handle: ArtifactHandle
    entry: LedgerEntry

    newly_published = False

    def __iter__(self) -> Iterator[Any]:
        return iter((self.handle, self.newly_published))


DeployResult = Union[Published, Attached]


class ExecutionContext:
    """What a unit body can see and do while it runs."""

    def __init__(
        self,
        unit: DeploymentUnit,
        connection: NetworkConnection,
        ledger: DeploymentLedger,
        factory: ArtifactFactory,
        plan: ExecutionPlan,
        *,
        force: bool = False,
    ) -> None:
        self._unit = unit
        self._connection = connection
        self._ledger = ledger
        self._factory = factory
        self._plan = plan
        self._force = force
        self._published = False
        self.artifacts: Dict[str, str] = {}
        self.log = bind_context(network=connection.network_id, unit=unit.id)

    @property
    def unit_id(self) -> str:
        return self._unit.id

    @property
    def network_id(self) -> str:
        return self._connection.network_id

    @property
    def connection(self) -> NetworkConnection:
        return self._connection

    @property
    def chain_id(self) -> int:
        return self._connection.chain_id

    @property
    def active_tags(self) -> frozenset[str]:
        return self._plan.active_tags

    @property
    def published(self) -> bool:
        """Whether any ``deploy`` call in this unit submitted a new artifact."""
        return self._published

    @property
    def signer(self) -> str:
        signer = self._connection.default_signer
        if signer is None:
            raise ConfigurationError(
                f"No accounts available on network '{self.network_id}'",
                {"network": self.network_id},
            )
        return signer

    def named_accounts(self) -> Dict[str, str]:
        return dict(self._connection.accounts)

    def account(self, name: str) -> str:
        try:
            return self._connection.accounts[name]
        except KeyError:
            raise ConfigurationError(
                f"Named account '{name}' is not configured for network '{self.network_id}'",
                {"network": self.network_id, "account": name},
            ) from None

    def external(self, name: str) -> str:
        """Address of a pre-existing artifact from the network address book."""
        try:
            return self._connection.addresses[name]
        except KeyError:
            raise ConfigurationError(
                f"No external address '{name}' for network '{self.network_id}'",
                {"network": self.network_id, "address": name},
            ) from None

    async def deploy(
        self,
        template: str,
        args: Sequence[Any] = (),
        *,
        id: Optional[str] = None,
        signer: Optional[str] = None,
    ) -> DeployResult:
        """Publish ``template`` under ``id`` (default: the current unit id).

        A ledger entry for the same template and arguments is reused without
        touching the network. An entry that differs is a conflict unless the
        run is forced, and the conflict is raised before anything is
        published.
        """
        target_id = id or self.unit_id
        self._ledger.check_key(self.network_id, target_id)
        builder = self._factory.build(template, self._connection, signer)
        fingerprint = fingerprint_args(args)
        existing = self._ledger.lookup(self.network_id, target_id)

        if existing is not None and not self._force:
            if not existing.matches(template, fingerprint):
                raise LedgerConflictError(
                    self.network_id,
                    target_id,
                    f"recorded from '{existing.template}' with different arguments; "
                    "rerun with force to replace it",
                )
            self.log.info("deployment_reused", id=target_id, address=existing.address)
            self.artifacts[target_id] = existing.address
            return Attached(builder.attach(existing.address), existing)

        handle, receipt = await builder.publish(args)
        entry = LedgerEntry(
            address=handle.address,
            template=template,
            args_fingerprint=fingerprint,
            publish_ref=receipt.tx_hash,
            block_number=receipt.block_number,
            newly_published=True,
        )
        # Record before handing control back to the unit body.
        self._ledger.record(self.network_id, target_id, entry, force=existing is not None)
        self._published = True
        self.artifacts[target_id] = handle.address
        return Published(handle, entry)

    def get(self, identifier: str) -> ArtifactHandle:
        """Handle for an artifact already recorded on this network."""
        handle = self.get_or_none(identifier)
        if handle is None:
            raise UnresolvedDependencyError(
                identifier,
                f"'{identifier}' has not been deployed on network '{self.network_id}'",
                network=self.network_id,
                unit=self.unit_id,
            )
        return handle

    def get_or_none(self, identifier: str) -> Optional[ArtifactHandle]:
        entry = self._ledger.lookup(self.network_id, identifier)
        if entry is None:
            return None
        if identifier != self.unit_id and identifier not in self._plan.closure(self.unit_id):
            self.log.debug("undeclared_dependency_access", identifier=identifier)
        return self._factory.build(entry.template, self._connection).attach(entry.address)

    def attach(self, template: str, address: str) -> ArtifactHandle:
        """Typed handle for an address the ledger does not track."""
        return self._factory.build(template, self._connection).attach(address)
