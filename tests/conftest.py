"""Root test configuration."""

import pytest
from chainstage.artifacts import ArtifactFactory, Template, TemplateCatalog
from chainstage.ledger import MemoryLedger
from chainstage.networks import NetworkDescriptor, NetworkRegistry
from chainstage.orchestration import DeploymentOrchestrator
from fakes import FakeConnector, FakeExecutor, quiet_logging


def pytest_configure(config):
    """Configure structlog for tests to suppress debug/info output."""
    quiet_logging()


@pytest.fixture
def catalog():
    """Small static catalog used across orchestration tests."""
    return TemplateCatalog(
        [
            Template(
                name="Token",
                abi=[
                    {
                        "type": "constructor",
                        "inputs": [{"name": "symbol", "type": "string"}],
                    },
                    {
                        "type": "function",
                        "name": "addMinter",
                        "inputs": [{"name": "minter", "type": "address"}],
                        "outputs": [],
                    },
                ],
                bytecode="0x6080",
            ),
            Template(
                name="Treasury",
                abi=[{"type": "constructor", "inputs": [{"name": "owner", "type": "address"}]}],
                bytecode="0x6081",
            ),
            Template(name="Oracle", abi=[], bytecode="0x6082"),
        ]
    )


@pytest.fixture
def executor():
    return FakeExecutor()


@pytest.fixture
def connector():
    return FakeConnector()


@pytest.fixture
def networks(connector):
    registry = NetworkRegistry(connector=connector)
    registry.add_network(
        NetworkDescriptor(
            id="N1",
            endpoints=["http://n1.local:8545"],
            tags=["test"],
            addresses={"DAI": "0x00000000000000000000000000000000000000da"},
        )
    )
    registry.add_network(
        NetworkDescriptor(
            id="N2",
            endpoints=["http://n2.local:8545"],
            accounts={"deployer": 1, "treasury_owner": 2},
            tags=["prod"],
        )
    )
    return registry


@pytest.fixture
def ledger():
    return MemoryLedger()


@pytest.fixture
def orchestrator(networks, ledger, catalog, executor):
    return DeploymentOrchestrator(networks, ledger, ArtifactFactory(catalog, executor))
