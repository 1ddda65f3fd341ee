"""
Network configuration and connection models.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, List, Union

from pydantic import BaseModel, Field, field_validator

if TYPE_CHECKING:
    from chainstage.networks.rpc import RpcClient


class NetworkDescriptor(BaseModel):
    """Static connection configuration for one network."""

    id: str = Field(..., min_length=1, description="Network identifier")
    endpoints: List[str] = Field(..., description="RPC endpoint URLs, probed in order")
    accounts: Dict[str, Union[int, str]] = Field(
        default_factory=dict,
        description="Named accounts: index into eth_accounts or a literal address",
    )
    addresses: Dict[str, str] = Field(
        default_factory=dict,
        description="Pre-existing external addresses known on this network",
    )
    tags: List[str] = Field(default_factory=list, description="Default tags for runs")

    class Config:
        frozen = True

    @field_validator("endpoints")
    @classmethod
    def _require_endpoints(cls, value: List[str]) -> List[str]:
        if not value:
            raise ValueError("at least one endpoint is required")
        for url in value:
            if not url.startswith(("http://", "https://")):
                raise ValueError(f"endpoint must be an http(s) URL: {url}")
        return value


@dataclass
class NetworkConnection:
    """A live connection to the first responsive endpoint of a network."""

    network_id: str
    endpoint: str
    chain_id: int
    client: "RpcClient"
    accounts: Dict[str, str] = field(default_factory=dict)
    addresses: Dict[str, str] = field(default_factory=dict)

    @property
    def default_signer(self) -> str | None:
        """The deployer account, else the first named account."""
        if "deployer" in self.accounts:
            return self.accounts["deployer"]
        return next(iter(self.accounts.values()), None)
