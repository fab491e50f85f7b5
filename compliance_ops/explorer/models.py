"""
Dispatcher and explorer dataclasses.
"""

from __future__ import annotations

import asyncio
import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

PLACEHOLDER_API_KEY = "YourApiKeyToken"


class OutcomeKind(Enum):
    """Closed set of classified remote outcomes."""
    SUCCESS = "success"
    EMPTY = "empty"                # benign "no results" reply
    RATE_LIMITED = "rate_limited"
    REMOTE_ERROR = "remote_error"


class SupportedChain(Enum):
    """Chains reachable through the Etherscan v2 multichain endpoint."""
    ETHEREUM = "1"
    GOERLI = "5"
    SEPOLIA = "11155111"
    POLYGON = "137"
    MUMBAI = "80001"
    BSC = "56"
    BSC_TESTNET = "97"
    ARBITRUM = "42161"
    OPTIMISM = "10"


@dataclass(frozen=True)
class ChainInfo:
    chain_id: str
    chain_name: str
    is_testnet: bool


CHAIN_INFO: dict[SupportedChain, tuple[str, bool]] = {
    SupportedChain.ETHEREUM: ("Ethereum Mainnet", False),
    SupportedChain.GOERLI: ("Goerli Testnet", True),
    SupportedChain.SEPOLIA: ("Sepolia Testnet", True),
    SupportedChain.POLYGON: ("Polygon Mainnet", False),
    SupportedChain.MUMBAI: ("Mumbai Testnet", True),
    SupportedChain.BSC: ("BSC Mainnet", False),
    SupportedChain.BSC_TESTNET: ("BSC Testnet", True),
    SupportedChain.ARBITRUM: ("Arbitrum One", False),
    SupportedChain.OPTIMISM: ("Optimism", False),
}


@dataclass(frozen=True)
class DispatcherConfig:
    """Configuration for a rate-governed dispatcher."""
    rate_per_second: float = 5.0
    api: str = "etherscan"

    def __post_init__(self) -> None:
        if self.rate_per_second <= 0:
            raise ValueError("rate_per_second must be positive")

    @property
    def min_interval_ms(self) -> int:
        """Minimum spacing between dispatch starts, in milliseconds."""
        return math.ceil(1000 / self.rate_per_second)

    @property
    def min_interval(self) -> float:
        """Minimum spacing between dispatch starts, in seconds."""
        return self.min_interval_ms / 1000


@dataclass
class PendingCall:
    """A queued remote call and the future its caller awaits."""
    parameters: Mapping[str, str]
    future: asyncio.Future[Any]
    sequence: int = 0


@dataclass
class DispatcherCounters:
    """Running totals reported alongside queue statistics."""
    dispatched: int = 0
    succeeded: int = 0
    failed: int = 0
    rate_limited: int = 0
    cancelled: int = 0


@dataclass(frozen=True)
class ClassifiedResponse:
    """Result of classifying one decoded explorer reply."""
    kind: OutcomeKind
    result: Any = None
    message: str = ""
    raw: dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.kind in (OutcomeKind.SUCCESS, OutcomeKind.EMPTY)


class ExplorerEnvelope(BaseModel):
    """Loose shape of an Etherscan reply.

    Regular modules answer ``{status, message, result}``; the ``proxy``
    module answers JSON-RPC ``{jsonrpc, id, result | error}``.
    """
    model_config = ConfigDict(extra="allow")

    status: str | int | None = None
    message: str | None = None
    result: Any = None
    jsonrpc: str | None = None
    error: dict[str, Any] | None = None

    @model_validator(mode="after")
    def check_shape(self) -> ExplorerEnvelope:
        if self.status is not None:
            return self
        if self.jsonrpc is not None and (
            "result" in self.model_fields_set or self.error is not None
        ):
            return self
        raise ValueError("reply has neither status nor a JSON-RPC result or error")


class TronEventRecord(BaseModel):
    """One row of the TRON events endpoint."""
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    tx_hash: str
    direction: Literal["IN", "OUT", "MOVE"]
    amount: float = 0.0
    ts: int
    link: str = ""
    token: str | None = None
    from_address: str | None = Field(default=None, alias="from")
    to_address: str | None = Field(default=None, alias="to")
