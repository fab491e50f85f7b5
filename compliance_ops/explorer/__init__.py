"""
Block-explorer integration with client-side rate governing.

This package provides:
- A FIFO dispatcher that spaces calls to respect a per-second ceiling
- Table-driven classification of explorer replies
- A closed error taxonomy (rate limited, remote, transport, cancelled)
"""

from __future__ import annotations

from .classification import (
    EMPTY_RESULT_MESSAGES,
    RATE_LIMIT_PATTERNS,
    classify_response,
    unwrap,
)
from .dispatcher import Adapter, RateGovernedDispatcher
from .exceptions import (
    DispatchCancelledError,
    ExplorerError,
    RateLimitedError,
    RemoteError,
    TransportError,
)
from .models import (
    ChainInfo,
    ClassifiedResponse,
    DispatcherConfig,
    OutcomeKind,
    PendingCall,
    SupportedChain,
)

__all__ = [
    "EMPTY_RESULT_MESSAGES",
    "RATE_LIMIT_PATTERNS",
    "Adapter",
    "ChainInfo",
    "ClassifiedResponse",
    "DispatchCancelledError",
    "DispatcherConfig",
    "ExplorerError",
    "OutcomeKind",
    "PendingCall",
    "RateGovernedDispatcher",
    "RateLimitedError",
    "RemoteError",
    "SupportedChain",
    "TransportError",
    "classify_response",
    "unwrap",
]
