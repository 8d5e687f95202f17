"""Ledger access: protocols, JSON-RPC client, throttle and retrying executor."""

from ._models import (
    CompiledInstruction,
    LedgerInstruction,
    LedgerTransaction,
    SignatureInfo,
    TransactionMessage,
)
from .executor import (
    LISTING_POLICY,
    TRANSACTION_POLICY,
    RetryingExecutor,
    RetryPolicy,
    is_rate_limited,
    retry_after_hint,
)
from .protocol import LedgerClient, Signer
from .rpc import SolanaRpcClient
from .throttle import RequestThrottle

__all__ = [
    "LISTING_POLICY",
    "TRANSACTION_POLICY",
    "CompiledInstruction",
    "LedgerClient",
    "LedgerInstruction",
    "LedgerTransaction",
    "RequestThrottle",
    "RetryPolicy",
    "RetryingExecutor",
    "SignatureInfo",
    "Signer",
    "SolanaRpcClient",
    "TransactionMessage",
    "is_rate_limited",
    "retry_after_hint",
]
