"""Document discovery: scan strategies, reconciliation and the orchestrator."""

from .orchestrator import DiscoveryResult, DocumentDiscovery, PollResult, ScanState
from .reconciler import DocumentReconciler, merge_documents
from .strategies import (
    CacheVerificationStrategy,
    ChannelScanStrategy,
    IssuerScanStrategy,
    ScanStrategy,
    StrategyResult,
    default_strategies,
)

__all__ = [
    "CacheVerificationStrategy",
    "ChannelScanStrategy",
    "DiscoveryResult",
    "DocumentDiscovery",
    "DocumentReconciler",
    "IssuerScanStrategy",
    "PollResult",
    "ScanState",
    "ScanStrategy",
    "StrategyResult",
    "default_strategies",
    "merge_documents",
]
