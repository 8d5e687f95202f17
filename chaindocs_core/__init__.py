"""chaindocs-core - Document discovery for ledger-published verifiable documents.

Institutions issue documents by writing a JSON annotation to a public,
rate-limited ledger. chaindocs-core reconstructs a holder's document set from
that ledger: it merges a local cache with three scan strategies, deduplicates
their candidates and keeps whatever it found when the endpoint throttles.

Core Capabilities:
    - **Discovery**: Cache verification, issuer history scan and annotation channel scan
    - **Request Pacing**: Sliding-window throttle with rate-limit aware retries
    - **Caching**: Documents, issuer registry and claimed set with atomic upserts
    - **Issuance**: Publish, claim, verify and share documents through a Signer

Quick Start:
    >>> from chaindocs_core import DocumentDiscovery, SolanaRpcClient
    >>>
    >>> async with SolanaRpcClient() as ledger:
    ...     discovery = DocumentDiscovery(ledger)
    ...     cached = discovery.get_cached(holder)
    ...     result = await discovery.discover(holder)
    ...     print(result.status, len(result.documents))

Environment Variables:
    - CHAINDOCS_RPC_URL: Ledger JSON-RPC endpoint (defaults to Solana devnet)
    - CHAINDOCS_CACHE_DIR: Local cache directory (in-memory when unset)
    - CHAINDOCS_LOG_LEVEL: Log level for chaindocs loggers
"""

from .cache import (
    DocumentCacheStore,
    KeyValueStore,
    LocalKeyValueStore,
    MemoryKeyValueStore,
    create_document_cache,
    create_key_value_store,
)
from .discovery import (
    CacheVerificationStrategy,
    ChannelScanStrategy,
    DiscoveryResult,
    DocumentDiscovery,
    DocumentReconciler,
    IssuerScanStrategy,
    PollResult,
    ScanState,
    ScanStrategy,
    StrategyResult,
)
from .documents import (
    AnnotationPayload,
    ClaimPayload,
    DocumentDraft,
    LedgerDocument,
    accept_annotation,
    decode_annotation,
    encode_annotation,
    generate_credential_hash,
)
from .exceptions import (
    AnnotationDecodeError,
    ChaindocsError,
    ClaimError,
    DocumentImportError,
    DocumentValidationError,
    ExhaustedRetriesError,
    IssuanceError,
    LedgerError,
    LedgerRequestError,
    ThrottledError,
)
from .issuance import (
    ClaimReceipt,
    ImportResult,
    IssuanceReceipt,
    IssuanceService,
    ShareableCredentials,
    ShareableDocument,
    VerificationResult,
)
from .ledger import (
    LedgerClient,
    RequestThrottle,
    RetryingExecutor,
    RetryPolicy,
    Signer,
    SolanaRpcClient,
)
from .logging import LoggingConfig, get_chaindocs_logger, setup_logging
from .settings import ScanLimits, Settings, settings

__version__ = "0.1.0"

__all__ = [
    "AnnotationDecodeError",
    "AnnotationPayload",
    "CacheVerificationStrategy",
    "ChaindocsError",
    "ChannelScanStrategy",
    "ClaimError",
    "ClaimPayload",
    "ClaimReceipt",
    "DiscoveryResult",
    "DocumentCacheStore",
    "DocumentDiscovery",
    "DocumentDraft",
    "DocumentImportError",
    "DocumentReconciler",
    "DocumentValidationError",
    "ExhaustedRetriesError",
    "ImportResult",
    "IssuanceError",
    "IssuanceReceipt",
    "IssuanceService",
    "IssuerScanStrategy",
    "KeyValueStore",
    "LedgerClient",
    "LedgerDocument",
    "LedgerError",
    "LedgerRequestError",
    "LocalKeyValueStore",
    "LoggingConfig",
    "MemoryKeyValueStore",
    "PollResult",
    "RequestThrottle",
    "RetryPolicy",
    "RetryingExecutor",
    "ScanLimits",
    "ScanState",
    "ScanStrategy",
    "Settings",
    "ShareableCredentials",
    "ShareableDocument",
    "Signer",
    "SolanaRpcClient",
    "StrategyResult",
    "ThrottledError",
    "VerificationResult",
    "accept_annotation",
    "create_document_cache",
    "create_key_value_store",
    "decode_annotation",
    "encode_annotation",
    "generate_credential_hash",
    "get_chaindocs_logger",
    "settings",
    "setup_logging",
]
