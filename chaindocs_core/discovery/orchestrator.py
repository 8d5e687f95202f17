"""Discovery orchestrator: the entry point holders talk to.

``get_cached`` answers instantly from the cache. ``discover`` runs the three
scan strategies concurrently, reconciles their candidates with the cache and
writes the merged view back. ``poll_once`` and ``poll_forever`` report
documents that appeared since the previous call.
"""

import asyncio
import inspect
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from enum import StrEnum

from chaindocs_core.cache.store import DocumentCacheStore
from chaindocs_core.discovery.reconciler import DocumentReconciler
from chaindocs_core.discovery.strategies import ScanStrategy, StrategyResult, default_strategies
from chaindocs_core.documents.document import LedgerDocument, sort_newest_first
from chaindocs_core.ledger.executor import RetryingExecutor
from chaindocs_core.ledger.protocol import LedgerClient
from chaindocs_core.ledger.throttle import RequestThrottle
from chaindocs_core.logging import get_chaindocs_logger
from chaindocs_core.settings import ScanLimits, Settings
from chaindocs_core.settings import settings as default_settings

logger = get_chaindocs_logger(__name__)

NewDocumentsCallback = Callable[[list[LedgerDocument]], Awaitable[None] | None]


class ScanState(StrEnum):
    """Discovery status of one holder."""

    IDLE = "idle"
    SCANNING = "scanning"
    RECONCILED = "reconciled"
    PARTIAL = "partial"
    DEGRADED = "degraded"


@dataclass(frozen=True)
class DiscoveryResult:
    """Outcome of one discover call.

    Attributes:
        holder: Address the documents were discovered for
        documents: Claim-annotated documents, newest first
        status: RECONCILED, PARTIAL or DEGRADED
        strategies: Per-strategy results in reconciliation order
    """

    holder: str
    documents: tuple[LedgerDocument, ...]
    status: ScanState
    strategies: tuple[StrategyResult, ...] = ()

    @property
    def document_ids(self) -> list[str]:
        return [doc.document_id for doc in self.documents]

    @property
    def is_degraded(self) -> bool:
        return self.status == ScanState.DEGRADED

    @property
    def found_nothing(self) -> bool:
        return not self.documents


@dataclass(frozen=True)
class PollResult:
    """A discovery plus the unclaimed documents not seen by the previous call."""

    discovery: DiscoveryResult
    new_documents: tuple[LedgerDocument, ...] = field(default=())

    @property
    def has_new(self) -> bool:
        return bool(self.new_documents)


def classify(results: Sequence[StrategyResult], local_ids: set[str], merged_ids: set[str]) -> ScanState:
    """Derive the discovery status from strategy outcomes.

    DEGRADED means every strategy that reached the ledger was impaired and
    nothing beyond the cache was found.
    """
    if not any(result.impaired for result in results):
        return ScanState.RECONCILED
    touched = [result for result in results if result.touched_ledger]
    if all(result.impaired for result in touched) and not (merged_ids - local_ids):
        return ScanState.DEGRADED
    return ScanState.PARTIAL


class DocumentDiscovery:
    """Reconstruct a holder's document set from the cache and the ledger.

    Example:
        >>> async with SolanaRpcClient() as ledger:
        ...     discovery = DocumentDiscovery(ledger, DocumentCacheStore())
        ...     result = await discovery.discover(holder)
    """

    def __init__(
        self,
        ledger: LedgerClient,
        cache: DocumentCacheStore | None = None,
        *,
        executor: RetryingExecutor | None = None,
        strategies: Sequence[ScanStrategy] | None = None,
        limits: ScanLimits | None = None,
        settings: Settings | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.settings = settings or default_settings
        self.ledger = ledger
        self.cache = cache if cache is not None else DocumentCacheStore(key_prefix=self.settings.cache_key_prefix)
        self.executor = executor or RetryingExecutor(
            RequestThrottle(self.settings.throttle_max_requests, self.settings.throttle_window),
            sleep=sleep,
        )
        self.strategies: list[ScanStrategy] = (
            list(strategies)
            if strategies is not None
            else default_strategies(
                ledger,
                self.executor,
                self.cache,
                limits=limits,
                app_tag=self.settings.app_tag,
                channel_id=self.settings.memo_program_id,
                sleep=sleep,
            )
        )
        self.reconciler = DocumentReconciler(self.cache)
        self._sleep = sleep
        self._states: dict[str, ScanState] = {}
        self._known_ids: dict[str, set[str]] = {}

    def state(self, holder: str) -> ScanState:
        return self._states.get(holder, ScanState.IDLE)

    def get_cached(self, holder: str) -> list[LedgerDocument]:
        """Cached documents of the holder, claim-annotated, newest first. No ledger access."""
        documents = self.cache.cached_for_holder(holder)
        self._known_ids[holder] = {doc.document_id for doc in documents}
        return documents

    async def _run_strategies(self, holder: str) -> list[StrategyResult]:
        outcomes = await asyncio.gather(*(strategy.scan(holder) for strategy in self.strategies), return_exceptions=True)
        results: list[StrategyResult] = []
        for strategy, outcome in zip(self.strategies, outcomes, strict=True):
            if isinstance(outcome, StrategyResult):
                results.append(outcome)
            elif isinstance(outcome, Exception):
                logger.warning(f"{strategy.name} raised unexpectedly: {outcome}")
                results.append(StrategyResult(strategy.name, failed=True, error=str(outcome)))
            else:
                raise outcome
        return results

    async def discover(self, holder: str) -> DiscoveryResult:
        """Scan the ledger for the holder's documents and persist the merged view."""
        self._states[holder] = ScanState.SCANNING
        local_docs = self.cache.documents_for_holder(holder)
        try:
            results = await self._run_strategies(holder)
        except BaseException:
            self._states[holder] = ScanState.IDLE
            raise

        documents = self.reconciler.reconcile(holder, local_docs, results)
        merged_ids = {doc.document_id for doc in documents}
        status = classify(results, {doc.document_id for doc in local_docs}, merged_ids)
        self._states[holder] = status
        self._known_ids[holder] = merged_ids

        log = logger.warning if status == ScanState.DEGRADED else logger.info
        log(f"Discovery for {holder}: {len(documents)} document(s), status {status}")
        return DiscoveryResult(holder=holder, documents=tuple(documents), status=status, strategies=tuple(results))

    async def poll_once(self, holder: str) -> PollResult:
        """Discover, then report unclaimed documents the previous call did not return."""
        previous = self._known_ids.get(holder)
        if previous is None:
            previous = {doc.document_id for doc in self.cache.documents_for_holder(holder)}
        discovery = await self.discover(holder)
        new_documents = sort_newest_first(
            doc for doc in discovery.documents if doc.document_id not in previous and not doc.claimed
        )
        if new_documents:
            logger.info(f"{len(new_documents)} new document(s) for {holder}")
        return PollResult(discovery=discovery, new_documents=tuple(new_documents))

    async def poll_forever(
        self,
        holder: str,
        on_new: NewDocumentsCallback,
        *,
        interval: float | None = None,
        max_polls: int | None = None,
    ) -> None:
        """Poll until cancelled (or ``max_polls`` rounds), calling ``on_new`` with new documents."""
        interval = self.settings.poll_interval if interval is None else interval
        polls = 0
        while max_polls is None or polls < max_polls:
            if polls:
                await self._sleep(interval)
            polls += 1
            poll = await self.poll_once(holder)
            if poll.new_documents:
                outcome = on_new(list(poll.new_documents))
                if inspect.isawaitable(outcome):
                    await outcome


__all__ = [
    "DiscoveryResult",
    "DocumentDiscovery",
    "NewDocumentsCallback",
    "PollResult",
    "ScanState",
    "classify",
]
