"""Ledger scan strategies.

Three independent ways of finding a holder's documents, each returning a
deduplicated, holder-filtered candidate list:

    CacheVerificationStrategy  <- re-confirm cached documents by their publishing transaction
    IssuerScanStrategy         <- walk the history of every known issuer address
    ChannelScanStrategy        <- walk the recent history of the annotation channel itself

A strategy never raises. Throttling and failures are reported through the
flags of its StrategyResult, and whatever was found before the failure is kept.
"""

import asyncio
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import ClassVar

from chaindocs_core.cache.store import DocumentCacheStore
from chaindocs_core.documents.annotation import accept_annotation
from chaindocs_core.documents.document import LedgerDocument
from chaindocs_core.exceptions import ExhaustedRetriesError
from chaindocs_core.ledger._models import LedgerTransaction, SignatureInfo
from chaindocs_core.ledger.executor import LISTING_POLICY, TRANSACTION_POLICY, RetryingExecutor
from chaindocs_core.ledger.protocol import LedgerClient
from chaindocs_core.logging import get_chaindocs_logger
from chaindocs_core.settings import ScanLimits, settings

logger = get_chaindocs_logger(__name__)

Sleep = Callable[[float], Awaitable[None]]


@dataclass
class StrategyResult:
    """Candidates and outcome of one strategy run.

    Attributes:
        strategy: Name of the strategy that produced the result
        documents: Candidates in discovery order, unique by document id
        ledger_calls: Ledger requests attempted, retries included
        throttled: Some request was still rate limited after all retries
        failed: The strategy stopped early on a non rate-limit error
        error: Message of the error that stopped the strategy
    """

    strategy: str
    documents: list[LedgerDocument] = field(default_factory=list)
    ledger_calls: int = 0
    throttled: bool = False
    failed: bool = False
    error: str | None = None

    def add(self, document: LedgerDocument) -> bool:
        """Append a candidate unless its id was already found. First one wins."""
        if any(existing.document_id == document.document_id for existing in self.documents):
            return False
        self.documents.append(document)
        return True

    @property
    def impaired(self) -> bool:
        return self.throttled or self.failed

    @property
    def touched_ledger(self) -> bool:
        return self.ledger_calls > 0 or self.failed


class ScanStrategy(ABC):
    """Base class for ledger scan strategies.

    Subclasses implement ``_scan`` and append candidates to the result as they
    go; ``scan`` turns whatever escapes into result flags.
    """

    name: ClassVar[str]

    def __init__(
        self,
        ledger: LedgerClient,
        executor: RetryingExecutor,
        cache: DocumentCacheStore,
        *,
        limits: ScanLimits | None = None,
        app_tag: str | None = None,
        channel_id: str | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.ledger = ledger
        self.executor = executor
        self.cache = cache
        self.limits = limits or ScanLimits()
        self.app_tag = app_tag or settings.app_tag
        self.channel_id = channel_id or settings.memo_program_id
        self._sleep = sleep

    async def scan(self, holder: str) -> StrategyResult:
        """Run the strategy for one holder. Never raises, except on cancellation."""
        result = StrategyResult(self.name)
        try:
            await self._scan(holder, result)
        except ExhaustedRetriesError as e:
            result.throttled = True
            logger.warning(f"{self.name}: rate limited after {e.attempts} attempts, keeping {len(result.documents)} candidate(s)")
        except Exception as e:
            result.failed = True
            result.error = str(e)
            logger.warning(f"{self.name} failed: {e}")
        logger.debug(
            f"{self.name}: {len(result.documents)} candidate(s), {result.ledger_calls} ledger call(s), "
            f"throttled={result.throttled} failed={result.failed}"
        )
        return result

    @abstractmethod
    async def _scan(self, holder: str, result: StrategyResult) -> None:
        """Append candidates for ``holder`` to ``result``."""

    async def _pause(self, delay: float) -> None:
        if delay > 0:
            await self._sleep(delay)

    async def _fetch_transaction(self, signature: str, result: StrategyResult) -> LedgerTransaction | None:
        async def request() -> LedgerTransaction | None:
            result.ledger_calls += 1
            return await self.ledger.get_transaction(signature)

        return await self.executor.execute(request, TRANSACTION_POLICY)

    async def _list_signatures(self, address: str, limit: int, result: StrategyResult, *, pacing: float) -> list[SignatureInfo]:
        async def request() -> list[SignatureInfo]:
            result.ledger_calls += 1
            return await self.ledger.get_signatures_for_address(address, limit)

        await self._pause(pacing)
        return await self.executor.execute(request, LISTING_POLICY)

    def _extract(self, transaction: LedgerTransaction, holder: str, fallback_signature: str, result: StrategyResult) -> None:
        signature = transaction.signature or fallback_signature
        for instruction in transaction.message.instructions_for(self.channel_id):
            document = accept_annotation(instruction.data, holder, app_tag=self.app_tag, transaction_signature=signature)
            if document is not None:
                result.add(document)

    async def _scan_signatures(
        self,
        signatures: list[SignatureInfo],
        holder: str,
        result: StrategyResult,
        *,
        pause_every: int,
        pause: float,
        cooldown: float,
    ) -> None:
        """Fetch each transaction and collect accepted annotations.

        Lookup errors skip the transaction. An exhausted lookup marks the
        result throttled, cools down and moves on to the next signature.
        """
        for i, info in enumerate(signatures):
            if i > 0 and i % pause_every == 0:
                await self._pause(pause)
            try:
                transaction = await self._fetch_transaction(info.signature, result)
            except ExhaustedRetriesError:
                result.throttled = True
                logger.info(f"{self.name}: lookup of {info.signature} rate limited, cooling down {cooldown:.1f}s")
                await self._pause(cooldown)
                continue
            except Exception as e:
                logger.debug(f"{self.name}: skipping {info.signature}: {e}")
                continue
            if transaction is None or not transaction.succeeded:
                continue
            self._extract(transaction, holder, info.signature, result)


class CacheVerificationStrategy(ScanStrategy):
    """Re-confirm cached documents of the holder against their publishing transaction.

    Documents are kept unless the ledger positively reports a failed
    transaction; lookups that fail or find nothing keep the document.
    """

    name = "cache_verification"

    async def _scan(self, holder: str, result: StrategyResult) -> None:
        for i, document in enumerate(self.cache.documents_for_holder(holder)):
            if i > 0 and i % self.limits.verify_pause_every == 0:
                await self._pause(self.limits.request_delay)
            if not document.transaction_signature:
                result.add(document)
                continue
            try:
                transaction = await self._fetch_transaction(document.transaction_signature, result)
            except ExhaustedRetriesError:
                result.throttled = True
                result.add(document)
                continue
            except Exception as e:
                logger.debug(f"{self.name}: keeping {document.document_id} unverified: {e}")
                result.add(document)
                continue
            if transaction is None or transaction.succeeded:
                result.add(document)
            else:
                logger.info(f"{self.name}: dropping {document.document_id}, publishing transaction failed")


class IssuerScanStrategy(ScanStrategy):
    """Walk the recent history of every known issuer address."""

    name = "issuer_scan"

    async def _scan(self, holder: str, result: StrategyResult) -> None:
        limits = self.limits
        issuers = self.cache.issuers()[: limits.max_issuers]
        for i, issuer in enumerate(issuers):
            if i > 0:
                await self._pause(limits.request_delay)
            try:
                signatures = await self._list_signatures(
                    issuer, limits.max_txs_per_issuer, result, pacing=limits.request_delay
                )
                await self._scan_signatures(
                    signatures,
                    holder,
                    result,
                    pause_every=limits.issuer_pause_every,
                    pause=limits.request_delay,
                    cooldown=limits.throttled_cooldown,
                )
            except ExhaustedRetriesError:
                result.throttled = True
                logger.info(f"{self.name}: issuer {issuer} rate limited, cooling down {limits.throttled_cooldown:.1f}s")
                await self._pause(limits.throttled_cooldown)
            except Exception as e:
                result.failed = True
                result.error = str(e)
                logger.warning(f"{self.name}: history of issuer {issuer} unavailable: {e}")


class ChannelScanStrategy(ScanStrategy):
    """Walk the recent history of the annotation channel."""

    name = "channel_scan"

    async def _scan(self, holder: str, result: StrategyResult) -> None:
        limits = self.limits
        signatures = await self._list_signatures(
            self.channel_id, limits.channel_signature_limit, result, pacing=limits.channel_delay
        )
        await self._scan_signatures(
            signatures[: limits.channel_process_limit],
            holder,
            result,
            pause_every=limits.channel_pause_every,
            pause=limits.channel_delay,
            cooldown=limits.throttled_cooldown,
        )


def default_strategies(
    ledger: LedgerClient,
    executor: RetryingExecutor,
    cache: DocumentCacheStore,
    *,
    limits: ScanLimits | None = None,
    app_tag: str | None = None,
    channel_id: str | None = None,
    sleep: Sleep = asyncio.sleep,
) -> list[ScanStrategy]:
    """The three strategies in reconciliation order."""
    return [
        strategy_cls(ledger, executor, cache, limits=limits, app_tag=app_tag, channel_id=channel_id, sleep=sleep)
        for strategy_cls in (CacheVerificationStrategy, IssuerScanStrategy, ChannelScanStrategy)
    ]


__all__ = [
    "CacheVerificationStrategy",
    "ChannelScanStrategy",
    "IssuerScanStrategy",
    "ScanStrategy",
    "StrategyResult",
    "default_strategies",
]
