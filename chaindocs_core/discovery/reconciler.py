"""Merge cached documents with strategy candidates into one holder view."""

from collections.abc import Iterable, Sequence

from chaindocs_core.cache.store import DocumentCacheStore
from chaindocs_core.discovery.strategies import StrategyResult
from chaindocs_core.documents.document import LedgerDocument, sort_newest_first
from chaindocs_core.logging import get_chaindocs_logger

logger = get_chaindocs_logger(__name__)

_DESCRIPTIVE_FIELDS = (
    "issuer",
    "holder",
    "document_type",
    "title",
    "issue_date",
    "credential_hash",
    "transaction_signature",
)

_UNCLAIMED = {"claimed": False, "nft_mint": None}


def merge_documents(existing: LedgerDocument, candidate: LedgerDocument) -> LedgerDocument:
    """Extend ``existing`` with the non-empty fields of ``candidate``.

    Metadata is merged key by key with the candidate winning. Claim state is
    never taken from the candidate.
    """
    update = {name: getattr(candidate, name) for name in _DESCRIPTIVE_FIELDS if getattr(candidate, name)}
    if candidate.metadata:
        update["metadata"] = {**existing.metadata, **candidate.metadata}
    return existing.model_copy(update=update) if update else existing


class DocumentReconciler:
    """Deduplicate, persist and claim-annotate a holder's documents."""

    def __init__(self, cache: DocumentCacheStore) -> None:
        self.cache = cache

    def reconcile(
        self,
        holder: str,
        local_docs: Iterable[LedgerDocument],
        scan_results: Sequence[StrategyResult | Iterable[LedgerDocument]],
    ) -> list[LedgerDocument]:
        """Merge candidates into the local view, write back, return newest first.

        ``scan_results`` is processed in order; later strategies extend what
        earlier ones found. Candidates for other holders are dropped.
        """
        merged: dict[str, LedgerDocument] = {}
        for doc in local_docs:
            if doc.holder == holder:
                merged.setdefault(doc.document_id, doc.model_copy(update=_UNCLAIMED))

        dropped = 0
        for scan in scan_results:
            candidates = scan.documents if isinstance(scan, StrategyResult) else scan
            for candidate in candidates:
                if candidate.holder != holder:
                    dropped += 1
                    continue
                existing = merged.get(candidate.document_id)
                if existing is None:
                    merged[candidate.document_id] = candidate.model_copy(update=_UNCLAIMED)
                else:
                    merged[candidate.document_id] = merge_documents(existing, candidate)
        if dropped:
            logger.debug(f"Dropped {dropped} candidate(s) addressed to other holders")

        documents = list(merged.values())
        self.cache.upsert_documents(documents)
        return sort_newest_first(self.cache.annotate(documents))


__all__ = ["DocumentReconciler", "merge_documents"]
