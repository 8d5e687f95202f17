"""Typed document cache over a key-value blob store.

Three tables live behind one interface:

    {prefix}_documents        <- JSON list of document records, all holders
    {prefix}_issuers          <- JSON list of issuer addresses (grows monotonically)
    {prefix}_claimed          <- JSON list of claimed document ids
    {prefix}_nft_{id}         <- mock mint recorded at claim time
    {prefix}_claim_tx_{id}    <- claim transaction signature

Every read-modify-write cycle runs under one lock, so concurrent upserts from
different scan paths are last-writer-wins per document id and never drop
another holder's records.
"""

import json
import threading
from collections.abc import Iterable
from typing import Any

from pydantic import ValidationError

from chaindocs_core.cache.memory import MemoryKeyValueStore
from chaindocs_core.cache.protocol import KeyValueStore
from chaindocs_core.documents.document import LedgerDocument, sort_newest_first
from chaindocs_core.logging import get_chaindocs_logger
from chaindocs_core.settings import settings

logger = get_chaindocs_logger(__name__)


class DocumentCacheStore:
    """Documents, issuer registry and claimed set with atomic upserts.

    Reads never touch the ledger and never block on network I/O, so the
    orchestrator can serve ``get_cached`` synchronously.
    """

    def __init__(self, backend: KeyValueStore | None = None, *, key_prefix: str | None = None) -> None:
        self._backend = backend if backend is not None else MemoryKeyValueStore()
        self._prefix = key_prefix or settings.cache_key_prefix
        self._lock = threading.RLock()

    @property
    def backend(self) -> KeyValueStore:
        return self._backend

    @property
    def documents_key(self) -> str:
        return f"{self._prefix}_documents"

    @property
    def issuers_key(self) -> str:
        return f"{self._prefix}_issuers"

    @property
    def claimed_key(self) -> str:
        return f"{self._prefix}_claimed"

    def nft_key(self, document_id: str) -> str:
        return f"{self._prefix}_nft_{document_id}"

    def claim_tx_key(self, document_id: str) -> str:
        return f"{self._prefix}_claim_tx_{document_id}"

    # --- raw table access ---

    def _read_list(self, key: str) -> list[Any]:
        raw = self._backend.get(key)
        if raw is None:
            return []
        try:
            value = json.loads(raw)
        except ValueError:
            logger.warning(f"Ignoring unreadable cache entry {key}")
            return []
        if not isinstance(value, list):
            logger.warning(f"Ignoring cache entry {key}: expected a list, got {type(value).__name__}")
            return []
        return value

    def _write_list(self, key: str, values: list[Any]) -> None:
        self._backend.set(key, json.dumps(values, separators=(",", ":")))

    # --- documents ---

    def load_documents(self) -> list[LedgerDocument]:
        """All cached documents, every holder, in insertion order."""
        documents: list[LedgerDocument] = []
        for record in self._read_list(self.documents_key):
            if not isinstance(record, dict):
                continue
            try:
                documents.append(LedgerDocument.model_validate(record))
            except ValidationError:
                logger.debug(f"Skipping invalid cached record {record.get('documentId')!r}")
        return documents

    def documents_for_holder(self, holder: str) -> list[LedgerDocument]:
        return [doc for doc in self.load_documents() if doc.holder == holder]

    def documents_by_issuer(self, issuer: str) -> list[LedgerDocument]:
        return [doc for doc in self.load_documents() if doc.issuer == issuer]

    def find_document(self, document_id: str) -> LedgerDocument | None:
        for doc in self.load_documents():
            if doc.document_id == document_id:
                return doc
        return None

    def upsert_documents(self, documents: Iterable[LedgerDocument]) -> int:
        """Insert or update records by document id and register their issuers.

        Existing records are extended, not replaced, so keys written by other
        clients survive. Returns the number of newly inserted records.
        """
        documents = list(documents)
        if not documents:
            return 0
        with self._lock:
            records = self._read_list(self.documents_key)
            index = {
                record.get("documentId"): position
                for position, record in enumerate(records)
                if isinstance(record, dict) and record.get("documentId")
            }
            inserted = 0
            for doc in documents:
                record = doc.to_record()
                position = index.get(doc.document_id)
                if position is None:
                    index[doc.document_id] = len(records)
                    records.append(record)
                    inserted += 1
                else:
                    records[position] = {**records[position], **record}
            self._write_list(self.documents_key, records)
            self.register_issuers(doc.issuer for doc in documents)
        logger.debug(f"Upserted {len(documents)} document(s), {inserted} new")
        return inserted

    # --- issuer registry ---

    def issuers(self) -> list[str]:
        """Known issuer addresses, first-seen order, without duplicates."""
        seen: dict[str, None] = {}
        for issuer in self._read_list(self.issuers_key):
            if isinstance(issuer, str) and issuer:
                seen.setdefault(issuer, None)
        return list(seen)

    def register_issuers(self, issuers: Iterable[str]) -> int:
        """Add issuers to the registry. Returns how many were new."""
        with self._lock:
            current = self.issuers()
            known = set(current)
            added = [issuer for issuer in dict.fromkeys(issuers) if issuer and issuer not in known]
            if added:
                self._write_list(self.issuers_key, current + added)
        return len(added)

    def register_issuer(self, issuer: str) -> bool:
        return self.register_issuers([issuer]) == 1

    # --- claims ---

    def claimed_ids(self) -> set[str]:
        return {value for value in self._read_list(self.claimed_key) if isinstance(value, str)}

    def is_claimed(self, document_id: str) -> bool:
        return document_id in self.claimed_ids()

    def mark_claimed(self, document_id: str, *, nft_mint: str | None = None, claim_tx: str | None = None) -> bool:
        """Flip a document to claimed. Returns False when it already was.

        The claimed set only ever grows; an existing mint or claim transaction
        is never overwritten.
        """
        with self._lock:
            claimed = [value for value in self._read_list(self.claimed_key) if isinstance(value, str)]
            if document_id in claimed:
                return False
            self._write_list(self.claimed_key, claimed + [document_id])
            if nft_mint:
                self._backend.set(self.nft_key(document_id), nft_mint)
            if claim_tx:
                self._backend.set(self.claim_tx_key(document_id), claim_tx)
        return True

    def nft_mint(self, document_id: str) -> str | None:
        return self._backend.get(self.nft_key(document_id)) or None

    def claim_tx(self, document_id: str) -> str | None:
        return self._backend.get(self.claim_tx_key(document_id)) or None

    def annotate(self, documents: Iterable[LedgerDocument]) -> list[LedgerDocument]:
        """Attach claim state from the claimed table; scan data never decides it."""
        claimed = self.claimed_ids()
        return [
            doc.model_copy(
                update={
                    "claimed": doc.document_id in claimed,
                    "nft_mint": self.nft_mint(doc.document_id) if doc.document_id in claimed else None,
                }
            )
            for doc in documents
        ]

    def cached_for_holder(self, holder: str) -> list[LedgerDocument]:
        """Claim-annotated documents of one holder, newest first."""
        return sort_newest_first(self.annotate(self.documents_for_holder(holder)))
