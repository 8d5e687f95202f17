"""Issuer and holder write flows: issue, claim, verify and share documents.

Discovery only reads the ledger. Publishing and claiming write a memo
annotation through a Signer, wait for confirmation and record the outcome in
the document cache. These are the calls a UI makes directly, so they return
result objects with a user-facing error message instead of raising.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from chaindocs_core.cache.store import DocumentCacheStore
from chaindocs_core.documents.annotation import AnnotationPayload, ClaimPayload, encode_annotation
from chaindocs_core.documents.credentials import credentials_match, generate_credential_hash, generate_mock_address
from chaindocs_core.documents.document import DocumentDraft, LedgerDocument, format_issue_date
from chaindocs_core.documents.sharing import (
    encode_shareable_code,
    import_url,
    parse_shareable_document,
    shareable_payload,
    verification_url,
)
from chaindocs_core.exceptions import ClaimError, DocumentImportError, IssuanceError
from chaindocs_core.ledger._models import LedgerInstruction
from chaindocs_core.ledger.executor import TRANSACTION_POLICY, RetryingExecutor
from chaindocs_core.ledger.protocol import LedgerClient, Signer
from chaindocs_core.logging import get_chaindocs_logger
from chaindocs_core.settings import Settings
from chaindocs_core.settings import settings as default_settings

logger = get_chaindocs_logger(__name__)

REJECTED_MESSAGE = "Transaction was rejected. Please try again and approve the transaction."
INSUFFICIENT_FUNDS_MESSAGE = "Insufficient devnet SOL. Please get devnet SOL from a faucet."
NETWORK_MESSAGE = "Network error. Please check your connection and try again."


def friendly_error(error: BaseException, *, include_network: bool = True) -> str:
    """Map wallet and RPC errors to a message fit for end users."""
    message = str(error) or type(error).__name__
    if "User rejected" in message:
        return REJECTED_MESSAGE
    if "insufficient funds" in message or "0 SOL" in message:
        return INSUFFICIENT_FUNDS_MESSAGE
    if include_network and ("network" in message or "connection" in message):
        return NETWORK_MESSAGE
    return message


@dataclass(frozen=True)
class IssuanceReceipt:
    """Outcome of publishing a document."""

    success: bool
    document_id: str | None = None
    transaction_signature: str | None = None
    document: LedgerDocument | None = None
    error: str | None = None


@dataclass(frozen=True)
class ClaimReceipt:
    """Outcome of claiming a document."""

    success: bool
    transaction_signature: str | None = None
    nft_mint: str | None = None
    error: str | None = None


@dataclass(frozen=True)
class VerificationResult:
    """Outcome of checking a credential token against a document."""

    valid: bool
    document: LedgerDocument | None = None
    error: str | None = None


@dataclass(frozen=True)
class ImportResult:
    """Outcome of importing shareable document data."""

    success: bool
    document: LedgerDocument | None = None
    error: str | None = None


@dataclass(frozen=True)
class ShareableCredentials:
    document_id: str
    credential_hash: str
    verification_url: str


@dataclass(frozen=True)
class ShareableDocument:
    """Full record for manual transfer, plus its base64 code and import link."""

    payload: dict[str, Any] = field(default_factory=dict)
    shareable_code: str = ""
    shareable_url: str = ""


def verify_document(cache: DocumentCacheStore, credential_hash: str, document_id: str) -> VerificationResult:
    """Compare a presented credential token with the cached record."""
    document = cache.find_document(document_id)
    if document is None:
        return VerificationResult(valid=False, error="Document not found")
    if not credentials_match(document.credential_hash, credential_hash):
        return VerificationResult(valid=False, error="Invalid credentials")
    return VerificationResult(valid=True, document=document)


def import_shareable_document(cache: DocumentCacheStore, data: str | Mapping[str, Any]) -> ImportResult:
    """Import a shared record into the cache and register its issuer."""
    try:
        document = parse_shareable_document(data)
    except DocumentImportError as e:
        logger.info(f"Rejected shareable document: {e}")
        return ImportResult(success=False, error=str(e))
    inserted = cache.upsert_documents([document])
    logger.info(f"{'Added' if inserted else 'Updated'} document {document.document_id} from shareable data")
    return ImportResult(success=True, document=document)


class IssuanceService:
    """Publish, claim, verify and share documents against one ledger and cache."""

    def __init__(
        self,
        ledger: LedgerClient,
        cache: DocumentCacheStore,
        *,
        executor: RetryingExecutor | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.ledger = ledger
        self.cache = cache
        self.executor = executor or RetryingExecutor()
        self.settings = settings or default_settings

    async def _send_and_confirm(self, signer: Signer, data: bytes) -> str:
        instruction = LedgerInstruction(program_id=self.settings.memo_program_id, data=data)
        signature = await signer.send_transaction([instruction])
        confirmed = await self.executor.execute(lambda: self.ledger.confirm_transaction(signature), TRANSACTION_POLICY)
        if not confirmed:
            raise IssuanceError(f"Transaction {signature} was not confirmed")
        return signature

    async def issue_document(
        self,
        signer: Signer,
        holder: str,
        draft: DocumentDraft,
        *,
        now: datetime | None = None,
    ) -> IssuanceReceipt:
        """Publish ``draft`` to ``holder`` and record it in the cache.

        The annotation carries the document without its metadata; the full
        record, metadata included, is kept in the cache and in shareable data.
        """
        now = now or datetime.now(UTC)
        try:
            issuer = signer.public_key
            document = LedgerDocument(
                document_id=generate_mock_address(),
                issuer=issuer,
                holder=holder,
                document_type=draft.document_type,
                title=draft.title,
                issue_date=format_issue_date(now),
                credential_hash=generate_credential_hash(draft, holder, now),
                metadata=dict(draft.metadata),
            )
            payload = AnnotationPayload(
                app=self.settings.app_tag,
                document_id=document.document_id,
                issuer=issuer,
                holder=holder,
                document_type=document.document_type,
                title=document.title,
                issued_at=document.issue_date,
                credential_hash=document.credential_hash,
            )
            signature = await self._send_and_confirm(signer, encode_annotation(payload))
        except Exception as e:
            logger.warning(f"Issuing document to {holder} failed: {e}")
            return IssuanceReceipt(success=False, error=friendly_error(e))

        document = document.model_copy(update={"transaction_signature": signature})
        self.cache.upsert_documents([document])
        logger.info(f"Issued document {document.document_id} to {holder} ({signature})")
        return IssuanceReceipt(
            success=True,
            document_id=document.document_id,
            transaction_signature=signature,
            document=document,
        )

    async def claim_document(
        self,
        signer: Signer,
        document: LedgerDocument,
        *,
        now: datetime | None = None,
    ) -> ClaimReceipt:
        """Write a claim annotation and mark the document claimed with a mock mint."""
        try:
            if document.holder != signer.public_key:
                raise ClaimError("Only the holder can claim this document")
            if self.cache.is_claimed(document.document_id):
                raise ClaimError("Document already claimed")
            payload = ClaimPayload.for_document(
                document.document_id,
                signer.public_key,
                now or datetime.now(UTC),
                app=self.settings.app_tag,
            )
            signature = await self._send_and_confirm(signer, encode_annotation(payload))
        except Exception as e:
            logger.warning(f"Claiming document {document.document_id} failed: {e}")
            return ClaimReceipt(success=False, error=friendly_error(e, include_network=False))

        nft_mint = generate_mock_address()
        if not self.cache.mark_claimed(document.document_id, nft_mint=nft_mint, claim_tx=signature):
            nft_mint = self.cache.nft_mint(document.document_id)
        logger.info(f"Claimed document {document.document_id} ({signature})")
        return ClaimReceipt(success=True, transaction_signature=signature, nft_mint=nft_mint)

    def verify_document(self, credential_hash: str, document_id: str) -> VerificationResult:
        return verify_document(self.cache, credential_hash, document_id)

    def issuer_documents(self, issuer: str) -> list[LedgerDocument]:
        return self.cache.documents_by_issuer(issuer)

    def shareable_credentials(self, document_id: str, holder: str) -> ShareableCredentials | None:
        """Id, token and verification link of a document held by ``holder``."""
        document = self.cache.find_document(document_id)
        if document is None or document.holder != holder:
            return None
        return ShareableCredentials(
            document_id=document.document_id,
            credential_hash=document.credential_hash,
            verification_url=verification_url(self.settings.verify_base_url, document),
        )

    def shareable_document_data(self, document_id: str) -> ShareableDocument | None:
        document = self.cache.find_document(document_id)
        if document is None:
            return None
        payload = shareable_payload(document, app=self.settings.app_tag)
        code = encode_shareable_code(payload)
        return ShareableDocument(
            payload=payload,
            shareable_code=code,
            shareable_url=import_url(self.settings.verify_base_url, code),
        )

    def import_shareable_document(self, data: str | Mapping[str, Any]) -> ImportResult:
        return import_shareable_document(self.cache, data)


__all__ = [
    "ClaimReceipt",
    "ImportResult",
    "IssuanceReceipt",
    "IssuanceService",
    "ShareableCredentials",
    "ShareableDocument",
    "VerificationResult",
    "friendly_error",
    "import_shareable_document",
    "verify_document",
]
