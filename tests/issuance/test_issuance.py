"""Tests for IssuanceService and the user-facing error mapping."""

import base64
import json
from datetime import UTC, datetime

import pytest

from chaindocs_core.cache import DocumentCacheStore, MemoryKeyValueStore
from chaindocs_core.discovery import DocumentDiscovery
from chaindocs_core.documents import DocumentDraft, decode_annotation
from chaindocs_core.issuance import (
    INSUFFICIENT_FUNDS_MESSAGE,
    NETWORK_MESSAGE,
    REJECTED_MESSAGE,
    IssuanceService,
    friendly_error,
)
from chaindocs_core.settings import MEMO_PROGRAM_ID
from chaindocs_core.testing import FakeSigner

NOW = datetime(2025, 3, 1, 12, 30, tzinfo=UTC)


@pytest.fixture
def service(ledger, cache, executor) -> IssuanceService:
    return IssuanceService(ledger, cache, executor=executor)


@pytest.fixture
def draft() -> DocumentDraft:
    return DocumentDraft(document_type="diploma", title="BSc Physics", metadata={"grade": "A"})


class TestFriendlyError:
    @pytest.mark.parametrize(
        ("message", "expected"),
        [
            ("User rejected the request", REJECTED_MESSAGE),
            ("Attempt to debit an account but found no record of a prior credit: insufficient funds", INSUFFICIENT_FUNDS_MESSAGE),
            ("Account has 0 SOL", INSUFFICIENT_FUNDS_MESSAGE),
            ("network unreachable", NETWORK_MESSAGE),
            ("connection reset", NETWORK_MESSAGE),
            ("something else", "something else"),
        ],
    )
    def test_mapping(self, message, expected):
        assert friendly_error(RuntimeError(message)) == expected

    def test_network_mapping_optional(self):
        assert friendly_error(RuntimeError("network unreachable"), include_network=False) == "network unreachable"

    def test_empty_message_uses_type_name(self):
        assert friendly_error(TimeoutError()) == "TimeoutError"


class TestIssueDocument:
    @pytest.mark.asyncio
    async def test_publishes_annotation_and_caches(self, service, ledger, cache, draft, holder):
        signer = FakeSigner(ledger=ledger)

        receipt = await service.issue_document(signer, holder, draft, now=NOW)

        assert receipt.success
        assert receipt.error is None
        document = cache.find_document(receipt.document_id)
        assert document is not None
        assert document.issuer == signer.public_key
        assert document.holder == holder
        assert document.issue_date == "2025-03-01T12:30:00.000Z"
        assert document.metadata == {"grade": "A"}
        assert document.transaction_signature == receipt.transaction_signature
        assert signer.public_key in cache.issuers()

        [instruction] = signer.sent[0]
        assert instruction.program_id == MEMO_PROGRAM_ID
        payload = decode_annotation(instruction.data)
        assert payload.document_id == receipt.document_id
        assert payload.credential_hash == document.credential_hash
        assert payload.metadata == {}

    @pytest.mark.asyncio
    async def test_issued_document_is_discoverable(self, service, ledger, executor, sleep, draft, holder):
        signer = FakeSigner(ledger=ledger)
        receipt = await service.issue_document(signer, holder, draft, now=NOW)
        fresh = DocumentCacheStore(MemoryKeyValueStore())
        fresh.register_issuer(signer.public_key)

        result = await DocumentDiscovery(ledger, fresh, executor=executor, sleep=sleep).discover(holder)

        assert receipt.document_id in result.document_ids

    @pytest.mark.asyncio
    async def test_wallet_rejection_returns_friendly_error(self, service, cache, draft, holder):
        signer = FakeSigner(reject=RuntimeError("User rejected the request"))

        receipt = await service.issue_document(signer, holder, draft, now=NOW)

        assert not receipt.success
        assert receipt.error == REJECTED_MESSAGE
        assert cache.load_documents() == []

    @pytest.mark.asyncio
    async def test_unconfirmed_transaction_fails(self, service, cache, draft, holder):
        signer = FakeSigner()

        receipt = await service.issue_document(signer, holder, draft, now=NOW)

        assert not receipt.success
        assert "was not confirmed" in receipt.error
        assert cache.load_documents() == []


class TestClaimDocument:
    @pytest.mark.asyncio
    async def test_claim_marks_document(self, service, ledger, cache, make_document, holder):
        document = make_document("d1")
        cache.upsert_documents([document])
        signer = FakeSigner(holder, ledger)

        receipt = await service.claim_document(signer, document, now=NOW)

        assert receipt.success
        assert receipt.nft_mint
        assert cache.is_claimed("d1")
        assert cache.nft_mint("d1") == receipt.nft_mint
        assert cache.claim_tx("d1") == receipt.transaction_signature
        [instruction] = signer.sent[0]
        body = json.loads(instruction.data)
        assert body["action"] == "claim"
        assert body["documentId"] == "d1"

    @pytest.mark.asyncio
    async def test_claim_annotation_is_not_rediscovered(self, service, ledger, cache, executor, sleep, make_document, holder):
        cache.register_issuer(holder)
        document = make_document("d1")
        await service.claim_document(FakeSigner(holder, ledger), document, now=NOW)

        result = await DocumentDiscovery(ledger, cache, executor=executor, sleep=sleep).discover(holder)

        assert result.document_ids == []

    @pytest.mark.asyncio
    async def test_only_holder_can_claim(self, service, ledger, make_document, other_holder):
        receipt = await service.claim_document(FakeSigner(other_holder, ledger), make_document("d1"), now=NOW)

        assert not receipt.success
        assert receipt.error == "Only the holder can claim this document"

    @pytest.mark.asyncio
    async def test_second_claim_rejected_and_mint_kept(self, service, ledger, cache, make_document, holder):
        document = make_document("d1")
        signer = FakeSigner(holder, ledger)
        first = await service.claim_document(signer, document, now=NOW)

        second = await service.claim_document(signer, document, now=NOW)

        assert not second.success
        assert second.error == "Document already claimed"
        assert cache.nft_mint("d1") == first.nft_mint
        assert len(signer.sent) == 1

    @pytest.mark.asyncio
    async def test_claim_does_not_map_network_errors(self, service, make_document, holder):
        signer = FakeSigner(holder, reject=RuntimeError("network unreachable"))

        receipt = await service.claim_document(signer, make_document("d1"), now=NOW)

        assert receipt.error == "network unreachable"


class TestVerifyAndShare:
    def test_verify_valid(self, service, cache, make_document):
        cache.upsert_documents([make_document("d1", credential_hash="token")])

        result = service.verify_document("token", "d1")

        assert result.valid
        assert result.document.document_id == "d1"

    def test_verify_wrong_token(self, service, cache, make_document):
        cache.upsert_documents([make_document("d1", credential_hash="token")])

        result = service.verify_document("other", "d1")

        assert not result.valid
        assert result.error == "Invalid credentials"

    def test_verify_unknown_document(self, service):
        result = service.verify_document("token", "missing")

        assert not result.valid
        assert result.error == "Document not found"

    def test_issuer_documents(self, service, cache, make_document, issuer):
        cache.upsert_documents([make_document("d1"), make_document("d2", issuer="Someone")])

        assert [doc.document_id for doc in service.issuer_documents(issuer)] == ["d1"]

    def test_shareable_credentials_only_for_holder(self, service, cache, make_document, holder, other_holder):
        cache.upsert_documents([make_document("d1", credential_hash="tok")])

        credentials = service.shareable_credentials("d1", holder)

        assert credentials.credential_hash == "tok"
        assert credentials.verification_url == "http://localhost:3000/verify?hash=tok&id=d1"
        assert service.shareable_credentials("d1", other_holder) is None
        assert service.shareable_credentials("missing", holder) is None

    def test_shareable_document_round_trips_through_import(self, service, cache, make_document):
        cache.upsert_documents([make_document("d1", metadata={"k": "v"}, transaction_signature="sigX")])
        shared = service.shareable_document_data("d1")

        assert json.loads(base64.b64decode(shared.shareable_code))["documentId"] == "d1"
        assert shared.shareable_url.startswith("http://localhost:3000/holder?import=")

        other = IssuanceService(service.ledger, DocumentCacheStore(MemoryKeyValueStore()))
        result = other.import_shareable_document(shared.shareable_code)

        assert result.success
        imported = other.cache.find_document("d1")
        assert imported.metadata == {"k": "v"}
        assert imported.transaction_signature == "sigX"
        assert imported.issuer in other.cache.issuers()

    def test_import_invalid_data(self, service):
        result = service.import_shareable_document("not a code")

        assert not result.success
        assert result.error == "Invalid document data"

    def test_shareable_document_missing(self, service):
        assert service.shareable_document_data("missing") is None
