"""Tests for LedgerDocument and issue date helpers."""

from datetime import UTC, datetime

import pytest
from pydantic import ValidationError

from chaindocs_core.documents import DocumentDraft, LedgerDocument, parse_issue_date, sort_newest_first
from chaindocs_core.documents.document import format_issue_date


class TestLedgerDocument:
    def test_accepts_camel_case_record(self):
        doc = LedgerDocument.model_validate(
            {
                "documentId": "d1",
                "issuer": "I",
                "holder": "H",
                "documentType": "diploma",
                "issueDate": "2025-01-01T00:00:00.000Z",
                "credentialHash": "abc",
                "transactionSignature": "sig",
                "metadata": None,
                "unknownKey": "ignored",
            }
        )
        assert doc.document_id == "d1"
        assert doc.document_type == "diploma"
        assert doc.metadata == {}
        assert doc.claimed is False
        assert doc.nft_mint is None

    def test_requires_identity_fields(self):
        with pytest.raises(ValidationError):
            LedgerDocument(document_id="", issuer="I", holder="H")
        with pytest.raises(ValidationError):
            LedgerDocument.model_validate({"documentId": "d1", "issuer": "I"})

    def test_frozen(self, make_document):
        doc = make_document()
        with pytest.raises(ValidationError):
            doc.claimed = True

    def test_to_record_excludes_claim_state(self, make_document):
        doc = make_document(claimed=True, nft_mint="mint")
        record = doc.to_record()

        assert record["documentId"] == "doc-1"
        assert record["issueDate"] == "2025-01-01T00:00:00.000Z"
        assert "claimed" not in record
        assert "nftMint" not in record


class TestIssueDates:
    def test_parse_zulu(self):
        assert parse_issue_date("2025-03-01T10:00:00.000Z") == datetime(2025, 3, 1, 10, tzinfo=UTC)

    def test_parse_naive_is_utc(self):
        assert parse_issue_date("2025-03-01T10:00:00").tzinfo is UTC

    def test_parse_invalid_sorts_oldest(self):
        assert parse_issue_date("not a date") < parse_issue_date("1970-01-01T00:00:00Z")
        assert parse_issue_date("") == parse_issue_date("garbage")

    def test_format_matches_issuer_format(self):
        moment = datetime(2025, 1, 2, 3, 4, 5, 678000, tzinfo=UTC)
        assert format_issue_date(moment) == "2025-01-02T03:04:05.678Z"

    def test_sort_newest_first_is_stable(self, make_document):
        old = make_document("old", issue_date="2024-01-01T00:00:00.000Z")
        tie_a = make_document("tie-a", issue_date="2025-01-01T00:00:00.000Z")
        tie_b = make_document("tie-b", issue_date="2025-01-01T00:00:00.000Z")
        new = make_document("new", issue_date="2025-06-01T00:00:00.000Z")

        ordered = sort_newest_first([old, tie_a, tie_b, new])

        assert [doc.document_id for doc in ordered] == ["new", "tie-a", "tie-b", "old"]


class TestDocumentDraft:
    def test_rejects_unknown_fields(self):
        with pytest.raises(ValidationError):
            DocumentDraft(document_type="t", title="x", unexpected=1)

    def test_requires_title(self):
        with pytest.raises(ValidationError):
            DocumentDraft(document_type="t", title="")
