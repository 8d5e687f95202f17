"""Document records, annotation payloads and placeholder credentials."""

from .annotation import (
    CLAIM_ACTION,
    AnnotationPayload,
    ClaimPayload,
    accept_annotation,
    decode_annotation,
    encode_annotation,
)
from .credentials import credentials_match, generate_credential_hash, generate_mock_address
from .document import DocumentDraft, LedgerDocument, parse_issue_date, sort_newest_first
from .sharing import encode_shareable_code, parse_shareable_document, shareable_payload

__all__ = [
    "CLAIM_ACTION",
    "AnnotationPayload",
    "ClaimPayload",
    "DocumentDraft",
    "LedgerDocument",
    "accept_annotation",
    "credentials_match",
    "decode_annotation",
    "encode_annotation",
    "encode_shareable_code",
    "generate_credential_hash",
    "generate_mock_address",
    "parse_issue_date",
    "parse_shareable_document",
    "shareable_payload",
    "sort_newest_first",
]
