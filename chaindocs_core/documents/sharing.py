"""Shareable document codes for manual transfer between issuer and holder.

A shareable code is base64-encoded JSON of the full document record, so a holder
can import a document before (or without) discovering it on the ledger.
"""

import base64
import binascii
import json
from collections.abc import Mapping
from typing import Any
from urllib.parse import urlencode

from pydantic import ValidationError

from chaindocs_core.documents.annotation import PAYLOAD_VERSION
from chaindocs_core.documents.document import LedgerDocument
from chaindocs_core.exceptions import DocumentImportError
from chaindocs_core.settings import APP_TAG

_REQUIRED_KEYS = ("documentId", "issuer", "holder")


def shareable_payload(document: LedgerDocument, *, app: str = APP_TAG) -> dict[str, Any]:
    return {"v": PAYLOAD_VERSION, "app": app, **document.to_record()}


def encode_shareable_code(payload: Mapping[str, Any]) -> str:
    return base64.b64encode(json.dumps(payload, separators=(",", ":")).encode("utf-8")).decode("ascii")


def verification_url(base_url: str, document: LedgerDocument) -> str:
    query = urlencode({"hash": document.credential_hash, "id": document.document_id})
    return f"{base_url.rstrip('/')}/verify?{query}"


def import_url(base_url: str, code: str) -> str:
    return f"{base_url.rstrip('/')}/holder?{urlencode({'import': code})}"


def _decode_string(data: str) -> Any:
    try:
        return json.loads(base64.b64decode(data, validate=True).decode("utf-8"))
    except (binascii.Error, UnicodeDecodeError, ValueError):
        pass
    try:
        return json.loads(data)
    except ValueError as e:
        raise DocumentImportError("Invalid document data") from e


def parse_shareable_document(data: str | Mapping[str, Any]) -> LedgerDocument:
    """Parse a shareable code, a JSON string or a mapping into a document record.

    Accepts both the record keys (``documentType``, ``issueDate``) and the
    annotation keys (``type``, ``issuedAt``).

    Raises:
        DocumentImportError: the data is undecodable or misses documentId/issuer/holder.
    """
    raw = _decode_string(data) if isinstance(data, str) else data
    if not isinstance(raw, Mapping) or not all(raw.get(key) for key in _REQUIRED_KEYS):
        raise DocumentImportError("Invalid document data")
    try:
        return LedgerDocument(
            document_id=raw["documentId"],
            issuer=raw["issuer"],
            holder=raw["holder"],
            document_type=raw.get("documentType") or raw.get("type") or "",
            title=raw.get("title") or "",
            issue_date=raw.get("issueDate") or raw.get("issuedAt") or "",
            credential_hash=raw.get("credentialHash") or "",
            transaction_signature=raw.get("transactionSignature"),
            metadata=raw.get("metadata") or {},
        )
    except ValidationError as e:
        raise DocumentImportError(f"Invalid document data: {e.error_count()} invalid field(s)") from e


__all__ = [
    "encode_shareable_code",
    "import_url",
    "parse_shareable_document",
    "shareable_payload",
    "verification_url",
]
