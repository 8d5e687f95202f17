"""Annotation payload codec and the shared decode-and-accept predicate.

Issuers publish documents as UTF-8 JSON written to the well-known memo channel:

    {"v": 1, "app": "chaindocs", "documentId": "...", "issuer": "...", "holder": "...",
     "type": "...", "title": "...", "issuedAt": "2025-01-01T00:00:00.000Z",
     "credentialHash": "...", "metadata": {...}}

Claim records reuse the channel with ``"action": "claim"`` and must never be
discovered as issuances. The channel carries unrelated traffic from other
applications, so anything that does not decode is skipped without logging.
"""

import json
from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from chaindocs_core.documents.document import LedgerDocument, format_issue_date
from chaindocs_core.exceptions import AnnotationDecodeError
from chaindocs_core.settings import APP_TAG

PAYLOAD_VERSION = 1
CLAIM_ACTION = "claim"

AnnotationData = bytes | bytearray | memoryview | str | list[int]


class AnnotationPayload(BaseModel):
    """Issuance record as written to the annotation channel."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    v: int = PAYLOAD_VERSION
    app: str
    action: str | None = None
    document_id: str = Field(alias="documentId", min_length=1)
    issuer: str = Field(min_length=1)
    holder: str = Field(min_length=1)
    document_type: str = Field(alias="type")
    title: str
    issued_at: str = Field(alias="issuedAt")
    credential_hash: str = Field(alias="credentialHash")
    metadata: dict[str, Any] = Field(default_factory=dict)

    @field_validator("metadata", mode="before")
    @classmethod
    def _none_metadata(cls, value: Any) -> Any:
        return {} if value is None else value

    @property
    def is_claim(self) -> bool:
        return self.action == CLAIM_ACTION

    def to_document(self, transaction_signature: str | None = None) -> LedgerDocument:
        return LedgerDocument(
            document_id=self.document_id,
            issuer=self.issuer,
            holder=self.holder,
            document_type=self.document_type,
            title=self.title,
            issue_date=self.issued_at,
            credential_hash=self.credential_hash,
            metadata=dict(self.metadata),
            transaction_signature=transaction_signature,
        )


class ClaimPayload(BaseModel):
    """Claim record as written to the annotation channel."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    v: int = PAYLOAD_VERSION
    app: str = APP_TAG
    action: Literal["claim"] = CLAIM_ACTION
    document_id: str = Field(alias="documentId", min_length=1)
    holder: str = Field(min_length=1)
    claimed_at: str = Field(alias="claimedAt")

    @classmethod
    def for_document(cls, document_id: str, holder: str, claimed_at: datetime, *, app: str = APP_TAG) -> "ClaimPayload":
        return cls(app=app, document_id=document_id, holder=holder, claimed_at=format_issue_date(claimed_at))


def _as_text(data: AnnotationData) -> str:
    if isinstance(data, str):
        return data
    if isinstance(data, list):
        data = bytes(data)
    return bytes(data).decode("utf-8")


def decode_annotation(data: AnnotationData) -> AnnotationPayload:
    """Decode raw instruction data into an issuance payload.

    Raises:
        AnnotationDecodeError: data is not UTF-8 JSON or misses required fields.
    """
    try:
        raw = json.loads(_as_text(data))
    except (UnicodeDecodeError, ValueError, TypeError) as e:
        raise AnnotationDecodeError(f"annotation is not UTF-8 JSON: {e}") from e
    if not isinstance(raw, dict):
        raise AnnotationDecodeError(f"annotation must be a JSON object, got {type(raw).__name__}")
    try:
        return AnnotationPayload.model_validate(raw)
    except ValidationError as e:
        raise AnnotationDecodeError(f"annotation fields invalid: {e.error_count()} error(s)") from e


def accept_annotation(
    data: AnnotationData,
    holder: str,
    *,
    app_tag: str = APP_TAG,
    transaction_signature: str | None = None,
) -> LedgerDocument | None:
    """Return the issued document when the payload belongs to this app and holder.

    Claim records, other applications' payloads, other holders' documents and
    anything that fails to decode yield None.
    """
    try:
        payload = decode_annotation(data)
    except AnnotationDecodeError:
        return None
    if payload.app != app_tag or payload.holder != holder or payload.is_claim:
        return None
    try:
        return payload.to_document(transaction_signature)
    except ValidationError:
        return None


def encode_annotation(payload: AnnotationPayload | ClaimPayload) -> bytes:
    """Serialize a payload to compact UTF-8 JSON for a memo instruction."""
    body = payload.model_dump(by_alias=True, exclude_none=True)
    if isinstance(payload, AnnotationPayload) and not payload.metadata:
        body.pop("metadata", None)
    return json.dumps(body, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


__all__ = [
    "CLAIM_ACTION",
    "PAYLOAD_VERSION",
    "AnnotationData",
    "AnnotationPayload",
    "ClaimPayload",
    "accept_annotation",
    "decode_annotation",
    "encode_annotation",
]
