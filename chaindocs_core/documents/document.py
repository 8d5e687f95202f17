"""Ledger document record.

A LedgerDocument is the unit of record for discovery: issued once, observed through the
local cache or a ledger scan, never deleted, and mutated only to flip ``claimed`` and set
``nft_mint``. Attribute names are snake_case; the persisted form keeps the camelCase keys
(``documentId``, ``issueDate``, ...) that issuers and other clients already write.
"""

from collections.abc import Iterable
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

_OLDEST = datetime.min.replace(tzinfo=UTC)

# Fields owned by the claim table, never by the documents table or by scan data.
CLAIM_FIELDS: frozenset[str] = frozenset({"claimed", "nft_mint"})


class DocumentDraft(BaseModel):
    """Issuer-supplied content of a document that has not been published yet."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    document_type: str = Field(min_length=1)
    title: str = Field(min_length=1)
    metadata: dict[str, Any] = Field(default_factory=dict)


class LedgerDocument(BaseModel):
    """A verifiable document issued to a holder.

    Immutable; use ``model_copy(update=...)`` to derive the claimed variant.
    """

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    document_id: str = Field(min_length=1)
    issuer: str = Field(min_length=1)
    holder: str = Field(min_length=1)
    document_type: str = ""
    title: str = ""
    issue_date: str = ""
    credential_hash: str = ""
    metadata: dict[str, Any] = Field(default_factory=dict)
    transaction_signature: str | None = None
    claimed: bool = False
    nft_mint: str | None = None

    @field_validator("metadata", mode="before")
    @classmethod
    def _none_metadata(cls, value: Any) -> Any:
        return {} if value is None else value

    @property
    def issued_at(self) -> datetime:
        """Issue date as an aware datetime; unparseable dates sort as the oldest."""
        return parse_issue_date(self.issue_date)

    def to_record(self) -> dict[str, Any]:
        """Serialize for the documents table (claim state lives in its own table)."""
        return self.model_dump(by_alias=True, exclude=set(CLAIM_FIELDS))


def parse_issue_date(value: str) -> datetime:
    """Parse an ISO-8601 timestamp, treating naive values as UTC."""
    try:
        parsed = datetime.fromisoformat(value)
    except (TypeError, ValueError):
        return _OLDEST
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def format_issue_date(moment: datetime) -> str:
    """Render a timestamp the way issuers write ``issuedAt`` (millisecond precision, Z suffix)."""
    moment = moment.astimezone(UTC)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"


def sort_newest_first(documents: Iterable[LedgerDocument]) -> list[LedgerDocument]:
    """Sort by issue date descending. Equal dates keep their input order."""
    return sorted(documents, key=lambda doc: doc.issued_at, reverse=True)


__all__ = [
    "CLAIM_FIELDS",
    "DocumentDraft",
    "LedgerDocument",
    "format_issue_date",
    "parse_issue_date",
    "sort_newest_first",
]
