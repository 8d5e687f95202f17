"""Placeholder credential tokens and mock ledger addresses.

Neither function is a security mechanism: the credential hash is a 32-bit
rolling hash plus a timestamp, and mock addresses only look like ledger keys.
Verification is plain token equality.
"""

import json
import secrets
from datetime import UTC, datetime

import base58

from chaindocs_core.documents.document import DocumentDraft, format_issue_date

_INT32 = 1 << 32
_INT32_SIGN = 1 << 31


def rolling_hash(text: str) -> int:
    """Signed 32-bit ``h = h * 31 + ord(c)`` hash over the string."""
    value = 0
    for char in text:
        value = ((value << 5) - value + ord(char)) % _INT32
    return value - _INT32 if value >= _INT32_SIGN else value


def generate_credential_hash(draft: DocumentDraft, holder: str, now: datetime | None = None) -> str:
    """Build the opaque credential token for a document about to be issued."""
    now = now or datetime.now(UTC)
    canonical = json.dumps(
        {
            "type": draft.document_type,
            "title": draft.title,
            "holder": holder,
            "issueDate": format_issue_date(now),
            "metadata": draft.metadata,
        },
        separators=(",", ":"),
        sort_keys=False,
        default=str,
    )
    millis = int(now.timestamp() * 1000)
    return f"{abs(rolling_hash(canonical)):x}{millis:x}"


def credentials_match(expected: str, presented: str) -> bool:
    """Opaque token comparison."""
    return secrets.compare_digest(expected.encode("utf-8"), presented.encode("utf-8"))


def generate_mock_address() -> str:
    """Random 32-byte key rendered in base58, used for document ids and mock mints."""
    return base58.b58encode(secrets.token_bytes(32)).decode("ascii")


__all__ = [
    "credentials_match",
    "generate_credential_hash",
    "generate_mock_address",
    "rolling_hash",
]
