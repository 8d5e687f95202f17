"""Exception hierarchy for chaindocs-core.

All exceptions inherit from ChaindocsError, providing a consistent error handling interface.
Only ExhaustedRetriesError is expected to cross a scan strategy boundary; everything
else is absorbed where it happens.
"""

from collections.abc import Mapping
from typing import Any


class ChaindocsError(Exception):
    """Base exception for all chaindocs-core errors."""


class LedgerError(ChaindocsError):
    """Raised when a ledger read or write fails."""


class LedgerRequestError(LedgerError):
    """Raised when the ledger endpoint answers with an HTTP or JSON-RPC error.

    Carries the response status and headers so the executor can honour
    a server-supplied Retry-After hint.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        headers: Mapping[str, str] | None = None,
        response: Any = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.headers: dict[str, str] = dict(headers or {})
        self.response = response


class ThrottledError(LedgerError):
    """Raised when the ledger rejects a request because of rate limiting."""


class ExhaustedRetriesError(LedgerError):
    """Raised when a throttled request still fails after all retry attempts."""

    def __init__(self, message: str, *, attempts: int, last_error: BaseException) -> None:
        super().__init__(message)
        self.attempts = attempts
        self.last_error = last_error


class AnnotationDecodeError(ChaindocsError):
    """Raised when an annotation payload is not valid chaindocs JSON."""


class DocumentValidationError(ChaindocsError):
    """Raised when document data fails validation."""


class DocumentImportError(DocumentValidationError):
    """Raised when shareable document data cannot be imported."""


class IssuanceError(ChaindocsError):
    """Raised when publishing a document to the ledger fails."""


class ClaimError(ChaindocsError):
    """Raised when claiming a document fails."""
