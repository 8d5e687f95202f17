"""Common test fixtures for chaindocs-core."""

from collections.abc import Callable
from typing import Any

import pytest

from chaindocs_core.cache import DocumentCacheStore, MemoryKeyValueStore
from chaindocs_core.documents import AnnotationPayload, LedgerDocument
from chaindocs_core.ledger import RequestThrottle, RetryingExecutor
from chaindocs_core.settings import APP_TAG, ScanLimits
from chaindocs_core.testing import FakeClock, RecordingSleep, ScriptedLedgerClient

HOLDER = "HoLder1111111111111111111111111111111111111"
OTHER_HOLDER = "0ther2222222222222222222222222222222222222"
ISSUER = "Issuer333333333333333333333333333333333333"


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sleep(clock: FakeClock) -> RecordingSleep:
    return RecordingSleep(clock)


@pytest.fixture
def ledger(clock: FakeClock) -> ScriptedLedgerClient:
    return ScriptedLedgerClient(clock=clock)


@pytest.fixture
def throttle(clock: FakeClock, sleep: RecordingSleep) -> RequestThrottle:
    return RequestThrottle(8, 1.0, clock=clock, sleep=sleep)


@pytest.fixture
def executor(throttle: RequestThrottle, sleep: RecordingSleep) -> RetryingExecutor:
    return RetryingExecutor(throttle, sleep=sleep)


@pytest.fixture
def kv() -> MemoryKeyValueStore:
    return MemoryKeyValueStore()


@pytest.fixture
def cache(kv: MemoryKeyValueStore) -> DocumentCacheStore:
    return DocumentCacheStore(kv, key_prefix=APP_TAG)


@pytest.fixture
def limits() -> ScanLimits:
    return ScanLimits()


@pytest.fixture
def make_document() -> Callable[..., LedgerDocument]:
    """Factory for LedgerDocument with sensible defaults."""

    def _make(document_id: str = "doc-1", **overrides: Any) -> LedgerDocument:
        fields: dict[str, Any] = {
            "document_id": document_id,
            "issuer": ISSUER,
            "holder": HOLDER,
            "document_type": "diploma",
            "title": f"Title {document_id}",
            "issue_date": "2025-01-01T00:00:00.000Z",
            "credential_hash": f"hash-{document_id}",
        }
        fields.update(overrides)
        return LedgerDocument(**fields)

    return _make


@pytest.fixture
def make_payload() -> Callable[..., AnnotationPayload]:
    """Factory for issuance annotation payloads."""

    def _make(document_id: str = "doc-1", **overrides: Any) -> AnnotationPayload:
        fields: dict[str, Any] = {
            "app": APP_TAG,
            "document_id": document_id,
            "issuer": ISSUER,
            "holder": HOLDER,
            "document_type": "diploma",
            "title": f"Title {document_id}",
            "issued_at": "2025-01-01T00:00:00.000Z",
            "credential_hash": f"hash-{document_id}",
        }
        fields.update(overrides)
        return AnnotationPayload(**fields)

    return _make


@pytest.fixture
def holder() -> str:
    return HOLDER


@pytest.fixture
def other_holder() -> str:
    return OTHER_HOLDER


@pytest.fixture
def issuer() -> str:
    return ISSUER
