"""Test utilities for applications built on chaindocs-core.

In-memory stand-ins for the ledger, the wallet and the event loop clock, so
application test suites can exercise discovery, issuance and claims without
network access or real sleeps.
"""

import asyncio
import itertools
import json
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from chaindocs_core.documents.annotation import AnnotationPayload, ClaimPayload, encode_annotation
from chaindocs_core.documents.credentials import generate_mock_address
from chaindocs_core.ledger._models import (
    CompiledInstruction,
    LedgerInstruction,
    LedgerTransaction,
    SignatureInfo,
    TransactionMessage,
)
from chaindocs_core.settings import MEMO_PROGRAM_ID


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingSleep:
    """Async sleep replacement that records delays and advances a FakeClock.

    Yields to the event loop once per call so concurrent tasks still interleave.
    """

    def __init__(self, clock: FakeClock | None = None) -> None:
        self.clock = clock
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        if self.clock is not None:
            self.clock.advance(delay)
        await asyncio.sleep(0)

    @property
    def total(self) -> float:
        return sum(self.delays)


@dataclass
class _ScriptedFailure:
    error: BaseException
    remaining: int
    method: str | None = None
    argument: str | None = None

    def matches(self, method: str, argument: Any) -> bool:
        if self.remaining <= 0:
            return False
        if self.method is not None and self.method != method:
            return False
        return self.argument is None or self.argument == argument


class ScriptedLedgerClient:
    """LedgerClient over an in-memory transaction log.

    Transactions are indexed under every address they touch; histories are
    returned newest first. Failures can be injected per method and argument
    with ``fail_next``. Every read is recorded in ``calls`` together with the
    clock reading in ``call_times``.
    """

    def __init__(self, *, clock: Callable[[], float] | None = None, slot: int = 1000) -> None:
        self.transactions: dict[str, LedgerTransaction] = {}
        self.history: dict[str, list[SignatureInfo]] = {}
        self.calls: list[tuple[str, Any]] = []
        self.call_times: list[float] = []
        self._clock = clock or (lambda: 0.0)
        self._slot = slot
        self._counter = itertools.count(1)
        self._failures: list[_ScriptedFailure] = []

    def fail_next(
        self,
        error: BaseException,
        *,
        times: int = 1,
        method: str | None = None,
        argument: str | None = None,
    ) -> None:
        """Raise ``error`` on the next ``times`` matching reads."""
        self._failures.append(_ScriptedFailure(error, times, method, argument))

    def count(self, method: str | None = None) -> int:
        return sum(1 for name, _ in self.calls if method is None or name == method)

    def _record(self, method: str, argument: Any) -> None:
        self.calls.append((method, argument))
        self.call_times.append(self._clock())
        for failure in self._failures:
            if failure.matches(method, argument):
                failure.remaining -= 1
                raise failure.error

    def add_transaction(
        self,
        instructions: Iterable[LedgerInstruction],
        *,
        addresses: Iterable[str] = (),
        err: Any = None,
        signature: str | None = None,
        compiled: bool = False,
    ) -> str:
        """Append a confirmed transaction and index it under ``addresses``."""
        instructions = list(instructions)
        signature = signature or f"sig{next(self._counter)}"
        self._slot += 1
        if compiled:
            account_keys = tuple(dict.fromkeys([*addresses, *(ix.program_id for ix in instructions)]))
            message = TransactionMessage(
                account_keys=account_keys,
                compiled_instructions=tuple(
                    CompiledInstruction(program_id_index=account_keys.index(ix.program_id), data=ix.data)
                    for ix in instructions
                ),
            )
        else:
            message = TransactionMessage(account_keys=tuple(addresses), instructions=tuple(instructions))
        self.transactions[signature] = LedgerTransaction(
            signatures=(signature,), message=message, err=err, slot=self._slot
        )
        for address in dict.fromkeys(addresses):
            self.history.setdefault(address, []).insert(0, SignatureInfo(signature=signature, slot=self._slot, err=err))
        return signature

    def publish_annotation(
        self,
        payload: AnnotationPayload | ClaimPayload | Mapping[str, Any] | bytes | str,
        *,
        signer: str,
        err: Any = None,
        compiled: bool = False,
        program_id: str = MEMO_PROGRAM_ID,
    ) -> str:
        """Write a memo annotation signed by ``signer``, visible in its history and the channel's."""
        if isinstance(payload, AnnotationPayload | ClaimPayload):
            data: bytes | str = encode_annotation(payload)
        elif isinstance(payload, Mapping):
            data = json.dumps(dict(payload)).encode("utf-8")
        else:
            data = payload
        return self.add_transaction(
            [LedgerInstruction(program_id=program_id, data=data)],
            addresses=(signer, program_id),
            err=err,
            compiled=compiled,
        )

    def forget(self, signature: str) -> None:
        """Drop a transaction body while keeping it in address histories."""
        self.transactions.pop(signature, None)

    async def get_latest_slot(self) -> int:
        self._record("get_latest_slot", None)
        return self._slot

    async def get_signatures_for_address(self, address: str, limit: int) -> list[SignatureInfo]:
        self._record("get_signatures_for_address", address)
        return list(self.history.get(address, ())[:limit])

    async def get_transaction(self, signature: str) -> LedgerTransaction | None:
        self._record("get_transaction", signature)
        return self.transactions.get(signature)

    async def confirm_transaction(self, signature: str) -> bool:
        self._record("confirm_transaction", signature)
        transaction = self.transactions.get(signature)
        return transaction is not None and transaction.succeeded


class FakeSigner:
    """Signer that writes straight into a ScriptedLedgerClient.

    Pass ``reject`` to make every send fail, e.g. with a wallet rejection.
    """

    def __init__(
        self,
        public_key: str | None = None,
        ledger: ScriptedLedgerClient | None = None,
        *,
        reject: BaseException | None = None,
    ) -> None:
        self._public_key = public_key or generate_mock_address()
        self.ledger = ledger
        self.reject = reject
        self.sent: list[list[LedgerInstruction]] = []

    @property
    def public_key(self) -> str:
        return self._public_key

    async def send_transaction(self, instructions: list[LedgerInstruction]) -> str:
        if self.reject is not None:
            raise self.reject
        self.sent.append(list(instructions))
        if self.ledger is None:
            return generate_mock_address()
        return self.ledger.add_transaction(
            instructions,
            addresses=(self.public_key, *(ix.program_id for ix in instructions)),
        )


__all__ = ["FakeClock", "FakeSigner", "RecordingSleep", "ScriptedLedgerClient"]
