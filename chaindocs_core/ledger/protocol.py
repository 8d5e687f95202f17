"""Ledger client and signer protocols.

Discovery only reads through LedgerClient; writes belong to issuance and claim
flows, which go through a Signer.
"""

from typing import Protocol, runtime_checkable

from chaindocs_core.ledger._models import LedgerInstruction, LedgerTransaction, SignatureInfo


@runtime_checkable
class LedgerClient(Protocol):
    """Protocol for ledger read access.

    Implementations: SolanaRpcClient (JSON-RPC over HTTP),
    ScriptedLedgerClient (testing).
    """

    async def get_latest_slot(self) -> int:
        """Return the most recent slot (block height) known to the endpoint."""
        ...

    async def get_signatures_for_address(self, address: str, limit: int) -> list[SignatureInfo]:
        """Return up to ``limit`` transaction signatures touching ``address``, newest first."""
        ...

    async def get_transaction(self, signature: str) -> LedgerTransaction | None:
        """Fetch a confirmed transaction. None when the ledger does not know it."""
        ...

    async def confirm_transaction(self, signature: str) -> bool:
        """Wait until the transaction is confirmed. False if it never confirms."""
        ...


@runtime_checkable
class Signer(Protocol):
    """Wallet that signs and submits transactions on behalf of an address."""

    @property
    def public_key(self) -> str: ...

    async def send_transaction(self, instructions: list[LedgerInstruction]) -> str:
        """Sign and submit the instructions as one transaction, returning its signature."""
        ...
