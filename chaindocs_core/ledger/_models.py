"""Read-side ledger types returned by LedgerClient implementations."""

from dataclasses import dataclass, field
from typing import Any

InstructionData = bytes | str


@dataclass(frozen=True, slots=True)
class SignatureInfo:
    """One entry of an address's transaction history, newest first."""

    signature: str
    slot: int | None = None
    err: Any = None
    memo: str | None = None
    block_time: int | None = None


@dataclass(frozen=True, slots=True)
class LedgerInstruction:
    """Legacy instruction form: program address plus raw (or already decoded) data."""

    program_id: str
    data: InstructionData


@dataclass(frozen=True, slots=True)
class CompiledInstruction:
    """Compiled instruction form: program referenced by index into the message's account keys."""

    program_id_index: int
    data: InstructionData


@dataclass(frozen=True, slots=True)
class TransactionMessage:
    """Transaction message in either legacy or compiled representation.

    Legacy messages carry ``instructions``; versioned messages may only carry
    ``compiled_instructions`` resolved through ``account_keys``.
    """

    account_keys: tuple[str, ...] = ()
    instructions: tuple[LedgerInstruction, ...] | None = None
    compiled_instructions: tuple[CompiledInstruction, ...] | None = None

    def instructions_for(self, program_id: str) -> list[LedgerInstruction]:
        """Instructions addressed to one program, whichever representation is present."""
        if self.instructions:
            return [ix for ix in self.instructions if ix.program_id == program_id]
        found: list[LedgerInstruction] = []
        for compiled in self.compiled_instructions or ():
            if 0 <= compiled.program_id_index < len(self.account_keys):
                key = self.account_keys[compiled.program_id_index]
                if key == program_id:
                    found.append(LedgerInstruction(program_id=key, data=compiled.data))
        return found


@dataclass(frozen=True, slots=True)
class LedgerTransaction:
    """A confirmed transaction with its execution status (``err`` is None on success)."""

    signatures: tuple[str, ...]
    message: TransactionMessage = field(default_factory=TransactionMessage)
    err: Any = None
    slot: int | None = None
    block_time: int | None = None

    @property
    def signature(self) -> str | None:
        return self.signatures[0] if self.signatures else None

    @property
    def succeeded(self) -> bool:
        return self.err is None


__all__ = [
    "CompiledInstruction",
    "InstructionData",
    "LedgerInstruction",
    "LedgerTransaction",
    "SignatureInfo",
    "TransactionMessage",
]
