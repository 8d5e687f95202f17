"""JSON-RPC ledger client for Solana-compatible endpoints.

Transactions are requested with ``jsonParsed`` encoding, so memo instructions
arrive with their text already decoded; instructions the node cannot parse
(and whole messages fetched with ``json`` encoding) carry base58 data, which is
decoded to bytes here. Both the legacy (``programId``) and compiled
(``programIdIndex``) instruction shapes are mapped onto TransactionMessage.
"""

import asyncio
import itertools
from types import TracebackType
from typing import Any

import base58
import httpx

from chaindocs_core.exceptions import LedgerError, LedgerRequestError
from chaindocs_core.ledger._models import (
    CompiledInstruction,
    InstructionData,
    LedgerInstruction,
    LedgerTransaction,
    SignatureInfo,
    TransactionMessage,
)
from chaindocs_core.logging import get_chaindocs_logger
from chaindocs_core.settings import settings

logger = get_chaindocs_logger(__name__)

CONFIRMED_STATUSES = frozenset({"confirmed", "finalized"})


def _decode_data(value: Any) -> InstructionData:
    if isinstance(value, str):
        try:
            return base58.b58decode(value)
        except ValueError:
            return value
    if isinstance(value, list):
        return bytes(value)
    return b""


def _account_key(entry: Any) -> str:
    # jsonParsed renders account keys as objects, json encoding as plain strings
    if isinstance(entry, dict):
        return str(entry.get("pubkey", ""))
    return str(entry)


def _parse_instruction(raw: dict[str, Any]) -> LedgerInstruction | CompiledInstruction:
    if "programIdIndex" in raw:
        return CompiledInstruction(program_id_index=int(raw["programIdIndex"]), data=_decode_data(raw.get("data")))
    parsed = raw.get("parsed")
    data: InstructionData = parsed if isinstance(parsed, str) else _decode_data(raw.get("data"))
    return LedgerInstruction(program_id=str(raw.get("programId", "")), data=data)


def parse_message(raw: dict[str, Any]) -> TransactionMessage:
    """Map an RPC transaction message onto the legacy or compiled representation."""
    account_keys = tuple(_account_key(key) for key in raw.get("accountKeys") or ())
    parsed = [_parse_instruction(ix) for ix in raw.get("instructions") or () if isinstance(ix, dict)]
    legacy = tuple(ix for ix in parsed if isinstance(ix, LedgerInstruction))
    compiled = tuple(ix for ix in parsed if isinstance(ix, CompiledInstruction))
    return TransactionMessage(
        account_keys=account_keys,
        instructions=legacy or None,
        compiled_instructions=compiled or None,
    )


def parse_transaction(raw: dict[str, Any]) -> LedgerTransaction:
    """Map a ``getTransaction`` result onto LedgerTransaction."""
    transaction = raw.get("transaction") or {}
    meta = raw.get("meta") or {}
    return LedgerTransaction(
        signatures=tuple(transaction.get("signatures") or ()),
        message=parse_message(transaction.get("message") or {}),
        err=meta.get("err"),
        slot=raw.get("slot"),
        block_time=raw.get("blockTime"),
    )


class SolanaRpcClient:
    """LedgerClient over Solana JSON-RPC.

    HTTP 429 and JSON-RPC errors raise LedgerRequestError with the status,
    headers and server message, which the retrying executor classifies.

    Example:
        >>> async with SolanaRpcClient("https://api.devnet.solana.com") as ledger:
        ...     slot = await ledger.get_latest_slot()
    """

    def __init__(
        self,
        url: str | None = None,
        *,
        timeout: float | None = None,
        commitment: str = "confirmed",
        client: httpx.AsyncClient | None = None,
        confirm_attempts: int = 30,
        confirm_interval: float = 1.0,
    ) -> None:
        self.url = url or settings.rpc_url
        self.commitment = commitment
        self.confirm_attempts = confirm_attempts
        self.confirm_interval = confirm_interval
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout or settings.rpc_timeout)
        self._ids = itertools.count(1)

    async def __aenter__(self) -> "SolanaRpcClient":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _call(self, method: str, params: list[Any]) -> Any:
        payload = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}
        try:
            response = await self._client.post(self.url, json=payload)
        except httpx.HTTPError as e:
            raise LedgerRequestError(f"{method} request failed: {e}") from e

        if response.status_code == 429:
            raise LedgerRequestError(
                f"429 Too Many Requests ({method})",
                status_code=429,
                headers=response.headers,
                response=response,
            )
        if response.status_code >= 400:
            raise LedgerRequestError(
                f"{method} failed with HTTP {response.status_code}: {response.text[:200]}",
                status_code=response.status_code,
                headers=response.headers,
                response=response,
            )

        try:
            body = response.json()
        except ValueError as e:
            raise LedgerRequestError(f"{method} returned invalid JSON") from e
        if not isinstance(body, dict):
            raise LedgerRequestError(f"{method} returned an unexpected body", status_code=response.status_code, response=response)
        if error := body.get("error"):
            code = error.get("code") if isinstance(error, dict) else None
            message = error.get("message") if isinstance(error, dict) else error
            raise LedgerRequestError(f"{method} failed: {code} {message}", status_code=response.status_code, response=response)
        return body.get("result")

    async def get_latest_slot(self) -> int:
        return int(await self._call("getSlot", [{"commitment": self.commitment}]))

    async def get_signatures_for_address(self, address: str, limit: int) -> list[SignatureInfo]:
        result = await self._call("getSignaturesForAddress", [address, {"limit": limit, "commitment": self.commitment}])
        return [
            SignatureInfo(
                signature=entry["signature"],
                slot=entry.get("slot"),
                err=entry.get("err"),
                memo=entry.get("memo"),
                block_time=entry.get("blockTime"),
            )
            for entry in result or ()
            if isinstance(entry, dict) and entry.get("signature")
        ]

    async def get_transaction(self, signature: str) -> LedgerTransaction | None:
        result = await self._call(
            "getTransaction",
            [
                signature,
                {"encoding": "jsonParsed", "commitment": self.commitment, "maxSupportedTransactionVersion": 0},
            ],
        )
        if not result:
            return None
        return parse_transaction(result)

    async def confirm_transaction(self, signature: str) -> bool:
        """Poll ``getSignatureStatuses`` until the signature reaches the client's commitment."""
        for _ in range(self.confirm_attempts):
            result = await self._call("getSignatureStatuses", [[signature], {"searchTransactionHistory": True}])
            statuses = (result or {}).get("value") or [None]
            status = statuses[0]
            if status:
                if status.get("err") is not None:
                    raise LedgerError(f"Transaction {signature} failed: {status['err']}")
                if status.get("confirmationStatus") in CONFIRMED_STATUSES:
                    return True
            await asyncio.sleep(self.confirm_interval)
        logger.warning(f"Transaction {signature} not confirmed after {self.confirm_attempts} checks")
        return False
