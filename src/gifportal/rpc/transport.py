"""
GIF Portal: Ledger RPC Transport (Abstract I/O Layer)

Goal:
  Keep the program binding independent of how the ledger is reached, so the
  core is testable against an in-process ledger and runs against a JSON-RPC
  node unchanged.

Transaction envelopes are plain dicts:
  {
    "program_id": str,
    "instruction": str,
    "accounts": {role: pubkey_hex},
    "args": {name: value},
    "fee_payer": pubkey_hex,
    "recent_blockhash": str,
    "signatures": {pubkey_hex: sig_hex}
  }
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol, runtime_checkable

Json = Dict[str, Any]


class RpcError(RuntimeError):
    def __init__(self, code: str, msg: str, data: Any = None) -> None:
        super().__init__(msg)
        self.code = code
        self.data = data


@dataclass(frozen=True, slots=True)
class AccountInfo:
    owner: str
    lamports: int
    data: bytes


@runtime_checkable
class LedgerRpc(Protocol):
    async def get_account_info(self, address: str, *, commitment: str) -> Optional[AccountInfo]: ...

    async def get_latest_blockhash(self, *, commitment: str) -> str: ...

    async def send_transaction(self, tx: Json, *, preflight_commitment: str) -> str: ...
