# src/gifportal/rpc/memory.py
from __future__ import annotations

import hashlib
from collections import defaultdict, deque
from typing import Any, Deque, Dict, List, Optional

from gifportal.crypto.sig import canonical_json, missing_signers
from gifportal.program.constants import (
    APPEND_IX,
    ARG_GIF_LINK,
    BASE_ACCOUNT_TYPE,
    FIELD_GIF_LIST,
    FIELD_ITEM_LINK,
    FIELD_ITEM_USER,
    FIELD_TOTAL_GIFS,
    INITIALIZE_IX,
    ROLE_BASE_ACCOUNT,
    ROLE_SYSTEM_PROGRAM,
    ROLE_USER,
    SYSTEM_PROGRAM_ID,
)
from gifportal.program.idl import ProgramIdl
from gifportal.program.layout import LayoutError, decode_account, encode_account
from gifportal.rpc.transport import AccountInfo, RpcError

Json = Dict[str, Any]

_RENT_EXEMPT_LAMPORTS = 1_000_000


class InMemoryLedger:
    """
    In-process ledger running the GIF program.

    - Does not open sockets.
    - Verifies every signer role the IDL declares for an instruction.
    - initialize fails if the account exists; append fails if it does not.
    - Test helpers: fail_next() queues an error for a method, calls counts
      invocations per method, seed_entries() presets account state.
    """

    def __init__(self, idl: ProgramIdl) -> None:
        self.idl = idl
        self.program_id = idl.address
        self._accounts: Dict[str, AccountInfo] = {}
        self._blockhashes: Deque[str] = deque(maxlen=150)
        self._slot = 0
        self._faults: Dict[str, Deque[Exception]] = defaultdict(deque)
        self.calls: Dict[str, int] = defaultdict(int)
        self.transactions: List[Json] = []

    # ---- LedgerRpc surface ----

    async def get_account_info(self, address: str, *, commitment: str) -> Optional[AccountInfo]:
        self._enter("get_account_info")
        return self._accounts.get(address)

    async def get_latest_blockhash(self, *, commitment: str) -> str:
        self._enter("get_latest_blockhash")
        self._slot += 1
        bh = hashlib.sha256(f"blockhash:{self._slot}".encode("utf-8")).hexdigest()
        self._blockhashes.append(bh)
        return bh

    async def send_transaction(self, tx: Json, *, preflight_commitment: str) -> str:
        self._enter("send_transaction")

        if str(tx.get("program_id") or "") != self.program_id:
            raise RpcError("program_not_found", "transaction targets an unknown program")
        if tx.get("recent_blockhash") not in self._blockhashes:
            raise RpcError("blockhash_not_found", "transaction blockhash is unknown or expired")

        name = str(tx.get("instruction") or "")
        ix = self.idl.instructions.get(name)
        if ix is None:
            raise RpcError("invalid_instruction", f"program has no instruction {name!r}")

        accounts = tx.get("accounts") if isinstance(tx.get("accounts"), dict) else {}
        for role in ix["accounts"]:
            if not accounts.get(role["name"]):
                raise RpcError("missing_account", f"instruction {name!r} requires account {role['name']!r}")

        signer_keys = {str(accounts[r["name"]]) for r in ix["accounts"] if r["isSigner"]}
        signer_keys.add(str(tx.get("fee_payer") or ""))
        missing = missing_signers(tx, sorted(signer_keys))
        if missing:
            raise RpcError("signature_verification_failed", "missing or invalid signature", {"signers": missing})

        args = tx.get("args") if isinstance(tx.get("args"), dict) else {}
        if name == INITIALIZE_IX:
            self._initialize(accounts)
        elif name == APPEND_IX:
            self._append(accounts, args)
        else:
            raise RpcError("invalid_instruction", f"instruction {name!r} is not executable here")

        self.transactions.append(dict(tx))
        return hashlib.sha256(canonical_json(tx)).hexdigest()

    # ---- program semantics ----

    def _initialize(self, accounts: Dict[str, str]) -> None:
        if accounts.get(ROLE_SYSTEM_PROGRAM) != SYSTEM_PROGRAM_ID:
            raise RpcError("invalid_program_id", "systemProgram account is not the system program")
        address = accounts[ROLE_BASE_ACCOUNT]
        if address in self._accounts:
            raise RpcError("account_in_use", f"account {address} already in use")
        data = encode_account(self.idl, BASE_ACCOUNT_TYPE, {FIELD_TOTAL_GIFS: 0, FIELD_GIF_LIST: []})
        self._accounts[address] = AccountInfo(owner=self.program_id, lamports=_RENT_EXEMPT_LAMPORTS, data=data)

    def _append(self, accounts: Dict[str, str], args: Json) -> None:
        link = args.get(ARG_GIF_LINK)
        if not isinstance(link, str):
            raise RpcError("invalid_argument", f"{ARG_GIF_LINK} must be a string")

        address = accounts[ROLE_BASE_ACCOUNT]
        info = self._accounts.get(address)
        if info is None or info.owner != self.program_id:
            raise RpcError("account_not_initialized", f"account {address} is not initialized")

        try:
            state = decode_account(self.idl, BASE_ACCOUNT_TYPE, info.data)
        except LayoutError as e:
            raise RpcError("account_did_not_deserialize", str(e)) from e

        state[FIELD_GIF_LIST].append({FIELD_ITEM_LINK: link, FIELD_ITEM_USER: accounts[ROLE_USER]})
        state[FIELD_TOTAL_GIFS] = int(state[FIELD_TOTAL_GIFS]) + 1
        data = encode_account(self.idl, BASE_ACCOUNT_TYPE, state)
        self._accounts[address] = AccountInfo(owner=info.owner, lamports=info.lamports, data=data)

    # ---- helpers for tests / harness ----

    def _enter(self, method: str) -> None:
        self.calls[method] += 1
        queue = self._faults.get(method)
        if queue:
            raise queue.popleft()

    def fail_next(self, method: str, exc: Optional[Exception] = None) -> None:
        self._faults[method].append(exc or RpcError("injected", f"injected failure in {method}"))

    def seed_entries(self, address: str, links: List[str], *, user: str) -> None:
        items = [{FIELD_ITEM_LINK: link, FIELD_ITEM_USER: user} for link in links]
        data = encode_account(self.idl, BASE_ACCOUNT_TYPE, {FIELD_TOTAL_GIFS: len(items), FIELD_GIF_LIST: items})
        self._accounts[address] = AccountInfo(owner=self.program_id, lamports=_RENT_EXEMPT_LAMPORTS, data=data)

    def put_raw(self, address: str, data: bytes, *, owner: Optional[str] = None) -> None:
        self._accounts[address] = AccountInfo(owner=owner or self.program_id, lamports=_RENT_EXEMPT_LAMPORTS, data=data)

    def has_account(self, address: str) -> bool:
        return address in self._accounts
