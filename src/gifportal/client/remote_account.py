# src/gifportal/client/remote_account.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional

from gifportal.client.context import ProgramContext
from gifportal.errors import AccountUnreadable, TransactionFailed
from gifportal.program.binding import ProgramBinding
from gifportal.program.constants import (
    APPEND_IX,
    ARG_GIF_LINK,
    BASE_ACCOUNT_TYPE,
    FIELD_GIF_LIST,
    FIELD_ITEM_LINK,
    FIELD_ITEM_USER,
    INITIALIZE_IX,
    ROLE_BASE_ACCOUNT,
    ROLE_SYSTEM_PROGRAM,
    ROLE_USER,
    SYSTEM_PROGRAM_ID,
)
from gifportal.program.idl import IdlError
from gifportal.program.layout import LayoutError
from gifportal.rpc.transport import RpcError
from gifportal.structured_logging import log_event
from gifportal.wallet.provider import WalletError, WalletProvider

_log = logging.getLogger("gifportal.remote")

# Everything the binding/transport/wallet layers raise for a failed call.
_REMOTE_ERRORS = (RpcError, LayoutError, IdlError, WalletError)


@dataclass(frozen=True, slots=True)
class Entry:
    link: str
    submitter: Optional[str] = None


class RemoteAccountClient:
    """
    Operation wrapper for the shared list account.

    - initialize_account(): create + initialize, co-signed by the account's own keypair.
    - append_entry(link): append, signed by the wallet only. No validation of `link`.
    - fetch_entries(): read + decode; any failure is AccountUnreadable.

    Every call binds a fresh transport from the context. No retries.
    """

    def __init__(self, context: ProgramContext, wallet: WalletProvider) -> None:
        self.context = context
        self.wallet = wallet

    def _binding(self) -> ProgramBinding:
        return ProgramBinding(
            idl=self.context.idl,
            program_id=self.context.program_id,
            rpc=self.context.rpc_factory(),
            wallet=self.wallet,
            commitment=self.context.commitment,
        )

    def _user(self) -> str:
        return self.wallet.public_key or ""

    async def initialize_account(self) -> str:
        program = self._binding()
        address = self.context.base_account_address
        try:
            sig = await program.rpc(
                INITIALIZE_IX,
                accounts={
                    ROLE_BASE_ACCOUNT: address,
                    ROLE_USER: self._user(),
                    ROLE_SYSTEM_PROGRAM: SYSTEM_PROGRAM_ID,
                },
                signers=[self.context.base_account],
            )
        except _REMOTE_ERRORS as e:
            raise TransactionFailed(str(e), {"instruction": INITIALIZE_IX, "code": getattr(e, "code", "")}) from e

        log_event(_log, "base_account_created", address=address, signature=sig)
        return sig

    async def append_entry(self, link: str) -> str:
        program = self._binding()
        try:
            sig = await program.rpc(
                APPEND_IX,
                args={ARG_GIF_LINK: link},
                accounts={
                    ROLE_BASE_ACCOUNT: self.context.base_account_address,
                    ROLE_USER: self._user(),
                },
            )
        except _REMOTE_ERRORS as e:
            raise TransactionFailed(str(e), {"instruction": APPEND_IX, "code": getattr(e, "code", "")}) from e
        return sig

    async def fetch_entries(self) -> List[Entry]:
        program = self._binding()
        address = self.context.base_account_address
        try:
            account = await program.fetch_account(BASE_ACCOUNT_TYPE, address)
        except _REMOTE_ERRORS as e:
            raise AccountUnreadable(str(e), {"address": address, "code": getattr(e, "code", "")}) from e

        log_event(_log, "base_account_read", address=address, total=len(account[FIELD_GIF_LIST]))
        return [
            Entry(link=item[FIELD_ITEM_LINK], submitter=item.get(FIELD_ITEM_USER))
            for item in account[FIELD_GIF_LIST]
        ]
