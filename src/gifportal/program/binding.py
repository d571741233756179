# src/gifportal/program/binding.py
from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

from gifportal.crypto.keypair import Keypair
from gifportal.crypto.sig import canonical_tx_message
from gifportal.program.idl import IdlError, ProgramIdl
from gifportal.program.layout import LayoutError, decode_account, encode_args
from gifportal.rpc.transport import LedgerRpc
from gifportal.wallet.provider import WalletError, WalletProvider

Json = Dict[str, Any]


class ProgramBinding:
    """Client-side handle on one deployed program: its IDL, a transport and a wallet.

    rpc() builds, signs and submits a single instruction transaction.
    fetch_account() reads and decodes a program-owned record.
    """

    def __init__(
        self,
        *,
        idl: ProgramIdl,
        program_id: str,
        rpc: LedgerRpc,
        wallet: WalletProvider,
        commitment: str = "processed",
    ) -> None:
        self.idl = idl
        self.program_id = program_id
        self.rpc_client = rpc
        self.wallet = wallet
        self.commitment = commitment

    def _fee_payer(self) -> str:
        pk = self.wallet.public_key
        if not pk:
            raise WalletError("not_connected", "wallet is not connected")
        return pk

    def _check_accounts(self, instruction: str, accounts: Dict[str, str]) -> None:
        roles = [r["name"] for r in self.idl.instruction(instruction)["accounts"]]
        missing = [r for r in roles if not accounts.get(r)]
        if missing:
            raise IdlError(f"instruction '{instruction}' missing accounts: {missing}")
        extra = sorted(set(accounts) - set(roles))
        if extra:
            raise IdlError(f"instruction '{instruction}' got unknown accounts: {extra}")

    async def rpc(
        self,
        instruction: str,
        *,
        args: Optional[Json] = None,
        accounts: Dict[str, str],
        signers: Sequence[Keypair] = (),
    ) -> str:
        """Submit one instruction. Returns the transaction signature.

        The wallet signs as fee payer. Every other signer role must be covered
        by a keypair in `signers`.
        """
        args = dict(args or {})
        self._check_accounts(instruction, accounts)
        # Type-check args against the IDL before touching the network.
        encode_args(self.idl, instruction, args)

        fee_payer = self._fee_payer()
        co_signers = {kp.public_key: kp for kp in signers}

        required = {accounts[r] for r in self.idl.signer_roles(instruction)}
        uncovered = sorted(required - set(co_signers) - {fee_payer})
        if uncovered:
            raise IdlError(f"instruction '{instruction}' has unsigned signer accounts: {uncovered}")

        blockhash = await self.rpc_client.get_latest_blockhash(commitment=self.commitment)
        signer_keys: List[str] = sorted(set(co_signers) | {fee_payer})
        message = canonical_tx_message(
            program_id=self.program_id,
            instruction=instruction,
            accounts=accounts,
            args=args,
            fee_payer=fee_payer,
            recent_blockhash=blockhash,
            signers=signer_keys,
        )

        signatures: Dict[str, str] = {fee_payer: await self.wallet.sign_message(message)}
        for pk, kp in co_signers.items():
            if pk != fee_payer:
                signatures[pk] = kp.sign(message)

        tx: Json = {
            "program_id": self.program_id,
            "instruction": instruction,
            "accounts": dict(accounts),
            "args": args,
            "fee_payer": fee_payer,
            "recent_blockhash": blockhash,
            "signatures": signatures,
        }
        return await self.rpc_client.send_transaction(tx, preflight_commitment=self.commitment)

    async def fetch_account(self, account_type: str, address: str) -> Json:
        info = await self.rpc_client.get_account_info(address, commitment=self.commitment)
        if info is None:
            raise LayoutError("account_not_found", f"account does not exist: {address}")
        if info.owner != self.program_id:
            raise LayoutError("wrong_owner", f"account {address} is not owned by the program")
        return decode_account(self.idl, account_type, info.data)
