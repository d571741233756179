# src/gifportal/client/portal.py
from __future__ import annotations

from typing import Optional

from gifportal.client.connection import ConnectionManager, Notifier
from gifportal.client.context import ProgramContext, build_program_context
from gifportal.client.list_sync import ListSyncController
from gifportal.client.remote_account import RemoteAccountClient
from gifportal.config import PortalConfig
from gifportal.rpc.transport import LedgerRpc
from gifportal.wallet.local import ApproveFn, discover_wallet
from gifportal.wallet.provider import WalletProvider


def build_controller(
    cfg: PortalConfig,
    *,
    context: Optional[ProgramContext] = None,
    ledger: Optional[LedgerRpc] = None,
    wallet: Optional[WalletProvider] = None,
    approve: Optional[ApproveFn] = None,
    notify: Optional[Notifier] = None,
) -> ListSyncController:
    """Wire wallet discovery, connection manager, remote client and controller.

    `wallet` overrides discovery (tests, embedding hosts).
    """
    ctx = context or build_program_context(cfg, ledger=ledger)
    provider = wallet if wallet is not None else discover_wallet(cfg, approve=approve)

    connection = ConnectionManager(provider, notify=notify)
    remote = RemoteAccountClient(ctx, provider) if provider is not None else None
    return ListSyncController(connection, remote, refetch_after_append=cfg.refetch_after_append)
