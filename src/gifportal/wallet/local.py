# src/gifportal/wallet/local.py
from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Optional

from gifportal.config import PortalConfig
from gifportal.crypto.keypair import Keypair, load_keypair_file
from gifportal.structured_logging import log_event
from gifportal.wallet.provider import ConnectResponse, WalletError, WalletProvider

_log = logging.getLogger("gifportal.wallet")

# Receives the public key about to be exposed; returns True to approve.
ApproveFn = Callable[[str], bool]


def _deny(_public_key: str) -> bool:
    return False


class KeypairWallet:
    """
    Wallet provider backed by a local keypair.

    - trusted=True models a wallet that already trusts this client, so a
      silent connect succeeds.
    - An explicit connect asks `approve`; approval makes the wallet trusted
      for the rest of the process.
    - Signing requires a connected session.
    """

    def __init__(
        self,
        keypair: Keypair,
        *,
        trusted: bool = False,
        approve: Optional[ApproveFn] = None,
        name: str = "keypair",
    ) -> None:
        self._keypair = keypair
        self._trusted = bool(trusted)
        self._approve = approve or _deny
        self._connected = False
        self._name = name

    @property
    def name(self) -> str:
        return self._name

    @property
    def trusted(self) -> bool:
        return self._trusted

    @property
    def public_key(self) -> Optional[str]:
        return self._keypair.public_key if self._connected else None

    async def connect(self, *, only_if_trusted: bool = False) -> ConnectResponse:
        pk = self._keypair.public_key
        if not self._trusted:
            if only_if_trusted:
                raise WalletError("not_trusted", "user has not trusted this client")
            if not self._approve(pk):
                raise WalletError("user_rejected", "user rejected the request")
            self._trusted = True
        self._connected = True
        return ConnectResponse(public_key=pk)

    async def sign_message(self, message: bytes) -> str:
        if not self._connected:
            raise WalletError("not_connected", "wallet is not connected")
        return self._keypair.sign(message)


def discover_wallet(cfg: PortalConfig, *, approve: Optional[ApproveFn] = None) -> Optional[WalletProvider]:
    """Return the host's wallet provider, or None when the host has none."""
    path = (cfg.wallet_keypair_path or "").strip()
    if not path or not Path(path).expanduser().is_file():
        log_event(_log, "wallet_keypair_absent", path=path)
        return None
    kp = load_keypair_file(path)
    return KeypairWallet(kp, trusted=cfg.wallet_trusted, approve=approve)
