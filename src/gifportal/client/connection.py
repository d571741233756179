# src/gifportal/client/connection.py
from __future__ import annotations

import logging
from typing import Awaitable, Callable, List, Optional

from gifportal.client.session import Session
from gifportal.errors import ConnectionDeclined, ProviderUnavailable
from gifportal.structured_logging import log_event
from gifportal.wallet.provider import WalletError, WalletProvider

_log = logging.getLogger("gifportal.connection")

NOTICE_NO_WALLET = "Wallet not found! Configure a wallet to use the GIF portal."

SessionListener = Callable[[str], Awaitable[None]]
Notifier = Callable[[str], None]


class ConnectionManager:
    """
    Tracks the wallet session and asks the provider for connections.

    - try_trusted_connect(): silent reconnect; failure is expected and only logged.
    - connect_explicit(): may prompt; failure is logged and reported as None.
    - The absent -> present transition happens at most once per process and
      is the only thing that notifies listeners.
    - A missing provider is reported through `notify` once and never retried.
    """

    def __init__(self, provider: Optional[WalletProvider], *, notify: Optional[Notifier] = None) -> None:
        self.provider = provider
        self.session = Session()
        self.notices: List[str] = []
        self._notify = notify
        self._listeners: List[SessionListener] = []
        self._provider_reported = False

    def subscribe(self, listener: SessionListener) -> None:
        self._listeners.append(listener)

    @property
    def provider_available(self) -> bool:
        return self.provider is not None

    def _report_missing_provider(self) -> None:
        if self._provider_reported:
            return
        self._provider_reported = True
        err = ProviderUnavailable()
        log_event(_log, "wallet_provider_missing", level=logging.WARNING, code=err.code)
        self.notices.append(NOTICE_NO_WALLET)
        if self._notify is not None:
            self._notify(NOTICE_NO_WALLET)

    async def _establish(self, public_key: str) -> None:
        if self.session.present:
            return
        self.session.wallet_public_key = public_key
        log_event(_log, "wallet_connected", public_key=public_key)
        for listener in list(self._listeners):
            await listener(public_key)

    async def try_trusted_connect(self) -> Optional[str]:
        """Connect without prompting. Returns the identity, or None."""
        if self.provider is None:
            self._report_missing_provider()
            return None
        if self.session.present:
            return self.session.wallet_public_key

        log_event(_log, "wallet_provider_found", provider=self.provider.name)
        try:
            resp = await self.provider.connect(only_if_trusted=True)
        except WalletError as e:
            err = ConnectionDeclined(str(e), {"wallet_code": e.code})
            log_event(_log, "wallet_trusted_connect_failed", code=err.code, wallet_code=e.code, reason=err.reason)
            return None

        await self._establish(resp.public_key)
        return resp.public_key

    async def connect_explicit(self) -> Optional[str]:
        """Connect, prompting the user if needed. Returns the identity, or None."""
        if self.provider is None:
            log_event(_log, "wallet_connect_skipped", reason="no_provider")
            return None
        if self.session.present:
            return self.session.wallet_public_key

        try:
            resp = await self.provider.connect(only_if_trusted=False)
        except WalletError as e:
            err = ConnectionDeclined(str(e), {"wallet_code": e.code})
            log_event(
                _log,
                "wallet_connect_declined",
                level=logging.WARNING,
                code=err.code,
                wallet_code=e.code,
                reason=err.reason,
            )
            return None

        await self._establish(resp.public_key)
        return resp.public_key
