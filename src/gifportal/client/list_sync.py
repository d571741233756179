# src/gifportal/client/list_sync.py
from __future__ import annotations

"""List sync controller.

Owns the local view of the shared list and drives it through:

  start ──trusted connect ok──▶ fetch
  fetch ──ok──▶ Populated(entries)          (zero entries included)
  fetch ──fail──▶ Uninitialized
  Uninitialized ──initialize ok──▶ fetch
  Uninitialized ──initialize fail──▶ Uninitialized
  Populated(e) ──append ok──▶ Populated(e + [link])   (local, no re-read)
  Populated(e) ──append fail──▶ Populated(e), input kept

Before the first fetch the view is None (nothing rendered yet).
"""

import logging
from dataclasses import dataclass
from typing import Optional, Tuple, Union

from gifportal.client.connection import ConnectionManager
from gifportal.client.remote_account import Entry, RemoteAccountClient
from gifportal.errors import AccountUnreadable, TransactionFailed
from gifportal.structured_logging import log_event

_log = logging.getLogger("gifportal.sync")


@dataclass(frozen=True, slots=True)
class Uninitialized:
    """The account could not be read; offer one-time initialization."""

    state: str = "uninitialized"


@dataclass(frozen=True, slots=True)
class Populated:
    entries: Tuple[Entry, ...] = ()
    state: str = "populated"

    @property
    def links(self) -> list[str]:
        return [e.link for e in self.entries]


ListView = Union[Uninitialized, Populated]


class ListSyncController:
    def __init__(
        self,
        connection: ConnectionManager,
        remote: Optional[RemoteAccountClient],
        *,
        refetch_after_append: bool = False,
    ) -> None:
        self.connection = connection
        self.remote = remote
        self.refetch_after_append = bool(refetch_after_append)
        self.view: Optional[ListView] = None
        self.input_value = ""
        connection.subscribe(self._on_session_started)

    async def _on_session_started(self, public_key: str) -> None:
        log_event(_log, "gif_list_fetch_requested", public_key=public_key)
        await self.refresh()

    # ---- lifecycle ----

    async def start(self) -> None:
        """Startup: silent reconnect. A successful connect triggers the first fetch."""
        await self.connection.try_trusted_connect()

    async def connect(self) -> Optional[str]:
        return await self.connection.connect_explicit()

    # ---- sync ----

    def _remote(self) -> Optional[RemoteAccountClient]:
        """The remote client, if a wallet session exists."""
        if not self.connection.session.present:
            return None
        return self.remote

    async def refresh(self) -> Optional[ListView]:
        remote = self._remote()
        if remote is None:
            log_event(_log, "gif_list_fetch_skipped", reason="no_session")
            return self.view

        try:
            entries = await remote.fetch_entries()
        except AccountUnreadable as e:
            log_event(_log, "gif_list_fetch_failed", code=e.code, reason=e.reason)
            self.view = Uninitialized()
            return self.view

        self.view = Populated(tuple(entries))
        log_event(_log, "gif_list_fetched", count=len(entries))
        return self.view

    async def initialize_account(self) -> bool:
        """One-time account creation. Only offered while the view is Uninitialized."""
        if not isinstance(self.view, Uninitialized):
            log_event(_log, "initialize_not_offered", state=self._state_name())
            return False
        remote = self._remote()
        if remote is None:
            log_event(_log, "initialize_not_offered", state=self._state_name(), reason="no_session")
            return False

        try:
            await remote.initialize_account()
        except TransactionFailed as e:
            log_event(_log, "base_account_create_failed", level=logging.WARNING, code=e.code, reason=e.reason)
            return False

        await self.refresh()
        return True

    # ---- submission ----

    def set_input(self, value: str) -> None:
        self.input_value = value

    async def submit(self) -> bool:
        """Append the pending input. Clears the input only on success."""
        link = self.input_value
        if len(link) == 0:
            log_event(_log, "gif_submit_empty")
            return False

        view = self.view
        remote = self._remote()
        if remote is None or not isinstance(view, Populated):
            log_event(_log, "gif_submit_not_ready", state=self._state_name())
            return False

        log_event(_log, "gif_submitted", link=link)
        try:
            await remote.append_entry(link)
        except TransactionFailed as e:
            log_event(_log, "gif_submit_failed", level=logging.WARNING, code=e.code, reason=e.reason)
            return False

        if self.refetch_after_append:
            await self.refresh()
        else:
            submitter = self.connection.session.wallet_public_key
            self.view = Populated(view.entries + (Entry(link=link, submitter=submitter),))
        self.input_value = ""
        return True

    def _state_name(self) -> str:
        return self.view.state if self.view is not None else "not_loaded"
