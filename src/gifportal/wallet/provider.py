"""
GIF Portal: Wallet Provider Capability

The wallet is an external collaborator. The core only needs:
  - connect(only_if_trusted=...) -> ConnectResponse(public_key)
      * only_if_trusted=True must never prompt; it fails unless the user
        already trusts this client
      * only_if_trusted=False may prompt the user
  - public_key of the connected session (None before connect)
  - sign_message(message) -> hex signature, only while connected

Absence of a provider in the host is modeled as `None`, detected once at startup.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol, runtime_checkable


class WalletError(RuntimeError):
    def __init__(self, code: str, msg: str) -> None:
        super().__init__(msg)
        self.code = code


@dataclass(frozen=True, slots=True)
class ConnectResponse:
    public_key: str


@runtime_checkable
class WalletProvider(Protocol):
    @property
    def name(self) -> str: ...

    @property
    def public_key(self) -> Optional[str]: ...

    async def connect(self, *, only_if_trusted: bool = False) -> ConnectResponse: ...

    async def sign_message(self, message: bytes) -> str: ...
