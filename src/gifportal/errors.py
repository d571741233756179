# src/gifportal/errors.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass
class PortalError(Exception):
    """Canonical error type for wallet, program and list-sync failures."""

    code: str
    reason: str
    details: Any | None = None

    def __str__(self) -> str:  # pragma: no cover
        if self.details is None:
            return f"{self.code}:{self.reason}"
        return f"{self.code}:{self.reason}:{self.details}"


class ProviderUnavailable(PortalError):
    """No wallet capability in the host. Terminal for the session."""

    def __init__(self, reason: str = "wallet provider not found", details: Any | None = None) -> None:
        super().__init__("provider_unavailable", reason, details)


class ConnectionDeclined(PortalError):
    """Trusted or explicit connect was rejected by the provider."""

    def __init__(self, reason: str = "connection declined", details: Any | None = None) -> None:
        super().__init__("connection_declined", reason, details)


class AccountUnreadable(PortalError):
    """Fetch failed. Covers a missing account and any transport/decode error alike."""

    def __init__(self, reason: str = "account unreadable", details: Any | None = None) -> None:
        super().__init__("account_unreadable", reason, details)


class TransactionFailed(PortalError):
    """Initialize or append was rejected by the program or the transport."""

    def __init__(self, reason: str = "transaction failed", details: Any | None = None) -> None:
        super().__init__("transaction_failed", reason, details)
