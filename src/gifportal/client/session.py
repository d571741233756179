# src/gifportal/client/session.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass
class Session:
    """Wallet session. Absent at load; set once by the first successful connect."""

    wallet_public_key: Optional[str] = None

    @property
    def present(self) -> bool:
        return self.wallet_public_key is not None
