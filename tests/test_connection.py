from __future__ import annotations

import asyncio
import json
import logging
from typing import List

from gifportal.client.connection import NOTICE_NO_WALLET, ConnectionManager
from gifportal.testing.wallets import ScriptedWallet


def _events(caplog) -> List[str]:
    out = []
    for rec in caplog.records:
        try:
            out.append(json.loads(rec.getMessage())["event"])
        except (ValueError, KeyError, TypeError):
            continue
    return out


def test_missing_provider_is_reported_once(caplog) -> None:
    caplog.set_level(logging.INFO)
    shown: List[str] = []
    cm = ConnectionManager(None, notify=shown.append)

    assert asyncio.run(cm.try_trusted_connect()) is None
    assert asyncio.run(cm.try_trusted_connect()) is None
    assert asyncio.run(cm.connect_explicit()) is None

    assert shown == [NOTICE_NO_WALLET]
    assert cm.notices == [NOTICE_NO_WALLET]
    assert cm.session.present is False
    assert cm.provider_available is False
    assert _events(caplog).count("wallet_provider_missing") == 1
    assert "wallet_connect_skipped" in _events(caplog)


def test_silent_failure_then_explicit_connect_notifies_once(caplog) -> None:
    caplog.set_level(logging.INFO)
    provider = ScriptedWallet("Abc123")
    cm = ConnectionManager(provider)
    started: List[str] = []

    async def _listener(pk: str) -> None:
        started.append(pk)

    cm.subscribe(_listener)

    assert asyncio.run(cm.try_trusted_connect()) is None
    assert cm.session.present is False
    assert started == []

    assert asyncio.run(cm.connect_explicit()) == "Abc123"
    assert cm.session.wallet_public_key == "Abc123"
    assert started == ["Abc123"]

    # Already connected: no new prompt, no second transition.
    assert asyncio.run(cm.connect_explicit()) == "Abc123"
    assert asyncio.run(cm.try_trusted_connect()) == "Abc123"
    assert started == ["Abc123"]
    assert provider.connects == [True, False]

    events = _events(caplog)
    assert "wallet_provider_found" in events
    assert "wallet_trusted_connect_failed" in events
    assert events.count("wallet_connected") == 1


def test_trusted_provider_connects_silently() -> None:
    provider = ScriptedWallet("Abc123", trusted=True)
    cm = ConnectionManager(provider)
    started: List[str] = []

    async def _listener(pk: str) -> None:
        started.append(pk)

    cm.subscribe(_listener)
    assert asyncio.run(cm.try_trusted_connect()) == "Abc123"
    assert started == ["Abc123"]
    assert provider.connects == [True]


def test_declined_explicit_connect_leaves_session_absent(caplog) -> None:
    caplog.set_level(logging.INFO)
    provider = ScriptedWallet("Abc123", approve=False)
    cm = ConnectionManager(provider)

    assert asyncio.run(cm.connect_explicit()) is None
    assert cm.session.present is False
    assert cm.notices == []
    assert "wallet_connect_declined" in _events(caplog)

    # The user may try again.
    provider.approve = True
    assert asyncio.run(cm.connect_explicit()) == "Abc123"
    assert cm.session.present is True
