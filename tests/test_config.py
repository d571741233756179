from __future__ import annotations

import json
import os
from dataclasses import replace

import pytest

from gifportal.config import (
    cluster_api_url,
    default_portal_config,
    load_portal_config,
    read_portal_config_file,
    validate_portal_config,
)


def _clear_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for k in list(os.environ.keys()):
        if k.startswith("GIFPORTAL_"):
            monkeypatch.delenv(k, raising=False)


def test_defaults_validate_and_resolve_devnet(monkeypatch: pytest.MonkeyPatch) -> None:
    _clear_env(monkeypatch)
    cfg = load_portal_config()
    assert cfg.cluster == "devnet"
    assert cfg.commitment == "processed"
    assert cfg.refetch_after_append is False
    assert cfg.resolved_rpc_url() == "https://api.devnet.solana.com"


def test_cluster_api_url_known_and_unknown() -> None:
    assert cluster_api_url("mainnet-beta") == "https://api.mainnet-beta.solana.com"
    assert cluster_api_url(" LocalNet ") == "http://127.0.0.1:8899"
    with pytest.raises(ValueError):
        cluster_api_url("moon")


def test_env_overrides_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    _clear_env(monkeypatch)
    monkeypatch.setenv("GIFPORTAL_CLUSTER", "memory")
    monkeypatch.setenv("GIFPORTAL_WALLET_TRUSTED", "yes")
    monkeypatch.setenv("GIFPORTAL_API_PORT", "9001")
    monkeypatch.setenv("GIFPORTAL_RPC_URL", "http://127.0.0.1:9999/")

    cfg = load_portal_config()
    assert cfg.cluster == "memory"
    assert cfg.wallet_trusted is True
    assert cfg.api_port == 9001
    assert cfg.resolved_rpc_url() == "http://127.0.0.1:9999"


def test_file_then_env_then_explicit(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    _clear_env(monkeypatch)
    p = tmp_path / "portal.json"
    p.write_text(json.dumps({"cluster": "testnet", "commitment": "confirmed", "api_port": 7000}), encoding="utf-8")

    assert read_portal_config_file(str(p)).cluster == "testnet"

    monkeypatch.setenv("GIFPORTAL_COMMITMENT", "finalized")
    cfg = load_portal_config(config_path=str(p), api_port=7100)
    assert cfg.cluster == "testnet"
    assert cfg.commitment == "finalized"
    assert cfg.api_port == 7100


def test_validation_fails_fast() -> None:
    d = default_portal_config()
    for bad in (
        replace(d, cluster="moon"),
        replace(d, commitment="eventually"),
        replace(d, rpc_timeout_s=0),
        replace(d, api_port=70000),
        replace(d, idl_path=" "),
        replace(d, rpc_url="ftp://x"),
    ):
        with pytest.raises(ValueError):
            validate_portal_config(bad)


def test_config_file_must_be_object(tmp_path) -> None:
    p = tmp_path / "portal.json"
    p.write_text("[1, 2]", encoding="utf-8")
    with pytest.raises(ValueError):
        read_portal_config_file(str(p))
