# src/gifportal/config.py
from __future__ import annotations

import json
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, Optional

from gifportal.program.idl import default_idl_path

Json = Dict[str, Any]

_CLUSTER_URLS: Dict[str, str] = {
    "devnet": "https://api.devnet.solana.com",
    "testnet": "https://api.testnet.solana.com",
    "mainnet-beta": "https://api.mainnet-beta.solana.com",
    "localnet": "http://127.0.0.1:8899",
}

# "memory" runs against an in-process ledger; it has no URL.
_ALLOWED_CLUSTERS = set(_CLUSTER_URLS) | {"memory"}
_ALLOWED_COMMITMENTS = {"processed", "confirmed", "finalized"}


def _as_int(v: Any, default: int) -> int:
    try:
        return int(v)
    except (TypeError, ValueError):
        return int(default)


def _as_float(v: Any, default: float) -> float:
    try:
        return float(v)
    except (TypeError, ValueError):
        return float(default)


def _as_str(v: Any, default: str) -> str:
    if v is None:
        return str(default)
    s = str(v)
    return s if s.strip() else str(default)


def _as_bool(v: Any, default: bool) -> bool:
    if v is None:
        return bool(default)
    if isinstance(v, bool):
        return v
    s = str(v).strip().lower()
    if s in {"1", "true", "yes", "y", "on"}:
        return True
    if s in {"0", "false", "no", "n", "off"}:
        return False
    return bool(default)


def cluster_api_url(cluster: str) -> str:
    """Return the public RPC endpoint of a named cluster."""
    key = (cluster or "").strip().lower()
    if key not in _CLUSTER_URLS:
        raise ValueError(f"no RPC endpoint for cluster: {cluster!r}")
    return _CLUSTER_URLS[key]


@dataclass(frozen=True)
class PortalConfig:
    cluster: str
    # Empty means "derive from cluster".
    rpc_url: str
    commitment: str
    rpc_timeout_s: float

    idl_path: str
    base_account_keypair_path: str

    # Empty means the host has no wallet capability.
    wallet_keypair_path: str
    wallet_trusted: bool

    refetch_after_append: bool

    api_host: str
    api_port: int

    log_level: str

    def resolved_rpc_url(self) -> str:
        if self.rpc_url.strip():
            return self.rpc_url.strip().rstrip("/")
        if self.cluster == "memory":
            return ""
        return cluster_api_url(self.cluster)


def validate_portal_config(cfg: PortalConfig) -> None:
    """Fail-fast validation for operator config."""

    cluster = str(cfg.cluster or "").strip().lower()
    if cluster not in _ALLOWED_CLUSTERS:
        raise ValueError(f"cluster must be one of {sorted(_ALLOWED_CLUSTERS)}; got: {cfg.cluster!r}")

    if cfg.commitment not in _ALLOWED_COMMITMENTS:
        raise ValueError(f"commitment must be one of {sorted(_ALLOWED_COMMITMENTS)}; got: {cfg.commitment!r}")

    if float(cfg.rpc_timeout_s) <= 0:
        raise ValueError(f"rpc_timeout_s must be > 0; got: {cfg.rpc_timeout_s}")

    if int(cfg.api_port) <= 0 or int(cfg.api_port) > 65535:
        raise ValueError(f"api_port must be 1..65535; got: {cfg.api_port}")

    for name, p in (("idl_path", cfg.idl_path), ("base_account_keypair_path", cfg.base_account_keypair_path)):
        if not isinstance(p, str) or not p.strip():
            raise ValueError(f"{name} must be a non-empty string")

    rpc_url = cfg.rpc_url.strip()
    if rpc_url and not (rpc_url.startswith("http://") or rpc_url.startswith("https://")):
        raise ValueError(f"rpc_url must be http(s); got: {cfg.rpc_url!r}")


def default_portal_config() -> PortalConfig:
    return PortalConfig(
        cluster="devnet",
        rpc_url="",
        commitment="processed",
        rpc_timeout_s=30.0,
        idl_path=str(default_idl_path()),
        base_account_keypair_path="./keypair.json",
        wallet_keypair_path="",
        wallet_trusted=False,
        refetch_after_append=False,
        api_host="127.0.0.1",
        api_port=8080,
        log_level="INFO",
    )


def _merge(raw: Json, d: PortalConfig) -> PortalConfig:
    return PortalConfig(
        cluster=_as_str(raw.get("cluster"), d.cluster).strip().lower(),
        rpc_url=str(raw.get("rpc_url") if raw.get("rpc_url") is not None else d.rpc_url),
        commitment=_as_str(raw.get("commitment"), d.commitment).strip().lower(),
        rpc_timeout_s=_as_float(raw.get("rpc_timeout_s"), d.rpc_timeout_s),
        idl_path=_as_str(raw.get("idl_path"), d.idl_path),
        base_account_keypair_path=_as_str(raw.get("base_account_keypair_path"), d.base_account_keypair_path),
        wallet_keypair_path=str(
            raw.get("wallet_keypair_path") if raw.get("wallet_keypair_path") is not None else d.wallet_keypair_path
        ),
        wallet_trusted=_as_bool(raw.get("wallet_trusted"), d.wallet_trusted),
        refetch_after_append=_as_bool(raw.get("refetch_after_append"), d.refetch_after_append),
        api_host=_as_str(raw.get("api_host"), d.api_host),
        api_port=_as_int(raw.get("api_port"), d.api_port),
        log_level=_as_str(raw.get("log_level"), d.log_level),
    )


def _env_overrides() -> Json:
    out: Json = {}
    for field in (
        "cluster",
        "rpc_url",
        "commitment",
        "rpc_timeout_s",
        "idl_path",
        "base_account_keypair_path",
        "wallet_keypair_path",
        "wallet_trusted",
        "refetch_after_append",
        "api_host",
        "api_port",
        "log_level",
    ):
        v = os.environ.get("GIFPORTAL_" + field.upper())
        if v is not None:
            out[field] = v
    return out


def read_portal_config_file(path: str) -> PortalConfig:
    p = Path(path)
    raw = json.loads(p.read_text(encoding="utf-8"))
    if not isinstance(raw, dict):
        raise ValueError("portal config must be a JSON object")

    cfg = _merge(raw, default_portal_config())
    validate_portal_config(cfg)
    return cfg


def load_portal_config(*, config_path: Optional[str] = None, **overrides: Any) -> PortalConfig:
    """Load config: defaults, then file, then GIFPORTAL_* env vars, then explicit overrides."""
    p = config_path or os.environ.get("GIFPORTAL_CONFIG_PATH")
    cfg = read_portal_config_file(p) if p else default_portal_config()

    env = _env_overrides()
    if env:
        cfg = _merge(env, cfg)

    explicit = {k: v for k, v in overrides.items() if v is not None}
    if explicit:
        cfg = replace(cfg, **explicit)

    validate_portal_config(cfg)
    return cfg
