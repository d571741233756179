# src/gifportal/client/context.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import partial
from typing import Callable, Optional

from gifportal.config import PortalConfig
from gifportal.crypto.keypair import Keypair, load_keypair_file
from gifportal.program.idl import ProgramIdl, load_idl
from gifportal.rpc.http import HttpLedgerRpc
from gifportal.rpc.memory import InMemoryLedger
from gifportal.rpc.transport import LedgerRpc
from gifportal.structured_logging import log_event

RpcFactory = Callable[[], LedgerRpc]

_log = logging.getLogger("gifportal.program")


@dataclass(frozen=True)
class ProgramContext:
    """Everything needed to address the shared list account.

    Built once at startup and passed down explicitly; nothing here is global.
    `rpc_factory` is called once per remote operation.
    """

    idl: ProgramIdl
    program_id: str
    base_account: Keypair
    rpc_factory: RpcFactory
    commitment: str = "processed"

    @property
    def base_account_address(self) -> str:
        return self.base_account.public_key


def build_program_context(cfg: PortalConfig, *, ledger: Optional[LedgerRpc] = None) -> ProgramContext:
    """Load the IDL and the base-account keypair, and pick the transport.

    - `ledger` overrides the transport (every call gets that instance).
    - cluster "memory" uses one process-wide InMemoryLedger.
    - anything else gets a fresh HttpLedgerRpc per call.
    """
    idl = load_idl(cfg.idl_path)
    log_event(
        _log,
        "program_idl_loaded",
        name=idl.name,
        version=idl.version,
        program_id=idl.address,
        idl_sha256=idl.source_sha256,
    )
    base_account = load_keypair_file(cfg.base_account_keypair_path)

    if ledger is not None:
        shared = ledger
        factory: RpcFactory = lambda: shared
    elif cfg.cluster == "memory":
        mem = InMemoryLedger(idl)
        factory = lambda: mem
    else:
        factory = partial(HttpLedgerRpc, cfg.resolved_rpc_url(), timeout_s=cfg.rpc_timeout_s)

    return ProgramContext(
        idl=idl,
        program_id=idl.address,
        base_account=base_account,
        rpc_factory=factory,
        commitment=cfg.commitment,
    )
